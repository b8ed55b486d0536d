"""Tests for isometry classes and the Gromov-Hausdorff space arena."""

import numpy as np
import pytest

from ghspace.gh.gh_config import GHConfig
from ghspace.gh.isometry_class import (
    GHSpace,
    IsometryClass,
    find_isometry,
    isometry_invariants_match,
)
from ghspace.metric.space import FiniteMetricSpace
from ghspace.utils.exceptions import ValidationError


class TestFindIsometry:
    """Test isometry detection between finite spaces."""

    def test_permuted_space(self, random_planar):
        X = random_planar(6, seed=21)
        order = [4, 0, 5, 2, 1, 3]
        Y = X.permuted(order)

        f = find_isometry(X, Y)

        assert f is not None
        np.testing.assert_allclose(Y.distances[np.ix_(f, f)], X.distances)
        assert sorted(f.tolist()) == list(range(6))

    def test_non_isometric_spaces(self, path_space):
        other = FiniteMetricSpace.from_points([[0.0], [1.0], [3.0], [7.0]])

        assert not isometry_invariants_match(path_space, other)
        assert find_isometry(path_space, other) is None

    def test_symmetric_space_has_an_isometry(self, triangle):
        f = find_isometry(triangle, triangle.permuted([2, 0, 1]))

        assert f is not None
        assert sorted(f.tolist()) == [0, 1, 2]

    def test_different_sizes(self, two_point, triangle):
        assert find_isometry(two_point, triangle) is None

    def test_single_points(self):
        f = find_isometry(FiniteMetricSpace.single_point("a"), FiniteMetricSpace.single_point("b"))
        np.testing.assert_array_equal(f, [0])

    def test_tolerance(self, two_point):
        nearly = FiniteMetricSpace.uniform(2, 1.0 + 1e-12)
        farther = FiniteMetricSpace.uniform(2, 1.0 + 1e-6)

        assert find_isometry(two_point, nearly) is not None
        assert find_isometry(two_point, farther) is None
        assert find_isometry(two_point, farther, atol=1e-5) is not None


class TestIsometryClass:
    def test_equality_is_isometry(self, path_space):
        p = IsometryClass(path_space)
        q = IsometryClass(path_space.permuted([3, 1, 2, 0]))
        r = IsometryClass(path_space.scaled(2.0))

        assert p == q
        assert p != r
        assert hash(p) == hash(q)

    def test_representative_is_isometric(self, path_space):
        p = IsometryClass(path_space)

        np.testing.assert_allclose(p.representative.distance_matrix(), path_space.distances)
        assert p.n_points == 4
        assert p.diameter == pytest.approx(6.0)

    def test_hausdorff_upper_bound(self, two_point, triangle):
        p = IsometryClass(two_point)
        q = IsometryClass(triangle)

        assert p.hausdorff_upper_bound(q) >= 0.5 - 1e-12

    def test_requires_a_space(self):
        with pytest.raises(ValidationError):
            IsometryClass(np.zeros((2, 2)))


class TestGHSpace:
    """Test canonical classes and the GH metric on them."""

    def setup_method(self):
        self.gh = GHSpace(config=GHConfig.default_exact())

    def test_to_class_is_canonical(self, path_space):
        p = self.gh.to_class(path_space)
        q = self.gh.to_class(path_space.permuted([1, 0, 3, 2]))

        assert p is q
        assert self.gh.to_class(p) is p
        assert len(self.gh) == 1
        assert path_space in self.gh

    def test_foreign_class_is_canonicalised(self, triangle):
        foreign = IsometryClass(triangle)

        p = self.gh.to_class(foreign)

        assert p is not foreign
        assert p == foreign
        assert self.gh.to_class(triangle) is p

    def test_distinct_classes(self, two_point, triangle, path_space):
        classes = [self.gh.to_class(s) for s in (two_point, triangle, path_space)]

        assert len(self.gh) == 3
        assert [c.index for c in self.gh.classes()] == [c.index for c in classes]
        assert FiniteMetricSpace.uniform(5) not in self.gh
        assert "not a space" not in self.gh

    def test_dist(self, two_point, triangle):
        assert self.gh.dist(two_point, triangle) == pytest.approx(0.5)
        assert self.gh.dist(triangle, triangle.permuted([2, 1, 0])) == 0.0

    def test_metric_axioms(self, two_point, triangle, path_space, random_planar):
        spaces = [two_point, triangle, path_space, random_planar(4, seed=2),
                  FiniteMetricSpace.single_point()]
        M = self.gh.distance_matrix([self.gh.to_class(s) for s in spaces])

        np.testing.assert_allclose(M, M.T)
        np.testing.assert_array_equal(np.diag(M), 0.0)
        assert np.all(M[~np.eye(len(spaces), dtype=bool)] > 0)
        k = len(spaces)
        for i in range(k):
            for j in range(k):
                for l in range(k):
                    assert M[i, j] <= M[i, l] + M[l, j] + 1e-9

    def test_optimal_coupling_orientation(self, two_point, path_space):
        p = self.gh.to_class(two_point)
        q = self.gh.to_class(path_space)

        forward = self.gh.optimal_coupling(p, q)
        backward = self.gh.optimal_coupling(q, p)

        assert forward.coupling.left_source is two_point
        assert backward.coupling.left_source is path_space
        assert forward.distance == backward.distance
        assert self.gh.computer.cache.misses == 1

    def test_merge(self, two_point, triangle):
        p = self.gh.to_class(two_point)
        q = self.gh.to_class(triangle)

        assert self.gh.merge(p, two_point) is p
        with pytest.raises(ValidationError, match="not isometric"):
            self.gh.merge(p, q)

    def test_dist_keeps_nearby_non_isometric_classes_apart(self, triangle):
        gh = GHSpace(config=GHConfig(atol=1e-3))
        skewed = FiniteMetricSpace([[0.0, 1.0, 1.0], [1.0, 0.0, 1.0015], [1.0, 1.0015, 0.0]])
        p = gh.to_class(triangle)
        q = gh.to_class(skewed)
        assert p is not q

        d = gh.dist(p, q)

        assert d <= 1e-3
        assert gh.to_class(skewed) is q
        assert len(gh) == 2
        assert p.isometry_to(q) is None

    def test_dist_merges_isometric_classes(self, two_point):
        gh = GHSpace(config=GHConfig(atol=1e-9))
        p = gh.to_class(two_point)
        q = gh.to_class(FiniteMetricSpace.uniform(2, 1.0 + 1e-6))
        assert p is not q

        gh.atol = 1e-5

        assert gh.dist(p, q) == 0.0
        assert gh.to_class(q) is p
        assert len(gh) == 1

    def test_merge_of_classes_added_with_a_loose_tolerance(self, two_point):
        gh = GHSpace(config=GHConfig(atol=1e-9))
        p = gh.to_class(two_point)
        q = gh.to_class(FiniteMetricSpace.uniform(2, 1.0 + 1e-6))
        assert p is not q

        gh.atol = 1e-5
        merged = gh.merge(p, q)

        assert merged is p
        assert gh.to_class(q) is p
        assert len(gh) == 1
        assert p == q
