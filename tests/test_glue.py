"""Tests for gluing metric spaces along exact and approximate seams."""

import numpy as np
import pytest
from scipy.spatial.distance import cdist

from ghspace.gh.candidates import CandidateCoupling
from ghspace.gh.glue import (
    GlueSpace,
    glue_exact,
    glue_approximate,
    glue_cross_distances,
    seam_mismatch,
    _check_glue,
)
from ghspace.metric.space import FiniteMetricSpace
from ghspace.utils.exceptions import ValidationError, InvariantViolationError
from ghspace.utils.validation import triangle_violation


class TestGlueCrossDistances:
    def test_minimum_over_every_seam_point(self):
        DX = np.array([[0.0, 1.0], [1.0, 0.0]])
        DY = np.array([[0.0, 2.0], [2.0, 0.0]])

        cross = glue_cross_distances(DX, DY, [0, 1], [0, 1], slack=0.5)

        # x0 -> y1 through seam point 1: 1 + 0.5 + 0 beats 0 + 0.5 + 2
        assert cross[0, 1] == pytest.approx(1.5)
        assert cross[0, 0] == pytest.approx(0.5)
        assert cross[1, 0] == pytest.approx(1.5)

    def test_rejects_mismatched_seams(self):
        DX = np.zeros((1, 1))
        with pytest.raises(ValidationError):
            glue_cross_distances(DX, DX, [0], [0, 0])
        with pytest.raises(ValidationError):
            glue_cross_distances(DX, DX, [], [])

    def test_seam_mismatch(self):
        DX = np.array([[0.0, 1.0], [1.0, 0.0]])
        DY = np.array([[0.0, 1.5], [1.5, 0.0]])
        assert seam_mismatch(DX, DY, [0, 1], [0, 1]) == pytest.approx(0.5)


class TestGlueExact:
    """Exact seams identify a common isometric subspace."""

    def test_two_segments_glued_at_an_endpoint(self):
        X = FiniteMetricSpace.from_points([[0.0], [1.0]], labels=["x0", "x1"])
        Y = FiniteMetricSpace.from_points([[0.0], [2.0]], labels=["y0", "y1"])

        glued = glue_exact(X, Y, left_seam=[1], right_seam=[0])

        assert isinstance(glued, GlueSpace)
        assert glued.space.n_points == 3
        assert glued.seam == 'exact'
        np.testing.assert_array_equal(glued.left, [0, 1])
        np.testing.assert_array_equal(glued.right, [1, 2])
        assert glued.space.distance(0, 2) == pytest.approx(3.0)
        assert glued.space.labels == ("x0", "x1", ("Y", "y1"))

    def test_induced_candidate(self):
        X = FiniteMetricSpace.from_points([[0.0], [1.0]])
        Y = FiniteMetricSpace.from_points([[0.0], [2.0]])

        candidate = CandidateCoupling.from_glue(glue_exact(X, Y, left_seam=[1], right_seam=[0]))

        np.testing.assert_allclose(candidate.cross, [[1.0, 3.0], [0.0, 2.0]])
        assert candidate.is_admissible()
        assert candidate.hausdorff_functional() == pytest.approx(2.0)

    def test_restriction_is_exact(self):
        P = np.random.default_rng(7).random((9, 2))
        X = FiniteMetricSpace.from_points(P[:6])
        Y = FiniteMetricSpace.from_points(P[[0, 2, 4, 6, 7, 8]])
        S = X.subspace([0, 2, 4])

        glued = glue_exact(X, Y, left_seam=[0, 2, 4], right_seam=[0, 1, 2], seam=S)

        assert glued.restriction_error() <= 1e-12
        np.testing.assert_allclose(glued.left_space().distances, X.distances)
        np.testing.assert_allclose(glued.right_space().distances, Y.distances)
        assert glued.space.n_points == X.n_points + 3
        # glued distances never undercut the planar ones
        assert np.all(glued.cross_distances() >= cdist(P[:6], P[[0, 2, 4, 6, 7, 8]]) - 1e-12)

    def test_x_is_a_prefix(self, path_space):
        glued = glue_exact(path_space, path_space, [0, 1], [0, 1])

        np.testing.assert_array_equal(glued.space.distances[:4, :4], path_space.distances)
        np.testing.assert_array_equal(glued.left, np.arange(4))

    def test_full_seam_returns_x(self, path_space):
        order = [3, 2, 1, 0]
        Y = path_space.permuted(order)
        glued = glue_exact(path_space, Y, left_seam=order, right_seam=[0, 1, 2, 3])

        assert glued.space.n_points == 4
        np.testing.assert_array_equal(glued.right, order)

    def test_rejects_non_isometric_seams(self, two_point, triangle):
        Y = FiniteMetricSpace([[0.0, 2.0], [2.0, 0.0]])
        with pytest.raises(ValidationError, match="isometric"):
            glue_exact(two_point, Y, [0, 1], [0, 1])

    def test_rejects_non_injective_or_empty_seams(self, two_point, triangle):
        with pytest.raises(ValidationError, match="injective"):
            glue_exact(two_point, triangle, [0, 0], [0, 1])
        with pytest.raises(ValidationError):
            glue_exact(two_point, triangle, [], [])

    def test_rejects_seam_space_mismatch(self, two_point):
        wrong_seam = FiniteMetricSpace([[0.0, 3.0], [3.0, 0.0]])
        with pytest.raises(ValidationError, match="seam"):
            glue_exact(two_point, two_point, [0, 1], [0, 1], seam=wrong_seam)


class TestGlueApproximate:
    """Approximate seams add a positive slack across the seam."""

    def test_slack_makes_a_genuine_metric(self, two_point):
        Y = FiniteMetricSpace([[0.0, 1.5], [1.5, 0.0]])

        glued = glue_approximate(two_point, Y, [0, 1], [0, 1], slack=0.25)

        D = glued.space.distances
        assert glued.space.n_points == 4
        assert glued.seam == 'approximate'
        assert triangle_violation(D) <= 1e-12
        assert np.all(D[~np.eye(4, dtype=bool)] > 0)
        assert glued.restriction_error() == 0.0
        assert glued.cross_distances().min() == pytest.approx(0.25)

    def test_slack_too_small_is_rejected(self, two_point):
        Y = FiniteMetricSpace([[0.0, 2.0], [2.0, 0.0]])
        with pytest.raises(ValidationError, match="slack"):
            glue_approximate(two_point, Y, [0, 1], [0, 1], slack=0.25)

    def test_slack_must_be_positive(self, two_point):
        with pytest.raises(ValidationError):
            glue_approximate(two_point, two_point, [0, 1], [0, 1], slack=0.0)

    def test_repeated_seam_points(self, triangle):
        point = FiniteMetricSpace.single_point()
        glued = glue_approximate(point, triangle, [0, 0, 0], [0, 1, 2], slack=0.5)

        np.testing.assert_allclose(glued.cross_distances(), [[0.5, 0.5, 0.5]])


class TestGlueInvariants:
    def test_broken_glue_is_reported(self, two_point):
        glued = glue_approximate(two_point, two_point, [0, 1], [0, 1], slack=0.5)
        D = np.array(glued.space.distances)
        D[0, 3] = D[3, 0] = 10.0
        broken = GlueSpace(
            space=FiniteMetricSpace(D, validate=False),
            left=glued.left, right=glued.right,
            left_source=two_point, right_source=two_point,
            seam='approximate', slack=0.5,
        )

        with pytest.raises(InvariantViolationError, match="triangle"):
            _check_glue(broken, 1e-9)
