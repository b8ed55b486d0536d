"""Tests for completion by gluing."""

import itertools

import numpy as np
import pytest

from ghspace.gh.completion import CompletionByGluing, CompletionResult, CompletionState
from ghspace.gh.coupling import GromovHausdorffComputer
from ghspace.gh.gh_config import GHConfig
from ghspace.metric.space import FiniteMetricSpace
from ghspace.utils.exceptions import GHSpaceError, ValidationError


def shrinking_paths(path_space):
    """Rescalings of a path converging to the path itself."""
    for k in itertools.count():
        yield path_space.scaled(1.0 + 2.0 ** (-k) / 8.0)


class TestCompletionStates:
    """The machine only accepts legal transitions."""

    def setup_method(self):
        self.machine = CompletionByGluing()

    def test_starts_empty(self):
        assert self.machine.state is None
        assert self.machine.n_terms == 0
        with pytest.raises(GHSpaceError, match="illegal transition"):
            self.machine.arena

    def test_extend_before_seed(self, two_point):
        with pytest.raises(GHSpaceError, match="illegal transition"):
            self.machine.extend(two_point)

    def test_seed_twice(self, two_point):
        self.machine.seed(two_point)

        assert self.machine.state is CompletionState.SEED
        with pytest.raises(GHSpaceError):
            self.machine.seed(two_point)

    def test_seed_requires_a_space(self):
        with pytest.raises(ValidationError):
            self.machine.seed(np.zeros((2, 2)))

    def test_full_cycle(self, two_point):
        self.machine.seed(two_point)
        self.machine.extend(FiniteMetricSpace.uniform(2, 1.25))
        assert self.machine.state is CompletionState.GLUED

        self.machine.inductive_limit()
        assert self.machine.state is CompletionState.INDUCTIVE_LIMIT
        with pytest.raises(GHSpaceError):
            self.machine.extend(two_point)

        result = self.machine.complete()
        assert result.state is CompletionState.UNIFORM_COMPLETION
        with pytest.raises(GHSpaceError):
            self.machine.complete()
        with pytest.raises(GHSpaceError):
            self.machine.inductive_limit()

    def test_complete_from_seed(self, triangle):
        self.machine.seed(triangle)

        result = self.machine.complete()

        assert result.terms_used == 1
        assert result.hausdorff_chain == []
        np.testing.assert_array_equal(result.limit.distances, triangle.distances)
        assert result.limit.name == "limit"


class TestCompletionByGluing:
    """Test the glued chain and its limit."""

    def test_arena_labels_record_the_term(self, two_point):
        machine = CompletionByGluing()
        machine.seed(two_point)

        assert machine.arena.labels == ((0, "a"), (0, "b"))

    def test_non_cauchy_sequence_is_rejected(self, two_point):
        machine = CompletionByGluing()
        machine.seed(two_point)

        with pytest.raises(ValidationError, match="geometrically Cauchy"):
            machine.extend(FiniteMetricSpace.uniform(2, 5.0))
        assert machine.n_terms == 1
        assert machine.state is CompletionState.SEED

    def test_cauchy_bound_tightens_with_the_index(self, two_point):
        machine = CompletionByGluing(config=GHConfig(cauchy_scale=1.0, cauchy_ratio=0.5))
        machine.seed(two_point)
        machine.extend(FiniteMetricSpace.uniform(2, 2.0))  # dist 0.5 < 1

        with pytest.raises(ValidationError):
            machine.extend(FiniteMetricSpace.uniform(2, 3.0))  # dist 0.5, bound 0.5

    def test_chain_is_append_only(self, path_space):
        machine = CompletionByGluing()
        terms = list(itertools.islice(shrinking_paths(path_space), 4))
        machine.seed(terms[0])
        for term in terms[1:]:
            machine.extend(term)

        for n in range(len(terms) - 1):
            W_n = machine.glued_space(n).distances
            W_next = machine.glued_space(n + 1).distances
            size = W_n.shape[0]
            np.testing.assert_array_equal(W_next[:size, :size], W_n)

        np.testing.assert_array_equal(machine.glued_space(0).distances, terms[0].distances)

    def test_copies_are_isometric_to_the_terms(self, path_space):
        result = CompletionByGluing.run(shrinking_paths(path_space), max_terms=5)

        assert result.terms_used == 5
        for n in range(5):
            expected = path_space.scaled(1.0 + 2.0 ** (-n) / 8.0).distances
            np.testing.assert_allclose(result.copy_space(n).distances, expected, atol=1e-9)

    def test_hausdorff_chain_matches_distances(self, path_space):
        result = CompletionByGluing.run(shrinking_paths(path_space), max_terms=5)

        assert len(result.hausdorff_chain) == 4
        assert len(result.distances) == 4
        for step, dist in zip(result.hausdorff_chain, result.distances):
            assert step == pytest.approx(dist, abs=1e-8)

    def test_limit_error_bound(self, path_space):
        config = GHConfig()
        result = CompletionByGluing.run(shrinking_paths(path_space), max_terms=6, config=config)

        assert isinstance(result, CompletionResult)
        assert result.limit_error_bound == pytest.approx(config.tail_bound(5))
        assert result.hausdorff_to_limit(5) == 0.0
        for n in range(6):
            assert result.hausdorff_to_limit(n) <= sum(result.hausdorff_chain[n:]) + 1e-9

        gh = GromovHausdorffComputer().compute_distance(result.limit, path_space)
        assert gh <= result.limit_error_bound

    def test_distance_to_limit_bound(self):
        machine = CompletionByGluing(config=GHConfig(cauchy_scale=2.0, cauchy_ratio=0.5))

        assert machine.distance_to_limit_bound(0) == pytest.approx(4.0)
        assert machine.distance_to_limit_bound(2) == pytest.approx(1.0)
        with pytest.raises(ValidationError):
            machine.distance_to_limit_bound(-1)

    def test_growing_spaces(self):
        # u_n = {0, 1, 1 + 1/2, ..., 1 + ... + 2^-(n-1)} on the line
        def partial_sums():
            points = [0.0]
            while True:
                yield FiniteMetricSpace.from_points(np.array(points)[:, None])
                points.append(points[-1] + 2.0 ** (-(len(points) - 1)))

        result = CompletionByGluing.run(partial_sums(), max_terms=5)

        assert result.limit.n_points == 5
        assert result.ambient.n_points >= result.limit.n_points
        assert result.limit.diameter == pytest.approx(1.875)


class TestCompletionRun:
    def test_stops_at_tolerance(self, path_space):
        result = CompletionByGluing.run(shrinking_paths(path_space), tolerance=0.01)

        assert result.terms_used == 9
        assert result.limit_error_bound <= 0.01

    def test_finite_sequence_is_consumed(self):
        sequence = [FiniteMetricSpace.uniform(2, 1.0 + 0.1 * 2.0 ** (-k)) for k in range(3)]

        result = CompletionByGluing.run(sequence)

        assert result.terms_used == 3

    def test_rejects_empty_sequence(self):
        with pytest.raises(ValidationError, match="at least one"):
            CompletionByGluing.run([])

    def test_rejects_bad_max_terms(self, two_point):
        with pytest.raises(ValidationError):
            CompletionByGluing.run([two_point], max_terms=0)
