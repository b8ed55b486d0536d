"""Completion by gluing.

Given a sequence of spaces ``u_0, u_1, ...`` with
``dist(u_n, u_{n+1}) < scale·ratio^n`` the machine builds an increasing
chain of spaces ``W_0 ⊆ W_1 ⊆ ...``:

    W_0 = u_0
    W_{n+1} = W_n glued (exact seam) with an optimal coupling Z_n of u_n, u_{n+1}
              along the copy of u_n they share

Each ``W_n`` is a prefix of ``W_{n+1}``, so the chain is stored as one
append-only arena. The copies of the ``u_n`` inside the arena are compact
subsets whose consecutive Hausdorff distances are the GH distances, hence
a Cauchy sequence of compact subsets. A finite prefix ending at ``N`` is
already complete; its limit is the copy of ``u_N``, within
``scale·ratio^N / (1 - ratio)`` of the true limit.

States: SEED -> GLUED -> INDUCTIVE_LIMIT -> UNIFORM_COMPLETION.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional
import logging

import numpy as np

from ..metric.space import FiniteMetricSpace
from ..utils.exceptions import GHSpaceError, InvariantViolationError, ValidationError
from .coupling import GromovHausdorffComputer
from .gh_config import GHConfig
from .glue import glue_exact

logger = logging.getLogger(__name__)


class CompletionState(Enum):
    SEED = "seed"
    GLUED = "glued"
    INDUCTIVE_LIMIT = "inductive_limit"
    UNIFORM_COMPLETION = "uniform_completion"


@dataclass
class CompletionResult:
    """Output of completion by gluing.

    Attributes:
        limit: Approximate limit space (copy of the last term)
        ambient: Final glued space containing every copy
        copies: Indices in ``ambient`` of each term's copy
        hausdorff_chain: Hausdorff distances between consecutive copies
        limit_error_bound: Bound on the GH distance from ``limit`` to the true limit
        terms_used: Number of sequence terms consumed
        state: Final machine state
    """
    limit: FiniteMetricSpace
    ambient: FiniteMetricSpace
    copies: List[np.ndarray]
    hausdorff_chain: List[float]
    limit_error_bound: float
    terms_used: int
    state: CompletionState = CompletionState.UNIFORM_COMPLETION
    distances: List[float] = field(default_factory=list)

    def copy_space(self, n: int) -> FiniteMetricSpace:
        """The n-th term as a subspace of the ambient space."""
        return self.ambient.subspace(self.copies[n])

    def hausdorff_to_limit(self, n: int) -> float:
        """Hausdorff distance in the ambient space from the n-th copy to the limit."""
        return self.ambient.hausdorff_distance(self.copies[n], self.copies[-1])


class CompletionByGluing:
    """State machine building the inductive limit of a geometrically Cauchy sequence.

    Example:
        >>> machine = CompletionByGluing()
        >>> machine.seed(FiniteMetricSpace.uniform(2, 1.0))
        >>> machine.extend(FiniteMetricSpace.uniform(2, 1.25))
        >>> result = machine.complete()
    """

    def __init__(self, computer: Optional[GromovHausdorffComputer] = None,
                 config: Optional[GHConfig] = None):
        self.computer = computer or GromovHausdorffComputer(config)
        self.config = self.computer.config
        self.state: Optional[CompletionState] = None

        self.terms: List[FiniteMetricSpace] = []
        self.copies: List[np.ndarray] = []
        self.stage_sizes: List[int] = []
        self.hausdorff_chain: List[float] = []
        self.distances: List[float] = []
        self._arena: Optional[FiniteMetricSpace] = None

    def _require(self, *states) -> None:
        if self.state not in states:
            allowed = ", ".join(s.name if s is not None else "EMPTY" for s in states)
            current = self.state.name if self.state is not None else "EMPTY"
            raise GHSpaceError(f"illegal transition from {current}",
                               context={'state': current, 'allowed': allowed})

    @property
    def arena(self) -> FiniteMetricSpace:
        self._require(CompletionState.SEED, CompletionState.GLUED,
                      CompletionState.INDUCTIVE_LIMIT, CompletionState.UNIFORM_COMPLETION)
        return self._arena

    @property
    def n_terms(self) -> int:
        return len(self.terms)

    def glued_space(self, n: int) -> FiniteMetricSpace:
        """``W_n`` as the prefix of the arena."""
        return self.arena.subspace(np.arange(self.stage_sizes[n]))

    def seed(self, space: FiniteMetricSpace) -> None:
        self._require(None)
        if not isinstance(space, FiniteMetricSpace):
            raise ValidationError("sequence terms must be FiniteMetricSpace instances",
                                  parameter="space", actual=type(space).__name__)
        labels = [(0, label) for label in space.labels]
        self._arena = FiniteMetricSpace(space.distances, labels=labels,
                                        basepoint=space.basepoint, validate=False)
        self.terms.append(space)
        self.copies.append(np.arange(space.n_points))
        self.stage_sizes.append(space.n_points)
        self.state = CompletionState.SEED
        logger.debug(f"Completion seeded with {space.n_points} points")

    def extend(self, space: FiniteMetricSpace) -> None:
        """Glue the next term onto the arena.

        Raises:
            ValidationError: If ``dist(u_n, u_{n+1})`` is not below the Cauchy bound
            GHSpaceError: If called outside the SEED or GLUED states
        """
        self._require(CompletionState.SEED, CompletionState.GLUED)
        n = len(self.terms) - 1
        result = self.computer.compute_optimal_coupling(self.terms[n], space)
        bound = self.config.cauchy_bound(n)
        if not result.distance < bound:
            raise ValidationError("sequence is not geometrically Cauchy",
                                  parameter="sequence",
                                  expected=f"dist(u_{n}, u_{n + 1}) < {bound:.6g}",
                                  actual=result.distance)

        coupling = result.coupling
        glued = glue_exact(
            self._arena, coupling.ambient,
            left_seam=self.copies[n],
            right_seam=coupling.left,
            atol=self.config.atol,
            validate=self.config.validate_couplings,
            right_tag=n + 1,
        )
        new_copy = glued.right[coupling.right]

        step = glued.space.hausdorff_distance(self.copies[n], new_copy)
        if step > result.distance + 4.0 * self.config.atol:
            raise InvariantViolationError("glued copies are farther apart than their coupling",
                                          invariant="hausdorff_chain",
                                          violation=step - result.distance)

        self._arena = glued.space
        self.terms.append(space)
        self.copies.append(new_copy)
        self.stage_sizes.append(glued.space.n_points)
        self.hausdorff_chain.append(step)
        self.distances.append(result.distance)
        self.state = CompletionState.GLUED
        logger.debug(f"Glued term {n + 1}: dist={result.distance:.6g} < {bound:.6g}, "
                     f"arena now {glued.space.n_points} points")

    def inductive_limit(self) -> FiniteMetricSpace:
        """Close the chain and return the final glued space."""
        self._require(CompletionState.SEED, CompletionState.GLUED)
        self.state = CompletionState.INDUCTIVE_LIMIT
        return self._arena

    def distance_to_limit_bound(self, n: int) -> float:
        """Bound on the GH distance from ``u_n`` to the limit of the sequence."""
        if n < 0:
            raise ValidationError("term index must be non-negative", parameter="n", actual=n)
        return self.config.tail_bound(n)

    def complete(self) -> CompletionResult:
        """Complete the inductive limit and extract the limit space.

        A finite metric space is complete, so the completion is the arena
        itself and the limit is the copy of the last term.
        """
        if self.state in (CompletionState.SEED, CompletionState.GLUED):
            self.inductive_limit()
        self._require(CompletionState.INDUCTIVE_LIMIT)

        N = len(self.terms) - 1
        limit = self._arena.subspace(self.copies[N], name="limit")
        self.state = CompletionState.UNIFORM_COMPLETION
        result = CompletionResult(
            limit=limit,
            ambient=self._arena,
            copies=list(self.copies),
            hausdorff_chain=list(self.hausdorff_chain),
            limit_error_bound=self.distance_to_limit_bound(N),
            terms_used=len(self.terms),
            state=self.state,
            distances=list(self.distances),
        )
        logger.info(f"Completion finished after {result.terms_used} terms: "
                    f"ambient={self._arena.n_points} points, "
                    f"error bound={result.limit_error_bound:.3e}")
        return result

    @classmethod
    def run(
        cls,
        sequence: Iterable[FiniteMetricSpace],
        max_terms: Optional[int] = None,
        tolerance: Optional[float] = None,
        computer: Optional[GromovHausdorffComputer] = None,
        config: Optional[GHConfig] = None,
    ) -> CompletionResult:
        """Drive the machine over a sequence.

        Args:
            sequence: Geometrically Cauchy sequence of spaces (may be infinite
                when ``max_terms`` or ``tolerance`` is given)
            max_terms: Stop after this many terms
            tolerance: Stop once the limit error bound drops to this value

        Returns:
            CompletionResult
        """
        if max_terms is not None and max_terms < 1:
            raise ValidationError("max_terms must be at least 1", parameter="max_terms",
                                  actual=max_terms)
        machine = cls(computer=computer, config=config)
        for space in sequence:
            if machine.state is None:
                machine.seed(space)
            else:
                machine.extend(space)
            n = machine.n_terms
            if max_terms is not None and n >= max_terms:
                break
            if tolerance is not None and machine.distance_to_limit_bound(n - 1) <= tolerance:
                break

        if machine.state is None:
            raise ValidationError("sequence must contain at least one space", parameter="sequence")
        return machine.complete()
