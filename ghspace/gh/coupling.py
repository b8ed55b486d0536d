"""Optimal couplings and the Gromov-Hausdorff distance.

A coupling of X and Y is a metric space Z together with isometric
embeddings ``Φ: X -> Z`` and ``Ψ: Y -> Z``. The GromovHausdorffComputer
returns a coupling whose Hausdorff distance ``HD(Φ(X), Ψ(Y))`` equals the
Gromov-Hausdorff distance, so the infimum over couplings is attained:

* both spaces single points: Z is the point itself, distance 0
* one single point: distance ``½·diam`` of the other space, realised by the
  constant distance-to-basepoint candidate
* isometric spaces: Z = X, Φ the identity, Ψ the inverse isometry
* otherwise: Z is the approximate glue of X and Y along an optimal
  correspondence R with slack ``r = ½·dis(R)``; every related pair lies at
  distance exactly r and no cross distance is smaller, so ``HD = r``.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple
import hashlib
import logging

import numpy as np

from ..metric.embedding import NonemptyCompactSubset, kuratowski_embedding
from ..metric.space import FiniteMetricSpace
from ..utils.config import SEARCH
from ..utils.exceptions import InvariantViolationError, ToleranceNotMetError, ValidationError
from ..utils.validation import symmetry_violation, triangle_violation
from .candidates import CandidateCoupling
from .correspondence import (
    Correspondence,
    exact_correspondence,
    lower_bound,
    relaxed_correspondence,
)
from .gh_config import GHConfig
from .glue import glue_approximate, glue_exact

logger = logging.getLogger(__name__)

# Rounding from sums of up to three distances
_INVARIANT_SLACK = 4.0


class Coupling:
    """Isometric embeddings of X and Y into a common ambient space.

    Attributes:
        ambient: The ambient space Z
        left: ``Φ`` as indices into Z, one per point of X
        right: ``Ψ`` as indices into Z, one per point of Y
        left_source: X
        right_source: Y
    """

    def __init__(self, ambient: FiniteMetricSpace, left, right,
                 left_source: FiniteMetricSpace, right_source: FiniteMetricSpace):
        left = np.asarray(left, dtype=np.int64)
        right = np.asarray(right, dtype=np.int64)
        if left.shape != (left_source.n_points,) or right.shape != (right_source.n_points,):
            raise ValidationError("embedding maps must have one entry per source point",
                                  parameter="embedding",
                                  expected=(left_source.n_points, right_source.n_points),
                                  actual=(left.size, right.size))
        self.ambient = ambient
        self.left = left
        self.right = right
        self.left_source = left_source
        self.right_source = right_source

    def hausdorff_distance(self) -> float:
        """``HD(Φ(X), Ψ(Y))`` inside the ambient space."""
        return self.ambient.hausdorff_distance(self.left, self.right)

    def left_space(self) -> FiniteMetricSpace:
        return self.ambient.subspace(self.left)

    def right_space(self) -> FiniteMetricSpace:
        return self.ambient.subspace(self.right)

    def cross_distances(self) -> np.ndarray:
        return self.ambient.distances[np.ix_(self.left, self.right)]

    def candidate(self) -> CandidateCoupling:
        """The candidate on X ⊕ Y induced by pulling back the ambient metric."""
        return CandidateCoupling(self.left_source, self.right_source, self.cross_distances())

    def embedding_errors(self) -> Dict[str, float]:
        D = self.ambient.distances
        return {
            'left': float(np.abs(D[np.ix_(self.left, self.left)]
                                 - self.left_source.distances).max()),
            'right': float(np.abs(D[np.ix_(self.right, self.right)]
                                  - self.right_source.distances).max()),
        }

    def validate(self, atol: float) -> None:
        """Check that Φ and Ψ are isometric and Z is a metric space.

        Raises:
            InvariantViolationError: If any check fails
        """
        tol = _INVARIANT_SLACK * atol
        for side, error in self.embedding_errors().items():
            if error > tol:
                raise InvariantViolationError(f"{side} embedding of the coupling is not isometric",
                                              invariant="isometric_embedding", violation=error)

        D = self.ambient.distances
        asym = symmetry_violation(D)
        if asym > tol:
            raise InvariantViolationError("coupling ambient distance is not symmetric",
                                          invariant="symmetry", violation=asym)
        triangle = triangle_violation(D)
        if triangle > tol:
            raise InvariantViolationError("coupling ambient distance violates the triangle inequality",
                                          invariant="triangle", violation=triangle)

    def to_linfty(self) -> Tuple[NonemptyCompactSubset, NonemptyCompactSubset]:
        """Images of X and Y in ℓ∞ via the Kuratowski embedding of Z.

        The embedding is isometric, so the Hausdorff distance of the two
        subsets equals ``hausdorff_distance()``.
        """
        image = kuratowski_embedding(self.ambient).points
        return NonemptyCompactSubset(image[self.left]), NonemptyCompactSubset(image[self.right])

    def swapped(self) -> "Coupling":
        """The same coupling seen as a coupling of Y and X."""
        return Coupling(self.ambient, self.right, self.left, self.right_source, self.left_source)

    def __repr__(self) -> str:
        return (f"Coupling(|X|={self.left_source.n_points}, |Y|={self.right_source.n_points}, "
                f"|Z|={self.ambient.n_points})")


@dataclass
class CouplingResult:
    """Result of an optimal coupling computation.

    Attributes:
        coupling: Coupling realising ``distance``
        distance: Gromov-Hausdorff distance (an upper bound in relaxed mode)
        lower_bound: Certified lower bound on the distance
        correspondence: Correspondence the coupling was built from
        candidate: Candidate on X ⊕ Y induced by the coupling
        exact: Whether the distance is certified optimal
        tolerance_met: ``distance - lower_bound <= tolerance`` or ``exact``
        log: Search diagnostics
    """
    coupling: Coupling
    distance: float
    lower_bound: float
    correspondence: Correspondence
    candidate: CandidateCoupling
    exact: bool
    tolerance_met: bool
    log: Dict[str, Any] = field(default_factory=dict)

    @property
    def gap(self) -> float:
        return self.distance - self.lower_bound

    def swapped(self) -> "CouplingResult":
        corr = Correspondence(pairs=tuple(sorted((y, x) for x, y in self.correspondence.pairs)),
                              distortion=self.correspondence.distortion)
        coupling = self.coupling.swapped()
        return CouplingResult(
            coupling=coupling,
            distance=self.distance,
            lower_bound=self.lower_bound,
            correspondence=corr,
            candidate=coupling.candidate(),
            exact=self.exact,
            tolerance_met=self.tolerance_met,
            log=dict(self.log),
        )


class CouplingCache:
    """LRU cache for computed couplings.

    Keys are digests of both distance matrices and their labels.
    """

    def __init__(self, max_entries: int = SEARCH.MAX_CACHE_ENTRIES):
        self.cache = OrderedDict()
        self.max_entries = max_entries
        self.hits = 0
        self.misses = 0

    @staticmethod
    def make_key(X: FiniteMetricSpace, Y: FiniteMetricSpace) -> str:
        digest = hashlib.sha1()
        for space in (X, Y):
            digest.update(str(space.distances.shape).encode())
            digest.update(np.ascontiguousarray(space.distances).tobytes())
            digest.update(repr(space.labels).encode())
        return digest.hexdigest()

    def get(self, key: str) -> Optional[CouplingResult]:
        """Get cached result, updating LRU order."""
        if key in self.cache:
            # Move to end (most recently used)
            value = self.cache.pop(key)
            self.cache[key] = value
            self.hits += 1
            return value
        self.misses += 1
        return None

    def put(self, key: str, value: CouplingResult) -> None:
        """Store result with LRU eviction."""
        while len(self.cache) >= self.max_entries and self.cache:
            evicted, _ = self.cache.popitem(last=False)
            logger.debug(f"Evicted coupling for key {evicted[:12]}")
        self.cache[key] = value

    def clear(self) -> None:
        self.cache.clear()
        self.hits = 0
        self.misses = 0
        logger.debug("Coupling cache cleared")

    def __len__(self) -> int:
        return len(self.cache)


class GromovHausdorffComputer:
    """Optimal coupling search with caching and eager invariant checks.

    Example:
        >>> X = FiniteMetricSpace.uniform(2)
        >>> Y = FiniteMetricSpace.uniform(3)
        >>> GromovHausdorffComputer().compute_distance(X, Y)
        0.5
    """

    def __init__(self, config: Optional[GHConfig] = None):
        """Initialize computer with configuration.

        Args:
            config: GH configuration (uses defaults if None)
        """
        self.config = config or GHConfig()
        self.config.validate()

        self.cache = None
        if self.config.cache_results:
            self.cache = CouplingCache(self.config.max_cache_entries)

        logger.info(f"GromovHausdorffComputer initialized: method={self.config.method}, "
                    f"max_exact_pairs={self.config.max_exact_pairs}, atol={self.config.atol}")

    def select_method(self, n: int, m: int) -> str:
        """Search method used for spaces of sizes n and m."""
        if self.config.method == 'auto':
            return 'exact' if n * m <= self.config.max_exact_pairs else 'relaxed'
        if self.config.method == 'exact' and n * m > self.config.max_exact_pairs:
            logger.warning(f"Exact search on {n}x{m} pairs exceeds max_exact_pairs="
                           f"{self.config.max_exact_pairs}; this may be slow")
        return self.config.method

    def compute_optimal_coupling(self, X: FiniteMetricSpace, Y: FiniteMetricSpace) -> CouplingResult:
        """Compute a coupling of X and Y realising their Gromov-Hausdorff distance.

        Args:
            X, Y: Nonempty finite metric spaces

        Returns:
            CouplingResult with the coupling, distance and certified lower bound

        Raises:
            ToleranceNotMetError: If the relaxed search leaves a gap above the
                tolerance and ``require_tolerance`` is set
            InvariantViolationError: If the constructed coupling is not valid
        """
        if not isinstance(X, FiniteMetricSpace) or not isinstance(Y, FiniteMetricSpace):
            raise ValidationError("inputs must be FiniteMetricSpace instances",
                                  parameter="spaces",
                                  actual=(type(X).__name__, type(Y).__name__))

        cache_key = None
        if self.cache is not None:
            cache_key = CouplingCache.make_key(X, Y)
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.debug(f"Coupling cache hit for {cache_key[:12]}")
                return cached

        if X.n_points == 1 or Y.n_points == 1:
            result = self._single_point_coupling(X, Y)
        else:
            result = self._search_coupling(X, Y)

        if self.config.validate_couplings:
            self._validate_result(result)

        if self.cache is not None:
            self.cache.put(cache_key, result)

        logger.debug(f"GH coupling |X|={X.n_points}, |Y|={Y.n_points}: "
                     f"distance={result.distance:.6g}, lower_bound={result.lower_bound:.6g}, "
                     f"exact={result.exact}")
        return result

    def compute_distance(self, X: FiniteMetricSpace, Y: FiniteMetricSpace) -> float:
        return self.compute_optimal_coupling(X, Y).distance

    def compute_distance_matrix(self, spaces: Sequence[FiniteMetricSpace]) -> np.ndarray:
        """Symmetric matrix of pairwise Gromov-Hausdorff distances."""
        k = len(spaces)
        M = np.zeros((k, k))
        for a in range(k):
            for b in range(a + 1, k):
                M[a, b] = M[b, a] = self.compute_distance(spaces[a], spaces[b])
        return M

    def clear_cache(self) -> None:
        if self.cache is not None:
            self.cache.clear()

    def _single_point_coupling(self, X: FiniteMetricSpace, Y: FiniteMetricSpace) -> CouplingResult:
        """Base case: at least one of the spaces is a single point."""
        atol = self.config.atol
        left = np.repeat(np.arange(X.n_points), Y.n_points)
        right = np.tile(np.arange(Y.n_points), X.n_points)
        corr = Correspondence.from_arrays(X.distances, Y.distances, left, right)
        r = 0.5 * corr.distortion

        if X.n_points == 1 and Y.n_points == 1:
            glued = glue_exact(X, Y, [0], [0], atol=atol, validate=self.config.validate_couplings)
            case = 'single_points'
        else:
            # Constant cross distance r from the point to every point of the other space
            glued = glue_approximate(X, Y, left, right, slack=r, atol=atol,
                                     validate=self.config.validate_couplings)
            case = 'single_point'

        coupling = Coupling(glued.space, glued.left, glued.right, X, Y)
        return CouplingResult(
            coupling=coupling,
            distance=r,
            lower_bound=r,
            correspondence=corr,
            candidate=coupling.candidate(),
            exact=True,
            tolerance_met=True,
            log={'case': case, 'method': 'base_case'},
        )

    def _search_coupling(self, X: FiniteMetricSpace, Y: FiniteMetricSpace) -> CouplingResult:
        DX, DY = X.distances, Y.distances
        atol = self.config.atol
        lb = lower_bound(DX, DY)
        method = self.select_method(X.n_points, Y.n_points)

        if method == 'exact':
            corr, log = exact_correspondence(DX, DY, atol=atol, lower=lb)
        else:
            corr, log = relaxed_correspondence(
                DX, DY,
                max_iter=self.config.gw_max_iter,
                tol=self.config.gw_tol,
                sweeps=self.config.refine_sweeps,
                atol=atol,
            )
        log['method'] = method

        exact = method == 'exact'
        distance = 0.5 * corr.distortion
        if exact:
            lb = distance

        tolerance_met = exact or distance - lb <= self.config.tolerance + atol
        if not tolerance_met:
            message = (f"Relaxed coupling gap {distance - lb:.3e} exceeds tolerance "
                       f"{self.config.tolerance:.3e}")
            if self.config.require_tolerance:
                raise ToleranceNotMetError(message, lower_bound=lb, upper_bound=distance,
                                           tolerance=self.config.tolerance)
            logger.warning(message)

        validate = self.config.validate_couplings
        if corr.distortion <= atol and corr.is_bijection(X.n_points, Y.n_points):
            glued = glue_exact(X, Y, corr.left, corr.right, atol=atol, validate=validate)
            log['case'] = 'isometric'
        else:
            slack = distance if distance > 0.0 else atol
            glued = glue_approximate(X, Y, corr.left, corr.right, slack=slack, atol=atol,
                                     validate=validate)
            log['case'] = 'glued'

        coupling = Coupling(glued.space, glued.left, glued.right, X, Y)
        return CouplingResult(
            coupling=coupling,
            distance=distance,
            lower_bound=lb,
            correspondence=corr,
            candidate=coupling.candidate(),
            exact=exact,
            tolerance_met=tolerance_met,
            log=log,
        )

    def _validate_result(self, result: CouplingResult) -> None:
        """Eagerly check the coupling and that it attains the reported distance."""
        atol = self.config.atol
        result.coupling.validate(atol)

        realised = result.coupling.hausdorff_distance()
        if abs(realised - result.distance) > _INVARIANT_SLACK * atol + atol:
            raise InvariantViolationError("coupling does not realise the reported distance",
                                          invariant="attainment",
                                          violation=abs(realised - result.distance))

        if result.lower_bound > result.distance + atol:
            raise InvariantViolationError("lower bound exceeds the realised distance",
                                          invariant="bounds",
                                          violation=result.lower_bound - result.distance)
