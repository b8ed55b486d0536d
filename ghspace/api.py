"""Main API for Gromov-Hausdorff analysis.

This module provides the high-level interface for comparing finite metric
spaces, fingerprinting them and computing limits of Cauchy sequences in
the Gromov-Hausdorff space.
"""

import platform
import time
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

import numpy as np
import psutil

from .gh import (
    CompactnessWitness,
    CompletionByGluing,
    CompletionResult,
    DiscretizationFingerprinter,
    Fingerprint,
    GHConfig,
    GHSpace,
    GromovHausdorffComputer,
)
from .metric import FiniteMetricSpace
from .utils.config import get_all_constants
from .utils.exceptions import ValidationError
from .utils.logging import setup_logger
from .utils.profiling import profile_memory, profile_time

SpaceLike = Union[FiniteMetricSpace, np.ndarray, Sequence[Sequence[float]]]


class GromovHausdorffAnalyzer:
    """Main interface for Gromov-Hausdorff analysis.

    Inputs are FiniteMetricSpace instances or raw distance matrices, which
    are validated before any construction begins.

    Examples:
        >>> analyzer = GromovHausdorffAnalyzer()
        >>> result = analyzer.compare([[0, 1], [1, 0]], FiniteMetricSpace.uniform(3))
        >>> result['distance']
        0.5
    """

    def __init__(
        self,
        config: Optional[GHConfig] = None,
        log_level: str = "INFO",
        enable_profiling: bool = True,
    ):
        """Initialize the analyzer.

        Args:
            config: GH configuration (uses defaults if None)
            log_level: Logging level ('DEBUG', 'INFO', 'WARNING', 'ERROR')
            enable_profiling: Whether to record memory profiles of batch operations
        """
        self.logger = setup_logger("ghspace.analyzer", level=log_level)
        self.config = config or GHConfig()
        self.config.validate()
        self.enable_profiling = enable_profiling

        self.computer = GromovHausdorffComputer(self.config)
        self.fingerprinter = DiscretizationFingerprinter(self.config)

        self.logger.info(f"Initialized GromovHausdorffAnalyzer: method={self.config.method}")

    def _as_space(self, space: SpaceLike, name: Optional[str] = None) -> FiniteMetricSpace:
        if isinstance(space, FiniteMetricSpace):
            return space
        try:
            return FiniteMetricSpace(space, name=name, atol=self.config.atol)
        except ValidationError as e:
            self.logger.error(f"Rejected input {name or ''}: {e}")
            raise

    def compare(self, X: SpaceLike, Y: SpaceLike) -> Dict[str, Any]:
        """Compute the Gromov-Hausdorff distance and an optimal coupling.

        Args:
            X, Y: Spaces or distance matrices

        Returns:
            Dictionary containing:
                - 'distance': GH distance (upper bound in relaxed mode)
                - 'lower_bound': certified lower bound
                - 'exact': whether the distance is certified optimal
                - 'tolerance_met': whether the relaxed gap is within tolerance
                - 'coupling': Coupling realising the distance
                - 'correspondence': list of related index pairs
                - 'ambient_size': number of points of the coupling's ambient space
                - 'method': search method used
                - 'computation_time': seconds

        Raises:
            ValidationError: If an input is not a nonempty metric
            ToleranceNotMetError: If ``require_tolerance`` is set and the relaxed
                search leaves a gap above the tolerance
        """
        X = self._as_space(X, "X")
        Y = self._as_space(Y, "Y")

        start = time.time()
        result = self.computer.compute_optimal_coupling(X, Y)
        elapsed = time.time() - start

        self.logger.info(f"GH distance between {X.n_points}- and {Y.n_points}-point spaces: "
                         f"{result.distance:.6g} ({'exact' if result.exact else 'relaxed'})")
        return {
            'distance': result.distance,
            'lower_bound': result.lower_bound,
            'exact': result.exact,
            'tolerance_met': result.tolerance_met,
            'coupling': result.coupling,
            'correspondence': list(result.correspondence.pairs),
            'ambient_size': result.coupling.ambient.n_points,
            'method': result.log.get('method', 'base_case'),
            'computation_time': elapsed,
        }

    @profile_time(log_results=False)
    def compare_multiple(self, spaces: Sequence[SpaceLike]) -> Dict[str, Any]:
        """Pairwise GH distances of a family, grouped into isometry classes.

        Returns:
            Dictionary containing:
                - 'distance_matrix': symmetric matrix over the input spaces
                - 'class_indices': canonical class index of every input
                - 'n_classes': number of distinct isometry classes
        """
        if len(spaces) == 0:
            raise ValidationError("compare_multiple needs at least one space", parameter="spaces")

        def _run():
            arena = GHSpace(computer=self.computer)
            items = [arena.to_class(self._as_space(s, f"space_{i}")) for i, s in enumerate(spaces)]
            return {
                'distance_matrix': arena.distance_matrix(items),
                'class_indices': [arena.find(c.index) for c in items],
                'n_classes': len(arena),
            }

        if self.enable_profiling:
            _run = profile_memory(log_results=False)(_run)
        results = _run()
        self.logger.info(f"Compared {len(spaces)} spaces in {results['n_classes']} isometry classes")
        return results

    def fingerprint(self, space: SpaceLike, epsilon: float,
                    levels: Optional[int] = None) -> Union[Fingerprint, List[Fingerprint]]:
        """Fingerprint at ``epsilon``, or a schedule of ``levels`` halving resolutions."""
        space = self._as_space(space)
        if levels is None:
            return self.fingerprinter.fingerprint(space, epsilon)
        return self.fingerprinter.fingerprint_schedule(space, epsilon, levels)

    def compactness(self, spaces: Sequence[SpaceLike], epsilon: float) -> CompactnessWitness:
        """Compactness witness for a family under the configured (C, K) bounds."""
        return self.fingerprinter.compactness_witness(
            [self._as_space(s, f"space_{i}") for i, s in enumerate(spaces)], epsilon)

    def limit(self, sequence: Iterable[SpaceLike], max_terms: Optional[int] = None,
              tolerance: Optional[float] = None) -> CompletionResult:
        """Limit of a geometrically Cauchy sequence by completion by gluing."""
        spaces = (self._as_space(s) for s in sequence)
        result = CompletionByGluing.run(spaces, max_terms=max_terms, tolerance=tolerance,
                                        computer=self.computer)
        self.logger.info(f"Limit computed from {result.terms_used} terms, "
                         f"error bound {result.limit_error_bound:.3e}")
        return result

    def clear_cache(self) -> None:
        self.computer.clear_cache()

    def get_system_info(self) -> Dict[str, Any]:
        """Get system and analyzer information."""
        memory = psutil.virtual_memory()
        return {
            'platform': platform.platform(),
            'python_version': platform.python_version(),
            'memory_info': {
                'system_total_gb': memory.total / (1024**3),
                'system_available_gb': memory.available / (1024**3),
                'system_percent': memory.percent,
            },
            'analyzer_config': self.config.to_dict(),
            'constants': get_all_constants(),
        }
