"""Configuration for Gromov-Hausdorff computations.

This module provides the configuration class shared by the optimal coupling
search, gluing, completion by gluing and discretization fingerprints,
including search-method selection, tolerances and the explicit bounds
(ε, K(ε), C) of the compactness criterion.
"""

from dataclasses import dataclass, fields
from typing import Any, Callable, Dict, Optional, Union

from ..utils.config import NUMERICAL, SEARCH, COMPLETION, FINGERPRINT
from ..utils.exceptions import ConfigurationError

VALID_METHODS = ('auto', 'exact', 'relaxed')


@dataclass
class GHConfig:
    """Configuration for Gromov-Hausdorff computations.

    Search:
    - method: 'exact' clique search, 'relaxed' transport + refinement, or
      'auto' (exact while |X|·|Y| <= max_exact_pairs)
    - tolerance: acceptable gap between certified lower bound and the
      realised coupling in relaxed mode
    - require_tolerance: raise instead of flagging when the gap is larger

    Quality Control:
    - atol: absolute tolerance for every distance comparison
    - validate_couplings: eagerly check metric axioms of every construction

    Completion:
    - cauchy_scale, cauchy_ratio: consecutive terms must satisfy
      dist(u_n, u_{n+1}) < cauchy_scale * cauchy_ratio**n

    Fingerprints:
    - diameter_bound: uniform diameter bound C
    - covering_bound: K(ε), an int or a callable epsilon -> int
    - fingerprint_cap: quantization cap M (None derives ceil(C/ε))
    - fingerprint_error_factor: GH radius of a fingerprint cell in units of ε
    """

    # Correspondence search
    method: str = 'auto'
    max_exact_pairs: int = SEARCH.MAX_EXACT_PAIRS
    tolerance: float = NUMERICAL.DEFAULT_TOLERANCE
    require_tolerance: bool = False

    # Transport relaxation
    gw_max_iter: int = SEARCH.GW_MAX_ITER
    gw_tol: float = SEARCH.GW_TOLERANCE
    refine_sweeps: int = SEARCH.REFINE_SWEEPS

    # Numerical tolerance and runtime validation
    atol: float = NUMERICAL.DEFAULT_ATOL
    validate_couplings: bool = True

    # Result cache
    cache_results: bool = True
    max_cache_entries: int = SEARCH.MAX_CACHE_ENTRIES

    # Completion by gluing
    cauchy_scale: float = COMPLETION.CAUCHY_SCALE
    cauchy_ratio: float = COMPLETION.CAUCHY_RATIO

    # Discretization fingerprints
    diameter_bound: Optional[float] = None
    covering_bound: Optional[Union[int, Callable[[float], int]]] = None
    fingerprint_cap: Optional[int] = None
    fingerprint_error_factor: float = FINGERPRINT.ERROR_FACTOR

    def validate(self) -> None:
        """Validate configuration parameters.

        Raises:
            ConfigurationError: If any parameter is invalid
        """
        if self.method not in VALID_METHODS:
            raise ConfigurationError(f"method must be one of {VALID_METHODS}",
                                     config_key='method', config_value=self.method)

        if self.max_exact_pairs <= 0:
            raise ConfigurationError(f"max_exact_pairs must be positive, got {self.max_exact_pairs}",
                                     config_key='max_exact_pairs')

        if self.max_exact_pairs > SEARCH.HARD_MAX_EXACT_PAIRS:
            raise ConfigurationError(
                f"max_exact_pairs above {SEARCH.HARD_MAX_EXACT_PAIRS} makes clique search intractable",
                config_key='max_exact_pairs', config_value=self.max_exact_pairs)

        if self.tolerance < 0:
            raise ConfigurationError(f"tolerance must be non-negative, got {self.tolerance}",
                                     config_key='tolerance')

        if self.atol <= 0:
            raise ConfigurationError(f"atol must be positive, got {self.atol}",
                                     config_key='atol')

        if self.gw_max_iter <= 0:
            raise ConfigurationError(f"gw_max_iter must be positive, got {self.gw_max_iter}",
                                     config_key='gw_max_iter')

        if self.gw_tol <= 0:
            raise ConfigurationError(f"gw_tol must be positive, got {self.gw_tol}",
                                     config_key='gw_tol')

        if self.refine_sweeps < 0:
            raise ConfigurationError(f"refine_sweeps must be non-negative, got {self.refine_sweeps}",
                                     config_key='refine_sweeps')

        if self.max_cache_entries <= 0:
            raise ConfigurationError(f"max_cache_entries must be positive, got {self.max_cache_entries}",
                                     config_key='max_cache_entries')

        if self.cauchy_scale <= 0:
            raise ConfigurationError(f"cauchy_scale must be positive, got {self.cauchy_scale}",
                                     config_key='cauchy_scale')

        if not 0 < self.cauchy_ratio < 1:
            raise ConfigurationError(f"cauchy_ratio must lie in (0, 1), got {self.cauchy_ratio}",
                                     config_key='cauchy_ratio')

        if self.diameter_bound is not None and self.diameter_bound < 0:
            raise ConfigurationError(f"diameter_bound must be non-negative, got {self.diameter_bound}",
                                     config_key='diameter_bound')

        if isinstance(self.covering_bound, int) and self.covering_bound < 1:
            raise ConfigurationError(f"covering_bound must be at least 1, got {self.covering_bound}",
                                     config_key='covering_bound')

        if self.fingerprint_cap is not None and self.fingerprint_cap < 1:
            raise ConfigurationError(f"fingerprint_cap must be at least 1, got {self.fingerprint_cap}",
                                     config_key='fingerprint_cap')

        if self.fingerprint_error_factor <= 0:
            raise ConfigurationError("fingerprint_error_factor must be positive",
                                     config_key='fingerprint_error_factor',
                                     config_value=self.fingerprint_error_factor)

    def covering_number(self, epsilon: float) -> Optional[int]:
        """K(ε): maximal admissible size of an ε-net, or None when unbounded."""
        if self.covering_bound is None:
            return None
        if callable(self.covering_bound):
            return int(self.covering_bound(epsilon))
        return int(self.covering_bound)

    def cauchy_bound(self, n: int) -> float:
        """Upper bound required of dist(u_n, u_{n+1})."""
        return self.cauchy_scale * self.cauchy_ratio ** n

    def tail_bound(self, n: int) -> float:
        """Sum of the Cauchy bounds from index n on."""
        return self.cauchy_scale * self.cauchy_ratio ** n / (1.0 - self.cauchy_ratio)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary for serialization.

        A callable covering bound is not serializable and is recorded as None.
        """
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        if callable(data['covering_bound']):
            data['covering_bound'] = None
        return data

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'GHConfig':
        """Create configuration from dictionary."""
        # Filter out unknown keys for forward compatibility
        valid_keys = {f.name for f in fields(cls)}
        filtered_dict = {k: v for k, v in config_dict.items() if k in valid_keys}
        return cls(**filtered_dict)

    @classmethod
    def default_fast(cls) -> 'GHConfig':
        """Create configuration optimized for speed over exactness."""
        return cls(
            method='relaxed',
            tolerance=1e-3,
            gw_max_iter=500,
            refine_sweeps=1,
            validate_couplings=False,
        )

    @classmethod
    def default_exact(cls) -> 'GHConfig':
        """Create configuration that always runs the exact search."""
        return cls(
            method='exact',
            max_exact_pairs=SEARCH.HARD_MAX_EXACT_PAIRS,
            tolerance=0.0,
            validate_couplings=True,
        )

    @classmethod
    def default_debugging(cls) -> 'GHConfig':
        """Create configuration for debugging with full validation."""
        return cls(
            method='auto',
            validate_couplings=True,
            require_tolerance=True,
            cache_results=False,
        )
