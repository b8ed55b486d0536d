"""Configuration constants for ghspace.

This module centralizes the constants used throughout the package to
improve maintainability and consistency.
"""

from dataclasses import dataclass
from typing import Dict, Any


@dataclass(frozen=True)
class NumericalConstants:
    """Numerical tolerance constants."""

    # Absolute tolerance for distance comparisons
    DEFAULT_ATOL: float = 1e-9
    STRICT_ATOL: float = 1e-12
    LOOSE_ATOL: float = 1e-6

    # Acceptable gap between bounds in relaxed search
    DEFAULT_TOLERANCE: float = 1e-6


@dataclass(frozen=True)
class SearchConstants:
    """Correspondence search constants."""

    # Exact clique search is used while |X|*|Y| stays below this
    MAX_EXACT_PAIRS: int = 64
    HARD_MAX_EXACT_PAIRS: int = 400

    # Transport solver used by the relaxed search
    GW_MAX_ITER: int = 10000
    GW_TOLERANCE: float = 1e-9

    # Hill-climbing sweeps over the assignment maps
    REFINE_SWEEPS: int = 3

    # Result cache
    MAX_CACHE_ENTRIES: int = 256


@dataclass(frozen=True)
class CompletionConstants:
    """Geometric Cauchy bound used by completion by gluing."""

    CAUCHY_SCALE: float = 1.0
    CAUCHY_RATIO: float = 0.5


@dataclass(frozen=True)
class FingerprintConstants:
    """Discretization fingerprint constants."""

    # GH radius of a fingerprint cell in units of epsilon:
    # epsilon (net of p) + epsilon/2 (matched nets) + epsilon (net of q)
    ERROR_FACTOR: float = 2.5

    # GH distance between a space and the reconstruction of its fingerprint
    RECONSTRUCTION_FACTOR: float = 1.5

    DEFAULT_SCHEDULE_LEVELS: int = 6


# Global instances for easy access
NUMERICAL = NumericalConstants()
SEARCH = SearchConstants()
COMPLETION = CompletionConstants()
FINGERPRINT = FingerprintConstants()


def get_all_constants() -> Dict[str, Any]:
    """Get all constants as a dictionary for debugging/logging."""
    return {
        'numerical': NUMERICAL.__dict__,
        'search': SEARCH.__dict__,
        'completion': COMPLETION.__dict__,
        'fingerprint': FINGERPRINT.__dict__,
    }
