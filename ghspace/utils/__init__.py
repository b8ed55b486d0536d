"""Utilities for the ghspace package.

This module contains common utilities used throughout the package:
- Logging infrastructure
- Custom exception hierarchy
- Performance profiling tools
- Distance-matrix validation helpers
"""

from .logging import setup_logger, get_logger
from .exceptions import (
    GHSpaceError,
    ValidationError,
    ComputationError,
    ConvergenceError,
    ConfigurationError,
    InvariantViolationError,
    ToleranceNotMetError,
)
from .profiling import profile_memory, profile_time
from .validation import (
    validate_distance_matrix,
    triangle_violation,
    symmetry_violation,
)

__all__ = [
    "setup_logger",
    "get_logger",
    "profile_memory",
    "profile_time",
    "GHSpaceError",
    "ValidationError",
    "ComputationError",
    "ConvergenceError",
    "ConfigurationError",
    "InvariantViolationError",
    "ToleranceNotMetError",
    "validate_distance_matrix",
    "triangle_violation",
    "symmetry_violation",
]
