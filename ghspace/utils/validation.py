"""Validation utilities for distance matrices.

This module provides input validation functions that reject non-metric data
at the boundary, before any construction begins.
"""

from typing import Optional

import numpy as np

from .exceptions import ValidationError


def triangle_violation(distances: np.ndarray) -> float:
    """Largest amount by which the triangle inequality fails.

    Computes ``max_{i,j,k} D[i,k] - D[i,j] - D[j,k]`` clipped at zero, one
    intermediate point at a time so memory stays quadratic.
    """
    D = np.asarray(distances, dtype=np.float64)
    n = D.shape[0]
    worst = 0.0
    for j in range(n):
        through_j = D[:, j, None] + D[None, j, :]
        worst = max(worst, float(np.max(D - through_j)))
    return worst


def symmetry_violation(distances: np.ndarray) -> float:
    """Largest absolute difference between D and its transpose."""
    D = np.asarray(distances, dtype=np.float64)
    return float(np.max(np.abs(D - D.T))) if D.size else 0.0


def validate_distance_matrix(
    distances,
    atol: float = 1e-9,
    allow_pseudo: bool = False,
    check_triangle: bool = True,
    name: str = "distances"
) -> np.ndarray:
    """Validate a distance matrix and return it as a float64 array.

    Args:
        distances: Square array-like of pairwise distances
        atol: Absolute tolerance for every comparison
        allow_pseudo: Accept zero distance between distinct points
        check_triangle: Verify the triangle inequality (cubic time)
        name: Name used in error messages

    Returns:
        Validated float64 array

    Raises:
        ValidationError: If any metric axiom fails
    """
    try:
        D = np.array(distances, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{name} must be numeric: {e}", parameter=name)

    if D.ndim != 2 or D.shape[0] != D.shape[1]:
        raise ValidationError(
            f"{name} must be a square matrix",
            parameter=name,
            expected="(n, n)",
            actual=D.shape
        )

    if D.shape[0] == 0:
        raise ValidationError(
            f"{name} describes an empty space",
            parameter=name,
            expected="at least one point",
            actual=0
        )

    if not np.all(np.isfinite(D)):
        raise ValidationError(f"{name} contains NaN or infinite values", parameter=name)

    if np.any(D < -atol):
        raise ValidationError(
            f"{name} has negative entries",
            parameter=name,
            actual=float(D.min())
        )

    asym = symmetry_violation(D)
    if asym > atol:
        raise ValidationError(f"{name} is not symmetric", parameter=name, actual=asym)

    if np.any(np.abs(np.diag(D)) > atol):
        raise ValidationError(f"{name} has a non-zero diagonal", parameter=name)

    if not allow_pseudo and D.shape[0] > 1:
        off_diag = D[~np.eye(D.shape[0], dtype=bool)]
        if np.any(off_diag <= atol):
            raise ValidationError(
                f"{name} has zero distance between distinct points",
                parameter=name,
                expected="strictly positive off-diagonal entries"
            )

    if check_triangle:
        violation = triangle_violation(D)
        if violation > atol:
            raise ValidationError(
                f"{name} violates the triangle inequality",
                parameter=name,
                actual=violation
            )

    # Symmetrize and clean the diagonal so downstream code can rely on exact values
    D = np.maximum(0.5 * (D + D.T), 0.0)
    np.fill_diagonal(D, 0.0)
    return D


def validate_positive(value: float, name: str, allow_zero: bool = False) -> float:
    """Validate that a scalar parameter is a finite positive number."""
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number", parameter=name, actual=value)

    if not np.isfinite(value) or value < 0 or (value == 0 and not allow_zero):
        raise ValidationError(
            f"{name} must be {'non-negative' if allow_zero else 'positive'}",
            parameter=name,
            actual=value
        )
    return value


def validate_index_map(indices, size: int, name: str = "indices",
                       length: Optional[int] = None) -> np.ndarray:
    """Validate an array of point indices into a space of the given size."""
    idx = np.asarray(indices, dtype=np.int64).reshape(-1)
    if length is not None and idx.shape[0] != length:
        raise ValidationError(
            f"{name} has the wrong length",
            parameter=name,
            expected=length,
            actual=idx.shape[0]
        )
    if idx.size and (idx.min() < 0 or idx.max() >= size):
        raise ValidationError(
            f"{name} refers to points outside the space",
            parameter=name,
            expected=f"indices in [0, {size})"
        )
    return idx
