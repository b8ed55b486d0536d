"""Hausdorff distance helpers.

All functions operate on explicit distance blocks: the Hausdorff distance of
two nonempty subsets ``A``, ``B`` of a metric space is

    max( max_{a∈A} min_{b∈B} d(a, b), max_{b∈B} min_{a∈A} d(a, b) )
"""

import numpy as np
from scipy.spatial.distance import cdist

from ..utils.exceptions import ValidationError


def hausdorff_functional(cross: np.ndarray) -> float:
    """Hausdorff distance read off a cross-distance block ``F[a, b]``."""
    F = np.asarray(cross, dtype=np.float64)
    if F.ndim != 2 or F.shape[0] == 0 or F.shape[1] == 0:
        raise ValidationError("cross block must be a nonempty 2D array",
                              parameter="cross", actual=F.shape)
    return float(max(F.min(axis=1).max(), F.min(axis=0).max()))


def directed_hausdorff(cross: np.ndarray) -> float:
    """``sup_a inf_b F[a, b]``: how far A sticks out of B."""
    F = np.asarray(cross, dtype=np.float64)
    return float(F.min(axis=1).max())


def hausdorff_distance(distances: np.ndarray, A, B) -> float:
    """Hausdorff distance between index subsets of one distance matrix."""
    A = np.asarray(A, dtype=np.int64).reshape(-1)
    B = np.asarray(B, dtype=np.int64).reshape(-1)
    if A.size == 0 or B.size == 0:
        raise ValidationError("Hausdorff distance needs nonempty subsets")
    return hausdorff_functional(np.asarray(distances)[np.ix_(A, B)])


def sup_hausdorff(P: np.ndarray, Q: np.ndarray) -> float:
    """Hausdorff distance between point clouds under the sup (Chebyshev) norm.

    Rows of different lengths are treated as finitely supported sequences and
    zero-padded to a common length.
    """
    P = np.atleast_2d(np.asarray(P, dtype=np.float64))
    Q = np.atleast_2d(np.asarray(Q, dtype=np.float64))
    dim = max(P.shape[1], Q.shape[1])
    P = pad_columns(P, dim)
    Q = pad_columns(Q, dim)
    return hausdorff_functional(cdist(P, Q, metric="chebyshev"))


def pad_columns(points: np.ndarray, dim: int) -> np.ndarray:
    """Zero-pad a point cloud to ``dim`` coordinates."""
    if points.shape[1] == dim:
        return points
    if points.shape[1] > dim:
        raise ValidationError("cannot pad to a smaller dimension",
                              expected=f">= {points.shape[1]}", actual=dim)
    out = np.zeros((points.shape[0], dim))
    out[:, :points.shape[1]] = points
    return out
