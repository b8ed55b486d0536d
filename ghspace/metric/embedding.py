"""Isometric embedding into ℓ∞ and compact subsets of it.

The Kuratowski map sends a point ``x`` of a metric space with enumeration
``x_0, ..., x_{n-1}`` and basepoint ``x_b`` to the bounded sequence

    φ(x)_k = d(x, x_k) - d(x_b, x_k)

For every pair ``x, y`` the sup-norm ``‖φ(x) - φ(y)‖∞`` equals ``d(x, y)``
(the coordinate ``k = y`` attains it), so φ is an isometry onto its image.
For a finite space the sequence has finite support of length ``n`` and the
image is a nonempty compact subset of ℓ∞: the canonical representative of
the space's isometry class.
"""

from typing import Optional

import numpy as np
from scipy.spatial.distance import cdist

from ..utils.config import NUMERICAL
from ..utils.exceptions import ValidationError
from .hausdorff import sup_hausdorff, pad_columns
from .space import FiniteMetricSpace


class NonemptyCompactSubset:
    """Finite nonempty subset of ℓ∞, stored as rows of finitely supported sequences.

    Instances are immutable. Points with different lengths are compared after
    zero padding, so subsets built from spaces of different sizes live in one
    common ambient space.
    """

    def __init__(self, points):
        P = np.atleast_2d(np.array(points, dtype=np.float64))
        if P.ndim != 2 or P.shape[0] == 0:
            raise ValidationError("compact subset must contain at least one point",
                                  parameter="points", actual=P.shape)
        if not np.all(np.isfinite(P)):
            raise ValidationError("ℓ∞ points must have finite coordinates",
                                  parameter="points")
        P.setflags(write=False)
        self._points = P

    @property
    def points(self) -> np.ndarray:
        return self._points

    @property
    def n_points(self) -> int:
        return self._points.shape[0]

    @property
    def dimension(self) -> int:
        """Length of the finite support."""
        return self._points.shape[1]

    def __len__(self) -> int:
        return self.n_points

    def padded(self, dim: int) -> np.ndarray:
        return pad_columns(self._points, dim)

    def distance_matrix(self) -> np.ndarray:
        """Pairwise sup-norm distances."""
        return cdist(self._points, self._points, metric="chebyshev")

    def to_space(self, labels=None, validate: bool = False) -> FiniteMetricSpace:
        """The subset as an abstract finite metric space."""
        return FiniteMetricSpace(self.distance_matrix(), labels=labels, validate=validate)

    def hausdorff_distance(self, other: "NonemptyCompactSubset") -> float:
        """Hausdorff distance inside ℓ∞."""
        return sup_hausdorff(self._points, other._points)

    def __repr__(self) -> str:
        return f"NonemptyCompactSubset(n_points={self.n_points}, dimension={self.dimension})"


class IsometricEmbedding:
    """Kuratowski embedding of a finite metric space into ℓ∞.

    Example:
        >>> X = FiniteMetricSpace.uniform(3)
        >>> phi = IsometricEmbedding(X)
        >>> phi.image.n_points
        3
    """

    def __init__(self, space: FiniteMetricSpace, basepoint: Optional[int] = None):
        self.space = space
        self.basepoint = space.basepoint if basepoint is None else int(basepoint)
        if not 0 <= self.basepoint < space.n_points:
            raise ValidationError("basepoint out of range", parameter="basepoint",
                                  actual=self.basepoint)
        D = space.distances
        self._coordinates = D - D[self.basepoint][None, :]
        self._image = NonemptyCompactSubset(self._coordinates)

    @property
    def image(self) -> NonemptyCompactSubset:
        return self._image

    def __call__(self, i: int) -> np.ndarray:
        """Coordinates of point ``i``."""
        return self._image.points[i]

    def distortion(self) -> float:
        """Largest deviation between ℓ∞ and source distances (zero up to rounding)."""
        return float(np.max(np.abs(self._image.distance_matrix() - self.space.distances)))

    def is_isometric(self, atol: float = NUMERICAL.DEFAULT_ATOL) -> bool:
        return self.distortion() <= atol


def kuratowski_embedding(space: FiniteMetricSpace,
                         basepoint: Optional[int] = None) -> NonemptyCompactSubset:
    """Image of ``space`` under its Kuratowski embedding."""
    return IsometricEmbedding(space, basepoint).image
