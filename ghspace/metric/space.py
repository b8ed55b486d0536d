"""Finite metric spaces.

A FiniteMetricSpace is the input type of every construction in ghspace: a
nonempty carrier of ``n`` labelled points and an ``(n, n)`` distance matrix
satisfying the metric axioms. Finite spaces are compact, so validating the
matrix at construction time is the whole boundary precondition.
"""

from typing import Any, Callable, Hashable, Iterable, Optional, Sequence, Tuple
import logging

import numpy as np
from scipy.spatial.distance import cdist

from ..utils.config import NUMERICAL
from ..utils.exceptions import ValidationError
from ..utils.validation import validate_distance_matrix, validate_index_map
from .hausdorff import hausdorff_distance

logger = logging.getLogger(__name__)


class FiniteMetricSpace:
    """Immutable finite metric space.

    Attributes:
        labels: One hashable label per point
        basepoint: Index of the distinguished point
        name: Optional human-readable name
    """

    def __init__(
        self,
        distances,
        labels: Optional[Sequence[Hashable]] = None,
        basepoint: int = 0,
        name: Optional[str] = None,
        atol: float = NUMERICAL.DEFAULT_ATOL,
        validate: bool = True,
    ):
        """Build a space from its distance matrix.

        Args:
            distances: Square array-like of pairwise distances
            labels: Point labels (defaults to ``0..n-1``)
            basepoint: Index of the basepoint
            name: Optional name used in logs and reprs
            atol: Tolerance used when validating the metric axioms
            validate: Check the metric axioms (disable only for matrices
                produced by code that already guarantees them)

        Raises:
            ValidationError: If the matrix is empty or not a metric
        """
        if validate:
            D = validate_distance_matrix(distances, atol=atol)
        else:
            D = np.array(distances, dtype=np.float64)
            if D.ndim != 2 or D.shape[0] != D.shape[1] or D.shape[0] == 0:
                raise ValidationError("distances must be a nonempty square matrix",
                                      parameter="distances", actual=D.shape)
        D.setflags(write=False)
        self._distances = D

        n = D.shape[0]
        if labels is None:
            labels = tuple(range(n))
        labels = tuple(labels)
        if len(labels) != n:
            raise ValidationError("labels must match the number of points",
                                  parameter="labels", expected=n, actual=len(labels))
        self.labels: Tuple[Hashable, ...] = labels

        if not 0 <= basepoint < n:
            raise ValidationError("basepoint out of range", parameter="basepoint",
                                  expected=f"[0, {n})", actual=basepoint)
        self.basepoint = int(basepoint)
        self.name = name

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------
    @classmethod
    def from_points(cls, points, metric: str = "euclidean", **kwargs) -> "FiniteMetricSpace":
        """Build a space from coordinates using a scipy ``cdist`` metric."""
        X = np.atleast_2d(np.asarray(points, dtype=np.float64))
        if X.shape[0] == 0:
            raise ValidationError("points must be nonempty", parameter="points")
        return cls(cdist(X, X, metric=metric), **kwargs)

    @classmethod
    def from_function(
        cls,
        elements: Iterable[Any],
        distance: Callable[[Any, Any], float],
        **kwargs
    ) -> "FiniteMetricSpace":
        """Build a space by evaluating a distance function on every pair."""
        elements = list(elements)
        n = len(elements)
        D = np.zeros((n, n))
        for i in range(n):
            for j in range(i + 1, n):
                D[i, j] = D[j, i] = float(distance(elements[i], elements[j]))
        kwargs.setdefault("labels", [e if isinstance(e, Hashable) else i
                                     for i, e in enumerate(elements)])
        return cls(D, **kwargs)

    @classmethod
    def single_point(cls, label: Hashable = 0, **kwargs) -> "FiniteMetricSpace":
        """The one-point space."""
        return cls(np.zeros((1, 1)), labels=[label], **kwargs)

    @classmethod
    def uniform(cls, n: int, distance: float = 1.0, **kwargs) -> "FiniteMetricSpace":
        """``n`` points at pairwise distance ``distance`` (a simplex)."""
        if n < 1:
            raise ValidationError("uniform space needs at least one point",
                                  parameter="n", actual=n)
        D = np.full((n, n), float(distance))
        np.fill_diagonal(D, 0.0)
        return cls(D, **kwargs)

    # ------------------------------------------------------------------
    # Basic properties
    # ------------------------------------------------------------------
    @property
    def distances(self) -> np.ndarray:
        """Read-only distance matrix."""
        return self._distances

    @property
    def n_points(self) -> int:
        return self._distances.shape[0]

    def __len__(self) -> int:
        return self.n_points

    @property
    def diameter(self) -> float:
        return float(self._distances.max())

    @property
    def eccentricities(self) -> np.ndarray:
        """Distance from each point to the farthest point."""
        return self._distances.max(axis=1)

    def distance(self, i: int, j: int) -> float:
        return float(self._distances[i, j])

    def index_of(self, label: Hashable) -> int:
        try:
            return self.labels.index(label)
        except ValueError:
            raise ValidationError(f"unknown point label {label!r}", parameter="label")

    # ------------------------------------------------------------------
    # Derived spaces
    # ------------------------------------------------------------------
    def subspace(self, indices, name: Optional[str] = None) -> "FiniteMetricSpace":
        """Restriction of the metric to the given points, in the given order."""
        idx = validate_index_map(indices, self.n_points, name="indices")
        if idx.size == 0:
            raise ValidationError("subspace must be nonempty", parameter="indices")
        if len(set(idx.tolist())) != idx.size:
            raise ValidationError("subspace indices must be distinct", parameter="indices")
        basepoint = 0
        hits = np.flatnonzero(idx == self.basepoint)
        if hits.size:
            basepoint = int(hits[0])
        return FiniteMetricSpace(
            self._distances[np.ix_(idx, idx)],
            labels=[self.labels[i] for i in idx],
            basepoint=basepoint,
            name=name,
            validate=False,
        )

    def scaled(self, factor: float) -> "FiniteMetricSpace":
        """The same carrier with every distance multiplied by ``factor``."""
        if factor <= 0:
            raise ValidationError("scale factor must be positive", parameter="factor",
                                  actual=factor)
        return FiniteMetricSpace(self._distances * factor, labels=self.labels,
                                 basepoint=self.basepoint, validate=False)

    def permuted(self, order) -> "FiniteMetricSpace":
        """Isometric copy with points listed in ``order``."""
        idx = validate_index_map(order, self.n_points, name="order", length=self.n_points)
        if len(set(idx.tolist())) != idx.size:
            raise ValidationError("order must be a permutation", parameter="order")
        return self.subspace(idx, name=self.name)

    def hausdorff_distance(self, A, B) -> float:
        """Hausdorff distance between two nonempty subsets given by indices."""
        return hausdorff_distance(self._distances, A, B)

    def __repr__(self) -> str:
        name = f"{self.name!r}, " if self.name else ""
        return f"FiniteMetricSpace({name}n_points={self.n_points}, diameter={self.diameter:.6g})"
