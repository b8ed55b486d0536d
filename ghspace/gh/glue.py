"""Gluing two metric spaces along a seam.

Given spaces X, Y and seam maps ``i: S -> X``, ``j: S -> Y`` the glued
distance across the seam is

    d(x, y) = min_s  d_X(x, i(s)) + slack + d_Y(j(s), y)

* Exact seam (``slack = 0``): ``i`` and ``j`` are isometries of a common
  space S. The points ``j(s)`` are identified with ``i(s)``, so the carrier is
  ``X ⊔ (Y \\ j(S))``. X occupies the prefix of the glued space, which makes
  repeated gluing append-only.
* Approximate seam (``slack > 0``): the seam maps may disagree by up to
  ``2·slack``. Nothing is identified, the carrier is ``X ⊔ Y`` and the
  result is a genuine metric because every cross distance is at least
  ``slack``.

In both modes the glued distance restricted to X (resp. Y) is exactly
``d_X`` (resp. ``d_Y``).
"""

from dataclasses import dataclass
from typing import Hashable, Optional
import logging

import numpy as np

from ..metric.space import FiniteMetricSpace
from ..utils.config import NUMERICAL
from ..utils.exceptions import ValidationError, InvariantViolationError
from ..utils.validation import (
    validate_index_map,
    validate_positive,
    triangle_violation,
    symmetry_violation,
)

logger = logging.getLogger(__name__)

# Rounding from sums of up to three distances
_INVARIANT_SLACK = 4.0


@dataclass
class GlueSpace:
    """Result of gluing X and Y.

    Attributes:
        space: The glued metric space
        left: Index in ``space`` of every point of X
        right: Index in ``space`` of every point of Y
        left_source: X
        right_source: Y
        seam: 'exact' or 'approximate'
        slack: Additive slack across the seam (0 for exact seams)
    """
    space: FiniteMetricSpace
    left: np.ndarray
    right: np.ndarray
    left_source: FiniteMetricSpace
    right_source: FiniteMetricSpace
    seam: str
    slack: float

    def left_space(self) -> FiniteMetricSpace:
        return self.space.subspace(self.left)

    def right_space(self) -> FiniteMetricSpace:
        return self.space.subspace(self.right)

    def cross_distances(self) -> np.ndarray:
        """Glued distances from each point of X to each point of Y."""
        return self.space.distances[np.ix_(self.left, self.right)]

    def restriction_error(self) -> float:
        """How far the glued metric is from d_X on X and d_Y on Y."""
        D = self.space.distances
        err_left = np.abs(D[np.ix_(self.left, self.left)] - self.left_source.distances).max()
        err_right = np.abs(D[np.ix_(self.right, self.right)] - self.right_source.distances).max()
        return float(max(err_left, err_right))


def glue_cross_distances(DX: np.ndarray, DY: np.ndarray, left_seam, right_seam,
                         slack: float = 0.0) -> np.ndarray:
    """Cross block ``min_s DX[x, i(s)] + slack + DY[j(s), y]`` over every seam point."""
    left_seam = np.asarray(left_seam, dtype=np.int64).reshape(-1)
    right_seam = np.asarray(right_seam, dtype=np.int64).reshape(-1)
    if left_seam.size == 0 or left_seam.size != right_seam.size:
        raise ValidationError("seam maps must be nonempty and of equal length",
                              parameter="seam",
                              actual=(left_seam.size, right_seam.size))

    cross = np.full((DX.shape[0], DY.shape[0]), np.inf)
    for a, b in zip(left_seam, right_seam):
        np.minimum(cross, DX[:, a][:, None] + DY[b, :][None, :], out=cross)
    return cross + slack


def seam_mismatch(DX: np.ndarray, DY: np.ndarray, left_seam, right_seam) -> float:
    """``max |d_X(i(s), i(t)) - d_Y(j(s), j(t))|`` over seam pairs."""
    i = np.asarray(left_seam, dtype=np.int64)
    j = np.asarray(right_seam, dtype=np.int64)
    return float(np.abs(DX[np.ix_(i, i)] - DY[np.ix_(j, j)]).max())


def glue_exact(
    X: FiniteMetricSpace,
    Y: FiniteMetricSpace,
    left_seam,
    right_seam,
    seam: Optional[FiniteMetricSpace] = None,
    atol: float = NUMERICAL.DEFAULT_ATOL,
    validate: bool = True,
    right_tag: Hashable = "Y",
) -> GlueSpace:
    """Glue X and Y by identifying ``right_seam[s]`` with ``left_seam[s]``.

    Args:
        X, Y: Spaces to glue
        left_seam: ``i(s)`` for every seam point s
        right_seam: ``j(s)`` for every seam point s
        seam: The common space S, checked against both seam maps when given
        atol: Tolerance for the isometry checks
        validate: Check the metric axioms of the result
        right_tag: Prefix of the labels given to new points coming from Y

    Returns:
        GlueSpace whose first ``|X|`` points are X in order

    Raises:
        ValidationError: If the seam maps are not isometric embeddings of one space
        InvariantViolationError: If the result fails a metric axiom
    """
    i = validate_index_map(left_seam, X.n_points, name="left_seam")
    j = validate_index_map(right_seam, Y.n_points, name="right_seam", length=i.size)
    if i.size == 0:
        raise ValidationError("an exact seam needs at least one point", parameter="seam")
    if len(set(i.tolist())) != i.size or len(set(j.tolist())) != j.size:
        raise ValidationError("exact seam maps must be injective", parameter="seam")

    DX, DY = X.distances, Y.distances
    mismatch = seam_mismatch(DX, DY, i, j)
    if mismatch > atol:
        raise ValidationError("seam maps are not isometric to each other",
                              parameter="seam", actual=mismatch)
    if seam is not None:
        if seam.n_points != i.size:
            raise ValidationError("seam space size does not match the seam maps",
                                  parameter="seam", expected=i.size, actual=seam.n_points)
        seam_error = float(np.abs(DX[np.ix_(i, i)] - seam.distances).max())
        if seam_error > atol:
            raise ValidationError("left seam map is not an isometry of the seam space",
                                  parameter="left_seam", actual=seam_error)

    cross = glue_cross_distances(DX, DY, i, j, 0.0)

    seam_targets = set(j.tolist())
    new_y = np.array([y for y in range(Y.n_points) if y not in seam_targets], dtype=np.int64)
    n_x = X.n_points
    n_total = n_x + new_y.size

    D = np.zeros((n_total, n_total))
    D[:n_x, :n_x] = DX
    if new_y.size:
        D[n_x:, n_x:] = DY[np.ix_(new_y, new_y)]
        D[:n_x, n_x:] = cross[:, new_y]
        D[n_x:, :n_x] = cross[:, new_y].T

    right = np.empty(Y.n_points, dtype=np.int64)
    right[j] = i
    right[new_y] = n_x + np.arange(new_y.size)

    labels = list(X.labels) + [(right_tag, Y.labels[y]) for y in new_y]
    space = FiniteMetricSpace(D, labels=labels, basepoint=X.basepoint, validate=False)
    glued = GlueSpace(space=space, left=np.arange(n_x), right=right,
                      left_source=X, right_source=Y, seam='exact', slack=0.0)

    if validate:
        _check_glue(glued, atol)

    logger.debug(f"Exact glue: |X|={n_x}, |Y|={Y.n_points}, seam={i.size}, glued={n_total}")
    return glued


def glue_approximate(
    X: FiniteMetricSpace,
    Y: FiniteMetricSpace,
    left_seam,
    right_seam,
    slack: float,
    atol: float = NUMERICAL.DEFAULT_ATOL,
    validate: bool = True,
    right_tag: Hashable = "Y",
) -> GlueSpace:
    """Glue X and Y across an almost-matching seam with a positive slack.

    The seam may repeat points on either side (for instance a correspondence).
    The slack must cover half the disagreement between the two seam maps,
    otherwise the triangle inequality can fail.

    Raises:
        ValidationError: If the slack is not positive or too small for the seam
        InvariantViolationError: If the result fails a metric axiom
    """
    slack = validate_positive(slack, "slack")
    i = validate_index_map(left_seam, X.n_points, name="left_seam")
    j = validate_index_map(right_seam, Y.n_points, name="right_seam", length=i.size)
    if i.size == 0:
        raise ValidationError("an approximate seam needs at least one point", parameter="seam")

    DX, DY = X.distances, Y.distances
    required = 0.5 * seam_mismatch(DX, DY, i, j)
    if slack < required - atol:
        raise ValidationError("slack is smaller than half the seam distortion",
                              parameter="slack", expected=f">= {required}", actual=slack)

    cross = glue_cross_distances(DX, DY, i, j, slack)
    n_x, n_y = X.n_points, Y.n_points
    D = np.zeros((n_x + n_y, n_x + n_y))
    D[:n_x, :n_x] = DX
    D[n_x:, n_x:] = DY
    D[:n_x, n_x:] = cross
    D[n_x:, :n_x] = cross.T

    labels = list(X.labels) + [(right_tag, label) for label in Y.labels]
    space = FiniteMetricSpace(D, labels=labels, basepoint=X.basepoint, validate=False)
    glued = GlueSpace(space=space, left=np.arange(n_x), right=n_x + np.arange(n_y),
                      left_source=X, right_source=Y, seam='approximate', slack=slack)

    if validate:
        _check_glue(glued, atol)

    logger.debug(f"Approximate glue: |X|={n_x}, |Y|={n_y}, seam={i.size}, slack={slack:.6g}")
    return glued


def _check_glue(glued: GlueSpace, atol: float) -> None:
    """Eagerly assert the metric invariants of a glued space."""
    tol = _INVARIANT_SLACK * atol
    D = glued.space.distances

    asym = symmetry_violation(D)
    if asym > tol:
        raise InvariantViolationError("glued distance is not symmetric",
                                      invariant="symmetry", violation=asym)

    restriction = glued.restriction_error()
    if restriction > tol:
        raise InvariantViolationError("glued distance does not restrict to the original metrics",
                                      invariant="restriction", violation=restriction)

    triangle = triangle_violation(D)
    if triangle > tol:
        raise InvariantViolationError("glued distance violates the triangle inequality",
                                      invariant="triangle", violation=triangle)

    if D.shape[0] > 1:
        off_diag = D[~np.eye(D.shape[0], dtype=bool)]
        if off_diag.min() <= 0.0:
            raise InvariantViolationError("glued distance is not positive off the diagonal",
                                          invariant="positivity", violation=float(off_diag.min()))
