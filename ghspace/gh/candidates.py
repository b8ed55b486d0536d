"""Candidate couplings.

A candidate is a function ``F`` on ``(X ⊕ Y) × (X ⊕ Y)`` that restricts to
``d_X`` on ``X × X`` and ``d_Y`` on ``Y × Y``, is symmetric, satisfies the
triangle inequality and is bounded by ``2·diam X + 1 + 2·diam Y``. Such an F
is determined by its cross block ``F[x, y]``. The Gromov-Hausdorff distance
is the infimum over candidates of the Hausdorff functional

    HD(F) = max( sup_x inf_y F(x, y), sup_y inf_x F(x, y) )

Finite spaces admit a candidate attaining it, built from an optimal
correspondence (see coupling.py).
"""

from typing import Dict

import numpy as np

from ..metric.hausdorff import hausdorff_functional
from ..metric.space import FiniteMetricSpace
from ..utils.config import NUMERICAL
from ..utils.exceptions import ValidationError
from ..utils.validation import triangle_violation
from .glue import GlueSpace, glue_cross_distances


class CandidateCoupling:
    """A candidate pseudometric on the disjoint union of X and Y."""

    def __init__(self, X: FiniteMetricSpace, Y: FiniteMetricSpace, cross):
        cross = np.array(cross, dtype=np.float64)
        if cross.shape != (X.n_points, Y.n_points):
            raise ValidationError("cross block has the wrong shape", parameter="cross",
                                  expected=(X.n_points, Y.n_points), actual=cross.shape)
        if not np.all(np.isfinite(cross)):
            raise ValidationError("cross block must be finite", parameter="cross")
        cross.setflags(write=False)
        self.X = X
        self.Y = Y
        self.cross = cross

    @classmethod
    def baseline(cls, X: FiniteMetricSpace, Y: FiniteMetricSpace) -> "CandidateCoupling":
        """Constant cross distance ``(diam X + 1 + diam Y) / 2``.

        Always admissible, so a coupling exists for every pair of spaces.
        """
        c = 0.5 * (X.diameter + 1.0 + Y.diameter)
        return cls(X, Y, np.full((X.n_points, Y.n_points), c))

    @classmethod
    def from_correspondence(cls, X: FiniteMetricSpace, Y: FiniteMetricSpace,
                            left, right, slack: float) -> "CandidateCoupling":
        """``F(x, y) = min_{(x', y') ∈ R} d_X(x, x') + slack + d_Y(y', y)``."""
        return cls(X, Y, glue_cross_distances(X.distances, Y.distances, left, right, slack))

    @classmethod
    def from_glue(cls, glued: GlueSpace) -> "CandidateCoupling":
        """Candidate induced on X ⊕ Y by a glued space."""
        return cls(glued.left_source, glued.right_source, glued.cross_distances())

    @property
    def max_variation(self) -> float:
        return 2.0 * self.X.diameter + 1.0 + 2.0 * self.Y.diameter

    def full_matrix(self) -> np.ndarray:
        """F on (X ⊕ Y)², X first."""
        n, m = self.X.n_points, self.Y.n_points
        F = np.zeros((n + m, n + m))
        F[:n, :n] = self.X.distances
        F[n:, n:] = self.Y.distances
        F[:n, n:] = self.cross
        F[n:, :n] = self.cross.T
        return F

    def hausdorff_functional(self) -> float:
        return hausdorff_functional(self.cross)

    def violations(self) -> Dict[str, float]:
        """Amount by which each candidate condition fails (0 when it holds)."""
        return {
            'negativity': max(0.0, -float(self.cross.min())),
            'triangle': max(0.0, triangle_violation(self.full_matrix())),
            'bound': max(0.0, float(self.cross.max()) - self.max_variation),
        }

    def is_admissible(self, atol: float = NUMERICAL.DEFAULT_ATOL) -> bool:
        return all(v <= atol for v in self.violations().values())

    def __repr__(self) -> str:
        return (f"CandidateCoupling(|X|={self.X.n_points}, |Y|={self.Y.n_points}, "
                f"HD={self.hausdorff_functional():.6g})")
