"""Metric primitives.

Finite metric spaces, Hausdorff distances and the isometric embedding into
ℓ∞ that gives every space a canonical compact representative.
"""

from .space import FiniteMetricSpace
from .hausdorff import (
    hausdorff_distance,
    hausdorff_functional,
    directed_hausdorff,
    sup_hausdorff,
)
from .embedding import IsometricEmbedding, NonemptyCompactSubset, kuratowski_embedding

__all__ = [
    "FiniteMetricSpace",
    "hausdorff_distance",
    "hausdorff_functional",
    "directed_hausdorff",
    "sup_hausdorff",
    "IsometricEmbedding",
    "NonemptyCompactSubset",
    "kuratowski_embedding",
]
