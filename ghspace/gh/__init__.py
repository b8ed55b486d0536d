"""Gromov-Hausdorff core.

This module contains the constructions on pairs and sequences of finite
metric spaces:
- Candidate couplings and correspondence search (exact and relaxed)
- Optimal couplings realising the Gromov-Hausdorff distance
- Gluing along exact and approximate seams
- Isometry classes and the GH space arena
- Completion by gluing of geometrically Cauchy sequences
- Discretization fingerprints for the compactness criterion
"""

from .gh_config import GHConfig
from .glue import GlueSpace, glue_exact, glue_approximate, glue_cross_distances
from .candidates import CandidateCoupling
from .correspondence import (
    Correspondence,
    distortion,
    diameter_lower_bound,
    eccentricity_lower_bound,
    lower_bound,
    candidate_thresholds,
    exact_correspondence,
    relaxed_correspondence,
)
from .coupling import Coupling, CouplingResult, CouplingCache, GromovHausdorffComputer
from .isometry_class import IsometryClass, GHSpace, find_isometry
from .completion import CompletionState, CompletionResult, CompletionByGluing
from .fingerprint import Fingerprint, DiscretizationFingerprinter, CompactnessWitness

__all__ = [
    "GHConfig",
    "GlueSpace",
    "glue_exact",
    "glue_approximate",
    "glue_cross_distances",
    "CandidateCoupling",
    "Correspondence",
    "distortion",
    "diameter_lower_bound",
    "eccentricity_lower_bound",
    "lower_bound",
    "candidate_thresholds",
    "exact_correspondence",
    "relaxed_correspondence",
    "Coupling",
    "CouplingResult",
    "CouplingCache",
    "GromovHausdorffComputer",
    "IsometryClass",
    "GHSpace",
    "find_isometry",
    "CompletionState",
    "CompletionResult",
    "CompletionByGluing",
    "Fingerprint",
    "DiscretizationFingerprinter",
    "CompactnessWitness",
]
