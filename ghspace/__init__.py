"""ghspace: the Gromov-Hausdorff space of finite metric spaces

This package provides computational counterparts of the constructions on
the space of isometry classes of compact metric spaces. It includes:

- Finite metric spaces and their Kuratowski embedding into ℓ∞
- Optimal couplings realising the Gromov-Hausdorff distance
- Gluing of metric spaces along exact and approximate seams
- Isometry classes with union-find canonicalisation
- Completion by gluing of geometrically Cauchy sequences
- Discretization fingerprints for the Gromov compactness criterion
"""

__version__ = "0.1.0"
__author__ = "ghspace Team"

from .api import GromovHausdorffAnalyzer
from .metric import FiniteMetricSpace, IsometricEmbedding, NonemptyCompactSubset
from .gh import (
    GHConfig,
    GHSpace,
    IsometryClass,
    GromovHausdorffComputer,
    Coupling,
    CouplingResult,
    CandidateCoupling,
    GlueSpace,
    glue_exact,
    glue_approximate,
    CompletionByGluing,
    CompletionResult,
    CompletionState,
    DiscretizationFingerprinter,
    Fingerprint,
    CompactnessWitness,
)

from .utils.logging import setup_logger
from .utils.exceptions import (
    GHSpaceError,
    ValidationError,
    ComputationError,
    ConvergenceError,
    ConfigurationError,
    InvariantViolationError,
    ToleranceNotMetError,
)
from .utils.profiling import profile_memory

__all__ = [
    # Version info
    "__version__",
    "__author__",
    # Main API
    "GromovHausdorffAnalyzer",
    # Metric primitives
    "FiniteMetricSpace",
    "IsometricEmbedding",
    "NonemptyCompactSubset",
    # Gromov-Hausdorff core
    "GHConfig",
    "GHSpace",
    "IsometryClass",
    "GromovHausdorffComputer",
    "Coupling",
    "CouplingResult",
    "CandidateCoupling",
    "GlueSpace",
    "glue_exact",
    "glue_approximate",
    "CompletionByGluing",
    "CompletionResult",
    "CompletionState",
    "DiscretizationFingerprinter",
    "Fingerprint",
    "CompactnessWitness",
    # Utilities
    "setup_logger",
    "profile_memory",
    # Exceptions
    "GHSpaceError",
    "ValidationError",
    "ComputationError",
    "ConvergenceError",
    "ConfigurationError",
    "InvariantViolationError",
    "ToleranceNotMetError",
]
