"""Core utilities for Reliafit.

This module provides shared infrastructure used across all estimators:
- errors: Error taxonomy and the partial-convergence warning
- results: Immutable observation, fit and mixture records
- validation: Input checks for sequences and DataFrames
"""

from reliafit.core.errors import (
    ReliafitError,
    InvalidInputError,
    InsufficientDataError,
    SingularFitError,
    ConvergenceError,
    ProfileSearchFailure,
    UnsupportedOperationError,
    PartialConvergenceWarning,
)
from reliafit.core.results import (
    Observation,
    RankedObservation,
    ProbabilityEstimate,
    Coefficients,
    FitResult,
    Subgroup,
    EMIteration,
    MixtureResult,
)
from reliafit.core.validation import (
    validate_observations,
    make_observations,
    validate_input_schema,
)

__all__ = [
    # Errors
    "ReliafitError",
    "InvalidInputError",
    "InsufficientDataError",
    "SingularFitError",
    "ConvergenceError",
    "ProfileSearchFailure",
    "UnsupportedOperationError",
    "PartialConvergenceWarning",
    # Results
    "Observation",
    "RankedObservation",
    "ProbabilityEstimate",
    "Coefficients",
    "FitResult",
    "Subgroup",
    "EMIteration",
    "MixtureResult",
    # Validation
    "validate_observations",
    "make_observations",
    "validate_input_schema",
]
