"""Reliafit - Lifetime Distribution Fitting and Mixture Separation.

Reliafit estimates (log-)location-scale lifetime distributions from failure
and censoring data: non-parametric plotting positions, rank regression,
maximum likelihood with threshold profiling, and separation of mixed
failure populations.

Example:
    >>> import reliafit
    >>> t = [10000, 20000, 30000, 40000, 50000, 60000, 70000, 80000, 90000, 100000]
    >>> e = [0, 1, 1, 0, 0, 0, 1, 0, 1, 0]
    >>> obs = reliafit.make_observations(t, e)
    >>> estimate = reliafit.estimate_probabilities(obs, method="johnson")
    >>> rr = reliafit.fit_rank_regression(
    ...     estimate.characteristics, estimate.probabilities, estimate.events, "weibull"
    ... )
    >>> ml = reliafit.fit_ml(t, e, "weibull")
    >>> print(rr.natural, ml.natural, ml.aic)
"""

__version__ = "0.1.0"

# Unified API exports
from reliafit.core import (
    Observation,
    RankedObservation,
    ProbabilityEstimate,
    Coefficients,
    FitResult,
    MixtureResult,
    make_observations,
    ReliafitError,
    InvalidInputError,
    InsufficientDataError,
    SingularFitError,
    ConvergenceError,
    ProfileSearchFailure,
    UnsupportedOperationError,
    PartialConvergenceWarning,
)
from reliafit.statistics import DistributionSpec, get_distribution, estimate_probabilities
from reliafit.lifetime import fit_rank_regression, fit_ml, predict_cdf, predict_quantile
from reliafit.mixture import separate_mixture, SegmentationParams, EMParams

__all__ = [
    "estimate_probabilities",  # Rank Estimator
    "fit_rank_regression",     # Rank Regression Estimator
    "fit_ml",                  # Maximum-Likelihood Estimator
    "predict_cdf",             # F(t) from fitted coefficients
    "predict_quantile",        # t from F(t)
    "separate_mixture",        # Mixture Separator
    "SegmentationParams",
    "EMParams",
    "DistributionSpec",
    "get_distribution",
    "make_observations",
    "Observation",
    "RankedObservation",
    "ProbabilityEstimate",
    "Coefficients",
    "FitResult",
    "MixtureResult",
    "ReliafitError",
    "InvalidInputError",
    "InsufficientDataError",
    "SingularFitError",
    "ConvergenceError",
    "ProfileSearchFailure",
    "UnsupportedOperationError",
    "PartialConvergenceWarning",
]
