"""Statistics module for Reliafit.

This module provides the pure mathematical building blocks that the
estimators are composed from: the distribution lookup table, the
non-parametric rank estimators and the threshold profiling search.
"""

from reliafit.statistics.distributions import DistributionSpec, get_distribution
from reliafit.statistics.ranks import (
    estimate_probabilities,
    estimate_cdf,
    estimate_probabilities_df,
)
from reliafit.statistics.profile import ProfileOutcome, profile_threshold

__all__ = [
    "DistributionSpec",
    "get_distribution",
    "estimate_probabilities",
    "estimate_cdf",
    "estimate_probabilities_df",
    "ProfileOutcome",
    "profile_threshold",
]
