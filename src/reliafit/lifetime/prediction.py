"""Model predictions from fitted coefficients."""

from typing import Sequence

import numpy as np

from reliafit.core.errors import InvalidInputError
from reliafit.core.results import Coefficients
from reliafit.statistics.distributions import DistributionLike, get_distribution


def _check_coefficients(dist, coefficients: Coefficients) -> None:
    if coefficients.sigma <= 0:
        raise InvalidInputError(f"sigma must be positive, got {coefficients.sigma}")
    if dist.has_threshold and coefficients.threshold is None:
        raise InvalidInputError(f"'{dist.name}' requires a threshold coefficient")


def predict_cdf(
    quantiles: Sequence[float],
    coefficients: Coefficients,
    distribution: DistributionLike = "weibull",
) -> np.ndarray:
    """Failure probability F(t) at the given characteristics.

    Characteristics at or below the threshold of a log family have F = 0.
    """
    dist = get_distribution(distribution)
    _check_coefficients(dist, coefficients)
    return dist.cdf(np.asarray(quantiles, dtype=np.float64), coefficients)


def predict_quantile(
    probabilities: Sequence[float],
    coefficients: Coefficients,
    distribution: DistributionLike = "weibull",
) -> np.ndarray:
    """Characteristic t with F(t) = p; the inverse of :func:`predict_cdf`."""
    dist = get_distribution(distribution)
    _check_coefficients(dist, coefficients)
    p = np.asarray(probabilities, dtype=np.float64)
    if np.any((p <= 0) | (p >= 1)):
        raise InvalidInputError("probabilities must lie strictly within (0, 1)")
    return dist.quantile(p, coefficients)
