"""Confidence bounds for fitted lifetime models.

- Beta-binomial bounds use median-rank theory: the j-th of n ordered
  failures has F(t_j) ~ Beta(j, n - j + 1). They are defined for
  rank-based plotting positions only.
- Fisher-matrix bounds apply the delta method to the covariance of an ML fit.
"""

from typing import Optional, Sequence

import numpy as np
import pandas as pd
from scipy import stats

from reliafit.core.errors import InvalidInputError, UnsupportedOperationError
from reliafit.core.results import FitResult, ProbabilityEstimate

BOUNDS = ("two_sided", "lower", "upper")


def _quantile_levels(conf_level: float, bounds: str):
    if not 0 < conf_level < 1:
        raise InvalidInputError(f"conf_level must be in (0, 1), got {conf_level}")
    if bounds not in BOUNDS:
        raise InvalidInputError(f"Invalid bounds '{bounds}'. Use one of {BOUNDS}.")
    alpha = 1.0 - conf_level
    if bounds == "two_sided":
        return alpha / 2.0, 1.0 - alpha / 2.0
    if bounds == "lower":
        return alpha, None
    return None, 1.0 - alpha


def confint_betabinom(
    estimate: ProbabilityEstimate,
    fit: FitResult,
    conf_level: float = 0.95,
    bounds: str = "two_sided",
) -> pd.DataFrame:
    """Beta-binomial confidence bounds at every failure of the sample.

    Args:
        estimate: Plotting positions from the Rank Estimator.
        fit: Fitted model used to map probability bounds to characteristics.
        conf_level: Confidence level.
        bounds: "two_sided", "lower" or "upper".

    Returns:
        DataFrame with columns: characteristic, probability, prob_lower,
        prob_upper, characteristic_lower, characteristic_upper. One-sided
        requests leave the other side as NaN.

    Raises:
        UnsupportedOperationError: For Nelson-Aalen estimates, to which
            median-rank theory does not apply.
    """
    if estimate.method == "nelson":
        raise UnsupportedOperationError(
            "Beta-binomial confidence bounds are not defined for Nelson-Aalen estimates"
        )
    lower_q, upper_q = _quantile_levels(conf_level, bounds)

    failures = [o for o in estimate.observations if o.probability is not None]
    n = estimate.n
    ranks = np.array([o.adjusted_rank for o in failures], dtype=np.float64)
    a, b = ranks, n - ranks + 1.0

    prob_lower = stats.beta.ppf(lower_q, a, b) if lower_q is not None else np.full(len(ranks), np.nan)
    prob_upper = stats.beta.ppf(upper_q, a, b) if upper_q is not None else np.full(len(ranks), np.nan)

    dist, coefficients = fit.distribution, fit.coefficients
    return pd.DataFrame({
        "characteristic": [o.characteristic for o in failures],
        "probability": [o.probability for o in failures],
        "prob_lower": prob_lower,
        "prob_upper": prob_upper,
        # a lower bound on F maps to an upper bound on the characteristic
        "characteristic_lower": dist.quantile(prob_upper, coefficients) if upper_q is not None else np.nan,
        "characteristic_upper": dist.quantile(prob_lower, coefficients) if lower_q is not None else np.nan,
    })


def confint_fisher(
    fit: FitResult,
    probabilities: Optional[Sequence[float]] = None,
    conf_level: float = 0.95,
    bounds: str = "two_sided",
) -> pd.DataFrame:
    """Fisher-matrix (delta method) bounds on the quantiles of an ML fit.

    Bounds on the log families are computed on the log scale when there is
    no threshold, which keeps them positive.

    Returns:
        DataFrame with columns: probability, characteristic, lower, upper.

    Raises:
        UnsupportedOperationError: If the fit carries no covariance matrix
            (rank regression).
    """
    if fit.covariance is None:
        raise UnsupportedOperationError(
            "Fisher-matrix bounds require a maximum-likelihood fit with a covariance matrix"
        )
    lower_q, upper_q = _quantile_levels(conf_level, bounds)
    if probabilities is None:
        probabilities = np.linspace(0.01, 0.99, 99)
    p = np.asarray(probabilities, dtype=np.float64)
    if np.any((p <= 0) | (p >= 1)):
        raise InvalidInputError("probabilities must lie strictly within (0, 1)")

    dist, coefficients, cov = fit.distribution, fit.coefficients, fit.covariance
    y = dist.quantile_standard(p)
    x = coefficients.mu + coefficients.sigma * y

    if coefficients.threshold is None:
        var = cov[0, 0] + y ** 2 * cov[1, 1] + 2.0 * y * cov[0, 1]
        se = np.sqrt(var)
        lo = x + stats.norm.ppf(lower_q) * se if lower_q is not None else np.full(len(p), np.nan)
        hi = x + stats.norm.ppf(upper_q) * se if upper_q is not None else np.full(len(p), np.nan)
        lower, upper = dist.inverse_transform(lo), dist.inverse_transform(hi)
    else:
        # t_p = gamma + exp(x_p)
        ex = np.exp(x)
        gradient = np.stack([ex, y * ex, np.ones_like(ex)], axis=1)
        se = np.sqrt(np.einsum("ij,jk,ik->i", gradient, cov, gradient))
        t_p = coefficients.threshold + ex
        lower = t_p + stats.norm.ppf(lower_q) * se if lower_q is not None else np.full(len(p), np.nan)
        upper = t_p + stats.norm.ppf(upper_q) * se if upper_q is not None else np.full(len(p), np.nan)

    return pd.DataFrame({
        "probability": p,
        "characteristic": dist.quantile(p, coefficients),
        "lower": lower,
        "upper": upper,
    })
