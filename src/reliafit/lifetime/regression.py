"""Rank Regression Estimator.

Fits a straight line on the linearized probability plot. The regression is
"x on y": the transformed characteristic x is the response and the
transformed plotting position y = Phi^-1(p) is the regressor, so residuals
are measured horizontally. With x = mu + sigma * y the intercept estimates
mu and the slope estimates sigma.
"""

import logging
from typing import Any, NamedTuple, Optional, Sequence

import numpy as np
from scipy import stats

from reliafit.core.errors import InsufficientDataError, InvalidInputError, SingularFitError
from reliafit.core.results import Coefficients, FitResult, ProbabilityEstimate
from reliafit.statistics.distributions import DistributionLike, get_distribution
from reliafit.statistics.profile import profile_threshold

logger = logging.getLogger(__name__)


class LineFit(NamedTuple):
    """OLS fit of x = intercept + slope * y."""
    intercept: float
    slope: float
    r_squared: float
    residual_ss: float
    se_intercept: Optional[float]
    se_slope: Optional[float]
    df: int


def fit_line(x: np.ndarray, y: np.ndarray) -> LineFit:
    """Ordinary least squares of x on y.

    Raises:
        InsufficientDataError: With fewer than two points.
        SingularFitError: If all x or all y are equal, or the slope is not positive.
    """
    n = len(x)
    if n < 2:
        raise InsufficientDataError(f"Rank regression needs at least 2 failures, got {n}")

    x_mean = x.mean()
    y_mean = y.mean()
    dx = x - x_mean
    dy = y - y_mean
    sxx = float(np.dot(dx, dx))
    syy = float(np.dot(dy, dy))
    if syy == 0.0:
        raise SingularFitError("All plotting positions are equal; the slope is undefined")
    if sxx == 0.0:
        raise SingularFitError("All characteristics are equal; the scale is degenerate")

    sxy = float(np.dot(dx, dy))
    slope = sxy / syy
    if slope <= 0:
        raise SingularFitError(f"Non-positive regression slope {slope:.6g}; scale must be positive")
    intercept = x_mean - slope * y_mean

    residuals = x - (intercept + slope * y)
    residual_ss = float(np.dot(residuals, residuals))
    # Squared correlation between fitted and observed x
    r_squared = min(1.0, sxy * sxy / (sxx * syy))

    df = n - 2
    if df > 0:
        s2 = residual_ss / df
        se_slope = float(np.sqrt(s2 / syy))
        se_intercept = float(np.sqrt(s2 * (1.0 / n + y_mean ** 2 / syy)))
    else:
        se_slope = se_intercept = None

    return LineFit(
        intercept=float(intercept),
        slope=float(slope),
        r_squared=float(r_squared),
        residual_ss=residual_ss,
        se_intercept=se_intercept,
        se_slope=se_slope,
        df=df,
    )


def fit_rank_regression(
    characteristics: Sequence[float],
    probabilities: Sequence[Any],
    events: Sequence[Any],
    distribution: DistributionLike = "weibull",
    conf_level: float = 0.95,
) -> FitResult:
    """Estimate location-scale coefficients by rank regression.

    Args:
        characteristics: Lifetime values.
        probabilities: Plotting positions; None/NaN for censored rows.
        events: Failure indicators; censored rows are excluded from the fit.
        distribution: Family name (e.g. "weibull", "lognormal3") or DistributionSpec.
        conf_level: Confidence level of the t-based coefficient intervals.

    Returns:
        FitResult with R², the x-direction residual sum of squares and
        confidence intervals for mu and sigma (None with only two failures).

    Raises:
        InvalidInputError: On mismatched lengths or probabilities outside (0, 1).
        InsufficientDataError: With fewer than two failures.
        SingularFitError: On degenerate geometry.
        ProfileSearchFailure: If the threshold search does not converge.
    """
    dist = get_distribution(distribution)
    if not 0 < conf_level < 1:
        raise InvalidInputError(f"conf_level must be in (0, 1), got {conf_level}")

    t = np.asarray(characteristics, dtype=np.float64)
    p = np.array([np.nan if v is None else v for v in probabilities], dtype=np.float64)
    status = np.asarray(events).astype(bool)
    if not (len(t) == len(p) == len(status)):
        raise InvalidInputError("characteristics, probabilities and events must have equal length")
    if np.any(t <= 0):
        raise InvalidInputError("characteristics must be strictly positive")

    used = status & np.isfinite(p)
    if np.any((p[used] <= 0) | (p[used] >= 1)):
        raise InvalidInputError("probabilities of failures must lie strictly within (0, 1)")
    n_events = int(used.sum())
    if n_events < 2:
        raise InsufficientDataError(f"Rank regression needs at least 2 failures, got {n_events}")

    t_fail = t[used]
    y = dist.quantile_standard(p[used])

    threshold = None
    if dist.has_threshold:
        outcome = profile_threshold(
            t, lambda gamma: _threshold_objective(dist, t_fail, y, gamma)
        )
        threshold = outcome.threshold
        line = outcome.payload
    else:
        line = fit_line(dist.transform(t_fail), y)

    coefficients = Coefficients(mu=line.intercept, sigma=line.slope, threshold=threshold)
    logger.debug(
        "Rank regression %s: mu=%.6g sigma=%.6g R2=%.6g",
        dist.name, coefficients.mu, coefficients.sigma, line.r_squared,
    )

    return FitResult(
        method="rank_regression",
        distribution=dist,
        coefficients=coefficients,
        natural=dist.to_natural(coefficients),
        confidence_intervals=_line_intervals(line, conf_level),
        conf_level=conf_level,
        n=len(t),
        n_events=n_events,
        r_squared=line.r_squared,
        residual_ss=line.residual_ss,
    )


def fit_rank_regression_estimate(
    estimate: ProbabilityEstimate,
    distribution: DistributionLike = "weibull",
    conf_level: float = 0.95,
) -> FitResult:
    """Rank regression on the output of the Rank Estimator."""
    return fit_rank_regression(
        estimate.characteristics,
        estimate.probabilities,
        estimate.events,
        distribution=distribution,
        conf_level=conf_level,
    )


def _threshold_objective(dist, t_fail: np.ndarray, y: np.ndarray, gamma: float):
    """R² of the plot line for a fixed threshold, with the line as payload."""
    line = fit_line(dist.transform(t_fail, gamma), y)
    return line.r_squared, line


def _line_intervals(line: LineFit, conf_level: float):
    """Student-t intervals for mu and sigma; None without residual degrees of freedom."""
    if line.df <= 0:
        return None
    q = stats.t.ppf(0.5 + conf_level / 2.0, line.df)
    return {
        "mu": (line.intercept - q * line.se_intercept, line.intercept + q * line.se_intercept),
        "sigma": (line.slope - q * line.se_slope, line.slope + q * line.se_slope),
    }
