"""Maximum-Likelihood Estimator for (log-)location-scale lifetime families.

With z = (x - mu) / sigma, failures contribute log f(z) - log(sigma) (minus
log(t - gamma) for log families) and censored units contribute log S(z).
The two-parameter estimate is found by root finding on the score equations:

1. For fixed sigma, d l / d mu is monotone in mu for every supported family,
   so mu_hat(sigma) is bracketed and solved with Brent's method.
2. The profile score d l / d sigma evaluated at (mu_hat(sigma), sigma) is
   positive for small sigma and negative for large sigma; its root is
   bracketed on log(sigma) and solved the same way.

Threshold families profile the log-likelihood over gamma with
:func:`reliafit.statistics.profile.profile_threshold`.
"""

import logging
from typing import Any, NamedTuple, Optional, Sequence

import numpy as np
from scipy import optimize, stats

from reliafit.core.errors import (
    ConvergenceError,
    InsufficientDataError,
    InvalidInputError,
    SingularFitError,
)
from reliafit.core.results import Coefficients, FitResult
from reliafit.core.validation import validate_observations
from reliafit.statistics.distributions import (
    DistributionLike,
    DistributionSpec,
    get_distribution,
)
from reliafit.statistics.profile import profile_threshold

logger = logging.getLogger(__name__)

MAX_BRACKET_EXPANSIONS = 60
MAX_ROOT_ITERATIONS = 200
# relative to the largest case weight
NEGLIGIBLE_WEIGHT = 1e-8


class _Sample(NamedTuple):
    """Transformed, positively weighted sample for a fixed threshold."""
    x: np.ndarray
    log_jacobian: np.ndarray
    failed: np.ndarray
    weights: np.ndarray


class MLSolution(NamedTuple):
    """Point estimate returned by :func:`solve_ml`."""
    coefficients: Coefficients
    log_likelihood: float


def _prepare(
    dist: DistributionSpec,
    t: np.ndarray,
    status: np.ndarray,
    weights: np.ndarray,
    threshold: Optional[float] = None,
) -> _Sample:
    """Drop zero-weight rows and transform the rest to the x scale."""
    keep = weights > 0
    t, status, weights = t[keep], status[keep], weights[keep]
    x = dist.transform(t, threshold)
    log_jacobian = x if dist.is_log else np.zeros_like(x)
    return _Sample(x=x, log_jacobian=log_jacobian, failed=status, weights=weights)


def _log_likelihood(dist: DistributionSpec, sample: _Sample, mu: float, sigma: float) -> float:
    """Weighted censoring-aware log-likelihood of a prepared sample."""
    std = dist.standard
    z = (sample.x - mu) / sigma
    f, w = sample.failed, sample.weights
    with np.errstate(over="ignore"):
        ll_fail = std.logpdf(z[f]) - np.log(sigma) - sample.log_jacobian[f]
        ll_cens = std.logsf(z[~f])
    return float(np.dot(w[f], ll_fail) + np.dot(w[~f], ll_cens))


def _score(dist: DistributionSpec, sample: _Sample, mu: float, sigma: float) -> np.ndarray:
    """Gradient of the log-likelihood with respect to (mu, sigma)."""
    std = dist.standard
    z = (sample.x - mu) / sigma
    f, w = sample.failed, sample.weights
    with np.errstate(over="ignore", invalid="ignore"):
        g = std.dlogpdf(z[f])
        h = std.dlogsf(z[~f])
        d_mu = -(np.dot(w[f], g) + np.dot(w[~f], h)) / sigma
        d_sigma = -(np.dot(w[f], z[f] * g + 1.0) + np.dot(w[~f], z[~f] * h)) / sigma
    return np.array([d_mu, d_sigma])


def _brent(fun, lo: float, hi: float, what: str, xtol: float = 1e-12) -> float:
    """Root of ``fun`` on a sign-changing bracket, as a ConvergenceError on failure."""
    try:
        root, info = optimize.brentq(
            fun, lo, hi, xtol=xtol, maxiter=MAX_ROOT_ITERATIONS, full_output=True, disp=False
        )
    except ValueError as exc:
        raise ConvergenceError(f"Failed to solve the score equation for {what}: {exc}") from exc
    if not info.converged:
        raise ConvergenceError(
            f"Score equation for {what} did not converge within {MAX_ROOT_ITERATIONS} iterations"
        )
    return float(root)


def _solve_mu(dist: DistributionSpec, sample: _Sample, sigma: float) -> float:
    """Location estimate mu_hat(sigma) for a fixed scale.

    Args:
        dist: Distribution spec.
        sample: Transformed sample.
        sigma: Fixed scale parameter.

    Returns:
        Root of d l / d mu. The bracket starts at the data range widened by
        sigma and is expanded geometrically on either side.

    Raises:
        ConvergenceError: If no bracket is found within MAX_BRACKET_EXPANSIONS.
    """
    def score_mu(mu: float) -> float:
        return float(_score(dist, sample, mu, sigma)[0])

    width = float(sample.x.max() - sample.x.min()) + sigma
    lo = float(sample.x.min()) - sigma
    hi = float(sample.x.max()) + sigma
    # score_mu decreases in mu: positive to the left of the root
    for _ in range(MAX_BRACKET_EXPANSIONS):
        if score_mu(lo) > 0:
            break
        lo -= width
        width *= 2.0
    else:
        raise ConvergenceError(f"Could not bracket the location parameter (sigma={sigma:.6g})")
    width = float(sample.x.max() - sample.x.min()) + sigma
    for _ in range(MAX_BRACKET_EXPANSIONS):
        if score_mu(hi) < 0:
            break
        hi += width
        width *= 2.0
    else:
        raise ConvergenceError(f"Could not bracket the location parameter (sigma={sigma:.6g})")
    return _brent(score_mu, lo, hi, "the location parameter", xtol=1e-9 * sigma)


def _initial_sigma(sample: _Sample) -> float:
    """Weighted spread of the failures, used to centre the scale bracket."""
    x = sample.x[sample.failed]
    w = sample.weights[sample.failed]
    mean = np.average(x, weights=w)
    spread = float(np.sqrt(np.average((x - mean) ** 2, weights=w)))
    if spread > 0:
        return spread
    spread = float(np.std(sample.x))
    return spread if spread > 0 else max(abs(float(mean)) * 1e-3, 1e-6)


def _solve_two_parameter(dist: DistributionSpec, sample: _Sample) -> MLSolution:
    """Maximum-likelihood (mu, sigma) for a fixed threshold.

    Solves the profile score d l_p / d log(sigma) = 0, where every evaluation
    re-solves mu_hat(sigma) with :func:`_solve_mu`.

    Raises:
        InsufficientDataError: If no failure carries a positive weight.
        ConvergenceError: If the scale cannot be bracketed, including the case
            where the profile score stays negative down to the scale floor.
    """
    if not np.any(sample.failed):
        raise InsufficientDataError("Maximum likelihood needs at least one weighted failure")

    def profile_score(log_sigma: float) -> float:
        sigma = float(np.exp(log_sigma))
        mu = _solve_mu(dist, sample, sigma)
        # d l_p / d log(sigma) has the sign of d l / d sigma
        return float(_score(dist, sample, mu, sigma)[1]) * sigma

    start = np.log(_initial_sigma(sample))
    lo, hi = start - np.log(2.0), start + np.log(2.0)
    # below this scale the location root is no longer resolvable in float64
    floor = np.log(1e-10 * max(float(np.abs(sample.x).max()), 1.0))
    for _ in range(MAX_BRACKET_EXPANSIONS):
        if lo < floor:
            raise ConvergenceError("Profile score stays negative: the scale parameter tends to zero")
        if profile_score(lo) > 0:
            break
        lo -= np.log(4.0)
    else:
        raise ConvergenceError("Could not bracket the scale parameter from below")
    for _ in range(MAX_BRACKET_EXPANSIONS):
        if profile_score(hi) < 0:
            break
        hi += np.log(4.0)
    else:
        raise ConvergenceError("Could not bracket the scale parameter from above")

    log_sigma = _brent(profile_score, lo, hi, "the scale parameter")
    sigma = float(np.exp(log_sigma))
    mu = _solve_mu(dist, sample, sigma)
    return MLSolution(
        coefficients=Coefficients(mu=mu, sigma=sigma),
        log_likelihood=_log_likelihood(dist, sample, mu, sigma),
    )


def _validate_weights(weights: Optional[Sequence[float]], n: int) -> np.ndarray:
    """Case weights as an array of length n; unit weights when omitted."""
    if weights is None:
        return np.ones(n)
    w = np.asarray(weights, dtype=np.float64)
    if w.shape != (n,):
        raise InvalidInputError(f"weights must have length {n}, got shape {w.shape}")
    if not np.all(np.isfinite(w)) or np.any(w < 0):
        raise InvalidInputError("weights must be finite and non-negative")
    return w


def _support_weights(dist: DistributionSpec, w: np.ndarray) -> np.ndarray:
    """Zero the negligible weights of a threshold fit.

    The threshold must stay below every row that enters the likelihood, so a
    row carrying a vanishing weight would otherwise cap the threshold search.
    """
    if not dist.has_threshold or not np.any(w > 0):
        return w
    return np.where(w > NEGLIGIBLE_WEIGHT * w.max(), w, 0.0)


def solve_ml(
    characteristics: Sequence[float],
    events: Sequence[Any],
    distribution: DistributionLike = "weibull",
    weights: Optional[Sequence[float]] = None,
) -> MLSolution:
    """Maximum-likelihood point estimate without the information matrix.

    Used directly by iterative callers such as the EM M-step. For threshold
    families rows whose weight is negligible next to the largest weight are
    left out, so the threshold is searched below the rows that matter.
    """
    dist = get_distribution(distribution)
    t, status = validate_observations(characteristics, events)
    w = _validate_weights(weights, len(t))

    if not dist.has_threshold:
        return _solve_two_parameter(dist, _prepare(dist, t, status, w))

    w = _support_weights(dist, w)

    def objective(gamma: float):
        solution = _solve_two_parameter(dist, _prepare(dist, t, status, w, gamma))
        return solution.log_likelihood, solution

    outcome = profile_threshold(t[w > 0], objective)
    inner = outcome.payload.coefficients
    return MLSolution(
        coefficients=Coefficients(mu=inner.mu, sigma=inner.sigma, threshold=outcome.threshold),
        log_likelihood=outcome.score,
    )


def log_likelihood(
    characteristics: Sequence[float],
    events: Sequence[Any],
    coefficients: Coefficients,
    distribution: DistributionLike = "weibull",
    weights: Optional[Sequence[float]] = None,
) -> float:
    """Censoring-aware log-likelihood of lifetime data at given coefficients."""
    dist = get_distribution(distribution)
    t, status = validate_observations(characteristics, events, require_failure=False)
    w = _validate_weights(weights, len(t))
    sample = _prepare(dist, t, status, w, coefficients.threshold)
    return _log_likelihood(dist, sample, coefficients.mu, coefficients.sigma)


def _numeric_hessian(fun, theta: np.ndarray, steps: np.ndarray) -> np.ndarray:
    k = len(theta)
    hessian = np.empty((k, k))
    f0 = fun(theta)
    for i in range(k):
        ei = np.zeros(k)
        ei[i] = steps[i]
        hessian[i, i] = (fun(theta + ei) - 2.0 * f0 + fun(theta - ei)) / steps[i] ** 2
        for j in range(i + 1, k):
            ej = np.zeros(k)
            ej[j] = steps[j]
            value = (
                fun(theta + ei + ej) - fun(theta + ei - ej)
                - fun(theta - ei + ej) + fun(theta - ei - ej)
            ) / (4.0 * steps[i] * steps[j])
            hessian[i, j] = hessian[j, i] = value
    return hessian


def _covariance(
    dist: DistributionSpec,
    t: np.ndarray,
    status: np.ndarray,
    w: np.ndarray,
    coefficients: Coefficients,
) -> np.ndarray:
    """Inverse of the observed information matrix."""
    sigma = coefficients.sigma
    if dist.has_threshold:
        t_min = float(t[w > 0].min())
        theta = np.array([coefficients.mu, sigma, coefficients.threshold])
        steps = np.array([1e-3 * sigma, 1e-3 * sigma, 1e-3 * (t_min - coefficients.threshold)])

        def fun(params: np.ndarray) -> float:
            sample = _prepare(dist, t, status, w, params[2])
            return _log_likelihood(dist, sample, params[0], params[1])
    else:
        sample = _prepare(dist, t, status, w)
        theta = np.array([coefficients.mu, sigma])
        steps = np.array([1e-3 * sigma, 1e-3 * sigma])

        def fun(params: np.ndarray) -> float:
            return _log_likelihood(dist, sample, params[0], params[1])

    information = -_numeric_hessian(fun, theta, steps)
    try:
        covariance = np.linalg.inv(information)
    except np.linalg.LinAlgError as exc:
        raise SingularFitError("Observed information matrix is singular") from exc
    if not np.all(np.isfinite(covariance)) or np.any(np.diag(covariance) <= 0):
        raise SingularFitError("Observed information matrix is not positive definite")
    return covariance


def _wald_intervals(coefficients: Coefficients, covariance: np.ndarray, conf_level: float):
    """Normal-approximation intervals; sigma is bounded on the log scale."""
    q = stats.norm.ppf(0.5 + conf_level / 2.0)
    se = np.sqrt(np.diag(covariance))
    mu, sigma = coefficients.mu, coefficients.sigma
    # sigma bounds on the log scale keep them positive
    factor = float(np.exp(q * se[1] / sigma))
    intervals = {
        "mu": (float(mu - q * se[0]), float(mu + q * se[0])),
        "sigma": (sigma / factor, sigma * factor),
    }
    if coefficients.threshold is not None:
        gamma = coefficients.threshold
        intervals["threshold"] = (float(gamma - q * se[2]), float(gamma + q * se[2]))
    return intervals


def fit_ml(
    characteristics: Sequence[float],
    events: Sequence[Any],
    distribution: DistributionLike = "weibull",
    conf_level: float = 0.95,
    weights: Optional[Sequence[float]] = None,
) -> FitResult:
    """Estimate location-scale coefficients by maximum likelihood.

    Args:
        characteristics: Lifetime values.
        events: Failure indicators (True/1 = failure, False/0 = censored).
        distribution: Family name (e.g. "weibull", "lognormal3") or DistributionSpec.
        conf_level: Confidence level of the Wald intervals.
        weights: Optional non-negative case weights (multiplicative in the
            log-likelihood); zero-weight rows are ignored.

    Returns:
        FitResult with log-likelihood, AIC, BIC, covariance matrix and
        confidence intervals.

    Raises:
        InvalidInputError: On malformed data or weights.
        ConvergenceError: If a score equation cannot be bracketed or solved.
        ProfileSearchFailure: If the threshold profile has no usable optimum.
        SingularFitError: If the observed information matrix cannot be inverted.

    Examples:
        >>> fit = fit_ml([55, 187, 216, 240, 244, 335, 361, 373, 375, 386],
        ...              [1, 1, 1, 1, 1, 0, 1, 1, 0, 1], "weibull")
        >>> fit.natural["beta"]
    """
    dist = get_distribution(distribution)
    if not 0 < conf_level < 1:
        raise InvalidInputError(f"conf_level must be in (0, 1), got {conf_level}")
    t, status = validate_observations(characteristics, events)
    w = _validate_weights(weights, len(t))

    w_fit = _support_weights(dist, w)
    solution = solve_ml(t, status, dist, weights=w_fit)
    coefficients = solution.coefficients
    covariance = _covariance(dist, t, status, w_fit, coefficients)

    k = dist.n_params
    n_eff = float(w.sum())
    ll = solution.log_likelihood
    logger.debug(
        "ML %s: mu=%.6g sigma=%.6g threshold=%s logL=%.6g",
        dist.name, coefficients.mu, coefficients.sigma, coefficients.threshold, ll,
    )

    return FitResult(
        method="maximum_likelihood",
        distribution=dist,
        coefficients=coefficients,
        natural=dist.to_natural(coefficients),
        confidence_intervals=_wald_intervals(coefficients, covariance, conf_level),
        conf_level=conf_level,
        n=n_eff if weights is not None else len(t),
        n_events=float(w[status].sum()) if weights is not None else int(status.sum()),
        log_likelihood=ll,
        aic=-2.0 * ll + 2.0 * k,
        bic=-2.0 * ll + k * np.log(n_eff),
        covariance=covariance,
    )
