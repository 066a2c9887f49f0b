"""Mixture separation by the Expectation-Maximization algorithm.

Each component is a lifetime distribution of the same family. Failures
contribute their density and censored units their survival probability, so
the posterior membership respects censoring. The M-step re-estimates every
component by a posterior-weighted maximum-likelihood fit.
"""

import logging
import warnings
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

import numpy as np
from scipy.special import logsumexp

from reliafit.core.errors import InvalidInputError, PartialConvergenceWarning
from reliafit.core.results import Coefficients, EMIteration, MixtureResult, Subgroup
from reliafit.core.validation import make_observations, validate_observations
from reliafit.lifetime.likelihood import fit_ml, solve_ml
from reliafit.statistics.distributions import DistributionLike, DistributionSpec, get_distribution

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EMParams:
    """Settings of the EM strategy.

    Attributes:
        k: Number of components.
        max_iter: Iteration cap; reaching it is reported, not raised.
        tol: Convergence tolerance on the log-likelihood improvement.
        conf_level: Confidence level of the final component fits.
    """
    k: int = 2
    max_iter: int = 100
    tol: float = 1e-6
    conf_level: float = 0.95

    def __post_init__(self) -> None:
        if self.k < 2:
            raise InvalidInputError("k must be at least 2")
        if self.max_iter < 1:
            raise InvalidInputError("max_iter must be at least 1")
        if self.tol <= 0:
            raise InvalidInputError("tol must be positive")


def component_log_likelihood(
    dist: DistributionSpec,
    t: np.ndarray,
    status: np.ndarray,
    coefficients: Coefficients,
) -> np.ndarray:
    """Per-observation log density (failures) or log survival (censored)."""
    out = np.empty(len(t))
    valid = np.ones(len(t), dtype=bool)
    if coefficients.threshold is not None:
        valid = t > coefficients.threshold
        # below the threshold nothing fails and everything survives
        out[~valid & status] = -np.inf
        out[~valid & ~status] = 0.0
    fail = valid & status
    cens = valid & ~status
    with np.errstate(over="ignore"):
        out[fail] = dist.log_pdf(t[fail], coefficients)
        out[cens] = dist.log_sf(t[cens], coefficients)
    return out


def _joint(dist, t, status, coefficients, weights) -> np.ndarray:
    """(n, k) matrix of log(pi_k) + log L_k(observation)."""
    with np.errstate(divide="ignore"):
        log_weights = np.log(np.asarray(weights))
    return np.column_stack([
        component_log_likelihood(dist, t, status, c) + lw
        for c, lw in zip(coefficients, log_weights)
    ])


def _component_weights(dist: DistributionSpec, t: np.ndarray, posteriors: np.ndarray) -> np.ndarray:
    """Posterior weights restricted to the support of each component.

    A threshold component cannot produce failures below its threshold, so
    observations smaller than the smallest member assigned to a component
    (by maximum posterior) get zero weight in that component's fit. Its
    threshold search is then bounded by its own members instead of by the
    whole sample.

    Args:
        dist: Distribution spec shared by the components.
        t: Characteristics.
        posteriors: (n, k) posterior membership probabilities.

    Returns:
        (n, k) weight matrix; the posteriors themselves for families
        without a threshold.
    """
    if not dist.has_threshold:
        return posteriors
    weights = posteriors.copy()
    labels = np.argmax(posteriors, axis=1)
    for j in range(posteriors.shape[1]):
        members = labels == j
        if members.any():
            weights[t < t[members].min(), j] = 0.0
    return weights


def _m_step(
    dist: DistributionSpec,
    t: np.ndarray,
    status: np.ndarray,
    posteriors: np.ndarray,
) -> Tuple[Tuple[Coefficients, ...], Tuple[float, ...]]:
    """Re-estimate every component by a posterior-weighted ML fit.

    Returns:
        Tuple of (coefficients per component, mixing weights). The mixing
        weights are the mean posterior mass of each component.
    """
    weights = _component_weights(dist, t, posteriors)
    coefficients = tuple(
        solve_ml(t, status, dist, weights=weights[:, j]).coefficients
        for j in range(posteriors.shape[1])
    )
    mixing = tuple(float(v) for v in posteriors.mean(axis=0))
    return coefficients, mixing


def em_mixture(
    characteristics: Sequence[float],
    events: Sequence[Any],
    distribution: DistributionLike = "weibull",
    params: Optional[EMParams] = None,
    ids: Optional[Sequence[Any]] = None,
) -> MixtureResult:
    """Separate k lifetime subpopulations with the EM algorithm.

    Initialization splits the sorted sample into k contiguous blocks of
    (nearly) equal size. Components are reported in ascending order of mu.

    Returns:
        MixtureResult with posteriors, mixing weights, the iteration history
        and one subgroup per component (observations assigned to their most
        probable component). ``status`` is "converged" or
        "did_not_fully_converge" when the iteration cap was reached, in which
        case a PartialConvergenceWarning is emitted as well.

    Raises:
        InvalidInputError: If the sample is too small for k components.
        ConvergenceError: If a weighted ML fit fails.
    """
    params = params or EMParams()
    dist = get_distribution(distribution)
    user_obs = make_observations(characteristics, events, ids)
    t, status = validate_observations(characteristics, events)
    n, k = len(t), params.k

    if n < 2 * k:
        raise InvalidInputError(f"At least {2 * k} observations are needed for {k} components")

    order = np.argsort(t, kind="stable")
    posteriors = np.zeros((n, k))
    for j, block in enumerate(np.array_split(order, k)):
        if not status[block].any():
            raise InvalidInputError(
                f"Initial block {j} contains no failures; cannot seed component {j}"
            )
        posteriors[block, j] = 1.0

    coefficients, mixing = _m_step(dist, t, status, posteriors)
    joint = _joint(dist, t, status, coefficients, mixing)
    state = EMIteration(
        iteration=0,
        coefficients=coefficients,
        mixing_weights=mixing,
        log_likelihood=float(logsumexp(joint, axis=1).sum()),
    )
    history: List[EMIteration] = [state]
    run_status = "did_not_fully_converge"

    for iteration in range(1, params.max_iter + 1):
        # E-step
        marginal = logsumexp(joint, axis=1)
        posteriors = np.exp(joint - marginal[:, None])
        # M-step
        coefficients, mixing = _m_step(dist, t, status, posteriors)
        joint = _joint(dist, t, status, coefficients, mixing)
        previous = state
        state = EMIteration(
            iteration=iteration,
            coefficients=coefficients,
            mixing_weights=mixing,
            log_likelihood=float(logsumexp(joint, axis=1).sum()),
        )
        history.append(state)
        logger.debug(
            "EM iteration %d: logL=%.8g weights=%s", iteration, state.log_likelihood, mixing
        )
        if abs(state.log_likelihood - previous.log_likelihood) < params.tol:
            run_status = "converged"
            break

    if run_status != "converged":
        warnings.warn(
            f"EM reached max_iter={params.max_iter} without the log-likelihood "
            f"improvement falling below tol={params.tol}",
            PartialConvergenceWarning,
            stacklevel=2,
        )

    # Posteriors for the final parameters, components ordered by mu
    rank = np.argsort([c.mu for c in state.coefficients], kind="stable")
    joint = joint[:, rank]
    posteriors = np.exp(joint - logsumexp(joint, axis=1)[:, None])
    mixing = tuple(state.mixing_weights[j] for j in rank)
    labels = np.argmax(posteriors, axis=1)
    weights = _component_weights(dist, t, posteriors)

    groups = []
    for j in range(k):
        members = np.flatnonzero(labels == j)
        fit = fit_ml(t, status, dist, conf_level=params.conf_level, weights=weights[:, j])
        groups.append(Subgroup(
            subgroup_id=j,
            indices=tuple(int(i) for i in members),
            observations=tuple(user_obs[i] for i in members),
            fit=fit,
        ))

    return MixtureResult(
        strategy="em",
        distribution=dist,
        groups=tuple(groups),
        status=run_status,
        posteriors=posteriors,
        mixing_weights=mixing,
        log_likelihood=state.log_likelihood,
        history=tuple(history),
    )
