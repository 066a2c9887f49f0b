"""Threshold profiling shared by rank regression and maximum likelihood.

The threshold (gamma) of a log-location-scale family is estimated by an
outer one-dimensional search that repeatedly calls an inner two-parameter
fit on ``t - gamma``. The search runs on ``log(min(t) - gamma)`` so that
candidates close to the smallest observation and far below it are both
reachable: a coarse log-spaced grid locates the best region, then a bounded
Brent search refines it between the neighbouring grid nodes.
"""

import logging
from typing import Any, Callable, NamedTuple, Sequence, Tuple

import numpy as np
from scipy import optimize

from reliafit.core.errors import InvalidInputError, ProfileSearchFailure, ReliafitError

logger = logging.getLogger(__name__)

Objective = Callable[[float], Tuple[float, Any]]


class ProfileOutcome(NamedTuple):
    """Best threshold found by :func:`profile_threshold`."""
    threshold: float
    score: float
    payload: Any
    evaluations: int


def profile_threshold(
    characteristics: Sequence[float],
    objective: Objective,
    n_grid: int = 60,
    max_iter: int = 200,
    xatol: float = 1e-7,
) -> ProfileOutcome:
    """Maximize ``objective(gamma)`` over gamma < min(characteristics).

    Args:
        characteristics: Lifetime values; only their range is used.
        objective: Inner fit returning ``(score, payload)`` for a fixed threshold,
            e.g. (R², fit) or (log-likelihood, fit). Candidates whose inner fit
            raises a ReliafitError are excluded from the search.
        n_grid: Number of coarse grid nodes.
        max_iter: Iteration cap of the bounded refinement.
        xatol: Absolute tolerance of the refinement on log(min(t) - gamma).

    Returns:
        ProfileOutcome with the best threshold, its score and inner payload.

    Raises:
        ProfileSearchFailure: If no candidate yields a finite score, the optimum
            lies on the edge of the searched range or the refinement does not
            converge within ``max_iter`` iterations.
    """
    t = np.asarray(characteristics, dtype=np.float64)
    if len(t) == 0:
        raise InvalidInputError("At least one characteristic is required")
    if n_grid < 3:
        raise InvalidInputError("n_grid must be at least 3")

    t_min, t_max = float(t.min()), float(t.max())
    span = t_max - t_min if t_max > t_min else abs(t_min)
    # offsets delta = t_min - gamma, from just below t_min to far below zero
    log_deltas = np.linspace(np.log(span * 1e-6), np.log(10.0 * max(abs(t_max), span)), n_grid)

    evaluations = 0

    def evaluate(log_delta: float) -> Tuple[float, Any]:
        nonlocal evaluations
        evaluations += 1
        gamma = t_min - float(np.exp(log_delta))
        try:
            score, payload = objective(gamma)
        except ReliafitError as exc:
            logger.debug("Inner fit failed at threshold %.6g: %s", gamma, exc)
            return -np.inf, None
        if not np.isfinite(score):
            return -np.inf, None
        return float(score), payload

    grid = [evaluate(s) for s in log_deltas]
    scores = np.array([g[0] for g in grid])
    if not np.any(np.isfinite(scores)):
        raise ProfileSearchFailure("No threshold candidate produced a valid inner fit")

    best = int(np.argmax(scores))
    if best in (0, n_grid - 1):
        side = "smallest characteristic" if best == 0 else "lower search bound"
        raise ProfileSearchFailure(
            f"Threshold profile has no interior optimum (maximum at the {side}, "
            f"gamma={t_min - np.exp(log_deltas[best]):.6g})"
        )

    cache = {}

    def negative(log_delta: float) -> float:
        if log_delta not in cache:
            cache[log_delta] = evaluate(log_delta)
        return -cache[log_delta][0]

    result = optimize.minimize_scalar(
        negative,
        bounds=(log_deltas[best - 1], log_deltas[best + 1]),
        method="bounded",
        options={"maxiter": max_iter, "xatol": xatol},
    )
    if not result.success:
        raise ProfileSearchFailure(
            f"Threshold refinement did not converge within {max_iter} iterations: {result.message}"
        )

    refined_score, refined_payload = cache.get(result.x) or evaluate(result.x)
    if refined_score >= scores[best]:
        log_delta, score, payload = result.x, refined_score, refined_payload
    else:
        log_delta, score, payload = log_deltas[best], scores[best], grid[best][1]

    threshold = t_min - float(np.exp(log_delta))
    logger.debug(
        "Threshold profile converged at gamma=%.6g (score=%.6g, %d evaluations)",
        threshold, score, evaluations,
    )
    return ProfileOutcome(threshold=threshold, score=float(score), payload=payload, evaluations=evaluations)
