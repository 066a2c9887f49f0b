"""Rank Estimator: non-parametric failure probabilities with censoring.

Four plotting-position methods are supported:

- ``mr``: Median ranks by Benard's approximation, complete data only.
- ``johnson``: Johnson's adjusted ranks for right-censored data, followed by
  Benard's approximation.
- ``kaplan``: Kaplan-Meier product-limit estimate of F(t).
- ``nelson``: Nelson-Aalen cumulative hazard, F(t) = 1 - exp(-H(t)).

Event and at-risk counts for the product-limit and cumulative-hazard
estimators come from lifelines' event table.
"""

import logging
from typing import Any, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from lifelines.utils import survival_table_from_events

from reliafit.core.errors import InvalidInputError
from reliafit.core.results import Observation, ProbabilityEstimate, RankedObservation
from reliafit.core.validation import make_observations, validate_input_schema

logger = logging.getLogger(__name__)

METHODS = ("mr", "johnson", "kaplan", "nelson")


def benard(rank, n: int):
    """Benard's approximation of the median rank: (j - 0.3) / (n + 0.4)."""
    return (np.asarray(rank, dtype=np.float64) - 0.3) / (n + 0.4)


def _median_ranks(t: np.ndarray, status: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Benard median ranks of a complete sample sorted by characteristic."""
    if not status.all():
        raise InvalidInputError(
            "Median ranks are only defined for complete data; use 'johnson', "
            "'kaplan' or 'nelson' for censored observations"
        )
    n = len(t)
    ranks = np.arange(1, n + 1, dtype=np.float64)
    return ranks, benard(ranks, n)


def _johnson_ranks(t: np.ndarray, status: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Johnson adjusted ranks of the failures of a sorted sample.

    Each failure advances the previous adjusted rank by
    ((n + 1) - previous) / (1 + units at or beyond it), so censored units
    spread their rank mass over the failures that follow them.

    Returns:
        Tuple of (adjusted ranks, Benard probabilities); NaN for censored rows.
    """
    n = len(t)
    ranks = np.full(n, np.nan)
    # Tied characteristics share the count of strictly smaller observations
    n_smaller = np.searchsorted(t, t, side="left")
    previous = 0.0
    for i in range(n):
        if not status[i]:
            continue
        increment = ((n + 1) - previous) / (1 + (n - n_smaller[i]))
        previous = previous + increment
        ranks[i] = previous
    return ranks, benard(ranks, n)


def _event_table(t: np.ndarray, status: np.ndarray) -> pd.DataFrame:
    """lifelines event table restricted to times with at least one failure."""
    table = survival_table_from_events(t, status.astype(int))
    return table[table["observed"] > 0]


def _kaplan_meier(t: np.ndarray, status: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Kaplan-Meier estimate of F at every failure of a sorted sample.

    The plain product limit reaches F = 1 when every unit at the largest
    characteristic fails. In that case the median-rank corrected product is
    used instead; it stays inside (0, 1) and reproduces Benard's
    approximation on complete untied data. The choice depends only on the
    units at the largest characteristic, not on their order.

    Returns:
        Tuple of (Benard-equivalent ranks, probabilities); NaN for censored rows.
    """
    n = len(t)
    table = _event_table(t, status)
    d = table["observed"].to_numpy(dtype=np.float64)
    r = table["at_risk"].to_numpy(dtype=np.float64)

    if status[t == t[-1]].all():
        survival = (n + 0.7) / (n + 0.4) * np.cumprod((r + 0.7 - d) / (r + 0.7))
    else:
        survival = np.cumprod(1.0 - d / r)

    cdf = pd.Series(1.0 - survival, index=table.index.to_numpy(dtype=np.float64))
    probabilities = np.where(status, cdf.reindex(t).to_numpy(), np.nan)
    # Rank equivalent to the estimate under Benard's approximation
    ranks = probabilities * (n + 0.4) + 0.3
    return ranks, probabilities


def _nelson_aalen(t: np.ndarray, status: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Nelson-Aalen estimate F = 1 - exp(-H) at every failure of a sorted sample."""
    table = _event_table(t, status)
    d = table["observed"].to_numpy(dtype=np.float64)
    r = table["at_risk"].to_numpy(dtype=np.float64)

    hazard = pd.Series(np.cumsum(d / r), index=table.index.to_numpy(dtype=np.float64))
    probabilities = np.where(status, -np.expm1(-hazard.reindex(t).to_numpy()), np.nan)
    # Median-rank theory does not apply, so no adjusted rank is reported
    ranks = np.full(len(t), np.nan)
    return ranks, probabilities


_ESTIMATORS = {
    "mr": _median_ranks,
    "johnson": _johnson_ranks,
    "kaplan": _kaplan_meier,
    "nelson": _nelson_aalen,
}


def estimate_probabilities(
    observations: Sequence[Observation],
    method: str = "johnson",
) -> ProbabilityEstimate:
    """Estimate failure probabilities (plotting positions) for lifetime data.

    Observations are sorted ascending by characteristic; equal values keep
    their input order.

    Args:
        observations: Observation records.
        method: One of "mr", "johnson", "kaplan", "nelson".

    Returns:
        ProbabilityEstimate with one RankedObservation per input row. Censored
        rows carry ``probability=None``.

    Raises:
        InvalidInputError: On unknown methods, empty input, a sample without
            failures, or censored data passed to "mr".

    Examples:
        >>> obs = make_observations([100, 200, 300], [1, 0, 1])
        >>> estimate = estimate_probabilities(obs, method="johnson")
        >>> estimate.probabilities
    """
    if method not in _ESTIMATORS:
        raise InvalidInputError(f"Unknown method '{method}'. Use one of {METHODS}.")
    observations = tuple(observations)
    if not observations:
        raise InvalidInputError("At least one observation is required")

    order = np.argsort([o.characteristic for o in observations], kind="stable")
    ordered = [observations[i] for i in order]
    t = np.array([o.characteristic for o in ordered], dtype=np.float64)
    status = np.array([o.event for o in ordered], dtype=bool)
    if not status.any():
        raise InvalidInputError("At least one failure (event=1) is required")

    ranks, probabilities = _ESTIMATORS[method](t, status)
    logger.debug(
        "Estimated %s plotting positions for %d observations (%d failures)",
        method, len(t), int(status.sum()),
    )

    rows = tuple(
        RankedObservation(
            id=o.id,
            characteristic=o.characteristic,
            event=o.event,
            adjusted_rank=None if np.isnan(rank) else float(rank),
            probability=None if np.isnan(prob) else float(prob),
        )
        for o, rank, prob in zip(ordered, ranks, probabilities)
    )
    return ProbabilityEstimate(method=method, observations=rows)


def estimate_cdf(
    characteristics: Sequence[float],
    events: Sequence[Any],
    method: str = "johnson",
    ids: Optional[Sequence[Any]] = None,
) -> ProbabilityEstimate:
    """Sequence-based convenience wrapper around :func:`estimate_probabilities`."""
    return estimate_probabilities(make_observations(characteristics, events, ids), method)


def estimate_probabilities_df(
    df: pd.DataFrame,
    characteristic_col: str,
    event_col: str,
    id_col: Optional[str] = None,
    method: str = "johnson",
) -> ProbabilityEstimate:
    """DataFrame entry point; ids default to the DataFrame index."""
    validate_input_schema(df, characteristic_col, event_col)
    ids = df[id_col].tolist() if id_col is not None else df.index.tolist()
    return estimate_cdf(df[characteristic_col].to_numpy(), df[event_col].to_numpy(), method, ids)
