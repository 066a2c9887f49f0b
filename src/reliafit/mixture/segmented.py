"""Mixture separation by segmented rank regression.

The sample is rank-estimated once and sorted by characteristic. Every
admissible breakpoint k splits the sorted sample into a left part [0, k) and
a right part [k, n); both parts are rank-regressed independently on the
common plotting positions and the breakpoint with the smallest total
x-direction residual sum of squares wins. The search is exhaustive, so the
same input always yields the same breakpoint (the first of equal minima).
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

import numpy as np

from reliafit.core.errors import InvalidInputError, SingularFitError
from reliafit.core.results import MixtureResult, Observation, Subgroup
from reliafit.core.validation import make_observations
from reliafit.lifetime.regression import fit_line, fit_rank_regression
from reliafit.statistics.distributions import DistributionLike, DistributionSpec, get_distribution
from reliafit.statistics.ranks import METHODS, estimate_probabilities

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SegmentationParams:
    """Settings of the segmented-regression strategy.

    Attributes:
        method: Rank estimator providing the plotting positions.
        min_failures: Minimum number of failures on each side of a breakpoint.
        conf_level: Confidence level of the subgroup fits.
    """
    method: str = "johnson"
    min_failures: int = 3
    conf_level: float = 0.95

    def __post_init__(self) -> None:
        if self.method not in METHODS:
            raise InvalidInputError(f"Unknown method '{self.method}'. Use one of {METHODS}.")
        if self.min_failures < 2:
            raise InvalidInputError("min_failures must be at least 2")


def _segment_ssr(x: np.ndarray, y: np.ndarray) -> float:
    """x-direction residual sum of squares of one segment."""
    return fit_line(x, y).residual_ss


def segment_regression(
    characteristics: Sequence[float],
    events: Sequence[Any],
    distribution: DistributionLike = "weibull",
    params: Optional[SegmentationParams] = None,
    ids: Optional[Sequence[Any]] = None,
) -> MixtureResult:
    """Split a sample into two subgroups at the best regression breakpoint.

    Breakpoints never separate equal characteristics. Threshold families are
    segmented on their two-parameter counterpart; the subgroup fits then
    estimate the threshold per subgroup.

    Returns:
        MixtureResult with two subgroups and ``breakpoint`` set, or a single
        subgroup with ``status="single_group"`` when no breakpoint leaves
        ``min_failures`` failures on both sides.
    """
    params = params or SegmentationParams()
    dist = get_distribution(distribution)
    base = DistributionSpec(family=dist.family)

    user_obs = make_observations(characteristics, events, ids)
    # positional ids keep track of the input order through the sort
    positional = tuple(
        Observation(id=i, characteristic=o.characteristic, event=o.event)
        for i, o in enumerate(user_obs)
    )
    estimate = estimate_probabilities(positional, method=params.method)
    order = np.array([o.id for o in estimate.observations], dtype=int)
    t = estimate.characteristics
    status = estimate.events
    p = estimate.probabilities
    n = len(t)

    used = status & np.isfinite(p)
    x = base.transform(t)
    y = np.where(used, base.quantile_standard(np.where(used, p, 0.5)), np.nan)
    failures_before = np.concatenate([[0], np.cumsum(used)])

    best_k, best_ssr = None, np.inf
    for k in range(1, n):
        if t[k - 1] == t[k]:
            continue
        left_failures = failures_before[k]
        right_failures = failures_before[n] - left_failures
        if left_failures < params.min_failures or right_failures < params.min_failures:
            continue
        left, right = used.copy(), used.copy()
        left[k:] = False
        right[:k] = False
        try:
            total = _segment_ssr(x[left], y[left]) + _segment_ssr(x[right], y[right])
        except SingularFitError:
            continue
        if total < best_ssr:
            best_k, best_ssr = k, total

    if best_k is None:
        logger.debug("No admissible breakpoint among %d observations", n)
        fit = fit_rank_regression(t, p, status, dist, conf_level=params.conf_level)
        group = Subgroup(
            subgroup_id=0,
            indices=tuple(int(i) for i in order),
            observations=tuple(user_obs[i] for i in order),
            fit=fit,
        )
        return MixtureResult(
            strategy="segmented", distribution=dist, groups=(group,), status="single_group"
        )

    logger.debug("Selected breakpoint %d of %d (total SSR=%.6g)", best_k, n, best_ssr)
    groups = []
    for gid, part in enumerate((slice(0, best_k), slice(best_k, n))):
        fit = fit_rank_regression(
            t[part], p[part], status[part], dist, conf_level=params.conf_level
        )
        members = order[part]
        groups.append(Subgroup(
            subgroup_id=gid,
            indices=tuple(int(i) for i in members),
            observations=tuple(user_obs[i] for i in members),
            fit=fit,
        ))

    return MixtureResult(
        strategy="segmented",
        distribution=dist,
        groups=tuple(groups),
        status="converged",
        breakpoint=best_k,
    )
