"""Unified entry point for mixture separation."""

from typing import Any, Optional, Sequence, Union

from reliafit.core.errors import InvalidInputError
from reliafit.core.results import MixtureResult
from reliafit.mixture.em import EMParams, em_mixture
from reliafit.mixture.segmented import SegmentationParams, segment_regression
from reliafit.statistics.distributions import DistributionLike

STRATEGIES = ("segmented", "em")


def separate_mixture(
    characteristics: Sequence[float],
    events: Sequence[Any],
    distribution: DistributionLike = "weibull",
    strategy: str = "segmented",
    params: Optional[Union[SegmentationParams, EMParams]] = None,
    ids: Optional[Sequence[Any]] = None,
) -> MixtureResult:
    """Separate a lifetime sample into subpopulations.

    Args:
        characteristics: Lifetime values.
        events: Failure indicators (True/1 = failure, False/0 = censored).
        distribution: Family fitted to every subgroup.
        strategy: "segmented" (breakpoint search on rank regression) or
            "em" (Expectation-Maximization on maximum likelihood).
        params: SegmentationParams or EMParams matching the strategy; defaults
            are used when omitted.
        ids: Optional identifiers carried into the subgroup observations.

    Returns:
        MixtureResult.

    Raises:
        InvalidInputError: On an unknown strategy or mismatched params.

    Examples:
        >>> result = separate_mixture(t, e, "weibull", strategy="em", params=EMParams(k=2))
        >>> result.assignments()
    """
    if strategy == "segmented":
        if params is not None and not isinstance(params, SegmentationParams):
            raise InvalidInputError("The segmented strategy expects SegmentationParams")
        return segment_regression(characteristics, events, distribution, params, ids)
    if strategy == "em":
        if params is not None and not isinstance(params, EMParams):
            raise InvalidInputError("The em strategy expects EMParams")
        return em_mixture(characteristics, events, distribution, params, ids)
    raise InvalidInputError(f"Unknown strategy '{strategy}'. Use one of {STRATEGIES}.")
