"""Synthetic data generators for lifetime analysis."""

from typing import Optional, Sequence

import numpy as np
import pandas as pd

from reliafit.core.errors import InvalidInputError
from reliafit.core.results import Coefficients
from reliafit.statistics.distributions import DistributionLike, get_distribution


def generate_lifetime_data(
    n_samples: int = 100,
    distribution: DistributionLike = "weibull",
    mu: float = np.log(10000.0),
    sigma: float = 0.5,
    threshold: Optional[float] = None,
    censoring_time: Optional[float] = None,
    seed: Optional[int] = None,
) -> pd.DataFrame:
    """Generate synthetic lifetime data for testing and benchmarking.

    Lifetimes are drawn by inverting the distribution's CDF at uniform
    random numbers. With ``censoring_time`` set, units still alive at that
    time are Type-I censored at it. The location families (normal, logistic,
    sev) are truncated at zero, so every characteristic is positive.

    Args:
        n_samples: Number of units. Default is 100.
        distribution: Family name or DistributionSpec. Default is "weibull".
        mu: Location parameter (log scale for log families). Default is log(10000).
        sigma: Scale parameter. Default is 0.5 (Weibull beta = 2).
        threshold: Threshold for threshold families.
        censoring_time: Type-I censoring time. Default None (complete data).
        seed: Random seed for reproducibility. Default is None.

    Returns:
        DataFrame with columns:
            - id (string): Unique identifier
            - characteristic (float): Lifetime or censoring time
            - event (int): 1 if failed, 0 if censored

    Examples:
        >>> df = generate_lifetime_data(n_samples=50, censoring_time=12000, seed=1)
        >>> df["event"].mean()
    """
    dist = get_distribution(distribution)
    if n_samples < 1:
        raise InvalidInputError("n_samples must be positive")
    if dist.has_threshold and threshold is None:
        raise InvalidInputError(f"'{dist.name}' requires a threshold")

    rng = np.random.default_rng(seed)
    coefficients = Coefficients(mu=mu, sigma=sigma, threshold=threshold if dist.has_threshold else None)
    # probability mass below zero, which only location families carry
    lower = 0.0 if dist.is_log else float(dist.cdf_standard(-mu / sigma))
    u = lower + (1.0 - lower) * rng.uniform(size=n_samples)
    lifetimes = dist.quantile(u, coefficients)

    if censoring_time is not None:
        events = (lifetimes <= censoring_time).astype(np.int64)
        lifetimes = np.minimum(lifetimes, censoring_time)
    else:
        events = np.ones(n_samples, dtype=np.int64)

    return pd.DataFrame({
        "id": [f"unit_{i:06d}" for i in range(n_samples)],
        "characteristic": lifetimes.astype(np.float64),
        "event": events,
    })


def generate_mixture_data(
    n_samples: Sequence[int],
    components: Sequence[Coefficients],
    distribution: DistributionLike = "weibull",
    censoring_time: Optional[float] = None,
    seed: Optional[int] = None,
) -> pd.DataFrame:
    """Generate a sample drawn from several subpopulations.

    Returns:
        DataFrame with columns id, characteristic, event and component (the
        index of the generating subpopulation).
    """
    if len(n_samples) != len(components):
        raise InvalidInputError("n_samples and components must have equal length")
    dist = get_distribution(distribution)
    rng = np.random.default_rng(seed)

    frames = []
    for k, (size, coefficients) in enumerate(zip(n_samples, components)):
        frame = generate_lifetime_data(
            n_samples=size,
            distribution=dist,
            mu=coefficients.mu,
            sigma=coefficients.sigma,
            threshold=coefficients.threshold,
            censoring_time=censoring_time,
            seed=int(rng.integers(0, 2 ** 31 - 1)),
        )
        frame["component"] = k
        frames.append(frame)

    df = pd.concat(frames, ignore_index=True)
    df["id"] = [f"unit_{i:06d}" for i in range(len(df))]
    return df
