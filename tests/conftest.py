"""Pytest configuration and fixtures for Reliafit tests."""

import numpy as np
import pytest

from reliafit.statistics.ranks import benard


@pytest.fixture(scope="session")
def johnson_example():
    """Ten units at 10000..100000 with four failures.

    Returns:
        Tuple of (characteristics, events).
    """
    characteristics = np.arange(10000, 100001, 10000, dtype=float)
    events = np.array([0, 1, 1, 0, 0, 0, 1, 0, 1, 0])
    return characteristics, events


@pytest.fixture(scope="session")
def exact_weibull_sample():
    """Complete sample lying exactly on a Weibull(eta=10000, beta=2) plot line.

    Returns:
        Dict with characteristics, probabilities, events, eta and beta.
    """
    eta, beta = 10000.0, 2.0
    p = benard(np.arange(1, 16), 15)
    t = eta * (-np.log1p(-p)) ** (1.0 / beta)
    return {
        "characteristics": t,
        "probabilities": p,
        "events": np.ones(len(t), dtype=int),
        "eta": eta,
        "beta": beta,
    }


@pytest.fixture(scope="session")
def censored_weibull_data():
    """Type-I censored Weibull sample (eta=1000, beta=1.5, censored at 1500).

    Returns:
        Tuple of (characteristics, events) as numpy arrays.
    """
    rng = np.random.default_rng(7)
    t = 1000.0 * rng.weibull(1.5, size=80)
    events = (t <= 1500.0).astype(int)
    return np.minimum(t, 1500.0), events
