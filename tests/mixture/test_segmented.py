"""Tests for mixture separation by segmented regression."""

import numpy as np
import pytest

from reliafit.core import InvalidInputError
from reliafit.lifetime import fit_rank_regression
from reliafit.mixture import SegmentationParams, segment_regression, separate_mixture
from reliafit.statistics.ranks import benard


@pytest.fixture
def kinked_sample():
    """Twenty failures on two Weibull plot lines joined at the tenth unit.

    Returns:
        Tuple of (characteristics, events, probabilities).
    """
    n = 20
    p = benard(np.arange(1, n + 1), n)
    y = np.log(-np.log1p(-p))
    x = np.empty(n)
    x[:10] = np.log(1000.0) + 0.2 * y[:10]
    x[10:] = x[9] + 0.3 + 1.0 * (y[10:] - y[9])
    return np.exp(x), np.ones(n, dtype=int), p


class TestSegmentRegression:
    """Tests for the breakpoint search."""

    def test_breakpoint_found_at_kink(self, kinked_sample):
        """Test that the split lands where the plot line changes slope."""
        t, events, p = kinked_sample

        result = segment_regression(t, events, "weibull", SegmentationParams(method="mr"))

        assert result.status == "converged"
        assert result.breakpoint == 10
        assert [len(g.indices) for g in result.groups] == [10, 10]
        assert result.groups[0].fit.natural["beta"] == pytest.approx(5.0, rel=1e-6)
        assert result.groups[1].fit.natural["beta"] == pytest.approx(1.0, rel=1e-6)

    def test_subgroups_fit_better_than_whole_sample(self, kinked_sample):
        """Test that each subgroup has a higher R² than the pooled fit."""
        t, events, p = kinked_sample
        whole = fit_rank_regression(t, p, events, "weibull")

        result = segment_regression(t, events, "weibull")

        for group in result.groups:
            assert group.fit.r_squared > whole.r_squared

    def test_indices_follow_input_positions(self, kinked_sample):
        """Test that subgroup indices refer to the unsorted input."""
        t, events, _ = kinked_sample
        order = np.random.default_rng(0).permutation(len(t))
        ids = [f"u{i}" for i in order]

        result = segment_regression(t[order], events[order], "weibull", ids=ids)
        labels = result.assignments()

        assert sorted(i for g in result.groups for i in g.indices) == list(range(len(t)))
        assert np.all(labels[np.argsort(t[order])[:10]] == 0)
        assert {o.id for o in result.groups[0].observations} == {f"u{i}" for i in range(10)}

    def test_deterministic(self, kinked_sample):
        """Test that repeated calls give the same breakpoint and fits."""
        t, events, _ = kinked_sample

        first = segment_regression(t, events, "weibull")
        second = segment_regression(t, events, "weibull")

        assert first.breakpoint == second.breakpoint
        assert first.groups[0].fit.coefficients == second.groups[0].fit.coefficients

    def test_small_sample_is_single_group(self):
        """Test that too few failures per side leaves one group."""
        t = [120.0, 340.0, 95.0, 410.0, 230.0]

        result = segment_regression(t, [1] * 5, "weibull")

        assert result.status == "single_group"
        assert result.n_groups == 1
        assert result.breakpoint is None
        assert len(result.groups[0].indices) == 5

    def test_ties_never_split(self):
        """Test that a breakpoint never separates equal characteristics."""
        t = [10.0, 20.0, 30.0, 40.0, 40.0, 40.0, 50.0, 60.0, 70.0, 80.0]

        result = segment_regression(t, [1] * 10, "weibull")

        if result.breakpoint is not None:
            sorted_t = np.sort(t)
            assert sorted_t[result.breakpoint - 1] != sorted_t[result.breakpoint]

    def test_invalid_params_raise_error(self):
        """Test that parameter validation rejects bad settings."""
        with pytest.raises(InvalidInputError, match="Unknown method"):
            SegmentationParams(method="hazen")
        with pytest.raises(InvalidInputError, match="min_failures"):
            SegmentationParams(min_failures=1)


class TestSeparateMixture:
    """Tests for the unified entry point."""

    def test_dispatches_to_segmented(self, kinked_sample):
        """Test the default strategy."""
        t, events, _ = kinked_sample

        result = separate_mixture(t, events)

        assert result.strategy == "segmented"
        assert result.to_dict()["breakpoint"] == result.breakpoint

    def test_unknown_strategy_raises_error(self, kinked_sample):
        """Test that unknown strategies are rejected."""
        t, events, _ = kinked_sample

        with pytest.raises(InvalidInputError, match="Unknown strategy"):
            separate_mixture(t, events, strategy="kmeans")

    def test_mismatched_params_raise_error(self, kinked_sample):
        """Test that params must match the strategy."""
        t, events, _ = kinked_sample

        with pytest.raises(InvalidInputError, match="SegmentationParams"):
            separate_mixture(t, events, strategy="segmented", params=object())
