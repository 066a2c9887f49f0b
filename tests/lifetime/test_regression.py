"""Tests for the rank regression estimator."""

import numpy as np
import pytest
from scipy import stats

from reliafit.core import InsufficientDataError, InvalidInputError, ProfileSearchFailure, SingularFitError
from reliafit.lifetime import fit_rank_regression, fit_rank_regression_estimate
from reliafit.statistics import estimate_cdf
from reliafit.statistics.ranks import benard


class TestTwoParameterRegression:
    """Tests for two-parameter rank regression."""

    def test_exact_weibull_recovered(self, exact_weibull_sample):
        """Test that a sample on an exact Weibull line gives R² = 1 and its parameters."""
        s = exact_weibull_sample
        fit = fit_rank_regression(s["characteristics"], s["probabilities"], s["events"], "weibull")

        assert fit.r_squared == pytest.approx(1.0, abs=1e-12)
        assert fit.natural["eta"] == pytest.approx(s["eta"], rel=1e-9)
        assert fit.natural["beta"] == pytest.approx(s["beta"], rel=1e-9)
        assert fit.residual_ss == pytest.approx(0.0, abs=1e-18)
        assert fit.method == "rank_regression"

    def test_exact_lognormal_recovered(self):
        """Test recovery of log-normal coefficients from an exact sample."""
        p = benard(np.arange(1, 12 + 1), 12)
        t = np.exp(4.0 + 0.6 * stats.norm.ppf(p))

        fit = fit_rank_regression(t, p, np.ones(12), "lognormal")

        assert fit.coefficients.mu == pytest.approx(4.0)
        assert fit.coefficients.sigma == pytest.approx(0.6)

    def test_r_squared_within_unit_interval(self):
        """Test that R² lies in [0, 1] on noisy data."""
        rng = np.random.default_rng(3)
        t = 500.0 * rng.weibull(1.2, size=40)
        estimate = estimate_cdf(t, np.ones(40), method="mr")

        fit = fit_rank_regression_estimate(estimate, "weibull")

        assert 0.0 <= fit.r_squared <= 1.0
        lo, hi = fit.confidence_intervals["sigma"]
        assert lo < fit.coefficients.sigma < hi

    def test_censored_rows_excluded(self, johnson_example):
        """Test that only failures enter the regression."""
        t, events = johnson_example
        estimate = estimate_cdf(t, events, method="johnson")

        fit = fit_rank_regression_estimate(estimate, "weibull")

        assert fit.n == 10
        assert fit.n_events == 4

    def test_two_points_have_no_intervals(self):
        """Test that a two-point line carries no confidence intervals."""
        fit = fit_rank_regression([100.0, 200.0], [0.3, 0.7], [1, 1], "weibull")

        assert fit.confidence_intervals is None
        assert fit.r_squared == pytest.approx(1.0)


class TestRegressionErrors:
    """Tests for rank regression failure modes."""

    def test_single_failure_raises_error(self):
        """Test that fewer than two failures is insufficient."""
        with pytest.raises(InsufficientDataError):
            fit_rank_regression([100.0, 200.0, 300.0], [0.2, None, None], [1, 0, 0], "weibull")

    def test_equal_characteristics_raise_error(self):
        """Test that identical x values are degenerate."""
        with pytest.raises(SingularFitError, match="characteristics are equal"):
            fit_rank_regression([100.0, 100.0, 100.0], [0.2, 0.5, 0.8], [1, 1, 1], "weibull")

    def test_equal_probabilities_raise_error(self):
        """Test that identical y values are degenerate."""
        with pytest.raises(SingularFitError, match="plotting positions are equal"):
            fit_rank_regression([100.0, 200.0, 300.0], [0.5, 0.5, 0.5], [1, 1, 1], "weibull")

    def test_probability_out_of_range_raises_error(self):
        """Test that probabilities must be inside (0, 1)."""
        with pytest.raises(InvalidInputError, match=r"\(0, 1\)"):
            fit_rank_regression([100.0, 200.0], [0.5, 1.0], [1, 1], "weibull")


class TestThresholdRegression:
    """Tests for the profiled three-parameter regression."""

    def test_exact_weibull3_threshold_recovered(self):
        """Test that the R² profile finds the generating threshold."""
        p = benard(np.arange(1, 30 + 1), 30)
        t = 500.0 + 1000.0 * (-np.log1p(-p)) ** 0.5

        fit = fit_rank_regression(t, p, np.ones(30), "weibull3")

        assert fit.coefficients.threshold == pytest.approx(500.0, rel=1e-3)
        assert fit.natural["beta"] == pytest.approx(2.0, rel=1e-2)
        assert fit.r_squared == pytest.approx(1.0, abs=1e-8)

    def test_no_interior_optimum_raises_error(self):
        """Test that a profile rising towards minus infinity is reported."""
        # linear in t on the extreme value plot: log(t - gamma) straightens only as gamma -> -inf
        p = benard(np.arange(1, 20 + 1), 20)
        t = 1000.0 + 50.0 * np.log(-np.log1p(-p))

        with pytest.raises(ProfileSearchFailure):
            fit_rank_regression(t, p, np.ones(20), "weibull3")
