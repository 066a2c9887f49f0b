"""Tests for beta-binomial and Fisher-matrix confidence bounds."""

import numpy as np
import pytest

from reliafit.core import InvalidInputError, UnsupportedOperationError
from reliafit.lifetime import (
    confint_betabinom,
    confint_fisher,
    fit_ml,
    fit_rank_regression_estimate,
)
from reliafit.statistics import estimate_cdf


@pytest.fixture
def johnson_fit(johnson_example):
    t, events = johnson_example
    estimate = estimate_cdf(t, events, method="johnson")
    return estimate, fit_rank_regression_estimate(estimate, "weibull")


class TestBetaBinomialBounds:
    """Tests for median-rank based bounds."""

    def test_two_sided_bounds_enclose_estimate(self, johnson_fit):
        """Test that probability and characteristic bounds bracket the point values."""
        estimate, fit = johnson_fit

        frame = confint_betabinom(estimate, fit, conf_level=0.9)

        assert len(frame) == 4
        assert np.all(frame["prob_lower"] < frame["probability"])
        assert np.all(frame["probability"] < frame["prob_upper"])
        assert np.all(frame["characteristic_lower"] < frame["characteristic_upper"])

    def test_one_sided_bound_leaves_other_side_empty(self, johnson_fit):
        """Test that a lower bound request fills only the lower probability bound."""
        estimate, fit = johnson_fit

        frame = confint_betabinom(estimate, fit, bounds="lower")

        assert frame["prob_upper"].isna().all()
        assert frame["characteristic_lower"].isna().all()
        assert frame["prob_lower"].notna().all()

    def test_wider_at_higher_confidence(self, johnson_fit):
        """Test that a higher confidence level widens the bounds."""
        estimate, fit = johnson_fit

        narrow = confint_betabinom(estimate, fit, conf_level=0.8)
        wide = confint_betabinom(estimate, fit, conf_level=0.99)

        assert np.all(wide["prob_lower"] < narrow["prob_lower"])
        assert np.all(wide["prob_upper"] > narrow["prob_upper"])

    def test_nelson_aalen_is_unsupported(self, johnson_example):
        """Test that Nelson-Aalen estimates have no beta-binomial bounds."""
        t, events = johnson_example
        estimate = estimate_cdf(t, events, method="nelson")
        fit = fit_rank_regression_estimate(estimate, "weibull")

        with pytest.raises(UnsupportedOperationError):
            confint_betabinom(estimate, fit)

    def test_invalid_bounds_raise_error(self, johnson_fit):
        """Test that unknown bound types are rejected."""
        estimate, fit = johnson_fit

        with pytest.raises(InvalidInputError, match="Invalid bounds"):
            confint_betabinom(estimate, fit, bounds="both")


class TestFisherBounds:
    """Tests for delta-method bounds on ML quantiles."""

    def test_bounds_enclose_quantiles(self, censored_weibull_data):
        """Test lower < t_p < upper for a censored Weibull ML fit."""
        t, events = censored_weibull_data
        fit = fit_ml(t, events, "weibull")

        frame = confint_fisher(fit, probabilities=[0.01, 0.1, 0.5, 0.9])

        assert np.all(frame["lower"] < frame["characteristic"])
        assert np.all(frame["characteristic"] < frame["upper"])
        assert np.all(frame["lower"] > 0)

    def test_default_probability_grid(self, censored_weibull_data):
        """Test that omitted probabilities use a grid from 1% to 99%."""
        t, events = censored_weibull_data
        fit = fit_ml(t, events, "weibull")

        frame = confint_fisher(fit)

        assert len(frame) == 99
        assert frame["probability"].iloc[0] == pytest.approx(0.01)
        assert frame["probability"].iloc[-1] == pytest.approx(0.99)

    def test_upper_bound_only(self, censored_weibull_data):
        """Test that an upper bound request leaves the lower column empty."""
        t, events = censored_weibull_data
        fit = fit_ml(t, events, "weibull")

        frame = confint_fisher(fit, probabilities=[0.1], bounds="upper")

        assert frame["lower"].isna().all()
        assert frame["upper"].iloc[0] > frame["characteristic"].iloc[0]

    def test_rank_regression_is_unsupported(self, johnson_fit):
        """Test that fits without a covariance matrix are rejected."""
        _, fit = johnson_fit

        with pytest.raises(UnsupportedOperationError):
            confint_fisher(fit)
