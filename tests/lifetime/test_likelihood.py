"""Tests for the maximum-likelihood estimator."""

import numpy as np
import pytest
from lifelines import WeibullFitter

from reliafit.core import Coefficients, ConvergenceError, InvalidInputError, ProfileSearchFailure
from reliafit.lifetime import fit_ml, generate_lifetime_data, log_likelihood, solve_ml


class TestTwoParameterML:
    """Tests for two-parameter maximum likelihood."""

    def test_normal_complete_data_closed_form(self):
        """Test that complete normal data gives the sample mean and ML standard deviation."""
        t = np.array([48.0, 51.5, 55.0, 47.2, 60.1, 52.3, 49.9, 57.4])

        fit = fit_ml(t, np.ones(len(t)), "normal")

        assert fit.coefficients.mu == pytest.approx(t.mean(), rel=1e-8)
        assert fit.coefficients.sigma == pytest.approx(t.std(ddof=0), rel=1e-6)

    def test_lognormal_complete_data_closed_form(self):
        """Test the closed form on the log scale for complete log-normal data."""
        t = np.array([120.0, 340.0, 95.0, 410.0, 230.0, 180.0, 510.0])

        fit = fit_ml(t, np.ones(len(t)), "lognormal")

        assert fit.coefficients.mu == pytest.approx(np.log(t).mean(), rel=1e-8)
        assert fit.coefficients.sigma == pytest.approx(np.log(t).std(ddof=0), rel=1e-6)

    def test_censored_weibull_matches_lifelines(self, censored_weibull_data):
        """Test censored Weibull estimates against lifelines' WeibullFitter."""
        t, events = censored_weibull_data

        fit = fit_ml(t, events, "weibull")
        wf = WeibullFitter().fit(t, events)

        assert fit.natural["eta"] == pytest.approx(wf.lambda_, rel=5e-3)
        assert fit.natural["beta"] == pytest.approx(wf.rho_, rel=5e-3)
        assert fit.log_likelihood == pytest.approx(wf.log_likelihood_, rel=1e-4)

    def test_local_optimum(self, censored_weibull_data):
        """Test that perturbed coefficients never have a higher log-likelihood."""
        t, events = censored_weibull_data
        fit = fit_ml(t, events, "weibull")
        best = fit.log_likelihood
        c = fit.coefficients

        for d_mu in (-1e-3, 0.0, 1e-3):
            for d_sigma in (-1e-3, 0.0, 1e-3):
                if d_mu == d_sigma == 0.0:
                    continue
                perturbed = Coefficients(mu=c.mu + d_mu, sigma=c.sigma + d_sigma)
                assert log_likelihood(t, events, perturbed, "weibull") < best

    def test_information_criteria(self, censored_weibull_data):
        """Test AIC = -2 logL + 2k and BIC = -2 logL + k log n."""
        t, events = censored_weibull_data

        fit = fit_ml(t, events, "weibull")

        assert fit.aic == pytest.approx(-2 * fit.log_likelihood + 4)
        assert fit.bic == pytest.approx(-2 * fit.log_likelihood + 2 * np.log(len(t)))

    def test_confidence_intervals_and_covariance(self, censored_weibull_data):
        """Test Wald intervals around the estimate and a positive definite covariance."""
        t, events = censored_weibull_data

        fit = fit_ml(t, events, "weibull", conf_level=0.9)

        for name, value in (("mu", fit.coefficients.mu), ("sigma", fit.coefficients.sigma)):
            lo, hi = fit.confidence_intervals[name]
            assert lo < value < hi
        assert np.all(np.linalg.eigvalsh(fit.covariance) > 0)
        assert fit.conf_level == 0.9
        assert fit.status == "converged"

    @pytest.mark.parametrize("family", ["loglogistic", "logistic", "sev"])
    def test_other_families_converge(self, family):
        """Test that every family solves its score equations on censored data."""
        df = generate_lifetime_data(
            n_samples=60, distribution="lognormal", mu=np.log(500.0), sigma=0.4,
            censoring_time=700.0, seed=11,
        )

        fit = fit_ml(df["characteristic"], df["event"], family)

        assert fit.coefficients.sigma > 0
        assert np.isfinite(fit.log_likelihood)

    def test_weights_equal_replication(self):
        """Test that integer weights act like replicated observations."""
        t = np.array([110.0, 150.0, 205.0, 260.0, 300.0, 300.0])
        events = np.array([1, 1, 0, 1, 1, 0])

        weighted = fit_ml(t, events, "weibull", weights=np.full(6, 2.0))
        replicated = fit_ml(np.repeat(t, 2), np.repeat(events, 2), "weibull")

        assert weighted.coefficients.mu == pytest.approx(replicated.coefficients.mu, rel=1e-8)
        assert weighted.coefficients.sigma == pytest.approx(replicated.coefficients.sigma, rel=1e-6)
        assert weighted.log_likelihood == pytest.approx(replicated.log_likelihood, rel=1e-8)


class TestMLErrors:
    """Tests for ML failure modes."""

    def test_single_failure_does_not_converge(self):
        """Test that a lone failure has no finite scale estimate."""
        with pytest.raises(ConvergenceError):
            fit_ml([100.0], [1], "weibull")

    def test_no_failures_raises_error(self):
        """Test that at least one failure is required."""
        with pytest.raises(InvalidInputError, match="failure"):
            fit_ml([100.0, 200.0], [0, 0], "weibull")

    def test_negative_weights_raise_error(self):
        """Test that weights must be non-negative."""
        with pytest.raises(InvalidInputError, match="non-negative"):
            fit_ml([100.0, 200.0, 300.0], [1, 1, 1], "weibull", weights=[1.0, -1.0, 1.0])


class TestThresholdML:
    """Tests for the profile-likelihood threshold estimate."""

    def test_threshold_recovered_with_large_sample(self):
        """Test that the profiled threshold approaches the generating value."""
        df = generate_lifetime_data(
            n_samples=1000, distribution="weibull3", mu=np.log(2000.0), sigma=1.0 / 3.0,
            threshold=1000.0, seed=5,
        )

        fit = fit_ml(df["characteristic"], df["event"], "weibull3")

        assert fit.coefficients.threshold < df["characteristic"].min()
        assert fit.coefficients.threshold == pytest.approx(1000.0, abs=150.0)
        assert fit.natural["beta"] == pytest.approx(3.0, rel=0.15)
        lo, hi = fit.confidence_intervals["threshold"]
        assert lo < fit.coefficients.threshold < hi
        assert fit.aic == pytest.approx(-2 * fit.log_likelihood + 6)

    def test_threshold_improves_log_likelihood(self):
        """Test that the three-parameter fit is at least as likely as the two-parameter one."""
        df = generate_lifetime_data(
            n_samples=300, distribution="lognormal3", mu=np.log(300.0), sigma=0.3,
            threshold=200.0, seed=9,
        )

        two = fit_ml(df["characteristic"], df["event"], "lognormal")
        three = fit_ml(df["characteristic"], df["event"], "lognormal3")

        assert three.log_likelihood >= two.log_likelihood - 1e-6

    def test_negligible_weight_does_not_bound_threshold(self):
        """Test that a far-off row with a vanishing weight leaves the threshold free."""
        df = generate_lifetime_data(
            n_samples=1000, distribution="weibull3", mu=np.log(2000.0), sigma=1.0 / 3.0,
            threshold=1000.0, seed=5,
        )
        t = df["characteristic"].to_numpy()
        events = df["event"].to_numpy()
        baseline = solve_ml(t, events, "weibull3")

        t_extra = np.append(t, 50.0)
        events_extra = np.append(events, 1)
        weights = np.append(np.ones(len(t)), 1e-12)
        weighted = solve_ml(t_extra, events_extra, "weibull3", weights=weights)
        fit = fit_ml(t_extra, events_extra, "weibull3", weights=weights)

        assert weighted.coefficients.threshold > 50.0
        assert weighted.coefficients.threshold == pytest.approx(baseline.coefficients.threshold)
        assert fit.coefficients.threshold > 50.0
        assert np.all(np.isfinite(fit.covariance))

    def test_no_valid_profile_candidate_raises_error(self):
        """Test that identical failures, which have no finite scale, fail the threshold search."""
        with pytest.raises(ProfileSearchFailure, match="No threshold candidate"):
            fit_ml([100.0, 100.0, 100.0], [1, 1, 1], "weibull3")
