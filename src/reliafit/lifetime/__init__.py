"""Parametric lifetime estimation for Reliafit.

This module fits (log-)location-scale lifetime distributions by rank
regression and by maximum likelihood, computes confidence bounds and
predictions from the fitted coefficients.

Example:
    >>> from reliafit.statistics import estimate_cdf
    >>> from reliafit.lifetime import fit_rank_regression_estimate, fit_ml
    >>> t = [10000, 20000, 30000, 40000, 50000, 60000, 70000, 80000, 90000, 100000]
    >>> e = [0, 1, 1, 0, 0, 0, 1, 0, 1, 0]
    >>> rr = fit_rank_regression_estimate(estimate_cdf(t, e, "johnson"), "weibull")
    >>> ml = fit_ml(t, e, "weibull")
    >>> print(rr.natural, ml.natural)
"""

from reliafit.lifetime.regression import fit_rank_regression, fit_rank_regression_estimate
from reliafit.lifetime.likelihood import fit_ml, solve_ml, log_likelihood, MLSolution
from reliafit.lifetime.bounds import confint_betabinom, confint_fisher
from reliafit.lifetime.prediction import predict_cdf, predict_quantile
from reliafit.lifetime.utils import generate_lifetime_data, generate_mixture_data

__all__ = [
    "fit_rank_regression",
    "fit_rank_regression_estimate",
    "fit_ml",
    "solve_ml",
    "log_likelihood",
    "MLSolution",
    "confint_betabinom",
    "confint_fisher",
    "predict_cdf",
    "predict_quantile",
    "generate_lifetime_data",
    "generate_mixture_data",
]
