"""Mixture separation for Reliafit.

Two strategies split a single lifetime sample into subpopulations:

- segmented: breakpoint search over rank-regression residuals
- em: Expectation-Maximization over censoring-aware maximum likelihood

Example:
    >>> from reliafit.mixture import separate_mixture, EMParams
    >>> result = separate_mixture(t, e, "weibull", strategy="segmented")
    >>> [g.fit.natural for g in result.groups]
"""

from reliafit.mixture.segmented import SegmentationParams, segment_regression
from reliafit.mixture.em import EMParams, em_mixture, component_log_likelihood
from reliafit.mixture.separator import separate_mixture

__all__ = [
    "SegmentationParams",
    "segment_regression",
    "EMParams",
    "em_mixture",
    "component_log_likelihood",
    "separate_mixture",
]
