"""Distribution Adapter for (log-)location-scale lifetime families.

Every supported family is written as ``F(t) = Phi((x - mu) / sigma)`` with a
fixed standard CDF ``Phi`` and ``x = log(t - gamma)`` for the log families
(weibull, lognormal, loglogistic) or ``x = t`` for the location families
(normal, logistic, sev). The standard functions live in a closed lookup
table keyed by family name.
"""

from dataclasses import dataclass
from typing import Callable, Dict, NamedTuple, Optional, Union

import numpy as np
from scipy import special, stats

from reliafit.core.errors import InvalidInputError
from reliafit.core.results import Coefficients


class StandardFunctions(NamedTuple):
    """Standardized (mu=0, sigma=1) functions of one family.

    ``dlogpdf`` and ``dlogsf`` are the z-derivatives of ``logpdf`` and
    ``logsf``; the likelihood score equations are built from them.
    """
    cdf: Callable[[np.ndarray], np.ndarray]
    sf: Callable[[np.ndarray], np.ndarray]
    ppf: Callable[[np.ndarray], np.ndarray]
    logpdf: Callable[[np.ndarray], np.ndarray]
    logsf: Callable[[np.ndarray], np.ndarray]
    dlogpdf: Callable[[np.ndarray], np.ndarray]
    dlogsf: Callable[[np.ndarray], np.ndarray]


def _sev_functions() -> StandardFunctions:
    # Smallest extreme value: F(z) = 1 - exp(-exp(z))
    return StandardFunctions(
        cdf=lambda z: -np.expm1(-np.exp(z)),
        sf=lambda z: np.exp(-np.exp(z)),
        ppf=lambda p: np.log(-np.log1p(-p)),
        logpdf=lambda z: z - np.exp(z),
        logsf=lambda z: -np.exp(z),
        dlogpdf=lambda z: 1.0 - np.exp(z),
        dlogsf=lambda z: -np.exp(z),
    )


def _normal_functions() -> StandardFunctions:
    return StandardFunctions(
        cdf=stats.norm.cdf,
        sf=stats.norm.sf,
        ppf=stats.norm.ppf,
        logpdf=stats.norm.logpdf,
        logsf=stats.norm.logsf,
        dlogpdf=lambda z: -z,
        # Inverse Mills ratio, computed on the log scale for large z
        dlogsf=lambda z: -np.exp(stats.norm.logpdf(z) - stats.norm.logsf(z)),
    )


def _logistic_functions() -> StandardFunctions:
    return StandardFunctions(
        cdf=special.expit,
        sf=lambda z: special.expit(-z),
        ppf=special.logit,
        logpdf=stats.logistic.logpdf,
        logsf=lambda z: -np.logaddexp(0.0, z),
        dlogpdf=lambda z: 1.0 - 2.0 * special.expit(z),
        dlogsf=lambda z: -special.expit(z),
    )


STANDARD_FUNCTIONS: Dict[str, StandardFunctions] = {
    "sev": _sev_functions(),
    "normal": _normal_functions(),
    "logistic": _logistic_functions(),
}

# family -> standard distribution of x
FAMILIES: Dict[str, str] = {
    "weibull": "sev",
    "lognormal": "normal",
    "loglogistic": "logistic",
    "sev": "sev",
    "normal": "normal",
    "logistic": "logistic",
}

LOG_FAMILIES = frozenset({"weibull", "lognormal", "loglogistic"})


@dataclass(frozen=True)
class DistributionSpec:
    """A lifetime distribution family with an optional threshold.

    Attributes:
        family: One of weibull, lognormal, loglogistic, normal, logistic, sev.
        has_threshold: Whether a threshold (gamma) is estimated. Only the log
            families accept a threshold.
    """
    family: str
    has_threshold: bool = False

    def __post_init__(self) -> None:
        if self.family not in FAMILIES:
            raise InvalidInputError(
                f"Unknown distribution family '{self.family}'. "
                f"Expected one of {sorted(FAMILIES)}."
            )
        if self.has_threshold and self.family not in LOG_FAMILIES:
            raise InvalidInputError(
                f"A threshold is only identifiable for log-location-scale families, "
                f"not for '{self.family}'"
            )

    @property
    def name(self) -> str:
        return f"{self.family}3" if self.has_threshold else self.family

    @property
    def is_log(self) -> bool:
        return self.family in LOG_FAMILIES

    @property
    def n_params(self) -> int:
        return 3 if self.has_threshold else 2

    @property
    def standard(self) -> StandardFunctions:
        return STANDARD_FUNCTIONS[FAMILIES[self.family]]

    # Standardized functions

    def cdf_standard(self, z):
        return self.standard.cdf(np.asarray(z, dtype=np.float64))

    def quantile_standard(self, p):
        return self.standard.ppf(np.asarray(p, dtype=np.float64))

    def log_pdf_standard(self, z):
        return self.standard.logpdf(np.asarray(z, dtype=np.float64))

    def log_sf_standard(self, z):
        return self.standard.logsf(np.asarray(z, dtype=np.float64))

    # Scale transforms

    def transform(self, t, threshold: Optional[float] = None) -> np.ndarray:
        """Map characteristics to the location-scale axis x.

        Raises:
            InvalidInputError: If a threshold is not below every characteristic
                of a log family.
        """
        x = np.asarray(t, dtype=np.float64)
        if threshold is not None:
            x = x - threshold
        if self.is_log:
            if np.any(x <= 0):
                raise InvalidInputError(
                    f"threshold {threshold} must be below the smallest characteristic"
                )
            x = np.log(x)
        return x

    def inverse_transform(self, x, threshold: Optional[float] = None) -> np.ndarray:
        t = np.exp(x) if self.is_log else np.asarray(x, dtype=np.float64)
        if threshold is not None:
            t = t + threshold
        return t

    # Natural parameterization

    def to_natural(self, coefficients: Coefficients) -> Dict[str, float]:
        """Express location-scale coefficients in the family's usual parameters.

        Weibull reports eta = exp(mu) and beta = 1 / sigma; the other families
        keep (mu, sigma). The threshold is reported as gamma.
        """
        if self.family == "weibull":
            natural = {
                "eta": float(np.exp(coefficients.mu)),
                "beta": float(1.0 / coefficients.sigma),
            }
        else:
            natural = {"mu": float(coefficients.mu), "sigma": float(coefficients.sigma)}
        if self.has_threshold:
            natural["gamma"] = float(coefficients.threshold)
        return natural

    def to_location_scale(self, **natural: float) -> Coefficients:
        """Inverse of :meth:`to_natural`."""
        threshold = natural.get("gamma") if self.has_threshold else None
        if self.has_threshold and threshold is None:
            raise InvalidInputError(f"'{self.name}' requires a 'gamma' parameter")
        try:
            if self.family == "weibull":
                if natural["eta"] <= 0 or natural["beta"] <= 0:
                    raise InvalidInputError("eta and beta must be positive")
                return Coefficients(
                    mu=float(np.log(natural["eta"])),
                    sigma=float(1.0 / natural["beta"]),
                    threshold=threshold,
                )
            if natural["sigma"] <= 0:
                raise InvalidInputError("sigma must be positive")
            return Coefficients(
                mu=float(natural["mu"]), sigma=float(natural["sigma"]), threshold=threshold
            )
        except KeyError as exc:
            raise InvalidInputError(
                f"Missing natural parameter {exc} for '{self.name}'"
            ) from exc

    # Distribution of the characteristic

    def _z(self, t, coefficients: Coefficients) -> np.ndarray:
        x = self.transform(t, coefficients.threshold)
        return (x - coefficients.mu) / coefficients.sigma

    def cdf(self, t, coefficients: Coefficients) -> np.ndarray:
        """F(t); zero at and below the threshold of a log family."""
        t = np.asarray(t, dtype=np.float64)
        if not self.is_log:
            return self.cdf_standard(self._z(t, coefficients))
        shift = np.atleast_1d(t - (coefficients.threshold or 0.0))
        out = np.zeros_like(shift)
        positive = shift > 0
        z = (np.log(shift[positive]) - coefficients.mu) / coefficients.sigma
        out[positive] = self.cdf_standard(z)
        return out.reshape(t.shape)

    def quantile(self, p, coefficients: Coefficients) -> np.ndarray:
        x = coefficients.mu + coefficients.sigma * self.quantile_standard(p)
        return self.inverse_transform(x, coefficients.threshold)

    def log_pdf(self, t, coefficients: Coefficients) -> np.ndarray:
        """Log-density of the characteristic, including the log-scale Jacobian."""
        z = self._z(t, coefficients)
        out = self.log_pdf_standard(z) - np.log(coefficients.sigma)
        if self.is_log:
            out = out - np.log(np.asarray(t, dtype=np.float64) - (coefficients.threshold or 0.0))
        return out

    def log_sf(self, t, coefficients: Coefficients) -> np.ndarray:
        return self.log_sf_standard(self._z(t, coefficients))


DistributionLike = Union[str, DistributionSpec]


def get_distribution(distribution: DistributionLike) -> DistributionSpec:
    """Resolve a distribution name such as "weibull" or "lognormal3".

    A trailing "3" selects the threshold variant.
    """
    if isinstance(distribution, DistributionSpec):
        return distribution
    if not isinstance(distribution, str):
        raise InvalidInputError(
            f"distribution must be a name or DistributionSpec, got {type(distribution)}"
        )
    name = distribution.strip().lower()
    if name.endswith("3"):
        return DistributionSpec(family=name[:-1], has_threshold=True)
    return DistributionSpec(family=name)
