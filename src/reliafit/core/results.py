"""Immutable records exchanged between the estimators and their callers."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, TYPE_CHECKING

import numpy as np
import pandas as pd

if TYPE_CHECKING:
    from reliafit.statistics.distributions import DistributionSpec


@dataclass(frozen=True)
class Observation:
    """A single unit: lifetime characteristic and failure indicator.

    Attributes:
        id: Opaque identifier supplied by the caller (defaults to the input position).
        characteristic: Positive lifetime value (hours, cycles, km, ...).
        event: True for a failure, False for a censored (surviving) unit.
    """
    id: Any
    characteristic: float
    event: bool

    def to_dict(self) -> Dict[str, Any]:
        """Convert observation to dictionary."""
        return {
            "id": self.id,
            "characteristic": self.characteristic,
            "event": self.event,
        }


@dataclass(frozen=True)
class RankedObservation:
    """Observation with its adjusted rank and plotting position.

    ``probability`` is None for censored rows. ``adjusted_rank`` is None for
    censored rows under rank-adjusting methods.
    """
    id: Any
    characteristic: float
    event: bool
    adjusted_rank: Optional[float]
    probability: Optional[float]

    def to_dict(self) -> Dict[str, Any]:
        """Convert ranked observation to dictionary."""
        return {
            "id": self.id,
            "characteristic": self.characteristic,
            "event": self.event,
            "adjusted_rank": self.adjusted_rank,
            "probability": self.probability,
        }


@dataclass(frozen=True)
class ProbabilityEstimate:
    """Non-parametric failure probabilities, sorted ascending by characteristic.

    Attributes:
        method: Estimator used ("mr", "johnson", "kaplan" or "nelson").
        observations: Ranked rows in ascending characteristic order.
    """
    method: str
    observations: Tuple[RankedObservation, ...]

    @property
    def n(self) -> int:
        return len(self.observations)

    @property
    def characteristics(self) -> np.ndarray:
        return np.array([o.characteristic for o in self.observations], dtype=np.float64)

    @property
    def events(self) -> np.ndarray:
        return np.array([o.event for o in self.observations], dtype=bool)

    @property
    def probabilities(self) -> np.ndarray:
        """Probabilities as floats, NaN where absent."""
        return np.array(
            [np.nan if o.probability is None else o.probability for o in self.observations],
            dtype=np.float64,
        )

    def to_frame(self) -> pd.DataFrame:
        """Return the estimate as a DataFrame with one row per observation."""
        return pd.DataFrame(
            [o.to_dict() for o in self.observations],
            columns=["id", "characteristic", "event", "adjusted_rank", "probability"],
        )


@dataclass(frozen=True)
class Coefficients:
    """Location-scale coefficients; ``threshold`` only for threshold families."""
    mu: float
    sigma: float
    threshold: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert coefficients to dictionary."""
        result = {"mu": self.mu, "sigma": self.sigma}
        if self.threshold is not None:
            result["threshold"] = self.threshold
        return result


@dataclass(frozen=True)
class FitResult:
    """Result of a parametric lifetime fit.

    Built once at the end of a successful fit; failed fits raise instead of
    returning a partially populated result.

    Attributes:
        method: "rank_regression" or "maximum_likelihood".
        distribution: DistributionSpec of the fitted family.
        coefficients: Location-scale coefficients (mu, sigma[, threshold]).
        natural: Coefficients in the family's natural parameterization
            (e.g. eta/beta for Weibull).
        confidence_intervals: Two-sided intervals per location-scale
            parameter, or None when they cannot be formed (two-point
            regression).
        conf_level: Confidence level of the intervals.
        n: Number of observations used (sum of weights for weighted fits).
        n_events: Number of failures used.
        r_squared: Coefficient of determination (rank regression only).
        residual_ss: Sum of squared x-direction residuals (rank regression only).
        log_likelihood: Log-likelihood at the estimate (ML only).
        aic: Akaike information criterion (ML only).
        bic: Bayesian information criterion (ML only).
        covariance: Inverse observed information (ML only).
        status: "converged" for every returned fit.
    """
    method: str
    distribution: "DistributionSpec"
    coefficients: Coefficients
    natural: Dict[str, float]
    confidence_intervals: Optional[Dict[str, Tuple[float, float]]]
    conf_level: float
    n: float
    n_events: float
    r_squared: Optional[float] = None
    residual_ss: Optional[float] = None
    log_likelihood: Optional[float] = None
    aic: Optional[float] = None
    bic: Optional[float] = None
    covariance: Optional[np.ndarray] = field(default=None, compare=False, repr=False)
    status: str = "converged"

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary."""
        return {
            "method": self.method,
            "distribution": self.distribution.name,
            "coefficients": self.coefficients.to_dict(),
            "natural": dict(self.natural),
            "confidence_intervals": (
                {k: list(v) for k, v in self.confidence_intervals.items()}
                if self.confidence_intervals is not None else None
            ),
            "conf_level": self.conf_level,
            "n": self.n,
            "n_events": self.n_events,
            "r_squared": self.r_squared,
            "residual_ss": self.residual_ss,
            "log_likelihood": self.log_likelihood,
            "aic": self.aic,
            "bic": self.bic,
            "status": self.status,
        }


@dataclass(frozen=True)
class Subgroup:
    """One separated subpopulation.

    Attributes:
        subgroup_id: 0-based group index, ordered by position in the sorted sample
            (segmentation) or by component (EM).
        indices: Input positions of the member observations.
        observations: Member observations.
        fit: Fit of this subgroup.
    """
    subgroup_id: int
    indices: Tuple[int, ...]
    observations: Tuple[Observation, ...]
    fit: FitResult


@dataclass(frozen=True)
class EMIteration:
    """State of the EM algorithm after one iteration."""
    iteration: int
    coefficients: Tuple[Coefficients, ...]
    mixing_weights: Tuple[float, ...]
    log_likelihood: float


@dataclass(frozen=True)
class MixtureResult:
    """Result of a mixture separation.

    Attributes:
        strategy: "segmented" or "em".
        distribution: DistributionSpec fitted to every subgroup.
        groups: Subgroups; every observation belongs to exactly one.
        status: "converged", "single_group" (no admissible breakpoint) or
            "did_not_fully_converge" (EM iteration cap reached).
        breakpoint: Index in the sorted sample where the right group starts
            (segmentation only).
        posteriors: (n, k) posterior membership probabilities by input position
            (EM only); rows sum to 1.
        mixing_weights: Component weights (EM only).
        log_likelihood: Mixture log-likelihood (EM only).
        history: EM iteration records, oldest first.
    """
    strategy: str
    distribution: "DistributionSpec"
    groups: Tuple[Subgroup, ...]
    status: str
    breakpoint: Optional[int] = None
    posteriors: Optional[np.ndarray] = field(default=None, compare=False, repr=False)
    mixing_weights: Optional[Tuple[float, ...]] = None
    log_likelihood: Optional[float] = None
    history: Tuple[EMIteration, ...] = ()

    @property
    def n_groups(self) -> int:
        return len(self.groups)

    def assignments(self) -> np.ndarray:
        """Subgroup id for every input position."""
        n = sum(len(g.indices) for g in self.groups)
        labels = np.empty(n, dtype=int)
        for group in self.groups:
            labels[list(group.indices)] = group.subgroup_id
        return labels

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary."""
        groups: List[Dict[str, Any]] = [
            {
                "subgroup_id": g.subgroup_id,
                "indices": list(g.indices),
                "fit": g.fit.to_dict(),
            }
            for g in self.groups
        ]
        return {
            "strategy": self.strategy,
            "distribution": self.distribution.name,
            "status": self.status,
            "breakpoint": self.breakpoint,
            "mixing_weights": list(self.mixing_weights) if self.mixing_weights else None,
            "log_likelihood": self.log_likelihood,
            "groups": groups,
            "n_iterations": len(self.history),
        }
