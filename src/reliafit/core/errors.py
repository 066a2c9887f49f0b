"""Error taxonomy for Reliafit.

Every numeric failure is surfaced to the caller with a specific kind; the
estimators never substitute default parameters for a failed fit.
"""


class ReliafitError(ValueError):
    """Base class for all Reliafit errors."""


class InvalidInputError(ReliafitError):
    """Malformed, insufficient or incompatible input data."""


class InsufficientDataError(InvalidInputError):
    """Too few usable (non-censored) observations for the requested fit."""


class SingularFitError(ReliafitError):
    """Degenerate regression geometry or a singular information matrix."""


class ConvergenceError(ReliafitError):
    """A root search failed to bracket or converge within its bounds."""


class ProfileSearchFailure(ConvergenceError):
    """The outer threshold search did not produce a usable optimum."""


class UnsupportedOperationError(NotImplementedError, ReliafitError):
    """The operation is not defined for the given estimator."""


class PartialConvergenceWarning(RuntimeWarning):
    """An iterative procedure hit its iteration cap before converging.

    The associated result is usable but flagged with
    ``status == "did_not_fully_converge"``.
    """
