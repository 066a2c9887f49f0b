"""Validation utilities for Reliafit."""

from typing import Any, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from reliafit.core.errors import InvalidInputError
from reliafit.core.results import Observation


def validate_observations(
    characteristics: Sequence[float],
    events: Sequence[Any],
    require_failure: bool = True,
) -> Tuple[np.ndarray, np.ndarray]:
    """Validate and convert raw lifetime data.

    Args:
        characteristics: Lifetime values, all finite and strictly positive.
        events: Failure indicators (True/1 = failure, False/0 = censored).
        require_failure: Whether at least one failure must be present.

    Returns:
        Tuple of (float64 characteristics, bool events).

    Raises:
        InvalidInputError: If lengths differ, values are not positive and finite,
            event codes are not 0/1 or no failure is present.
    """
    try:
        x = np.asarray(characteristics, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError("characteristics must be a numeric sequence") from exc

    raw_events = np.asarray(events)
    if x.ndim != 1 or raw_events.ndim != 1:
        raise InvalidInputError("characteristics and events must be one-dimensional")
    if len(x) != len(raw_events):
        raise InvalidInputError(
            f"characteristics and events must have equal length, "
            f"got {len(x)} and {len(raw_events)}"
        )
    if len(x) == 0:
        raise InvalidInputError("At least one observation is required")
    if not np.all(np.isfinite(x)):
        raise InvalidInputError("characteristics must be finite")
    if np.any(x <= 0):
        raise InvalidInputError(
            f"characteristics must be strictly positive, found min={x.min()}"
        )

    try:
        codes = raw_events.astype(np.float64)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError("events must be boolean or 0/1 codes") from exc
    if not np.all(np.isin(codes, (0.0, 1.0))):
        raise InvalidInputError("events must be boolean or 0/1 codes")
    status = codes == 1.0

    if require_failure and not status.any():
        raise InvalidInputError("At least one failure (event=1) is required")

    return x, status


def make_observations(
    characteristics: Sequence[float],
    events: Sequence[Any],
    ids: Optional[Sequence[Any]] = None,
) -> Tuple[Observation, ...]:
    """Build validated Observation records; ids default to input positions."""
    x, status = validate_observations(characteristics, events, require_failure=False)
    if ids is None:
        ids = range(len(x))
    elif len(ids) != len(x):
        raise InvalidInputError(
            f"ids must match the number of observations, got {len(ids)} and {len(x)}"
        )
    return tuple(
        Observation(id=i, characteristic=float(t), event=bool(e))
        for i, t, e in zip(ids, x, status)
    )


def validate_input_schema(
    df: pd.DataFrame, characteristic_col: str, event_col: str
) -> None:
    """Validate that the input DataFrame has the required schema.

    Args:
        df: Input pandas DataFrame.
        characteristic_col: Name of the lifetime column.
        event_col: Name of the event column.

    Raises:
        TypeError: If df is not a pandas DataFrame.
        InvalidInputError: If required columns are missing or have wrong types.
    """
    if not isinstance(df, pd.DataFrame):
        raise TypeError("df must be a pandas DataFrame")

    if characteristic_col not in df.columns:
        raise InvalidInputError(
            f"Characteristic column '{characteristic_col}' not found in DataFrame"
        )

    if event_col not in df.columns:
        raise InvalidInputError(f"Event column '{event_col}' not found in DataFrame")

    if not pd.api.types.is_numeric_dtype(df[characteristic_col]):
        raise InvalidInputError(
            f"Characteristic column '{characteristic_col}' must be numeric, "
            f"found {df[characteristic_col].dtype}"
        )

    event_dtype = df[event_col].dtype
    if not (pd.api.types.is_bool_dtype(event_dtype) or pd.api.types.is_integer_dtype(event_dtype)):
        raise InvalidInputError(
            f"Event column '{event_col}' must be boolean or integer, found {event_dtype}"
        )
