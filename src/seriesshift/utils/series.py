# src/seriesshift/utils/series.py

"""Construction and validation of input series."""

from typing import Optional, Sequence

import logging
import numpy as np
import pandas as pd

from ..changepoint.events import SampledSeries, SamplePoint

logger = logging.getLogger(__name__)


def build_series(
    values: Sequence[float], positions: Optional[Sequence[float]] = None
) -> SampledSeries:
    """Build an unsampled series from values and optional positions.

    Args:
        values: Observed values
        positions: Positions of the values (default: 0, 1, ..., n - 1)

    Returns:
        Series whose original indices are 0..n-1.

    Raises:
        ValueError: If values are not one dimensional, contain NaN or infinity,
            or positions do not match the values or are not sorted ascending.
    """
    values = np.asarray(values, dtype=np.float64)
    if values.ndim != 1:
        raise ValueError(f"Values must be one dimensional, got shape {values.shape}")
    if not np.all(np.isfinite(values)):
        raise ValueError("Values must be finite (no NaN or infinity)")

    if positions is None:
        positions = np.arange(len(values), dtype=np.float64)
    else:
        positions = np.asarray(positions, dtype=np.float64)
        if positions.shape != values.shape:
            raise ValueError(
                f"Positions length {len(positions)} does not match "
                f"values length {len(values)}"
            )
        if not np.all(np.isfinite(positions)):
            raise ValueError("Positions must be finite")
        if np.any(np.diff(positions) < 0):
            raise ValueError("Positions must be sorted in ascending order")

    points = tuple(
        SamplePoint(position=float(p), value=float(v), original_index=i)
        for i, (p, v) in enumerate(zip(positions, values))
    )
    return SampledSeries(points=points, original_size=len(points), sampled_size=len(points))


def _positions_from_column(column: pd.Series) -> pd.Series:
    """Numeric positions; datetimes become epoch milliseconds."""
    if pd.api.types.is_datetime64_any_dtype(column):
        epoch = pd.Timestamp("1970-01-01", tz=column.dt.tz)
        return (column - epoch) / pd.Timedelta(milliseconds=1)
    if pd.api.types.is_numeric_dtype(column):
        return column.astype(np.float64)

    numeric = pd.to_numeric(column, errors="coerce")
    if numeric.notna().sum() == column.notna().sum():
        return numeric.astype(np.float64)
    try:
        parsed = pd.to_datetime(column)
    except (ValueError, TypeError) as e:
        raise ValueError(
            f"Position column '{column.name}' is neither numeric nor datetime"
        ) from e
    return _positions_from_column(parsed)


def series_from_frame(
    frame: pd.DataFrame, value_column: str, position_column: Optional[str] = None
) -> SampledSeries:
    """Build a series from DataFrame columns.

    Rows whose value or position is missing or not numeric are dropped and the
    remaining rows are ordered by position.

    Args:
        frame: Source table
        value_column: Column holding the observed values
        position_column: Optional column to order by (numbers or datetimes)

    Returns:
        The unsampled series.

    Raises:
        ValueError: If a column is missing or holds no usable rows.
    """
    for name in (value_column, position_column):
        if name is not None and name not in frame.columns:
            raise ValueError(
                f"Column '{name}' not found. Available columns: {list(frame.columns)}"
            )

    values = pd.to_numeric(frame[value_column], errors="coerce")
    data = pd.DataFrame({"value": values})
    if position_column is not None:
        data["position"] = _positions_from_column(frame[position_column]).to_numpy()
    else:
        data["position"] = np.arange(len(frame), dtype=np.float64)

    data = data.replace([np.inf, -np.inf], np.nan)
    cleaned = data.dropna()
    dropped = len(data) - len(cleaned)
    if dropped:
        logger.warning(f"Dropped {dropped} rows with missing or non-numeric data")
    if cleaned.empty:
        raise ValueError(f"Column '{value_column}' holds no numeric values")

    cleaned = cleaned.sort_values("position", kind="stable")
    logger.debug(f"Built series of {len(cleaned)} points from '{value_column}'")
    return build_series(cleaned["value"].to_numpy(), cleaned["position"].to_numpy())
