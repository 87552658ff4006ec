from __future__ import annotations

from collections.abc import Mapping, Sequence
from enum import Enum

import numpy as np
import pandas as pd

from basket_index.data_pipeline.alignment import frame_from_points
from basket_index.data_pipeline.types import AlignedPoint, IndexPoint, LastValue, WeightAssignment

INDEX_BASE = 100.0


class ChangePolicy(str, Enum):
    """How the day-over-day change of the latest value is measured."""

    PREVIOUS_ELEMENT = "previous_element"
    LAST_DISTINCT_DAY = "last_distinct_day"


def _weights_mapping(weights: WeightAssignment | Mapping[str, float]) -> dict[str, float]:
    raw = weights.weights if isinstance(weights, WeightAssignment) else weights
    return {asset: float(weight) for asset, weight in raw.items() if float(weight) > 0}


def compute_weighted_index(
    points: Sequence[AlignedPoint],
    weights: WeightAssignment | Mapping[str, float],
) -> list[IndexPoint]:
    """Base-100 composite over aligned points.

    The baseline is the first point where every weighted asset has a price,
    or the first point when no such day exists. Each day averages the present
    assets' price relatives, weighted and renormalized over those assets; a
    day with none of them present carries the base value.
    """
    if not points:
        return []
    weight_map = _weights_mapping(weights)
    assets = list(weight_map)
    frame = frame_from_points(points, columns=assets)
    if not assets:
        return [IndexPoint(ts, INDEX_BASE) for ts in frame.index]

    complete = frame.notna().all(axis=1)
    base_row = frame.loc[complete].iloc[0] if complete.any() else frame.iloc[0]
    base = base_row.where(base_row > 0).dropna()
    contributing = list(base.index)

    relatives = frame[contributing].div(base)
    weight_series = pd.Series(weight_map, dtype=float)[contributing]
    numerator = relatives.mul(weight_series, axis=1).sum(axis=1, min_count=1)
    denominator = relatives.notna().mul(weight_series, axis=1).sum(axis=1)
    ratio = (numerator / denominator.where(denominator > 0)).fillna(1.0)
    values = INDEX_BASE * ratio

    return [IndexPoint(pd.Timestamp(ts), float(value)) for ts, value in values.items()]


def compute_percent_returns(prices: pd.Series) -> pd.Series:
    """Percent return of each sample relative to the first valid price.

    Non-finite or non-positive samples take the last valid value. Output
    starts at the baseline sample; an all-invalid series yields an empty
    result.
    """
    values = pd.to_numeric(pd.Series(prices), errors="coerce").astype(float)
    valid = values.where(np.isfinite(values.to_numpy()) & (values.to_numpy() > 0))
    mask = valid.notna().to_numpy()
    if not mask.any():
        return pd.Series(dtype=float, index=values.index[:0])
    start = int(mask.argmax())
    baseline = float(valid.iloc[start])
    filled = valid.iloc[start:].ffill()
    return 100.0 * (filled / baseline - 1.0)


def percent_return_points(prices: pd.Series) -> list[IndexPoint]:
    returns = compute_percent_returns(prices)
    return [IndexPoint(pd.Timestamp(ts), float(value)) for ts, value in returns.items()]


def _previous_value(points: Sequence[IndexPoint], policy: ChangePolicy) -> float | None:
    if policy is ChangePolicy.PREVIOUS_ELEMENT:
        return points[-2].value
    last_day = pd.Timestamp(points[-1].timestamp).floor("D")
    for point in reversed(points[:-1]):
        if pd.Timestamp(point.timestamp).floor("D") < last_day:
            return point.value
    return None


def compute_change(points: Sequence[IndexPoint], policy: ChangePolicy) -> LastValue | None:
    """Latest value and its change against the point chosen by ``policy``."""
    if not points:
        return None
    latest = float(points[-1].value)
    if len(points) < 2:
        return LastValue(latest, 0.0, 0.0)
    previous = _previous_value(points, ChangePolicy(policy))
    if previous is None:
        return LastValue(latest, 0.0, 0.0)
    change_abs = latest - float(previous)
    change_pct = change_abs / float(previous) * 100.0 if previous > 0 else 0.0
    return LastValue(latest, change_abs, change_pct)
