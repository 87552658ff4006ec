"""Merge independently sampled asset series onto one UTC calendar-day timeline."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

import numpy as np
import pandas as pd

from basket_index.data_pipeline.types import AlignedPoint, AssetSeries


def _utc_index(index: pd.Index) -> pd.DatetimeIndex:
    idx = pd.DatetimeIndex(index)
    if idx.tz is None:
        return idx.tz_localize("UTC")
    return idx.tz_convert("UTC")


def _empty_frame(columns: Sequence[str] = ()) -> pd.DataFrame:
    return pd.DataFrame(columns=list(columns), index=pd.DatetimeIndex([], tz="UTC"), dtype=float)


def daily_samples(series: AssetSeries) -> pd.Series:
    """One price per UTC day floor: the earliest valid sample within that day.

    Day floors are whole days apart, so the nearest sample to a day within
    less than one day is always a sample from that same day.
    """
    if series.is_empty:
        return pd.Series(dtype=float, index=pd.DatetimeIndex([], tz="UTC"), name=series.asset_id)
    prices = pd.Series(series.prices.to_numpy(dtype=float), index=_utc_index(series.prices.index))
    prices = prices[np.isfinite(prices.to_numpy()) & (prices.to_numpy() > 0)]
    prices = prices.sort_index(kind="mergesort")
    daily = prices.groupby(prices.index.floor("D")).first()
    daily.index.name = None
    daily.name = series.asset_id
    return daily


def align_frame(series: Iterable[AssetSeries]) -> pd.DataFrame:
    """Day-by-asset price frame over the union of all day floors.

    Columns follow the input order; a missing sample is NaN, never zero. Days
    with no contributing asset do not appear.
    """
    columns: dict[str, pd.Series] = {}
    for item in series:
        columns[item.asset_id] = daily_samples(item)
    if not columns:
        return _empty_frame()
    non_empty = [col for col in columns.values() if not col.empty]
    if not non_empty:
        return _empty_frame(list(columns))
    union = non_empty[0].index
    for col in non_empty[1:]:
        union = union.union(col.index)
    frame = pd.DataFrame({asset: col.reindex(union) for asset, col in columns.items()}, index=union)
    frame = frame.sort_index().dropna(how="all")
    return frame.astype(float)


def points_from_frame(frame: pd.DataFrame) -> list[AlignedPoint]:
    points: list[AlignedPoint] = []
    for timestamp, row in frame.iterrows():
        prices = {str(asset): float(price) for asset, price in row.items() if pd.notna(price)}
        if prices:
            points.append(AlignedPoint(timestamp=pd.Timestamp(timestamp), prices=prices))
    return points


def frame_from_points(points: Sequence[AlignedPoint], columns: Sequence[str] | None = None) -> pd.DataFrame:
    if not points:
        return _empty_frame(columns or ())
    index = pd.DatetimeIndex([point.timestamp for point in points])
    frame = pd.DataFrame([point.prices for point in points], index=_utc_index(index), dtype=float)
    if columns is not None:
        frame = frame.reindex(columns=list(columns))
    return frame


def align(series: Iterable[AssetSeries]) -> list[AlignedPoint]:
    """Align asset series by UTC calendar day."""
    return points_from_frame(align_frame(series))


def forward_fill_frame(frame: pd.DataFrame) -> pd.DataFrame:
    """Carry each asset's last known price forward; leading gaps stay empty."""
    return frame.ffill()


def forward_fill(points: Sequence[AlignedPoint], columns: Sequence[str] | None = None) -> list[AlignedPoint]:
    return points_from_frame(forward_fill_frame(frame_from_points(points, columns)))
