"""Ingress normalization: map accepted upstream payload shapes onto canonical types.

Everything downstream of this module (weights, alignment, index values) only
sees ``AssetSeries`` and ``SizingSnapshot`` instances.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

import numpy as np
import pandas as pd

from basket_index.data_pipeline.errors import PayloadShapeError
from basket_index.data_pipeline.types import AssetSeries, SizingSnapshot

_LIST_CONTAINER_KEYS = ("data", "coins", "items", "results")
_CHART_CONTAINER_KEYS = ("prices", "data", "points")


def _extract_numeric(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, np.number)):
        value_float = float(value)
        if not np.isfinite(value_float):
            return None
        return value_float
    raw = str(value).strip()
    if not raw:
        return None
    try:
        value_float = float(raw.replace(",", "").replace(" ", ""))
    except (TypeError, ValueError):
        return None
    return value_float if np.isfinite(value_float) else None


def _unwrap_list(payload: Any, keys: Iterable[str]) -> list[Any]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, Mapping):
        for key in keys:
            candidate = payload.get(key)
            if isinstance(candidate, list):
                return candidate
    raise PayloadShapeError(f"Expected a list payload, got {type(payload).__name__}")


def _to_utc_timestamps(values: pd.Series) -> pd.Series:
    numeric = pd.to_numeric(values, errors="coerce")
    if numeric.notna().all() and len(values) > 0:
        return pd.to_datetime(numeric, unit="ms", utc=True, errors="coerce")
    return pd.to_datetime(values, utc=True, errors="coerce", format="mixed")


def series_from_samples(asset_id: str, samples: Iterable[tuple[Any, Any]]) -> AssetSeries:
    """Validate raw ``(timestamp, price)`` samples into an ordered ``AssetSeries``.

    Timestamps may be epoch milliseconds or ISO strings. Samples with an
    unparsable timestamp, or a price that is non-finite or not strictly
    positive, are dropped.
    """
    rows = list(samples)
    if not rows:
        return AssetSeries(asset_id, pd.Series(dtype=float, index=pd.DatetimeIndex([], tz="UTC")))

    frame = pd.DataFrame(rows, columns=["ts", "price"])
    frame["ts"] = _to_utc_timestamps(frame["ts"])
    frame["price"] = frame["price"].map(_extract_numeric).astype(float)
    frame = frame.dropna(subset=["ts", "price"])
    frame = frame[frame["price"] > 0]
    frame = frame.sort_values("ts", kind="mergesort")

    prices = pd.Series(frame["price"].to_numpy(dtype=float), index=pd.DatetimeIndex(frame["ts"]), name=asset_id)
    return AssetSeries(asset_id, prices)


def parse_market_chart(asset_id: str, payload: Any) -> AssetSeries:
    """Normalize a price-history payload.

    Accepted shapes: ``{"prices": [[ms, price], ...]}``, a bare list of pairs,
    or a list of ``{"t"|"timestamp": ..., "v"|"price": ...}`` objects.
    """
    rows = _unwrap_list(payload, _CHART_CONTAINER_KEYS)
    samples: list[tuple[Any, Any]] = []
    for row in rows:
        if isinstance(row, (list, tuple)) and len(row) >= 2:
            samples.append((row[0], row[1]))
        elif isinstance(row, Mapping):
            ts = row.get("t", row.get("timestamp", row.get("date")))
            price = row.get("v", row.get("price", row.get("close")))
            samples.append((ts, price))
    return series_from_samples(asset_id, samples)


def parse_daily_prices(asset_id: str, payload: Any) -> AssetSeries:
    """Normalize end-of-day rows, preferring split/dividend adjusted closes."""
    rows = _unwrap_list(payload, _LIST_CONTAINER_KEYS)
    samples: list[tuple[Any, Any]] = []
    for row in rows:
        if not isinstance(row, Mapping):
            continue
        price = _extract_numeric(row.get("adjClose"))
        if price is None or price <= 0:
            price = _extract_numeric(row.get("close"))
        samples.append((row.get("date"), price))
    return series_from_samples(asset_id, samples)


def parse_markets(payload: Any, requested_ids: Iterable[str]) -> SizingSnapshot:
    """Build a sizing snapshot from a market listing keyed by provider id.

    Every requested id appears in the snapshot; ids missing from the listing,
    or listed without a usable market cap, carry a metric of 0.
    """
    rows = _unwrap_list(payload, _LIST_CONTAINER_KEYS)
    by_id: dict[str, Mapping[str, Any]] = {}
    for row in rows:
        if isinstance(row, Mapping) and row.get("id"):
            by_id[str(row["id"])] = row

    metrics: dict[str, float] = {}
    extras: dict[str, dict[str, Any]] = {}
    for asset_id in requested_ids:
        row = by_id.get(asset_id, {})
        market_cap = _extract_numeric(row.get("market_cap"))
        metrics[asset_id] = market_cap if market_cap is not None and market_cap > 0 else 0.0
        extras[asset_id] = {
            "symbol": str(row["symbol"]).upper() if row.get("symbol") else None,
            "name": row.get("name"),
            "price": _extract_numeric(row.get("current_price")),
            "change24h": _extract_numeric(row.get("price_change_percentage_24h")),
        }
    return SizingSnapshot(metrics=metrics, extras=extras)


def latest_market_cap(payload: Any) -> float:
    """Most recent positive ``marketCap`` from a daily fundamentals listing, or 0."""
    if isinstance(payload, Mapping) and "marketCap" in payload:
        rows: list[Any] = [payload]
    else:
        rows = _unwrap_list(payload, _LIST_CONTAINER_KEYS)
    dated = [
        (str(row.get("date") or ""), _extract_numeric(row.get("marketCap")))
        for row in rows
        if isinstance(row, Mapping)
    ]
    dated = [(date, value) for date, value in dated if value is not None and value > 0]
    if not dated:
        return 0.0
    dated.sort(key=lambda item: item[0])
    return float(dated[-1][1])
