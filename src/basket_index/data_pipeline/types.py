from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import pandas as pd


def timestamp_ms(ts: pd.Timestamp) -> int:
    """Unix epoch milliseconds for a (UTC) timestamp."""
    return int(pd.Timestamp(ts).value // 1_000_000)


@dataclass
class AssetSeries:
    """Validated price samples for one asset, ordered by UTC timestamp."""

    asset_id: str
    prices: pd.Series

    @property
    def is_empty(self) -> bool:
        return self.prices.empty

    def __len__(self) -> int:
        return int(self.prices.shape[0])


@dataclass
class SizingSnapshot:
    """Sizing metric per asset (0 means unknown/excluded), captured once per run."""

    metrics: dict[str, float]
    extras: dict[str, dict[str, Any]] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.metrics)


@dataclass(frozen=True)
class WeightAssignment:
    """Normalized allocation; weights sum to 1 within float tolerance."""

    weights: dict[str, float]
    min_weight: float
    max_weight: float
    bounds_relaxed: bool = False

    def get(self, asset_id: str, default: float = 0.0) -> float:
        return self.weights.get(asset_id, default)

    def __len__(self) -> int:
        return len(self.weights)


@dataclass(frozen=True)
class AlignedPoint:
    """Calendar-day bucket with the prices of the assets present that day."""

    timestamp: pd.Timestamp
    prices: dict[str, float]


@dataclass(frozen=True)
class IndexPoint:
    timestamp: pd.Timestamp
    value: float

    def to_dict(self) -> dict[str, Any]:
        return {"t": timestamp_ms(self.timestamp), "v": float(self.value)}


@dataclass(frozen=True)
class LastValue:
    """Latest value with its day-over-day change."""

    value: float
    change_abs: float
    change_pct: float

    def to_dict(self) -> dict[str, float]:
        return {"v": self.value, "changeAbs": self.change_abs, "changePct": self.change_pct}
