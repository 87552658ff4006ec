"""Weighted basket indices: sizing, weights, alignment and base-100 values."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime, timedelta, timezone
from typing import Any

from basket_index.clients.coingecko import CoinGeckoClient
from basket_index.clients.tiingo import TiingoClient
from basket_index.common.cache_config import CacheTTL
from basket_index.common.ranges import TimeRange, range_to_days
from basket_index.common.universe import CRYPTO_BASKET, EQUITY_BASKET, Constituent, resolve_constituents
from basket_index.data_pipeline.alignment import align, forward_fill
from basket_index.data_pipeline.errors import InsufficientDataError, PipelineStepError
from basket_index.data_pipeline.index_values import (
    INDEX_BASE,
    ChangePolicy,
    compute_change,
    compute_weighted_index,
)
from basket_index.data_pipeline.provenance import request_fingerprint
from basket_index.data_pipeline.types import AssetSeries, IndexPoint, SizingSnapshot, WeightAssignment
from basket_index.data_pipeline.weights import MIN_USABLE_ASSETS, compute_weights
from basket_index.services.composer import ResponseComposer

INDEX_ERROR = "Index unavailable"
FUNDAMENTALS_LOOKBACK_DAYS = 14


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def allocate(snapshot: SizingSnapshot, min_weight: float, max_weight: float) -> WeightAssignment:
    try:
        return compute_weights(snapshot, min_weight, max_weight)
    except InsufficientDataError as exc:
        raise PipelineStepError(
            "calculate_weights",
            "Insufficient market cap data",
            details=f"Only {exc.usable} of {exc.total} assets have a usable market cap (need {exc.required})",
        ) from exc


def require_history(histories: Mapping[str, AssetSeries], min_usable: int = MIN_USABLE_ASSETS) -> None:
    """A composite needs as many priced assets as the weights need sized ones."""
    with_data = sum(1 for series in histories.values() if not series.is_empty)
    if with_data < min_usable:
        raise PipelineStepError(
            "fetch_history",
            "Insufficient price history",
            details=f"Only {with_data} of {len(histories)} assets returned price history (need {min_usable})",
        )


def index_payload(
    *,
    index_name: str,
    time_range: TimeRange,
    policy: ChangePolicy,
    constituents: Sequence[Constituent],
    snapshot: SizingSnapshot,
    weights: WeightAssignment,
    points: Sequence[IndexPoint],
) -> dict[str, Any]:
    last = compute_change(points, policy)
    rows = []
    for item in constituents:
        extras = snapshot.extras.get(item.id, {})
        rows.append(
            {
                "id": item.id,
                "symbol": extras.get("symbol") or item.symbol,
                "name": extras.get("name") or item.name,
                "weight": weights.get(item.id),
                "marketCap": snapshot.metrics.get(item.id, 0.0),
                "price": extras.get("price"),
                "change24h": extras.get("change24h"),
            }
        )
    rows.sort(key=lambda row: row["weight"], reverse=True)
    return {
        "indexName": index_name,
        "base": INDEX_BASE,
        "range": time_range.value,
        "changePolicy": policy.value,
        "points": [point.to_dict() for point in points],
        "weights": [{"id": row["id"], "symbol": row["symbol"], "weight": row["weight"]} for row in rows],
        "constituents": rows,
        "last": last.to_dict() if last is not None else None,
        "boundsRelaxed": weights.bounds_relaxed,
    }


class CryptoIndexService:
    """Market-cap weighted crypto basket; no forward-fill, prior-element change."""

    endpoint = "crypto_index"
    source = "CoinGecko Pro"
    index_name = "Robotics Crypto Index"
    change_policy = ChangePolicy.PREVIOUS_ELEMENT

    def __init__(
        self,
        client: CoinGeckoClient,
        composer: ResponseComposer,
        *,
        ttl: CacheTTL | None = None,
        min_weight: float = 0.02,
        max_weight: float = 0.20,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.client = client
        self.composer = composer
        self.ttl = ttl or CacheTTL()
        self.min_weight = min_weight
        self.max_weight = max_weight
        self._clock = clock

    async def get_index(self, time_range: TimeRange, ids: Sequence[str] | None = None) -> dict[str, Any]:
        constituents = resolve_constituents(list(ids) if ids else None, CRYPTO_BASKET)
        asset_ids = [item.id for item in constituents]
        days = range_to_days(time_range, self._clock())
        return await self.composer.compose(
            key=f"{self.endpoint}:{time_range.value}:{request_fingerprint(asset_ids)}",
            endpoint=self.endpoint,
            source=self.source,
            ttl=self.ttl.ttl_for(self.endpoint),
            error_message=INDEX_ERROR,
            build=lambda: self._build(constituents, time_range, days),
        )

    async def _build(self, constituents: Sequence[Constituent], time_range: TimeRange, days: int) -> dict[str, Any]:
        self.client.require_credentials()
        asset_ids = [item.id for item in constituents]
        snapshot, histories = await asyncio.gather(
            self.client.fetch_markets(asset_ids),
            self.client.fetch_histories(asset_ids, days),
            return_exceptions=True,
        )
        if isinstance(snapshot, BaseException):
            raise snapshot
        if isinstance(histories, BaseException):
            raise histories

        weights = allocate(snapshot, self.min_weight, self.max_weight)
        require_history(histories)
        aligned = align(histories[asset_id] for asset_id in asset_ids)
        if not aligned:
            raise PipelineStepError("combine_prices", "No aligned price data", details="Zero aligned days")
        points = compute_weighted_index(aligned, weights)
        if not points:
            raise PipelineStepError("calculate_index", "No index points computed")
        return index_payload(
            index_name=self.index_name,
            time_range=time_range,
            policy=self.change_policy,
            constituents=constituents,
            snapshot=snapshot,
            weights=weights,
            points=points,
        )


class EquityIndexService:
    """Market-cap weighted equity basket; forward-filled, last-distinct-day change."""

    endpoint = "equity_index"
    source = "Tiingo"
    index_name = "Robotics Equity Index"
    change_policy = ChangePolicy.LAST_DISTINCT_DAY

    def __init__(
        self,
        client: TiingoClient,
        composer: ResponseComposer,
        *,
        ttl: CacheTTL | None = None,
        min_weight: float = 0.01,
        max_weight: float = 0.10,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.client = client
        self.composer = composer
        self.ttl = ttl or CacheTTL()
        self.min_weight = min_weight
        self.max_weight = max_weight
        self._clock = clock

    async def get_index(self, time_range: TimeRange, tickers: Sequence[str] | None = None) -> dict[str, Any]:
        constituents = resolve_constituents(list(tickers) if tickers else None, EQUITY_BASKET)
        symbols = [item.id for item in constituents]
        now = self._clock()
        days = range_to_days(time_range, now)
        return await self.composer.compose(
            key=f"{self.endpoint}:{time_range.value}:{request_fingerprint(symbols)}",
            endpoint=self.endpoint,
            source=self.source,
            ttl=self.ttl.ttl_for(self.endpoint),
            error_message=INDEX_ERROR,
            build=lambda: self._build(constituents, time_range, days, now),
        )

    async def _build(
        self,
        constituents: Sequence[Constituent],
        time_range: TimeRange,
        days: int,
        now: datetime,
    ) -> dict[str, Any]:
        self.client.require_credentials()
        symbols = [item.id for item in constituents]
        end = now.date()
        snapshot, histories = await asyncio.gather(
            self.client.fetch_sizing(symbols, end - timedelta(days=FUNDAMENTALS_LOOKBACK_DAYS)),
            self.client.fetch_price_histories(symbols, end - timedelta(days=days), end),
            return_exceptions=True,
        )
        if isinstance(snapshot, BaseException):
            raise snapshot
        if isinstance(histories, BaseException):
            raise histories

        weights = allocate(snapshot, self.min_weight, self.max_weight)
        require_history(histories)
        for symbol in symbols:
            snapshot.extras.setdefault(symbol, {}).update(_latest_quote(histories[symbol]))

        aligned = forward_fill(align(histories[symbol] for symbol in symbols), columns=symbols)
        if not aligned:
            raise PipelineStepError("combine_prices", "No aligned price data", details="Zero aligned days")
        points = compute_weighted_index(aligned, weights)
        if not points:
            raise PipelineStepError("calculate_index", "No index points computed")
        return index_payload(
            index_name=self.index_name,
            time_range=time_range,
            policy=self.change_policy,
            constituents=constituents,
            snapshot=snapshot,
            weights=weights,
            points=points,
        )


def _latest_quote(series: AssetSeries) -> dict[str, float | None]:
    if series.is_empty:
        return {"price": None, "change24h": None}
    closes = series.prices
    price = float(closes.iloc[-1])
    if len(closes) < 2 or float(closes.iloc[-2]) <= 0:
        return {"price": price, "change24h": None}
    return {"price": price, "change24h": (price / float(closes.iloc[-2]) - 1.0) * 100.0}
