"""Percent-return comparison across tickers and single-ticker price history."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime, timedelta
from typing import Any

from basket_index.clients.tiingo import TiingoClient
from basket_index.common.cache_config import CacheTTL
from basket_index.common.ranges import TimeRange, range_to_days
from basket_index.common.universe import display_name
from basket_index.data_pipeline.alignment import align_frame, forward_fill_frame
from basket_index.data_pipeline.errors import PipelineStepError
from basket_index.data_pipeline.index_values import ChangePolicy, compute_change, percent_return_points
from basket_index.data_pipeline.provenance import request_fingerprint
from basket_index.data_pipeline.types import IndexPoint
from basket_index.services.composer import ResponseComposer
from basket_index.services.index_service import utc_now

COMPARE_ERROR = "Comparison unavailable"
HISTORY_ERROR = "History unavailable"


class CompareHistoryService:
    """Forward-filled percent returns per ticker, each anchored at its first valid close."""

    endpoint = "compare_history"
    source = "Tiingo"
    change_policy = ChangePolicy.PREVIOUS_ELEMENT

    def __init__(
        self,
        client: TiingoClient,
        composer: ResponseComposer,
        *,
        ttl: CacheTTL | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.client = client
        self.composer = composer
        self.ttl = ttl or CacheTTL()
        self._clock = clock

    async def compare(self, time_range: TimeRange, tickers: Sequence[str]) -> dict[str, Any]:
        symbols = list(tickers)
        now = self._clock()
        days = range_to_days(time_range, now)
        return await self.composer.compose(
            key=f"{self.endpoint}:{time_range.value}:{request_fingerprint(symbols)}",
            endpoint=self.endpoint,
            source=self.source,
            ttl=self.ttl.ttl_for(self.endpoint),
            error_message=COMPARE_ERROR,
            build=lambda: self._build(symbols, time_range, days, now),
        )

    async def _build(
        self,
        symbols: list[str],
        time_range: TimeRange,
        days: int,
        now: datetime,
    ) -> dict[str, Any]:
        self.client.require_credentials()
        end = now.date()
        histories = await self.client.fetch_price_histories(symbols, end - timedelta(days=days), end)
        available = [histories[symbol] for symbol in symbols if not histories[symbol].is_empty]
        missing = [symbol for symbol in symbols if histories[symbol].is_empty]
        if not available:
            raise PipelineStepError(
                "fetch_history",
                "Failed to fetch price history",
                details=f"0 of {len(symbols)} tickers returned price history",
            )

        frame = forward_fill_frame(align_frame(available))
        if frame.empty:
            raise PipelineStepError("combine_prices", "No aligned price data", details="Zero aligned days")

        series: dict[str, list[dict[str, Any]]] = {}
        latest: dict[str, float] = {}
        last: dict[str, dict[str, float]] = {}
        for item in available:
            points = percent_return_points(frame[item.asset_id])
            if not points:
                missing.append(item.asset_id)
                continue
            series[item.asset_id] = [point.to_dict() for point in points]
            latest[item.asset_id] = points[-1].value
            change = compute_change(points, self.change_policy)
            if change is not None:
                last[item.asset_id] = change.to_dict()
        if not series:
            raise PipelineStepError(
                "calculate_returns",
                "No valid returns computed",
                details=f"0 of {len(symbols)} tickers produced a valid baseline",
            )

        return {
            "tickers": [symbol for symbol in symbols if symbol in series],
            "range": time_range.value,
            "changePolicy": self.change_policy.value,
            "series": series,
            "latest": latest,
            "last": last,
            "missing": missing,
        }


class StockHistoryService:
    """Raw daily closes for one ticker."""

    endpoint = "stock_history"
    source = "Tiingo"
    change_policy = ChangePolicy.PREVIOUS_ELEMENT

    def __init__(
        self,
        client: TiingoClient,
        composer: ResponseComposer,
        *,
        ttl: CacheTTL | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.client = client
        self.composer = composer
        self.ttl = ttl or CacheTTL()
        self._clock = clock

    async def history(self, ticker: str, time_range: TimeRange) -> dict[str, Any]:
        now = self._clock()
        days = range_to_days(time_range, now)
        return await self.composer.compose(
            key=f"{self.endpoint}:{time_range.value}:{ticker}",
            endpoint=self.endpoint,
            source=self.source,
            ttl=self.ttl.ttl_for(self.endpoint),
            error_message=HISTORY_ERROR,
            build=lambda: self._build(ticker, time_range, days, now),
        )

    async def _build(self, ticker: str, time_range: TimeRange, days: int, now: datetime) -> dict[str, Any]:
        self.client.require_credentials()
        end = now.date()
        series = await self.client.fetch_daily_prices(ticker, end - timedelta(days=days), end)
        if series.is_empty:
            raise PipelineStepError("fetch_history", f"No price history for {ticker}")
        points = [IndexPoint(ts, float(price)) for ts, price in series.prices.items()]
        change = compute_change(points, self.change_policy)
        return {
            "ticker": ticker,
            "name": display_name(ticker),
            "range": time_range.value,
            "changePolicy": self.change_policy.value,
            "points": [point.to_dict() for point in points],
            "last": change.to_dict() if change is not None else None,
        }
