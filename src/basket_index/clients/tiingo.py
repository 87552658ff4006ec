"""Tiingo client: end-of-day prices and daily fundamentals (market cap)."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from datetime import date

from basket_index.data_pipeline.errors import ConfigurationError, PayloadShapeError, PipelineStepError
from basket_index.data_pipeline.fetcher import FetchFailure, UpstreamClient
from basket_index.data_pipeline.logging_utils import log_event
from basket_index.data_pipeline.normalize import latest_market_cap, parse_daily_prices
from basket_index.data_pipeline.types import AssetSeries, SizingSnapshot
from basket_index.settings import DEFAULT_TIINGO_BASE_URL, ENV_TIINGO_API_KEY

logger = logging.getLogger(__name__)


class TiingoClient:
    provider = "tiingo"

    def __init__(
        self,
        upstream: UpstreamClient,
        *,
        api_key: str | None,
        base_url: str = DEFAULT_TIINGO_BASE_URL,
    ) -> None:
        self._upstream = upstream
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")

    def require_credentials(self) -> None:
        if not self._api_key:
            raise ConfigurationError(
                f"Missing {ENV_TIINGO_API_KEY} environment variable",
                setting=ENV_TIINGO_API_KEY,
            )

    def _headers(self) -> dict[str, str]:
        self.require_credentials()
        return {"Content-Type": "application/json", "Authorization": f"Token {self._api_key}"}

    async def fetch_daily_prices(self, ticker: str, start: date, end: date) -> AssetSeries:
        """Daily closes (adjusted where available) between ``start`` and ``end``."""
        result = await self._upstream.fetch(
            f"{self._base_url}/tiingo/daily/{ticker.lower()}/prices",
            params={"startDate": start.isoformat(), "endDate": end.isoformat()},
            headers=self._headers(),
        )
        if isinstance(result, FetchFailure):
            raise result.to_step_error("fetch_history", f"Failed to fetch price history for {ticker}")
        try:
            return parse_daily_prices(ticker, result.payload)
        except PayloadShapeError as exc:
            raise PipelineStepError(
                "fetch_history",
                f"Unexpected price history format for {ticker}",
                details=str(exc),
            ) from exc

    async def fetch_price_histories(
        self,
        tickers: Sequence[str],
        start: date,
        end: date,
    ) -> dict[str, AssetSeries]:
        """Fetch all tickers concurrently; a failed ticker yields an empty series."""
        self.require_credentials()
        results = await asyncio.gather(*(self._prices_or_empty(ticker, start, end) for ticker in tickers))
        return {series.asset_id: series for series in results}

    async def _prices_or_empty(self, ticker: str, start: date, end: date) -> AssetSeries:
        try:
            return await self.fetch_daily_prices(ticker, start, end)
        except PipelineStepError as exc:
            log_event(
                logger,
                "history_unavailable",
                level=logging.WARNING,
                provider=self.provider,
                asset=ticker,
                details=exc.details,
                upstream_status=exc.upstream_status,
            )
            return parse_daily_prices(ticker, [])

    async def fetch_market_cap(self, ticker: str, start: date) -> float | FetchFailure:
        result = await self._upstream.fetch(
            f"{self._base_url}/tiingo/fundamentals/{ticker.lower()}/daily",
            params={"startDate": start.isoformat()},
            headers=self._headers(),
        )
        if isinstance(result, FetchFailure):
            return result
        try:
            return latest_market_cap(result.payload)
        except PayloadShapeError:
            return 0.0

    async def fetch_sizing(self, tickers: Sequence[str], start: date) -> SizingSnapshot:
        """Latest market cap per ticker.

        A ticker whose fundamentals are unavailable sizes at 0. When every
        request fails the upstream failure is raised as ``fetch_markets``.
        """
        self.require_credentials()
        results = await asyncio.gather(*(self.fetch_market_cap(ticker, start) for ticker in tickers))
        failures = [item for item in results if isinstance(item, FetchFailure)]
        if tickers and len(failures) == len(tickers):
            raise failures[-1].to_step_error("fetch_markets", "Failed to fetch market caps from Tiingo")
        metrics = {
            ticker: 0.0 if isinstance(value, FetchFailure) else float(value)
            for ticker, value in zip(tickers, results)
        }
        return SizingSnapshot(metrics=metrics, extras={ticker: {} for ticker in tickers})
