"""CoinGecko Pro client: market listing (sizing) and per-coin price history."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from basket_index.data_pipeline.errors import ConfigurationError, PayloadShapeError, PipelineStepError
from basket_index.data_pipeline.fetcher import FetchFailure, UpstreamClient
from basket_index.data_pipeline.logging_utils import log_event
from basket_index.data_pipeline.normalize import parse_market_chart, parse_markets
from basket_index.data_pipeline.types import AssetSeries, SizingSnapshot
from basket_index.settings import DEFAULT_COINGECKO_BASE_URL, ENV_COINGECKO_API_KEY

logger = logging.getLogger(__name__)


class CoinGeckoClient:
    """Key-authenticated access to ``/coins/markets`` and ``/coins/{id}/market_chart``."""

    provider = "coingecko"

    def __init__(
        self,
        upstream: UpstreamClient,
        *,
        api_key: str | None,
        base_url: str = DEFAULT_COINGECKO_BASE_URL,
        vs_currency: str = "usd",
    ) -> None:
        self._upstream = upstream
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._vs_currency = vs_currency

    def require_credentials(self) -> None:
        if not self._api_key:
            raise ConfigurationError(
                f"Missing {ENV_COINGECKO_API_KEY} environment variable",
                setting=ENV_COINGECKO_API_KEY,
            )

    def _headers(self) -> dict[str, str]:
        self.require_credentials()
        return {"Accept": "application/json", "x-cg-pro-api-key": str(self._api_key)}

    async def fetch_markets(self, ids: Sequence[str]) -> SizingSnapshot:
        """Market caps, spot prices and 24h changes for ``ids``."""
        result = await self._upstream.fetch(
            f"{self._base_url}/coins/markets",
            params={
                "vs_currency": self._vs_currency,
                "ids": ",".join(ids),
                "order": "market_cap_desc",
                "per_page": max(100, len(ids)),
                "page": 1,
                "sparkline": "false",
            },
            headers=self._headers(),
        )
        if isinstance(result, FetchFailure):
            raise result.to_step_error("fetch_markets", "Failed to fetch market data from CoinGecko")
        try:
            return parse_markets(result.payload, ids)
        except PayloadShapeError as exc:
            raise PipelineStepError("parse_markets", "Unexpected market data format", details=str(exc)) from exc

    async def fetch_history(self, asset_id: str, days: int) -> AssetSeries:
        result = await self._upstream.fetch(
            f"{self._base_url}/coins/{asset_id}/market_chart",
            params={"vs_currency": self._vs_currency, "days": int(days)},
            headers=self._headers(),
        )
        if isinstance(result, FetchFailure):
            raise result.to_step_error("fetch_history", f"Failed to fetch price history for {asset_id}")
        try:
            return parse_market_chart(asset_id, result.payload)
        except PayloadShapeError as exc:
            raise PipelineStepError(
                "fetch_history",
                f"Unexpected price history format for {asset_id}",
                details=str(exc),
            ) from exc

    async def fetch_histories(self, ids: Sequence[str], days: int) -> dict[str, AssetSeries]:
        """Fetch every history concurrently; a failed asset yields an empty series."""
        self.require_credentials()
        results = await asyncio.gather(*(self._history_or_empty(asset_id, days) for asset_id in ids))
        return {series.asset_id: series for series in results}

    async def _history_or_empty(self, asset_id: str, days: int) -> AssetSeries:
        try:
            return await self.fetch_history(asset_id, days)
        except PipelineStepError as exc:
            log_event(
                logger,
                "history_unavailable",
                level=logging.WARNING,
                provider=self.provider,
                asset=asset_id,
                details=exc.details,
                upstream_status=exc.upstream_status,
            )
            return parse_market_chart(asset_id, [])
