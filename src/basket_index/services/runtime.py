"""Wiring of settings, cache, upstream clients and services for one process."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass

import httpx

from basket_index.clients.coingecko import CoinGeckoClient
from basket_index.clients.tiingo import TiingoClient
from basket_index.common.cache_config import CacheTTL
from basket_index.data_pipeline.cache import CacheService, InMemoryKeyedCache
from basket_index.data_pipeline.fetcher import RetryPolicy, Sleep, UpstreamClient
from basket_index.data_pipeline.freshness import FreshnessThresholds
from basket_index.observability.metrics import MetricsCollector
from basket_index.services.comparison_service import CompareHistoryService, StockHistoryService
from basket_index.services.composer import ResponseComposer
from basket_index.services.index_service import CryptoIndexService, EquityIndexService
from basket_index.settings import IndexSettings, load_index_settings


def retry_policy_from_settings(settings: IndexSettings) -> RetryPolicy:
    return RetryPolicy(
        max_attempts=settings.fetch_max_attempts,
        base_delay_seconds=settings.backoff_base_seconds,
        max_delay_seconds=settings.backoff_max_seconds,
        timeout_seconds=settings.fetch_timeout_seconds,
    )


@dataclass
class IndexRuntime:
    settings: IndexSettings
    metrics: MetricsCollector
    cache: CacheService
    composer: ResponseComposer
    http_client: httpx.AsyncClient
    crypto: CryptoIndexService
    equity: EquityIndexService
    compare: CompareHistoryService
    history: StockHistoryService
    owns_http_client: bool = True

    async def aclose(self) -> None:
        if self.owns_http_client:
            await self.http_client.aclose()


def build_runtime(
    settings: IndexSettings | None = None,
    *,
    http_client: httpx.AsyncClient | None = None,
    cache: CacheService | None = None,
    metrics: MetricsCollector | None = None,
    ttl: CacheTTL | None = None,
    sleep: Sleep = asyncio.sleep,
    clock: Callable[[], float] = time.time,
) -> IndexRuntime:
    """Build every service around one shared cache and one HTTP connection pool."""
    settings = settings or load_index_settings()
    metrics = metrics or MetricsCollector()
    ttl = ttl or CacheTTL.from_env()
    cache = cache if cache is not None else InMemoryKeyedCache(max_entries=settings.cache_max_entries, clock=clock)
    owns_http_client = http_client is None
    http_client = http_client or httpx.AsyncClient(follow_redirects=True)
    policy = retry_policy_from_settings(settings)

    composer = ResponseComposer(
        cache,
        thresholds=FreshnessThresholds(
            live_seconds=settings.live_seconds,
            degraded_seconds=settings.degraded_seconds,
        ),
        metrics=metrics,
        clock=clock,
        telemetry_enabled=settings.telemetry_enabled,
        telemetry_file=settings.telemetry_file,
    )
    coingecko = CoinGeckoClient(
        UpstreamClient(provider="coingecko", policy=policy, http_client=http_client, sleep=sleep, metrics=metrics),
        api_key=settings.coingecko_api_key,
        base_url=settings.coingecko_base_url,
    )
    tiingo = TiingoClient(
        UpstreamClient(provider="tiingo", policy=policy, http_client=http_client, sleep=sleep, metrics=metrics),
        api_key=settings.tiingo_api_key,
        base_url=settings.tiingo_base_url,
    )
    return IndexRuntime(
        settings=settings,
        metrics=metrics,
        cache=cache,
        composer=composer,
        http_client=http_client,
        crypto=CryptoIndexService(coingecko, composer, ttl=ttl),
        equity=EquityIndexService(tiingo, composer, ttl=ttl),
        compare=CompareHistoryService(tiingo, composer, ttl=ttl),
        history=StockHistoryService(tiingo, composer, ttl=ttl),
        owns_http_client=owns_http_client,
    )
