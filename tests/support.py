"""Test doubles and builders shared by the test modules."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx
import pandas as pd

from basket_index.data_pipeline.normalize import series_from_samples
from basket_index.data_pipeline.types import AssetSeries
from basket_index.settings import IndexSettings

BASE_EPOCH = 1_700_000_000.0
DAY_MS = 86_400_000


class FakeClock:
    """Manually advanced epoch-seconds clock."""

    def __init__(self, start: float = BASE_EPOCH) -> None:
        self.now = float(start)

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += float(seconds)


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


Responder = Callable[[httpx.Request], httpx.Response]


class FakeProvider:
    """Routes requests by URL path fragment; unmatched paths answer 404.

    Routes registered later take precedence, so a test can swap a working
    endpoint for a failing one mid-test.
    """

    def __init__(self) -> None:
        self.routes: list[tuple[str, Responder]] = []
        self.requests: list[httpx.Request] = []

    def route(self, fragment: str, responder: Responder | Any, status: int = 200) -> None:
        if not callable(responder):
            payload = responder

            def responder(request: httpx.Request) -> httpx.Response:
                return httpx.Response(status, json=payload)

        self.routes.insert(0, (fragment, responder))

    def fail(self, fragment: str, status: int, body: str = "upstream error") -> None:
        self.route(fragment, lambda request: httpx.Response(status, text=body))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for fragment, responder in self.routes:
            if fragment in request.url.path:
                return responder(request)
        return httpx.Response(404, text=f"no route for {request.url.path}")

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


def make_series(asset_id: str, samples: list[tuple[Any, float]]) -> AssetSeries:
    return series_from_samples(asset_id, samples)


def day_ms(day_offset: int, hour: int = 0) -> int:
    """Epoch milliseconds for 2024-01-01 UTC plus ``day_offset`` days and ``hour`` hours."""
    start = int(pd.Timestamp("2024-01-01", tz="UTC").value // 1_000_000)
    return start + day_offset * DAY_MS + hour * 3_600_000


def iso_day(day_offset: int) -> str:
    return (pd.Timestamp("2024-01-01", tz="UTC") + pd.Timedelta(days=day_offset)).strftime("%Y-%m-%dT00:00:00.000Z")


def settings_for_tests(**overrides: str | None) -> IndexSettings:
    environ: dict[str, str | None] = {
        "COINGECKO_PRO_API_KEY": "cg-test-key",
        "TIINGO_API_KEY": "tiingo-test-key",
        "BASKET_INDEX_BACKOFF_BASE_MS": "250",
        "BASKET_INDEX_BACKOFF_MAX_MS": "2000",
        "BASKET_INDEX_FETCH_MAX_ATTEMPTS": "3",
    }
    environ.update(overrides)
    return IndexSettings.from_env(environ={key: value for key, value in environ.items() if value is not None})


def coingecko_markets(caps: dict[str, float]) -> list[dict[str, Any]]:
    return [
        {
            "id": asset_id,
            "symbol": asset_id[:4],
            "name": asset_id.title(),
            "market_cap": cap,
            "current_price": 1.5,
            "price_change_percentage_24h": -2.5,
        }
        for asset_id, cap in caps.items()
    ]


def market_chart(prices: list[float], *, start_day: int = 0, hour: int = 6) -> dict[str, Any]:
    return {"prices": [[day_ms(start_day + i, hour), price] for i, price in enumerate(prices)]}


def tiingo_prices(closes: list[float | None], *, start_day: int = 0, skip: tuple[int, ...] = ()) -> list[dict[str, Any]]:
    rows = []
    for i, close in enumerate(closes):
        if i in skip:
            continue
        rows.append({"date": iso_day(start_day + i), "close": close, "adjClose": close})
    return rows
