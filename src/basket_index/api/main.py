"""
FastAPI application for the basket index service.

Endpoints:
- GET /api/indices/crypto          - Market-cap weighted crypto basket index
- GET /api/indices/equity          - Market-cap weighted equity basket index
- GET /api/market/compare-history  - Percent-return comparison across tickers
- GET /api/market/history          - Daily closes for one ticker
- GET /api/market/health           - Service info and metrics snapshot
- GET /metrics                     - Prometheus exposition
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from basket_index import __version__
from basket_index.common.ranges import TimeRange, parse_asset_ids, parse_range, parse_tickers
from basket_index.common.universe import COMPARE_DEFAULT_TICKERS
from basket_index.data_pipeline.errors import RequestValidationError
from basket_index.observability.logging import configure_logging
from basket_index.services.composer import validation_failure
from basket_index.services.runtime import IndexRuntime, build_runtime
from basket_index.settings import IndexSettings, load_index_settings


def create_app(
    settings: IndexSettings | None = None,
    *,
    runtime: IndexRuntime | None = None,
    configure_logs: bool = True,
) -> FastAPI:
    """Build the API around one ``IndexRuntime`` (shared cache and HTTP pool)."""
    if runtime is None:
        runtime = build_runtime(settings or load_index_settings())
    settings = runtime.settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if configure_logs:
            configure_logging(
                settings.log_level,
                json_format=settings.log_json,
                log_file=settings.log_file,
                secrets=(settings.coingecko_api_key, settings.tiingo_api_key),
            )
        yield
        await runtime.aclose()

    app = FastAPI(
        title="Basket Index API",
        description="Weighted basket indices and market comparisons with cached, degradable upstream data",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.runtime = runtime

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content=validation_failure(str(exc)))

    # ==================== ENDPOINTS ====================

    @app.get("/api/indices/crypto", tags=["Indices"])
    async def crypto_index(
        range_: str | None = Query(None, alias="range"),
        ids: str | None = Query(None),
    ) -> dict[str, Any]:
        """Crypto basket index (default range 3M)."""
        time_range = parse_range(range_, TimeRange.THREE_MONTHS)
        asset_ids = parse_asset_ids(ids) if ids is not None else None
        return await runtime.crypto.get_index(time_range, asset_ids)

    @app.get("/api/indices/equity", tags=["Indices"])
    async def equity_index(
        range_: str | None = Query(None, alias="range"),
        tickers: str | None = Query(None),
    ) -> dict[str, Any]:
        """Equity basket index (default range 1Y)."""
        time_range = parse_range(range_, TimeRange.ONE_YEAR)
        symbols = parse_tickers(tickers) if tickers is not None else None
        return await runtime.equity.get_index(time_range, symbols)

    @app.get("/api/market/compare-history", tags=["Market"])
    async def compare_history(
        tickers: str | None = Query(None),
        range_: str | None = Query(None, alias="range"),
    ) -> dict[str, Any]:
        time_range = parse_range(range_, TimeRange.ONE_YEAR)
        symbols = parse_tickers(tickers, default=COMPARE_DEFAULT_TICKERS)
        return await runtime.compare.compare(time_range, symbols)

    @app.get("/api/market/history", tags=["Market"])
    async def stock_history(
        ticker: str | None = Query(None),
        range_: str | None = Query(None, alias="range"),
    ) -> dict[str, Any]:
        time_range = parse_range(range_, TimeRange.ONE_YEAR)
        symbols = parse_tickers(ticker)
        if len(symbols) != 1:
            raise RequestValidationError("Exactly one ticker is required")
        return await runtime.history.history(symbols[0], time_range)

    @app.get("/api/market/health", tags=["Health"])
    async def health() -> dict[str, Any]:
        """Service version, credential presence and metrics snapshot."""
        cache = runtime.cache
        return {
            "ok": True,
            "service": "basket-index",
            "version": __version__,
            "credentials": settings.credential_status(),
            "cacheEntries": len(cache) if hasattr(cache, "__len__") else None,
            "metrics": runtime.metrics.snapshot(),
        }

    @app.get("/metrics", include_in_schema=False)
    async def prometheus_metrics() -> Response:
        return Response(generate_latest(runtime.metrics.registry), media_type=CONTENT_TYPE_LATEST)

    return app


def get_app() -> FastAPI:
    return create_app()
