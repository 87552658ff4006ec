"""Response composition with cache-first serving and the soft-failure contract."""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from basket_index.data_pipeline.cache import CacheLookup, CacheService, CacheState
from basket_index.data_pipeline.errors import ConfigurationError, PipelineStepError
from basket_index.data_pipeline.freshness import FreshnessThresholds
from basket_index.data_pipeline.logging_utils import log_event
from basket_index.data_pipeline.provenance import build_provenance
from basket_index.observability.metrics import MetricsCollector
from basket_index.observability.telemetry import emit_crash_telemetry

logger = logging.getLogger(__name__)

PayloadBuilder = Callable[[], Awaitable[dict[str, Any]]]


def soft_failure(
    error: str,
    step: str,
    *,
    details: str | None = None,
    upstream_status: int | None = None,
    upstream_body_preview: str | None = None,
) -> dict[str, Any]:
    """In-payload failure served with a success-range transport status."""
    payload: dict[str, Any] = {"ok": False, "error": error, "step": step}
    if details:
        payload["details"] = details
    if upstream_status is not None:
        payload["upstreamStatus"] = upstream_status
    if upstream_body_preview:
        payload["upstreamBodyPreview"] = upstream_body_preview
    return payload


def validation_failure(error: str) -> dict[str, Any]:
    return {"ok": False, "error": error}


class ResponseComposer:
    """Serve a logical request from cache or a fresh pipeline build.

    Order of preference: fresh cache entry, a successful build, a stale cache
    entry, and finally a soft failure naming the failing step. Exceptions of
    unknown type are contained here and reported as step ``unknown``.
    """

    def __init__(
        self,
        cache: CacheService,
        *,
        thresholds: FreshnessThresholds | None = None,
        metrics: MetricsCollector | None = None,
        clock: Callable[[], float] = time.time,
        telemetry_enabled: bool = False,
        telemetry_file: str | None = None,
    ) -> None:
        self.cache = cache
        self.thresholds = thresholds or FreshnessThresholds()
        self.metrics = metrics
        self._clock = clock
        self._telemetry_enabled = telemetry_enabled
        self._telemetry_file = telemetry_file

    async def compose(
        self,
        *,
        key: str,
        endpoint: str,
        source: str,
        ttl: float,
        error_message: str,
        build: PayloadBuilder,
    ) -> dict[str, Any]:
        started = time.perf_counter()
        try:
            return await self._compose(
                key=key,
                endpoint=endpoint,
                source=source,
                ttl=ttl,
                error_message=error_message,
                build=build,
            )
        finally:
            if self.metrics is not None:
                self.metrics.observe(
                    "pipeline_duration_seconds",
                    time.perf_counter() - started,
                    labels={"endpoint": endpoint},
                )

    async def _compose(
        self,
        *,
        key: str,
        endpoint: str,
        source: str,
        ttl: float,
        error_message: str,
        build: PayloadBuilder,
    ) -> dict[str, Any]:
        lookup = self._lookup(key)
        if lookup.state is CacheState.FRESH:
            self._record(endpoint, "fresh")
            return self._serve(lookup.payload, lookup.written_at, CacheState.FRESH, source)

        try:
            payload = await build()
        except ConfigurationError as exc:
            failure = soft_failure(error_message, "env_validation", details=str(exc))
        except PipelineStepError as exc:
            failure = soft_failure(
                error_message,
                exc.step,
                details=exc.details or exc.message,
                upstream_status=exc.upstream_status,
                upstream_body_preview=exc.upstream_body_preview,
            )
        except Exception as exc:
            logger.exception("Unhandled error while building %s payload", endpoint, extra={"endpoint": endpoint})
            emit_crash_telemetry(
                exc,
                {"endpoint": endpoint, "cache_key": key},
                enabled=self._telemetry_enabled,
                telemetry_file=self._telemetry_file,
            )
            failure = soft_failure(error_message, "unknown", details=str(exc) or type(exc).__name__)
        else:
            written_at = self._clock()
            self.cache.put(key, payload, ttl)
            self._record(endpoint, "live")
            log_event(logger, "pipeline_success", endpoint=endpoint, cache_key=key)
            return self._serve(payload, written_at, CacheState.MISS, source)

        fallback = self._lookup(key)
        if fallback.hit:
            log_event(
                logger,
                "cache_serve",
                level=logging.WARNING,
                endpoint=endpoint,
                cache_key=key,
                state=fallback.state.value,
                failed_step=failure["step"],
            )
            self._record(endpoint, fallback.state.value)
            return self._serve(fallback.payload, fallback.written_at, fallback.state, source)

        log_event(
            logger,
            "pipeline_soft_failure",
            level=logging.WARNING,
            endpoint=endpoint,
            step=failure["step"],
            details=failure.get("details"),
            upstream_status=failure.get("upstreamStatus"),
        )
        self._record(endpoint, "failure")
        return failure

    def _lookup(self, key: str) -> CacheLookup:
        lookup = self.cache.get(key)
        if self.metrics is not None:
            self.metrics.increment("cache_lookups_total", labels={"state": lookup.state.value})
        return lookup

    def _record(self, endpoint: str, outcome: str) -> None:
        if self.metrics is not None:
            self.metrics.increment("pipeline_results_total", labels={"endpoint": endpoint, "outcome": outcome})

    def _serve(
        self,
        payload: dict[str, Any],
        written_at: float | None,
        state: CacheState,
        source: str,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"ok": True, **payload}
        body["provenance"] = build_provenance(
            source=source,
            written_at=written_at if written_at is not None else self._clock(),
            now=self._clock(),
            cache_state=state,
            payload=body,
            thresholds=self.thresholds,
        )
        return body
