"""Upstream client: one outbound request with timeout, classified failures and bounded retry."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx

from basket_index.data_pipeline.errors import PipelineStepError
from basket_index.data_pipeline.logging_utils import log_event, truncate_preview
from basket_index.observability.metrics import MetricsCollector

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429, 502, 503, 504})
BODY_PREVIEW_CHARS = 500

Sleep = Callable[[float], Awaitable[Any]]


class FailureKind(str, Enum):
    RETRYABLE_TRANSIENT = "retryable_transient"
    TRANSPORT = "transport"
    APPLICATION = "application"
    PARSE = "parse"


def classify_fetch_error(exc: Exception | None = None, status_code: int | None = None) -> str:
    """Map fetch exceptions and statuses to stable diagnostic classifications."""
    if status_code in {401, 403}:
        return "auth_or_blocked"
    if status_code == 404:
        return "endpoint_missing"
    if status_code == 429:
        return "rate_limited"
    if status_code is not None and status_code >= 500:
        return "server_error"
    if status_code is not None and status_code >= 400:
        return "client_error"
    if exc is None:
        return "unknown"
    message = str(exc).lower()
    if "ssl" in message or "certificate" in message:
        return "ssl_cert_issue"
    if isinstance(exc, httpx.TimeoutException):
        return "timeout"
    if isinstance(exc, httpx.ConnectError):
        return "connection_error"
    if isinstance(exc, (httpx.DecodingError, ValueError)):
        return "parse_error"
    if isinstance(exc, httpx.NetworkError):
        return "network_error"
    return "unknown"


def classify_failure_kind(exc: Exception | None = None, status_code: int | None = None) -> FailureKind:
    """Decide whether a failed attempt may be retried."""
    if status_code is not None:
        if status_code in RETRYABLE_STATUS_CODES:
            return FailureKind.RETRYABLE_TRANSIENT
        return FailureKind.APPLICATION
    if isinstance(exc, (httpx.ConnectError, httpx.ConnectTimeout, httpx.UnsupportedProtocol)):
        return FailureKind.TRANSPORT
    if isinstance(exc, (httpx.DecodingError, ValueError)):
        return FailureKind.PARSE
    if isinstance(exc, (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)):
        return FailureKind.RETRYABLE_TRANSIENT
    return FailureKind.APPLICATION


def describe_exception(exc: Exception, classification: str) -> str:
    if classification == "timeout":
        return "Request timed out - upstream provider may be slow or unavailable"
    if classification == "connection_error":
        return "Connection error - unable to connect to upstream provider"
    return f"{type(exc).__name__}: {exc}" if str(exc) else type(exc).__name__


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff bounded by a ceiling and a maximum attempt count."""

    max_attempts: int = 3
    base_delay_seconds: float = 0.25
    max_delay_seconds: float = 2.0
    timeout_seconds: float = 15.0

    def backoff(self, failed_attempt: int) -> float:
        """Delay after the given 1-based failed attempt."""
        exponent = max(0, failed_attempt - 1)
        return min(self.base_delay_seconds * (2**exponent), self.max_delay_seconds)


@dataclass(frozen=True)
class FetchSuccess:
    payload: Any
    status_code: int
    attempts: int
    url: str

    ok = True


@dataclass(frozen=True)
class FetchFailure:
    kind: FailureKind
    detail: str
    classification: str
    attempts: int
    url: str
    status_code: int | None = None
    body_preview: str | None = None

    ok = False

    def to_step_error(self, step: str, message: str) -> PipelineStepError:
        return PipelineStepError(
            step,
            message,
            details=self.detail,
            upstream_status=self.status_code,
            upstream_body_preview=self.body_preview,
        )


FetchResult = FetchSuccess | FetchFailure


class RetryState:
    """Attempt bookkeeping for one logical fetch.

    ``record_failure`` returns the backoff delay when another attempt is
    allowed, or ``None`` when the fetch must stop.
    """

    def __init__(self, policy: RetryPolicy, attempt_budget: int | None = None) -> None:
        self.policy = policy
        budget = policy.max_attempts if attempt_budget is None else min(attempt_budget, policy.max_attempts)
        self.max_attempts = max(1, budget)
        self.attempts = 0
        self.last_failure: FetchFailure | None = None

    @property
    def exhausted(self) -> bool:
        return self.attempts >= self.max_attempts

    def begin_attempt(self) -> int:
        self.attempts += 1
        return self.attempts

    def record_failure(self, failure: FetchFailure) -> float | None:
        self.last_failure = failure
        if failure.kind is not FailureKind.RETRYABLE_TRANSIENT:
            return None
        if self.exhausted:
            return None
        return self.policy.backoff(self.attempts)


class UpstreamClient:
    """Request/response wrapper around ``httpx.AsyncClient``; never touches the cache."""

    def __init__(
        self,
        *,
        provider: str,
        policy: RetryPolicy | None = None,
        http_client: httpx.AsyncClient | None = None,
        sleep: Sleep = asyncio.sleep,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self.provider = provider
        self.policy = policy or RetryPolicy()
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(follow_redirects=True)
        self._sleep = sleep
        self._metrics = metrics

    async def fetch(
        self,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        attempt_budget: int | None = None,
    ) -> FetchResult:
        state = RetryState(self.policy, attempt_budget)
        while True:
            attempt = state.begin_attempt()
            result = await self._attempt(url, params=params, headers=headers, attempt=attempt)
            if isinstance(result, FetchSuccess):
                self._count("success")
                return result

            delay = state.record_failure(result)
            if delay is None:
                log_event(
                    logger,
                    "fetch_failed",
                    level=logging.WARNING,
                    provider=self.provider,
                    url=url,
                    attempts=attempt,
                    kind=result.kind.value,
                    classification=result.classification,
                    status_code=result.status_code,
                )
                self._count(result.kind.value)
                return result

            log_event(
                logger,
                "fetch_retry",
                provider=self.provider,
                url=url,
                attempt=attempt,
                classification=result.classification,
                status_code=result.status_code,
                wait_seconds=delay,
            )
            await self._sleep(delay)

    async def _attempt(
        self,
        url: str,
        *,
        params: Mapping[str, Any] | None,
        headers: Mapping[str, str] | None,
        attempt: int,
    ) -> FetchResult:
        try:
            response = await self._client.get(
                url,
                params=params,
                headers=headers,
                timeout=self.policy.timeout_seconds,
            )
        except httpx.RequestError as exc:
            classification = classify_fetch_error(exc)
            return FetchFailure(
                kind=classify_failure_kind(exc),
                detail=describe_exception(exc, classification),
                classification=classification,
                attempts=attempt,
                url=url,
            )

        if not response.is_success:
            status = response.status_code
            return FetchFailure(
                kind=classify_failure_kind(status_code=status),
                detail=f"HTTP {status}: {response.reason_phrase}",
                classification=classify_fetch_error(status_code=status),
                attempts=attempt,
                url=url,
                status_code=status,
                body_preview=truncate_preview(response.text, BODY_PREVIEW_CHARS),
            )

        try:
            payload = response.json()
        except ValueError as exc:
            return FetchFailure(
                kind=FailureKind.PARSE,
                detail=f"Invalid JSON from upstream: {exc}",
                classification="parse_error",
                attempts=attempt,
                url=url,
                status_code=response.status_code,
                body_preview=truncate_preview(response.text, BODY_PREVIEW_CHARS),
            )
        return FetchSuccess(payload=payload, status_code=response.status_code, attempts=attempt, url=url)

    def _count(self, outcome: str) -> None:
        if self._metrics is not None:
            self._metrics.increment(
                "upstream_requests_total",
                labels={"provider": self.provider, "outcome": outcome},
            )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "UpstreamClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
