"""Shared pytest fixtures for basket_index tests."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from basket_index.common.cache_config import CacheTTL
from basket_index.observability.metrics import MetricsCollector
from basket_index.services.runtime import IndexRuntime, build_runtime
from basket_index.settings import IndexSettings
from support import FakeClock, FakeProvider, SleepRecorder, settings_for_tests


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def test_settings() -> IndexSettings:
    return settings_for_tests()


@pytest.fixture
def make_runtime(
    provider: FakeProvider,
    fake_clock: FakeClock,
    sleep_recorder: SleepRecorder,
) -> Callable[..., IndexRuntime]:
    """Factory for a runtime wired to the fake provider, clock and sleep."""

    def _make(settings: IndexSettings | None = None) -> IndexRuntime:
        return build_runtime(
            settings or settings_for_tests(),
            http_client=provider.client(),
            metrics=MetricsCollector(),
            ttl=CacheTTL(),
            sleep=sleep_recorder,
            clock=fake_clock,
        )

    return _make
