"""Unit tests for environment-driven settings."""

from __future__ import annotations

import pytest

from basket_index.common.cache_config import CacheTTL
from basket_index.settings import (
    DEFAULT_COINGECKO_BASE_URL,
    IndexSettings,
    parse_env_bool,
    parse_env_float,
    parse_env_int,
)


class TestEnvironmentParsing:
    def test_int_is_clamped_and_falls_back_on_garbage(self) -> None:
        assert parse_env_int("N", 3, 1, 10, environ={"N": "50"}) == 10
        assert parse_env_int("N", 3, 1, 10, environ={"N": "0"}) == 1
        assert parse_env_int("N", 3, 1, 10, environ={"N": "three"}) == 3
        assert parse_env_int("N", 3, 1, 10, environ={}) == 3

    def test_float_rejects_non_finite(self) -> None:
        assert parse_env_float("F", 15.0, 0.5, 120.0, environ={"F": "inf"}) == 15.0
        assert parse_env_float("F", 15.0, 0.5, 120.0, environ={"F": "2.5"}) == 2.5

    @pytest.mark.parametrize(("raw", "expected"), [("1", True), ("yes", True), ("off", False), ("", True)])
    def test_bool(self, raw: str, expected: bool) -> None:
        assert parse_env_bool("B", True, environ={"B": raw}) is expected


class TestIndexSettings:
    def test_defaults(self) -> None:
        settings = IndexSettings.from_env(environ={})

        assert settings.coingecko_api_key is None
        assert settings.coingecko_base_url == DEFAULT_COINGECKO_BASE_URL
        assert settings.fetch_timeout_seconds == 15.0
        assert settings.fetch_max_attempts == 3
        assert settings.backoff_base_seconds == 0.25
        assert settings.backoff_max_seconds == 2.0
        assert settings.cache_max_entries == 50
        assert (settings.live_seconds, settings.degraded_seconds) == (300, 1_800)

    def test_blank_keys_count_as_missing(self) -> None:
        settings = IndexSettings.from_env(environ={"COINGECKO_PRO_API_KEY": "  ", "TIINGO_API_KEY": "abc"})

        assert settings.credential_status() == {"COINGECKO_PRO_API_KEY": False, "TIINGO_API_KEY": True}

    def test_degraded_threshold_never_below_live(self) -> None:
        settings = IndexSettings.from_env(
            environ={"BASKET_INDEX_LIVE_SECONDS": "600", "BASKET_INDEX_DEGRADED_SECONDS": "60"}
        )

        assert settings.degraded_seconds == 600

    def test_base_url_trailing_slash_is_dropped(self) -> None:
        settings = IndexSettings.from_env(environ={"BASKET_INDEX_TIINGO_BASE_URL": "http://localhost:9000/"})

        assert settings.tiingo_base_url == "http://localhost:9000"


class TestCacheTTL:
    def test_env_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BASKET_INDEX_CACHE_TTL_EQUITY_INDEX", "300")
        monkeypatch.setenv("BASKET_INDEX_CACHE_TTL_STOCK_HISTORY", "not-a-number")

        ttl = CacheTTL.from_env()

        assert ttl.ttl_for("equity_index") == 300
        assert ttl.ttl_for("stock_history") == 180

    def test_unknown_category_falls_back(self) -> None:
        assert CacheTTL().ttl_for("unknown") == 60
