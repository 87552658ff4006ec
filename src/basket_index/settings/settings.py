"""Runtime configuration for the index services."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from .environment import parse_env_bool, parse_env_float, parse_env_int, parse_env_str

ENV_COINGECKO_API_KEY = "COINGECKO_PRO_API_KEY"
ENV_TIINGO_API_KEY = "TIINGO_API_KEY"

DEFAULT_COINGECKO_BASE_URL = "https://pro-api.coingecko.com/api/v3"
DEFAULT_TIINGO_BASE_URL = "https://api.tiingo.com"


@dataclass(frozen=True)
class IndexSettings:
    coingecko_api_key: str | None
    tiingo_api_key: str | None
    coingecko_base_url: str
    tiingo_base_url: str
    fetch_timeout_seconds: float
    fetch_max_attempts: int
    backoff_base_seconds: float
    backoff_max_seconds: float
    cache_max_entries: int
    live_seconds: int
    degraded_seconds: int
    log_level: str
    log_json: bool
    log_file: str | None
    telemetry_enabled: bool
    telemetry_file: str | None

    def credential_status(self) -> dict[str, bool]:
        """Report which provider credentials are configured, never their values."""
        return {
            ENV_COINGECKO_API_KEY: bool(self.coingecko_api_key),
            ENV_TIINGO_API_KEY: bool(self.tiingo_api_key),
        }

    @classmethod
    def from_env(cls, *, environ: Mapping[str, str] | None = None) -> "IndexSettings":
        live_seconds = parse_env_int("BASKET_INDEX_LIVE_SECONDS", 300, 1, 86_400, environ=environ)
        degraded_seconds = parse_env_int(
            "BASKET_INDEX_DEGRADED_SECONDS",
            1_800,
            1,
            7 * 86_400,
            environ=environ,
        )
        backoff_base_ms = parse_env_int("BASKET_INDEX_BACKOFF_BASE_MS", 250, 0, 10_000, environ=environ)
        backoff_max_ms = parse_env_int("BASKET_INDEX_BACKOFF_MAX_MS", 2_000, 0, 60_000, environ=environ)
        log_file = parse_env_str("BASKET_INDEX_LOG_FILE", "", environ=environ)
        telemetry_file = parse_env_str("BASKET_INDEX_TELEMETRY_FILE", "", environ=environ)

        return cls(
            coingecko_api_key=parse_env_str(ENV_COINGECKO_API_KEY, "", environ=environ) or None,
            tiingo_api_key=parse_env_str(ENV_TIINGO_API_KEY, "", environ=environ) or None,
            coingecko_base_url=parse_env_str(
                "BASKET_INDEX_COINGECKO_BASE_URL",
                DEFAULT_COINGECKO_BASE_URL,
                environ=environ,
            ).rstrip("/"),
            tiingo_base_url=parse_env_str(
                "BASKET_INDEX_TIINGO_BASE_URL",
                DEFAULT_TIINGO_BASE_URL,
                environ=environ,
            ).rstrip("/"),
            fetch_timeout_seconds=parse_env_float(
                "BASKET_INDEX_FETCH_TIMEOUT_SECONDS",
                15.0,
                0.5,
                120.0,
                environ=environ,
            ),
            fetch_max_attempts=parse_env_int("BASKET_INDEX_FETCH_MAX_ATTEMPTS", 3, 1, 10, environ=environ),
            backoff_base_seconds=backoff_base_ms / 1000.0,
            backoff_max_seconds=max(backoff_base_ms, backoff_max_ms) / 1000.0,
            cache_max_entries=parse_env_int("BASKET_INDEX_CACHE_MAX_ENTRIES", 50, 1, 10_000, environ=environ),
            live_seconds=live_seconds,
            degraded_seconds=max(live_seconds, degraded_seconds),
            log_level=parse_env_str("BASKET_INDEX_LOG_LEVEL", "INFO", environ=environ).upper(),
            log_json=parse_env_bool("BASKET_INDEX_LOG_JSON", True, environ=environ),
            log_file=log_file or None,
            telemetry_enabled=parse_env_bool("BASKET_INDEX_TELEMETRY_ENABLED", False, environ=environ),
            telemetry_file=telemetry_file or None,
        )


def load_index_settings(*, environ: Mapping[str, str] | None = None) -> IndexSettings:
    return IndexSettings.from_env(environ=environ)
