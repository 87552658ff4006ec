"""Shared configuration, time ranges and basket universes."""

from .cache_config import CacheTTL
from .ranges import MAX_TICKERS, TimeRange, parse_asset_ids, parse_range, parse_tickers, range_to_days
from .universe import (
    COMPARE_DEFAULT_TICKERS,
    CRYPTO_BASKET,
    EQUITY_BASKET,
    Constituent,
    display_name,
    resolve_constituents,
)

__all__ = [
    "CacheTTL",
    "MAX_TICKERS",
    "TimeRange",
    "parse_asset_ids",
    "parse_range",
    "parse_tickers",
    "range_to_days",
    "COMPARE_DEFAULT_TICKERS",
    "CRYPTO_BASKET",
    "EQUITY_BASKET",
    "Constituent",
    "display_name",
    "resolve_constituents",
]
