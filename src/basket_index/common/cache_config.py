"""
Cache TTL configuration for the index endpoints.

Centralizes freshness windows with environment variable overrides.
"""

from __future__ import annotations

import os
from dataclasses import dataclass


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        return default


@dataclass
class CacheTTL:
    """Per-endpoint freshness windows (in seconds).

    Entries older than the TTL are served only as a degraded fallback, and
    become evictable after twice the TTL. Defaults can be overridden via
    ``BASKET_INDEX_CACHE_TTL_*`` environment variables.

    Attributes:
        crypto_index: Weighted crypto basket.  Default 60 seconds.
        equity_index: Weighted equity basket.  Default 90 seconds.
        compare_history: Percent-return comparison.  Default 3 minutes.
        stock_history: Single-ticker history.  Default 3 minutes.
    """

    crypto_index: int = 60
    equity_index: int = 90
    compare_history: int = 180
    stock_history: int = 180

    @classmethod
    def from_env(cls) -> CacheTTL:
        """Build a ``CacheTTL`` instance, applying environment overrides."""
        return cls(
            crypto_index=_env_int("BASKET_INDEX_CACHE_TTL_CRYPTO_INDEX", cls.crypto_index),
            equity_index=_env_int("BASKET_INDEX_CACHE_TTL_EQUITY_INDEX", cls.equity_index),
            compare_history=_env_int("BASKET_INDEX_CACHE_TTL_COMPARE_HISTORY", cls.compare_history),
            stock_history=_env_int("BASKET_INDEX_CACHE_TTL_STOCK_HISTORY", cls.stock_history),
        )

    def ttl_for(self, category: str) -> int:
        """Return TTL seconds for a named category, falling back to ``crypto_index``."""
        return max(1, int(getattr(self, category, self.crypto_index)))
