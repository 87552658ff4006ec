"""
Basket Index - weighted basket indices over degradable market data providers.

Fetches sizing and price history from upstream providers with bounded retry,
caches results with stale fallback, allocates capped weights, aligns series by
calendar day and serves base-100 indices and percent-return comparisons.
"""

from __future__ import annotations

from importlib import import_module
from typing import Any

__version__ = "0.3.0"

_LAZY_EXPORTS = {
    "compute_weights": "basket_index.data_pipeline.weights",
    "align": "basket_index.data_pipeline.alignment",
    "forward_fill": "basket_index.data_pipeline.alignment",
    "compute_weighted_index": "basket_index.data_pipeline.index_values",
    "compute_percent_returns": "basket_index.data_pipeline.index_values",
    "InMemoryKeyedCache": "basket_index.data_pipeline.cache",
    "UpstreamClient": "basket_index.data_pipeline.fetcher",
    "ResponseComposer": "basket_index.services.composer",
    "build_runtime": "basket_index.services.runtime",
    "IndexSettings": "basket_index.settings",
}


def get_api_app():
    """Create the FastAPI application (imports FastAPI lazily)."""
    from .api.main import create_app

    return create_app()


def __getattr__(name: str) -> Any:
    module = _LAZY_EXPORTS.get(name)
    if module is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    return getattr(import_module(module), name)


__all__ = ["__version__", "get_api_app", *_LAZY_EXPORTS]
