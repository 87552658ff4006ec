"""Service layer: response composition and the index/market pipelines."""

from .comparison_service import CompareHistoryService, StockHistoryService
from .composer import ResponseComposer, soft_failure, validation_failure
from .index_service import CryptoIndexService, EquityIndexService
from .runtime import IndexRuntime, build_runtime, retry_policy_from_settings

__all__ = [
    "CompareHistoryService",
    "StockHistoryService",
    "ResponseComposer",
    "soft_failure",
    "validation_failure",
    "CryptoIndexService",
    "EquityIndexService",
    "IndexRuntime",
    "build_runtime",
    "retry_policy_from_settings",
]
