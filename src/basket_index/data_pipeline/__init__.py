"""
Basket Index Data Pipeline.

Resilient fetch, keyed caching, weight allocation, day alignment and index
computation for weighted asset baskets.
"""

from __future__ import annotations

from .alignment import align, align_frame, forward_fill, forward_fill_frame
from .cache import CacheLookup, CacheService, CacheState, InMemoryKeyedCache
from .errors import (
    ConfigurationError,
    IndexPipelineError,
    InsufficientDataError,
    PayloadShapeError,
    PipelineStepError,
    RequestValidationError,
)
from .fetcher import (
    FailureKind,
    FetchFailure,
    FetchResult,
    FetchSuccess,
    RetryPolicy,
    RetryState,
    UpstreamClient,
    classify_fetch_error,
)
from .freshness import FreshnessThresholds, ProvenanceStatus, classify_age
from .index_values import ChangePolicy, compute_change, compute_percent_returns, compute_weighted_index
from .provenance import build_provenance, request_fingerprint
from .types import AlignedPoint, AssetSeries, IndexPoint, LastValue, SizingSnapshot, WeightAssignment
from .weights import compute_weights

__all__ = [
    "align",
    "align_frame",
    "forward_fill",
    "forward_fill_frame",
    "CacheLookup",
    "CacheService",
    "CacheState",
    "InMemoryKeyedCache",
    "ConfigurationError",
    "IndexPipelineError",
    "InsufficientDataError",
    "PayloadShapeError",
    "PipelineStepError",
    "RequestValidationError",
    "FailureKind",
    "FetchFailure",
    "FetchResult",
    "FetchSuccess",
    "RetryPolicy",
    "RetryState",
    "UpstreamClient",
    "classify_fetch_error",
    "FreshnessThresholds",
    "ProvenanceStatus",
    "classify_age",
    "ChangePolicy",
    "compute_change",
    "compute_percent_returns",
    "compute_weighted_index",
    "build_provenance",
    "request_fingerprint",
    "AlignedPoint",
    "AssetSeries",
    "IndexPoint",
    "LastValue",
    "SizingSnapshot",
    "WeightAssignment",
    "compute_weights",
]
