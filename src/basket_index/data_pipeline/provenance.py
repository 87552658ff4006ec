from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable, Mapping
from typing import Any

from basket_index.data_pipeline.cache import CacheState
from basket_index.data_pipeline.freshness import FreshnessThresholds, classify_age, iso_utc


def stable_json_sha256(payload: Any) -> str:
    """Compute deterministic SHA256 for nested JSON-serializable payloads."""
    raw = json.dumps(payload, sort_keys=True, ensure_ascii=False, default=str).encode("utf-8")
    return hashlib.sha256(raw).hexdigest()


def request_fingerprint(items: Iterable[str]) -> str:
    """Order-insensitive fingerprint of a ticker or asset-id list."""
    return stable_json_sha256(sorted({str(item) for item in items}))


def _is_filled(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (str, list, tuple, dict)) and len(value) == 0:
        return False
    return True


def compute_completeness(payload: Mapping[str, Any], exclude: Iterable[str] = ("ok", "provenance")) -> dict[str, int]:
    skipped = set(exclude)
    fields = [key for key in payload if key not in skipped]
    filled = sum(1 for key in fields if _is_filled(payload[key]))
    return {"fields": len(fields), "filled": filled}


def compute_confidence(completeness: Mapping[str, int]) -> float:
    fields = int(completeness.get("fields", 0))
    if fields <= 0:
        return 0.0
    return round(int(completeness.get("filled", 0)) / fields, 2)


def build_provenance(
    *,
    source: str,
    written_at: float,
    now: float,
    cache_state: CacheState,
    payload: Mapping[str, Any],
    thresholds: FreshnessThresholds | None = None,
) -> dict[str, Any]:
    """Provenance block for a served payload; age runs from the cache write."""
    completeness = compute_completeness(payload)
    status = classify_age(max(0.0, now - written_at), thresholds)
    return {
        "source": source,
        "status": status.value,
        "updatedAt": iso_utc(written_at),
        "confidence": compute_confidence(completeness),
        "completeness": completeness,
        "cache": cache_state.value,
    }
