"""Age buckets for served payloads."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum


class ProvenanceStatus(str, Enum):
    LIVE = "LIVE"
    DEGRADED = "DEGRADED"
    STALE = "STALE"


@dataclass(frozen=True)
class FreshnessThresholds:
    """Age limits (seconds) separating LIVE, DEGRADED and STALE data."""

    live_seconds: float = 300.0
    degraded_seconds: float = 1_800.0


def classify_age(age_seconds: float, thresholds: FreshnessThresholds | None = None) -> ProvenanceStatus:
    limits = thresholds or FreshnessThresholds()
    if age_seconds < limits.live_seconds:
        return ProvenanceStatus.LIVE
    if age_seconds < limits.degraded_seconds:
        return ProvenanceStatus.DEGRADED
    return ProvenanceStatus.STALE


def iso_utc(epoch_seconds: float) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a ``Z`` suffix."""
    moment = datetime.fromtimestamp(epoch_seconds, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")
