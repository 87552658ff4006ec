"""Time-range selectors and request parameter validation."""

from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from enum import Enum

from basket_index.data_pipeline.errors import RequestValidationError

MAX_TICKERS = 25
_TICKER_RE = re.compile(r"^[A-Z0-9.\-]{1,15}$")
_ASSET_ID_RE = re.compile(r"^[a-z0-9][a-z0-9\-]{0,63}$")


class TimeRange(str, Enum):
    ONE_MONTH = "1M"
    THREE_MONTHS = "3M"
    SIX_MONTHS = "6M"
    ONE_YEAR = "1Y"
    YEAR_TO_DATE = "YTD"


_FIXED_DAYS = {
    TimeRange.ONE_MONTH: 30,
    TimeRange.THREE_MONTHS: 90,
    TimeRange.SIX_MONTHS: 180,
    TimeRange.ONE_YEAR: 365,
}


def parse_range(value: str | None, default: TimeRange) -> TimeRange:
    """Map a query-string range to a ``TimeRange``; unknown values are rejected."""
    if value is None or not str(value).strip():
        return default
    normalized = str(value).strip().upper()
    try:
        return TimeRange(normalized)
    except ValueError as exc:
        allowed = "|".join(item.value for item in TimeRange)
        raise RequestValidationError(f"Invalid range '{value}'; expected one of {allowed}") from exc


def range_to_days(time_range: TimeRange, now: datetime | None = None) -> int:
    """Day-count window for a range. YTD counts days since January 1st UTC."""
    if time_range in _FIXED_DAYS:
        return _FIXED_DAYS[time_range]
    current = now or datetime.now(timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    year_start = datetime(current.year, 1, 1, tzinfo=timezone.utc)
    elapsed_days = (current - year_start).total_seconds() / 86_400
    return max(1, math.ceil(elapsed_days))


def parse_tickers(value: str | None, default: tuple[str, ...] = ()) -> list[str]:
    """Parse a comma-separated ticker list (upper-cased, de-duplicated, ordered)."""
    if value is None:
        tickers = list(default)
    else:
        tickers = [item.strip().upper() for item in str(value).split(",") if item.strip()]
    tickers = list(dict.fromkeys(tickers))
    if not tickers:
        raise RequestValidationError("No tickers provided")
    if len(tickers) > MAX_TICKERS:
        raise RequestValidationError(f"Too many tickers: {len(tickers)} > {MAX_TICKERS}")
    invalid = [ticker for ticker in tickers if not _TICKER_RE.match(ticker)]
    if invalid:
        raise RequestValidationError(f"Invalid ticker(s): {', '.join(invalid)}")
    return tickers


def parse_asset_ids(value: str | None, default: tuple[str, ...] = ()) -> list[str]:
    """Parse a comma-separated list of provider asset ids (lower-case slugs)."""
    if value is None:
        ids = list(default)
    else:
        ids = [item.strip().lower() for item in str(value).split(",") if item.strip()]
    ids = list(dict.fromkeys(ids))
    if not ids:
        raise RequestValidationError("No asset ids provided")
    if len(ids) > MAX_TICKERS:
        raise RequestValidationError(f"Too many asset ids: {len(ids)} > {MAX_TICKERS}")
    invalid = [asset_id for asset_id in ids if not _ASSET_ID_RE.match(asset_id)]
    if invalid:
        raise RequestValidationError(f"Invalid asset id(s): {', '.join(invalid)}")
    return ids
