"""Unit tests for range selectors and request parameter parsing."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from basket_index.common.ranges import (
    MAX_TICKERS,
    TimeRange,
    parse_asset_ids,
    parse_range,
    parse_tickers,
    range_to_days,
)
from basket_index.common.universe import EQUITY_BASKET, resolve_constituents
from basket_index.data_pipeline.errors import RequestValidationError


class TestRanges:
    @pytest.mark.parametrize(
        ("selector", "days"),
        [(TimeRange.ONE_MONTH, 30), (TimeRange.THREE_MONTHS, 90), (TimeRange.SIX_MONTHS, 180), (TimeRange.ONE_YEAR, 365)],
    )
    def test_fixed_windows(self, selector: TimeRange, days: int) -> None:
        assert range_to_days(selector) == days

    def test_year_to_date_counts_from_january_first(self) -> None:
        now = datetime(2024, 3, 1, 12, tzinfo=timezone.utc)

        assert range_to_days(TimeRange.YEAR_TO_DATE, now) == 61

    def test_year_to_date_on_new_year_is_at_least_one_day(self) -> None:
        assert range_to_days(TimeRange.YEAR_TO_DATE, datetime(2025, 1, 1, tzinfo=timezone.utc)) == 1

    def test_parse_is_case_insensitive_with_default(self) -> None:
        assert parse_range("ytd", TimeRange.ONE_YEAR) is TimeRange.YEAR_TO_DATE
        assert parse_range(None, TimeRange.THREE_MONTHS) is TimeRange.THREE_MONTHS
        assert parse_range("  ", TimeRange.ONE_YEAR) is TimeRange.ONE_YEAR

    def test_unknown_range_raises(self) -> None:
        with pytest.raises(RequestValidationError, match="Invalid range"):
            parse_range("5Y", TimeRange.ONE_YEAR)


class TestTickers:
    def test_normalized_and_deduplicated(self) -> None:
        assert parse_tickers(" botz,ROBO,botz ,, irbo") == ["BOTZ", "ROBO", "IRBO"]

    def test_default_used_when_absent(self) -> None:
        assert parse_tickers(None, ("BOTZ",)) == ["BOTZ"]

    def test_limits(self) -> None:
        with pytest.raises(RequestValidationError):
            parse_tickers(",".join(f"A{i}" for i in range(MAX_TICKERS + 1)))
        with pytest.raises(RequestValidationError):
            parse_tickers("")
        with pytest.raises(RequestValidationError):
            parse_tickers("BRK/B")

    def test_asset_ids_are_lowercase_slugs(self) -> None:
        assert parse_asset_ids("IoTeX, peaq-network") == ["iotex", "peaq-network"]
        with pytest.raises(RequestValidationError):
            parse_asset_ids("bad id")


class TestUniverse:
    def test_default_basket(self) -> None:
        assert resolve_constituents(None, EQUITY_BASKET) == list(EQUITY_BASKET)

    def test_unknown_ids_get_derived_metadata(self) -> None:
        resolved = resolve_constituents(["ISRG", "NEWCO"], EQUITY_BASKET)

        assert resolved[0].name == "Intuitive Surgical"
        assert (resolved[1].symbol, resolved[1].name) == ("NEWCO", "NEWCO")
