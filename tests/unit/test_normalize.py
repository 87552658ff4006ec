"""Unit tests for upstream payload normalization."""

from __future__ import annotations

import pandas as pd
import pytest

from basket_index.data_pipeline.errors import PayloadShapeError
from basket_index.data_pipeline.normalize import (
    latest_market_cap,
    parse_daily_prices,
    parse_market_chart,
    parse_markets,
)
from support import day_ms


class TestMarketChart:
    def test_price_pairs_are_validated_and_sorted(self) -> None:
        payload = {
            "prices": [
                [day_ms(2), 12.0],
                [day_ms(0), 10.0],
                [day_ms(1), None],
                [day_ms(3), -4.0],
                [day_ms(4), float("nan")],
            ]
        }

        series = parse_market_chart("iotex", payload)

        assert series.asset_id == "iotex"
        assert series.prices.tolist() == [10.0, 12.0]
        assert series.prices.index.is_monotonic_increasing
        assert str(series.prices.index.tz) == "UTC"

    def test_bare_list_and_object_rows(self) -> None:
        pairs = parse_market_chart("a", [[day_ms(0), 1.0], [day_ms(1), 2.0]])
        objects = parse_market_chart("a", [{"t": day_ms(0), "v": 1.0}, {"t": day_ms(1), "v": 2.0}])

        assert pairs.prices.tolist() == objects.prices.tolist() == [1.0, 2.0]

    def test_unrecognized_shape_raises(self) -> None:
        with pytest.raises(PayloadShapeError):
            parse_market_chart("a", {"error": "rate limited"})


class TestDailyPrices:
    def test_adjusted_close_preferred_with_close_fallback(self) -> None:
        rows = [
            {"date": "2024-01-02T00:00:00.000Z", "close": 100.0, "adjClose": 98.0},
            {"date": "2024-01-03T00:00:00.000Z", "close": 101.0, "adjClose": None},
            {"date": "2024-01-04T00:00:00.000Z", "close": None, "adjClose": None},
        ]

        series = parse_daily_prices("ISRG", rows)

        assert series.prices.tolist() == [98.0, 101.0]
        assert series.prices.index[0] == pd.Timestamp("2024-01-02", tz="UTC")

    def test_empty_listing_is_an_empty_series(self) -> None:
        assert parse_daily_prices("ISRG", []).is_empty


class TestMarkets:
    def test_every_requested_id_is_sized(self) -> None:
        payload = [
            {"id": "iotex", "symbol": "iotx", "name": "IoTeX", "market_cap": 3.5e8, "current_price": 0.04},
            {"id": "geodnet", "symbol": "geod", "name": "Geodnet", "market_cap": None},
            {"id": "unrequested", "market_cap": 1e12},
        ]

        snapshot = parse_markets(payload, ["iotex", "geodnet", "auki-labs"])

        assert snapshot.metrics == {"iotex": 3.5e8, "geodnet": 0.0, "auki-labs": 0.0}
        assert snapshot.extras["iotex"]["symbol"] == "IOTX"
        assert snapshot.extras["iotex"]["price"] == 0.04

    def test_wrapped_listing_is_accepted(self) -> None:
        snapshot = parse_markets({"data": [{"id": "iotex", "market_cap": "1,000"}]}, ["iotex"])

        assert snapshot.metrics["iotex"] == 1000.0

    def test_scalar_payload_raises(self) -> None:
        with pytest.raises(PayloadShapeError):
            parse_markets("unexpected", ["iotex"])


class TestMarketCap:
    def test_latest_positive_market_cap(self) -> None:
        rows = [
            {"date": "2024-01-03T00:00:00.000Z", "marketCap": 0},
            {"date": "2024-01-01T00:00:00.000Z", "marketCap": 1.0e9},
            {"date": "2024-01-02T00:00:00.000Z", "marketCap": 1.1e9},
        ]

        assert latest_market_cap(rows) == 1.1e9

    def test_single_object_and_empty(self) -> None:
        assert latest_market_cap({"marketCap": 5.0e8}) == 5.0e8
        assert latest_market_cap([]) == 0.0
