"""Unit tests for weighted index values, percent returns and change policies."""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from basket_index.data_pipeline.index_values import (
    ChangePolicy,
    compute_change,
    compute_percent_returns,
    compute_weighted_index,
    percent_return_points,
)
from basket_index.data_pipeline.types import AlignedPoint, IndexPoint, WeightAssignment


def _ts(day: int, hour: int = 0) -> pd.Timestamp:
    return pd.Timestamp("2024-03-01", tz="UTC") + pd.Timedelta(days=day, hours=hour)


def _weights(**weights: float) -> WeightAssignment:
    return WeightAssignment(weights=dict(weights), min_weight=0.0, max_weight=1.0)


class TestWeightedIndex:
    def test_baseline_day_maps_to_100(self) -> None:
        points = [
            AlignedPoint(_ts(0), {"A": 10.0, "B": 20.0}),
            AlignedPoint(_ts(1), {"A": 11.0, "B": 20.0}),
        ]

        values = compute_weighted_index(points, _weights(A=0.5, B=0.5))

        assert values[0].value == pytest.approx(100.0, abs=1e-6)
        assert values[1].value == pytest.approx(105.0)

    def test_baseline_is_first_fully_populated_day(self) -> None:
        points = [
            AlignedPoint(_ts(0), {"A": 10.0}),
            AlignedPoint(_ts(1), {"A": 10.0, "B": 20.0}),
            AlignedPoint(_ts(2), {"A": 12.0, "B": 20.0}),
        ]

        values = compute_weighted_index(points, _weights(A=0.5, B=0.5))

        assert [round(point.value, 6) for point in values] == [100.0, 100.0, 110.0]

    def test_partial_days_renormalize_over_present_assets(self) -> None:
        points = [
            AlignedPoint(_ts(0), {"A": 10.0, "B": 20.0}),
            AlignedPoint(_ts(1), {"B": 30.0}),
        ]

        values = compute_weighted_index(points, _weights(A=0.75, B=0.25))

        assert values[1].value == pytest.approx(150.0)

    def test_day_without_weighted_assets_carries_base_value(self) -> None:
        points = [
            AlignedPoint(_ts(0), {"A": 10.0, "B": 20.0}),
            AlignedPoint(_ts(1), {"C": 99.0}),
        ]

        values = compute_weighted_index(points, {"A": 0.5, "B": 0.5})

        assert values[1].value == 100.0

    def test_falls_back_to_first_point_without_a_full_day(self) -> None:
        points = [
            AlignedPoint(_ts(0), {"A": 10.0}),
            AlignedPoint(_ts(1), {"B": 20.0}),
            AlignedPoint(_ts(2), {"A": 15.0}),
        ]

        values = compute_weighted_index(points, _weights(A=0.5, B=0.5))

        assert [point.value for point in values] == pytest.approx([100.0, 100.0, 150.0])

    def test_no_points_no_values(self) -> None:
        assert compute_weighted_index([], _weights(A=1.0)) == []

    def test_timestamps_are_preserved(self) -> None:
        points = [AlignedPoint(_ts(0), {"A": 1.0}), AlignedPoint(_ts(3), {"A": 2.0})]

        values = compute_weighted_index(points, _weights(A=1.0))

        assert [point.timestamp for point in values] == [_ts(0), _ts(3)]
        assert values[1].to_dict() == {"t": int(_ts(3).value // 1_000_000), "v": 200.0}


class TestPercentReturns:
    def test_invalid_sample_takes_previous_return(self) -> None:
        prices = pd.Series([10.0, 0.0, 12.0], index=[_ts(0), _ts(1), _ts(2)])

        returns = compute_percent_returns(prices)

        assert returns.tolist() == pytest.approx([0.0, 0.0, 20.0])

    def test_output_starts_at_first_valid_price(self) -> None:
        prices = pd.Series([np.nan, -1.0, 5.0, np.inf, 10.0], index=[_ts(i) for i in range(5)])

        returns = compute_percent_returns(prices)

        assert list(returns.index) == [_ts(2), _ts(3), _ts(4)]
        assert returns.tolist() == pytest.approx([0.0, 0.0, 100.0])

    def test_all_invalid_series_is_empty(self) -> None:
        prices = pd.Series([0.0, np.nan, -2.0], index=[_ts(i) for i in range(3)])

        assert compute_percent_returns(prices).empty
        assert percent_return_points(prices) == []


class TestChange:
    def test_previous_element_change(self) -> None:
        points = [IndexPoint(_ts(0), 100.0), IndexPoint(_ts(1), 110.0)]

        last = compute_change(points, ChangePolicy.PREVIOUS_ELEMENT)

        assert last.to_dict() == {"v": 110.0, "changeAbs": 10.0, "changePct": pytest.approx(10.0)}

    def test_last_distinct_day_skips_same_day_duplicates(self) -> None:
        points = [
            IndexPoint(_ts(0, 16), 100.0),
            IndexPoint(_ts(1, 8), 105.0),
            IndexPoint(_ts(1, 16), 110.0),
        ]

        distinct = compute_change(points, ChangePolicy.LAST_DISTINCT_DAY)
        previous = compute_change(points, ChangePolicy.PREVIOUS_ELEMENT)

        assert distinct.change_abs == pytest.approx(10.0)
        assert distinct.change_pct == pytest.approx(10.0)
        assert previous.change_abs == pytest.approx(5.0)

    def test_single_point_has_no_change(self) -> None:
        last = compute_change([IndexPoint(_ts(0), 100.0)], ChangePolicy.PREVIOUS_ELEMENT)

        assert (last.value, last.change_abs, last.change_pct) == (100.0, 0.0, 0.0)

    def test_non_positive_previous_gives_zero_percent(self) -> None:
        last = compute_change([IndexPoint(_ts(0), 0.0), IndexPoint(_ts(1), 20.0)], ChangePolicy.PREVIOUS_ELEMENT)

        assert last.change_abs == 20.0
        assert last.change_pct == 0.0

    def test_only_one_day_under_distinct_policy(self) -> None:
        points = [IndexPoint(_ts(0, 1), 1.0), IndexPoint(_ts(0, 5), 2.0)]

        last = compute_change(points, ChangePolicy.LAST_DISTINCT_DAY)

        assert last.change_abs == 0.0

    def test_no_points(self) -> None:
        assert compute_change([], ChangePolicy.PREVIOUS_ELEMENT) is None
