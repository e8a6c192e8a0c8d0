# backend/modules/reporting/tests/test_shaping.py

import pytest

from modules.reporting.constants import SALES_ORDER_STATUSES
from modules.reporting.services.shaping import (
    MetricComparison,
    backfill_buckets,
    order_by_sequence,
    percent_change,
    percent_of_total,
    round_money,
    safe_divide,
)


class TestPercentChange:

    @pytest.mark.parametrize(
        "current,comparison,expected",
        [
            (5000, 4000, 25.0),
            (4000, 5000, -20.0),
            (0, 0, 0.0),
            (10, 0, 100.0),
            (0, 10, -100.0),
            (1, 3, -66.67),
            (None, None, 0.0),
        ],
    )
    def test_percent_change(self, current, comparison, expected):
        assert percent_change(current, comparison) == expected

    def test_metric_comparison(self):
        metric = MetricComparison.build(500, 500)

        assert metric.current == 500.0
        assert metric.comparison == 500.0
        assert metric.percent_change == 0.0

    def test_count_metric_stays_integral(self):
        metric = MetricComparison.build(10, 8, count=True)

        assert metric.current == 10
        assert isinstance(metric.current, int)
        assert isinstance(metric.comparison, int)
        assert metric.percent_change == 25.0


class TestRounding:

    def test_half_up(self):
        assert round_money(2.675) == 2.68
        assert round_money(0.125) == 0.13

    def test_missing_values(self):
        assert round_money(None) == 0.0
        assert round_money(float("nan")) == 0.0

    def test_safe_divide(self):
        assert safe_divide(10, 4) == 2.5
        assert safe_divide(10, 0) == 0.0
        assert safe_divide(10, float("nan")) == 0.0
        assert safe_divide(None, 5, default=-1) == -1


class TestPercentOfTotal:

    def test_shares_sum_to_hundred(self):
        rows = [{"revenue": 1}, {"revenue": 1}, {"revenue": 1}]
        shaped = percent_of_total(rows, "revenue")

        assert [row["percentage"] for row in shaped] == [33.33, 33.33, 33.33]
        assert abs(sum(row["percentage"] for row in shaped) - 100) <= 0.01 * len(rows)

    def test_zero_total(self):
        shaped = percent_of_total([{"revenue": 0}, {"revenue": 0}], "revenue")

        assert all(row["percentage"] == 0 for row in shaped)

    def test_rows_are_copied(self):
        rows = [{"revenue": 10}]
        percent_of_total(rows, "revenue")

        assert "percentage" not in rows[0]

    def test_explicit_total(self):
        shaped = percent_of_total([{"revenue": 25}], "revenue", "share", total=200)

        assert shaped[0]["share"] == 12.5


class TestBuckets:

    def test_backfill_and_order_funnel(self):
        rows = [
            {"status": "shipped", "count": 4},
            {"status": "draft", "count": 2},
            {"status": "on_hold", "count": 1},
        ]
        shaped = order_by_sequence(
            backfill_buckets(rows, "status", SALES_ORDER_STATUSES, {"count": 0}),
            "status",
            SALES_ORDER_STATUSES,
        )

        assert [row["status"] for row in shaped] == SALES_ORDER_STATUSES + ["on_hold"]
        confirmed = next(row for row in shaped if row["status"] == "confirmed")
        assert confirmed["count"] == 0

    def test_unknown_keys_sorted_alphabetically(self):
        rows = [{"status": "zeta"}, {"status": "alpha"}, {"status": "draft"}]

        shaped = order_by_sequence(rows, "status", ["draft"])
        assert [row["status"] for row in shaped] == ["draft", "alpha", "zeta"]
