# backend/modules/reporting/tests/test_date_windows.py

import pytest
from datetime import date, datetime, timedelta, timezone

from modules.reporting.services.date_windows import (
    DateWindow,
    build_window,
    parse_timestamp,
    trend_granularity,
)


class TestComparisonWindow:
    """The comparison window immediately precedes the primary window"""

    def test_july_compares_with_june(self, july_window):
        comparison = july_window.comparison()

        assert comparison.end == datetime(2025, 6, 30, 23, 59, 59, 999000, tzinfo=timezone.utc)
        assert comparison.start == datetime(2025, 5, 31, tzinfo=timezone.utc)

    def test_durations_are_equal(self, july_window):
        comparison = july_window.comparison()

        assert comparison.duration == july_window.duration
        assert july_window.start - comparison.end == timedelta(milliseconds=1)

    def test_contains_both_boundaries(self, july_window):
        assert july_window.contains(july_window.start)
        assert july_window.contains(july_window.end)
        assert not july_window.contains(july_window.comparison().end)

    def test_single_instant_window(self):
        moment = datetime(2025, 1, 1, 12, tzinfo=timezone.utc)
        window = DateWindow(start=moment, end=moment)

        comparison = window.comparison()
        assert comparison.start == comparison.end == moment - timedelta(milliseconds=1)

    def test_rejects_reversed_window(self):
        with pytest.raises(ValueError):
            DateWindow(
                start=datetime(2025, 2, 1, tzinfo=timezone.utc),
                end=datetime(2025, 1, 1, tzinfo=timezone.utc),
            )


class TestParseTimestamp:

    def test_date_only_expands_to_whole_day(self):
        assert parse_timestamp("2025-07-31") == datetime(2025, 7, 31, tzinfo=timezone.utc)
        assert parse_timestamp("2025-07-31", end_of_day=True) == datetime(
            2025, 7, 31, 23, 59, 59, 999000, tzinfo=timezone.utc
        )

    def test_zulu_suffix(self):
        assert parse_timestamp("2025-07-01T10:30:00Z") == datetime(2025, 7, 1, 10, 30, tzinfo=timezone.utc)

    def test_offset_is_normalized_to_utc(self):
        assert parse_timestamp("2025-07-01T12:00:00+02:00") == datetime(2025, 7, 1, 10, tzinfo=timezone.utc)

    def test_date_objects(self):
        assert parse_timestamp(date(2025, 7, 1)) == datetime(2025, 7, 1, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", ["", "not-a-date", "2025-13-01"])
    def test_invalid_input(self, value):
        with pytest.raises(ValueError):
            parse_timestamp(value)


class TestBuildWindow:

    def test_defaults_to_trailing_thirty_days(self):
        now = datetime(2025, 8, 15, 12, tzinfo=timezone.utc)
        window = build_window(None, None, now=now)

        assert window.end == datetime(2025, 8, 15, 23, 59, 59, 999000, tzinfo=timezone.utc)
        assert window.start == datetime(2025, 7, 16, tzinfo=timezone.utc)

    def test_explicit_dates(self):
        window = build_window("2025-07-01", "2025-07-31")

        assert window.start == datetime(2025, 7, 1, tzinfo=timezone.utc)
        assert window.end.date() == date(2025, 7, 31)

    def test_reversed_dates_raise(self):
        with pytest.raises(ValueError):
            build_window("2025-08-01", "2025-07-01")


class TestTrendGranularity:

    @pytest.mark.parametrize(
        "start,end,expected",
        [
            ("2025-07-01", "2025-07-31", "day"),
            ("2025-01-01", "2025-04-02", "day"),
            ("2025-01-01", "2025-06-30", "week"),
            ("2022-01-01", "2025-06-30", "month"),
        ],
    )
    def test_bucket_size_follows_window_length(self, start, end, expected):
        assert trend_granularity(build_window(start, end)) == expected
