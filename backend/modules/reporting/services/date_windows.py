# backend/modules/reporting/services/date_windows.py

"""
Date window handling for reports and period-over-period comparisons.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union

from ..constants import (
    DEFAULT_WINDOW_DAYS,
    TREND_MONTHLY_THRESHOLD_DAYS,
    TREND_WEEKLY_THRESHOLD_DAYS,
)

# Smallest step between two stored timestamps
TIMESTAMP_RESOLUTION = timedelta(milliseconds=1)

END_OF_DAY = time(23, 59, 59, 999000)


@dataclass(frozen=True)
class DateWindow:
    """Inclusive [start, end] interval of timestamps"""

    start: datetime
    end: datetime

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError("end date must not be before start date")

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def comparison(self) -> "DateWindow":
        """
        The window of identical duration immediately preceding this one.

        comparison.end is one timestamp step before self.start and
        comparison.end - comparison.start == self.end - self.start.
        """
        comparison_end = self.start - TIMESTAMP_RESOLUTION
        return DateWindow(start=comparison_end - self.duration, end=comparison_end)

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Union[str, date, datetime], end_of_day: bool = False) -> datetime:
    """
    Parse an ISO-8601 date or datetime into an aware UTC datetime.

    Date-only input expands to the start of that day, or to its last
    millisecond when `end_of_day` is set, so a range of calendar days is
    inclusive on both ends.
    """
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, END_OF_DAY if end_of_day else time.min, timezone.utc)

    text = str(value).strip()
    if not text:
        raise ValueError("empty timestamp")
    if len(text) == 10:
        parsed_date = date.fromisoformat(text)
        return datetime.combine(
            parsed_date, END_OF_DAY if end_of_day else time.min, timezone.utc
        )
    # fromisoformat() before Python 3.11 does not accept a trailing "Z"
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return _as_utc(datetime.fromisoformat(text))


def build_window(
    start: Optional[Union[str, date, datetime]],
    end: Optional[Union[str, date, datetime]],
    now: Optional[datetime] = None,
) -> DateWindow:
    """
    Build a window from optional boundaries.

    Missing end defaults to today, missing start to DEFAULT_WINDOW_DAYS
    before the end. Both boundaries are widened to whole days when given
    as plain dates.
    """
    now = _as_utc(now or datetime.now(timezone.utc))
    end_dt = parse_timestamp(end, end_of_day=True) if end else parse_timestamp(now.date(), True)
    if start:
        start_dt = parse_timestamp(start)
    else:
        start_dt = parse_timestamp((end_dt - timedelta(days=DEFAULT_WINDOW_DAYS)).date())
    return DateWindow(start=start_dt, end=end_dt)


def trend_granularity(window: DateWindow) -> str:
    """Pick the trend bucket size for a window: day, week or month"""
    days = window.duration.days
    if days > TREND_MONTHLY_THRESHOLD_DAYS:
        return "month"
    if days > TREND_WEEKLY_THRESHOLD_DAYS:
        return "week"
    return "day"
