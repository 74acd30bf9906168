"""
Date and period helpers for origin reports.

"Today" is resolved in the store timezone, or taken from the manual
date override when one is configured.
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from origin_tracker.config import config
from origin_tracker.models import AdSpendEntry


@dataclass(frozen=True)
class DateRange:
    """Inclusive report date range."""
    start: date
    end: date

    @property
    def start_str(self) -> str:
        """Start date as YYYY-MM-DD string."""
        return self.start.strftime("%Y-%m-%d")

    @property
    def end_str(self) -> str:
        """End date as YYYY-MM-DD string."""
        return self.end.strftime("%Y-%m-%d")

    @property
    def key(self) -> str:
        """Ad spend key for this range."""
        return AdSpendEntry.make_key(self.start_str, self.end_str)

    @property
    def end_exclusive(self) -> date:
        """First day after the range; queries use `< end_exclusive`."""
        return self.end + timedelta(days=1)

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def is_single_day(self, day: date) -> bool:
        return self.start == day and self.end == day


def store_today(tz_name: Optional[str] = None) -> date:
    """Current date in the store timezone."""
    tz = ZoneInfo(tz_name or config.report.timezone)
    return datetime.now(tz).date()


def resolve_today(override: Optional[date] = None, tz_name: Optional[str] = None) -> Tuple[date, str]:
    """
    Resolve the report's notion of "today".

    Returns:
        Tuple of (today, date_source) where date_source is
        "manual_override" or "system"
    """
    if override is not None:
        return override, "manual_override"
    return store_today(tz_name), "system"


def default_range(today: date, window_days: Optional[int] = None) -> DateRange:
    """Default report window: the last N days through today."""
    days = window_days if window_days is not None else config.report.default_window_days
    return DateRange(today - timedelta(days=days), today)


def parse_period(
    period: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    reference_date: Optional[date] = None,
) -> DateRange:
    """
    Parse a period shortcut or explicit dates into a DateRange.

    Args:
        period: today, yesterday, week, last_week, month or last_month
        start_date: Explicit start date (YYYY-MM-DD), used if period is None
        end_date: Explicit end date (YYYY-MM-DD), used if period is None
        reference_date: What counts as today (default: store today)

    Without a period or explicit dates, returns the default report window.

    Examples:
        >>> parse_period("yesterday", reference_date=date(2026, 1, 13))
        DateRange(start=datetime.date(2026, 1, 12), end=datetime.date(2026, 1, 12))
    """
    today = reference_date or store_today()

    if period == "today":
        return DateRange(today, today)

    if period == "yesterday":
        yesterday = today - timedelta(days=1)
        return DateRange(yesterday, yesterday)

    if period == "week":
        return DateRange(today - timedelta(days=today.weekday()), today)

    if period == "last_week":
        end_of_last_week = today - timedelta(days=today.weekday() + 1)
        return DateRange(end_of_last_week - timedelta(days=6), end_of_last_week)

    if period == "month":
        return DateRange(today.replace(day=1), today)

    if period == "last_month":
        last_of_last_month = today.replace(day=1) - timedelta(days=1)
        return DateRange(last_of_last_month.replace(day=1), last_of_last_month)

    if start_date and end_date:
        start = datetime.strptime(start_date, "%Y-%m-%d").date()
        end = datetime.strptime(end_date, "%Y-%m-%d").date()
        return DateRange(start, end)

    return default_range(today)
