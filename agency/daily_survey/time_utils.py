"""
Survey Pulse - Time Helpers
Day boundaries and report formatting for trigger times
"""

from datetime import date, datetime, time, timedelta
from typing import Iterable, Union


# Fixed, locale-independent pattern used in every report
TRIGGER_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_trigger_time(dt: datetime) -> str:
    """Format a trigger instant as YYYY-MM-DD HH:mm:ss."""
    return dt.strftime(TRIGGER_TIME_FORMAT)


def as_day(value: Union[date, datetime]) -> date:
    """Calendar day of a date or datetime (host local calendar)."""
    if isinstance(value, datetime):
        return value.date()
    return value


def window_start(day: Union[date, datetime], hour: int) -> datetime:
    """
    The given day at hour:00:00.000.

    A datetime keeps its tzinfo, so trigger times compare cleanly against
    the "now" they were generated from, naive or aware.
    """
    if isinstance(day, datetime):
        return datetime.combine(day.date(), time(hour=hour), tzinfo=day.tzinfo)
    return datetime.combine(day, time(hour=hour))


def next_day(value: Union[date, datetime]) -> Union[date, datetime]:
    """Same time of day one day later (a datetime keeps its tzinfo)."""
    return value + timedelta(days=1)


def format_time_list(times: Iterable[str]) -> str:
    """Join already formatted times into the report list form."""
    return ", ".join(times)
