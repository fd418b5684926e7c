"""
Timeframes and Time Conversion

Named query windows over the snapshot history and conversions between
datetimes, calendar dates and epoch milliseconds. Naive datetimes are
treated as UTC.
"""

from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Optional, Union

MS_PER_DAY = 86_400_000

Clock = Callable[[], datetime]
TimeLike = Union[int, float, datetime, date, str]


class Timeframe(str, Enum):
    """Closed set of history windows."""

    ONE_DAY = "1d"
    ONE_WEEK = "1w"
    ONE_MONTH = "1m"
    THREE_MONTHS = "3m"
    SIX_MONTHS = "6m"
    ONE_YEAR = "1y"
    ALL = "all"

    @property
    def offset_days(self) -> Optional[int]:
        """Days back from now; None for the unfiltered window."""
        return TIMEFRAME_OFFSET_DAYS[self]

    @property
    def offset_ms(self) -> Optional[int]:
        days = self.offset_days
        return None if days is None else days * MS_PER_DAY


TIMEFRAME_OFFSET_DAYS = {
    Timeframe.ONE_DAY: 1,
    Timeframe.ONE_WEEK: 7,
    Timeframe.ONE_MONTH: 30,
    Timeframe.THREE_MONTHS: 90,
    Timeframe.SIX_MONTHS: 180,
    Timeframe.ONE_YEAR: 365,
    Timeframe.ALL: None,
}


def utc_now() -> datetime:
    """Default clock."""
    return datetime.now(timezone.utc)


def to_epoch_ms(value: TimeLike) -> int:
    """
    Convert a point in time to epoch milliseconds.

    Args:
        value: Epoch ms, a datetime, a date (midnight UTC) or an ISO string

    Returns:
        Milliseconds since the Unix epoch

    Raises:
        TypeError: If the value type is not supported
        ValueError: If a string is not ISO formatted
    """
    if isinstance(value, bool):
        raise TypeError("bool is not a valid time value")
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp() * 1000)
    if isinstance(value, date):
        return int(datetime(value.year, value.month, value.day, tzinfo=timezone.utc).timestamp() * 1000)
    raise TypeError(f"Unsupported time value: {type(value).__name__}")


def from_epoch_ms(ms: int) -> datetime:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)


def date_to_epoch_ms(iso_date: str) -> int:
    """Midnight UTC of a YYYY-MM-DD date."""
    return to_epoch_ms(date.fromisoformat(iso_date))


def window_bounds(timeframe: Union[Timeframe, str], now: datetime) -> Optional[tuple]:
    """
    Get the inclusive [start, end] epoch ms bounds for a timeframe.

    Returns:
        (start_ms, end_ms), or None for ``Timeframe.ALL``
    """
    timeframe = Timeframe(timeframe)
    if timeframe.offset_days is None:
        return None
    end = now if now.tzinfo else now.replace(tzinfo=timezone.utc)
    start = end - timedelta(days=timeframe.offset_days)
    return to_epoch_ms(start), to_epoch_ms(end)
