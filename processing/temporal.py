"""
Range Filtering - Trim a series to a named relative window.

Windows use calendar arithmetic: "1M" on March 15 starts at February 15,
not 30 days earlier.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Sequence

from dateutil.relativedelta import relativedelta


class RangeWindow(str, Enum):
    ONE_MONTH = '1M'
    THREE_MONTHS = '3M'
    SIX_MONTHS = '6M'
    ONE_YEAR = '1Y'
    TWO_YEARS = '2Y'
    ALL = 'ALL'

    @classmethod
    def parse(cls, value) -> "RangeWindow":
        """Accept a RangeWindow or its name in any case."""
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().upper())


_WINDOW_DELTAS = {
    RangeWindow.ONE_MONTH: relativedelta(months=1),
    RangeWindow.THREE_MONTHS: relativedelta(months=3),
    RangeWindow.SIX_MONTHS: relativedelta(months=6),
    RangeWindow.ONE_YEAR: relativedelta(years=1),
    RangeWindow.TWO_YEARS: relativedelta(years=2),
}


def range_start(window, now: Optional[datetime] = None) -> int:
    """
    Start timestamp (UTC midnight) of the window relative to now.

    "ALL" resolves to 0, i.e. no lower bound.
    """
    window = RangeWindow.parse(window)
    if window is RangeWindow.ALL:
        return 0

    now = now or datetime.now(timezone.utc)
    start = now.date() - _WINDOW_DELTAS[window]
    return int(datetime(start.year, start.month, start.day, tzinfo=timezone.utc).timestamp())


def filter_by_range(points: Optional[Sequence], window, now: Optional[datetime] = None) -> List:
    """
    Points with timestamp >= the window start.

    Always returns a new list; the source sequence is never mutated.
    """
    if not points:
        return []

    window = RangeWindow.parse(window)
    if window is RangeWindow.ALL:
        return list(points)

    start = range_start(window, now)
    return [p for p in points if p.timestamp >= start]
