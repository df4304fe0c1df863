"""
Time-window filtering for dated series.

Every series in a HealthDataset is clipped to the same rolling lookback
window, measured in calendar months back from one reference instant that
is supplied once per pipeline run.
"""

from datetime import date, datetime, timedelta
from enum import Enum
from typing import Callable, Iterable, TypeVar
import math

import pandas as pd

T = TypeVar('T')


class TimeFrame(str, Enum):
    WEEK = 'week'
    MONTH = 'month'
    SIX_MONTHS = '6months'


def months_ago(now: datetime, months: int) -> datetime:
    """Same wall-clock instant `months` calendar months before `now` (clipped to month end)."""
    return (pd.Timestamp(now) - pd.DateOffset(months=months)).to_pydatetime()


def days_in_window(now: datetime, window_start: datetime) -> int:
    """Number of calendar days covered by the window, rounded up."""
    return math.ceil((now - window_start).total_seconds() / 86400)


def is_on_or_after(value: date | datetime, cutoff: datetime) -> bool:
    """
    Compare a series key against the window cutoff.

    Day-keyed values are compared by calendar date. Timestamps are compared
    as instants when both sides carry an offset, and by wall clock otherwise.
    """
    if not isinstance(value, datetime):
        return value >= cutoff.date()
    if (value.tzinfo is None) != (cutoff.tzinfo is None):
        return value.replace(tzinfo=None) >= cutoff.replace(tzinfo=None)
    return value >= cutoff


def _default_key(item) -> date | datetime:
    return getattr(item, 'timestamp', None) or item.date


def filter_since(
    items: Iterable[T],
    cutoff: datetime,
    key: Callable[[T], date | datetime] = _default_key,
) -> list[T]:
    """Keep items whose key is on or after the cutoff, preserving order."""
    return [item for item in items if is_on_or_after(key(item), cutoff)]


def filter_last_months(
    items: Iterable[T],
    now: datetime,
    months: int = 6,
    key: Callable[[T], date | datetime] = _default_key,
) -> list[T]:
    """Keep items dated within the last `months` calendar months of `now`."""
    return filter_since(items, months_ago(now, months), key)


def filter_by_timeframe(
    items: Iterable[T],
    timeframe: TimeFrame,
    now: datetime,
    key: Callable[[T], date | datetime] = _default_key,
) -> list[T]:
    """
    Narrow an already windowed series for display.

    SIX_MONTHS returns the series unchanged.
    """
    if timeframe == TimeFrame.WEEK:
        cutoff = now - timedelta(days=7)
    elif timeframe == TimeFrame.MONTH:
        cutoff = months_ago(now, 1)
    else:
        return list(items)
    return filter_since(items, cutoff, key)
