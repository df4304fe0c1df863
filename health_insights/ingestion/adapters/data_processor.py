"""
Pandas-based data processor for coercing and aggregating health data.

Handles:
- Parsing export timestamps and numeric values consistently
- Aggregating per-sample step entries into daily totals
- Day-grouped heart rate rollups used by presentation layers
"""

from datetime import date, datetime
from typing import Iterable
import logging
import math

import numpy as np
import pandas as pd

from health_insights.core.models import DailyMetricPoint, HeartRateData, StepData
from .base import StepEntry

logger = logging.getLogger(__name__)


class DataProcessor:
    """
    Utility class for processing health data with pandas.
    """

    # Apple Health datetime formats
    DATETIME_FORMATS = [
        '%Y-%m-%d %H:%M:%S %z',   # 2024-01-15 08:23:44 -0500
        '%Y-%m-%dT%H:%M:%S%z',    # 2024-01-15T08:23:44-05:00
        '%Y-%m-%d %H:%M:%S',      # 2024-01-15 08:23:44
        '%Y-%m-%dT%H:%M:%S',      # 2024-01-15T08:23:44
        '%Y-%m-%d',               # 2024-01-15
    ]

    @classmethod
    def parse_datetime(cls, dt_string: str | None) -> datetime | None:
        """Try multiple datetime formats to parse a string."""
        if not dt_string or not dt_string.strip():
            return None

        dt_string = dt_string.strip()
        for fmt in cls.DATETIME_FORMATS:
            try:
                return datetime.strptime(dt_string, fmt)
            except ValueError:
                continue

        # Try pandas as fallback (handles many formats)
        try:
            parsed = pd.to_datetime(dt_string)
        except (ValueError, TypeError, OverflowError):
            logger.debug(f"Could not parse datetime: {dt_string}")
            return None
        if pd.isna(parsed):
            return None
        return parsed.to_pydatetime()

    @staticmethod
    def calendar_day(timestamp: datetime) -> date:
        """Wall-clock date of a timestamp, in the offset it was recorded with."""
        return timestamp.date()

    @staticmethod
    def to_number(value) -> float:
        """Coerce a raw attribute to a float, NaN when it is not numeric."""
        if value is None:
            return math.nan
        number = pd.to_numeric(value, errors='coerce')
        if pd.isna(number):
            return math.nan
        return float(number)

    @classmethod
    def to_int(cls, value) -> int | None:
        """Coerce a raw attribute to an int, truncating decimals. None if not numeric."""
        number = cls.to_number(value)
        if not math.isfinite(number):
            return None
        return int(number)

    @classmethod
    def validate_steps(cls, value: int | None) -> bool:
        """Step counts must be present and positive."""
        return value is not None and value > 0

    @classmethod
    def validate_heart_rate(cls, value: float) -> bool:
        """Heart rate must be a finite positive number."""
        return math.isfinite(value) and value > 0

    @staticmethod
    def round_half_away(value: float, decimals: int = 2) -> float:
        """Round to `decimals` places, halves away from zero. NaN passes through."""
        factor = 10 ** decimals
        return float(np.sign(value) * np.floor(np.abs(value) * factor + 0.5) / factor)

    # -------------------------------------------------------------------------
    # Daily aggregation
    # -------------------------------------------------------------------------

    @classmethod
    def aggregate_daily_steps(cls, entries: Iterable[StepEntry]) -> list[StepData]:
        """
        Sum step entries into one point per calendar day.

        Returns StepData sorted by date ascending.
        """
        entries = list(entries)
        if not entries:
            return []

        df = pd.DataFrame({
            'date': [cls.calendar_day(e.start) for e in entries],
            'steps': [e.count for e in entries],
        })

        daily = df.groupby('date', sort=True).agg(
            steps=('steps', 'sum'),
        ).reset_index()

        logger.debug(f"Aggregated {len(entries)} step entries into {len(daily)} days")

        return [
            StepData(date=day, count=int(total))
            for day, total in zip(daily['date'], daily['steps'])
        ]

    @classmethod
    def group_heart_rate_by_day(cls, samples: Iterable[HeartRateData]) -> list[DailyMetricPoint]:
        """Average heart rate samples per calendar day, rounded to 2 decimals."""
        return cls._group_by_day(samples, agg_func='mean', decimals=2)

    @classmethod
    def group_resting_heart_rate_by_day(cls, samples: Iterable[HeartRateData]) -> list[DailyMetricPoint]:
        """Keep the lowest resting heart rate recorded on each calendar day."""
        return cls._group_by_day(samples, agg_func='min')

    @classmethod
    def _group_by_day(
        cls,
        samples: Iterable[HeartRateData],
        agg_func: str,
        decimals: int | None = None,
    ) -> list[DailyMetricPoint]:
        samples = list(samples)
        if not samples:
            return []

        df = pd.DataFrame({
            'date': [s.date for s in samples],
            'value': [s.value for s in samples],
            'unit': [s.unit for s in samples],
        })

        result = df.groupby('date', sort=True).agg(
            value=('value', agg_func),
            unit=('unit', 'first'),
        ).reset_index()

        points = []
        for day, value, unit in zip(result['date'], result['value'], result['unit']):
            value = float(value)
            if decimals is not None:
                value = cls.round_half_away(value, decimals)
            points.append(DailyMetricPoint(date=day, value=value, unit=unit))
        return points

    # -------------------------------------------------------------------------
    # Presentation helpers
    # -------------------------------------------------------------------------

    @classmethod
    def calculate_average(cls, values: Iterable[float]) -> float:
        """Mean rounded to 1 decimal; 0 for an empty series."""
        values = list(values)
        if not values:
            return 0
        return cls.round_half_away(float(np.mean(values)), 1)

    @staticmethod
    def sleep_quality(duration_minutes: float) -> str:
        """Qualitative label for a nightly sleep duration."""
        if math.isnan(duration_minutes) or duration_minutes == 0:
            return 'No data'
        if duration_minutes < 360:
            return 'Not enough sleep'
        if duration_minutes < 420:
            return 'Adequate'
        if duration_minutes < 540:
            return 'Good'
        return 'Excellent'

    @staticmethod
    def format_duration(minutes: float) -> str:
        """Format minutes as '7h 30m'."""
        if math.isnan(minutes) or minutes < 0:
            minutes = 0
        hours, mins = divmod(int(math.floor(minutes + 0.5)), 60)
        return f"{hours}h {mins}m"
