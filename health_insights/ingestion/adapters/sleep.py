"""
Sleep reconciliation.

Exports usually hold several sleep-analysis samples per night, often from
more than one device (watch, phone, third-party apps). The reconciler
collapses them into at most one SleepNight per calendar day.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Iterable
import logging

from health_insights.config import Settings, settings as default_settings
from health_insights.core.models import SleepNight
from .base import SleepEntry

logger = logging.getLogger(__name__)


ASLEEP_VALUES = frozenset({
    'HKCategoryValueSleepAnalysisAsleep',
    'HKCategoryValueSleepAnalysisAsleepCore',
    'HKCategoryValueSleepAnalysisAsleepDeep',
    'HKCategoryValueSleepAnalysisAsleepREM',
    'HKCategoryValueSleepAnalysisAsleepUnspecified',
})


@dataclass
class _NightAccumulator:
    asleep_intervals: list[tuple[datetime, datetime]] = field(default_factory=list)
    asleep_minutes: float = 0
    source_devices: set[str] = field(default_factory=set)


class SleepReconciler:
    """
    Merge raw sleep entries into one SleepNight per calendar day.

    Every asleep category (core, deep, REM, unspecified) counts the same;
    stages in the source are not used. By default overlapping entries from
    different devices are summed. With DEDUPLICATE_SLEEP_OVERLAPS the
    asleep intervals of a day are unioned first.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or default_settings

    def reconcile(self, entries: Iterable[SleepEntry]) -> list[SleepNight]:
        nights: dict[date, _NightAccumulator] = defaultdict(_NightAccumulator)
        skipped = 0

        for entry in entries:
            duration = entry.duration_minutes
            if duration <= 0 or duration > self.settings.MAX_SLEEP_ENTRY_MINUTES:
                skipped += 1
                continue

            night = nights[entry.start.date()]
            if entry.source_name:
                night.source_devices.add(entry.source_name)

            if entry.category in ASLEEP_VALUES:
                # Wall-clock intervals so aware and naive entries sort together
                wall_start = entry.start.replace(tzinfo=None)
                night.asleep_intervals.append((wall_start, wall_start + timedelta(minutes=duration)))
                night.asleep_minutes += duration

        if skipped:
            logger.debug(f"Skipped {skipped} sleep entries with invalid durations")

        result = []
        for day in sorted(nights):
            night = nights[day]
            asleep = night.asleep_minutes
            if self.settings.DEDUPLICATE_SLEEP_OVERLAPS:
                asleep = self._union_minutes(night.asleep_intervals)

            if asleep < self.settings.MIN_SLEEP_MINUTES:
                continue

            result.append(SleepNight(
                date=day,
                duration=asleep,
                deep_sleep=round(asleep * self.settings.DEEP_SLEEP_RATIO),
                rem_sleep=round(asleep * self.settings.REM_SLEEP_RATIO),
                source_devices=tuple(sorted(night.source_devices)),
            ))

        logger.debug(f"Reconciled {len(nights)} sleep days into {len(result)} nights")
        return result

    @staticmethod
    def _union_minutes(intervals: list[tuple[datetime, datetime]]) -> float:
        """Total minutes covered by the union of the given intervals."""
        total = 0.0
        current_start = current_end = None
        for start, end in sorted(intervals):
            if current_end is None or start > current_end:
                if current_end is not None:
                    total += (current_end - current_start).total_seconds() / 60
                current_start, current_end = start, end
            elif end > current_end:
                current_end = end
        if current_end is not None:
            total += (current_end - current_start).total_seconds() / 60
        return total
