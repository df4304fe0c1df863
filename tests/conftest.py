"""
Shared fixtures and export document builders.
"""

from datetime import datetime, timedelta, timezone

import pytest

from health_insights.config import Settings
from health_insights.core.models import HealthDataset, SummaryStatistics
from health_insights.core.timeframe import months_ago

EST = timezone(timedelta(hours=-5))

# Fixed reference time; the window opens at 2024-01-01 12:00 -0500 (182 days)
NOW = datetime(2024, 7, 1, 12, 0, 0, tzinfo=EST)

STEPS = 'HKQuantityTypeIdentifierStepCount'
HEART_RATE = 'HKQuantityTypeIdentifierHeartRate'
RESTING_HEART_RATE = 'HKQuantityTypeIdentifierRestingHeartRate'
SLEEP = 'HKCategoryTypeIdentifierSleepAnalysis'
ASLEEP = 'HKCategoryValueSleepAnalysisAsleepCore'
IN_BED = 'HKCategoryValueSleepAnalysisInBed'


def record(rtype, start, value, end=None, unit='count', source='Apple Watch'):
    end = end or start
    return (
        f'<Record type="{rtype}" sourceName="{source}" unit="{unit}" '
        f'startDate="{start}" endDate="{end}" value="{value}"/>'
    )


def workout(start, duration='30', activity='HKWorkoutActivityTypeRunning', extra='', children=''):
    return (
        f'<Workout workoutActivityType="{activity}" duration="{duration}" '
        f'durationUnit="min" startDate="{start}" endDate="{start}" '
        f'sourceName="Apple Watch" {extra}>{children}</Workout>'
    )


def health_xml(*children):
    return '<HealthData locale="en_US">' + ''.join(children) + '</HealthData>'


def make_dataset(**series):
    fields = dict(
        steps=(),
        heart_rate=(),
        resting_heart_rate=(),
        workouts=(),
        sleep=(),
        summary=SummaryStatistics(),
        reference_time=NOW,
        window_start=months_ago(NOW, 6),
    )
    for name, value in series.items():
        fields[name] = tuple(value) if isinstance(value, list) else value
    return HealthDataset(**fields)


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def now():
    return NOW
