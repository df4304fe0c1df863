"""
Normalized health data model.

The pipeline turns one export document into a HealthDataset: independent
series for each metric, all clipped to the same lookback window, plus a
SummaryStatistics rollup. Everything here is immutable once built.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum


# -----------------------------------------------------------------------------
# Series points
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class StepData:
    """Total steps recorded on one calendar day."""
    date: date
    count: int


@dataclass(frozen=True)
class HeartRateData:
    """
    A single heart rate sample at source density.
    Used for both heart rate and resting heart rate series.
    """
    timestamp: datetime
    value: float
    unit: str = 'count/min'

    @property
    def date(self) -> date:
        return self.timestamp.date()


@dataclass(frozen=True)
class DailyMetricPoint:
    """One value per calendar day, e.g. a day-grouped heart rate."""
    date: date
    value: float
    unit: str = ''


@dataclass(frozen=True)
class WorkoutEvent:
    timestamp: datetime
    activity_type: str
    duration: float  # minutes
    calories: float
    distance: float | None = None  # kilometres

    @property
    def date(self) -> date:
        return self.timestamp.date()


@dataclass(frozen=True)
class SleepNight:
    """
    Reconciled sleep for one calendar day.

    deep_sleep and rem_sleep are fixed-ratio estimates of duration,
    not measured stages.
    """
    date: date
    duration: float  # minutes asleep
    deep_sleep: int
    rem_sleep: int
    source_devices: tuple[str, ...] = ()


# -----------------------------------------------------------------------------
# Dataset and summary
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class SummaryStatistics:
    """
    Scalar rollup over the windowed series.

    Averages over an empty series are 0, and most_active_day is None when
    there is no step data. Callers must treat both as "no data".
    """
    total_steps: int = 0
    average_steps: float = 0
    most_active_day: date | None = None
    total_workouts: int = 0
    average_workout_duration: float = 0
    average_heart_rate: float = 0
    average_resting_heart_rate: float = 0
    average_sleep_duration: float = 0


@dataclass(frozen=True)
class HealthDataset:
    steps: tuple[StepData, ...]
    heart_rate: tuple[HeartRateData, ...]
    resting_heart_rate: tuple[HeartRateData, ...]
    workouts: tuple[WorkoutEvent, ...]
    sleep: tuple[SleepNight, ...]
    summary: SummaryStatistics
    reference_time: datetime
    window_start: datetime

    @property
    def is_empty(self) -> bool:
        return not (
            self.steps or self.heart_rate or self.resting_heart_rate
            or self.workouts or self.sleep
        )


# -----------------------------------------------------------------------------
# Correlations and insights
# -----------------------------------------------------------------------------

class CorrelationKind(str, Enum):
    SLEEP_VS_RESTING_HEART_RATE = 'sleep_vs_resting_heart_rate'
    STEPS_VS_HEART_RATE = 'steps_vs_heart_rate'
    SLEEP_VS_NEXT_DAY_STEPS = 'sleep_vs_next_day_steps'


@dataclass(frozen=True)
class PairedPoint:
    x: float
    y: float
    date: date


@dataclass(frozen=True)
class Correlation:
    coefficient: float
    paired_points: tuple[PairedPoint, ...] = ()

    @property
    def sample_size(self) -> int:
        return len(self.paired_points)


@dataclass(frozen=True)
class CorrelationInsight:
    kind: CorrelationKind
    correlation: Correlation
    sufficient_data: bool
    title: str
    strength: str = ''
    direction: str = ''
    description: str = ''
    interpretation: str = ''


@dataclass(frozen=True)
class Recommendation:
    title: str
    description: str
    impact: str


# -----------------------------------------------------------------------------
# Goals
# -----------------------------------------------------------------------------

class GoalType(str, Enum):
    STEPS = 'steps'
    SLEEP = 'sleep'
    HEART_RATE = 'heartRate'
    WORKOUT = 'workout'


class GoalPeriod(str, Enum):
    DAILY = 'daily'
    WEEKLY = 'weekly'
    MONTHLY = 'monthly'


@dataclass
class GoalCheckpoint:
    date: date
    value: float
    target: float
    completed: bool


@dataclass
class Goal:
    id: str
    type: GoalType
    target: float
    period: GoalPeriod
    title: str
    start_date: date
    description: str = ''
    progress: float = 0
    completed: bool = False
    history: list[GoalCheckpoint] = field(default_factory=list)
