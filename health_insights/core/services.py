"""
Core services for summary statistics and insights generation.
"""

from datetime import datetime, timedelta
from typing import Iterable, Sequence
import logging
import math

import numpy as np

from health_insights.config import Settings, settings as default_settings
from health_insights.ingestion.adapters.data_processor import DataProcessor
from .models import (
    Correlation,
    CorrelationInsight,
    CorrelationKind,
    HealthDataset,
    HeartRateData,
    PairedPoint,
    Recommendation,
    SleepNight,
    StepData,
    SummaryStatistics,
    WorkoutEvent,
)
from .timeframe import days_in_window

logger = logging.getLogger(__name__)


class SummaryService:
    """
    Service to build SummaryStatistics from windowed series.
    """

    @classmethod
    def build_summary(
        cls,
        steps: Sequence[StepData],
        heart_rate: Sequence[HeartRateData],
        resting_heart_rate: Sequence[HeartRateData],
        workouts: Sequence[WorkoutEvent],
        sleep: Sequence[SleepNight],
        now: datetime,
        window_start: datetime,
    ) -> SummaryStatistics:
        """
        Roll the windowed series up into scalar statistics.

        averageSteps divides by the calendar days in the window, not by the
        days that have data, so gaps lower the average. Other averages
        divide by max(count, 1), giving 0 for an empty series.
        """
        total_steps = sum(s.count for s in steps)
        total_days = max(days_in_window(now, window_start), 1)

        most_active_day = None
        most_steps = 0
        for s in steps:
            if s.count > most_steps:
                most_steps = s.count
                most_active_day = s.date

        return SummaryStatistics(
            total_steps=total_steps,
            average_steps=DataProcessor.round_half_away(total_steps / total_days),
            most_active_day=most_active_day,
            total_workouts=len(workouts),
            average_workout_duration=cls._average(w.duration for w in workouts),
            average_heart_rate=cls._average(hr.value for hr in heart_rate),
            average_resting_heart_rate=cls._average(hr.value for hr in resting_heart_rate),
            average_sleep_duration=cls._average(s.duration for s in sleep),
        )

    @classmethod
    def build_from_dataset(cls, dataset: HealthDataset) -> SummaryStatistics:
        return cls.build_summary(
            dataset.steps,
            dataset.heart_rate,
            dataset.resting_heart_rate,
            dataset.workouts,
            dataset.sleep,
            now=dataset.reference_time,
            window_start=dataset.window_start,
        )

    @staticmethod
    def _average(values: Iterable[float]) -> float:
        values = list(values)
        return DataProcessor.round_half_away(sum(values) / (len(values) or 1))


class InsightsService:
    """
    Service to pair series and generate correlation insights.
    """

    TITLES = {
        CorrelationKind.SLEEP_VS_RESTING_HEART_RATE: 'Sleep and Heart Rate',
        CorrelationKind.STEPS_VS_HEART_RATE: 'Activity and Heart Rate',
        CorrelationKind.SLEEP_VS_NEXT_DAY_STEPS: 'Sleep and Next Day Activity',
    }

    DESCRIPTIONS = {
        CorrelationKind.SLEEP_VS_RESTING_HEART_RATE:
            'your sleep duration and resting heart rate',
        CorrelationKind.STEPS_VS_HEART_RATE:
            'your daily steps and heart rate',
        CorrelationKind.SLEEP_VS_NEXT_DAY_STEPS:
            "your sleep duration and next day's activity level",
    }

    INTERPRETATIONS = {
        CorrelationKind.SLEEP_VS_RESTING_HEART_RATE: {
            'positive': 'Longer sleep duration is associated with higher resting heart rate.',
            'negative': 'Longer sleep duration is associated with lower resting heart rate.',
            'no': 'There is no clear relationship between your sleep duration and resting heart rate.',
        },
        CorrelationKind.STEPS_VS_HEART_RATE: {
            'positive': 'Higher step counts are associated with higher heart rates.',
            'negative': 'Higher step counts are associated with lower heart rates.',
            'no': 'There is no clear relationship between your step count and heart rate.',
        },
        CorrelationKind.SLEEP_VS_NEXT_DAY_STEPS: {
            'positive': 'Getting more sleep tends to lead to higher step counts the next day.',
            'negative': 'Getting more sleep tends to lead to lower step counts the next day.',
            'no': 'There is no clear relationship between your sleep duration and next day activity.',
        },
    }

    # -------------------------------------------------------------------------
    # Coefficient and labels
    # -------------------------------------------------------------------------

    @staticmethod
    def pearson(x: Sequence[float], y: Sequence[float]) -> float:
        """
        Product-moment correlation of two equal-length samples.

        Returns 0 for mismatched or empty samples, when either sample has
        zero variance, and when the result is not finite.
        """
        if len(x) != len(y) or len(x) == 0:
            return 0.0

        xs = np.asarray(x, dtype=float)
        ys = np.asarray(y, dtype=float)
        x_diff = xs - xs.mean()
        y_diff = ys - ys.mean()

        numerator = float(np.sum(x_diff * y_diff))
        x_denominator = float(np.sum(x_diff * x_diff))
        y_denominator = float(np.sum(y_diff * y_diff))

        if x_denominator == 0 or y_denominator == 0:
            return 0.0
        r = numerator / math.sqrt(x_denominator * y_denominator)
        if not math.isfinite(r):
            return 0.0
        # Guard against floating point drift past the bounds
        return max(-1.0, min(1.0, r))

    @staticmethod
    def interpret_strength(coefficient: float) -> str:
        strength = abs(coefficient)
        if strength < 0.2:
            return 'very weak'
        if strength < 0.4:
            return 'weak'
        if strength < 0.6:
            return 'moderate'
        if strength < 0.8:
            return 'strong'
        return 'very strong'

    @staticmethod
    def correlation_direction(coefficient: float) -> str:
        if coefficient > 0.05:
            return 'positive'
        if coefficient < -0.05:
            return 'negative'
        return 'no'

    # -------------------------------------------------------------------------
    # Pairing
    # -------------------------------------------------------------------------

    @classmethod
    def pair_sleep_with_resting_heart_rate(cls, dataset: HealthDataset) -> list[PairedPoint]:
        """Each resting heart rate sample paired with that day's sleep."""
        sleep_by_date = {night.date: night.duration for night in dataset.sleep}
        return [
            PairedPoint(x=sleep_by_date[hr.date], y=hr.value, date=hr.date)
            for hr in dataset.resting_heart_rate
            if hr.date in sleep_by_date
        ]

    @classmethod
    def pair_steps_with_heart_rate(cls, dataset: HealthDataset) -> list[PairedPoint]:
        """Each heart rate sample paired with that day's step total."""
        steps_by_date = {s.date: s.count for s in dataset.steps}
        return [
            PairedPoint(x=steps_by_date[hr.date], y=hr.value, date=hr.date)
            for hr in dataset.heart_rate
            if hr.date in steps_by_date
        ]

    @classmethod
    def pair_sleep_with_next_day_steps(cls, dataset: HealthDataset) -> list[PairedPoint]:
        """Sleep on day D paired with steps on day D+1, dated D+1."""
        sleep_by_date = {night.date: night.duration for night in dataset.sleep}
        points = []
        for s in dataset.steps:
            previous_day = s.date - timedelta(days=1)
            if previous_day in sleep_by_date:
                points.append(PairedPoint(x=sleep_by_date[previous_day], y=s.count, date=s.date))
        return points

    @classmethod
    def correlate(cls, points: Sequence[PairedPoint]) -> Correlation:
        coefficient = cls.pearson([p.x for p in points], [p.y for p in points])
        return Correlation(coefficient=coefficient, paired_points=tuple(points))

    @classmethod
    def get_correlations(cls, dataset: HealthDataset) -> dict[CorrelationKind, Correlation]:
        """Calculate the three supported correlations for a dataset."""
        return {
            CorrelationKind.SLEEP_VS_RESTING_HEART_RATE:
                cls.correlate(cls.pair_sleep_with_resting_heart_rate(dataset)),
            CorrelationKind.STEPS_VS_HEART_RATE:
                cls.correlate(cls.pair_steps_with_heart_rate(dataset)),
            CorrelationKind.SLEEP_VS_NEXT_DAY_STEPS:
                cls.correlate(cls.pair_sleep_with_next_day_steps(dataset)),
        }

    # -------------------------------------------------------------------------
    # Insights
    # -------------------------------------------------------------------------

    @classmethod
    def build_insight(
        cls,
        kind: CorrelationKind,
        correlation: Correlation,
        settings: Settings | None = None,
    ) -> CorrelationInsight:
        """
        Describe a correlation in words.

        Needs more than MIN_INSIGHT_POINTS paired points; below that the
        insight reports insufficient data whatever the coefficient is.
        """
        settings = settings or default_settings
        title = cls.TITLES[kind]

        if correlation.sample_size <= settings.MIN_INSIGHT_POINTS:
            return CorrelationInsight(
                kind=kind,
                correlation=correlation,
                sufficient_data=False,
                title=title,
                description='Insufficient data for correlation analysis',
            )

        strength = cls.interpret_strength(correlation.coefficient)
        direction = cls.correlation_direction(correlation.coefficient)
        return CorrelationInsight(
            kind=kind,
            correlation=correlation,
            sufficient_data=True,
            title=title,
            strength=strength,
            direction=direction,
            description=(
                f"There appears to be a {strength} {direction} correlation "
                f"between {cls.DESCRIPTIONS[kind]}."
            ),
            interpretation=cls.INTERPRETATIONS[kind][direction],
        )

    @classmethod
    def generate_insights(
        cls,
        dataset: HealthDataset,
        settings: Settings | None = None,
    ) -> list[CorrelationInsight]:
        """One insight per correlation, in a fixed order."""
        correlations = cls.get_correlations(dataset)
        insights = [
            cls.build_insight(kind, correlation, settings)
            for kind, correlation in correlations.items()
        ]
        logger.debug(
            "Generated insights: "
            + ", ".join(f"{i.kind.value}={i.correlation.sample_size} points" for i in insights)
        )
        return insights


class RecommendationService:
    """
    Turn the summary and correlation coefficients into recommendations.
    """

    SLEEP_TARGET_HOURS = 7
    STEP_TARGET = 7500
    STEP_MINIMUM = 5000
    CORRELATION_THRESHOLD = 0.3

    @classmethod
    def sleep_recommendation(
        cls,
        summary: SummaryStatistics,
        correlations: dict[CorrelationKind, Correlation],
    ) -> Recommendation:
        sleep_hr = correlations[CorrelationKind.SLEEP_VS_RESTING_HEART_RATE].coefficient
        sleep_steps = correlations[CorrelationKind.SLEEP_VS_NEXT_DAY_STEPS].coefficient
        avg_sleep_hours = summary.average_sleep_duration / 60

        if sleep_hr < -cls.CORRELATION_THRESHOLD:
            if avg_sleep_hours < cls.SLEEP_TARGET_HOURS:
                return Recommendation(
                    title='Consider Increasing Sleep Duration',
                    description=(
                        'Your data suggests that longer sleep durations are associated with '
                        'lower resting heart rate. Consider increasing your sleep to 7-8 hours per night.'
                    ),
                    impact='Potential for improved heart health and recovery',
                )
            return Recommendation(
                title='Maintain Current Sleep Pattern',
                description=(
                    f"Your current average sleep duration of {avg_sleep_hours:.1f} hours "
                    f"appears to be supporting a healthy resting heart rate."
                ),
                impact='Continued heart health benefits',
            )

        if sleep_hr > cls.CORRELATION_THRESHOLD:
            return Recommendation(
                title='Evaluate Sleep Quality',
                description=(
                    'Your data shows an unusual pattern where longer sleep is associated with '
                    'higher heart rate. This could indicate sleep quality issues.'
                ),
                impact='Addressing sleep quality may improve recovery and heart health',
            )

        if sleep_steps > cls.CORRELATION_THRESHOLD and avg_sleep_hours < cls.SLEEP_TARGET_HOURS:
            return Recommendation(
                title='Increase Sleep for More Activity',
                description=(
                    'Your data suggests that more sleep leads to higher activity levels the next day. '
                    'Aim for 7-8 hours of sleep to boost your energy for activity.'
                ),
                impact='Potential for increased daily activity and energy levels',
            )

        return Recommendation(
            title='Maintain Consistent Sleep Schedule',
            description=(
                'While no strong correlation was found between your sleep and other metrics, '
                'maintaining a consistent sleep schedule of 7-9 hours is recommended for general health.'
            ),
            impact='Supports overall wellbeing and consistent energy levels',
        )

    @classmethod
    def activity_recommendation(
        cls,
        summary: SummaryStatistics,
        correlations: dict[CorrelationKind, Correlation],
    ) -> Recommendation:
        steps_hr = correlations[CorrelationKind.STEPS_VS_HEART_RATE].coefficient
        avg_steps = summary.average_steps

        if steps_hr > cls.CORRELATION_THRESHOLD:
            if avg_steps < cls.STEP_TARGET:
                return Recommendation(
                    title='Gradually Increase Activity',
                    description=(
                        'Your data shows increased activity raises your heart rate, which is normal. '
                        'Consider gradually increasing daily steps to improve cardiovascular fitness.'
                    ),
                    impact='Improved cardiovascular health and endurance',
                )
            return Recommendation(
                title='Maintain Current Activity Level',
                description=(
                    f"Your current average of {avg_steps:.0f} steps per day appears to be "
                    f"providing good cardiovascular stimulus."
                ),
                impact='Continued cardiovascular fitness benefits',
            )

        if steps_hr < -cls.CORRELATION_THRESHOLD:
            return Recommendation(
                title='Your Fitness Level Appears Strong',
                description=(
                    'The data suggests higher activity levels are associated with lower heart rates, '
                    'indicating good cardiovascular fitness.'
                ),
                impact='Continue current activity patterns for heart health',
            )

        if avg_steps < cls.STEP_MINIMUM:
            return Recommendation(
                title='Increase Daily Step Count',
                description=(
                    'Your average daily steps are below the recommended minimum of 7,500. '
                    'Consider gradually increasing your activity.'
                ),
                impact='Improved overall health and energy levels',
            )
        if avg_steps < cls.STEP_TARGET:
            return Recommendation(
                title='Moderately Increase Activity',
                description=(
                    "You're on the right track with your step count. Aim to reach 7,500-10,000 "
                    "steps consistently for optimal health benefits."
                ),
                impact='Enhanced cardiovascular health and weight management',
            )
        return Recommendation(
            title='Maintain Strong Activity Habits',
            description=(
                f"Your average of {avg_steps:.0f} steps per day is excellent. "
                f"Continue with your current activity patterns."
            ),
            impact='Sustained health benefits and reduced disease risk',
        )

    @classmethod
    def generate_recommendations(
        cls,
        dataset: HealthDataset,
        settings: Settings | None = None,
    ) -> list[Recommendation]:
        """Sleep and activity recommendations, or none when no insight had enough data."""
        insights = InsightsService.generate_insights(dataset, settings)
        if not any(insight.sufficient_data for insight in insights):
            return []

        correlations = {insight.kind: insight.correlation for insight in insights}
        return [
            cls.sleep_recommendation(dataset.summary, correlations),
            cls.activity_recommendation(dataset.summary, correlations),
        ]
