"""
Serializers for the display collaborators.

Turn the dataclass model into camelCase dictionaries that json.dumps
accepts as-is: dates become ISO strings, NaN becomes None.
"""

from datetime import date, datetime
import math

from .models import (
    Correlation,
    CorrelationInsight,
    Goal,
    HealthDataset,
    HeartRateData,
    Recommendation,
    SleepNight,
    StepData,
    SummaryStatistics,
    WorkoutEvent,
)


def _iso(value: date | datetime | None) -> str:
    return value.isoformat() if value is not None else ''


def _number(value: float | None) -> float | None:
    if value is None or (isinstance(value, float) and not math.isfinite(value)):
        return None
    return value


def serialize_step(step: StepData) -> dict:
    return {'date': _iso(step.date), 'count': step.count}


def serialize_heart_rate(sample: HeartRateData) -> dict:
    return {
        'date': _iso(sample.timestamp),
        'value': _number(sample.value),
        'unit': sample.unit,
    }


def serialize_workout(workout: WorkoutEvent) -> dict:
    data = {
        'date': _iso(workout.timestamp),
        'type': workout.activity_type,
        'duration': _number(workout.duration),
        'calories': _number(workout.calories),
    }
    if workout.distance is not None:
        data['distance'] = _number(workout.distance)
    return data


def serialize_sleep(night: SleepNight) -> dict:
    return {
        'date': _iso(night.date),
        'duration': night.duration,
        'deepSleep': night.deep_sleep,
        'remSleep': night.rem_sleep,
    }


def serialize_summary(summary: SummaryStatistics) -> dict:
    return {
        'totalSteps': summary.total_steps,
        'averageSteps': summary.average_steps,
        'mostActiveDay': _iso(summary.most_active_day),
        'totalWorkouts': summary.total_workouts,
        'averageWorkoutDuration': _number(summary.average_workout_duration),
        'averageHeartRate': _number(summary.average_heart_rate),
        'averageRestingHeartRate': _number(summary.average_resting_heart_rate),
        'averageSleepDuration': summary.average_sleep_duration,
    }


def serialize_dataset(dataset: HealthDataset) -> dict:
    return {
        'steps': [serialize_step(s) for s in dataset.steps],
        'heartRate': [serialize_heart_rate(hr) for hr in dataset.heart_rate],
        'restingHeartRate': [serialize_heart_rate(hr) for hr in dataset.resting_heart_rate],
        'workouts': [serialize_workout(w) for w in dataset.workouts],
        'sleep': [serialize_sleep(s) for s in dataset.sleep],
        'summary': serialize_summary(dataset.summary),
    }


def serialize_correlation(correlation: Correlation) -> dict:
    return {
        'coefficient': correlation.coefficient,
        'sampleSize': correlation.sample_size,
        'data': [
            {'x': p.x, 'y': _number(p.y), 'date': _iso(p.date)}
            for p in correlation.paired_points
        ],
    }


def serialize_insight(insight: CorrelationInsight) -> dict:
    return {
        'kind': insight.kind.value,
        'title': insight.title,
        'sufficientData': insight.sufficient_data,
        'strength': insight.strength,
        'direction': insight.direction,
        'description': insight.description,
        'interpretation': insight.interpretation,
        'correlation': serialize_correlation(insight.correlation),
    }


def serialize_recommendation(recommendation: Recommendation) -> dict:
    return {
        'title': recommendation.title,
        'description': recommendation.description,
        'impact': recommendation.impact,
    }


def serialize_goal(goal: Goal) -> dict:
    return {
        'id': goal.id,
        'type': goal.type.value,
        'target': goal.target,
        'period': goal.period.value,
        'startDate': _iso(goal.start_date),
        'title': goal.title,
        'description': goal.description,
        'progress': _number(goal.progress),
        'completed': goal.completed,
        'history': [
            {
                'date': _iso(c.date),
                'value': _number(c.value),
                'target': c.target,
                'completed': c.completed,
            }
            for c in goal.history
        ],
    }
