import json
import math
from datetime import date, datetime

from health_insights.core.models import (
    Correlation,
    HeartRateData,
    PairedPoint,
    SleepNight,
    StepData,
    SummaryStatistics,
    WorkoutEvent,
)
from health_insights.core.serializers import (
    serialize_correlation,
    serialize_dataset,
    serialize_summary,
    serialize_workout,
)

from conftest import EST, make_dataset


class TestSerializers:
    def test_summary_uses_camel_case(self):
        data = serialize_summary(SummaryStatistics(total_steps=10, most_active_day=date(2024, 6, 1)))
        assert data['totalSteps'] == 10
        assert data['mostActiveDay'] == '2024-06-01'
        assert 'averageRestingHeartRate' in data

    def test_undefined_most_active_day_is_empty_string(self):
        assert serialize_summary(SummaryStatistics())['mostActiveDay'] == ''

    def test_workout_omits_missing_distance(self):
        workout = WorkoutEvent(datetime(2024, 6, 1, 18, tzinfo=EST), 'Running', 30, math.nan)
        data = serialize_workout(workout)
        assert 'distance' not in data
        assert data['calories'] is None
        assert data['date'] == '2024-06-01T18:00:00-05:00'

    def test_dataset_is_json_ready(self):
        dataset = make_dataset(
            steps=[StepData(date(2024, 6, 1), 100)],
            heart_rate=[HeartRateData(datetime(2024, 6, 1, 8, tzinfo=EST), math.nan)],
            sleep=[SleepNight(date(2024, 6, 1), 420, 84, 105)],
        )
        data = serialize_dataset(dataset)
        assert set(data) == {'steps', 'heartRate', 'restingHeartRate', 'workouts', 'sleep', 'summary'}
        assert data['sleep'] == [{'date': '2024-06-01', 'duration': 420, 'deepSleep': 84, 'remSleep': 105}]
        assert data['heartRate'][0]['value'] is None
        json.dumps(data, allow_nan=False)

    def test_correlation(self):
        correlation = Correlation(0.5, (PairedPoint(420, 60, date(2024, 6, 1)),))
        assert serialize_correlation(correlation) == {
            'coefficient': 0.5,
            'sampleSize': 1,
            'data': [{'x': 420, 'y': 60, 'date': '2024-06-01'}],
        }
