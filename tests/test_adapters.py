"""
Record extraction and export document loading.
"""

import math
import zipfile
from datetime import date

import pytest

from health_insights.config import Settings
from health_insights.ingestion.adapters.apple_health import AppleHealthAdapter
from health_insights.ingestion.adapters.base import (
    PARSE_FAILURE_MESSAGE,
    AdapterRegistry,
    HealthDataParseError,
    ParseResult,
    StepEntry,
)

from conftest import (
    ASLEEP,
    HEART_RATE,
    RESTING_HEART_RATE,
    SLEEP,
    STEPS,
    health_xml,
    record,
    workout,
)


def parse(xml, **settings):
    return AppleHealthAdapter(settings=Settings(**settings)).parse(xml)


class TestRecordExtraction:
    def test_extracts_each_recognized_type(self):
        result = parse(health_xml(
            record(STEPS, '2024-06-01 08:00:00 -0500', '1200'),
            record(HEART_RATE, '2024-06-01 08:00:00 -0500', '72', unit='count/min'),
            record(RESTING_HEART_RATE, '2024-06-01 07:00:00 -0500', '58', unit='count/min'),
            record(SLEEP, '2024-06-01 23:00:00 -0500', ASLEEP, end='2024-06-02 06:00:00 -0500'),
            workout('2024-06-01 18:00:00 -0500'),
        ))
        assert len(result.steps) == 1
        assert len(result.heart_rate) == 1
        assert len(result.resting_heart_rate) == 1
        assert len(result.sleep) == 1
        assert len(result.workouts) == 1
        assert result.records_parsed == 5
        assert result.records_skipped == 0

    def test_unknown_types_are_ignored(self):
        result = parse(health_xml(
            record('HKQuantityTypeIdentifierBodyMass', '2024-06-01 08:00:00 -0500', '80'),
            record(STEPS, '2024-06-01 08:00:00 -0500', '100'),
            '<ActivitySummary dateComponents="2024-06-01"/>',
        ))
        assert result.records_parsed == 1
        assert result.records_seen == 1
        assert result.records_skipped == 0

    def test_step_values_are_coerced(self):
        result = parse(health_xml(record(STEPS, '2024-06-01 08:00:00 -0500', '1500')))
        entry = result.steps[0]
        assert entry.count == 1500
        assert isinstance(entry.count, int)
        assert entry.source_name == 'Apple Watch'
        assert entry.start.date() == date(2024, 6, 1)

    @pytest.mark.parametrize('value', ['-5', '0', 'abc'])
    def test_invalid_step_values_are_skipped(self, value):
        result = parse(health_xml(
            record(STEPS, '2024-06-01 08:00:00 -0500', value),
            record(STEPS, '2024-06-01 09:00:00 -0500', '10'),
        ))
        assert [e.count for e in result.steps] == [10]
        assert result.records_skipped == 1

    def test_step_with_bad_timestamp_is_skipped(self):
        result = parse(health_xml(record(STEPS, 'not a date', '100')))
        assert result.steps == []
        assert result.records_skipped == 1

    def test_accepts_iso_and_bare_date_timestamps(self):
        result = parse(health_xml(
            record(STEPS, '2024-06-01T08:00:00-05:00', '100'),
            record(STEPS, '2024-06-02', '200'),
        ))
        assert [e.start.date() for e in result.steps] == [date(2024, 6, 1), date(2024, 6, 2)]


class TestHeartRateExtraction:
    def test_non_numeric_heart_rate_propagates_as_nan(self):
        result = parse(health_xml(record(HEART_RATE, '2024-06-01 08:00:00 -0500', 'abc')))
        assert len(result.heart_rate) == 1
        assert math.isnan(result.heart_rate[0].value)

    def test_strict_mode_discards_invalid_heart_rate(self):
        result = parse(
            health_xml(
                record(HEART_RATE, '2024-06-01 08:00:00 -0500', 'abc'),
                record(HEART_RATE, '2024-06-01 09:00:00 -0500', '-3'),
                record(RESTING_HEART_RATE, '2024-06-01 09:00:00 -0500', '0'),
                record(HEART_RATE, '2024-06-01 10:00:00 -0500', '71.5'),
            ),
            STRICT_HEART_RATE=True,
        )
        assert [e.value for e in result.heart_rate] == [71.5]
        assert result.resting_heart_rate == []
        assert result.records_skipped == 3

    def test_keeps_document_order(self):
        result = parse(health_xml(
            record(HEART_RATE, '2024-06-02 08:00:00 -0500', '80'),
            record(HEART_RATE, '2024-06-01 08:00:00 -0500', '70'),
        ))
        assert [e.value for e in result.heart_rate] == [80, 70]


class TestSleepExtraction:
    def test_sleep_keeps_category_and_interval(self):
        result = parse(health_xml(
            record(SLEEP, '2024-06-01 23:00:00 -0500', ASLEEP, end='2024-06-02 02:30:00 -0500'),
        ))
        entry = result.sleep[0]
        assert entry.category == ASLEEP
        assert entry.duration_minutes == 210

    def test_sleep_with_bad_end_date_is_skipped(self):
        result = parse(health_xml(record(SLEEP, '2024-06-01 23:00:00 -0500', ASLEEP, end='garbage')))
        assert result.sleep == []
        assert result.records_skipped == 1

    def test_sleep_mixing_offset_and_naive_timestamps_is_skipped(self):
        result = parse(health_xml(
            record(SLEEP, '2024-06-01 20:00:00 -0500', ASLEEP, end='2024-06-02'),
            record(SLEEP, '2024-06-01T20:00:00', ASLEEP, end='2024-06-02 04:00:00 -0500'),
            record(SLEEP, '2024-06-01 20:00:00', ASLEEP, end='2024-06-02'),
        ))
        assert len(result.sleep) == 1
        assert result.records_skipped == 2


class TestWorkoutExtraction:
    def test_workout_without_distance(self):
        result = parse(health_xml(
            workout('2024-06-01 18:00:00 -0500', extra='totalEnergyBurned="250" totalEnergyBurnedUnit="kcal"'),
        ))
        entry = result.workouts[0]
        assert entry.activity_type == 'HKWorkoutActivityTypeRunning'
        assert entry.duration == 30
        assert entry.calories == 250
        assert entry.distance is None

    def test_workout_units_are_normalized(self):
        result = parse(health_xml(
            workout(
                '2024-06-01 18:00:00 -0500',
                duration='1800',
                extra=(
                    'totalDistance="2" totalDistanceUnit="mi" '
                    'totalEnergyBurned="418.4" totalEnergyBurnedUnit="kJ"'
                ),
            ).replace('durationUnit="min"', 'durationUnit="s"'),
        ))
        entry = result.workouts[0]
        assert entry.duration == pytest.approx(30)
        assert entry.distance == pytest.approx(3.218688)
        assert entry.calories == pytest.approx(100)

    def test_workout_falls_back_to_statistics(self):
        stats = (
            '<WorkoutStatistics type="HKQuantityTypeIdentifierActiveEnergyBurned" sum="320" unit="kcal"/>'
            '<WorkoutStatistics type="HKQuantityTypeIdentifierDistanceWalkingRunning" sum="5.2" unit="km"/>'
        )
        result = parse(health_xml(workout('2024-06-01 18:00:00 -0500', children=stats)))
        entry = result.workouts[0]
        assert entry.calories == 320
        assert entry.distance == pytest.approx(5.2)

    def test_workout_without_energy_has_nan_calories(self):
        result = parse(health_xml(workout('2024-06-01 18:00:00 -0500')))
        assert math.isnan(result.workouts[0].calories)


class TestDocumentLoading:
    def test_parses_xml_file(self, tmp_path):
        path = tmp_path / 'export.xml'
        path.write_text(
            '<?xml version="1.0" encoding="UTF-8"?>\n'
            + health_xml(record(STEPS, '2024-06-01 08:00:00 -0500', '100'))
        )
        result = AppleHealthAdapter().parse(path)
        assert len(result.steps) == 1
        assert result.file_path == str(path)

    def test_parses_zip_archive(self, tmp_path):
        path = tmp_path / 'export.zip'
        with zipfile.ZipFile(path, 'w') as zf:
            zf.writestr(
                'apple_health_export/export.xml',
                health_xml(record(STEPS, '2024-06-01 08:00:00 -0500', '100')),
            )
        result = AppleHealthAdapter().parse(path)
        assert len(result.steps) == 1

    def test_parses_zip_bytes(self, tmp_path):
        path = tmp_path / 'export.zip'
        with zipfile.ZipFile(path, 'w') as zf:
            zf.writestr('apple_health_export/export.xml', health_xml())
        result = AppleHealthAdapter().parse(path.read_bytes())
        assert result.records_parsed == 0

    def test_zip_without_export_is_malformed(self, tmp_path):
        path = tmp_path / 'export.zip'
        with zipfile.ZipFile(path, 'w') as zf:
            zf.writestr('readme.txt', 'nothing here')
        with pytest.raises(HealthDataParseError):
            AppleHealthAdapter().parse(path)

    def test_malformed_xml_raises_single_message(self):
        adapter = AppleHealthAdapter()
        with pytest.raises(HealthDataParseError) as exc_info:
            adapter.parse('<HealthData><Record type="x"')
        assert str(exc_info.value) == PARSE_FAILURE_MESSAGE
        assert len(adapter.errors) == 1

    def test_wrong_root_is_malformed(self):
        with pytest.raises(HealthDataParseError):
            AppleHealthAdapter().parse('<NotHealth/>')

    def test_missing_file_is_malformed(self, tmp_path):
        with pytest.raises(HealthDataParseError):
            AppleHealthAdapter().parse(tmp_path / 'missing.xml')

    def test_parse_error_is_a_value_error(self):
        assert issubclass(HealthDataParseError, ValueError)


class TestAdapterRegistry:
    def test_apple_health_is_registered(self):
        assert 'apple_health' in AdapterRegistry.list_adapters()

    def test_get_adapter_for_export_file(self, tmp_path):
        path = tmp_path / 'export.xml'
        path.write_text(health_xml())
        adapter = AdapterRegistry.get_adapter_for(path)
        assert isinstance(adapter, AppleHealthAdapter)

    def test_get_adapter_for_unsupported_file(self, tmp_path):
        path = tmp_path / 'export.csv'
        path.write_text('a,b')
        assert AdapterRegistry.get_adapter_for(path) is None

    def test_get_adapter_by_name_passes_settings(self):
        custom = Settings(STRICT_HEART_RATE=True)
        adapter = AdapterRegistry.get_adapter_by_name('apple_health', settings=custom)
        assert adapter.settings is custom
        assert AdapterRegistry.get_adapter_by_name('fitbit') is None


class TestParseResult:
    def test_add_routes_by_variant(self):
        result = ParseResult()
        entry = StepEntry(start=None, count=5)
        result.add(entry)
        assert result.steps == [entry]

    def test_add_rejects_unknown_entries(self):
        with pytest.raises(TypeError):
            ParseResult().add(object())
