"""
Apple Health Export Adapter

Handles the export produced by the Health app ("Export All Health Data"):
- export.zip containing apple_health_export/export.xml
- export.xml on its own, as a path or as raw content

The document is a flat <HealthData> element holding <Record> and
<Workout> children. Only five kinds of entries are extracted:
step count, heart rate, resting heart rate, sleep analysis and workouts.
Anything else in the export is ignored.
"""

from pathlib import Path
import io
import logging
import math
import xml.etree.ElementTree as ET
import zipfile

from .base import (
    AdapterRegistry,
    BaseAdapter,
    HealthDataParseError,
    HeartRateEntry,
    ParseResult,
    RestingHeartRateEntry,
    SleepEntry,
    StepEntry,
    WorkoutEntry,
)
from .data_processor import DataProcessor

logger = logging.getLogger(__name__)


STEP_COUNT = 'HKQuantityTypeIdentifierStepCount'
HEART_RATE = 'HKQuantityTypeIdentifierHeartRate'
RESTING_HEART_RATE = 'HKQuantityTypeIdentifierRestingHeartRate'
SLEEP_ANALYSIS = 'HKCategoryTypeIdentifierSleepAnalysis'

ACTIVE_ENERGY = 'HKQuantityTypeIdentifierActiveEnergyBurned'
DISTANCE_TYPES = (
    'HKQuantityTypeIdentifierDistanceWalkingRunning',
    'HKQuantityTypeIdentifierDistanceCycling',
    'HKQuantityTypeIdentifierDistanceSwimming',
    'HKQuantityTypeIdentifierDistanceWheelchair',
    'HKQuantityTypeIdentifierDistanceDownhillSnowSports',
)

# Conversion factors to minutes / kilometres / kcal
DURATION_UNITS = {'min': 1.0, 's': 1 / 60, 'sec': 1 / 60, 'hr': 60.0, 'h': 60.0}
DISTANCE_UNITS = {'km': 1.0, 'mi': 1.609344, 'm': 0.001, 'yd': 0.0009144}
ENERGY_UNITS = {'kcal': 1.0, 'Cal': 1.0, 'kJ': 1 / 4.184}


@AdapterRegistry.register
class AppleHealthAdapter(BaseAdapter):
    """
    Parser for Apple Health XML exports.
    """

    SOURCE_NAME = 'apple_health'
    SUPPORTED_FILE_TYPES = ('.xml', '.zip')

    def can_handle(self, path: Path) -> bool:
        """An Apple Health export is an .xml document or a .zip wrapping one."""
        path = Path(path)
        return path.is_file() and path.suffix.lower() in self.SUPPORTED_FILE_TYPES

    def parse(self, source: Path | str | bytes) -> ParseResult:
        """
        Parse a whole export document.

        The document is read in one pass; a malformed document raises
        HealthDataParseError and nothing is returned. Individual entries
        that fail coercion are skipped without error.
        """
        self.errors = []
        root = self._load_root(source)

        result = ParseResult(file_path=str(source) if isinstance(source, Path) else '')

        for elem in root:
            if elem.tag == 'Record':
                self._handle_record(elem, result)
            elif elem.tag == 'Workout':
                result.records_seen += 1
                self._add(result, self._parse_workout(elem))

        logger.info(
            f"[{self.SOURCE_NAME}] Extracted {result.records_parsed} entries "
            f"({len(result.steps)} steps, {len(result.heart_rate)} heart rate, "
            f"{len(result.resting_heart_rate)} resting heart rate, "
            f"{len(result.sleep)} sleep, {len(result.workouts)} workouts), "
            f"skipped {result.records_skipped}"
        )
        return result

    # -------------------------------------------------------------------------
    # Document loading
    # -------------------------------------------------------------------------

    def _load_root(self, source: Path | str | bytes) -> ET.Element:
        try:
            if isinstance(source, bytes):
                if zipfile.is_zipfile(io.BytesIO(source)):
                    root = self._parse_zip(io.BytesIO(source))
                else:
                    root = ET.fromstring(source)
            elif isinstance(source, str) and source.lstrip().startswith('<'):
                root = ET.fromstring(source)
            else:
                path = Path(source)
                if path.suffix.lower() == '.zip':
                    root = self._parse_zip(path)
                else:
                    root = ET.parse(path).getroot()
        except (ET.ParseError, zipfile.BadZipFile, OSError, UnicodeDecodeError) as e:
            self._log_error("Could not read export document", e)
            raise HealthDataParseError() from e

        if root.tag != 'HealthData':
            self._log_error(f"Unexpected root element <{root.tag}>, expected <HealthData>")
            raise HealthDataParseError()
        return root

    def _parse_zip(self, file) -> ET.Element:
        with zipfile.ZipFile(file, 'r') as zf:
            # Apple Health zip contains apple_health_export/export.xml
            xml_candidates = [n for n in zf.namelist() if n.endswith('export.xml')]
            if not xml_candidates:
                raise zipfile.BadZipFile("No export.xml found in zip")
            with zf.open(xml_candidates[0]) as xml_file:
                return ET.parse(xml_file).getroot()

    # -------------------------------------------------------------------------
    # Record parsers
    # -------------------------------------------------------------------------

    def _handle_record(self, elem: ET.Element, result: ParseResult):
        rtype = elem.get('type', '')

        if rtype == STEP_COUNT:
            entry = self._parse_step(elem)
        elif rtype == HEART_RATE:
            entry = self._parse_heart_rate(elem, HeartRateEntry)
        elif rtype == RESTING_HEART_RATE:
            entry = self._parse_heart_rate(elem, RestingHeartRateEntry)
        elif rtype == SLEEP_ANALYSIS:
            entry = self._parse_sleep(elem)
        else:
            return

        result.records_seen += 1
        self._add(result, entry)

    @staticmethod
    def _add(result: ParseResult, entry):
        if entry is None:
            result.records_skipped += 1
        else:
            result.add(entry)

    def _parse_step(self, elem: ET.Element) -> StepEntry | None:
        start = DataProcessor.parse_datetime(elem.get('startDate'))
        if start is None:
            return None

        count = DataProcessor.to_int(elem.get('value'))
        if not DataProcessor.validate_steps(count):
            return None

        return StepEntry(
            start=start,
            count=count,
            unit=elem.get('unit', 'count'),
            source_name=elem.get('sourceName', ''),
        )

    def _parse_heart_rate(self, elem: ET.Element, entry_class):
        start = DataProcessor.parse_datetime(elem.get('startDate'))
        if start is None:
            return None

        value = DataProcessor.to_number(elem.get('value'))
        if self.settings.STRICT_HEART_RATE and not DataProcessor.validate_heart_rate(value):
            return None

        return entry_class(
            start=start,
            value=value,
            unit=elem.get('unit', ''),
            source_name=elem.get('sourceName', ''),
        )

    def _parse_sleep(self, elem: ET.Element) -> SleepEntry | None:
        start = DataProcessor.parse_datetime(elem.get('startDate'))
        end = DataProcessor.parse_datetime(elem.get('endDate'))
        if start is None or end is None:
            return None
        if (start.tzinfo is None) != (end.tzinfo is None):
            return None

        return SleepEntry(
            start=start,
            end=end,
            category=elem.get('value', ''),
            source_name=elem.get('sourceName', ''),
        )

    def _parse_workout(self, elem: ET.Element) -> WorkoutEntry | None:
        start = DataProcessor.parse_datetime(elem.get('startDate'))
        if start is None:
            return None

        duration = DataProcessor.to_number(elem.get('duration'))
        duration *= DURATION_UNITS.get(elem.get('durationUnit', 'min'), 1.0)

        statistics = {
            stat.get('type'): stat
            for stat in elem.iterfind('WorkoutStatistics')
        }

        calories = self._workout_calories(elem, statistics)
        distance = self._workout_distance(elem, statistics)

        return WorkoutEntry(
            start=start,
            activity_type=elem.get('workoutActivityType', ''),
            duration=duration,
            calories=calories,
            distance=distance,
            source_name=elem.get('sourceName', ''),
        )

    @staticmethod
    def _workout_calories(elem: ET.Element, statistics: dict) -> float:
        if elem.get('totalEnergyBurned') is not None:
            value = DataProcessor.to_number(elem.get('totalEnergyBurned'))
            unit = elem.get('totalEnergyBurnedUnit', 'kcal')
        elif ACTIVE_ENERGY in statistics:
            stat = statistics[ACTIVE_ENERGY]
            value = DataProcessor.to_number(stat.get('sum'))
            unit = stat.get('unit', 'kcal')
        else:
            return math.nan
        return value * ENERGY_UNITS.get(unit, 1.0)

    @staticmethod
    def _workout_distance(elem: ET.Element, statistics: dict) -> float | None:
        if elem.get('totalDistance'):
            value = DataProcessor.to_number(elem.get('totalDistance'))
            unit = elem.get('totalDistanceUnit', 'km')
        else:
            stat = next((statistics[t] for t in DISTANCE_TYPES if t in statistics), None)
            if stat is None or not stat.get('sum'):
                return None
            value = DataProcessor.to_number(stat.get('sum'))
            unit = stat.get('unit', 'km')
        return value * DISTANCE_UNITS.get(unit, 1.0)
