"""
Ingestion service - orchestrates parsing an export into a HealthDataset.
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from uuid import uuid4, UUID
import logging

from health_insights.config import Settings, settings as default_settings
from health_insights.core.models import HealthDataset, HeartRateData, WorkoutEvent
from health_insights.core.services import SummaryService
from health_insights.core.timeframe import filter_since, months_ago
from .adapters.apple_health import AppleHealthAdapter
from .adapters.base import AdapterRegistry, BaseAdapter, HealthDataParseError, ParseResult
from .adapters.data_processor import DataProcessor
from .adapters.sleep import SleepReconciler

logger = logging.getLogger(__name__)


@dataclass
class ImportLog:
    """Outcome of one ingest() call."""
    batch_id: UUID
    source: str
    file_name: str
    status: str = 'processing'
    records_processed: int = 0
    records_skipped: int = 0
    dataset: HealthDataset | None = None
    errors: list[str] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.now)
    completed_at: datetime | None = None


class IngestionService:
    """
    Service for turning an export document into a windowed HealthDataset.

    Usage:
        service = IngestionService()
        dataset = service.parse(path)
        # or, without raising on a malformed document
        log = service.ingest(path)
        if log.status == 'completed':
            dataset = log.dataset
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or default_settings
        self.batch_id: UUID | None = None
        self.last_result: ParseResult | None = None

    def parse(
        self,
        source: Path | str | bytes,
        now: datetime | None = None,
        adapter: BaseAdapter | None = None,
    ) -> HealthDataset:
        """
        Run the whole pipeline on one document.

        `now` is the single reference instant for the window and the
        summary; it defaults to the current local time.

        Raises:
            HealthDataParseError: if the document is malformed
        """
        now = now or datetime.now().astimezone()
        adapter = adapter or self._get_adapter(source)

        result = adapter.parse(source)
        self.last_result = result
        return self._build_dataset(result, now)

    def ingest(
        self,
        source: Path | str | bytes,
        adapter_name: str | None = None,
        now: datetime | None = None,
    ) -> ImportLog:
        """
        Parse a document and report the outcome in an ImportLog.

        A malformed document never raises here: the log comes back with
        status 'failed', no dataset and the user-facing error message.
        """
        self.batch_id = uuid4()
        import_log = ImportLog(
            batch_id=self.batch_id,
            source=adapter_name or 'unknown',
            file_name=self._file_name(source),
        )

        try:
            if adapter_name:
                adapter = AdapterRegistry.get_adapter_by_name(
                    adapter_name, self.batch_id, self.settings
                )
                if adapter is None:
                    raise HealthDataParseError(f"No adapter named {adapter_name!r}")
            else:
                adapter = self._get_adapter(source)
            import_log.source = adapter.SOURCE_NAME

            import_log.dataset = self.parse(source, now=now, adapter=adapter)
        except HealthDataParseError as e:
            logger.exception(f"Import failed for {import_log.file_name or 'document'}")
            import_log.status = 'failed'
            import_log.errors = [str(e)]
            import_log.completed_at = datetime.now()
            return import_log

        import_log.status = 'completed'
        import_log.records_processed = self.last_result.records_parsed
        import_log.records_skipped = self.last_result.records_skipped
        import_log.completed_at = datetime.now()

        logger.info(
            f"Import complete: {import_log.records_processed} entries, "
            f"{import_log.records_skipped} skipped"
        )
        return import_log

    @staticmethod
    def _file_name(source: Path | str | bytes) -> str:
        if isinstance(source, Path):
            return source.name
        if isinstance(source, str) and not source.lstrip().startswith('<'):
            return Path(source).name
        return ''

    def _get_adapter(self, source: Path | str | bytes) -> BaseAdapter:
        """Pick an adapter by file path, defaulting to Apple Health for raw content."""
        if isinstance(source, (Path, str)) and not str(source).lstrip().startswith('<'):
            adapter = AdapterRegistry.get_adapter_for(source, self.batch_id, self.settings)
            if adapter is not None:
                return adapter
        return AppleHealthAdapter(batch_id=self.batch_id, settings=self.settings)

    def _build_dataset(self, result: ParseResult, now: datetime) -> HealthDataset:
        window_start = months_ago(now, self.settings.WINDOW_MONTHS)

        steps = DataProcessor.aggregate_daily_steps(result.steps)
        heart_rate = [
            HeartRateData(timestamp=e.start, value=e.value, unit=e.unit)
            for e in result.heart_rate
        ]
        resting_heart_rate = [
            HeartRateData(timestamp=e.start, value=e.value, unit=e.unit)
            for e in result.resting_heart_rate
        ]
        workouts = [
            WorkoutEvent(
                timestamp=e.start,
                activity_type=e.activity_type,
                duration=e.duration,
                calories=e.calories,
                distance=e.distance,
            )
            for e in result.workouts
        ]
        sleep = SleepReconciler(self.settings).reconcile(result.sleep)

        steps = filter_since(steps, window_start)
        heart_rate = filter_since(heart_rate, window_start)
        resting_heart_rate = filter_since(resting_heart_rate, window_start)
        workouts = filter_since(workouts, window_start)
        sleep = filter_since(sleep, window_start)

        summary = SummaryService.build_summary(
            steps, heart_rate, resting_heart_rate, workouts, sleep,
            now=now, window_start=window_start,
        )

        logger.debug(
            f"Window {window_start.date()} to {now.date()}: {len(steps)} step days, "
            f"{len(heart_rate)} heart rate, {len(resting_heart_rate)} resting, "
            f"{len(workouts)} workouts, {len(sleep)} sleep nights"
        )

        return HealthDataset(
            steps=tuple(steps),
            heart_rate=tuple(heart_rate),
            resting_heart_rate=tuple(resting_heart_rate),
            workouts=tuple(workouts),
            sleep=tuple(sleep),
            summary=summary,
            reference_time=now,
            window_start=window_start,
        )
