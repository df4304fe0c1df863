"""
Base adapter interface for health export parsers.

Each export format implements this interface to turn its document into
typed raw entries, one list per recognized metric category. Adapters do
selection and type coercion only: no windowing, no aggregation.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Union
from uuid import UUID
import logging

from health_insights.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


PARSE_FAILURE_MESSAGE = (
    "Failed to parse health data file. "
    "Please make sure it is a valid Apple Health export."
)


class HealthDataParseError(ValueError):
    """The export document as a whole could not be parsed."""

    def __init__(self, message: str = PARSE_FAILURE_MESSAGE):
        super().__init__(message)


# -----------------------------------------------------------------------------
# Raw entries (one variant per recognized record type)
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class StepEntry:
    start: datetime
    count: int
    unit: str = 'count'
    source_name: str = ''


@dataclass(frozen=True)
class HeartRateEntry:
    start: datetime
    value: float
    unit: str = 'count/min'
    source_name: str = ''


@dataclass(frozen=True)
class RestingHeartRateEntry:
    start: datetime
    value: float
    unit: str = 'count/min'
    source_name: str = ''


@dataclass(frozen=True)
class SleepEntry:
    start: datetime
    end: datetime
    category: str  # raw category value, e.g. HKCategoryValueSleepAnalysisAsleepCore
    source_name: str = ''

    @property
    def duration_minutes(self) -> float:
        start, end = self.start, self.end
        if (start.tzinfo is None) != (end.tzinfo is None):
            # Mixed offset-aware and naive timestamps are measured on the wall clock
            start, end = start.replace(tzinfo=None), end.replace(tzinfo=None)
        return (end - start).total_seconds() / 60


@dataclass(frozen=True)
class WorkoutEntry:
    start: datetime
    activity_type: str
    duration: float  # minutes
    calories: float
    distance: float | None = None  # kilometres
    source_name: str = ''


RawEntry = Union[StepEntry, HeartRateEntry, RestingHeartRateEntry, SleepEntry, WorkoutEntry]


@dataclass
class ParseResult:
    """Typed entries extracted from one export document."""
    steps: list[StepEntry] = field(default_factory=list)
    heart_rate: list[HeartRateEntry] = field(default_factory=list)
    resting_heart_rate: list[RestingHeartRateEntry] = field(default_factory=list)
    sleep: list[SleepEntry] = field(default_factory=list)
    workouts: list[WorkoutEntry] = field(default_factory=list)
    records_seen: int = 0
    records_skipped: int = 0
    errors: list[str] = field(default_factory=list)
    file_path: str = ''

    @property
    def records_parsed(self) -> int:
        return (
            len(self.steps)
            + len(self.heart_rate)
            + len(self.resting_heart_rate)
            + len(self.sleep)
            + len(self.workouts)
        )

    @property
    def success(self) -> bool:
        return len(self.errors) == 0

    def add(self, entry: RawEntry) -> None:
        """Route an entry to the list for its variant."""
        if isinstance(entry, StepEntry):
            self.steps.append(entry)
        elif isinstance(entry, HeartRateEntry):
            self.heart_rate.append(entry)
        elif isinstance(entry, RestingHeartRateEntry):
            self.resting_heart_rate.append(entry)
        elif isinstance(entry, SleepEntry):
            self.sleep.append(entry)
        elif isinstance(entry, WorkoutEntry):
            self.workouts.append(entry)
        else:
            raise TypeError(f"Unsupported entry type: {type(entry).__name__}")


class BaseAdapter(ABC):
    """
    Abstract base class for export adapters.

    Each adapter is responsible for:
    1. Detecting if it can handle a given file
    2. Extracting typed raw entries from the document
    3. Handling source-specific quirks (date formats, units, nested elements)

    Usage:
        adapter = AppleHealthAdapter()
        if adapter.can_handle(file_path):
            result = adapter.parse(file_path)
            steps = result.steps
    """

    # Override in subclasses
    SOURCE_NAME: str = 'unknown'
    SUPPORTED_FILE_TYPES: tuple[str, ...] = ()

    def __init__(self, batch_id: UUID | None = None, settings: Settings | None = None):
        self.batch_id = batch_id
        self.settings = settings or default_settings
        self.errors: list[str] = []

    @abstractmethod
    def can_handle(self, path: Path) -> bool:
        """
        Check if this adapter can handle the given file.

        Args:
            path: Path to the export file

        Returns:
            True if this adapter can parse the given path
        """
        pass

    @abstractmethod
    def parse(self, source: Path | str | bytes) -> ParseResult:
        """
        Parse a whole export document.

        Args:
            source: Path to the export, or the document content itself

        Returns:
            ParseResult with one entry list per metric category

        Raises:
            HealthDataParseError: if the document itself is malformed
        """
        pass

    def _log_error(self, message: str, exception: Exception | None = None):
        """Log and track an error during parsing."""
        if exception:
            message = f"{message}: {str(exception)}"
        logger.error(f"[{self.SOURCE_NAME}] {message}")
        self.errors.append(message)


class AdapterRegistry:
    """
    Registry of all available adapters.
    Use this to find the right adapter for a given file.
    """

    _adapters: list[type[BaseAdapter]] = []

    @classmethod
    def register(cls, adapter_class: type[BaseAdapter]):
        """Register an adapter class."""
        if adapter_class not in cls._adapters:
            cls._adapters.append(adapter_class)
        return adapter_class

    @classmethod
    def get_adapter_for(
        cls,
        path: Path,
        batch_id: UUID | None = None,
        settings: Settings | None = None,
    ) -> BaseAdapter | None:
        """
        Find an adapter that can handle the given path.

        Args:
            path: Path to the export file
            batch_id: Optional batch ID for import tracking
            settings: Optional settings passed to the adapter

        Returns:
            An adapter instance or None if no adapter matches
        """
        for adapter_class in cls._adapters:
            adapter = adapter_class(batch_id=batch_id, settings=settings)
            if adapter.can_handle(path):
                return adapter
        return None

    @classmethod
    def get_adapter_by_name(
        cls,
        name: str,
        batch_id: UUID | None = None,
        settings: Settings | None = None,
    ) -> BaseAdapter | None:
        """Get an adapter by its SOURCE_NAME."""
        for adapter_class in cls._adapters:
            if adapter_class.SOURCE_NAME == name:
                return adapter_class(batch_id=batch_id, settings=settings)
        return None

    @classmethod
    def list_adapters(cls) -> list[str]:
        """List all registered adapter names."""
        return [a.SOURCE_NAME for a in cls._adapters]
