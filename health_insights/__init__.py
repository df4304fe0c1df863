"""
Health export insights: parse an Apple Health export into a windowed
dataset, then summarize, correlate and track goals against it.
"""

from .config import Settings, configure_logging, settings
from .ingestion.services import ImportLog, IngestionService
from .ingestion.adapters.base import HealthDataParseError
from .core.services import InsightsService, RecommendationService, SummaryService
from .core.goals import GoalService, InMemoryGoalRepository

__all__ = [
    'GoalService',
    'HealthDataParseError',
    'ImportLog',
    'InMemoryGoalRepository',
    'IngestionService',
    'InsightsService',
    'RecommendationService',
    'Settings',
    'SummaryService',
    'configure_logging',
    'settings',
]
