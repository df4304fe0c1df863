import logging

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="HEALTH_")

    # Rolling lookback applied to every series
    WINDOW_MONTHS: int = 6

    # Sleep reconciliation
    MIN_SLEEP_MINUTES: float = 180
    MAX_SLEEP_ENTRY_MINUTES: float = 24 * 60
    DEEP_SLEEP_RATIO: float = 0.2
    REM_SLEEP_RATIO: float = 0.25
    DEDUPLICATE_SLEEP_OVERLAPS: bool = False

    # Heart rate values are not validated unless this is set
    STRICT_HEART_RATE: bool = False

    # Insights need strictly more paired points than this
    MIN_INSIGHT_POINTS: int = 5

    LOG_LEVEL: str = "INFO"


settings = Settings()


def configure_logging(level: str | None = None) -> None:
    """Install a basic handler for applications embedding the pipeline."""
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
