import logging
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    # API settings
    DEBUG: bool = False
    PROJECT_NAME: str = "Slack Q&A Agent"

    # Slack credentials
    SLACK_BOT_TOKEN: str = ""  # xoxb- token used for Web API calls
    SLACK_APP_TOKEN: str = ""  # xapp- token used to open Socket Mode sessions
    SLACK_SOCKET_MODE_ENABLED: bool = False  # Start the realtime processor
    SLACK_API_TIMEOUT_SECONDS: int = 10  # Per-call Web API timeout

    # Matching
    QA_SIMILARITY_THRESHOLD: float = 0.3  # Threshold for realtime answers
    QA_SEARCH_DEFAULT_THRESHOLD: float = 0.7  # Default for the REST search endpoint

    # History crawling
    QA_CACHE_TTL_SECONDS: float = 120.0
    QA_HISTORY_PAGE_SIZE: int = 200
    QA_HISTORY_PAGE_DELAY_SECONDS: float = 0.1
    QA_HISTORY_MAX_MESSAGES: int = 1000  # "Large limit" used by search and stats
    QA_CHANNEL_LIST_LIMIT: int = 1000

    # Realtime processing
    SOCKET_RECONNECT_DELAY_SECONDS: float = 5.0
    EVENT_WORKER_COUNT: int = 4
    THREAD_ANALYSIS_DELAY_SECONDS: float = 5.0
    PROCESSED_MESSAGES_MAX: int = 0  # 0 keeps every processed key

    model_config = SettingsConfigDict(
        env_file=".env",  # Enable .env file loading
        extra="allow",
    )

    @field_validator("QA_SIMILARITY_THRESHOLD", "QA_SEARCH_DEFAULT_THRESHOLD")
    @classmethod
    def validate_threshold(cls, v: float) -> float:
        """Thresholds are similarity scores and must lie in [0, 1]."""
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"Similarity threshold must be between 0 and 1, got {v}")
        return v

    @field_validator(
        "QA_HISTORY_PAGE_SIZE",
        "QA_HISTORY_MAX_MESSAGES",
        "QA_CHANNEL_LIST_LIMIT",
        "EVENT_WORKER_COUNT",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"Value must be a positive integer, got {v}")
        return v

    @field_validator("SLACK_BOT_TOKEN", "SLACK_APP_TOKEN")
    @classmethod
    def strip_token(cls, v: str) -> str:
        return v.strip()


# Thread-safe lazy initialization using lru_cache
@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings instance with lazy initialization.

    Settings are only created once on first access, then cached for subsequent calls.

    Returns:
        Settings: Application settings object
    """
    return Settings()


def reset_settings() -> None:
    """Reset the cached settings instance.

    Useful for testing when you need to reload settings with different values.
    """
    get_settings.cache_clear()
