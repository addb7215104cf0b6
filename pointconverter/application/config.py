"""Application configuration for the point converter harness."""

import os
from enum import Enum
from typing import Mapping, Optional

from pointconverter.shared.logging import configure_logging


class Environment(Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
_LOG_FORMATS = {"json", "console"}


class Config:
    """Application configuration read from a key/value source."""

    def __init__(self, source: Optional[Mapping[str, str]] = None):
        """Initialize configuration from ``source`` (defaults to the process environment)."""
        self.source = source if source is not None else os.environ
        self._load_config()

    def _get(self, key: str, default: str) -> str:
        return self.source.get(key, default)

    def _load_config(self) -> None:
        """Load configuration values."""
        # Environment
        self.ENVIRONMENT = Environment(self._get("ENVIRONMENT", "development").lower())

        # Database
        self.DATABASE_URL = self._get("DATABASE_URL", "sqlite+pysqlite:///:memory:")
        self.DATABASE_ECHO = self._get("DATABASE_ECHO", "false").lower() == "true"

        # Logging
        self.LOG_LEVEL = self._get("LOG_LEVEL", "INFO").upper()
        self.LOG_FORMAT = self._get("LOG_FORMAT", "json").lower()

        # Number of rects created by the query scenarios
        self.QUERY_BATCH_SIZE = int(self._get("QUERY_BATCH_SIZE", "5"))

    @property
    def uses_in_memory_database(self) -> bool:
        """Whether every connection would otherwise get its own empty SQLite database."""
        url = self.DATABASE_URL
        if not url.startswith("sqlite"):
            return False
        # "sqlite://" without a path is in-memory as well
        return url.endswith(":memory:") or url.endswith("://")

    def validate(self) -> None:
        """Validate critical configuration values."""
        if not self.DATABASE_URL:
            raise ValueError("DATABASE_URL must be configured")

        if self.LOG_LEVEL not in _LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL {self.LOG_LEVEL} is not a known level")

        if self.LOG_FORMAT not in _LOG_FORMATS:
            raise ValueError(f"LOG_FORMAT {self.LOG_FORMAT} must be json or console")

        # The string parameter scenario looks up the third rect of the batch
        if self.QUERY_BATCH_SIZE < 3:
            raise ValueError("QUERY_BATCH_SIZE must be at least 3")

    def reload(self) -> None:
        """Reload configuration from the source."""
        self._load_config()
        self.validate()


# Global configuration instance
_config: Config | None = None


def get_config(source: Optional[Mapping[str, str]] = None) -> Config:
    """
    Get or create global configuration instance.

    Args:
        source: Key/value source used when the instance is first created

    Returns:
        Configuration instance
    """
    global _config
    if _config is None:
        config = Config(source)
        config.validate()
        _config = config
    return _config


def reset_config() -> None:
    """Forget the global configuration instance."""
    global _config
    _config = None


def setup_logging(config: Optional[Config] = None) -> None:
    """
    Configure structured logging from LOG_LEVEL, LOG_FORMAT and ENVIRONMENT.

    Args:
        config: Configuration to read; the global instance when omitted
    """
    config = config if config is not None else get_config()
    environment = config.ENVIRONMENT.value
    configure_logging(
        environment=environment,
        log_level=config.LOG_LEVEL,
        json_logs=config.LOG_FORMAT == "json",
        include_caller_info=environment == "development",
    )
