"""
Runtime configuration for pipeline runs.

Values come from PIPELINE_-prefixed environment variables; an explicit
Settings instance can be handed to the orchestrator instead.
"""

import logging
from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class Environment(str, Enum):
    DEV = "dev"
    TEST = "test"
    PROD = "prod"


class ConditionFailedPolicy(str, Enum):
    """
    How downstream requirements see an action whose guard returned false.

    - SKIP: the action counts as finished with ActionStatus.SKIP
    - DISTINCT: the action counts as finished but only matches the ANY wildcard
    """

    SKIP = "skip"
    DISTINCT = "distinct"


class Settings(BaseSettings):
    """Pipeline settings."""

    model_config = SettingsConfigDict(
        env_prefix="PIPELINE_",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(default="Action Pipeline")
    environment: Environment = Field(default=Environment.DEV)
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    # Scheduling
    condition_failed_policy: ConditionFailedPolicy = Field(
        default=ConditionFailedPolicy.SKIP,
        description="Downstream visibility of actions whose guard returned false",
    )
    run_sync_in_thread: bool = Field(
        default=True,
        description="Run synchronous guards and runners in a worker thread",
    )
    max_concurrency: Optional[int] = Field(
        default=None,
        ge=1,
        description="Maximum number of runners executing at once (None = unbounded)",
    )
    cancel_on_error: bool = Field(
        default=True,
        description="Cancel in-flight actions when a runner raises",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize to an upper-case level name the logging module knows."""
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def is_development(self) -> bool:
        return self.environment is Environment.DEV

    @property
    def is_testing(self) -> bool:
        return self.environment is Environment.TEST

    @property
    def is_production(self) -> bool:
        return self.environment is Environment.PROD


@lru_cache()
def get_settings() -> Settings:
    """Settings read from the environment, loaded on first use."""
    return Settings()


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Configure root logging from settings."""
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format=LOG_FORMAT,
    )
