"""Configuration management."""

from action_pipeline.config.settings import (
    ConditionFailedPolicy,
    Environment,
    Settings,
    configure_logging,
    get_settings,
)

__all__ = [
    "ConditionFailedPolicy",
    "Environment",
    "Settings",
    "configure_logging",
    "get_settings",
]
