"""
Core infrastructure package for the analysis engine.

Provides:
- Configuration management via pydantic-settings
- Logging setup for host applications
- The data-quality exception hierarchy

This module re-exports key components from submodules for convenient importing:

    from practice_analytics.core import get_settings, configure_logging

Components Re-exported:
    Settings: Pydantic settings class with every analysis threshold
    ConsistencyRuleConfig: Per-family scale / minimum-history setting
    get_settings: Function returning the cached Settings singleton
    configure_logging: Applies the configured level and format
    PracticeAnalyticsError: Base class of the data-quality errors
    MissingInputError, UndefinedMetricError, InsufficientDataError
"""

from practice_analytics.core.config import ConsistencyRuleConfig, Settings, get_settings
from practice_analytics.core.exceptions import (
    InsufficientDataError,
    MissingInputError,
    PracticeAnalyticsError,
    UndefinedMetricError,
)
from practice_analytics.core.logging_config import configure_logging

__all__ = [
    # Configuration
    "Settings",
    "ConsistencyRuleConfig",
    "get_settings",
    # Logging
    "configure_logging",
    # Exceptions
    "PracticeAnalyticsError",
    "MissingInputError",
    "UndefinedMetricError",
    "InsufficientDataError",
]
