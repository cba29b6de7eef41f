"""
Logging setup for hosts embedding the analysis engine.

The library itself only creates module loggers; it never configures handlers
on import. A presentation layer or script calls configure_logging() once at
startup.
"""

import logging
from typing import Optional

from practice_analytics.core.config import Settings, get_settings


def configure_logging(settings: Optional[Settings] = None) -> None:
    """
    Apply the configured level and format to the root logger.

    Args:
        settings: Settings to use; defaults to the cached singleton.
    """
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format=settings.log_format,
    )
    logging.getLogger(__name__).debug(f"Logging configured at {settings.log_level}")
