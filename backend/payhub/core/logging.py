"""
Loguru sink configuration.
"""

import sys

from loguru import logger

from payhub.core.config import Settings


def configure_logging(settings: Settings) -> None:
    """Replace loguru's default sink with one driven by settings."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level.upper(),
        serialize=settings.log_json,
        backtrace=settings.debug,
        diagnose=settings.debug,
    )
