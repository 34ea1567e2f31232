from __future__ import annotations

import logging
import sys
from loguru import logger

from sibol_maintenance.core.config import LoggingConfig

_LOGGING_CONFIGURED = False


def setup_logging(config: LoggingConfig | None = None) -> None:
    global _LOGGING_CONFIGURED
    if _LOGGING_CONFIGURED:
        return

    config = config or LoggingConfig()
    logging.basicConfig(level=config.stdlib_level)
    for name in config.quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.remove()
    logger.add(
        sys.stdout,
        level=config.level,
        format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {name}:{function}:{line} - {message}",
        enqueue=True,
        diagnose=False,
        backtrace=False,
    )

    _LOGGING_CONFIGURED = True
