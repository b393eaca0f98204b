"""Logging configuration"""

import logging
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from tradecup.core.config import settings

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}"

# stdlib loggers of the libraries this service runs on
INTERCEPTED = ("uvicorn", "uvicorn.access", "celery", "sqlalchemy.engine")


class InterceptHandler(logging.Handler):
    """Forward stdlib records to loguru"""

    def emit(self, record):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(log_level: Optional[str] = None, log_dir: Optional[str] = None):
    """stdout plus a daily-rotated ranking.log; called by the API and worker entry points."""
    level = log_level or settings.LOG_LEVEL

    logger.remove()
    logger.add(sys.stdout, level=level)

    directory = Path(log_dir or settings.LOG_DIR)
    directory.mkdir(parents=True, exist_ok=True)
    logger.add(
        directory / "ranking.log",
        format=FILE_FORMAT,
        level=level,
        rotation="1 day",
        retention="14 days",
    )

    handler = InterceptHandler()
    for name in INTERCEPTED:
        logging.getLogger(name).handlers = [handler]
    logging.basicConfig(handlers=[handler], level=0, force=True)

    logger.info(f"Logging initialized at {level} ({settings.ENVIRONMENT})")
