"""Centralized logging configuration."""

import sys

from loguru import logger as loguru_logger

from stockorders.app.config import LOG_DIR, LOG_LEVEL


log_format = " | ".join(
    (
        "<lk>{time:YYYY-MM-DD HH:mm:ss.SSS}</>",
        "<lvl>{level:<8}</>",
        "<c>{name}::{function}:{line}</>",
        "{message}",
    )
)

loguru_logger.remove()
loguru_logger.add(sys.stdout, format=log_format, level=LOG_LEVEL)

if LOG_DIR:
    loguru_logger.add(
        f"{LOG_DIR}/{{time:YYYY-MM-DD}}.log",
        format=log_format,
        level=LOG_LEVEL,
        rotation="1 day",
        retention="30 days",
        compression="zip",
        enqueue=True,
    )

logger = loguru_logger
