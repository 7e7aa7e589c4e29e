"""
Logging setup based on loguru.

Level strategy:
    - DEBUG: outbound broker requests and responses.
    - INFO: every gateway operation and its outcome.
    - WARNING: degraded answers (e.g. unexpected broker payloads).
    - ERROR: faults returned to callers.

Sinks:
    - Console at `LOG_LEVEL` (default INFO).
    - Optional file sink at `LOG_FILE` (default `./log/data-transfer.log`),
      rotated by size, disabled with `LOG_DISABLE_FILE=true`.

Usage:
    >>> from app.core.logger import logger
    >>> logger.info("Start new data transfer")
"""

import logging
import os
import sys

from dotenv import load_dotenv
from loguru import logger

load_dotenv()

# ------------------------------------------------------------------------------
# Configuration
# ------------------------------------------------------------------------------

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE", "./log/data-transfer.log")
DISABLE_FILE_LOG = os.getenv("LOG_DISABLE_FILE", "false").lower() == "true"

CONSOLE_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan> | {message}"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}"

# ------------------------------------------------------------------------------
# Sinks
# ------------------------------------------------------------------------------

logger.remove()

logger.add(
    sys.stdout,
    format=CONSOLE_FORMAT,
    level=LOG_LEVEL,
    colorize=sys.stdout.isatty(),
    backtrace=False,
    diagnose=False,
)

if not DISABLE_FILE_LOG and LOG_FILE:
    logger.add(
        LOG_FILE,
        format=FILE_FORMAT,
        level=LOG_LEVEL,
        rotation="50 MB",
        retention="14 days",
        encoding="utf-8",
        enqueue=False,
        catch=True,
    )

# Quiet down the HTTP stack, the adapters log their own requests
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

__all__ = ["logger"]
