# ingest/logger.py
import logging
import sys
from typing import Optional

from ingest.config import LOG_LEVEL


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Logger with a single stdout handler.

    Extraction diagnostics (skipped rows, degraded timestamps, strategy
    fallbacks) go through here instead of being raised.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    log_level = getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO)
    logger.setLevel(log_level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    logger.addHandler(handler)
    logger.propagate = False

    return logger
