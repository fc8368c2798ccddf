# ingest/dates.py
"""
Date/time normalization for bulletin rows.

PHIVOLCS writes dates as "16 November 2025 - 02:35 PM" but older monthly
pages split date and time into two cells, use slashes, or ISO dates. Every
variant is tried in turn; naive values are read as source local time.
"""
import time
from typing import List, Optional

import pandas as pd
import pytz

from ingest.config import SOURCE_TZ
from ingest.logger import get_logger

logger = get_logger(__name__)

DATE_TIME_DELIMITER = " - "


def _candidates(date_text: str, time_text: str) -> List[str]:
    date_text = (date_text or "").strip()
    time_text = (time_text or "").strip()

    out = []
    if DATE_TIME_DELIMITER in date_text:
        date_part, _, time_part = date_text.partition(DATE_TIME_DELIMITER)
        out.append(f"{date_part.strip()} {time_part.strip()}")

    out.append(f"{date_text} {time_text}".strip())

    dashed = date_text.replace("/", "-")
    if dashed != date_text:
        out.append(f"{dashed} {time_text}".strip())
        out.append(dashed)
    out.append(date_text)

    if time_text:
        out.append(f"{date_text}T{time_text}")
        out.append(f"{date_text} {time_text}")

    # keep order, drop repeats and blanks
    seen = set()
    return [c for c in out if c and not (c in seen or seen.add(c))]


def _to_millis(text: str, tz) -> Optional[int]:
    try:
        ts = pd.to_datetime(text, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return None
    if ts is None or pd.isna(ts):
        return None

    if ts.tzinfo is None:
        try:
            ts = ts.tz_localize(tz)
        except (ValueError, pytz.exceptions.InvalidTimeError):
            return None

    millis = int(round(ts.timestamp() * 1000))
    if millis < 0:
        return None
    return millis


def parse_timestamp(date_text: str, time_text: str = "", tz_name: str = SOURCE_TZ) -> Optional[int]:
    """Strict variant: epoch milliseconds, or None when nothing parses."""
    tz = pytz.timezone(tz_name)
    for candidate in _candidates(date_text, time_text):
        millis = _to_millis(candidate, tz)
        if millis is not None:
            return millis
    return None


def normalize(date_text: str, time_text: str = "", tz_name: str = SOURCE_TZ) -> int:
    """
    Epoch milliseconds for a date/time pair. Never raises.

    Falls back to the current wall-clock time with a warning; callers that
    must tell the two apart use parse_timestamp().
    """
    millis = parse_timestamp(date_text, time_text, tz_name)
    if millis is None:
        logger.warning(f"Could not parse date {date_text!r} with time {time_text!r}, using current time")
        return now_millis()
    return millis


def now_millis() -> int:
    return int(time.time() * 1000)
