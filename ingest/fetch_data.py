import calendar
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional
from urllib.parse import urljoin

import requests

from ingest.config import (
    FETCH_ALLOW_INSECURE,
    FETCH_BACKOFF,
    FETCH_RETRIES,
    FETCH_TIMEOUT,
    PHIVOLCS_URL,
    USER_AGENT,
)
from ingest.logger import get_logger

logger = get_logger(__name__)


class FetchError(Exception):
    """The bulletin page could not be retrieved; nothing was extracted."""

    def __init__(self, message: str, url: Optional[str] = None, attempts: Optional[List[str]] = None):
        super().__init__(message)
        self.url = url
        self.attempts = attempts or []


@dataclass
class FetchStrategy:
    name: str
    headers: Dict[str, str] = field(default_factory=dict)
    verify: bool = True


def fetch_strategies() -> List[FetchStrategy]:
    browser_headers = {
        "User-Agent": USER_AGENT,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
    }
    strategies = [
        FetchStrategy("default"),
        FetchStrategy("browser", browser_headers),
    ]
    # the bulletin host has served broken certificate chains before
    if FETCH_ALLOW_INSECURE:
        strategies.append(FetchStrategy("browser-insecure", browser_headers, verify=False))
    return strategies


def build_source_url(year: Optional[int] = None, month: Optional[int] = None, base_url: str = PHIVOLCS_URL) -> str:
    """Latest-events page, or the monthly archive page when year and month are given."""
    if year is None and month is None:
        return base_url
    if year is None or month is None:
        raise ValueError("year and month must be given together")
    if not 1 <= month <= 12:
        raise ValueError(f"month must be between 1 and 12, got {month}")
    month_name = calendar.month_name[month]
    return urljoin(base_url.rstrip("/") + "/", f"EQLatest-Monthly/{year}/{year}_{month_name}.html")


def fetch_document(
    year: Optional[int] = None,
    month: Optional[int] = None,
    session: Optional[requests.Session] = None,
    strategies: Optional[List[FetchStrategy]] = None,
    retries: int = FETCH_RETRIES,
    backoff: float = FETCH_BACKOFF,
    timeout: float = FETCH_TIMEOUT,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    """
    Download the bulletin markup.

    Each strategy is attempted `retries` times with a doubling delay. Raises
    FetchError once every strategy is exhausted, so callers can tell an
    unreachable source apart from a page with no earthquakes.
    """
    url = build_source_url(year, month)
    strategies = strategies or fetch_strategies()
    own_session = session is None
    session = session or requests.Session()
    attempts: List[str] = []

    try:
        for strategy in strategies:
            delay = backoff
            for attempt in range(max(1, retries)):
                try:
                    r = session.get(url, headers=strategy.headers, timeout=timeout, verify=strategy.verify)
                    r.raise_for_status()
                    if not r.text or not r.text.strip():
                        raise requests.RequestException("empty document")
                    logger.info(f"Fetched {url} with {strategy.name} strategy ({len(r.text)} characters)")
                    return r.text
                except requests.RequestException as e:
                    message = f"{strategy.name} attempt {attempt + 1}: {e}"
                    attempts.append(message)
                    logger.warning(f"Fetch failed, {message}")
                if attempt + 1 < retries:
                    sleep(delay)
                    delay *= 2
    finally:
        if own_session:
            session.close()

    raise FetchError(f"Cannot retrieve {url} after {len(attempts)} attempt(s)", url=url, attempts=attempts)
