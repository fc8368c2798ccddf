# ingest/strategies.py
"""
Extraction strategies, most structured first.

Each strategy takes the parsed document and returns the candidates it
could validate, tagged with their table/row position. The orchestrator in
transform.py stops at the first strategy that returns anything.
"""
import json
import math
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, NamedTuple, Optional, Tuple, Union

from bs4 import BeautifulSoup, Tag
from bs4.element import PreformattedString

from ingest import rows
from ingest.config import DEFAULT_REGION
from ingest.dates import normalize, now_millis, parse_timestamp
from ingest.logger import get_logger
from ingest.rows import Skip
from ingest.validate import Bounds, Candidate, validate
from schemas.models import SkipReason

logger = get_logger(__name__)


class Hit(NamedTuple):
    candidate: Candidate
    table_index: int
    row_index: int


@dataclass
class RunStats:
    """Per-call counters; a fresh instance for every extraction."""
    rows_seen: int = 0
    degraded_timestamps: int = 0
    skipped: Counter = field(default_factory=Counter)
    text_mentions: Dict[str, int] = field(default_factory=dict)

    def skip(self, outcome: Skip, where: str) -> None:
        self.skipped[outcome.reason.value] += 1
        logger.debug(f"Skipping {where}: {outcome.reason.value} {outcome.detail}".rstrip())


def _timestamp(date_text: str, time_text: str) -> Tuple[int, bool]:
    millis = parse_timestamp(date_text, time_text)
    if millis is None:
        return normalize(date_text, time_text), True
    return millis, False


def _parse_error(stats: RunStats, where: str, error: Exception) -> None:
    logger.warning(f"Error parsing {where}: {error}")
    stats.skip(Skip(SkipReason.PARSE_ERROR, str(error)), where)


def _accept(candidate: Candidate, degraded: bool, bounds: Bounds, stats: RunStats, where: str) -> Optional[Candidate]:
    outcome = validate(candidate, bounds)
    if isinstance(outcome, Skip):
        stats.skip(outcome, where)
        return None
    if degraded:
        stats.degraded_timestamps += 1
    return outcome


# ---------- 1. tables ----------
def cell_text(cell: Tag) -> str:
    return rows.clean_cell(cell.get_text(" ", strip=True))


def _own_rows(table: Tag) -> List[Tag]:
    return [tr for tr in table.find_all("tr") if tr.find_parent("table") is table]


def process_row(cells: List[str], header_cells: bool, bounds: Bounds, stats: RunStats, where: str) -> Union[Candidate, Skip]:
    try:
        fields = rows.extract(cells, header_cells=header_cells)
        if isinstance(fields, Skip):
            return fields
        millis, degraded = _timestamp(fields.date_text, fields.time_text)
        candidate = Candidate(
            magnitude=fields.magnitude,
            latitude=fields.latitude,
            longitude=fields.longitude,
            depth=fields.depth,
            place=fields.place,
            time=millis,
        )
        outcome = validate(candidate, bounds)
        if not isinstance(outcome, Skip) and degraded:
            stats.degraded_timestamps += 1
        return outcome
    except Exception as e:
        logger.warning(f"Error parsing {where}: {e}")
        return Skip(SkipReason.PARSE_ERROR, str(e))


def scan_tables(soup: BeautifulSoup, bounds: Bounds, stats: RunStats) -> List[Hit]:
    hits: List[Hit] = []
    tables = soup.find_all("table")
    logger.info(f"Found {len(tables)} table(s)")

    for table_index, table in enumerate(tables):
        table_rows = _own_rows(table)
        logger.debug(f"Table {table_index + 1}: {len(table_rows)} rows")
        for row_index, tr in enumerate(table_rows):
            cells = tr.find_all(["td", "th"], recursive=False)
            if not cells:
                continue
            stats.rows_seen += 1
            where = f"table {table_index} row {row_index}"
            outcome = process_row(
                [cell_text(c) for c in cells],
                header_cells=any(c.name == "th" for c in cells),
                bounds=bounds,
                stats=stats,
                where=where,
            )
            if isinstance(outcome, Skip):
                stats.skip(outcome, where)
                continue
            hits.append(Hit(outcome, table_index, row_index))
    return hits


# ---------- 2. attribute-tagged elements ----------
ATTRIBUTE_SELECTOR = (
    '[class*="earthquake" i], [id*="earthquake" i], [class*="quake" i], [id*="quake" i]'
)
LABELLED = {
    "magnitude": re.compile(r"magnitude[:\s]+([\d.]+)", re.IGNORECASE),
    "latitude": re.compile(r"lat[itude]*[:\s]+([\d.]+)", re.IGNORECASE),
    "longitude": re.compile(r"lon[gitude]*[:\s]+([\d.]+)", re.IGNORECASE),
    "depth": re.compile(r"depth[:\s]+([\d.]+)", re.IGNORECASE),
}
DATE_IN_TEXT = re.compile(
    r"\d{1,2}\s+(?:January|February|March|April|May|June|July|August|September|October|November|December)"
    r"\s+\d{4}(?:\s*-\s*\d{1,2}:\d{2}(?:\s*[AP]M)?)?"
    r"|\d{4}-\d{2}-\d{2}(?:[ T]\d{2}:\d{2}(?::\d{2})?)?",
    re.IGNORECASE,
)


def _labelled_value(text: str, key: str) -> float:
    match = LABELLED[key].search(text)
    if not match:
        return 0.0
    value = rows.to_number(match.group(1))
    return 0.0 if value is None else value


def scan_attributes(soup: BeautifulSoup, bounds: Bounds, stats: RunStats) -> List[Hit]:
    hits: List[Hit] = []
    elements = soup.select(ATTRIBUTE_SELECTOR)
    logger.info(f"Found {len(elements)} potential earthquake container(s)")

    for index, element in enumerate(elements):
        text = element.get_text(" ", strip=True)
        magnitude = _labelled_value(text, "magnitude")
        if not 0 < magnitude < 10:
            continue
        stats.rows_seen += 1
        where = f"element {index}"

        try:
            date_match = DATE_IN_TEXT.search(text)
            if date_match:
                millis, degraded = _timestamp(date_match.group(0), "")
            else:
                millis, degraded = now_millis(), True

            candidate = Candidate(
                magnitude=magnitude,
                latitude=_labelled_value(text, "latitude"),
                longitude=_labelled_value(text, "longitude"),
                depth=_labelled_value(text, "depth"),
                place=DEFAULT_REGION,
                time=millis,
            )
        except Exception as e:
            _parse_error(stats, where, e)
            continue
        accepted = _accept(candidate, degraded, bounds, stats, where)
        if accepted:
            hits.append(Hit(accepted, 0, index))
    return hits


# ---------- 3. JSON embedded in scripts ----------
MAGNITUDE_KEY = re.compile(r"\bmag(?:nitude)?\b", re.IGNORECASE)
KEY_ALIASES = {
    "magnitude": ("magnitude", "mag"),
    "latitude": ("latitude", "lat"),
    "longitude": ("longitude", "lon", "lng"),
    "depth": ("depth",),
    "place": ("place", "location"),
    "time": ("time",),
}


def json_arrays(text: str) -> Iterator[List[Any]]:
    """Yield every top-level JSON array of objects found inside a blob of script text."""
    decoder = json.JSONDecoder()
    index = text.find("[")
    while index != -1:
        try:
            value, end = decoder.raw_decode(text, index)
        except ValueError:
            index = text.find("[", index + 1)
            continue
        if isinstance(value, list) and any(isinstance(item, dict) for item in value):
            yield value
            index = text.find("[", end)
        else:
            index = text.find("[", index + 1)


def _pick(item: Dict[str, Any], field_name: str) -> Any:
    for key in KEY_ALIASES[field_name]:
        value = item.get(key)
        if value not in (None, "", 0):
            return value
    return None


def _as_float(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        number = rows.to_number(value)
        return 0.0 if number is None else number
    return 0.0


def _item_time(value: Any) -> Tuple[int, bool]:
    if isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value) and value >= 0:
        return int(value), False
    if isinstance(value, str) and value.strip():
        return _timestamp(value, "")
    return now_millis(), True


def scan_scripts(soup: BeautifulSoup, bounds: Bounds, stats: RunStats) -> List[Hit]:
    hits: List[Hit] = []
    scripts = [s.string or s.get_text() for s in soup.find_all("script")]
    scripts = [s for s in scripts if s and MAGNITUDE_KEY.search(s)]
    logger.info(f"Found {len(scripts)} script(s) mentioning magnitude")

    for script_index, content in enumerate(scripts):
        for array in json_arrays(content):
            for item_index, item in enumerate(array):
                if not isinstance(item, dict) or _pick(item, "magnitude") is None:
                    continue
                stats.rows_seen += 1
                where = f"script {script_index} item {item_index}"
                try:
                    millis, degraded = _item_time(_pick(item, "time"))
                    candidate = Candidate(
                        magnitude=_as_float(_pick(item, "magnitude")),
                        latitude=_as_float(_pick(item, "latitude")),
                        longitude=_as_float(_pick(item, "longitude")),
                        depth=_as_float(_pick(item, "depth")),
                        place=str(_pick(item, "place") or DEFAULT_REGION),
                        time=millis,
                    )
                except Exception as e:
                    _parse_error(stats, where, e)
                    continue
                accepted = _accept(candidate, degraded, bounds, stats, where)
                if accepted:
                    hits.append(Hit(accepted, script_index, item_index))
    return hits


# ---------- 4. free text ----------
INVISIBLE = ("script", "style", "head", "title", "noscript")
BULLETIN_LINE = re.compile(
    r"(?P<when>\d{1,2}\s+[A-Za-z]+\s+\d{4}\s*-\s*\d{1,2}:\d{2}(?:\s*[AP]M)?)\s+"
    r"(?P<lat>\d{1,2}\.\d+)\s+(?P<lon>\d{3}\.\d+)\s+(?P<depth>\d{1,3})\s+"
    r"(?P<mag>\d{1,2}\.\d+)\s+(?P<place>\S[^\n]*)",
    re.IGNORECASE,
)
MAGNITUDE_MENTION = re.compile(r"\b(?:Magnitude|Mag\.?|M)\s*:?\s*(\d+(?:\.\d+)?)", re.IGNORECASE)
DATE_MENTION = re.compile(r"\d{4}-\d{2}-\d{2}|\d{2}/\d{2}/\d{4}|\d{2}-\d{2}-\d{4}")


def visible_text(soup: BeautifulSoup) -> str:
    parts = [
        s for s in soup.find_all(string=True)
        if not isinstance(s, PreformattedString) and s.parent is not None and s.parent.name not in INVISIBLE
    ]
    return " ".join(parts)


def scan_text(soup: BeautifulSoup, bounds: Bounds, stats: RunStats) -> List[Hit]:
    hits: List[Hit] = []
    text = visible_text(soup)
    stats.text_mentions = {
        "magnitude": len(MAGNITUDE_MENTION.findall(text)),
        "date": len(DATE_MENTION.findall(text)),
    }
    logger.info(
        f"Text scan: {stats.text_mentions['magnitude']} magnitude mention(s), "
        f"{stats.text_mentions['date']} date pattern(s)"
    )

    for index, match in enumerate(BULLETIN_LINE.finditer(text)):
        stats.rows_seen += 1
        where = f"text match {index}"
        try:
            date_text, time_text = rows.split_date_time(match.group("when"))
            millis, degraded = _timestamp(date_text, time_text)
            candidate = Candidate(
                magnitude=float(match.group("mag")),
                latitude=rows.to_coordinate(match.group("lat")),
                longitude=rows.to_coordinate(match.group("lon")),
                depth=rows.to_coordinate(match.group("depth")),
                place=match.group("place").strip(),
                time=millis,
            )
        except Exception as e:
            _parse_error(stats, where, e)
            continue
        accepted = _accept(candidate, degraded, bounds, stats, where)
        if accepted:
            hits.append(Hit(accepted, 0, index))
    return hits


Strategy = Callable[[BeautifulSoup, Bounds, RunStats], List[Hit]]

STRATEGIES: List[Tuple[str, Strategy]] = [
    ("table", scan_tables),
    ("attribute", scan_attributes),
    ("embedded", scan_scripts),
    ("text", scan_text),
]
