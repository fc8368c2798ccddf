# ingest/rows.py
"""
Row field extraction.

The bulletin has no declared schema and its column order changed between
snapshots, so a row is matched against an ordered list of layout tiers
and the first tier that accepts it assigns the fields:

  A  >= 6 cells, cell 0 is a combined "16 November 2025 - 02:35 PM" stamp
  B  >= 6 cells, separate date and time cells, coordinates found by band
  C  5 cells, fixed positions, default place
  D  3-4 cells, numeric cells classified by band

Nothing here raises for a row that does not fit; it comes back as a Skip.
"""
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple, Union

from ingest.config import DEFAULT_REGION, LAT_MAX, LAT_MIN, LON_MAX, LON_MIN
from schemas.models import SkipReason

HEADER_PATTERN = re.compile(
    r"date|time|magnitude|location|latitude|longitude|depth|header|seismological|observation",
    re.IGNORECASE,
)
MONTH_PATTERN = re.compile(
    r"\b(january|february|march|april|may|june|july|august|september|october|november|december)\b",
    re.IGNORECASE,
)
YEAR_PATTERN = re.compile(r"\b\d{4}\b")
TIME_OF_DAY_PATTERN = re.compile(r"\b\d{1,2}:\d{2}")
NUMERIC_DATE_PATTERN = re.compile(r"\b\d{1,4}[/-]\d{1,2}[/-]\d{1,4}\b")
NUMBER_PATTERN = re.compile(r"^\s*[-+]?(?:\d+\.?\d*|\.\d+)")
WHITESPACE = re.compile(r"\s+")

COMBINED_DELIMITER = " - "


@dataclass
class Skip:
    reason: SkipReason
    detail: str = ""


@dataclass
class RowFields:
    date_text: str = ""
    time_text: str = ""
    latitude: float = 0.0
    longitude: float = 0.0
    depth: float = 0.0
    magnitude: float = 0.0
    place: str = ""
    layout: str = ""


# ---------- cell helpers ----------
def clean_cell(text: str) -> str:
    return WHITESPACE.sub(" ", text or "").strip()


def to_number(text: str) -> Optional[float]:
    """Leading numeric prefix of a cell ("048 km" -> 48.0), None if there is none."""
    match = NUMBER_PATTERN.match(text or "")
    if not match:
        return None
    return float(match.group(0))


def to_coordinate(text: str) -> Optional[float]:
    """Numeric value with the source's zero padding removed ("06.34" -> 6.34)."""
    stripped = (text or "").strip().lstrip("0")
    value = to_number(stripped)
    if value is None:
        value = to_number(text)
    return value


def looks_like_date(text: str) -> bool:
    return bool(MONTH_PATTERN.search(text) or YEAR_PATTERN.search(text))


def looks_temporal(text: str) -> bool:
    return bool(
        looks_like_date(text)
        or TIME_OF_DAY_PATTERN.search(text)
        or NUMERIC_DATE_PATTERN.search(text)
    )


def in_lat_band(value: Optional[float]) -> bool:
    return value is not None and LAT_MIN <= value <= LAT_MAX


def in_lon_band(value: Optional[float]) -> bool:
    return value is not None and LON_MIN <= value <= LON_MAX


def is_header(cells: Sequence[str]) -> bool:
    return any(HEADER_PATTERN.search(c) for c in cells)


def split_date_time(cell: str) -> Tuple[str, str]:
    if COMBINED_DELIMITER in cell:
        date_part, _, time_part = cell.partition(COMBINED_DELIMITER)
        return date_part.strip(), time_part.strip()
    tokens = cell.split()
    if len(tokens) >= 4:
        return " ".join(tokens[:3]), " ".join(tokens[3:])
    return cell, ""


def is_combined_stamp(cells: Sequence[str]) -> bool:
    # "2025-11-16" followed by "14:35" is a split date/time, not a combined stamp
    return looks_like_date(cells[0]) and not looks_temporal(cells[1])


def prescan_magnitude(cells: Sequence[str], exclude: Sequence[float] = ()) -> float:
    """First non-temporal cell whose value lies in (0, 10)."""
    for text in cells:
        if looks_temporal(text):
            continue
        value = to_number(text)
        if value is None or value in exclude:
            continue
        if 0 < value < 10:
            return value
    return 0.0


def _num(value: Optional[float]) -> float:
    return 0.0 if value is None else value


# ---------- layout tiers ----------
def tier_combined_stamp(cells: Sequence[str]) -> Optional[RowFields]:
    if len(cells) < 6 or not is_combined_stamp(cells):
        return None
    date_text, time_text = split_date_time(cells[0])
    return RowFields(
        date_text=date_text,
        time_text=time_text,
        latitude=_num(to_coordinate(cells[1])),
        longitude=_num(to_coordinate(cells[2])),
        depth=_num(to_coordinate(cells[3])),
        magnitude=_num(to_number(cells[4])),
        place=cells[5],
        layout="A",
    )


def tier_separate_stamp(cells: Sequence[str]) -> Optional[RowFields]:
    if len(cells) < 6:
        return None
    fields = RowFields(date_text=cells[0], time_text=cells[1], layout="B")
    v1, v2, v3, v4 = (None if looks_temporal(c) else to_coordinate(c) for c in cells[2:6])

    if in_lat_band(v1) and in_lon_band(v2):
        fields.latitude, fields.longitude = v1, v2
        fields.depth, fields.magnitude = _num(v3), _num(v4)
    elif in_lat_band(v2) and in_lon_band(v1):
        fields.latitude, fields.longitude = v2, v1
        fields.depth, fields.magnitude = _num(v3), _num(v4)
    else:
        values = [v for v in (v1, v2, v3, v4) if v]
        for i, lat in enumerate(values):
            pair = next(
                (j for j, lon in enumerate(values) if j != i and in_lat_band(lat) and in_lon_band(lon)),
                None,
            )
            if pair is None:
                continue
            fields.latitude, fields.longitude = lat, values[pair]
            remaining = [v for k, v in enumerate(values) if k not in (i, pair)]
            if len(remaining) >= 1:
                fields.depth = remaining[0]
            if len(remaining) >= 2:
                fields.magnitude = remaining[1]
            break

    last = cells[-1]
    if len(cells) > 6 or to_number(last) is None:
        fields.place = last
    return fields


def tier_five_cells(cells: Sequence[str]) -> Optional[RowFields]:
    if len(cells) != 5:
        return None
    if is_combined_stamp(cells):
        date_text, time_text = split_date_time(cells[0])
        return RowFields(
            date_text=date_text,
            time_text=time_text,
            latitude=_num(to_coordinate(cells[1])),
            longitude=_num(to_coordinate(cells[2])),
            depth=_num(to_coordinate(cells[3])),
            magnitude=_num(to_number(cells[4])),
            place=DEFAULT_REGION,
            layout="C",
        )
    return RowFields(
        date_text=cells[0],
        time_text=cells[1],
        latitude=_num(to_coordinate(cells[2])),
        longitude=_num(to_coordinate(cells[3])),
        magnitude=_num(to_number(cells[4])),
        place=DEFAULT_REGION,
        layout="C",
    )


def tier_sparse(cells: Sequence[str]) -> Optional[RowFields]:
    if not 3 <= len(cells) <= 4:
        return None
    lats: List[float] = []
    lons: List[float] = []
    depth = 0.0
    for text in cells:
        if looks_temporal(text):
            continue
        value = to_coordinate(text)
        if value is None:
            continue
        if in_lat_band(value):
            lats.append(value)
        elif in_lon_band(value):
            lons.append(value)
        elif 0 < value < 1000 and not depth:
            depth = value

    return RowFields(
        date_text=cells[0],
        time_text=cells[1],
        latitude=lats[0] if lats else 0.0,
        longitude=lons[0] if lons else 0.0,
        depth=depth,
        place=cells[-1],
        layout="D",
    )


TIERS: List[Callable[[Sequence[str]], Optional[RowFields]]] = [
    tier_combined_stamp,
    tier_separate_stamp,
    tier_five_cells,
    tier_sparse,
]


def extract(cells: Sequence[str], header_cells: bool = False) -> Union[RowFields, Skip]:
    """
    Map the text cells of one row to earthquake fields.

    header_cells is set by the caller when the row was marked up with <th>.
    """
    cells = [clean_cell(c) for c in cells]
    if header_cells or is_header(cells):
        return Skip(SkipReason.HEADER)
    if len(cells) < 3:
        return Skip(SkipReason.TOO_FEW_CELLS, f"{len(cells)} cells")

    for tier in TIERS:
        fields = tier(cells)
        if fields is None:
            continue
        if not fields.magnitude:
            fields.magnitude = prescan_magnitude(cells, exclude=(fields.latitude, fields.longitude))
        return fields

    return Skip(SkipReason.NO_LAYOUT_MATCH, f"{len(cells)} cells")
