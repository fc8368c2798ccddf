# schemas/models.py
from enum import Enum
from pydantic import BaseModel
from typing import Any, Dict, List, Optional


class EarthquakeRecord(BaseModel):
    id: str
    magnitude: float
    place: str
    time: int
    longitude: float
    latitude: float
    depth: float = 0.0
    url: str = ""
    detail: str = ""


class SkipReason(str, Enum):
    HEADER = "header"
    TOO_FEW_CELLS = "too_few_cells"
    NO_LAYOUT_MATCH = "no_layout_match"
    BAD_MAGNITUDE = "bad_magnitude"
    BAD_COORDINATES = "bad_coordinates"
    PARSE_ERROR = "parse_error"


class ExtractionReport(BaseModel):
    strategy: Optional[str] = None
    strategies_tried: List[str] = []
    rows_seen: int = 0
    records_accepted: int = 0
    records_returned: int = 0
    duplicates_removed: int = 0
    degraded_timestamps: int = 0
    skipped: Dict[str, int] = {}
    text_mentions: Dict[str, int] = {}


class ExtractionResult(BaseModel):
    records: List[EarthquakeRecord] = []
    report: ExtractionReport = ExtractionReport()


class ErrorOut(BaseModel):
    error: str
    message: str
    details: Optional[Any] = None
