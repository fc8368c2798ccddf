# ingest/validate.py
import math
from dataclasses import dataclass, replace
from typing import Optional, Union

from ingest.config import LAT_MAX, LAT_MIN, LON_MAX, LON_MIN, UNKNOWN_PLACE
from ingest.logger import get_logger
from ingest.rows import Skip
from schemas.models import SkipReason

logger = get_logger(__name__)


@dataclass(frozen=True)
class Bounds:
    lat_min: float = LAT_MIN
    lat_max: float = LAT_MAX
    lon_min: float = LON_MIN
    lon_max: float = LON_MAX

    def contains(self, latitude: float, longitude: float) -> bool:
        return self.lat_min <= latitude <= self.lat_max and self.lon_min <= longitude <= self.lon_max


@dataclass(frozen=True)
class Candidate:
    magnitude: Optional[float]
    latitude: Optional[float]
    longitude: Optional[float]
    depth: Optional[float] = 0.0
    place: str = ""
    time: int = 0


def _real(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def validate(candidate: Candidate, bounds: Optional[Bounds] = None) -> Union[Candidate, Skip]:
    """
    Accept or reject one candidate record.

    Out-of-bounds values are never repaired; only depth and place get
    defaults. A candidate that already passes comes back unchanged.
    """
    bounds = bounds or Bounds()
    mag, lat, lon = candidate.magnitude, candidate.latitude, candidate.longitude

    if not _real(mag) or not 0 < mag <= 10:
        logger.debug(f"Rejected: magnitude {mag!r} out of range")
        return Skip(SkipReason.BAD_MAGNITUDE, f"magnitude={mag!r}")

    if not (_real(lat) and _real(lon)) or lat == 0 or lon == 0 or not bounds.contains(lat, lon):
        logger.debug(f"Rejected: coordinates lat={lat!r} lon={lon!r} outside bounds")
        return Skip(SkipReason.BAD_COORDINATES, f"lat={lat!r} lon={lon!r}")

    changes = {}
    if not _real(candidate.depth) or candidate.depth < 0:
        changes["depth"] = 0.0
    if not (candidate.place or "").strip():
        changes["place"] = UNKNOWN_PLACE

    return replace(candidate, **changes) if changes else candidate
