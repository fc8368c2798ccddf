# ingest/dedupe.py
from typing import List, Sequence

from schemas.models import EarthquakeRecord

TIME_TOLERANCE_MS = 60_000
COORD_TOLERANCE = 0.01


def is_duplicate(a: EarthquakeRecord, b: EarthquakeRecord) -> bool:
    if a.id == b.id:
        return True
    return (
        abs(a.time - b.time) < TIME_TOLERANCE_MS
        and abs(a.latitude - b.latitude) < COORD_TOLERANCE
        and abs(a.longitude - b.longitude) < COORD_TOLERANCE
    )


def dedupe(records: Sequence[EarthquakeRecord]) -> List[EarthquakeRecord]:
    """
    Drop near-duplicates (first one wins) and order newest first.

    The same event is often listed twice, e.g. in the latest table and in a
    nested copy, with ids that differ; time/position tolerance decides.
    """
    kept: List[EarthquakeRecord] = []
    for record in records:
        if any(is_duplicate(record, other) for other in kept):
            continue
        kept.append(record)
    # sorted() is stable, reverse=True keeps encounter order on ties
    return sorted(kept, key=lambda r: r.time, reverse=True)
