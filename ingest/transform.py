import argparse
import uuid
from typing import List, Optional, Sequence

import pandas as pd
import pytz
from bs4 import BeautifulSoup

from ingest.config import SOURCE_TZ
from ingest.dates import now_millis
from ingest.dedupe import dedupe
from ingest.fetch_data import fetch_document
from ingest.logger import get_logger
from ingest.strategies import STRATEGIES, Hit, RunStats
from ingest.validate import Bounds
from schemas.models import EarthquakeRecord, ExtractionReport, ExtractionResult

logger = get_logger(__name__)

RECORD_COLUMNS = ["id", "magnitude", "place", "time", "longitude", "latitude", "depth"]


def _record_id(strategy: str, hit: Hit, extracted_at: int) -> str:
    suffix = uuid.uuid4().hex[:9]
    return f"phivolcs-{strategy}-{hit.table_index}-{hit.row_index}-{extracted_at}-{suffix}"


def assemble(strategy: str, hits: Sequence[Hit], extracted_at: Optional[int] = None) -> List[EarthquakeRecord]:
    """Typed records with ids unique within this call."""
    extracted_at = extracted_at if extracted_at is not None else now_millis()
    issued = set()
    records = []
    for hit in hits:
        record_id = _record_id(strategy, hit, extracted_at)
        while record_id in issued:
            record_id = _record_id(strategy, hit, extracted_at)
        issued.add(record_id)

        c = hit.candidate
        records.append(EarthquakeRecord(
            id=record_id,
            magnitude=c.magnitude,
            place=c.place,
            time=c.time,
            longitude=c.longitude,
            latitude=c.latitude,
            depth=c.depth,
        ))
    return records


def extract_earthquakes(html: str, bounds: Optional[Bounds] = None) -> ExtractionResult:
    """
    Turn one fetched bulletin page into ordered earthquake records.

    Strategies are tried in order and the first one that yields a valid
    record wins. An empty result is a normal outcome (quiet period or a
    layout change), never an exception; the report says which.
    """
    bounds = bounds or Bounds()
    soup = BeautifulSoup(html or "", "lxml")
    stats = RunStats()
    extracted_at = now_millis()

    tried = []
    strategy, hits = None, []
    for name, scan in STRATEGIES:
        tried.append(name)
        logger.info(f"Trying {name} strategy")
        found = scan(soup, bounds, stats)
        if found:
            strategy, hits = name, found
            break
        logger.warning(f"{name} strategy found no earthquakes")

    records = assemble(strategy, hits, extracted_at) if strategy else []
    unique = dedupe(records)

    report = ExtractionReport(
        strategy=strategy,
        strategies_tried=tried,
        rows_seen=stats.rows_seen,
        records_accepted=len(records),
        records_returned=len(unique),
        duplicates_removed=len(records) - len(unique),
        degraded_timestamps=stats.degraded_timestamps,
        skipped=dict(stats.skipped),
        text_mentions=stats.text_mentions,
    )
    if unique:
        logger.info(f"Extracted {len(unique)} unique earthquakes with the {strategy} strategy")
    else:
        logger.warning("No earthquake data found; the page structure may have changed")
    return ExtractionResult(records=unique, report=report)


def scrape_earthquakes(year: Optional[int] = None, month: Optional[int] = None) -> ExtractionResult:
    html = fetch_document(year=year, month=month)
    return extract_earthquakes(html)


def records_frame(records: Sequence[EarthquakeRecord], tz_name: str = SOURCE_TZ) -> pd.DataFrame:
    if not records:
        return pd.DataFrame(columns=RECORD_COLUMNS + ["time_local"])
    df = pd.DataFrame([r.model_dump() for r in records])[RECORD_COLUMNS]
    df["time_local"] = pd.to_datetime(df["time"], unit="ms", utc=True).dt.tz_convert(pytz.timezone(tz_name))
    return df


# Data Flow
if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Extract PHIVOLCS earthquakes")
    parser.add_argument("--year", type=int)
    parser.add_argument("--month", type=int)
    parser.add_argument("--html", help="parse a saved page instead of fetching")
    args = parser.parse_args()

    if args.html:
        with open(args.html, encoding="utf-8") as f:
            result = extract_earthquakes(f.read())
    else:
        result = scrape_earthquakes(args.year, args.month)

    print(records_frame(result.records).to_string(index=False))
    print(result.report.model_dump_json(indent=2))
