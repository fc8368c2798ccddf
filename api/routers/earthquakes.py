from typing import List, Optional

from bs4 import BeautifulSoup
from fastapi import APIRouter, Query, Response
from fastapi.responses import JSONResponse
from prometheus_client import Counter

from ingest.fetch_data import FetchError, build_source_url, fetch_document
from ingest.strategies import visible_text
from ingest.transform import extract_earthquakes
from schemas.models import EarthquakeRecord, ErrorOut

router = APIRouter(prefix="/api", tags=["earthquakes"])

EXTRACTED_RECORDS = Counter(
    "earthquake_extraction_records_total",
    "Earthquake records returned, by extraction strategy",
    ["strategy"],
)
FETCH_FAILURES = Counter(
    "earthquake_fetch_failures_total",
    "Bulletin page fetches that exhausted every strategy",
)


def _invalid(exc: ValueError) -> JSONResponse:
    body = ErrorOut(error="Invalid request", message=str(exc))
    return JSONResponse(status_code=422, content=body.model_dump(exclude_none=True))


def _fetch(year: Optional[int], month: Optional[int]) -> str:
    try:
        return fetch_document(year=year, month=month)
    except FetchError:
        FETCH_FAILURES.inc()
        raise


# ---------- Endpoints ----------
@router.get("/earthquakes", response_model=List[EarthquakeRecord])
def earthquakes(
    response: Response,
    year: Optional[int] = Query(None, ge=1990, le=2100),
    month: Optional[int] = Query(None, ge=1, le=12),
):
    """
    Latest events, or the monthly archive when year and month are given.
    An empty list means the page was fetched but held no events.
    """
    try:
        build_source_url(year, month)
    except ValueError as e:
        return _invalid(e)

    result = extract_earthquakes(_fetch(year, month))

    strategy = result.report.strategy or "none"
    EXTRACTED_RECORDS.labels(strategy=strategy).inc(len(result.records))
    response.headers["X-Extraction-Strategy"] = strategy
    response.headers["X-Extraction-Count"] = str(len(result.records))
    return result.records


@router.get("/debug/html")
def debug_html(
    year: Optional[int] = Query(None, ge=1990, le=2100),
    month: Optional[int] = Query(None, ge=1, le=12),
):
    try:
        url = build_source_url(year, month)
    except ValueError as e:
        return _invalid(e)

    html = _fetch(year, month)
    text = visible_text(BeautifulSoup(html, "lxml")).strip()
    return {
        "htmlLength": len(html),
        "htmlSample": html[:5000],
        "textSample": text[:2000],
        "url": url,
    }
