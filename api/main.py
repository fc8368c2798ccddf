import os
import time

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn
from dotenv import load_dotenv
from starlette.middleware.base import BaseHTTPMiddleware

from api.routers import earthquakes
from ingest.config import APP_ENV, LOG_LEVEL
from ingest.fetch_data import FetchError
from ingest.logger import get_logger
from schemas.models import ErrorOut

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST


load_dotenv()
logger = get_logger(__name__)

app = FastAPI(
    title="PHIVOLCS Earthquakes API",
    version="0.1",
    description="Earthquake events extracted from the PHIVOLCS bulletin page.",
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Healthcheck
@app.get("/health")
def health():
    return {"status": "ok", "message": "PHIVOLCS scraper API is running"}


# =========================
# PROMETHEUS METRICS
# =========================

# Requests by method, path and status code
REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

# Latency by method and path
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "path"],
)


class MetricsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()

        response = await call_next(request)

        process_time = time.time() - start_time
        path = request.url.path
        method = request.method
        status = response.status_code

        # record metrics
        REQUEST_COUNT.labels(method=method, path=path, status=status).inc()
        REQUEST_LATENCY.labels(method=method, path=path).observe(process_time)

        return response


# Metrics middleware
app.add_middleware(MetricsMiddleware)


# /metrics endpoint in Prometheus format
@app.get("/metrics")
def metrics():
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)


# --- Errors: {error, message, details?}
def _error(status_code: int, body: ErrorOut) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@app.exception_handler(FetchError)
async def fetch_error_handler(request: Request, exc: FetchError):
    logger.error(f"Fetch failed for {exc.url}: {exc}")
    body = ErrorOut(
        error="Failed to fetch earthquake data",
        message=str(exc),
        details=exc.attempts if APP_ENV == "development" else None,
    )
    return _error(502, body)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(loc) for loc in e["loc"]), "message": e["msg"]}
        for e in exc.errors()
    ]
    message = "; ".join(f"{e['field']}: {e['message']}" for e in errors)
    return _error(422, ErrorOut(error="Invalid request", message=message, details=errors))


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    body = ErrorOut(
        error="Failed to process earthquake data",
        message="Internal server error",
        details=f"{type(exc).__name__}: {exc}" if APP_ENV == "development" else None,
    )
    return _error(500, body)


app.include_router(earthquakes.router)


def run():
    uvicorn.run(
        "api.main:app",
        host=os.getenv("API_HOST", "0.0.0.0"),
        port=int(os.getenv("API_PORT", "8000")),
        log_level=LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
