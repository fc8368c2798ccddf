import pytest
from fastapi.testclient import TestClient

from api import main
from api.main import app
from api.routers import earthquakes as earthquakes_router
from conftest import NEWS_PAGE
from ingest.fetch_data import FetchError


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def serve(monkeypatch):
    calls = []

    def _serve(html=None, error=None):
        def fake_fetch(year=None, month=None):
            calls.append((year, month))
            if error:
                raise error
            return html

        monkeypatch.setattr(earthquakes_router, "fetch_document", fake_fetch)
        return calls

    return _serve


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_earthquakes_returns_records(client, serve, phivolcs_page):
    serve(phivolcs_page)
    r = client.get("/api/earthquakes")

    assert r.status_code == 200
    body = r.json()
    assert len(body) == 3
    assert set(body[0]) == {"id", "magnitude", "place", "time", "longitude", "latitude", "depth", "url", "detail"}
    assert body[0]["time"] > body[1]["time"] > body[2]["time"]
    assert r.headers["X-Extraction-Strategy"] == "table"
    assert r.headers["X-Extraction-Count"] == "3"


def test_monthly_selectors_are_passed_to_fetcher(client, serve, phivolcs_page):
    calls = serve(phivolcs_page)
    assert client.get("/api/earthquakes", params={"year": 2025, "month": 11}).status_code == 200
    assert calls == [(2025, 11)]


def test_no_events_is_an_empty_list(client, serve):
    serve(NEWS_PAGE)
    r = client.get("/api/earthquakes")
    assert r.status_code == 200
    assert r.json() == []
    assert r.headers["X-Extraction-Strategy"] == "none"


def test_fetch_failure_is_a_structured_error(client, serve):
    serve(error=FetchError("Cannot retrieve page", url="https://example.test/", attempts=["default attempt 1: boom"]))
    r = client.get("/api/earthquakes")

    assert r.status_code == 502
    body = r.json()
    assert body["error"] == "Failed to fetch earthquake data"
    assert body["message"] == "Cannot retrieve page"


def test_year_without_month_is_rejected(client, serve):
    calls = serve("<html></html>")
    r = client.get("/api/earthquakes", params={"year": 2025})

    assert r.status_code == 422
    assert r.json()["error"] == "Invalid request"
    assert calls == []


def test_month_out_of_range_is_rejected(client, serve):
    calls = serve("<html></html>")
    r = client.get("/api/earthquakes", params={"year": 2025, "month": 13})

    assert r.status_code == 422
    body = r.json()
    assert body["error"] == "Invalid request"
    assert "month" in body["message"]
    assert body["details"][0]["field"] == "query.month"
    assert calls == []


def test_unexpected_error_is_a_structured_500(serve, phivolcs_page, monkeypatch):
    serve(phivolcs_page)

    def broken(html):
        raise RuntimeError("extractor exploded")

    monkeypatch.setattr(earthquakes_router, "extract_earthquakes", broken)
    r = TestClient(app, raise_server_exceptions=False).get("/api/earthquakes")

    assert r.status_code == 500
    assert r.headers["content-type"].startswith("application/json")
    body = r.json()
    assert body["error"] == "Failed to process earthquake data"
    assert "details" not in body


def test_debug_html(client, serve, phivolcs_page):
    serve(phivolcs_page)
    body = client.get("/api/debug/html").json()

    assert body["htmlLength"] == len(phivolcs_page)
    assert "Governor Generoso" in body["textSample"]
    assert "PHIVOLCS Latest Earthquake Information" not in body["textSample"]


def test_metrics_endpoint(client):
    r = client.get("/metrics")
    assert r.status_code == 200
    assert "http_requests_total" in r.text


def test_run_serves_the_app_with_uvicorn(monkeypatch):
    monkeypatch.delenv("API_PORT", raising=False)
    calls = []
    monkeypatch.setattr(main.uvicorn, "run", lambda target, **kwargs: calls.append((target, kwargs)))
    main.run()

    assert calls[0][0] == "api.main:app"
    assert calls[0][1]["port"] == 8000
