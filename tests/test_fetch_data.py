import pytest
import requests

from ingest.fetch_data import FetchError, FetchStrategy, build_source_url, fetch_document

BASE = "https://earthquake.phivolcs.dost.gov.ph/"


class _FakeResponse:
    def __init__(self, text: str = "", status_code: int = 200) -> None:
        self.text = text
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")


class _FakeSession:
    def __init__(self, outcomes) -> None:
        self.outcomes = list(outcomes)
        self.calls = []

    def get(self, url, headers=None, timeout=None, verify=True):
        self.calls.append({"url": url, "headers": headers, "verify": verify})
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


STRATEGIES = [FetchStrategy("default"), FetchStrategy("browser", {"User-Agent": "test"})]


def test_latest_page_url():
    assert build_source_url(base_url=BASE) == BASE


def test_monthly_archive_url():
    assert build_source_url(2025, 11, base_url=BASE) == (
        "https://earthquake.phivolcs.dost.gov.ph/EQLatest-Monthly/2025/2025_November.html"
    )


@pytest.mark.parametrize("year, month", [(2025, None), (None, 3), (2025, 13), (2025, 0)])
def test_invalid_selectors(year, month):
    with pytest.raises(ValueError):
        build_source_url(year, month, base_url=BASE)


def test_first_success_is_returned():
    session = _FakeSession([_FakeResponse("<html>ok</html>")])
    assert fetch_document(session=session, strategies=STRATEGIES, retries=2) == "<html>ok</html>"
    assert len(session.calls) == 1


def test_falls_through_to_next_strategy():
    session = _FakeSession([
        requests.ConnectionError("refused"),
        _FakeResponse(status_code=503),
        _FakeResponse("<html>ok</html>"),
    ])
    delays = []
    html = fetch_document(session=session, strategies=STRATEGIES, retries=2, backoff=1, sleep=delays.append)

    assert html == "<html>ok</html>"
    assert session.calls[-1]["headers"] == {"User-Agent": "test"}
    assert delays == [1]


def test_exhausted_strategies_raise_fetch_error():
    session = _FakeSession([requests.Timeout("slow")] * 4)
    delays = []
    with pytest.raises(FetchError) as excinfo:
        fetch_document(2025, 11, session=session, strategies=STRATEGIES, retries=2, backoff=3, sleep=delays.append)

    assert len(excinfo.value.attempts) == 4
    assert excinfo.value.url.endswith("2025_November.html")
    assert delays == [3, 3]


def test_empty_document_is_a_fetch_failure():
    session = _FakeSession([_FakeResponse("   ")])
    with pytest.raises(FetchError):
        fetch_document(session=session, strategies=STRATEGIES[:1], retries=1)
