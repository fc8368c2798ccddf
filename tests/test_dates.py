import time

from conftest import manila_millis
from ingest.dates import normalize, parse_timestamp


def test_combined_date_time_cell_is_split():
    assert normalize("16 November 2025 - 02:35 PM", "") == manila_millis(2025, 11, 16, 14, 35)


def test_separate_date_and_time_fragments():
    assert parse_timestamp("16 November 2025", "02:35 PM") == manila_millis(2025, 11, 16, 14, 35)


def test_iso_date_with_24h_time():
    assert parse_timestamp("2025-11-16", "14:35") == manila_millis(2025, 11, 16, 14, 35)


def test_slash_separated_date():
    assert parse_timestamp("11/16/2025", "14:35") == manila_millis(2025, 11, 16, 14, 35)


def test_explicit_offset_is_respected():
    # 06:35 UTC is 14:35 in Manila
    assert parse_timestamp("2025-11-16T06:35:00Z", "") == manila_millis(2025, 11, 16, 14, 35)


def test_unparseable_text_is_reported_as_none():
    assert parse_timestamp("Philippines", "") is None
    assert parse_timestamp("", "") is None


def test_unparseable_text_degrades_to_now():
    before = int(time.time() * 1000)
    result = normalize("no date here", "nor time")
    after = int(time.time() * 1000)
    assert before <= result <= after
