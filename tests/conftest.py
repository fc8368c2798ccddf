from datetime import datetime

import pytest
import pytz

MANILA = pytz.timezone("Asia/Manila")

HEADER_ROW = (
    "<tr><th>Date - Time<br>(Philippine Time)</th><th>Latitude<br>(ºN)</th>"
    "<th>Longitude<br>(ºE)</th><th>Depth<br>(km)</th><th>Mag</th><th>Location</th></tr>"
)


def manila_millis(*args) -> int:
    return int(MANILA.localize(datetime(*args)).timestamp() * 1000)


def bulletin_row(stamp, lat, lon, depth, mag, place):
    cells = "".join(f"<td>{v}</td>" for v in (f"<a href='#'>{stamp}</a>", lat, lon, depth, mag, place))
    return f"<tr>{cells}</tr>"


def bulletin_page(*rows, extra=""):
    return (
        "<html><head><title>PHIVOLCS Latest Earthquake Information</title></head><body>"
        "<table><tr><td>Seismological Observation and Earthquake Prediction Division</td></tr></table>"
        f"<table class='MsoNormalTable'>{HEADER_ROW}{''.join(rows)}</table>{extra}"
        "</body></html>"
    )


@pytest.fixture
def phivolcs_page():
    return bulletin_page(
        bulletin_row("16 November 2025 - 02:35 PM", "06.34", "126.35", "048", "4.1",
                     "046 km S 42° E of Governor Generoso (Davao Oriental)"),
        bulletin_row("16 November 2025 - 09:12 AM", "12.05", "121.10", "010", "2.7",
                     "012 km N 80° W of Calapan City (Oriental Mindoro)"),
        bulletin_row("16 November 2025 - 06:40 PM", "09.80", "125.90", "025", "3.3",
                     "020 km N 45° E of General Luna (Surigao Del Norte)"),
    )


NEWS_PAGE = """
<html><head><title>Local news</title></head><body>
<div class="headline"><h1>City council approves new budget</h1>
<p>The council met on Tuesday and voted 9 to 3 in favour of the proposal.</p></div>
<ul><li>Weather: sunny, 31 degrees</li><li>Traffic advisory for EDSA</li></ul>
</body></html>
"""
