# ingest/config.py
import os
from dotenv import load_dotenv
load_dotenv()

PHIVOLCS_URL = os.getenv("PHIVOLCS_URL", "https://earthquake.phivolcs.dost.gov.ph/")
SOURCE_TZ = os.getenv("SOURCE_TZ", "Asia/Manila")

# Plausibility bands for the Philippine area of responsibility
LAT_MIN = float(os.getenv("LAT_MIN", "3"))
LAT_MAX = float(os.getenv("LAT_MAX", "22"))
LON_MIN = float(os.getenv("LON_MIN", "115"))
LON_MAX = float(os.getenv("LON_MAX", "128"))

DEFAULT_REGION = os.getenv("DEFAULT_REGION", "Philippines")
UNKNOWN_PLACE = "Unknown Location"

FETCH_TIMEOUT = float(os.getenv("FETCH_TIMEOUT", "90"))
FETCH_RETRIES = int(os.getenv("FETCH_RETRIES", "2"))
FETCH_BACKOFF = float(os.getenv("FETCH_BACKOFF", "3"))
FETCH_ALLOW_INSECURE = os.getenv("FETCH_ALLOW_INSECURE", "0") == "1"
USER_AGENT = os.getenv(
    "USER_AGENT",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
APP_ENV = os.getenv("APP_ENV", "production").lower()
