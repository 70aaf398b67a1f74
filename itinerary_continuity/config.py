"""Configuration: .env loading, thresholds, provider settings, data tables."""

import json
import os
from pathlib import Path
from typing import Any, Dict, List

from dotenv import load_dotenv

# Project root = parent of itinerary_continuity/
PROJECT_ROOT = Path(__file__).resolve().parent.parent
PACKAGE_DIR = Path(__file__).resolve().parent
load_dotenv(PROJECT_ROOT / ".env")

# --- Search providers ---
SERPAPI_API_KEY = os.getenv("SERPAPI_API_KEY", "")
SERPAPI_BASE_URL = os.getenv("SERPAPI_BASE_URL", "https://serpapi.com/search")
SEARCH_CURRENCY = os.getenv("SEARCH_CURRENCY", "USD")
SEARCH_TIMEOUT_SECONDS = float(os.getenv("SEARCH_TIMEOUT_SECONDS", "20"))
SEARCH_CONCURRENCY = int(os.getenv("SEARCH_CONCURRENCY", "4"))

# --- Geocoding (Nominatim usage policy: max 1 request/second) ---
NOMINATIM_BASE_URL = os.getenv("NOMINATIM_BASE_URL", "https://nominatim.openstreetmap.org/search")
NOMINATIM_USER_AGENT = os.getenv("NOMINATIM_USER_AGENT", "itinerary-continuity/0.1 (travel itinerary tooling)")
GEOCODE_MIN_INTERVAL_SECONDS = float(os.getenv("GEOCODE_MIN_INTERVAL_SECONDS", "1.0"))

# --- Gap detection ---
OVERNIGHT_THRESHOLD_HOURS = 8  # longer same-day waits count as overnight
SAME_PLACE_RADIUS_M = 100  # coordinates closer than this are one venue
LOCAL_TRANSFER_RADIUS_KM = float(os.getenv("LOCAL_TRANSFER_RADIUS_KM", "50"))
DOMESTIC_FLIGHT_THRESHOLD_KM = float(os.getenv("DOMESTIC_FLIGHT_THRESHOLD_KM", "300"))
DURATION_EPSILON_SECONDS = 1

# --- Gap filling ---
TRANSFER_BUFFER_MINUTES = 15  # arrive this long before the next segment
LOCAL_TRANSFER_HOURS = 1.0
GROUND_TRANSFER_HOURS = 3.0
DEFAULT_CHECK_IN_TIME = "15:00"
DEFAULT_CHECK_OUT_TIME = "11:00"
MAX_ALTERNATIVES = 3

# --- Data tables ---
DURATION_TABLE_PATH = Path(os.getenv("DURATION_TABLE_PATH", str(PACKAGE_DIR / "data" / "duration_keywords.json")))
HOTEL_BRANDS_PATH = Path(os.getenv("HOTEL_BRANDS_PATH", str(PACKAGE_DIR / "data" / "hotel_brands.json")))

# --- Logging ---
LOG_LEVEL = os.getenv("ITINERARY_LOG_LEVEL", "INFO").upper()


def load_duration_table(path: Path = DURATION_TABLE_PATH) -> Dict[str, Any]:
    """Ordered keyword rules plus "default" and "meeting_default" fallbacks."""
    return json.loads(path.read_text(encoding="utf-8"))


def load_hotel_brands(path: Path = HOTEL_BRANDS_PATH) -> List[Dict[str, Any]]:
    """Ordered brand tiers: [{"tier", "brands"}, ...], highest tier first."""
    return json.loads(path.read_text(encoding="utf-8"))["tiers"]
