"""Datetime parsing and calendar-day helpers."""

import logging
from datetime import date, datetime, time
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil import parser as dateutil_parser

from itinerary_continuity.config import OVERNIGHT_THRESHOLD_HOURS

logger = logging.getLogger(__name__)


def parse_datetime(raw) -> Optional[datetime]:
    """Parse provider/JSON timestamps into datetimes.

    Handles:
      - datetime objects (returned unchanged)
      - ISO 8601 with or without offset ("2025-01-10T08:00:00Z")
      - SerpAPI style "2025-01-10 08:00"
      - anything else dateutil understands
    """
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw
    if isinstance(raw, date):
        return datetime.combine(raw, time())
    text = str(raw).strip()
    if not text or text.lower() in ("null", "none", "unknown"):
        return None
    try:
        return dateutil_parser.isoparse(text)
    except ValueError:
        pass
    try:
        return dateutil_parser.parse(text)
    except (ValueError, OverflowError):
        logger.debug("Unparseable datetime %r", text)
        return None


def parse_clock(raw: str, default: str) -> time:
    """Parse "15:00" / "3:00 PM" into a time, falling back to ``default``."""
    for candidate in (raw, default):
        if not candidate:
            continue
        try:
            return dateutil_parser.parse(candidate).time()
        except (ValueError, OverflowError):
            continue
    return time(12, 0)


def hours_between(earlier: datetime, later: datetime) -> float:
    return (later - earlier).total_seconds() / 3600


def _zone(tz_name: str):
    if not tz_name:
        return None
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown time zone %r, comparing in the datetimes' own zone", tz_name)
        return None


def local_date(dt: datetime, tz_name: str = "") -> date:
    """Calendar day of ``dt`` as seen in ``tz_name``.

    Naive datetimes are already wall-clock local time and are used as-is.
    """
    zone = _zone(tz_name)
    if zone is not None and dt.tzinfo is not None:
        return dt.astimezone(zone).date()
    return dt.date()


def is_overnight_gap(end: datetime, start: datetime, tz_name: str = "") -> bool:
    """True when the span from ``end`` to ``start`` is sleep time, not travel time.

    Overnight means the calendar day changes, or the wait exceeds
    OVERNIGHT_THRESHOLD_HOURS. Days are compared in ``tz_name`` (the arriving
    location's zone) when given.
    """
    if hours_between(end, start) > OVERNIGHT_THRESHOLD_HOURS:
        return True
    return local_date(end, tz_name) != local_date(start, tz_name)


def align_to(dt: datetime, reference: datetime, tz_name: str = "") -> datetime:
    """Make ``dt`` comparable with ``reference``.

    Provider timestamps are naive local times. When the itinerary is
    zone-aware they are placed in ``tz_name`` (or the reference's zone);
    aware values are made naive in ``tz_name`` when the itinerary is naive.
    """
    if (dt.tzinfo is None) == (reference.tzinfo is None):
        return dt
    zone = _zone(tz_name)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=zone or reference.tzinfo)
    if zone is not None:
        dt = dt.astimezone(zone)
    return dt.replace(tzinfo=None)
