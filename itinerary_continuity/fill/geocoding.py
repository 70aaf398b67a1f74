"""Nominatim geocoding with a process-wide rate limit."""

import asyncio
import logging
import time
from dataclasses import replace
from typing import Callable, Dict, List, Optional

import httpx

from itinerary_continuity.assemble.sequencer import start_location_of
from itinerary_continuity.config import (
    GEOCODE_MIN_INTERVAL_SECONDS,
    NOMINATIM_BASE_URL,
    NOMINATIM_USER_AGENT,
    SEARCH_TIMEOUT_SECONDS,
)
from itinerary_continuity.models import Coordinates, Location, Segment, SegmentKind

logger = logging.getLogger(__name__)


class RateLimiter:
    """Serializes callers and keeps ``min_interval`` seconds between acquisitions."""

    def __init__(
        self,
        min_interval: float = GEOCODE_MIN_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep=asyncio.sleep,
    ):
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._last: Optional[float] = None

    async def __aenter__(self):
        await self._lock.acquire()
        if self._last is not None:
            wait = self.min_interval - (self._clock() - self._last)
            if wait > 0:
                await self._sleep(wait)
        self._last = self._clock()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self._lock.release()
        return False


def build_location_query(location: Location) -> str:
    parts = [location.name]
    if location.address:
        parts += [location.address.city, location.address.state, location.address.country]
    seen = []
    for part in parts:
        if part and part not in seen:
            seen.append(part)
    return ", ".join(seen)


class NominatimGeocoder:
    """OpenStreetMap Nominatim search API. Failures return None."""

    def __init__(
        self,
        base_url: str = NOMINATIM_BASE_URL,
        user_agent: str = NOMINATIM_USER_AGENT,
        limiter: Optional[RateLimiter] = None,
        timeout: float = SEARCH_TIMEOUT_SECONDS,
    ):
        self.base_url = base_url
        self.user_agent = user_agent
        self.limiter = limiter or RateLimiter()
        self.timeout = timeout

    async def geocode(self, query: str) -> Optional[Coordinates]:
        if not query:
            return None
        params = {"q": query, "format": "json", "limit": "1"}
        headers = {"User-Agent": self.user_agent}

        async with self.limiter:
            try:
                async with httpx.AsyncClient(timeout=self.timeout, headers=headers) as client:
                    response = await client.get(self.base_url, params=params)
                    response.raise_for_status()
                    results = response.json()
            except (httpx.HTTPError, ValueError) as exc:
                logger.warning("Geocoding failed for %r: %s", query, exc)
                return None

        if not results:
            logger.warning("No geocoding results for %r", query)
            return None
        first = results[0]
        try:
            return Coordinates(latitude=float(first["lat"]), longitude=float(first["lon"]))
        except (KeyError, TypeError, ValueError):
            logger.warning("Malformed geocoding result for %r: %r", query, first)
            return None


def _needs_coordinates(location: Optional[Location]) -> bool:
    return location is not None and location.coordinates is None and not location.code


async def enrich_locations(segments: List[Segment], geocoder) -> List[Segment]:
    """Copies of ``segments`` whose uncoded locations gain coordinates.

    Identical queries are geocoded once, one call at a time.
    """
    cache: Dict[str, Optional[Coordinates]] = {}

    async def resolve(location: Optional[Location]) -> Optional[Location]:
        if not _needs_coordinates(location):
            return location
        query = build_location_query(location)
        if not query:
            return location
        if query not in cache:
            cache[query] = await geocoder.geocode(query)
        coords = cache[query]
        return replace(location, coordinates=coords) if coords else location

    enriched = []
    for segment in segments:
        d = segment.details
        if segment.kind == SegmentKind.FLIGHT:
            details = replace(d, origin=await resolve(d.origin), destination=await resolve(d.destination))
        elif segment.kind == SegmentKind.TRANSFER:
            details = replace(d, pickup=await resolve(d.pickup), dropoff=await resolve(d.dropoff))
        elif start_location_of(segment) is not None:
            details = replace(d, location=await resolve(d.location))
        else:
            details = d
        enriched.append(replace(segment, details=details, metadata=dict(segment.metadata)))

    resolved = sum(1 for c in cache.values() if c is not None)
    logger.info("Geocoded %d of %d distinct locations", resolved, len(cache))
    return enriched
