"""Tests for rate-limited geocoding and location enrichment."""

import asyncio

import httpx
import pytest

from factories import BESTIA, JFK, LAX, activity, flight, place

from itinerary_continuity.fill.geocoding import (
    NominatimGeocoder,
    RateLimiter,
    build_location_query,
    enrich_locations,
)
from itinerary_continuity.models import Coordinates, Location


class FakeClock:
    def __init__(self):
        self.now = 100.0
        self.sleeps = []

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def test_rate_limiter_spaces_acquisitions():
    clock = FakeClock()
    limiter = RateLimiter(min_interval=1.0, clock=clock, sleep=clock.sleep)

    async def run():
        async with limiter:
            pass
        async with limiter:
            pass
        clock.now += 0.4
        async with limiter:
            pass

    asyncio.run(run())
    assert clock.sleeps == [1.0, pytest.approx(0.6)]


def test_rate_limiter_does_not_wait_after_idle_time():
    clock = FakeClock()
    limiter = RateLimiter(min_interval=1.0, clock=clock, sleep=clock.sleep)

    async def run():
        async with limiter:
            pass
        clock.now += 5
        async with limiter:
            pass

    asyncio.run(run())
    assert clock.sleeps == []


def test_rate_limiter_serializes_concurrent_callers():
    clock = FakeClock()
    limiter = RateLimiter(min_interval=1.0, clock=clock, sleep=clock.sleep)
    order = []

    async def worker(name):
        async with limiter:
            order.append((name, clock.now))

    async def run():
        await asyncio.gather(worker("a"), worker("b"), worker("c"))

    asyncio.run(run())
    assert [t for _, t in order] == [100.0, 101.0, 102.0]


def test_build_location_query():
    assert build_location_query(BESTIA) == "Bestia, Los Angeles, US"
    assert build_location_query(place("Rome", city="Rome", country="IT")) == "Rome, IT"
    assert build_location_query(Location()) == ""


class DummyResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            request = httpx.Request("GET", "https://nominatim.test/search")
            raise httpx.HTTPStatusError(
                "error", request=request, response=httpx.Response(self.status_code, request=request),
            )
        return None

    def json(self):
        return self._payload


class DummyAsyncClient:
    def __init__(self, response, *args, **kwargs):
        self.response = response
        self.kwargs = kwargs
        self.requests = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None

    async def get(self, url, params=None):
        self.requests.append((url, params))
        return self.response


def _patch_client(monkeypatch, response):
    clients = []

    def factory(*args, **kwargs):
        client = DummyAsyncClient(response, *args, **kwargs)
        clients.append(client)
        return client

    monkeypatch.setattr(httpx, "AsyncClient", factory)
    return clients


def _geocoder():
    return NominatimGeocoder(base_url="https://nominatim.test/search", user_agent="tests/1.0",
                             limiter=RateLimiter(min_interval=0))


def test_nominatim_geocode(monkeypatch):
    clients = _patch_client(monkeypatch, DummyResponse([{"lat": "41.8902", "lon": "12.4922"}]))
    coords = asyncio.run(_geocoder().geocode("Colosseum, Rome, IT"))

    assert coords == Coordinates(41.8902, 12.4922)
    url, params = clients[0].requests[0]
    assert params["q"] == "Colosseum, Rome, IT"
    assert params["limit"] == "1"
    assert clients[0].kwargs["headers"]["User-Agent"] == "tests/1.0"


def test_nominatim_empty_result(monkeypatch, caplog):
    _patch_client(monkeypatch, DummyResponse([]))
    assert asyncio.run(_geocoder().geocode("Atlantis")) is None
    assert "No geocoding results" in caplog.text


def test_nominatim_http_error(monkeypatch, caplog):
    _patch_client(monkeypatch, DummyResponse(None, status_code=503))
    assert asyncio.run(_geocoder().geocode("Rome")) is None
    assert "Geocoding failed" in caplog.text


class CountingGeocoder:
    def __init__(self):
        self.queries = []

    async def geocode(self, query):
        self.queries.append(query)
        if "Nowhere" in query:
            return None
        return Coordinates(34.0459, -118.2356)


def test_enrich_locations_geocodes_each_query_once():
    geocoder = CountingGeocoder()
    lunch = activity("Lunch", BESTIA, "2025-03-01T12:00")
    dinner = activity("Dinner", BESTIA, "2025-03-01T19:00")
    arrival = flight(JFK, LAX, "2025-03-01T08:00", "2025-03-01T11:00")

    enriched = asyncio.run(enrich_locations([arrival, lunch, dinner], geocoder))

    assert geocoder.queries == ["Bestia, Los Angeles, US"]
    assert enriched[1].details.location.coordinates == Coordinates(34.0459, -118.2356)
    assert enriched[2].details.location.coordinates == Coordinates(34.0459, -118.2356)
    assert enriched[0].details.origin == JFK
    # Originals are untouched
    assert lunch.details.location.coordinates is None
    assert [s.id for s in enriched] == [arrival.id, lunch.id, dinner.id]


def test_enrich_locations_keeps_unresolved_locations():
    geocoder = CountingGeocoder()
    walk = activity("Walk", place("Nowhere", city="Springfield"), "2025-03-01T12:00")

    enriched = asyncio.run(enrich_locations([walk], geocoder))

    assert enriched[0].details.location == walk.details.location
