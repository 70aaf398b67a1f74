"""Tests for the SerpAPI flight and hotel clients, with httpx patched out."""

import asyncio
from datetime import date, datetime

import httpx
import pytest

from factories import place

from itinerary_continuity.errors import ProviderError
from itinerary_continuity.fill.providers import SerpApiFlightSearch, SerpApiHotelSearch, map_travel_class
from itinerary_continuity.models import CabinClass, Coordinates


class DummyResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            request = httpx.Request("GET", "https://serpapi.test/search")
            raise httpx.HTTPStatusError(
                "error", request=request, response=httpx.Response(self.status_code, request=request),
            )
        return None

    def json(self):
        return self._payload


class DummyAsyncClient:
    def __init__(self, response, *args, **kwargs):
        self.response = response
        self.requests = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None

    async def get(self, url, params=None):
        self.requests.append((url, params))
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


def _patch_client(monkeypatch, response):
    clients = []

    def factory(*args, **kwargs):
        client = DummyAsyncClient(response, *args, **kwargs)
        clients.append(client)
        return client

    monkeypatch.setattr(httpx, "AsyncClient", factory)
    return clients


FLIGHTS_PAYLOAD = {
    "best_flights": [
        {
            "flights": [
                {
                    "departure_airport": {"name": "John F. Kennedy International Airport", "id": "JFK",
                                          "time": "2025-03-05 18:05"},
                    "arrival_airport": {"name": "Leonardo da Vinci International Airport", "id": "FCO",
                                        "time": "2025-03-06 08:30"},
                    "airline": "ITA Airways",
                    "travel_class": "Business",
                    "flight_number": "AZ 609",
                    "duration": 505,
                }
            ],
            "total_duration": 505,
            "price": 2350,
        }
    ],
    "other_flights": [
        {
            "flights": [
                {
                    "departure_airport": {"id": "JFK", "time": "2025-03-05 17:00"},
                    "arrival_airport": {"id": "LHR", "time": "2025-03-06 05:00"},
                    "airline": "British Airways",
                    "travel_class": "Economy",
                    "flight_number": "BA 178",
                },
                {
                    "departure_airport": {"id": "LHR", "time": "2025-03-06 07:00"},
                    "arrival_airport": {"id": "FCO", "time": "2025-03-06 10:35"},
                    "airline": "British Airways",
                    "travel_class": "Economy",
                    "flight_number": "BA 548",
                },
            ],
            "total_duration": 875,
        },
        {"flights": []},
    ],
}


def test_flight_search_parses_best_and_other_flights(monkeypatch):
    clients = _patch_client(monkeypatch, DummyResponse(FLIGHTS_PAYLOAD))
    search = SerpApiFlightSearch(api_key="test-key", base_url="https://serpapi.test/search")

    candidates = asyncio.run(search.search("JFK", "FCO", date(2025, 3, 5), CabinClass.BUSINESS))

    assert len(candidates) == 2
    direct, connecting = candidates
    assert direct.flight_number == "AZ609"
    assert direct.airline_code == "AZ"
    assert direct.origin_code == "JFK" and direct.destination_code == "FCO"
    assert direct.departure == datetime(2025, 3, 5, 18, 5)
    assert direct.arrival == datetime(2025, 3, 6, 8, 30)
    assert direct.cabin_class == CabinClass.BUSINESS
    assert direct.price == 2350.0
    assert direct.duration_minutes == 505

    assert connecting.destination_code == "FCO"
    assert connecting.arrival == datetime(2025, 3, 6, 10, 35)
    assert connecting.price is None

    url, params = clients[0].requests[0]
    assert url == "https://serpapi.test/search"
    assert params["engine"] == "google_flights"
    assert params["departure_id"] == "JFK"
    assert params["arrival_id"] == "FCO"
    assert params["outbound_date"] == "2025-03-05"
    assert params["travel_class"] == "3"
    assert params["api_key"] == "test-key"


def test_westbound_flight_landing_earlier_on_the_clock_is_kept():
    option = {
        "flights": [
            {
                "departure_airport": {"name": "Haneda Airport", "id": "HND", "time": "2025-03-10 17:00"},
                "arrival_airport": {"name": "Los Angeles International Airport", "id": "LAX",
                                    "time": "2025-03-10 10:00"},
                "airline": "Japan Airlines",
                "travel_class": "Economy",
                "flight_number": "JL 16",
            }
        ],
        "total_duration": 600,
        "price": 980,
    }

    candidate = SerpApiFlightSearch._parse_option(option, None)

    assert candidate is not None
    assert candidate.departure == datetime(2025, 3, 10, 17, 0)
    assert candidate.arrival == datetime(2025, 3, 10, 10, 0)
    assert candidate.duration_minutes == 600


def test_flight_search_error_field(monkeypatch):
    _patch_client(monkeypatch, DummyResponse({"error": "Invalid API key."}))
    search = SerpApiFlightSearch(api_key="bad-key")

    with pytest.raises(ProviderError, match="Invalid API key"):
        asyncio.run(search.search("JFK", "FCO", date(2025, 3, 5)))


def test_flight_search_http_status_error(monkeypatch):
    _patch_client(monkeypatch, DummyResponse({}, status_code=429))
    search = SerpApiFlightSearch(api_key="test-key")

    with pytest.raises(ProviderError, match="429"):
        asyncio.run(search.search("JFK", "FCO", date(2025, 3, 5)))


def test_flight_search_transport_error(monkeypatch):
    _patch_client(monkeypatch, httpx.ConnectError("connection refused"))
    search = SerpApiFlightSearch(api_key="test-key")

    with pytest.raises(ProviderError, match="connection refused"):
        asyncio.run(search.search("JFK", "FCO", date(2025, 3, 5)))


def test_flight_search_requires_api_key(monkeypatch):
    clients = _patch_client(monkeypatch, DummyResponse({}))
    search = SerpApiFlightSearch()
    search.api_key = ""

    with pytest.raises(ProviderError, match="SERPAPI_API_KEY"):
        asyncio.run(search.search("JFK", "FCO", date(2025, 3, 5)))
    assert clients == []


def test_hotel_search_parses_properties(monkeypatch):
    payload = {
        "properties": [
            {
                "name": "Hotel Hassler Roma",
                "gps_coordinates": {"latitude": 41.9058, "longitude": 12.4835},
                "rate_per_night": {"lowest": "$1,100", "extracted_lowest": 1100},
                "overall_rating": 4.8,
                "hotel_class": "5-star hotel",
                "link": "https://example.com/hassler",
                "check_in_time": "3:00 PM",
                "check_out_time": "12:00 PM",
            },
            {
                "name": "Hotel Artemide",
                "extracted_hotel_class": 4,
                "overall_rating": 4.9,
            },
            {"overall_rating": 5.0},
        ]
    }
    clients = _patch_client(monkeypatch, DummyResponse(payload))
    search = SerpApiHotelSearch(api_key="test-key")
    rome = place("Rome", city="Rome", country="IT")

    candidates = asyncio.run(search.search(rome, date(2025, 3, 6), date(2025, 3, 9)))

    assert [c.name for c in candidates] == ["Hotel Hassler Roma", "Hotel Artemide"]
    hassler, artemide = candidates
    assert hassler.nightly_rate == 1100
    assert hassler.star_class == 5
    assert hassler.coordinates == Coordinates(41.9058, 12.4835)
    assert hassler.check_in_time == "3:00 PM"
    assert artemide.star_class == 4
    assert artemide.nightly_rate is None
    assert artemide.coordinates is None

    _, params = clients[0].requests[0]
    assert params["engine"] == "google_hotels"
    assert params["q"] == "Rome"
    assert params["check_in_date"] == "2025-03-06"
    assert params["check_out_date"] == "2025-03-09"


def test_map_travel_class():
    assert map_travel_class("Premium economy") == CabinClass.PREMIUM_ECONOMY
    assert map_travel_class("First") == CabinClass.FIRST
    assert map_travel_class("Economy") == CabinClass.ECONOMY
    assert map_travel_class(None) is None
