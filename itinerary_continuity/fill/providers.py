"""External search collaborators: interfaces and SerpAPI-backed clients."""

import logging
import re
from datetime import date
from typing import Any, Dict, List, Optional, Protocol

import httpx

from itinerary_continuity.config import SEARCH_CURRENCY, SEARCH_TIMEOUT_SECONDS, SERPAPI_API_KEY, SERPAPI_BASE_URL
from itinerary_continuity.errors import ProviderError
from itinerary_continuity.models import CabinClass, Coordinates, FlightCandidate, HotelCandidate, Location
from itinerary_continuity.normalize.date_parser import parse_datetime

logger = logging.getLogger(__name__)


class FlightSearchProvider(Protocol):
    name: str

    async def search(
        self,
        origin: str,
        destination: str,
        departure_date: date,
        cabin_class: Optional[CabinClass] = None,
    ) -> List[FlightCandidate]:
        ...


class HotelSearchProvider(Protocol):
    name: str

    async def search(self, location: Location, check_in: date, check_out: date) -> List[HotelCandidate]:
        ...


class GeocodingProvider(Protocol):
    async def geocode(self, query: str) -> Optional[Coordinates]:
        ...


# SerpAPI google_flights travel_class parameter
_SERPAPI_TRAVEL_CLASS = {
    CabinClass.ECONOMY: "1",
    CabinClass.PREMIUM_ECONOMY: "2",
    CabinClass.BUSINESS: "3",
    CabinClass.FIRST: "4",
}


def map_travel_class(raw: Optional[str]) -> Optional[CabinClass]:
    if not raw:
        return None
    normalized = raw.lower()
    if "first" in normalized:
        return CabinClass.FIRST
    if "business" in normalized:
        return CabinClass.BUSINESS
    if "premium" in normalized:
        return CabinClass.PREMIUM_ECONOMY
    return CabinClass.ECONOMY


def _star_class(raw: Dict[str, Any]) -> Optional[int]:
    if raw.get("extracted_hotel_class") is not None:
        return int(raw["extracted_hotel_class"])
    m = re.search(r'(\d)', str(raw.get("hotel_class") or ""))
    return int(m.group(1)) if m else None


class _SerpApiClient:
    engine = ""

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        base_url: str = SERPAPI_BASE_URL,
        timeout: float = SEARCH_TIMEOUT_SECONDS,
        currency: str = SEARCH_CURRENCY,
    ):
        self.api_key = api_key or SERPAPI_API_KEY
        self.base_url = base_url
        self.timeout = timeout
        self.currency = currency

    async def _get(self, params: Dict[str, str]) -> Dict[str, Any]:
        if not self.api_key:
            raise ProviderError("SERPAPI_API_KEY environment variable not configured")

        query = {
            "engine": self.engine,
            "currency": self.currency,
            "hl": "en",
            **params,
            "api_key": self.api_key,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(self.base_url, params=query)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ProviderError(f"SerpAPI request failed: {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"SerpAPI request failed: {exc}") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderError("SerpAPI returned a non-JSON payload") from exc
        if data.get("error"):
            raise ProviderError(f"SerpAPI error: {data['error']}")
        return data


class SerpApiFlightSearch(_SerpApiClient):
    """Google Flights through SerpAPI. One-way searches only."""

    name = "serpapi-google-flights"
    engine = "google_flights"

    async def search(
        self,
        origin: str,
        destination: str,
        departure_date: date,
        cabin_class: Optional[CabinClass] = None,
    ) -> List[FlightCandidate]:
        params = {
            "departure_id": origin,
            "arrival_id": destination,
            "outbound_date": departure_date.isoformat(),
            "type": "2",  # one-way
        }
        if cabin_class is not None:
            params["travel_class"] = _SERPAPI_TRAVEL_CLASS[cabin_class]

        data = await self._get(params)
        options = (data.get("best_flights") or []) + (data.get("other_flights") or [])
        candidates = []
        for option in options:
            candidate = self._parse_option(option, cabin_class)
            if candidate is not None:
                candidates.append(candidate)
        logger.debug("SerpAPI flights %s→%s on %s: %d candidates", origin, destination, departure_date, len(candidates))
        return candidates

    @staticmethod
    def _parse_option(option: Dict[str, Any], requested: Optional[CabinClass]) -> Optional[FlightCandidate]:
        legs = option.get("flights") or []
        if not legs:
            return None
        first, last = legs[0], legs[-1]
        dep_airport = first.get("departure_airport") or {}
        arr_airport = last.get("arrival_airport") or {}
        departure = parse_datetime(first.get("departure_time") or dep_airport.get("time"))
        arrival = parse_datetime(last.get("arrival_time") or arr_airport.get("time"))
        # Both clocks are airport-local; ordering across zones is left to the caller
        if departure is None or arrival is None:
            return None

        flight_number = first.get("flight_number") or ""
        m = re.match(r'^([A-Z0-9]{2})\s?\d', flight_number)
        return FlightCandidate(
            airline=first.get("airline") or "",
            airline_code=m.group(1) if m else "",
            flight_number=flight_number.replace(" ", ""),
            origin_code=dep_airport.get("id") or "",
            origin_name=dep_airport.get("name") or "",
            destination_code=arr_airport.get("id") or "",
            destination_name=arr_airport.get("name") or "",
            departure=departure,
            arrival=arrival,
            cabin_class=map_travel_class(first.get("travel_class")) or requested,
            price=float(option["price"]) if option.get("price") is not None else None,
            duration_minutes=option.get("total_duration") or first.get("duration"),
        )


class SerpApiHotelSearch(_SerpApiClient):
    """Google Hotels through SerpAPI."""

    name = "serpapi-google-hotels"
    engine = "google_hotels"

    async def search(self, location: Location, check_in: date, check_out: date) -> List[HotelCandidate]:
        query = (location.address.city if location.address and location.address.city else "") or location.name
        if not query:
            raise ProviderError("Hotel search needs a city or location name")

        data = await self._get({
            "q": query,
            "check_in_date": check_in.isoformat(),
            "check_out_date": check_out.isoformat(),
        })
        candidates = []
        for prop in data.get("properties") or []:
            if not prop.get("name"):
                continue
            gps = prop.get("gps_coordinates") or {}
            rate = prop.get("rate_per_night") or {}
            candidates.append(HotelCandidate(
                name=prop["name"],
                nightly_rate=rate.get("extracted_lowest"),
                star_class=_star_class(prop),
                overall_rating=prop.get("overall_rating"),
                coordinates=(
                    Coordinates(latitude=gps["latitude"], longitude=gps["longitude"])
                    if "latitude" in gps and "longitude" in gps else None
                ),
                link=prop.get("link") or "",
                check_in_time=prop.get("check_in_time") or "",
                check_out_time=prop.get("check_out_time") or "",
            ))
        logger.debug("SerpAPI hotels in %s: %d candidates", query, len(candidates))
        return candidates
