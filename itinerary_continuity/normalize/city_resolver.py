"""Normalize city names and resolve a Location's city, country and coordinates."""

import re
from typing import Optional, Tuple

from itinerary_continuity.models import Coordinates, Location
from itinerary_continuity.normalize.iata import iata_to_city, iata_to_country, is_iata_code

# Maps raw variations → canonical name
_ALIASES = {
    # New York metro, airports included
    "new york city": "New York",
    "new york, ny": "New York",
    "nyc": "New York",
    "manhattan": "New York",
    "brooklyn": "New York",
    "queens": "New York",
    "jamaica, ny": "New York",
    "jamaica, queens": "New York",
    "newark": "New York",
    "newark, nj": "New York",
    # Los Angeles metro
    "los angeles, ca": "Los Angeles",
    "la": "Los Angeles",
    "santa monica": "Los Angeles",
    "beverly hills": "Los Angeles",
    "hollywood": "Los Angeles",
    "burbank": "Los Angeles",
    "inglewood": "Los Angeles",
    "van nuys": "Los Angeles",
    # Other metros
    "sf": "San Francisco",
    "san francisco, ca": "San Francisco",
    "washington, dc": "Washington DC",
    "washington d.c.": "Washington DC",
    "washington": "Washington DC",
    "miami beach": "Miami",
    "dallas/fort worth": "Dallas",
    "minneapolis/st. paul": "Minneapolis",
    "roma": "Rome",
    "fiumicino": "Rome",
    "milano": "Milan",
    "firenze": "Florence",
    "venezia": "Venice",
    "napoli": "Naples",
    "münchen": "Munich",
    "muenchen": "Munich",
    "lisboa": "Lisbon",
    "wien": "Vienna",
    "praha": "Prague",
    "heathrow": "London",
    "gatwick": "London",
    "el prat de llobregat": "Barcelona",
    "ciudad de méxico": "Mexico City",
    "cdmx": "Mexico City",
    "bengaluru": "Bangalore",
    "new delhi": "Delhi",
}

# canonical city → (ISO country, lat, lng)
CITY_INFO = {
    "Amsterdam": ("NL", 52.3676, 4.9041),
    "Athens": ("GR", 37.9838, 23.7275),
    "Atlanta": ("US", 33.7490, -84.3880),
    "Austin": ("US", 30.2672, -97.7431),
    "Bangalore": ("IN", 12.9716, 77.5946),
    "Bangkok": ("TH", 13.7563, 100.5018),
    "Barcelona": ("ES", 41.3874, 2.1686),
    "Berlin": ("DE", 52.5200, 13.4050),
    "Boston": ("US", 42.3601, -71.0589),
    "Buenos Aires": ("AR", -34.6037, -58.3816),
    "Cancun": ("MX", 21.1619, -86.8515),
    "Chicago": ("US", 41.8781, -87.6298),
    "Copenhagen": ("DK", 55.6761, 12.5683),
    "Dallas": ("US", 32.7767, -96.7970),
    "Delhi": ("IN", 28.7041, 77.1025),
    "Denver": ("US", 39.7392, -104.9903),
    "Detroit": ("US", 42.3314, -83.0458),
    "Dubai": ("AE", 25.2048, 55.2708),
    "Dublin": ("IE", 53.3498, -6.2603),
    "Edinburgh": ("GB", 55.9533, -3.1883),
    "Florence": ("IT", 43.7696, 11.2558),
    "Frankfurt": ("DE", 50.1109, 8.6821),
    "Geneva": ("CH", 46.2044, 6.1432),
    "Hong Kong": ("HK", 22.3193, 114.1694),
    "Honolulu": ("US", 21.3069, -157.8583),
    "Houston": ("US", 29.7604, -95.3698),
    "Istanbul": ("TR", 41.0082, 28.9784),
    "Las Vegas": ("US", 36.1699, -115.1398),
    "Lima": ("PE", -12.0464, -77.0428),
    "Lisbon": ("PT", 38.7223, -9.1393),
    "London": ("GB", 51.5074, -0.1278),
    "Los Angeles": ("US", 34.0522, -118.2437),
    "Madrid": ("ES", 40.4168, -3.7038),
    "Mexico City": ("MX", 19.4326, -99.1332),
    "Miami": ("US", 25.7617, -80.1918),
    "Milan": ("IT", 45.4642, 9.1900),
    "Minneapolis": ("US", 44.9778, -93.2650),
    "Montreal": ("CA", 45.5017, -73.5673),
    "Munich": ("DE", 48.1351, 11.5820),
    "Naples": ("IT", 40.8518, 14.2681),
    "Nashville": ("US", 36.1627, -86.7816),
    "New Orleans": ("US", 29.9511, -90.0715),
    "New York": ("US", 40.7128, -74.0060),
    "Oakland": ("US", 37.8044, -122.2712),
    "Orlando": ("US", 28.5383, -81.3792),
    "Palma de Mallorca": ("ES", 39.5696, 2.6502),
    "Paris": ("FR", 48.8566, 2.3522),
    "Philadelphia": ("US", 39.9526, -75.1652),
    "Phoenix": ("US", 33.4484, -112.0740),
    "Portland": ("US", 45.5152, -122.6784),
    "Prague": ("CZ", 50.0755, 14.4378),
    "Reykjavik": ("IS", 64.1466, -21.9426),
    "Rio de Janeiro": ("BR", -22.9068, -43.1729),
    "Rome": ("IT", 41.9028, 12.4964),
    "Sacramento": ("US", 38.5816, -121.4944),
    "Salt Lake City": ("US", 40.7608, -111.8910),
    "San Diego": ("US", 32.7157, -117.1611),
    "San Francisco": ("US", 37.7749, -122.4194),
    "Sao Paulo": ("BR", -23.5505, -46.6333),
    "Seattle": ("US", 47.6062, -122.3321),
    "Seoul": ("KR", 37.5665, 126.9780),
    "Shanghai": ("CN", 31.2304, 121.4737),
    "Singapore": ("SG", 1.3521, 103.8198),
    "Sydney": ("AU", -33.8688, 151.2093),
    "Tel Aviv": ("IL", 32.0853, 34.7818),
    "Tokyo": ("JP", 35.6762, 139.6503),
    "Toronto": ("CA", 43.6532, -79.3832),
    "Vancouver": ("CA", 49.2827, -123.1207),
    "Venice": ("IT", 45.4408, 12.3155),
    "Vienna": ("AT", 48.2082, 16.3738),
    "Washington DC": ("US", 38.9072, -77.0369),
    "Zurich": ("CH", 47.3769, 8.5417),
}

# Full country names that show up in imported addresses → ISO code
_COUNTRY_NAMES = {
    "united states": "US",
    "united states of america": "US",
    "usa": "US",
    "u.s.": "US",
    "united kingdom": "GB",
    "uk": "GB",
    "england": "GB",
    "scotland": "GB",
    "italy": "IT",
    "italia": "IT",
    "france": "FR",
    "spain": "ES",
    "españa": "ES",
    "germany": "DE",
    "deutschland": "DE",
    "portugal": "PT",
    "netherlands": "NL",
    "switzerland": "CH",
    "austria": "AT",
    "greece": "GR",
    "ireland": "IE",
    "mexico": "MX",
    "canada": "CA",
    "japan": "JP",
    "australia": "AU",
}

_CITY_KEYS = {city.lower(): city for city in CITY_INFO}


def resolve_city(raw: str) -> str:
    """Normalize a raw city string to a canonical city name.

    Tries in order:
    1. Exact alias match (case-insensitive)
    2. Known canonical city (case-insensitive)
    3. IATA code match (if input looks like a 3-letter code)
    4. Strip ", STATE" / ", COUNTRY" suffixes and try again
    5. Return cleaned-up original
    """
    if not raw:
        return ""

    cleaned = re.sub(r'\s+', ' ', raw.strip())
    lowered = cleaned.lower()

    if lowered in _ALIASES:
        return _ALIASES[lowered]
    if lowered in _CITY_KEYS:
        return _CITY_KEYS[lowered]

    if re.match(r'^[A-Z]{3}$', cleaned):
        city = iata_to_city(cleaned)
        if city:
            return city

    base = re.sub(r',\s*[A-Za-z .]+$', '', cleaned).strip()
    base_lower = base.lower()
    if base_lower != lowered:
        if base_lower in _ALIASES:
            return _ALIASES[base_lower]
        if base_lower in _CITY_KEYS:
            return _CITY_KEYS[base_lower]

    # Drop trailing "Airport"/"International"/"City" noise
    stripped = re.sub(r'\s+(airport|international|intl|municipal)$', '', base, flags=re.I).strip()
    if stripped.lower() in _CITY_KEYS:
        return _CITY_KEYS[stripped.lower()]

    return cleaned.title() if cleaned.islower() else cleaned


def is_known_city(name: str) -> bool:
    return resolve_city(name) in CITY_INFO


def normalize_country(raw: str) -> str:
    if not raw:
        return ""
    cleaned = raw.strip()
    if len(cleaned) == 2:
        return cleaned.upper()
    return _COUNTRY_NAMES.get(cleaned.lower(), cleaned.upper())


def city_of(location: Location) -> str:
    """Canonical city for a location, or "" when it cannot be determined."""
    if location.address and location.address.city:
        return resolve_city(location.address.city)
    if location.code and is_iata_code(location.code):
        city = iata_to_city(location.code)
        if city:
            return city
    if location.name and is_known_city(location.name):
        return resolve_city(location.name)
    return ""


def country_of(location: Location) -> str:
    """ISO country for a location: address, then airport code, then city table."""
    if location.address and location.address.country:
        return normalize_country(location.address.country)
    if location.code:
        country = iata_to_country(location.code)
        if country:
            return country
    city = city_of(location)
    if city in CITY_INFO:
        return CITY_INFO[city][0]
    return ""


def coordinates_of(location: Location) -> Tuple[Optional[Coordinates], bool]:
    """Best known coordinates for a location.

    Returns (coordinates, precise). Explicit coordinates are precise; city-centre
    coordinates looked up from the city table are an approximation.
    """
    if location.coordinates:
        return location.coordinates, True
    city = city_of(location)
    if city in CITY_INFO:
        _, lat, lng = CITY_INFO[city]
        return Coordinates(latitude=lat, longitude=lng), False
    return None, False


def is_city_level(location: Location) -> bool:
    """True when the location names a whole city rather than a venue inside it."""
    if location.code:
        return False
    city = city_of(location)
    if not city:
        return False
    return not location.name or resolve_city(location.name) == city
