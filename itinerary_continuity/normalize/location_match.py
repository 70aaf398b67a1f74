"""Decide whether two locations are the same place."""

import math
import re
from typing import List, Optional

from itinerary_continuity.config import SAME_PLACE_RADIUS_M
from itinerary_continuity.models import Coordinates, Location
from itinerary_continuity.normalize.city_resolver import city_of, country_of, is_city_level

_EARTH_RADIUS_KM = 6371.0

_STOP_WORDS = {
    "the", "at", "in", "on", "of", "and", "a", "an", "to", "for",
    "resort", "hotel", "inn", "suites", "lodge", "airport", "international",
    "st", "ave", "blvd", "rd", "street", "avenue", "boulevard", "road",
    "drive", "lane", "way", "place", "collection", "luxury",
}


def haversine_km(a: Coordinates, b: Coordinates) -> float:
    lat1, lat2 = math.radians(a.latitude), math.radians(b.latitude)
    dlat = lat2 - lat1
    dlng = math.radians(b.longitude - a.longitude)
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    return 2 * _EARTH_RADIUS_KM * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def normalize_name(name: str) -> str:
    cleaned = re.sub(r'\s+', ' ', (name or "").lower().strip())
    return re.sub(r'[^\w\s]', '', cleaned)


def levenshtein(s1: str, s2: str) -> int:
    if len(s1) < len(s2):
        s1, s2 = s2, s1
    previous = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1, start=1):
        current = [i]
        for j, c2 in enumerate(s2, start=1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (c1 != c2),
            ))
        previous = current
    return previous[-1]


def words_similar(w1: str, w2: str) -> bool:
    if w1 == w2:
        return True
    if w1 in w2 or w2 in w1:
        return True
    limit = 2 if len(w1) > 5 or len(w2) > 5 else 1
    return levenshtein(w1, w2) <= limit


def _significant_words(name: str) -> List[str]:
    return [w for w in re.split(r'[\s,]+', name) if len(w) > 2 and w not in _STOP_WORDS]


def have_similar_words(name1: str, name2: str) -> bool:
    """More than 70% of the smaller set of significant words find a fuzzy match."""
    words1 = _significant_words(name1)
    words2 = _significant_words(name2)
    if not words1 or not words2:
        return False
    matched = sum(1 for w1 in words1 if any(words_similar(w1, w2) for w2 in words2))
    return matched / min(len(words1), len(words2)) > 0.7


def coordinates_close(a: Optional[Coordinates], b: Optional[Coordinates], radius_m: float = SAME_PLACE_RADIUS_M) -> bool:
    if a is None or b is None:
        return False
    return haversine_km(a, b) * 1000 <= radius_m


def _address_matches_name(loc1: Location, loc2: Location) -> bool:
    for with_addr, other in ((loc1, loc2), (loc2, loc1)):
        if with_addr.address and with_addr.address.street and other.name:
            if normalize_name(with_addr.address.street) == normalize_name(other.name):
                return True
    return False


def _names_match(name1: str, name2: str) -> bool:
    if not name1 or not name2:
        return False
    if name1 == name2:
        return True
    # "four seasons" vs "four seasons resort oahu"
    if len(name1) > 5 and len(name2) > 5 and (name1 in name2 or name2 in name1):
        return True
    return have_similar_words(name1, name2)


def same_place(loc1: Location, loc2: Location) -> bool:
    """True when two locations denote the same place for gap detection.

    Codes on both sides are authoritative. Otherwise coordinates within
    SAME_PLACE_RADIUS_M, street/name cross matches, fuzzy name matches, and
    city+country equality for city-level locations all count as a match.
    """
    if loc1.code and loc2.code:
        return loc1.code.strip().upper() == loc2.code.strip().upper()

    if coordinates_close(loc1.coordinates, loc2.coordinates):
        return True

    if _address_matches_name(loc1, loc2):
        return True

    if _names_match(normalize_name(loc1.name), normalize_name(loc2.name)):
        return True

    if is_city_level(loc1) and is_city_level(loc2):
        city1, city2 = city_of(loc1), city_of(loc2)
        if city1 and city1 == city2 and country_of(loc1) == country_of(loc2):
            return True

    return False
