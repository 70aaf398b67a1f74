"""IATA airport codes → city and country."""

import re
from typing import Optional, Tuple

# code → (canonical city, ISO country)
_AIRPORTS = {
    # United States
    "ATL": ("Atlanta", "US"),
    "AUS": ("Austin", "US"),
    "BNA": ("Nashville", "US"),
    "BOS": ("Boston", "US"),
    "BUR": ("Los Angeles", "US"),
    "DCA": ("Washington DC", "US"),
    "DEN": ("Denver", "US"),
    "DFW": ("Dallas", "US"),
    "DTW": ("Detroit", "US"),
    "EWR": ("New York", "US"),
    "FLL": ("Fort Lauderdale", "US"),
    "HNL": ("Honolulu", "US"),
    "IAD": ("Washington DC", "US"),
    "IAH": ("Houston", "US"),
    "JFK": ("New York", "US"),
    "LAS": ("Las Vegas", "US"),
    "LAX": ("Los Angeles", "US"),
    "LGA": ("New York", "US"),
    "MCO": ("Orlando", "US"),
    "MIA": ("Miami", "US"),
    "MSP": ("Minneapolis", "US"),
    "MSY": ("New Orleans", "US"),
    "OAK": ("Oakland", "US"),
    "ORD": ("Chicago", "US"),
    "PDX": ("Portland", "US"),
    "PHL": ("Philadelphia", "US"),
    "PHX": ("Phoenix", "US"),
    "SAN": ("San Diego", "US"),
    "SEA": ("Seattle", "US"),
    "SFO": ("San Francisco", "US"),
    "SLC": ("Salt Lake City", "US"),
    "SMF": ("Sacramento", "US"),
    # Canada / Latin America
    "YUL": ("Montreal", "CA"),
    "YVR": ("Vancouver", "CA"),
    "YYZ": ("Toronto", "CA"),
    "CUN": ("Cancun", "MX"),
    "MEX": ("Mexico City", "MX"),
    "LIR": ("Liberia", "CR"),
    "GRU": ("Sao Paulo", "BR"),
    "GIG": ("Rio de Janeiro", "BR"),
    "EZE": ("Buenos Aires", "AR"),
    "LIM": ("Lima", "PE"),
    # Europe
    "AMS": ("Amsterdam", "NL"),
    "ATH": ("Athens", "GR"),
    "BCN": ("Barcelona", "ES"),
    "BER": ("Berlin", "DE"),
    "CDG": ("Paris", "FR"),
    "CIA": ("Rome", "IT"),
    "CPH": ("Copenhagen", "DK"),
    "DUB": ("Dublin", "IE"),
    "EDI": ("Edinburgh", "GB"),
    "FCO": ("Rome", "IT"),
    "FLR": ("Florence", "IT"),
    "FRA": ("Frankfurt", "DE"),
    "GVA": ("Geneva", "CH"),
    "IST": ("Istanbul", "TR"),
    "KEF": ("Reykjavik", "IS"),
    "LGW": ("London", "GB"),
    "LHR": ("London", "GB"),
    "LIN": ("Milan", "IT"),
    "LIS": ("Lisbon", "PT"),
    "MAD": ("Madrid", "ES"),
    "MUC": ("Munich", "DE"),
    "MXP": ("Milan", "IT"),
    "NAP": ("Naples", "IT"),
    "ORY": ("Paris", "FR"),
    "PMI": ("Palma de Mallorca", "ES"),
    "PRG": ("Prague", "CZ"),
    "STN": ("London", "GB"),
    "VCE": ("Venice", "IT"),
    "VIE": ("Vienna", "AT"),
    "ZRH": ("Zurich", "CH"),
    # Asia / Pacific / Middle East
    "AUH": ("Abu Dhabi", "AE"),
    "BKK": ("Bangkok", "TH"),
    "DXB": ("Dubai", "AE"),
    "HKG": ("Hong Kong", "HK"),
    "HND": ("Tokyo", "JP"),
    "ICN": ("Seoul", "KR"),
    "NRT": ("Tokyo", "JP"),
    "PEK": ("Beijing", "CN"),
    "PVG": ("Shanghai", "CN"),
    "SIN": ("Singapore", "SG"),
    "SYD": ("Sydney", "AU"),
    "TLV": ("Tel Aviv", "IL"),
    "DEL": ("Delhi", "IN"),
    "BLR": ("Bangalore", "IN"),
}

_CODE_RE = re.compile(r'^[A-Z]{3}$')
_PAREN_CODE_RE = re.compile(r'\(([A-Z]{3})\)')
_LEADING_CODE_RE = re.compile(r'^([A-Z]{3})\b')


def lookup(code: str) -> Optional[Tuple[str, str]]:
    if not code:
        return None
    return _AIRPORTS.get(code.strip().upper())


def iata_to_city(code: str) -> str:
    hit = lookup(code)
    return hit[0] if hit else ""


def iata_to_country(code: str) -> str:
    hit = lookup(code)
    return hit[1] if hit else ""


def is_iata_code(code: str) -> bool:
    return bool(code) and bool(_CODE_RE.match(code.strip().upper()))


def guess_iata_code(name: str) -> str:
    """Pull an airport code out of names like "New York (JFK)" or "JFK Terminal 4"."""
    if not name:
        return ""
    m = _PAREN_CODE_RE.search(name) or _LEADING_CODE_RE.match(name)
    return m.group(1) if m else ""
