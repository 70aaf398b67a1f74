"""Data models for itinerary continuity checking and gap filling."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class SegmentKind(str, Enum):
    FLIGHT = "FLIGHT"
    HOTEL = "HOTEL"
    MEETING = "MEETING"
    ACTIVITY = "ACTIVITY"
    TRANSFER = "TRANSFER"
    CUSTOM = "CUSTOM"


class Source(str, Enum):
    IMPORT = "import"
    USER = "user"
    AGENT = "agent"


class SegmentStatus(str, Enum):
    TENTATIVE = "TENTATIVE"
    CONFIRMED = "CONFIRMED"
    WAITLISTED = "WAITLISTED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class CabinClass(str, Enum):
    ECONOMY = "ECONOMY"
    PREMIUM_ECONOMY = "PREMIUM_ECONOMY"
    BUSINESS = "BUSINESS"
    FIRST = "FIRST"


# Higher rank = higher class; used for tie-breaks and nearest-class ranking
CABIN_RANK = {
    CabinClass.ECONOMY: 0,
    CabinClass.PREMIUM_ECONOMY: 1,
    CabinClass.BUSINESS: 2,
    CabinClass.FIRST: 3,
}


class TransferType(str, Enum):
    TAXI = "TAXI"
    SHUTTLE = "SHUTTLE"
    PRIVATE = "PRIVATE"
    PUBLIC = "PUBLIC"
    RIDE_SHARE = "RIDE_SHARE"
    RENTAL_CAR = "RENTAL_CAR"
    RAIL = "RAIL"
    FERRY = "FERRY"
    WALKING = "WALKING"
    OTHER = "OTHER"


class GapType(str, Enum):
    LOCAL_TRANSFER = "LOCAL_TRANSFER"
    DOMESTIC_GAP = "DOMESTIC_GAP"
    INTERNATIONAL_GAP = "INTERNATIONAL_GAP"
    OVERNIGHT_GAP = "OVERNIGHT_GAP"


class SuggestedType(str, Enum):
    TRANSFER = "TRANSFER"
    FLIGHT = "FLIGHT"
    NONE = "NONE"


class BudgetTier(str, Enum):
    ECONOMY = "economy"
    PREMIUM = "premium"
    LUXURY = "luxury"


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# ---------------------------------------------------------------------------
# Locations
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class Address:
    street: str = ""
    city: str = ""
    state: str = ""
    country: str = ""  # ISO 3166-1 alpha-2


@dataclass(frozen=True)
class Location:
    name: str = ""
    code: str = ""  # IATA airport or city code
    address: Optional[Address] = None
    coordinates: Optional[Coordinates] = None
    timezone: str = ""  # IANA zone, e.g. "Europe/Rome"

    def has_identity(self) -> bool:
        """True when the location can anchor a same-place decision."""
        if self.code or self.coordinates:
            return True
        return self.address is not None and bool(self.address.city or self.address.country or self.address.street)

    def display_name(self) -> str:
        if self.code:
            return f"{self.name} ({self.code})" if self.name else self.code
        if self.address and self.address.city and self.address.city != self.name:
            return f"{self.name}, {self.address.city}" if self.name else self.address.city
        return self.name or "unknown location"


# ---------------------------------------------------------------------------
# Segment payloads, one per kind
# ---------------------------------------------------------------------------

@dataclass
class FlightDetails:
    origin: Location
    destination: Location
    airline: str = ""
    airline_code: str = ""
    flight_number: str = ""
    cabin_class: Optional[CabinClass] = None
    duration_minutes: Optional[int] = None


@dataclass
class HotelDetails:
    property_name: str
    location: Location
    star_rating: Optional[int] = None
    check_in_time: str = ""
    check_out_time: str = ""


@dataclass
class ActivityDetails:
    name: str
    location: Location
    description: str = ""
    category: str = ""


@dataclass
class MeetingDetails:
    title: str
    location: Location
    agenda: str = ""


@dataclass
class TransferDetails:
    transfer_type: TransferType
    pickup: Location
    dropoff: Location


@dataclass
class CustomDetails:
    title: str = ""
    location: Optional[Location] = None


SegmentDetails = Union[
    FlightDetails, HotelDetails, ActivityDetails, MeetingDetails, TransferDetails, CustomDetails,
]

_DETAILS_BY_KIND = {
    SegmentKind.FLIGHT: FlightDetails,
    SegmentKind.HOTEL: HotelDetails,
    SegmentKind.ACTIVITY: ActivityDetails,
    SegmentKind.MEETING: MeetingDetails,
    SegmentKind.TRANSFER: TransferDetails,
    SegmentKind.CUSTOM: CustomDetails,
}


def new_segment_id() -> str:
    return f"seg_{uuid.uuid4().hex}"


@dataclass
class Segment:
    """One bookable unit of a trip.

    ``kind`` tags which payload ``details`` carries. ``end`` equal to ``start``
    means the duration is unspecified (open-ended activity).
    """
    kind: SegmentKind
    start: datetime
    end: datetime
    details: SegmentDetails
    id: str = field(default_factory=new_segment_id)
    source: Source = Source.IMPORT
    status: SegmentStatus = SegmentStatus.CONFIRMED
    inferred: bool = False
    inferred_reason: Optional[str] = None
    notes: str = ""
    price: Optional[float] = None
    currency: str = "USD"
    metadata: Dict[str, Any] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict)  # source fields passed through untouched

    def __post_init__(self):
        if self.end < self.start:
            raise ValueError(f"Segment {self.id}: end {self.end} is before start {self.start}")
        expected = _DETAILS_BY_KIND[self.kind]
        if not isinstance(self.details, expected):
            raise ValueError(
                f"Segment {self.id}: {self.kind.value} requires {expected.__name__}, "
                f"got {type(self.details).__name__}"
            )

    @property
    def title(self) -> str:
        d = self.details
        if self.kind == SegmentKind.FLIGHT:
            return f"{d.flight_number or d.airline or 'Flight'} {d.origin.code or d.origin.name} → {d.destination.code or d.destination.name}"
        if self.kind == SegmentKind.HOTEL:
            return d.property_name
        if self.kind == SegmentKind.ACTIVITY:
            return d.name
        if self.kind == SegmentKind.TRANSFER:
            return f"{d.transfer_type.value.title()} {d.pickup.display_name()} → {d.dropoff.display_name()}"
        return d.title or self.kind.value.title()


# ---------------------------------------------------------------------------
# Derived values (never persisted)
# ---------------------------------------------------------------------------

@dataclass
class Gap:
    before_index: int
    after_index: int
    before_segment: Segment
    after_segment: Segment
    end_location: Location
    start_location: Location
    gap_type: GapType
    location_type: GapType  # geographic class before any overnight override
    description: str
    suggested_type: SuggestedType
    time_gap_hours: float = 0.0
    distance_km: Optional[float] = None
    confidence: int = 0  # 0-100


@dataclass(frozen=True)
class PreferenceProfile:
    cabin_class: CabinClass = CabinClass.ECONOMY
    hotel_star_rating: int = 3
    budget_tier: BudgetTier = BudgetTier.ECONOMY


@dataclass(frozen=True)
class DurationInferenceResult:
    hours: float
    confidence: Confidence
    reason: str


@dataclass
class Alternative:
    description: str
    price: Optional[float] = None
    url: str = ""


@dataclass
class FillResult:
    found: bool
    segment: Optional[Segment] = None
    error: str = ""
    error_kind: str = ""  # GapFillError subclass name
    search_query: str = ""
    alternatives: List[Alternative] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Search candidates returned by external providers
# ---------------------------------------------------------------------------

@dataclass
class FlightCandidate:
    airline: str
    flight_number: str
    origin_code: str
    destination_code: str
    departure: datetime
    arrival: datetime
    cabin_class: Optional[CabinClass] = None
    price: Optional[float] = None
    origin_name: str = ""
    destination_name: str = ""
    duration_minutes: Optional[int] = None
    airline_code: str = ""


@dataclass
class HotelCandidate:
    name: str
    nightly_rate: Optional[float] = None
    star_class: Optional[int] = None
    overall_rating: Optional[float] = None
    coordinates: Optional[Coordinates] = None
    link: str = ""
    check_in_time: str = ""
    check_out_time: str = ""
