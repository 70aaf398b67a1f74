"""Itinerary JSON I/O and the human-readable gap report."""

import json
from collections import defaultdict
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from itinerary_continuity.models import (
    ActivityDetails,
    Address,
    CabinClass,
    Coordinates,
    CustomDetails,
    FillResult,
    FlightDetails,
    Gap,
    HotelDetails,
    Location,
    MeetingDetails,
    Segment,
    SegmentKind,
    SegmentStatus,
    Source,
    TransferDetails,
    TransferType,
)
from itinerary_continuity.normalize.date_parser import parse_datetime


# ---------------------------------------------------------------------------
# Locations
# ---------------------------------------------------------------------------

def _location_to_dict(loc: Optional[Location]) -> Optional[dict]:
    if loc is None:
        return None
    data: Dict[str, Any] = {"name": loc.name}
    if loc.code:
        data["code"] = loc.code
    if loc.address:
        address = {
            k: v for k, v in (
                ("street", loc.address.street),
                ("city", loc.address.city),
                ("state", loc.address.state),
                ("country", loc.address.country),
            ) if v
        }
        if address:
            data["address"] = address
    if loc.coordinates:
        data["coordinates"] = {"latitude": loc.coordinates.latitude, "longitude": loc.coordinates.longitude}
    if loc.timezone:
        data["timezone"] = loc.timezone
    return data


def _location_from_dict(data: Optional[dict]) -> Optional[Location]:
    if not data:
        return None
    address = data.get("address") or None
    coords = data.get("coordinates") or None
    return Location(
        name=data.get("name") or "",
        code=data.get("code") or "",
        address=Address(
            street=address.get("street") or "",
            city=address.get("city") or "",
            state=address.get("state") or "",
            country=address.get("country") or "",
        ) if address else None,
        coordinates=Coordinates(
            latitude=float(coords["latitude"]),
            longitude=float(coords["longitude"]),
        ) if coords else None,
        timezone=data.get("timezone") or "",
    )


# ---------------------------------------------------------------------------
# Segments (camelCase layout, discriminated by "type")
# ---------------------------------------------------------------------------

_BASE_KEYS = {
    "id", "type", "status", "startDatetime", "endDatetime", "source",
    "metadata", "notes", "inferred", "inferredReason", "price",
}

_KIND_KEYS = {
    SegmentKind.FLIGHT: {"airline", "flightNumber", "origin", "destination", "cabinClass", "durationMinutes"},
    SegmentKind.HOTEL: {
        "property", "location", "checkInDate", "checkOutDate", "checkInTime", "checkOutTime", "starRating",
    },
    SegmentKind.ACTIVITY: {"name", "description", "location", "category"},
    SegmentKind.MEETING: {"title", "location", "agenda"},
    SegmentKind.TRANSFER: {"transferType", "pickupLocation", "dropoffLocation"},
    SegmentKind.CUSTOM: {"title", "location"},
}


def _details_to_dict(segment: Segment) -> dict:
    d = segment.details
    if segment.kind == SegmentKind.FLIGHT:
        data = {
            "airline": {"name": d.airline or d.airline_code, **({"code": d.airline_code} if d.airline_code else {})},
            "flightNumber": d.flight_number,
            "origin": _location_to_dict(d.origin),
            "destination": _location_to_dict(d.destination),
        }
        if d.cabin_class:
            data["cabinClass"] = d.cabin_class.value
        if d.duration_minutes:
            data["durationMinutes"] = d.duration_minutes
        return data
    if segment.kind == SegmentKind.HOTEL:
        data = {
            "property": {"name": d.property_name},
            "location": _location_to_dict(d.location),
            "checkInDate": segment.start.date().isoformat(),
            "checkOutDate": segment.end.date().isoformat(),
        }
        if d.check_in_time:
            data["checkInTime"] = d.check_in_time
        if d.check_out_time:
            data["checkOutTime"] = d.check_out_time
        if d.star_rating is not None:
            data["starRating"] = d.star_rating
        return data
    if segment.kind == SegmentKind.ACTIVITY:
        data = {"name": d.name, "location": _location_to_dict(d.location)}
        if d.description:
            data["description"] = d.description
        if d.category:
            data["category"] = d.category
        return data
    if segment.kind == SegmentKind.MEETING:
        data = {"title": d.title, "location": _location_to_dict(d.location)}
        if d.agenda:
            data["agenda"] = d.agenda
        return data
    if segment.kind == SegmentKind.TRANSFER:
        return {
            "transferType": d.transfer_type.value,
            "pickupLocation": _location_to_dict(d.pickup),
            "dropoffLocation": _location_to_dict(d.dropoff),
        }
    data = {"title": d.title}
    if d.location:
        data["location"] = _location_to_dict(d.location)
    return data


def segment_to_dict(segment: Segment) -> dict:
    data = dict(segment.extra)
    data.update({
        "id": segment.id,
        "type": segment.kind.value,
        "status": segment.status.value,
        "startDatetime": segment.start.isoformat(),
        "endDatetime": segment.end.isoformat(),
        "source": segment.source.value,
        "metadata": segment.metadata,
    })
    data.update(_details_to_dict(segment))
    if segment.notes:
        data["notes"] = segment.notes
    if segment.inferred:
        data["inferred"] = True
        if segment.inferred_reason:
            data["inferredReason"] = segment.inferred_reason
    if segment.price is not None:
        # Money is stored in the smallest currency unit
        data["price"] = {"amount": int(round(segment.price * 100)), "currency": segment.currency}
    return data


def _details_from_dict(kind: SegmentKind, data: dict):
    if kind == SegmentKind.FLIGHT:
        airline = data.get("airline") or {}
        if isinstance(airline, str):
            airline = {"name": airline}
        return FlightDetails(
            origin=_location_from_dict(data.get("origin")) or Location(),
            destination=_location_from_dict(data.get("destination")) or Location(),
            airline=airline.get("name") or "",
            airline_code=airline.get("code") or "",
            flight_number=data.get("flightNumber") or "",
            cabin_class=CabinClass(data["cabinClass"]) if data.get("cabinClass") else None,
            duration_minutes=data.get("durationMinutes"),
        )
    if kind == SegmentKind.HOTEL:
        prop = data.get("property") or {}
        if isinstance(prop, str):
            prop = {"name": prop}
        return HotelDetails(
            property_name=prop.get("name") or "",
            location=_location_from_dict(data.get("location")) or Location(),
            star_rating=data.get("starRating"),
            check_in_time=data.get("checkInTime") or "",
            check_out_time=data.get("checkOutTime") or "",
        )
    if kind == SegmentKind.ACTIVITY:
        return ActivityDetails(
            name=data.get("name") or "",
            location=_location_from_dict(data.get("location")) or Location(),
            description=data.get("description") or "",
            category=data.get("category") or "",
        )
    if kind == SegmentKind.MEETING:
        return MeetingDetails(
            title=data.get("title") or "",
            location=_location_from_dict(data.get("location")) or Location(),
            agenda=data.get("agenda") or "",
        )
    if kind == SegmentKind.TRANSFER:
        return TransferDetails(
            transfer_type=TransferType(data.get("transferType") or "OTHER"),
            pickup=_location_from_dict(data.get("pickupLocation")) or Location(),
            dropoff=_location_from_dict(data.get("dropoffLocation")) or Location(),
        )
    return CustomDetails(
        title=data.get("title") or "",
        location=_location_from_dict(data.get("location")),
    )


def _price_from(raw) -> Optional[float]:
    if raw is None:
        return None
    if isinstance(raw, dict):
        amount = raw.get("amount")
        return amount / 100 if amount is not None else None
    return float(raw)


def segment_from_dict(data: dict) -> Segment:
    """Build a Segment from the camelCase layout. Raises ValueError on bad input."""
    try:
        kind = SegmentKind(data["type"])
    except KeyError:
        raise ValueError("Segment has no 'type'") from None

    start = parse_datetime(data.get("startDatetime"))
    if start is None:
        raise ValueError(f"Segment {data.get('id', '?')} has no valid startDatetime")
    end = parse_datetime(data.get("endDatetime")) or start

    known = _BASE_KEYS | _KIND_KEYS[kind]
    price = data.get("price")
    kwargs = dict(
        kind=kind,
        start=start,
        end=end,
        details=_details_from_dict(kind, data),
        source=Source(data.get("source") or "import"),
        status=SegmentStatus(data.get("status") or "CONFIRMED"),
        inferred=bool(data.get("inferred", False)),
        inferred_reason=data.get("inferredReason"),
        notes=data.get("notes") or "",
        price=_price_from(price),
        metadata=dict(data.get("metadata") or {}),
        extra={k: v for k, v in data.items() if k not in known},
    )
    if isinstance(price, dict) and price.get("currency"):
        kwargs["currency"] = price["currency"]
    if data.get("id"):
        kwargs["id"] = data["id"]
    return Segment(**kwargs)


# ---------------------------------------------------------------------------
# Itinerary files
# ---------------------------------------------------------------------------

def load_itinerary(path: Path) -> Dict[str, Any]:
    """Read an itinerary JSON file; "segments" comes back as Segment objects."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    data["segments"] = [segment_from_dict(s) for s in data.get("segments") or []]
    return data


def save_itinerary(itinerary: Dict[str, Any], path: Path):
    """Write an itinerary back, serializing Segment objects in "segments"."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = dict(itinerary)
    data["segments"] = [
        segment_to_dict(s) if isinstance(s, Segment) else s
        for s in itinerary.get("segments") or []
    ]
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")


# ---------------------------------------------------------------------------
# Human-readable gap report
# ---------------------------------------------------------------------------

def _clock(dt: datetime) -> str:
    return dt.strftime("%H:%M")


def format_gap_report(
    segments: List[Segment],
    gaps: List[Gap],
    results: Optional[List[FillResult]] = None,
) -> str:
    """Day-by-day segment listing with each gap printed after the segment it follows."""
    results = results or []
    gaps_after: Dict[str, list] = defaultdict(list)
    for i, gap in enumerate(gaps):
        gaps_after[gap.before_segment.id].append((gap, results[i] if i < len(results) else None))

    lines = []
    lines.append("=" * 72)
    lines.append("  ITINERARY CONTINUITY — Segments and Gaps")
    lines.append("=" * 72)

    current_day = None
    for seg in segments:
        day = seg.start.date()
        if day != current_day:
            current_day = day
            lines.append(f"\n--- {day.isoformat()} {'─' * 55}")

        marker = "  [agent]" if seg.source == Source.AGENT else ""
        lines.append(f"  {_clock(seg.start)}–{_clock(seg.end)}  {seg.kind.value:<9} {seg.title}{marker}")

        for gap, result in gaps_after.get(seg.id, []):
            distance = f", {gap.distance_km:g} km" if gap.distance_km is not None else ""
            lines.append(
                f"    ··· GAP: {gap.gap_type.value} → {gap.suggested_type.value} "
                f"({gap.time_gap_hours:g}h{distance}, confidence {gap.confidence}%)"
            )
            lines.append(f"        {gap.description}")
            if result is None:
                continue
            if result.found:
                lines.append(f"        Filled: {result.segment.title}")
                for alt in result.alternatives:
                    price = f" ${alt.price:,.0f}" if alt.price is not None else ""
                    lines.append(f"          alt: {alt.description}{price}")
            else:
                lines.append(f"        Unfilled ({result.error_kind}): {result.error}")

    filled = sum(1 for r in results if r.found)
    lines.append(f"\n{'=' * 72}")
    lines.append(f"  Total: {len(segments)} segments, {len(gaps)} gaps, {filled} filled")
    lines.append("=" * 72)

    return "\n".join(lines)
