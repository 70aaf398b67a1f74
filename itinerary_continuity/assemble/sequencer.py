"""Chronological ordering and per-kind location extraction."""

from typing import List, Optional

from itinerary_continuity.models import Location, Segment, SegmentKind


def sort_segments(segments: List[Segment]) -> List[Segment]:
    """Stable sort by start time; equal starts keep their input order."""
    return sorted(segments, key=lambda s: s.start)


def start_location_of(segment: Segment) -> Optional[Location]:
    d = segment.details
    if segment.kind == SegmentKind.FLIGHT:
        return d.origin
    if segment.kind == SegmentKind.TRANSFER:
        return d.pickup
    if segment.kind in (SegmentKind.HOTEL, SegmentKind.ACTIVITY, SegmentKind.MEETING):
        return d.location
    if segment.kind == SegmentKind.CUSTOM:
        return d.location
    return None


def end_location_of(segment: Segment) -> Optional[Location]:
    d = segment.details
    if segment.kind == SegmentKind.FLIGHT:
        return d.destination
    if segment.kind == SegmentKind.TRANSFER:
        return d.dropoff
    # Stays, activities and meetings end where they start
    if segment.kind in (SegmentKind.HOTEL, SegmentKind.ACTIVITY, SegmentKind.MEETING):
        return d.location
    if segment.kind == SegmentKind.CUSTOM:
        return d.location
    return None


def is_transfer_like(segment: Optional[Segment]) -> bool:
    return segment is not None and segment.kind in (SegmentKind.FLIGHT, SegmentKind.TRANSFER)


def is_airport_segment(segment: Segment) -> bool:
    """Flights, and transfers with an airport-coded pickup or dropoff."""
    if segment.kind == SegmentKind.FLIGHT:
        return True
    if segment.kind == SegmentKind.TRANSFER:
        return bool(segment.details.pickup.code or segment.details.dropoff.code)
    return False
