"""Detect discontinuities between chronologically adjacent segments."""

import logging
from typing import List, Optional, Tuple

from itinerary_continuity.assemble.duration import DurationInferenceEngine
from itinerary_continuity.assemble.sequencer import end_location_of, is_airport_segment, start_location_of
from itinerary_continuity.config import DOMESTIC_FLIGHT_THRESHOLD_KM, LOCAL_TRANSFER_RADIUS_KM
from itinerary_continuity.models import Gap, GapType, Location, Segment, SegmentKind, SuggestedType
from itinerary_continuity.normalize.city_resolver import city_of, coordinates_of, country_of
from itinerary_continuity.normalize.date_parser import hours_between, is_overnight_gap
from itinerary_continuity.normalize.location_match import haversine_km, same_place

logger = logging.getLogger(__name__)

_DESCRIPTIONS = {
    GapType.LOCAL_TRANSFER: "Local transfer needed from {end} to {start}",
    GapType.DOMESTIC_GAP: "Domestic transportation needed from {end} to {start}",
    GapType.INTERNATIONAL_GAP: "International flight needed from {end} to {start}",
    GapType.OVERNIGHT_GAP: "Overnight gap between {end} and {start} (no direct transfer needed)",
}


def _distance_km(loc1: Location, loc2: Location) -> Optional[float]:
    c1, _ = coordinates_of(loc1)
    c2, _ = coordinates_of(loc2)
    if c1 is None or c2 is None:
        return None
    return haversine_km(c1, c2)


def classify_locations(end_loc: Location, start_loc: Location) -> Optional[Tuple[GapType, SuggestedType, Optional[float]]]:
    """Geographic class of a move between two different places.

    Returns (gap_type, suggested_type, distance_km), or None when neither a
    city, a country nor coordinates can be established for the pair.
    """
    end_country, start_country = country_of(end_loc), country_of(start_loc)
    end_city, start_city = city_of(end_loc), city_of(start_loc)
    distance = _distance_km(end_loc, start_loc)

    if end_country and start_country and end_country != start_country:
        return GapType.INTERNATIONAL_GAP, SuggestedType.FLIGHT, distance

    if end_city and start_city and end_city == start_city:
        return GapType.LOCAL_TRANSFER, SuggestedType.TRANSFER, distance

    # Airport to city centre, neighbouring towns in one metro area
    if distance is not None and distance <= LOCAL_TRANSFER_RADIUS_KM:
        return GapType.LOCAL_TRANSFER, SuggestedType.TRANSFER, distance

    if (end_city and start_city) or (end_country and end_country == start_country):
        if distance is not None and distance < DOMESTIC_FLIGHT_THRESHOLD_KM:
            return GapType.DOMESTIC_GAP, SuggestedType.TRANSFER, distance
        return GapType.DOMESTIC_GAP, SuggestedType.FLIGHT, distance

    return None


def _gap_confidence(gap_type: GapType, prev: Segment, nxt: Segment) -> int:
    """How sure we are that the boundary needs filling (0-100)."""
    prev_airport, next_airport = is_airport_segment(prev), is_airport_segment(nxt)
    prev_hotel, next_hotel = prev.kind == SegmentKind.HOTEL, nxt.kind == SegmentKind.HOTEL
    long_haul = gap_type in (GapType.INTERNATIONAL_GAP, GapType.DOMESTIC_GAP)

    if gap_type == GapType.OVERNIGHT_GAP:
        return 50
    if prev_airport and next_airport and long_haul:
        return 95
    if (prev_airport and not next_airport) or (next_airport and not prev_airport):
        return 95
    if prev_hotel and next_hotel and long_haul:
        return 90
    if prev_hotel or next_hotel:
        return 85
    if gap_type == GapType.LOCAL_TRANSFER:
        return 80
    return 60


class GapClassifier:
    def __init__(self, duration_engine: Optional[DurationInferenceEngine] = None):
        self.duration_engine = duration_engine or DurationInferenceEngine()

    def detect_location_gaps(self, ordered_segments: List[Segment]) -> List[Gap]:
        """Walk consecutive pairs and emit at most one Gap per boundary.

        ``ordered_segments`` must already be sorted (see sort_segments). Gaps come
        back in ascending index order with after_index == before_index + 1.
        """
        gaps: List[Gap] = []

        for i in range(len(ordered_segments) - 1):
            prev = ordered_segments[i]
            nxt = ordered_segments[i + 1]

            end_loc = end_location_of(prev)
            start_loc = start_location_of(nxt)
            if end_loc is None or start_loc is None:
                continue

            unanchored = [(seg, loc) for seg, loc in ((prev, end_loc), (nxt, start_loc)) if not loc.has_identity()]
            if unanchored:
                seg, loc = unanchored[0]
                logger.warning(
                    "Skipping boundary %d→%d: location %r of segment %s has no code, address or coordinates",
                    i, i + 1, loc.name, seg.id,
                )
                continue

            gap = self._classify_boundary(i, prev, nxt, end_loc, start_loc)
            if gap is not None:
                gaps.append(gap)

        return gaps

    def _classify_boundary(self, i: int, prev: Segment, nxt: Segment, end_loc: Location, start_loc: Location) -> Optional[Gap]:
        if same_place(end_loc, start_loc):
            return None

        classified = classify_locations(end_loc, start_loc)
        if classified is None:
            logger.warning(
                "Skipping boundary %d→%d: cannot place %s or %s geographically",
                i, i + 1, end_loc.display_name(), start_loc.display_name(),
            )
            return None
        location_type, suggested, distance = classified

        effective_end = self.duration_engine.get_effective_end_time(prev)
        time_gap_hours = hours_between(effective_end, nxt.start)

        gap_type = location_type
        # Hotel check-outs and flights legitimately start the next day; only
        # activity-to-activity waits are treated as sleep time.
        travel_boundary = (
            prev.kind == SegmentKind.HOTEL or nxt.kind == SegmentKind.HOTEL
            or is_airport_segment(prev) or is_airport_segment(nxt)
        )
        if not travel_boundary and is_overnight_gap(effective_end, nxt.start, start_loc.timezone):
            gap_type = GapType.OVERNIGHT_GAP
            suggested = SuggestedType.NONE

        description = _DESCRIPTIONS[gap_type].format(
            end=end_loc.display_name(), start=start_loc.display_name(),
        )
        logger.debug("Boundary %d→%d: %s (%.2fh slack)", i, i + 1, gap_type.value, time_gap_hours)

        return Gap(
            before_index=i,
            after_index=i + 1,
            before_segment=prev,
            after_segment=nxt,
            end_location=end_loc,
            start_location=start_loc,
            gap_type=gap_type,
            location_type=location_type,
            description=description,
            suggested_type=suggested,
            time_gap_hours=round(time_gap_hours, 2),
            distance_km=round(distance, 1) if distance is not None else None,
            confidence=_gap_confidence(gap_type, prev, nxt),
        )


def detect_location_gaps(ordered_segments: List[Segment]) -> List[Gap]:
    return GapClassifier().detect_location_gaps(ordered_segments)
