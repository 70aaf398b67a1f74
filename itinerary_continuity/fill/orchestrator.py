"""Turn detected gaps into proposed segments.

Flights come from a FlightSearchProvider, hotels from a HotelSearchProvider,
ground transfers are estimated locally. Every failure is reported as an
unfilled FillResult; one bad gap never stops the others.
"""

import asyncio
import logging
import math
from datetime import date, datetime, timedelta
from typing import List, Optional, Union

from itinerary_continuity.assemble.duration import DurationInferenceEngine
from itinerary_continuity.assemble.sequencer import is_airport_segment
from itinerary_continuity.config import (
    DEFAULT_CHECK_IN_TIME,
    DEFAULT_CHECK_OUT_TIME,
    GROUND_TRANSFER_HOURS,
    LOCAL_TRANSFER_HOURS,
    MAX_ALTERNATIVES,
    SEARCH_CONCURRENCY,
    SEARCH_CURRENCY,
    SEARCH_TIMEOUT_SECONDS,
    TRANSFER_BUFFER_MINUTES,
)
from itinerary_continuity.errors import (
    GapFillError,
    NoCandidates,
    OvernightSuppressed,
    ProviderError,
    UnresolvableIdentifier,
)
from itinerary_continuity.fill.preferences import PreferenceInferenceEngine
from itinerary_continuity.fill.providers import FlightSearchProvider, HotelSearchProvider
from itinerary_continuity.models import (
    CABIN_RANK,
    Alternative,
    BudgetTier,
    FillResult,
    FlightCandidate,
    FlightDetails,
    Gap,
    GapType,
    HotelDetails,
    Location,
    PreferenceProfile,
    Segment,
    SegmentKind,
    SegmentStatus,
    Source,
    SuggestedType,
    TransferDetails,
    TransferType,
)
from itinerary_continuity.normalize.date_parser import align_to, is_overnight_gap, local_date, parse_clock
from itinerary_continuity.normalize.iata import guess_iata_code, is_iata_code

logger = logging.getLogger(__name__)


def airport_code_of(location: Location) -> str:
    if location.code and is_iata_code(location.code):
        return location.code.strip().upper()
    return guess_iata_code(location.name)


def determine_transfer_type(gap: Gap, preferences: PreferenceProfile) -> TransferType:
    if preferences.budget_tier == BudgetTier.LUXURY:
        return TransferType.PRIVATE
    airport = (
        is_airport_segment(gap.before_segment) or is_airport_segment(gap.after_segment)
        or bool(gap.end_location.code) or bool(gap.start_location.code)
    )
    if airport:
        return TransferType.PRIVATE if preferences.budget_tier == BudgetTier.PREMIUM else TransferType.SHUTTLE
    return TransferType.TAXI


def _describe_search(gap: Gap) -> str:
    if gap.suggested_type == SuggestedType.FLIGHT:
        origin = airport_code_of(gap.end_location) or gap.end_location.display_name()
        dest = airport_code_of(gap.start_location) or gap.start_location.display_name()
        return f"flight {origin} → {dest}"
    return f"{gap.suggested_type.value.lower()} {gap.end_location.display_name()} → {gap.start_location.display_name()}"


def _as_date(value: Union[date, datetime]) -> date:
    return value.date() if isinstance(value, datetime) else value


class GapFillingOrchestrator:
    def __init__(
        self,
        flight_provider: Optional[FlightSearchProvider] = None,
        hotel_provider: Optional[HotelSearchProvider] = None,
        duration_engine: Optional[DurationInferenceEngine] = None,
        preference_engine: Optional[PreferenceInferenceEngine] = None,
        search_timeout: float = SEARCH_TIMEOUT_SECONDS,
        max_concurrency: int = SEARCH_CONCURRENCY,
    ):
        self.flight_provider = flight_provider
        self.hotel_provider = hotel_provider
        self.duration_engine = duration_engine or DurationInferenceEngine()
        self.preference_engine = preference_engine or PreferenceInferenceEngine()
        self.search_timeout = search_timeout
        self.max_concurrency = max(1, max_concurrency)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def fill_gap_intelligently(self, gap: Gap, existing_segments: List[Segment]) -> FillResult:
        """Propose one segment for ``gap``, or explain why none was found."""
        preferences = self.preference_engine.infer_preferences(existing_segments)
        search_query = _describe_search(gap)
        try:
            if gap.suggested_type == SuggestedType.NONE:
                raise OvernightSuppressed(gap.description)
            if gap.suggested_type == SuggestedType.FLIGHT:
                result = await self._fill_flight(gap, preferences)
            else:
                result = self._fill_transfer(gap, preferences)
        except GapFillError as exc:
            logger.info("Gap %d→%d left unfilled (%s): %s", gap.before_index, gap.after_index, exc.kind, exc)
            return FillResult(found=False, error=str(exc), error_kind=exc.kind, search_query=search_query)

        result.search_query = search_query
        logger.info("Gap %d→%d filled with %s", gap.before_index, gap.after_index, result.segment.title)
        return result

    async def search_hotel(
        self,
        location: Location,
        check_in: Union[date, datetime],
        check_out: Union[date, datetime],
        preferences: Optional[PreferenceProfile] = None,
    ) -> FillResult:
        """Best-rated hotel near ``location`` at the preferred star tier."""
        preferences = preferences or PreferenceProfile()
        search_query = f"hotel {location.display_name()} {_as_date(check_in)} → {_as_date(check_out)}"
        try:
            result = await self._find_hotel(location, check_in, check_out, preferences)
        except GapFillError as exc:
            logger.info("Hotel search for %s failed (%s): %s", location.display_name(), exc.kind, exc)
            return FillResult(found=False, error=str(exc), error_kind=exc.kind, search_query=search_query)
        result.search_query = search_query
        return result

    async def fill_gaps(self, gaps: List[Gap], existing_segments: List[Segment]) -> List[FillResult]:
        """Fill every gap independently; results come back in gap order."""
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def fill_one(gap: Gap) -> FillResult:
            async with semaphore:
                return await self.fill_gap_intelligently(gap, existing_segments)

        return list(await asyncio.gather(*(fill_one(g) for g in gaps)))

    # ------------------------------------------------------------------
    # Flights
    # ------------------------------------------------------------------

    async def _fill_flight(self, gap: Gap, preferences: PreferenceProfile) -> FillResult:
        origin = airport_code_of(gap.end_location)
        destination = airport_code_of(gap.start_location)
        if not origin or not destination:
            missing = gap.end_location if not origin else gap.start_location
            raise UnresolvableIdentifier(f"Could not determine an airport code for {missing.display_name()}")
        if self.flight_provider is None:
            raise ProviderError("no flight search provider configured")

        prev, nxt = gap.before_segment, gap.after_segment
        depart_after = self.duration_engine.get_effective_end_time(prev)
        search_date = local_date(depart_after, gap.end_location.timezone)

        candidates = await self._search(
            self.flight_provider.search(origin, destination, search_date, preferences.cabin_class),
            f"flight search {origin}→{destination}",
        )

        usable = []
        for c in candidates:
            departure = align_to(c.departure, depart_after, gap.end_location.timezone)
            arrival = align_to(c.arrival, nxt.start, gap.start_location.timezone)
            if arrival < departure:
                # Local clocks on a naive itinerary cannot order this flight
                logger.debug("Skipping %s %s: lands %s before it leaves %s", c.airline, c.flight_number, arrival, departure)
                continue
            if departure >= depart_after and arrival < nxt.start:
                usable.append((c, departure, arrival))
        if not usable:
            raise NoCandidates(
                f"No {origin}→{destination} flight on {search_date} fits between "
                f"{depart_after:%H:%M} and {nxt.start:%H:%M}"
            )

        wanted = CABIN_RANK[preferences.cabin_class]
        usable.sort(key=lambda item: (
            abs(CABIN_RANK[item[0].cabin_class or preferences.cabin_class] - wanted),
            item[0].price if item[0].price is not None else math.inf,
        ))
        best, departure, arrival = usable[0]

        try:
            segment = self._flight_segment(gap, best, departure, arrival, preferences, search_date)
        except ValueError as exc:
            raise NoCandidates(f"Unusable {origin}→{destination} flight {best.flight_number}: {exc}") from exc
        return FillResult(
            found=True,
            segment=segment,
            alternatives=[self._flight_alternative(c) for c, _, _ in usable[1:1 + MAX_ALTERNATIVES]],
        )

    def _flight_segment(
        self,
        gap: Gap,
        best: FlightCandidate,
        departure: datetime,
        arrival: datetime,
        preferences: PreferenceProfile,
        search_date: date,
    ) -> Segment:
        origin = airport_code_of(gap.end_location)
        destination = airport_code_of(gap.start_location)
        return Segment(
            kind=SegmentKind.FLIGHT,
            start=departure,
            end=arrival,
            details=FlightDetails(
                origin=Location(
                    name=best.origin_name or gap.end_location.name,
                    code=best.origin_code or origin,
                    timezone=gap.end_location.timezone,
                ),
                destination=Location(
                    name=best.destination_name or gap.start_location.name,
                    code=best.destination_code or destination,
                    timezone=gap.start_location.timezone,
                ),
                airline=best.airline,
                airline_code=best.airline_code,
                flight_number=best.flight_number,
                cabin_class=best.cabin_class or preferences.cabin_class,
                duration_minutes=best.duration_minutes,
            ),
            source=Source.AGENT,
            status=SegmentStatus.TENTATIVE,
            inferred=True,
            inferred_reason=gap.description,
            price=best.price,
            currency=SEARCH_CURRENCY,
            metadata={
                "provider": self.flight_provider.name,
                "gap_type": gap.gap_type.value,
                "search_date": search_date.isoformat(),
            },
        )

    @staticmethod
    def _flight_alternative(candidate: FlightCandidate) -> Alternative:
        cabin = candidate.cabin_class.value.replace("_", " ").title() if candidate.cabin_class else "Any cabin"
        return Alternative(
            description=(
                f"{candidate.airline} {candidate.flight_number} "
                f"{candidate.departure:%H:%M}–{candidate.arrival:%H:%M} ({cabin})"
            ).strip(),
            price=candidate.price,
        )

    # ------------------------------------------------------------------
    # Ground transfers
    # ------------------------------------------------------------------

    def _fill_transfer(self, gap: Gap, preferences: PreferenceProfile) -> FillResult:
        prev, nxt = gap.before_segment, gap.after_segment
        start = self.duration_engine.get_effective_end_time(prev)
        slack = nxt.start - start
        if slack <= timedelta(0):
            raise NoCandidates(
                f"No time for a transfer: {prev.title} runs until {start:%H:%M}, "
                f"{nxt.title} starts at {nxt.start:%H:%M}"
            )

        buffer = min(timedelta(minutes=TRANSFER_BUFFER_MINUTES), slack / 2)
        hours = LOCAL_TRANSFER_HOURS if gap.location_type == GapType.LOCAL_TRANSFER else GROUND_TRANSFER_HOURS
        end = min(start + timedelta(hours=hours), nxt.start - buffer)
        if is_overnight_gap(start, end, gap.start_location.timezone):
            raise OvernightSuppressed(f"Transfer window {start:%Y-%m-%d %H:%M} → {end:%Y-%m-%d %H:%M} spans the night")

        transfer_type = determine_transfer_type(gap, preferences)
        segment = Segment(
            kind=SegmentKind.TRANSFER,
            start=start,
            end=end,
            details=TransferDetails(
                transfer_type=transfer_type,
                pickup=gap.end_location,
                dropoff=gap.start_location,
            ),
            source=Source.AGENT,
            status=SegmentStatus.TENTATIVE,
            inferred=True,
            inferred_reason=gap.description,
            metadata={"gap_type": gap.gap_type.value, "estimated": True},
        )
        logger.debug("Estimated %s transfer %s → %s", transfer_type.value, start, end)
        return FillResult(found=True, segment=segment)

    # ------------------------------------------------------------------
    # Hotels
    # ------------------------------------------------------------------

    async def _find_hotel(
        self,
        location: Location,
        check_in: Union[date, datetime],
        check_out: Union[date, datetime],
        preferences: PreferenceProfile,
    ) -> FillResult:
        if self.hotel_provider is None:
            raise ProviderError("no hotel search provider configured")

        in_date, out_date = _as_date(check_in), _as_date(check_out)
        nights = max(1, (out_date - in_date).days)
        candidates = await self._search(
            self.hotel_provider.search(location, in_date, out_date),
            f"hotel search in {location.display_name()}",
        )

        target = preferences.hotel_star_rating
        pool = [c for c in candidates if c.star_class == target]
        if not pool:
            pool = [c for c in candidates if c.star_class is not None and abs(c.star_class - target) <= 1]
        if not pool:
            raise NoCandidates(f"No {target}-star hotels (±1) found near {location.display_name()}")
        pool.sort(key=lambda c: c.overall_rating or 0.0, reverse=True)
        best = pool[0]

        tzinfo = check_in.tzinfo if isinstance(check_in, datetime) else None
        check_in_clock = parse_clock(best.check_in_time, DEFAULT_CHECK_IN_TIME)
        check_out_clock = parse_clock(best.check_out_time, DEFAULT_CHECK_OUT_TIME)
        start = datetime.combine(in_date, check_in_clock, tzinfo=tzinfo)
        end = datetime.combine(in_date + timedelta(days=nights), check_out_clock, tzinfo=tzinfo)

        segment = Segment(
            kind=SegmentKind.HOTEL,
            start=start,
            end=end,
            details=HotelDetails(
                property_name=best.name,
                location=Location(
                    name=best.name,
                    address=location.address,
                    coordinates=best.coordinates,
                    timezone=location.timezone,
                ),
                star_rating=best.star_class,
                check_in_time=check_in_clock.strftime("%H:%M"),
                check_out_time=check_out_clock.strftime("%H:%M"),
            ),
            source=Source.AGENT,
            status=SegmentStatus.TENTATIVE,
            inferred=True,
            inferred_reason=f"Hotel search near {location.display_name()}",
            price=best.nightly_rate * nights if best.nightly_rate is not None else None,
            currency=SEARCH_CURRENCY,
            metadata={
                "provider": self.hotel_provider.name,
                "nights": nights,
                "nightly_rate": best.nightly_rate,
                "link": best.link,
            },
        )
        alternatives = [
            Alternative(
                description=f"{c.name} ({c.star_class}-star, rated {c.overall_rating or 'n/a'})",
                price=c.nightly_rate * nights if c.nightly_rate is not None else None,
                url=c.link,
            )
            for c in pool[1:1 + MAX_ALTERNATIVES]
        ]
        return FillResult(found=True, segment=segment, alternatives=alternatives)

    # ------------------------------------------------------------------

    async def _search(self, awaitable, what: str):
        try:
            return await asyncio.wait_for(awaitable, timeout=self.search_timeout)
        except asyncio.TimeoutError:
            raise NoCandidates(f"{what} timed out after {self.search_timeout:g}s") from None
        except GapFillError:
            raise
        except Exception as exc:
            logger.warning("%s raised %s: %s", what, type(exc).__name__, exc)
            raise ProviderError(f"{what} failed: {exc}") from exc
