"""Orchestrates the full pass: enrich → repair → sort → detect → fill → merge → validate."""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from itinerary_continuity.assemble.duration import DurationInferenceEngine
from itinerary_continuity.assemble.gap_detector import GapClassifier
from itinerary_continuity.assemble.repair import RedundancyRepair
from itinerary_continuity.assemble.sequencer import sort_segments
from itinerary_continuity.fill.geocoding import enrich_locations
from itinerary_continuity.fill.orchestrator import GapFillingOrchestrator
from itinerary_continuity.models import FillResult, Gap, Segment

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    segments: List[Segment]
    gaps: List[Gap] = field(default_factory=list)
    results: List[FillResult] = field(default_factory=list)
    removed_ids: List[str] = field(default_factory=list)
    added_ids: List[str] = field(default_factory=list)

    @property
    def filled(self) -> int:
        return sum(1 for r in self.results if r.found)

    @property
    def changed(self) -> bool:
        """True when the caller has something new to persist."""
        return bool(self.added_ids or self.removed_ids)


def detect_gaps(segments: List[Segment], duration_engine: Optional[DurationInferenceEngine] = None) -> List[Gap]:
    """Sort, then classify every boundary. Pure; never touches the network."""
    return GapClassifier(duration_engine).detect_location_gaps(sort_segments(segments))


def insert_fills(ordered: List[Segment], gaps: List[Gap], results: List[FillResult]) -> List[Segment]:
    """Place each found segment right after its gap's earlier segment, then re-sort.

    Insertion runs from the last gap backwards so earlier indices stay valid.
    """
    merged = list(ordered)
    pairs = sorted(zip(gaps, results), key=lambda pair: pair[0].before_index, reverse=True)
    for gap, result in pairs:
        if result.found and result.segment is not None:
            merged.insert(gap.before_index + 1, result.segment)
    return sort_segments(merged)


def _same_fill(proposed: Segment, previous: Segment) -> bool:
    return (
        proposed.kind == previous.kind
        and proposed.start == previous.start
        and proposed.end == previous.end
        and proposed.details == previous.details
    )


def reuse_previous_fills(results: List[FillResult], stale: List[Segment]) -> List[str]:
    """Swap freshly proposed segments for identical ones an earlier run inserted.

    ``stale`` holds the agent segments repair took out before detection.
    Returns the ids that were reused; those segments stay in the itinerary.
    """
    reused: List[str] = []
    available = list(stale)
    for result in results:
        if not result.found or result.segment is None:
            continue
        match = next((s for s in available if _same_fill(result.segment, s)), None)
        if match is not None:
            available.remove(match)
            result.segment = match
            reused.append(match.id)
    return reused


def find_overlaps(segments: List[Segment], ids: Optional[set] = None) -> List[Tuple[str, str]]:
    """Adjacent (earlier, later) id pairs where the later segment starts before the earlier ends.

    With ``ids``, only pairs involving one of those segments are reported.
    """
    overlaps = []
    for prev, nxt in zip(segments, segments[1:]):
        if ids is not None and prev.id not in ids and nxt.id not in ids:
            continue
        if nxt.start < prev.end:
            overlaps.append((prev.id, nxt.id))
    return overlaps


async def run_pipeline(
    segments: List[Segment],
    orchestrator: Optional[GapFillingOrchestrator] = None,
    geocoder=None,
    fill: bool = True,
    repair: bool = True,
) -> PipelineResult:
    """Run the continuity pass end to end.

    Args:
        segments: The trip's segments in any order. Never mutated.
        orchestrator: Fills gaps. Defaults to one with no search providers,
            which still estimates ground transfers.
        geocoder: Optional GeocodingProvider used to add coordinates first.
        fill: If False, only detect (and repair).
        repair: If True, drop redundant agent transfers left by earlier runs
            before detecting, and check the merged result again afterwards.
            An earlier fill that this run would propose again is kept as is.

    Returns:
        PipelineResult with the merged, sorted segments. Nothing is persisted.
    """
    current = list(segments)
    input_ids = {s.id for s in segments}
    removed_ids: List[str] = []
    stale: List[Segment] = []

    # Step 1: Geocode uncoded locations
    if geocoder is not None:
        current = await enrich_locations(current, geocoder)

    # Step 2: Clean up synthesized transfers from earlier runs
    if repair:
        repaired = RedundancyRepair().repair(current)
        dropped = set(repaired.removed_ids)
        stale = [s for s in current if s.id in dropped]
        current, removed_ids = repaired.segments, list(repaired.removed_ids)

    # Step 3: Sort and detect
    ordered = sort_segments(current)
    gaps = GapClassifier().detect_location_gaps(ordered)
    logger.info("Detected %d gaps across %d segments", len(gaps), len(ordered))

    if not fill or not gaps:
        if removed_ids:
            logger.info("Removed %d redundant agent transfers", len(removed_ids))
        return PipelineResult(segments=ordered, gaps=gaps, removed_ids=removed_ids)

    # Step 4: Fill
    orchestrator = orchestrator or GapFillingOrchestrator()
    results = await orchestrator.fill_gaps(gaps, ordered)

    # Step 5: Keep an earlier run's fill when this run proposes the same one
    reused = reuse_previous_fills(results, stale)
    removed_ids = [i for i in removed_ids if i not in reused]

    # Step 6: Merge
    merged = insert_fills(ordered, gaps, results)
    inserted = {r.segment.id for r in results if r.found and r.segment is not None}
    for earlier, later in find_overlaps(merged, inserted):
        logger.warning("Inserted segment overlaps a neighbour: %s / %s", earlier, later)

    # Step 7: Validate the final sequence; this run's fills are kept
    if repair:
        final = RedundancyRepair().repair(merged, keep_ids=inserted)
        merged = final.segments
        removed_ids.extend(final.removed_ids)

    if removed_ids:
        logger.info("Removed %d redundant agent transfers", len(removed_ids))
    logger.info("Filled %d of %d gaps (%d kept from an earlier run)", len(inserted), len(gaps), len(reused))
    return PipelineResult(
        segments=merged,
        gaps=gaps,
        results=results,
        removed_ids=removed_ids,
        added_ids=[i for i in inserted if i not in input_ids],
    )
