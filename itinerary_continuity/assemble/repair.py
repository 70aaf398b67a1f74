"""Remove agent-synthesized transfers that have become redundant.

Older fill runs produced transfers next to imported flights/transfers, and
transfers spanning a night between two activities. Imported and user-entered
segments are never touched.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set

from itinerary_continuity.assemble.duration import DurationInferenceEngine
from itinerary_continuity.assemble.sequencer import end_location_of, is_transfer_like, sort_segments
from itinerary_continuity.models import Segment, SegmentKind, Source
from itinerary_continuity.normalize.date_parser import is_overnight_gap

logger = logging.getLogger(__name__)


@dataclass
class RepairResult:
    segments: List[Segment]
    removed_ids: List[str] = field(default_factory=list)

    @property
    def removed(self) -> int:
        return len(self.removed_ids)


def _tz_of(segment: Segment) -> str:
    loc = end_location_of(segment)
    return loc.timezone if loc else ""


class RedundancyRepair:
    def __init__(self, duration_engine: Optional[DurationInferenceEngine] = None):
        self.duration_engine = duration_engine or DurationInferenceEngine()

    def _is_redundant(self, segments: List[Segment], index: int) -> Optional[str]:
        """Reason the agent transfer at ``index`` should go, or None to keep it."""
        transfer = segments[index]
        prev = segments[index - 1] if index > 0 else None
        nxt = segments[index + 1] if index < len(segments) - 1 else None
        tz = _tz_of(transfer)

        if is_transfer_like(prev) or is_transfer_like(nxt):
            return "adjacent to another transfer"
        if prev is not None and is_overnight_gap(self.duration_engine.get_effective_end_time(prev), transfer.start, tz):
            return "overnight after previous segment"
        if nxt is not None and is_overnight_gap(transfer.end, nxt.start, tz):
            return "overnight before next segment"
        if is_overnight_gap(transfer.start, transfer.end, tz):
            return "spans overnight"
        return None

    def _single_pass(self, segments: List[Segment], keep_ids: Set[str]) -> RepairResult:
        kept: List[Segment] = []
        removed: List[str] = []
        for index, segment in enumerate(segments):
            if (
                segment.kind == SegmentKind.TRANSFER
                and segment.source == Source.AGENT
                and segment.id not in keep_ids
            ):
                reason = self._is_redundant(segments, index)
                if reason:
                    logger.info("Removing agent transfer %s: %s", segment.id, reason)
                    removed.append(segment.id)
                    continue
            kept.append(segment)
        return RepairResult(segments=kept, removed_ids=removed)

    def repair(self, segments: List[Segment], keep_ids: Optional[Iterable[str]] = None) -> RepairResult:
        """Sort, then drop redundant agent transfers until nothing changes.

        Segments listed in ``keep_ids`` are never removed. The result is a
        fixed point: repairing it again removes nothing.
        """
        keep = set(keep_ids or ())
        current = sort_segments(segments)
        removed_ids: List[str] = []
        while True:
            result = self._single_pass(current, keep)
            if not result.removed_ids:
                return RepairResult(segments=current, removed_ids=removed_ids)
            removed_ids.extend(result.removed_ids)
            current = result.segments


def repair_redundant_transfers(segments: List[Segment]) -> RepairResult:
    return RedundancyRepair().repair(segments)


def remove_redundant_transfers(segments: List[Segment]) -> List[Segment]:
    return repair_redundant_transfers(segments).segments
