"""Effective end times for open-ended segments.

Activities imported without an end time carry ``end == start``. Treating them as
zero-length would let a synthesized transfer start in the middle of dinner, so
their duration is looked up in a keyword table instead.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from itinerary_continuity.config import DURATION_EPSILON_SECONDS, load_duration_table
from itinerary_continuity.models import Confidence, DurationInferenceResult, Segment, SegmentKind
from itinerary_continuity.normalize.date_parser import hours_between


def _searchable_texts(segment: Segment) -> List[str]:
    """Texts to match keywords against, most telling first.

    The segment's own name, title and description come before its venue
    name and notes, so a round of golf at a spa resort is still golf.
    """
    d = segment.details
    own: List[str] = []
    if segment.kind == SegmentKind.ACTIVITY:
        own += [d.name, d.description, d.category]
    elif segment.kind == SegmentKind.MEETING:
        own += [d.title, d.agenda]
    elif segment.kind == SegmentKind.CUSTOM:
        own.append(d.title)
    location = getattr(d, "location", None)
    context = [location.name if location is not None else "", segment.notes]
    return [" ".join(p for p in parts if p).lower() for parts in (own, context)]


class DurationInferenceEngine:
    """Resolves how long a segment lasts, from timestamps or from keywords.

    ``table`` has the shape of data/duration_keywords.json: ordered ``rules``
    (first match wins) plus ``default`` and ``meeting_default`` entries.
    """

    def __init__(self, table: Optional[Dict[str, Any]] = None):
        table = table if table is not None else load_duration_table()
        self.rules = table["rules"]
        self.default = table.get("default", {"hours": 2, "confidence": "low", "reason": "Default duration"})
        self.meeting_default = table.get("meeting_default")

    def infer_activity_duration(self, segment: Segment) -> DurationInferenceResult:
        if (segment.end - segment.start).total_seconds() > DURATION_EPSILON_SECONDS:
            return DurationInferenceResult(
                hours=hours_between(segment.start, segment.end),
                confidence=Confidence.HIGH,
                reason="actual duration",
            )

        for text in _searchable_texts(segment):
            for rule in self.rules:
                if rule["keyword"].lower() in text:
                    return self._result(rule)

        if segment.kind == SegmentKind.MEETING and self.meeting_default:
            return self._result(self.meeting_default)

        return self._result(self.default)

    def get_effective_end_time(self, segment: Segment) -> datetime:
        if (segment.end - segment.start).total_seconds() > DURATION_EPSILON_SECONDS:
            return segment.end
        hours = self.infer_activity_duration(segment).hours
        return segment.start + timedelta(hours=hours)

    @staticmethod
    def _result(rule: Dict[str, Any]) -> DurationInferenceResult:
        # Keyword guesses top out at medium; high is reserved for real timestamps
        confidence = Confidence(rule.get("confidence", "low"))
        if confidence == Confidence.HIGH:
            confidence = Confidence.MEDIUM
        return DurationInferenceResult(
            hours=float(rule["hours"]),
            confidence=confidence,
            reason=rule.get("reason", f"Matched '{rule.get('keyword', '')}'"),
        )
