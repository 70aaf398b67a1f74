"""Infer a traveler's implicit preferences from segments already booked."""

import re
from collections import Counter
from typing import Any, Dict, List, Optional, Tuple

from itinerary_continuity.config import load_hotel_brands
from itinerary_continuity.models import (
    CABIN_RANK,
    BudgetTier,
    CabinClass,
    PreferenceProfile,
    Segment,
    SegmentKind,
)

DEFAULT_HOTEL_TIER = 3


class PreferenceInferenceEngine:
    """Cabin class, hotel tier and budget tier from existing segments.

    ``brand_tiers`` has the shape of data/hotel_brands.json "tiers": ordered
    ``{"tier": int, "brands": [...]}`` entries.
    """

    def __init__(self, brand_tiers: Optional[List[Dict[str, Any]]] = None):
        self.brand_tiers = brand_tiers if brand_tiers is not None else load_hotel_brands()

    def infer_travel_class(self, segments: List[Segment]) -> CabinClass:
        counts = Counter(
            s.details.cabin_class
            for s in segments
            if s.kind == SegmentKind.FLIGHT and s.details.cabin_class is not None
        )
        if not counts:
            return CabinClass.ECONOMY
        # Most frequent; ties go to the higher class
        return max(counts, key=lambda cabin: (counts[cabin], CABIN_RANK[cabin]))

    def hotel_tier_of(self, property_name: str) -> Optional[int]:
        """Tier of the most specific brand named in ``property_name``.

        Brands match whole words only; the longest match wins, so
        "Hampton Inn by Hilton" is a Hampton Inn, not a Hilton.
        """
        name = (property_name or "").lower()
        best: Optional[Tuple[int, int]] = None
        for entry in self.brand_tiers:
            for brand in entry["brands"]:
                if re.search(r"(?<!\w)" + re.escape(brand.lower()) + r"(?!\w)", name):
                    if best is None or len(brand) > best[0]:
                        best = (len(brand), int(entry["tier"]))
        return best[1] if best else None

    def infer_hotel_tier(self, segments: List[Segment]) -> int:
        tiers = [
            tier
            for tier in (self.hotel_tier_of(s.details.property_name) for s in segments if s.kind == SegmentKind.HOTEL)
            if tier is not None
        ]
        return max(tiers) if tiers else DEFAULT_HOTEL_TIER

    def infer_preferences(self, segments: List[Segment]) -> PreferenceProfile:
        cabin_class = self.infer_travel_class(segments)
        hotel_star_rating = self.infer_hotel_tier(segments)

        budget_tier = BudgetTier.ECONOMY
        if cabin_class in (CabinClass.FIRST, CabinClass.BUSINESS) or hotel_star_rating >= 5:
            budget_tier = BudgetTier.LUXURY
        elif cabin_class == CabinClass.PREMIUM_ECONOMY or hotel_star_rating >= 4:
            budget_tier = BudgetTier.PREMIUM

        return PreferenceProfile(
            cabin_class=cabin_class,
            hotel_star_rating=hotel_star_rating,
            budget_tier=budget_tier,
        )


def infer_preferences(segments: List[Segment]) -> PreferenceProfile:
    return PreferenceInferenceEngine().infer_preferences(segments)
