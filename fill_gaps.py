#!/usr/bin/env python3
"""CLI entry point for the itinerary continuity checker.

Usage:
    python fill_gaps.py --input trip.json [more.json ...] [--fill] [--report]

Options:
    --input FILE...   Itinerary JSON files to process
    --fill            Search for flights and estimate transfers for detected gaps
    --geocode         Look up coordinates for uncoded locations first (Nominatim)
    --no-repair       Keep agent transfers left by earlier runs
    --dry-run         Show results without writing files back
    --report          Print the day-by-day gap report
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from itinerary_continuity.config import LOG_LEVEL, SERPAPI_API_KEY
from itinerary_continuity.fill.geocoding import NominatimGeocoder
from itinerary_continuity.fill.orchestrator import GapFillingOrchestrator
from itinerary_continuity.fill.providers import SerpApiFlightSearch, SerpApiHotelSearch
from itinerary_continuity.output import format_gap_report, load_itinerary, save_itinerary
from itinerary_continuity.pipeline import run_pipeline

logger = logging.getLogger("fill_gaps")


def _build_orchestrator() -> GapFillingOrchestrator:
    if not SERPAPI_API_KEY:
        logger.warning("SERPAPI_API_KEY not set: flight gaps will stay unfilled, transfers are still estimated")
        return GapFillingOrchestrator()
    return GapFillingOrchestrator(
        flight_provider=SerpApiFlightSearch(),
        hotel_provider=SerpApiHotelSearch(),
    )


async def process_file(path: Path, args):
    """Run one itinerary through the pipeline and write it back if anything changed."""
    itinerary = load_itinerary(path)
    segments = itinerary["segments"]
    logger.info("%s: %d segments", path, len(segments))

    result = await run_pipeline(
        segments,
        orchestrator=_build_orchestrator() if args.fill else None,
        geocoder=NominatimGeocoder() if args.geocode else None,
        fill=args.fill,
        repair=not args.no_repair,
    )

    if args.report:
        print(format_gap_report(result.segments, result.gaps, result.results))

    print(
        f"{path}: {len(result.gaps)} gaps, {result.filled} filled, "
        f"{len(result.added_ids)} new segments, "
        f"{len(result.removed_ids)} redundant transfers removed"
    )

    if args.fill and result.changed and not args.dry_run:
        itinerary["segments"] = result.segments
        save_itinerary(itinerary, path)
        print(f"  Written to: {path}")


def main():
    parser = argparse.ArgumentParser(
        description="Detect and fill location gaps in travel itineraries.",
    )
    parser.add_argument(
        "--input",
        nargs="+",
        required=True,
        help="Itinerary JSON file(s)",
    )
    parser.add_argument(
        "--fill",
        action="store_true",
        help="Fill detected gaps (flight search needs SERPAPI_API_KEY)",
    )
    parser.add_argument(
        "--geocode",
        action="store_true",
        help="Geocode locations without coordinates before detecting gaps",
    )
    parser.add_argument(
        "--no-repair",
        action="store_true",
        help="Don't remove redundant agent transfers",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show results only, don't write files",
    )
    parser.add_argument(
        "--report",
        action="store_true",
        help="Print the segment/gap report for each file",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    failures = 0
    for raw_path in args.input:
        path = Path(raw_path)
        try:
            asyncio.run(process_file(path, args))
        except (OSError, ValueError) as e:
            logger.error("%s: %s", path, e)
            failures += 1

    if failures:
        sys.exit(1)


if __name__ == "__main__":
    main()
