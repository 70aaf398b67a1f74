"""Tests for chronological ordering and per-kind locations."""

from factories import BESTIA, JFK, LAX, PLAZA, activity, flight, hotel, transfer

from itinerary_continuity.assemble.sequencer import (
    end_location_of,
    is_airport_segment,
    is_transfer_like,
    sort_segments,
    start_location_of,
)
from itinerary_continuity.models import Source


def _trip():
    return [
        activity("Dinner", BESTIA, "2025-03-01T19:00"),
        flight(JFK, LAX, "2025-03-01T08:00", "2025-03-01T11:30"),
        hotel("The Plaza", PLAZA, "2025-02-27T15:00", "2025-03-01T06:00"),
    ]


def test_sort_orders_by_start():
    ordered = sort_segments(_trip())
    assert [s.title for s in ordered] == ["The Plaza", "AA100 JFK → LAX", "Dinner"]


def test_sort_is_stable_for_equal_starts():
    first = activity("Breakfast", BESTIA, "2025-03-01T08:00")
    second = activity("Museum", BESTIA, "2025-03-01T08:00")
    third = activity("Lunch", BESTIA, "2025-03-01T08:00")
    assert sort_segments([first, second, third]) == [first, second, third]
    assert sort_segments([third, first, second]) == [third, first, second]


def test_sort_is_idempotent():
    once = sort_segments(_trip())
    assert sort_segments(once) == once


def test_sort_does_not_mutate_input():
    trip = _trip()
    before = list(trip)
    sort_segments(trip)
    assert trip == before


def test_locations_per_kind():
    f = flight(JFK, LAX, "2025-03-01T08:00", "2025-03-01T11:30")
    assert start_location_of(f) == JFK
    assert end_location_of(f) == LAX

    t = transfer(LAX, BESTIA, "2025-03-01T12:00", "2025-03-01T13:00")
    assert start_location_of(t) == LAX
    assert end_location_of(t) == BESTIA

    a = activity("Dinner", BESTIA, "2025-03-01T19:00")
    assert start_location_of(a) == end_location_of(a) == BESTIA


def test_transfer_like_and_airport_segments():
    f = flight(JFK, LAX, "2025-03-01T08:00", "2025-03-01T11:30")
    airport_transfer = transfer(LAX, BESTIA, "2025-03-01T12:00", "2025-03-01T13:00", source=Source.IMPORT)
    city_transfer = transfer(PLAZA, BESTIA, "2025-03-01T12:00", "2025-03-01T13:00")
    dinner = activity("Dinner", BESTIA, "2025-03-01T19:00")

    assert is_transfer_like(f) and is_transfer_like(city_transfer)
    assert not is_transfer_like(dinner)
    assert not is_transfer_like(None)

    assert is_airport_segment(f)
    assert is_airport_segment(airport_transfer)
    assert not is_airport_segment(city_transfer)
    assert not is_airport_segment(dinner)
