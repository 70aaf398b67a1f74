"""Tests for removing redundant agent-synthesized transfers."""

from factories import BESTIA, CARBONE, DA_ENZO, JFK, LA_PERGOLA, LAX, PLAZA, activity, flight, hotel, transfer

from itinerary_continuity.assemble.repair import remove_redundant_transfers, repair_redundant_transfers
from itinerary_continuity.models import Source


def test_agent_transfer_next_to_flight_is_removed():
    arrival = flight(JFK, LAX, "2025-03-01T08:00", "2025-03-01T14:00")
    pickup = transfer(LAX, BESTIA, "2025-03-01T14:00", "2025-03-01T15:00")
    stay = hotel("Hotel Figueroa", BESTIA, "2025-03-01T15:30", "2025-03-04T11:00")

    result = repair_redundant_transfers([arrival, pickup, stay])

    assert result.removed_ids == [pickup.id]
    assert result.removed == 1
    assert result.segments == [arrival, stay]


def test_repair_reaches_a_fixed_point():
    segments = [
        flight(JFK, LAX, "2025-03-01T08:00", "2025-03-01T14:00"),
        transfer(LAX, BESTIA, "2025-03-01T14:00", "2025-03-01T15:00"),
        hotel("Hotel Figueroa", BESTIA, "2025-03-01T15:30", "2025-03-04T11:00"),
    ]
    once = remove_redundant_transfers(segments)
    again = repair_redundant_transfers(once)

    assert again.removed_ids == []
    assert again.segments == once


def test_imported_and_user_transfers_are_kept():
    arrival = flight(JFK, LAX, "2025-03-01T08:00", "2025-03-01T14:00")
    booked = transfer(LAX, BESTIA, "2025-03-01T14:00", "2025-03-01T15:00", source=Source.IMPORT)
    added = transfer(BESTIA, LAX, "2025-03-01T15:10", "2025-03-01T16:00", source=Source.USER)

    result = repair_redundant_transfers([arrival, booked, added])

    assert result.removed_ids == []
    assert len(result.segments) == 3


def test_chain_of_agent_transfers_is_cleared():
    first = transfer(PLAZA, CARBONE, "2025-03-01T18:00", "2025-03-01T18:30")
    second = transfer(CARBONE, PLAZA, "2025-03-01T18:40", "2025-03-01T19:00")
    dinner = activity("Dinner", CARBONE, "2025-03-01T20:00")

    result = repair_redundant_transfers([dinner, second, first])

    assert set(result.removed_ids) == {first.id, second.id}
    assert result.segments == [dinner]


def test_overnight_agent_transfer_between_activities_is_removed():
    dinner = activity("Dinner", LA_PERGOLA, "2025-03-07T21:00")
    night_ride = transfer(LA_PERGOLA, DA_ENZO, "2025-03-07T23:30", "2025-03-08T00:15")
    lunch = activity("Lunch", DA_ENZO, "2025-03-08T12:00")

    result = repair_redundant_transfers([dinner, night_ride, lunch])

    assert result.removed_ids == [night_ride.id]
    assert result.segments == [dinner, lunch]


def test_transfer_long_before_next_segment_is_removed():
    dinner = activity("Dinner", LA_PERGOLA, "2025-03-07T19:00", "2025-03-07T21:00")
    early = transfer(LA_PERGOLA, DA_ENZO, "2025-03-07T21:10", "2025-03-07T21:40")
    lunch = activity("Lunch", DA_ENZO, "2025-03-08T12:00")

    result = repair_redundant_transfers([dinner, early, lunch])

    assert result.removed_ids == [early.id]


def test_useful_agent_transfer_is_kept():
    show = activity("Hamilton", PLAZA, "2025-03-01T19:00", "2025-03-01T21:30")
    ride = transfer(PLAZA, CARBONE, "2025-03-01T21:30", "2025-03-01T21:45")
    dinner = activity("Dinner at Carbone", CARBONE, "2025-03-01T22:00")

    result = repair_redundant_transfers([show, ride, dinner])

    assert result.removed_ids == []
    assert result.segments == [show, ride, dinner]


def test_repair_sorts_and_does_not_mutate_input():
    show = activity("Hamilton", PLAZA, "2025-03-01T19:00", "2025-03-01T21:30")
    dinner = activity("Dinner at Carbone", CARBONE, "2025-03-01T22:00")
    segments = [dinner, show]

    result = repair_redundant_transfers(segments)

    assert result.segments == [show, dinner]
    assert segments == [dinner, show]
