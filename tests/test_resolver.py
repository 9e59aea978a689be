"""
Tests for free-slot resolution.
"""

from datetime import time

import pendulum
import pytest

from freeslots.domain.models import BookedInterval, FreeSlot, TimeRange, Weekday, WeeklyRule
from freeslots.domain.projector import project
from freeslots.domain.resolver import BookingIndex, FreeSlotResolver, find_free_slots, resolve


def at(text: str):
    return pendulum.parse(text).naive()


def booking(start: str, end: str, owner_id: str = "alice", correlation_id: str = "ex") -> BookedInterval:
    return BookedInterval(
        owner_id=owner_id,
        start=at(start),
        end=at(end),
        correlation_id=correlation_id,
    )


MONDAY_RULE = WeeklyRule(day_of_week=Weekday.MONDAY, start_time=time(9), end_time=time(17))
MONDAY = TimeRange(start=at("2024-11-25 00:00"), end=at("2024-11-26 00:00"))


def spans(slots):
    return [(slot.start.format("HH:mm"), slot.end.format("HH:mm")) for slot in slots]


class TestScenarios:
    """End-to-end projection plus resolution."""

    def test_no_bookings(self):
        slots = find_free_slots([MONDAY_RULE], [], MONDAY, "alice")

        assert slots == [
            FreeSlot(
                time_range=TimeRange(start=at("2024-11-25 09:00"), end=at("2024-11-25 17:00")),
                owner_id="alice",
            )
        ]

    def test_booking_splits_window(self):
        slots = find_free_slots(
            [MONDAY_RULE], [booking("2024-11-25 12:00", "2024-11-25 13:00")], MONDAY, "alice"
        )

        assert spans(slots) == [("09:00", "12:00"), ("13:00", "17:00")]
        assert all(slot.owner_id == "alice" for slot in slots)

    def test_booking_overhanging_window_start(self):
        slots = find_free_slots(
            [MONDAY_RULE], [booking("2024-11-25 08:00", "2024-11-25 10:00")], MONDAY, "alice"
        )

        assert spans(slots) == [("10:00", "17:00")]

    def test_range_inside_window(self):
        query = TimeRange(start=at("2024-11-25 10:00"), end=at("2024-11-25 11:00"))

        slots = find_free_slots([MONDAY_RULE], [], query, "alice")

        assert spans(slots) == [("10:00", "11:00")]


class TestFreeSlotResolver:
    """Tests for FreeSlotResolver."""

    def test_bookings_of_other_owners_are_ignored(self):
        candidates = project([MONDAY_RULE], MONDAY)

        slots = resolve(candidates, [booking("2024-11-25 09:00", "2024-11-25 17:00", owner_id="bob")], "alice")

        assert spans(slots) == [("09:00", "17:00")]

    def test_booking_covering_candidate_removes_it(self):
        candidates = project([MONDAY_RULE], MONDAY)

        slots = resolve(candidates, [booking("2024-11-25 07:00", "2024-11-25 18:00")], "alice")

        assert slots == []

    def test_unordered_bookings(self):
        candidates = project([MONDAY_RULE], MONDAY)
        bookings = [
            booking("2024-11-25 15:00", "2024-11-25 16:00", correlation_id="c"),
            booking("2024-11-25 09:00", "2024-11-25 09:30", correlation_id="a"),
            booking("2024-11-25 11:00", "2024-11-25 12:00", correlation_id="b"),
        ]

        slots = resolve(candidates, bookings, "alice")

        assert spans(slots) == [
            ("09:30", "11:00"),
            ("12:00", "15:00"),
            ("16:00", "17:00"),
        ]

    def test_adjacent_bookings_leave_no_gap(self):
        candidates = project([MONDAY_RULE], MONDAY)
        bookings = [
            booking("2024-11-25 10:00", "2024-11-25 11:00", correlation_id="a"),
            booking("2024-11-25 11:00", "2024-11-25 12:00", correlation_id="b"),
        ]

        slots = resolve(candidates, bookings, "alice")

        assert spans(slots) == [("09:00", "10:00"), ("12:00", "17:00")]

    def test_bookings_touching_candidate_do_not_cut_it(self):
        candidates = project([MONDAY_RULE], MONDAY)
        bookings = [
            booking("2024-11-25 08:00", "2024-11-25 09:00", correlation_id="a"),
            booking("2024-11-25 17:00", "2024-11-25 18:00", correlation_id="b"),
        ]

        slots = resolve(candidates, bookings, "alice")

        assert spans(slots) == [("09:00", "17:00")]

    def test_booking_spanning_several_days(self):
        rules = [
            MONDAY_RULE,
            WeeklyRule(day_of_week=Weekday.TUESDAY, start_time=time(9), end_time=time(17)),
        ]
        query = TimeRange(start=at("2024-11-25"), end=at("2024-11-27"))

        slots = find_free_slots(
            rules, [booking("2024-11-25 16:00", "2024-11-26 10:00")], query, "alice"
        )

        assert [(slot.start, slot.end) for slot in slots] == [
            (at("2024-11-25 09:00"), at("2024-11-25 16:00")),
            (at("2024-11-26 10:00"), at("2024-11-26 17:00")),
        ]

    def test_min_duration_filter(self):
        candidates = project([MONDAY_RULE], MONDAY)
        bookings = [
            booking("2024-11-25 09:00", "2024-11-25 09:45", correlation_id="a"),
            booking("2024-11-25 10:00", "2024-11-25 17:00", correlation_id="b"),
        ]

        assert FreeSlotResolver(min_duration_minutes=30).resolve(candidates, bookings, "alice") == []
        assert spans(FreeSlotResolver(min_duration_minutes=15).resolve(candidates, bookings, "alice")) == [
            ("09:45", "10:00")
        ]

    def test_negative_min_duration_is_rejected(self):
        with pytest.raises(ValueError):
            FreeSlotResolver(min_duration_minutes=-1)


class TestBookingIndex:
    """Tests for the overlap lookup."""

    def test_long_booking_is_found_past_shorter_ones(self):
        """A long early booking is found even when later, shorter ones end sooner."""
        index = BookingIndex([
            TimeRange(start=at("2024-11-25 08:00"), end=at("2024-11-25 18:00")),
            TimeRange(start=at("2024-11-25 08:30"), end=at("2024-11-25 08:45")),
        ])
        candidate = TimeRange(start=at("2024-11-25 12:00"), end=at("2024-11-25 13:00"))

        assert index.overlapping(candidate) == [
            TimeRange(start=at("2024-11-25 08:00"), end=at("2024-11-25 18:00"))
        ]

    def test_no_overlap(self):
        index = BookingIndex([
            TimeRange(start=at("2024-11-25 08:00"), end=at("2024-11-25 09:00")),
            TimeRange(start=at("2024-11-25 13:00"), end=at("2024-11-25 14:00")),
        ])

        assert index.overlapping(
            TimeRange(start=at("2024-11-25 09:00"), end=at("2024-11-25 13:00"))
        ) == []
        assert len(index) == 2


class TestProperties:
    """Containment, non-overlap and conservation over a mixed week."""

    RULES = [
        MONDAY_RULE,
        WeeklyRule(day_of_week=Weekday.WEDNESDAY, start_time=time(8), end_time=time(12)),
        WeeklyRule(day_of_week=Weekday.WEDNESDAY, start_time=time(13), end_time=time(18)),
        WeeklyRule(day_of_week=Weekday.FRIDAY, start_time=time(10), end_time=time(16)),
    ]
    QUERY = TimeRange(start=at("2024-11-25 10:00"), end=at("2024-11-29 15:00"))
    BOOKINGS = [
        booking("2024-11-25 11:00", "2024-11-25 11:30", correlation_id="a"),
        booking("2024-11-25 16:30", "2024-11-26 09:00", correlation_id="b"),
        booking("2024-11-27 09:00", "2024-11-27 14:00", correlation_id="c"),
        booking("2024-11-27 15:00", "2024-11-27 15:15", correlation_id="d"),
        booking("2024-11-29 12:00", "2024-11-29 20:00", correlation_id="e"),
        booking("2024-11-25 12:00", "2024-11-25 13:00", owner_id="bob", correlation_id="f"),
    ]

    def test_containment(self):
        candidates = project(self.RULES, self.QUERY)
        slots = resolve(candidates, self.BOOKINGS, "alice")

        for slot in slots:
            assert self.QUERY.contains(slot.time_range)
            assert any(candidate.contains(slot.time_range) for candidate in candidates)

    def test_no_overlap_with_own_bookings(self):
        slots = resolve(project(self.RULES, self.QUERY), self.BOOKINGS, "alice")

        for slot in slots:
            for booked in self.BOOKINGS:
                if booked.owner_id == "alice":
                    assert not (slot.start < booked.end and booked.start < slot.end)

    def test_conservation(self):
        """Free time plus booked time inside each candidate adds up to the candidate."""
        candidates = project(self.RULES, self.QUERY)
        own = [b.time_range for b in self.BOOKINGS if b.owner_id == "alice"]

        for candidate in candidates:
            free = resolve([candidate], self.BOOKINGS, "alice")
            free_seconds = sum((f.end - f.start).total_seconds() for f in free)
            # Own bookings never overlap each other, so their clipped parts can be summed
            booked_seconds = sum(
                (clipped.end - clipped.start).total_seconds()
                for clipped in (candidate.intersect(b) for b in own)
                if clipped is not None
            )

            assert free_seconds + booked_seconds == (candidate.end - candidate.start).total_seconds()

    def test_ordered_output(self):
        slots = resolve(project(self.RULES, self.QUERY), self.BOOKINGS, "alice")

        assert slots == sorted(slots, key=lambda s: (s.start, s.end))
        assert spans(slots) == [
            ("10:00", "11:00"),
            ("11:30", "16:30"),
            ("08:00", "09:00"),
            ("14:00", "15:00"),
            ("15:15", "18:00"),
            ("10:00", "12:00"),
        ]
