"""
Core business logic for turning candidate slots into free slots.

This is the heart of the application - pure domain logic without any
external dependencies (no database, no I/O).
"""

from __future__ import annotations

from bisect import bisect_left, bisect_right
from typing import Hashable, Iterable, List, Sequence

from pendulum import DateTime

from .models import BookedInterval, FreeSlot, TimeRange, WeeklyRule
from .projector import RangeLike, project


class BookingIndex:
    """
    Sorted view over one owner's booked ranges for fast overlap lookups.

    Bookings are ordered by start. A running maximum of end times lets a
    lookup skip every booking that finished before a candidate begins, even
    when the stored bookings overlap each other.
    """

    def __init__(self, booked: Iterable[TimeRange]):
        self._ranges: List[TimeRange] = sorted(booked, key=lambda r: (r.start, r.end))
        self._starts: List[DateTime] = [r.start for r in self._ranges]
        self._max_ends: List[DateTime] = []

        latest = None
        for booked_range in self._ranges:
            latest = booked_range.end if latest is None else max(latest, booked_range.end)
            self._max_ends.append(latest)

    def __len__(self) -> int:
        return len(self._ranges)

    def overlapping(self, candidate: TimeRange) -> List[TimeRange]:
        """Return the booked ranges that overlap ``candidate``, ordered by start."""
        upper = bisect_left(self._starts, candidate.end)
        lower = bisect_right(self._max_ends, candidate.start, 0, upper)

        return [
            booked for booked in self._ranges[lower:upper]
            if booked.end > candidate.start
        ]


class FreeSlotResolver:
    """
    Removes booked time from candidate slots.

    Algorithm:
    1. Keep only the owner's bookings and index them by start time
    2. For each candidate, look up the bookings overlapping it
    3. Subtract them, splitting the candidate where a booking falls inside it
    4. Drop fragments below the minimum duration (none by default)
    5. Return fragments ordered by start, then end
    """

    def __init__(self, min_duration_minutes: int = 0):
        if min_duration_minutes < 0:
            raise ValueError("min_duration_minutes must not be negative")
        self.min_duration_minutes = min_duration_minutes

    def resolve(
        self,
        candidates: Iterable[TimeRange],
        bookings: Iterable[BookedInterval],
        owner_id: Hashable,
    ) -> List[FreeSlot]:
        """
        Compute the free fragments of ``candidates`` for one owner.

        Args:
            candidates: Candidate slots, usually the output of ``project``
            bookings: Booked intervals in any order; other owners' are ignored
            owner_id: Owner whose bookings are subtracted and who owns the result

        Returns:
            List of FreeSlot objects ordered by start, then end
        """
        index = BookingIndex(
            booking.time_range for booking in bookings
            if booking.owner_id == owner_id
        )

        free_ranges: List[TimeRange] = []

        for candidate in candidates:
            overlapping = index.overlapping(candidate)

            if not overlapping:
                free_ranges.append(candidate)
                continue

            free_ranges.extend(self._subtract_bookings_from_candidate(candidate, overlapping))

        if self.min_duration_minutes:
            minimum_seconds = self.min_duration_minutes * 60
            free_ranges = [
                free for free in free_ranges
                if (free.end - free.start).total_seconds() >= minimum_seconds
            ]

        free_ranges.sort(key=lambda r: (r.start, r.end))

        return [FreeSlot(time_range=free, owner_id=owner_id) for free in free_ranges]

    @staticmethod
    def _subtract_bookings_from_candidate(
        candidate: TimeRange,
        booked_ranges: Sequence[TimeRange],
    ) -> List[TimeRange]:
        """
        Cut the booked ranges out of one candidate slot.

        Bookings may start before or end after the candidate and may overlap
        each other; only the part inside the candidate is removed. A Monday
        08:30-09:30 booking and a 12:00-13:00 one leave a 09:00-17:00
        candidate as 09:30-12:00 and 13:00-17:00.
        """
        free_ranges: List[TimeRange] = []
        current_start = candidate.start

        for booked in sorted(booked_ranges, key=lambda r: r.start):
            clipped_booked_start = max(booked.start, candidate.start)
            clipped_booked_end = min(booked.end, candidate.end)

            if current_start < clipped_booked_start:
                free_ranges.append(TimeRange(start=current_start, end=clipped_booked_start))

            current_start = max(current_start, clipped_booked_end)

        if current_start < candidate.end:
            free_ranges.append(TimeRange(start=current_start, end=candidate.end))

        return free_ranges


def resolve(
    candidates: Iterable[TimeRange],
    bookings: Iterable[BookedInterval],
    owner_id: Hashable,
) -> List[FreeSlot]:
    """Subtract an owner's bookings from candidate slots."""
    return FreeSlotResolver().resolve(candidates, bookings, owner_id)


def find_free_slots(
    rules: Iterable[WeeklyRule],
    bookings: Iterable[BookedInterval],
    query_range: RangeLike,
    owner_id: Hashable,
    min_duration_minutes: int = 0,
) -> List[FreeSlot]:
    """Project ``rules`` onto ``query_range`` and subtract the owner's bookings."""
    candidates = project(rules, query_range)
    resolver = FreeSlotResolver(min_duration_minutes=min_duration_minutes)
    return resolver.resolve(candidates, bookings, owner_id)
