"""
Application service for booking time on an owner's calendar.

Every write to a booking runs as one critical section per owner: take the
owner's lock, read the current state, run ``check_conflict`` where the
write can create a conflict, then write. ``OwnerLocks`` serialises callers
within this process and the repository's ``exclusive()`` serialises
processes sharing one store.
"""

from __future__ import annotations

import dataclasses
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, List, Optional

from ..domain.conflicts import check_conflict
from ..domain.exceptions import DuplicateCorrelation, ResourceNotFound, SlotConflict
from ..domain.models import BookedInterval, TimeRange
from .locking import OwnerLocks
from .protocols import BookingRepository

logger = logging.getLogger(__name__)


class BookingService:
    """Creates, reschedules, confirms and cancels bookings."""

    def __init__(
        self,
        bookings: BookingRepository,
        locks: Optional[OwnerLocks] = None,
    ) -> None:
        self._bookings = bookings
        self._locks = locks or OwnerLocks()

    async def book(
        self,
        *,
        owner_id: str,
        correlation_id: str,
        start: datetime,
        end: datetime,
        title: Optional[str] = None,
        description: Optional[str] = None,
    ) -> BookedInterval:
        """
        Reserve ``[start, end)`` for an owner.

        Raises:
            InvalidRange: If end is not strictly after start
            InvalidBooking: If title or description are too long
            DuplicateCorrelation: If the owner already has a booking for this correlation id
            SlotConflict: If the interval overlaps one of the owner's bookings
        """
        proposed = BookedInterval(
            owner_id=owner_id,
            start=start,
            end=end,
            correlation_id=correlation_id,
            title=title,
            description=description,
        )
        async with self._owner_section(owner_id):
            stored = await self._write_checked(proposed, self._bookings.add_booking)

        logger.info(
            "Booked %s - %s for owner %s (booking %s)",
            stored.start,
            stored.end,
            stored.owner_id,
            stored.id,
        )
        return stored

    async def reschedule(
        self,
        booking_id: str,
        *,
        start: datetime,
        end: datetime,
        title: Optional[str] = None,
        description: Optional[str] = None,
    ) -> BookedInterval:
        """Move a booking, re-checking it against the owner's other bookings."""
        owner_id = (await self.get_booking(booking_id)).owner_id

        async with self._owner_section(owner_id):
            current = await self.get_booking(booking_id)
            updated = dataclasses.replace(
                current,
                start=start,
                end=end,
                title=title if title is not None else current.title,
                description=description if description is not None else current.description,
            )
            stored = await self._write_checked(updated, self._bookings.update_booking)

        logger.info("Rescheduled booking %s to %s - %s", booking_id, stored.start, stored.end)
        return stored

    async def confirm(self, booking_id: str) -> BookedInterval:
        owner_id = (await self.get_booking(booking_id)).owner_id

        async with self._owner_section(owner_id):
            current = await self.get_booking(booking_id)
            confirmed = await self._bookings.update_booking(
                dataclasses.replace(current, confirmed=True)
            )

        logger.info("Confirmed booking %s", booking_id)
        return confirmed

    async def cancel(self, booking_id: str) -> None:
        owner_id = (await self.get_booking(booking_id)).owner_id

        async with self._owner_section(owner_id):
            if not await self._bookings.delete_booking(booking_id):
                raise ResourceNotFound(f"Scheduled slot not found with id: {booking_id}")

        logger.info("Cancelled booking %s of owner %s", booking_id, owner_id)

    async def get_booking(self, booking_id: str) -> BookedInterval:
        booking = await self._bookings.get_booking(booking_id)
        if booking is None:
            raise ResourceNotFound(f"Scheduled slot not found with id: {booking_id}")
        return booking

    async def get_booking_by_correlation(
        self,
        owner_id: str,
        correlation_id: str,
    ) -> BookedInterval:
        booking = await self._bookings.get_booking_by_correlation(owner_id, correlation_id)
        if booking is None:
            raise ResourceNotFound(
                f"Scheduled slot not found for owner {owner_id} "
                f"and correlation id {correlation_id}"
            )
        return booking

    async def list_bookings(
        self,
        owner_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[BookedInterval]:
        """List an owner's bookings, optionally only those overlapping [start, end)."""
        if (start is None) != (end is None):
            raise ValueError("start and end must be given together")

        within = TimeRange(start=start, end=end) if start is not None else None
        bookings = await self._bookings.list_bookings(owner_id, within=within)
        return sorted(bookings, key=lambda b: (b.start, b.end))

    @asynccontextmanager
    async def _owner_section(self, owner_id: str) -> AsyncIterator[None]:
        async with self._locks.hold(owner_id):
            async with self._bookings.exclusive():
                yield

    async def _write_checked(self, proposed: BookedInterval, write) -> BookedInterval:
        """Check ``proposed`` against the owner's bookings and write it. Caller holds the owner section."""
        existing = await self._bookings.list_bookings(proposed.owner_id)
        try:
            check_conflict(proposed, existing)
        except (SlotConflict, DuplicateCorrelation) as exc:
            logger.warning("Rejected booking for owner %s: %s", proposed.owner_id, exc)
            raise

        return await write(proposed)
