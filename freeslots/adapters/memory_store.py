"""
In-memory repository implementing the calendar, rule and booking protocols.
"""

from __future__ import annotations

import dataclasses
import logging
import uuid
from contextlib import asynccontextmanager, contextmanager
from typing import AsyncIterator, Dict, Iterator, List, Optional

from ..domain.exceptions import ResourceNotFound
from ..domain.models import BookedInterval, TimeRange, UserCalendar, Weekday, WeeklyRule

logger = logging.getLogger(__name__)


def new_id() -> str:
    return uuid.uuid4().hex


class InMemoryStore:
    """
    Keeps calendars, rules and bookings in dictionaries keyed by id.

    Objects are immutable, so returning stored instances directly is safe.
    Subclasses can override ``_changed`` to persist after each mutation and
    ``exclusive`` to coordinate with other processes sharing their storage.
    """

    def __init__(self) -> None:
        self.calendars: Dict[str, UserCalendar] = {}
        self.rules: Dict[str, WeeklyRule] = {}
        self.bookings: Dict[str, BookedInterval] = {}

    @asynccontextmanager
    async def exclusive(self) -> AsyncIterator[None]:
        """Hold the store for a read-check-write sequence. Nothing to lock in memory."""
        yield

    def _changed(self) -> None:
        """Hook called after every mutation, before it is kept."""

    @contextmanager
    def _commit(self) -> Iterator[None]:
        """Apply the mutation in the block, or restore the previous state if persisting it fails."""
        snapshot = (dict(self.calendars), dict(self.rules), dict(self.bookings))
        try:
            yield
            self._changed()
        except Exception:
            logger.debug("Store change not kept, restoring previous state")
            self.calendars, self.rules, self.bookings = snapshot
            raise

    # Calendars

    async def add_calendar(self, calendar: UserCalendar) -> UserCalendar:
        stored = dataclasses.replace(calendar, id=calendar.id or new_id())
        async with self.exclusive():
            with self._commit():
                self.calendars[stored.id] = stored
        return stored

    async def get_calendar(self, calendar_id: str) -> Optional[UserCalendar]:
        return self.calendars.get(calendar_id)

    async def get_calendar_by_owner(self, owner_id: str) -> Optional[UserCalendar]:
        for calendar in self.calendars.values():
            if calendar.owner_id == owner_id:
                return calendar
        return None

    async def delete_calendar(self, calendar_id: str) -> bool:
        async with self.exclusive():
            if calendar_id not in self.calendars:
                return False
            with self._commit():
                del self.calendars[calendar_id]
        return True

    # Rules

    async def add_rule(self, rule: WeeklyRule) -> WeeklyRule:
        stored = dataclasses.replace(rule, id=rule.id or new_id())
        async with self.exclusive():
            with self._commit():
                self.rules[stored.id] = stored
        return stored

    async def get_rule(self, rule_id: str) -> Optional[WeeklyRule]:
        return self.rules.get(rule_id)

    async def list_rules(
        self,
        calendar_id: str,
        *,
        day_of_week: Optional[Weekday] = None,
        active_only: bool = False,
    ) -> List[WeeklyRule]:
        return [
            rule for rule in self.rules.values()
            if rule.calendar_id == calendar_id
            and (day_of_week is None or rule.day_of_week == day_of_week)
            and (rule.active or not active_only)
        ]

    async def update_rule(self, rule: WeeklyRule) -> WeeklyRule:
        async with self.exclusive():
            if rule.id not in self.rules:
                raise ResourceNotFound(f"Availability not found with id: {rule.id}")
            with self._commit():
                self.rules[rule.id] = rule
        return rule

    async def delete_rule(self, rule_id: str) -> bool:
        async with self.exclusive():
            if rule_id not in self.rules:
                return False
            with self._commit():
                del self.rules[rule_id]
        return True

    async def delete_rules_for_calendar(self, calendar_id: str) -> int:
        async with self.exclusive():
            doomed = [rule_id for rule_id, rule in self.rules.items() if rule.calendar_id == calendar_id]
            if doomed:
                with self._commit():
                    for rule_id in doomed:
                        del self.rules[rule_id]
        return len(doomed)

    # Bookings

    async def add_booking(self, booking: BookedInterval) -> BookedInterval:
        stored = dataclasses.replace(booking, id=booking.id or new_id())
        async with self.exclusive():
            with self._commit():
                self.bookings[stored.id] = stored
        return stored

    async def get_booking(self, booking_id: str) -> Optional[BookedInterval]:
        return self.bookings.get(booking_id)

    async def get_booking_by_correlation(
        self,
        owner_id: str,
        correlation_id: str,
    ) -> Optional[BookedInterval]:
        for booking in self.bookings.values():
            if booking.owner_id == owner_id and booking.correlation_id == correlation_id:
                return booking
        return None

    async def list_bookings(
        self,
        owner_id: str,
        *,
        within: Optional[TimeRange] = None,
    ) -> List[BookedInterval]:
        return [
            booking for booking in self.bookings.values()
            if booking.owner_id == owner_id
            and (within is None or booking.time_range.overlaps(within))
        ]

    async def update_booking(self, booking: BookedInterval) -> BookedInterval:
        async with self.exclusive():
            if booking.id not in self.bookings:
                raise ResourceNotFound(f"Scheduled slot not found with id: {booking.id}")
            with self._commit():
                self.bookings[booking.id] = booking
        return booking

    async def delete_booking(self, booking_id: str) -> bool:
        async with self.exclusive():
            if booking_id not in self.bookings:
                return False
            with self._commit():
                del self.bookings[booking_id]
        return True
