"""
Application services for owner calendars and free-slot lookup.

The service fetches rule and booking snapshots through repository protocols
and delegates the actual availability calculation to the domain-level
``find_free_slots``. This keeps the CLI thin and lets tests plug in simple
stub repositories.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List

from ..domain.exceptions import CalendarAlreadyExists, ResourceNotFound
from ..domain.models import FreeSlot, TimeRange, UserCalendar, WeeklyRule
from ..domain.resolver import find_free_slots
from .protocols import BookingRepository, CalendarRepository, RuleRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CalendarOverview:
    """A calendar together with all of its weekly rules."""
    calendar: UserCalendar
    rules: List[WeeklyRule]


class CalendarService:
    """
    Orchestrates calendar lifecycle and free-slot calculation for owners.
    """

    def __init__(
        self,
        calendars: CalendarRepository,
        rules: RuleRepository,
        bookings: BookingRepository,
    ) -> None:
        self._calendars = calendars
        self._rules = rules
        self._bookings = bookings

    async def create_calendar(self, owner_id: str) -> UserCalendar:
        """Create the owner's calendar; an owner has at most one."""
        async with self._calendars.exclusive():
            if await self._calendars.get_calendar_by_owner(owner_id) is not None:
                raise CalendarAlreadyExists(f"Calendar already exists for owner {owner_id}")

            calendar = await self._calendars.add_calendar(UserCalendar(owner_id=owner_id))

        logger.info("Created calendar %s for owner %s", calendar.id, owner_id)
        return calendar

    async def get_calendar(self, owner_id: str) -> CalendarOverview:
        calendar = await self.require_calendar(owner_id)
        rules = await self._rules.list_rules(calendar.id)
        return CalendarOverview(calendar=calendar, rules=rules)

    async def delete_calendar(self, owner_id: str) -> None:
        """Delete the owner's calendar and its rules. Bookings are kept."""
        async with self._calendars.exclusive():
            calendar = await self.require_calendar(owner_id)
            removed = await self._rules.delete_rules_for_calendar(calendar.id)
            await self._calendars.delete_calendar(calendar.id)

        logger.info(
            "Deleted calendar %s of owner %s (%d rule(s))", calendar.id, owner_id, removed
        )

    async def require_calendar(self, owner_id: str) -> UserCalendar:
        calendar = await self._calendars.get_calendar_by_owner(owner_id)
        if calendar is None:
            raise ResourceNotFound(f"User calendar not found for owner {owner_id}")
        return calendar

    async def find_free_slots(
        self,
        owner_id: str,
        start: datetime,
        end: datetime,
        min_duration_minutes: int = 0,
    ) -> List[FreeSlot]:
        """
        Retrieve rule and booking snapshots and compute the owner's free slots.

        Raises:
            InvalidRange: If end is not strictly after start
            ResourceNotFound: If the owner has no calendar
        """
        query_range = TimeRange(start=start, end=end)
        calendar = await self.require_calendar(owner_id)

        rules = await self._rules.list_rules(calendar.id, active_only=True)
        bookings = await self._bookings.list_bookings(owner_id, within=query_range)

        slots = find_free_slots(
            rules,
            bookings,
            query_range,
            owner_id,
            min_duration_minutes=min_duration_minutes,
        )
        logger.debug(
            "Owner %s: %d rule(s), %d booking(s) in %s -> %d free slot(s)",
            owner_id,
            len(rules),
            len(bookings),
            query_range,
            len(slots),
        )
        return slots
