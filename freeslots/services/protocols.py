"""
Repository protocols the services depend on.

Any object providing these coroutines can back the services: the bundled
in-memory and JSON-file stores, or a database adapter.

``exclusive()`` opens a critical section over the whole store. Read-check-write
sequences run inside it so that another process sharing the same storage
cannot interleave a write. Stores without shared storage may make it a no-op.
"""

from __future__ import annotations

from typing import AsyncContextManager, List, Optional, Protocol

from ..domain.models import BookedInterval, TimeRange, UserCalendar, Weekday, WeeklyRule


class CalendarRepository(Protocol):
    """Storage for one calendar per owner."""

    def exclusive(self) -> AsyncContextManager[None]:
        """Hold the store exclusively; reads inside see the latest committed state."""

    async def add_calendar(self, calendar: UserCalendar) -> UserCalendar:
        """Store a calendar, assigning its id."""

    async def get_calendar(self, calendar_id: str) -> Optional[UserCalendar]:
        """Return the calendar with this id, if any."""

    async def get_calendar_by_owner(self, owner_id: str) -> Optional[UserCalendar]:
        """Return the owner's calendar, if any."""

    async def delete_calendar(self, calendar_id: str) -> bool:
        """Remove a calendar; return whether it existed."""


class RuleRepository(Protocol):
    """Storage for weekly availability rules."""

    def exclusive(self) -> AsyncContextManager[None]:
        """Hold the store exclusively; reads inside see the latest committed state."""

    async def add_rule(self, rule: WeeklyRule) -> WeeklyRule:
        """Store a rule, assigning its id."""

    async def get_rule(self, rule_id: str) -> Optional[WeeklyRule]:
        """Return the rule with this id, if any."""

    async def list_rules(
        self,
        calendar_id: str,
        *,
        day_of_week: Optional[Weekday] = None,
        active_only: bool = False,
    ) -> List[WeeklyRule]:
        """Return the calendar's rules, optionally narrowed by weekday and activity."""

    async def update_rule(self, rule: WeeklyRule) -> WeeklyRule:
        """Replace a stored rule."""

    async def delete_rule(self, rule_id: str) -> bool:
        """Remove a rule; return whether it existed."""

    async def delete_rules_for_calendar(self, calendar_id: str) -> int:
        """Remove every rule of a calendar; return how many were removed."""


class BookingRepository(Protocol):
    """Storage for booked intervals."""

    def exclusive(self) -> AsyncContextManager[None]:
        """Hold the store exclusively; reads inside see the latest committed state."""

    async def add_booking(self, booking: BookedInterval) -> BookedInterval:
        """Store a booking, assigning its id."""

    async def get_booking(self, booking_id: str) -> Optional[BookedInterval]:
        """Return the booking with this id, if any."""

    async def get_booking_by_correlation(
        self,
        owner_id: str,
        correlation_id: str,
    ) -> Optional[BookedInterval]:
        """Return the owner's booking for a correlation id, if any."""

    async def list_bookings(
        self,
        owner_id: str,
        *,
        within: Optional[TimeRange] = None,
    ) -> List[BookedInterval]:
        """Return the owner's bookings, optionally only those overlapping ``within``."""

    async def update_booking(self, booking: BookedInterval) -> BookedInterval:
        """Replace a stored booking."""

    async def delete_booking(self, booking_id: str) -> bool:
        """Remove a booking; return whether it existed."""
