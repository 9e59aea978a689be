"""
Application service for managing weekly availability rules.
"""

from __future__ import annotations

import dataclasses
import logging
from datetime import time
from typing import List, Optional, Union

from ..domain.exceptions import ResourceNotFound
from ..domain.models import Weekday, WeeklyRule
from .protocols import CalendarRepository, RuleRepository

logger = logging.getLogger(__name__)

WeekdayLike = Union[Weekday, int, str]


class AvailabilityService:
    """Create, read, update and delete the weekly rules of a calendar."""

    def __init__(self, calendars: CalendarRepository, rules: RuleRepository) -> None:
        self._calendars = calendars
        self._rules = rules

    async def add_rule(
        self,
        calendar_id: str,
        day_of_week: WeekdayLike,
        start_time: time,
        end_time: time,
        *,
        active: bool = True,
        recurring: bool = True,
    ) -> WeeklyRule:
        """
        Add a weekly rule to a calendar.

        Raises:
            ResourceNotFound: If the calendar does not exist
            InvalidRule: If the window does not open before it closes
        """
        await self._require_calendar(calendar_id)

        rule = WeeklyRule(
            day_of_week=Weekday.parse(day_of_week),
            start_time=start_time,
            end_time=end_time,
            active=active,
            recurring=recurring,
            calendar_id=calendar_id,
        )
        stored = await self._rules.add_rule(rule)
        logger.info("Added rule %s (%s) to calendar %s", stored.id, stored, calendar_id)
        return stored

    async def get_rule(self, rule_id: str) -> WeeklyRule:
        rule = await self._rules.get_rule(rule_id)
        if rule is None:
            raise ResourceNotFound(f"Availability not found with id: {rule_id}")
        return rule

    async def list_rules(
        self,
        calendar_id: str,
        day_of_week: Optional[WeekdayLike] = None,
    ) -> List[WeeklyRule]:
        await self._require_calendar(calendar_id)
        day = Weekday.parse(day_of_week) if day_of_week is not None else None
        return await self._rules.list_rules(calendar_id, day_of_week=day)

    async def update_rule(
        self,
        rule_id: str,
        *,
        day_of_week: Optional[WeekdayLike] = None,
        start_time: Optional[time] = None,
        end_time: Optional[time] = None,
        active: Optional[bool] = None,
        recurring: Optional[bool] = None,
    ) -> WeeklyRule:
        """Change the given fields of a rule; omitted fields keep their value."""
        changes = {
            "day_of_week": Weekday.parse(day_of_week) if day_of_week is not None else None,
            "start_time": start_time,
            "end_time": end_time,
            "active": active,
            "recurring": recurring,
        }

        async with self._rules.exclusive():
            current = await self.get_rule(rule_id)
            updated = dataclasses.replace(
                current, **{name: value for name, value in changes.items() if value is not None}
            )
            stored = await self._rules.update_rule(updated)

        logger.info("Updated rule %s (%s)", rule_id, stored)
        return stored

    async def delete_rule(self, rule_id: str) -> None:
        if not await self._rules.delete_rule(rule_id):
            raise ResourceNotFound(f"Availability not found with id: {rule_id}")
        logger.info("Deleted rule %s", rule_id)

    async def _require_calendar(self, calendar_id: str) -> None:
        if await self._calendars.get_calendar(calendar_id) is None:
            raise ResourceNotFound(f"User calendar not found with id: {calendar_id}")
