"""
Domain layer - Pure business logic without external dependencies.
"""

from .conflicts import check_conflict
from .models import (
    BookedInterval,
    CandidateSlot,
    FreeSlot,
    TimeRange,
    UserCalendar,
    Weekday,
    WeeklyRule,
)
from .projector import project
from .resolver import FreeSlotResolver, find_free_slots, resolve

__all__ = [
    "BookedInterval",
    "CandidateSlot",
    "FreeSlot",
    "FreeSlotResolver",
    "TimeRange",
    "UserCalendar",
    "Weekday",
    "WeeklyRule",
    "check_conflict",
    "find_free_slots",
    "project",
    "resolve",
]
