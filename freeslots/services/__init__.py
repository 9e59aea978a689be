"""
Service layer helpers that orchestrate repositories and domain logic.
"""

from .availability_service import AvailabilityService
from .booking_service import BookingService
from .calendar_service import CalendarOverview, CalendarService
from .locking import OwnerLocks
from .protocols import BookingRepository, CalendarRepository, RuleRepository

__all__ = [
    "AvailabilityService",
    "BookingRepository",
    "BookingService",
    "CalendarOverview",
    "CalendarRepository",
    "CalendarService",
    "OwnerLocks",
    "RuleRepository",
]
