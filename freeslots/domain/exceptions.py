"""
Domain-specific exception hierarchy for the freeslots application.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover
    from .models import BookedInterval


class FreeSlotsError(Exception):
    """Base class for all application-level errors."""


class InvalidRange(FreeSlotsError, ValueError):
    """Raised when a range does not end strictly after it starts."""

    def __init__(self, start: Any, end: Any):
        self.start = start
        self.end = end
        super().__init__(f"Start time {start} must be before end time {end}")


class InvalidRule(FreeSlotsError, ValueError):
    """Raised when a weekly rule does not open before it closes."""


class InvalidBooking(FreeSlotsError, ValueError):
    """Raised when booking fields fail validation."""


class SlotConflict(FreeSlotsError):
    """Raised when a proposed booking overlaps an existing one of the same owner."""

    def __init__(self, proposed: "BookedInterval", existing: "BookedInterval"):
        self.proposed = proposed
        self.existing = existing
        super().__init__(
            f"Booking {proposed.start} - {proposed.end} for owner {proposed.owner_id} "
            f"overlaps existing booking {existing.start} - {existing.end}"
        )


class DuplicateCorrelation(FreeSlotsError):
    """Raised when an owner already has a booking with the same correlation id."""

    def __init__(self, owner_id: str, correlation_id: str):
        self.owner_id = owner_id
        self.correlation_id = correlation_id
        super().__init__(
            f"Owner {owner_id} already has a booking for correlation id {correlation_id}"
        )


class ResourceNotFound(FreeSlotsError):
    """Raised when a calendar, rule or booking does not exist."""


class CalendarAlreadyExists(FreeSlotsError):
    """Raised when creating a second calendar for the same owner."""


class RepositoryError(FreeSlotsError):
    """Raised when stored data cannot be read or written."""
