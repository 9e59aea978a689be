"""
Domain models for weekly availability, bookings and free slots.

All date-times are naive wall-clock values in one implicit zone. Any
``datetime`` handed to a model is normalised to a naive pendulum ``DateTime``
with its wall-clock reading preserved.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from enum import IntEnum
from typing import Optional, Union

import pendulum
from pendulum import DateTime

from .exceptions import InvalidBooking, InvalidRange, InvalidRule

TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500


def as_wall_clock(value: datetime) -> DateTime:
    """Return ``value`` as a naive pendulum DateTime, dropping any tzinfo."""
    if isinstance(value, DateTime):
        return value.naive()
    return pendulum.naive(
        value.year,
        value.month,
        value.day,
        value.hour,
        value.minute,
        value.second,
        value.microsecond,
    )


def combine(day: date, at: time) -> DateTime:
    """Build the naive date-time for ``at`` on calendar day ``day``."""
    return pendulum.naive(
        day.year, day.month, day.day, at.hour, at.minute, at.second, at.microsecond
    )


class Weekday(IntEnum):
    """Day of week, numbered like ``datetime.weekday()`` (Monday is 0)."""

    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @classmethod
    def parse(cls, value: Union["Weekday", int, str]) -> "Weekday":
        """
        Parse a weekday from an enum member, an int 0-6 or a name.

        Names are case-insensitive and may be abbreviated to three letters
        ("mon", "Tuesday", "SUN").
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            return cls(value)

        text = value.strip().upper()
        if text.isdigit():
            return cls(int(text))
        for member in cls:
            if member.name == text or member.name[:3] == text:
                return member
        raise ValueError(f"Unknown weekday: '{value}'")

    @classmethod
    def of(cls, moment: Union[date, datetime]) -> "Weekday":
        return cls(moment.weekday())

    @property
    def label(self) -> str:
        return self.name.capitalize()


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable half-open time range [start, end).

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        object.__setattr__(self, "start", as_wall_clock(self.start))
        object.__setattr__(self, "end", as_wall_clock(self.end))
        if self.start >= self.end:
            raise InvalidRange(self.start, self.end)

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range overlaps with another. Touching ends do not overlap."""
        return self.start < other.end and other.start < self.end

    def intersect(self, other: "TimeRange") -> "TimeRange | None":
        """
        Calculate the intersection of two time ranges.
        Returns None if there is no overlap.
        """
        if not self.overlaps(other):
            return None

        return TimeRange(start=max(self.start, other.start), end=min(self.end, other.end))

    def contains(self, other: "TimeRange") -> bool:
        return self.start <= other.start and other.end <= self.end

    def __str__(self) -> str:
        return f"{self.start.format('YYYY-MM-DD HH:mm')} - {self.end.format('HH:mm')}"


# A projected, dated instantiation of a weekly rule.
CandidateSlot = TimeRange


@dataclass(frozen=True)
class WeeklyRule:
    """
    A recurring day-of-week + time-of-day availability window.

    Windows never span midnight: start_time must be before end_time.
    """
    day_of_week: Weekday
    start_time: time
    end_time: time
    active: bool = True
    recurring: bool = True
    id: Optional[str] = None
    calendar_id: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "day_of_week", Weekday.parse(self.day_of_week))
        self.validate()

    def validate(self) -> None:
        """Raise InvalidRule if the window does not open before it closes."""
        if self.start_time >= self.end_time:
            raise InvalidRule(
                f"Rule for {self.day_of_week.label} must start before it ends "
                f"({self.start_time.isoformat()} >= {self.end_time.isoformat()})"
            )

    def applies_to(self, day: date) -> bool:
        return self.active and Weekday.of(day) == self.day_of_week

    def instantiate(self, day: date) -> TimeRange:
        """Place this rule's window on a concrete calendar day."""
        return TimeRange(start=combine(day, self.start_time), end=combine(day, self.end_time))

    def __str__(self) -> str:
        return (
            f"{self.day_of_week.label} "
            f"{self.start_time.strftime('%H:%M')}-{self.end_time.strftime('%H:%M')}"
        )


@dataclass(frozen=True)
class BookedInterval:
    """
    An already-reserved, non-recurring time span for one owner.

    ``correlation_id`` ties the booking to whatever originated it; an owner
    holds at most one booking per correlation id.
    """
    owner_id: str
    start: DateTime
    end: DateTime
    correlation_id: str
    id: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    confirmed: bool = False

    def __post_init__(self):
        object.__setattr__(self, "start", as_wall_clock(self.start))
        object.__setattr__(self, "end", as_wall_clock(self.end))
        if self.start >= self.end:
            raise InvalidRange(self.start, self.end)
        if self.title is not None and len(self.title) > TITLE_MAX_LENGTH:
            raise InvalidBooking(f"Title must be less than {TITLE_MAX_LENGTH} characters")
        if self.description is not None and len(self.description) > DESCRIPTION_MAX_LENGTH:
            raise InvalidBooking(
                f"Description must be less than {DESCRIPTION_MAX_LENGTH} characters"
            )

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start, end=self.end)

    def overlaps(self, other: "BookedInterval") -> bool:
        return self.start < other.end and other.start < self.end


@dataclass(frozen=True)
class FreeSlot:
    """
    Represents a found bookable time slot for one owner.
    """
    time_range: TimeRange
    owner_id: str

    @property
    def start(self) -> DateTime:
        return self.time_range.start

    @property
    def end(self) -> DateTime:
        return self.time_range.end

    def format_display(self) -> str:
        """
        Format the slot for display.
        Format: Weekday, YYYY-MM-DD | HH:mm - HH:mm (N min)
        """
        weekday = Weekday.of(self.start).label
        date_str = self.start.format("YYYY-MM-DD")
        time_str = f"{self.start.format('HH:mm')} - {self.end.format('HH:mm')}"
        duration = self.time_range.duration_minutes()

        return f"{weekday}, {date_str} | {time_str} ({duration} min)"


@dataclass(frozen=True)
class UserCalendar:
    """The calendar that owns an owner's weekly rules. One per owner."""
    owner_id: str
    id: Optional[str] = None
