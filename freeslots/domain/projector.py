"""
Projection of weekly availability rules onto a concrete date range.
"""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Iterable, Iterator, List, Tuple, Union

import pendulum

from .models import TimeRange, WeeklyRule, combine

RangeLike = Union[TimeRange, Tuple[datetime, datetime]]


def as_query_range(query_range: RangeLike) -> TimeRange:
    """Accept a TimeRange or a (start, end) pair; raise InvalidRange if empty."""
    if isinstance(query_range, TimeRange):
        return query_range
    start, end = query_range
    return TimeRange(start=start, end=end)


def iter_days(query_range: TimeRange) -> Iterator[date]:
    """
    Yield every calendar day that the range touches.

    A day is included when its midnight lies before ``query_range.end``, so a
    range ending exactly at midnight does not pull in the following day.
    """
    current = pendulum.date(
        query_range.start.year, query_range.start.month, query_range.start.day
    )

    while combine(current, time.min) < query_range.end:
        yield current
        current = current.add(days=1)


def project(rules: Iterable[WeeklyRule], query_range: RangeLike) -> List[TimeRange]:
    """
    Expand weekly rules into dated candidate slots inside ``query_range``.

    Only active rules participate. Each rule is instantiated on every day of
    the range whose weekday matches; instantiations that intersect the range
    are clipped to it, so a window that merely touches a range boundary from
    the inside is kept at its full size.

    Returns:
        Candidate slots ordered by start, then end.

    Raises:
        InvalidRange: If the range does not end strictly after it starts
        InvalidRule: If a rule does not open before it closes
    """
    window = as_query_range(query_range)
    active_rules = [rule for rule in rules if rule.active]
    if not active_rules:
        return []

    for rule in active_rules:
        rule.validate()

    candidates: List[TimeRange] = []

    for day in iter_days(window):
        for rule in active_rules:
            if not rule.applies_to(day):
                continue

            clipped = rule.instantiate(day).intersect(window)
            if clipped is not None:
                candidates.append(clipped)

    candidates.sort(key=lambda candidate: (candidate.start, candidate.end))
    return candidates
