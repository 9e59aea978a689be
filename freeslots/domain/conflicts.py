"""
Booking conflict check used before a new booking is persisted.
"""

from __future__ import annotations

from typing import Iterable

from .exceptions import DuplicateCorrelation, SlotConflict
from .models import BookedInterval


def check_conflict(proposed: BookedInterval, existing: Iterable[BookedInterval]) -> None:
    """
    Decide whether ``proposed`` may be added next to ``existing``.

    Only intervals of the proposal's owner are considered, and an interval
    carrying the proposal's own id is skipped so an update can be checked
    against the owner's other bookings. The correlation id is checked before
    time overlap.

    The caller must run this check and the following write while holding the
    owner's lock; the check alone does not prevent two concurrent proposals
    from both passing.

    Raises:
        DuplicateCorrelation: If the owner already has a booking with the same correlation id
        SlotConflict: If the proposal overlaps one of the owner's bookings
    """
    owned = [
        booking for booking in existing
        if booking.owner_id == proposed.owner_id
        and (proposed.id is None or booking.id != proposed.id)
    ]

    for booking in owned:
        if booking.correlation_id == proposed.correlation_id:
            raise DuplicateCorrelation(proposed.owner_id, proposed.correlation_id)

    for booking in sorted(owned, key=lambda b: (b.start, b.end)):
        if proposed.overlaps(booking):
            raise SlotConflict(proposed, booking)
