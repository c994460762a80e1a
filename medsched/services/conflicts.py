"""Service for detecting scheduling conflicts between bookings."""

from __future__ import annotations

from datetime import datetime, timedelta

from medsched.domain.models import Booking, ResourceRef
from medsched.repos.base import BookingStore


def overlaps(
    a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime
) -> bool:
    """Half-open interval overlap. Exact boundary touches are NOT overlaps."""
    return a_start < b_end and b_start < a_end


def find_conflicts(
    new_start: datetime,
    new_end: datetime,
    existing_bookings: list[Booking],
    resource: ResourceRef | None = None,
    exclude_id: int | None = None,
) -> list[Booking]:
    """Return existing bookings that overlap with the given time range.

    Overlap rule: conflict if new_start < existing.end AND existing.start < new_end.
    When *resource* is given only bookings whose resource matches it count.
    """
    return [
        booking
        for booking in existing_bookings
        if overlaps(new_start, new_end, booking.start, booking.end)
        and (resource is None or booking.resource.matches(resource))
        and (exclude_id is None or booking.id != exclude_id)
    ]


def has_conflict(
    store: BookingStore,
    resource: ResourceRef,
    start: datetime,
    duration_minutes: int,
    exclude_id: int | None = None,
) -> bool:
    """Return True if ``[start, start + duration)`` collides with a stored booking."""
    end = start + timedelta(minutes=duration_minutes)
    return bool(store.find_overlapping(resource, start, end, exclude_id=exclude_id))
