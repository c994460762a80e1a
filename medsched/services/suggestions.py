"""Service for suggesting alternative start times when a booking conflicts."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta, timezone

from medsched.domain.models import Booking, ResourceRef, Suggestion
from medsched.repos.base import BookingStore

DEFAULT_MAX_SUGGESTIONS = 4
MIN_LEAD_MINUTES = 5  # suggestions never start sooner than this after "now"

_LATEST = datetime.max.replace(tzinfo=timezone.utc)


def baseline(desired_start: datetime, now: datetime) -> datetime:
    """Earliest instant a suggestion may start."""
    return max(desired_start, now + timedelta(minutes=MIN_LEAD_MINUTES))


def scan_gaps(
    bookings: Iterable[Booking],
    start_at: datetime,
    duration_minutes: int,
    max_suggestions: int,
) -> list[Suggestion]:
    """Greedily pack duration-sized slots into the gaps between *bookings*.

    *bookings* must be ordered by start. Slots inside one gap are spaced by
    exactly the duration. After the last booking the scan keeps emitting
    back-to-back slots, so it yields *max_suggestions* results unless the
    calendar runs out first.
    """
    if max_suggestions <= 0:
        return []

    step = timedelta(minutes=duration_minutes)
    suggestions: list[Suggestion] = []
    cursor = start_at

    for booking in bookings:
        while booking.start - cursor >= step:
            suggestions.append(
                Suggestion(start=cursor, duration_minutes=duration_minutes)
            )
            if len(suggestions) == max_suggestions:
                return suggestions
            cursor += step
        # max() keeps the cursor monotonic if overlapping data slipped in
        cursor = max(cursor, booking.end)

    latest = _LATEST - step
    while len(suggestions) < max_suggestions and cursor <= latest:
        suggestions.append(Suggestion(start=cursor, duration_minutes=duration_minutes))
        cursor += step

    return suggestions


def suggest_times(
    store: BookingStore,
    resource: ResourceRef,
    desired_start: datetime,
    duration_minutes: int,
    *,
    now: datetime,
    max_suggestions: int = DEFAULT_MAX_SUGGESTIONS,
    exclude_id: int | None = None,
) -> list[Suggestion]:
    """Return up to *max_suggestions* non-conflicting starts, earliest first.

    The scan begins at ``max(desired_start, now + 5 minutes)`` and only looks
    at bookings of a matching resource that end at or after that point.
    """
    start_at = baseline(desired_start, now)
    bookings = store.list_from(resource, start_at, exclude_id=exclude_id)
    return scan_gaps(bookings, start_at, duration_minutes, max_suggestions)
