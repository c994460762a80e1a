"""In-memory booking store."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from itertools import count

from medsched.domain.models import Booking, ResourceRef
from medsched.services.conflicts import find_conflicts


class InMemoryBookingStore:
    """Dict-backed store for Booking instances, keyed by an auto-incremented id.

    All access goes through a re-entrant lock so ``transaction()`` can hold it
    across a whole check-and-commit sequence.
    """

    def __init__(self) -> None:
        self._store: dict[int, Booking] = {}
        self._ids = count(1)
        self._lock = threading.RLock()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            yield

    def add(self, booking: Booking) -> int:
        with self._lock:
            booking_id = next(self._ids)
            self._store[booking_id] = booking.model_copy(update={"id": booking_id})
            return booking_id

    def get(self, booking_id: int) -> Booking | None:
        with self._lock:
            return self._store.get(booking_id)

    def replace(self, booking_id: int, booking: Booking) -> bool:
        with self._lock:
            if booking_id not in self._store:
                return False
            self._store[booking_id] = booking.model_copy(update={"id": booking_id})
            return True

    def delete(self, booking_id: int) -> bool:
        with self._lock:
            return self._store.pop(booking_id, None) is not None

    def list_all(self) -> list[Booking]:
        with self._lock:
            return list(self._store.values())

    def list_for_resource(self, resource: ResourceRef) -> list[Booking]:
        """Return bookings whose resource is exactly *resource*, ordered by start."""
        with self._lock:
            return sorted(
                (b for b in self._store.values() if b.resource == resource),
                key=lambda b: b.start,
            )

    def find_overlapping(
        self,
        resource: ResourceRef,
        window_start: datetime,
        window_end: datetime,
        exclude_id: int | None = None,
    ) -> list[Booking]:
        with self._lock:
            return find_conflicts(
                window_start,
                window_end,
                list(self._store.values()),
                resource=resource,
                exclude_id=exclude_id,
            )

    def list_from(
        self,
        resource: ResourceRef,
        not_ending_before: datetime,
        exclude_id: int | None = None,
    ) -> list[Booking]:
        """Return matching bookings ending at or after *not_ending_before*, by start."""
        with self._lock:
            return sorted(
                (
                    b
                    for b in self._store.values()
                    if b.resource.matches(resource)
                    and b.end >= not_ending_before
                    and (exclude_id is None or b.id != exclude_id)
                ),
                key=lambda b: b.start,
            )

    def clear(self) -> None:
        with self._lock:
            self._store.clear()
            self._ids = count(1)
