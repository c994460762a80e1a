"""Contract the scheduling core expects from a booking store."""

from __future__ import annotations

from contextlib import AbstractContextManager
from datetime import datetime
from typing import Protocol

from medsched.domain.models import Booking, ResourceRef


class BookingStore(Protocol):
    """Persistence for bookings.

    Resource filters follow ``ResourceRef.matches``: a booking is selected when
    its resource equals the filter or either side is the shared resource.
    Stores do not enforce the non-overlap invariant themselves; callers
    serialise check-and-commit through ``transaction()``.
    """

    def add(self, booking: Booking) -> int: ...

    def get(self, booking_id: int) -> Booking | None: ...

    def replace(self, booking_id: int, booking: Booking) -> bool: ...

    def delete(self, booking_id: int) -> bool: ...

    def list_all(self) -> list[Booking]: ...

    def list_for_resource(self, resource: ResourceRef) -> list[Booking]: ...

    def find_overlapping(
        self,
        resource: ResourceRef,
        window_start: datetime,
        window_end: datetime,
        exclude_id: int | None = None,
    ) -> list[Booking]: ...

    def list_from(
        self,
        resource: ResourceRef,
        not_ending_before: datetime,
        exclude_id: int | None = None,
    ) -> list[Booking]: ...

    def transaction(self) -> AbstractContextManager[None]: ...
