"""Scheduling service: conflict-checked create, update and delete of bookings."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime

from pydantic import ValidationError

from medsched.domain.errors import InvalidInput, StoreFailure
from medsched.domain.models import (
    Booking,
    DeleteStatus,
    ProposalOutcome,
    ProposalStatus,
    ResourceRef,
    to_utc,
    utcnow,
)
from medsched.repos.base import BookingStore
from medsched.services.conflicts import has_conflict
from medsched.services.suggestions import DEFAULT_MAX_SUGGESTIONS, suggest_times

logger = logging.getLogger(__name__)


@contextmanager
def _store_errors(action: str) -> Iterator[None]:
    """Re-raise unexpected store errors as StoreFailure, logging them once.

    Arithmetic and type errors come from the scheduling code itself, not the
    store, so they propagate unchanged.
    """
    try:
        yield
    except (InvalidInput, StoreFailure, ArithmeticError, TypeError):
        raise
    except Exception as exc:
        logger.exception("An error occurred while %s", action)
        raise StoreFailure(f"An error occurred while {action}: {exc}") from exc


def _parse_resource(raw: ResourceRef | str | None) -> ResourceRef:
    if isinstance(raw, ResourceRef):
        return raw
    try:
        return ResourceRef.parse(raw)
    except ValidationError as exc:
        raise InvalidInput("resource name must not be empty") from exc


def _check_duration(duration_minutes: int) -> None:
    if duration_minutes <= 0:
        raise InvalidInput(f"duration must be positive, got {duration_minutes}")


def _check_span(booking: Booking) -> None:
    try:
        booking.end
    except OverflowError as exc:
        raise InvalidInput(
            f"booking at {booking.start.isoformat()} lasting "
            f"{booking.duration_minutes} minutes ends out of range"
        ) from exc


class SchedulingService:
    """Accepts bookings only when they leave the resource's schedule overlap-free.

    Each check-and-commit sequence runs inside ``store.transaction()`` so two
    concurrent proposals cannot both observe a free slot and both commit.
    """

    def __init__(
        self,
        store: BookingStore,
        *,
        max_suggestions: int = DEFAULT_MAX_SUGGESTIONS,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.max_suggestions = max_suggestions
        self.clock = clock

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, booking_id: int) -> Booking | None:
        with _store_errors(f"retrieving the booking with id={booking_id}"):
            booking = self.store.get(booking_id)
        if booking is None:
            logger.warning("Booking with id=%s not found", booking_id)
        return booking

    def list_all(self) -> list[Booking]:
        with _store_errors("retrieving bookings"):
            bookings = self.store.list_all()
        logger.info("Retrieved %d bookings", len(bookings))
        return bookings

    def list_for_resource(self, resource: ResourceRef | str) -> list[Booking]:
        ref = _parse_resource(resource)
        with _store_errors(f"retrieving bookings for {ref}"):
            bookings = self.store.list_for_resource(ref)
        logger.info("Retrieved %d bookings for %s", len(bookings), ref)
        return bookings

    # ------------------------------------------------------------------
    # Proposals
    # ------------------------------------------------------------------

    def propose_create(
        self,
        resource: ResourceRef | str | None,
        start: datetime | None,
        duration_minutes: int | None,
        patient_name: str | None = None,
        description: str | None = None,
    ) -> ProposalOutcome:
        """Persist a new booking, or return suggestions if it would conflict.

        A missing resource books the shared resource.
        """
        if start is None:
            raise InvalidInput("start is required")
        if duration_minutes is None:
            raise InvalidInput("duration is required")
        _check_duration(duration_minutes)
        candidate = Booking(
            resource=_parse_resource(resource),
            start=start,
            duration_minutes=duration_minutes,
            patient_name=patient_name,
            description=description,
        )
        _check_span(candidate)

        with _store_errors("creating the booking"), self.store.transaction():
            if self._conflicts(candidate):
                return self._reject(candidate)
            booking_id = self.store.add(candidate)

        logger.info(
            "Booking with id=%s created for %s", booking_id, candidate.resource
        )
        return ProposalOutcome(status=ProposalStatus.ACCEPTED, booking_id=booking_id)

    def propose_update(
        self,
        booking_id: int,
        resource: ResourceRef | str | None = None,
        start: datetime | None = None,
        duration_minutes: int | None = None,
        patient_name: str | None = None,
        description: str | None = None,
    ) -> ProposalOutcome:
        """Apply a partial update unless the merged booking would conflict.

        Unset fields keep their stored values. A shared resource is never
        applied through an update: it is treated as unset and the stored
        resource is kept.
        """
        if duration_minutes is not None:
            _check_duration(duration_minutes)
        new_resource = None if resource in (None, "") else _parse_resource(resource)
        if new_resource is not None and new_resource.is_shared:
            new_resource = None

        action = f"updating the booking with id={booking_id}"
        with _store_errors(action), self.store.transaction():
            existing = self.store.get(booking_id)
            if existing is None:
                logger.warning("No booking with id=%s found for update", booking_id)
                return ProposalOutcome(status=ProposalStatus.NOT_FOUND)

            merged = Booking(
                id=booking_id,
                resource=new_resource or existing.resource,
                start=start if start is not None else existing.start,
                duration_minutes=duration_minutes or existing.duration_minutes,
                patient_name=patient_name or existing.patient_name,
                description=description or existing.description,
            )
            _check_span(merged)
            if self._conflicts(merged, exclude_id=booking_id):
                return self._reject(merged, exclude_id=booking_id)
            self.store.replace(booking_id, merged)

        logger.info("Updated booking with id=%s", booking_id)
        return ProposalOutcome(status=ProposalStatus.ACCEPTED, booking_id=booking_id)

    def delete(self, booking_id: int) -> DeleteStatus:
        with _store_errors(f"deleting the booking with id={booking_id}"):
            removed = self.store.delete(booking_id)
        if not removed:
            logger.warning("No booking with id=%s found for deletion", booking_id)
            return DeleteStatus.NOT_FOUND
        logger.info("Deleted booking with id=%s", booking_id)
        return DeleteStatus.DELETED

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _conflicts(self, candidate: Booking, exclude_id: int | None = None) -> bool:
        return has_conflict(
            self.store,
            candidate.resource,
            candidate.start,
            candidate.duration_minutes,
            exclude_id=exclude_id,
        )

    def _reject(
        self, candidate: Booking, exclude_id: int | None = None
    ) -> ProposalOutcome:
        suggestions = suggest_times(
            self.store,
            candidate.resource,
            candidate.start,
            candidate.duration_minutes,
            now=to_utc(self.clock()),
            max_suggestions=self.max_suggestions,
            exclude_id=exclude_id,
        )
        logger.warning(
            "Booking for %s at %s conflicts; suggesting %d alternatives",
            candidate.resource,
            candidate.start.isoformat(),
            len(suggestions),
        )
        return ProposalOutcome(status=ProposalStatus.REJECTED, suggestions=suggestions)
