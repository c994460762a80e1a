"""Load bookings from a JSON seed file through the scheduling service."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from medsched.domain.errors import InvalidInput
from medsched.domain.models import AppointmentRequest
from medsched.services.scheduling import SchedulingService

logger = logging.getLogger(__name__)

_SEED_ADAPTER = TypeAdapter(list[AppointmentRequest])


def seed_from_file(service: SchedulingService, path: Path) -> int:
    """Submit every appointment in *path* through ``propose_create``.

    Seeds go through conflict detection like any other booking, so the store
    keeps its non-overlap invariant. Nothing is loaded when the store already
    holds bookings. An unreadable file is logged and loads nothing; a malformed
    or conflicting entry is logged and skipped. Returns the number of accepted
    bookings.
    """
    if service.list_all():
        logger.info("Store already seeded, skipping %s", path)
        return 0

    try:
        requests = _SEED_ADAPTER.validate_json(Path(path).read_bytes())
    except (OSError, ValidationError):
        logger.exception("An error occurred while reading seed file %s", path)
        return 0

    accepted = 0
    for index, req in enumerate(requests):
        try:
            outcome = service.propose_create(
                req.healthcare_professional_name,
                req.appointment_date,
                req.duration,
                patient_name=req.patient_name,
                description=req.description,
            )
        except InvalidInput as exc:
            logger.warning("Seed appointment #%d is invalid, skipped: %s", index, exc)
            continue
        if outcome.accepted:
            accepted += 1
        else:
            logger.warning(
                "Seed appointment for %s at %s conflicts, skipped",
                req.healthcare_professional_name,
                req.appointment_date,
            )

    logger.info("Seeded %d of %d appointments from %s", accepted, len(requests), path)
    return accepted
