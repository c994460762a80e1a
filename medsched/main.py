"""FastAPI application: entry point for the appointment scheduling service."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from medsched.config import settings
from medsched.domain.errors import InvalidInput, StoreFailure
from medsched.domain.models import (
    AppointmentRequest,
    AppointmentResponse,
    DeleteStatus,
    ProposalResponse,
    ProposalStatus,
)
from medsched.repos.memory import InMemoryBookingStore
from medsched.services.scheduling import SchedulingService
from medsched.services.seed import seed_from_file

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# ── Singletons (created at import time for simplicity) ────────────────
booking_repo = InMemoryBookingStore()
scheduling_service = SchedulingService(
    store=booking_repo, max_suggestions=settings.max_suggestions
)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    if settings.seed_file is not None:
        seed_from_file(scheduling_service, settings.seed_file)
    yield


app = FastAPI(title="Appointment Scheduling Service", lifespan=lifespan)


@app.exception_handler(InvalidInput)
async def _invalid_input(_: Request, exc: InvalidInput) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(StoreFailure)
async def _store_failure(_: Request, exc: StoreFailure) -> JSONResponse:
    return JSONResponse(status_code=500, content={"detail": str(exc)})


# ── Routes ────────────────────────────────────────────────────────────


@app.get("/api/appointments", response_model=list[AppointmentResponse])
def list_appointments() -> list[AppointmentResponse]:
    """Return all stored appointments."""
    return [
        AppointmentResponse.from_booking(b) for b in scheduling_service.list_all()
    ]


@app.get("/api/appointments/{appointment_id}", response_model=AppointmentResponse)
def get_appointment(appointment_id: int) -> AppointmentResponse:
    booking = scheduling_service.get(appointment_id)
    if booking is None:
        raise HTTPException(
            status_code=404, detail=f"Appointment with id = {appointment_id} not found"
        )
    return AppointmentResponse.from_booking(booking)


@app.get(
    "/api/appointments/professional/{name}",
    response_model=list[AppointmentResponse],
)
def list_professional_appointments(name: str) -> list[AppointmentResponse]:
    """Return a professional's appointments, earliest first."""
    return [
        AppointmentResponse.from_booking(b)
        for b in scheduling_service.list_for_resource(name)
    ]


@app.post("/api/appointments", response_model=ProposalResponse)
def create_appointment(payload: AppointmentRequest) -> ProposalResponse:
    """Create an appointment, or return suggested times if it conflicts.

    A conflict is an expected outcome, reported with ``success: false``.
    """
    outcome = scheduling_service.propose_create(
        payload.healthcare_professional_name,
        payload.appointment_date,
        payload.duration,
        patient_name=payload.patient_name,
        description=payload.description,
    )
    return ProposalResponse.from_outcome(outcome)


@app.put("/api/appointments/{appointment_id}", response_model=ProposalResponse)
def update_appointment(
    appointment_id: int, payload: AppointmentRequest
) -> ProposalResponse:
    """Partially update an appointment; omitted fields keep their values."""
    outcome = scheduling_service.propose_update(
        appointment_id,
        resource=payload.healthcare_professional_name,
        start=payload.appointment_date,
        duration_minutes=payload.duration,
        patient_name=payload.patient_name,
        description=payload.description,
    )
    if outcome.status == ProposalStatus.NOT_FOUND:
        raise HTTPException(
            status_code=404,
            detail=f"No appointment with id = {appointment_id} found for update.",
        )
    return ProposalResponse.from_outcome(outcome)


@app.delete("/api/appointments/{appointment_id}")
def delete_appointment(appointment_id: int) -> dict:
    if scheduling_service.delete(appointment_id) == DeleteStatus.NOT_FOUND:
        raise HTTPException(
            status_code=404,
            detail=f"No appointment with id = {appointment_id} found for deletion.",
        )
    return {"status": DeleteStatus.DELETED}
