"""Domain models for the booking conflict engine."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

SHARED_RESOURCE_NAME = "All"


class ProposalStatus(StrEnum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    NOT_FOUND = "not_found"


class DeleteStatus(StrEnum):
    DELETED = "deleted"
    NOT_FOUND = "not_found"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_utc(value: datetime) -> datetime:
    """Normalise *value* to an aware UTC datetime (naive input is taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ---------------------------------------------------------------------------
# Core domain models
# ---------------------------------------------------------------------------


class ResourceRef(BaseModel):
    """The resource a booking belongs to: a named professional or the shared resource.

    ``name is None`` marks the shared resource. A shared booking blocks the
    schedule of every resource, and a shared candidate is checked against every
    booking. On the wire the shared resource is spelled ``"All"``.
    """

    model_config = ConfigDict(frozen=True)

    name: str | None = None

    @field_validator("name")
    @classmethod
    def _non_empty(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            raise ValueError("resource name must not be empty")
        # "All" is reserved for the shared resource, however the ref is built
        if v == SHARED_RESOURCE_NAME:
            return None
        return v

    @classmethod
    def named(cls, name: str) -> ResourceRef:
        return cls(name=name)

    @classmethod
    def shared(cls) -> ResourceRef:
        return cls(name=None)

    @classmethod
    def parse(cls, raw: str | None) -> ResourceRef:
        """Build a ref from its wire form; ``None`` and ``"All"`` mean shared."""
        if raw is None:
            return cls.shared()
        return cls.named(raw)

    @property
    def is_shared(self) -> bool:
        return self.name is None

    def matches(self, other: ResourceRef) -> bool:
        """True when bookings on *self* and *other* compete for the same time."""
        return self.is_shared or other.is_shared or self.name == other.name

    def __str__(self) -> str:
        return SHARED_RESOURCE_NAME if self.name is None else self.name


class Booking(BaseModel):
    id: int = 0
    resource: ResourceRef = Field(default_factory=ResourceRef.shared)
    start: datetime
    duration_minutes: int = Field(gt=0)
    patient_name: str | None = None
    description: str | None = None

    @field_validator("start")
    @classmethod
    def _normalise_start(cls, v: datetime) -> datetime:
        return to_utc(v)

    @property
    def end(self) -> datetime:
        return self.start + timedelta(minutes=self.duration_minutes)


class Suggestion(BaseModel):
    start: datetime
    duration_minutes: int


class ProposalOutcome(BaseModel):
    """Result of a create or update proposal."""

    status: ProposalStatus
    booking_id: int | None = None
    suggestions: list[Suggestion] = Field(default_factory=list)

    @property
    def accepted(self) -> bool:
        return self.status == ProposalStatus.ACCEPTED


# ---------------------------------------------------------------------------
# Request / Response DTOs
# ---------------------------------------------------------------------------


class AppointmentRequest(BaseModel):
    """Wire shape for create and update requests.

    Every field is optional so the same body serves partial updates; the
    scheduling service rejects a create that lacks a date or duration.
    """

    patient_name: str | None = None
    healthcare_professional_name: str | None = None
    appointment_date: datetime | None = None
    duration: int | None = None
    description: str | None = None


class AppointmentResponse(BaseModel):
    id: int
    patient_name: str | None = None
    healthcare_professional_name: str
    appointment_date: datetime
    duration: int
    description: str | None = None

    @classmethod
    def from_booking(cls, booking: Booking) -> AppointmentResponse:
        return cls(
            id=booking.id,
            patient_name=booking.patient_name,
            healthcare_professional_name=str(booking.resource),
            appointment_date=booking.start,
            duration=booking.duration_minutes,
            description=booking.description,
        )


class SuggestedTime(BaseModel):
    appointment_start: datetime
    duration: int


class ProposalResponse(BaseModel):
    success: bool
    appointment_id: int | None = None
    suggested_times: list[SuggestedTime] = Field(default_factory=list)

    @classmethod
    def from_outcome(cls, outcome: ProposalOutcome) -> ProposalResponse:
        return cls(
            success=outcome.accepted,
            appointment_id=outcome.booking_id,
            suggested_times=[
                SuggestedTime(appointment_start=s.start, duration=s.duration_minutes)
                for s in outcome.suggestions
            ],
        )
