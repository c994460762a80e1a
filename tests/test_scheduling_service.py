"""Tests for the scheduling service: create, update and delete proposals."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from medsched.domain.errors import InvalidInput, StoreFailure
from medsched.domain.models import (
    Booking,
    DeleteStatus,
    ProposalStatus,
    ResourceRef,
)
from medsched.repos.memory import InMemoryBookingStore
from medsched.services.scheduling import SchedulingService

_NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


def _at(minutes: int) -> datetime:
    return _NOW + timedelta(minutes=minutes)


class _BrokenStore:
    """Store whose every call fails, standing in for an unreachable database."""

    def __getattr__(self, name):
        def _fail(*args, **kwargs):
            raise OSError("database unavailable")

        return _fail


@pytest.fixture()
def store() -> InMemoryBookingStore:
    """Store holding ids 1-3: dr-test1 at +0, dr-test2 at +120, dr-test1 at +90."""
    store = InMemoryBookingStore()
    for name, offset, description in (
        ("dr-test1", 0, "Checkup"),
        ("dr-test2", 120, "Checkup2"),
        ("dr-test1", 90, "Checkup3"),
    ):
        store.add(
            Booking(
                resource=ResourceRef.named(name),
                start=_at(offset),
                duration_minutes=30,
                patient_name="test",
                description=description,
            )
        )
    return store


@pytest.fixture()
def service(store: InMemoryBookingStore) -> SchedulingService:
    return SchedulingService(store, clock=lambda: _NOW)


# ---------------------------------------------------------------------------
# propose_create
# ---------------------------------------------------------------------------


def test_create_without_conflict_is_accepted(service, store):
    outcome = service.propose_create("dr-test", _at(60), 15)

    assert outcome.status == ProposalStatus.ACCEPTED
    assert outcome.booking_id == 4
    assert outcome.suggestions == []
    assert store.get(4).resource == ResourceRef.named("dr-test")


def test_create_on_empty_resource_is_accepted():
    store = InMemoryBookingStore()
    service = SchedulingService(store, clock=lambda: _NOW)

    outcome = service.propose_create("dr-new", _at(10), 15, patient_name="Ann")

    assert outcome.accepted
    assert len(store.list_all()) == 1
    assert store.list_all()[0].patient_name == "Ann"


def test_create_without_resource_books_shared_resource(service, store):
    outcome = service.propose_create(None, _at(300), 30)

    assert outcome.accepted
    assert store.get(outcome.booking_id).resource.is_shared


@pytest.mark.parametrize(
    "wanted, duration", [(110, 15), (140, 30), (110, 60), (10, 120)]
)
def test_conflicting_create_suggests_times_that_can_be_booked(
    service, store, wanted, duration
):
    outcome = service.propose_create("dr-test2", _at(wanted), duration)

    assert outcome.status == ProposalStatus.REJECTED
    assert outcome.booking_id is None
    assert len(outcome.suggestions) == 4
    assert len(store.list_all()) == 3

    for suggestion in outcome.suggestions:
        retry = service.propose_create(
            "dr-test2", suggestion.start, suggestion.duration_minutes
        )
        assert retry.accepted


def test_conflicting_create_suggestions_skip_existing_booking(service):
    outcome = service.propose_create("dr-test2", _at(110), 15)

    assert [s.start for s in outcome.suggestions] == [
        _at(150),
        _at(165),
        _at(180),
        _at(195),
    ]


def test_suggestion_count_follows_configuration(store):
    service = SchedulingService(store, max_suggestions=6, clock=lambda: _NOW)

    outcome = service.propose_create("dr-test1", _at(0), 30)

    assert len(outcome.suggestions) == 6


def test_shared_create_conflicts_with_named_booking(service):
    outcome = service.propose_create("All", _at(125), 10)

    assert outcome.status == ProposalStatus.REJECTED


def test_named_create_conflicts_with_shared_booking(service):
    assert service.propose_create(None, _at(400), 60).accepted

    outcome = service.propose_create("dr-unrelated", _at(430), 15)

    assert outcome.status == ProposalStatus.REJECTED
    assert outcome.suggestions[0].start == _at(460)


def test_past_desired_start_never_suggests_before_lead_time(service):
    outcome = service.propose_create("dr-test1", _at(-10), 30)

    assert outcome.status == ProposalStatus.REJECTED
    assert all(s.start >= _at(5) for s in outcome.suggestions)


@pytest.mark.parametrize("duration", [0, -15, None])
def test_create_rejects_bad_duration(service, duration):
    with pytest.raises(InvalidInput):
        service.propose_create("dr-test1", _at(500), duration)


def test_create_rejects_missing_start(service):
    with pytest.raises(InvalidInput, match="start"):
        service.propose_create("dr-test1", None, 30)


@pytest.mark.parametrize("name", ["", "   "])
def test_create_rejects_empty_resource_name(service, name):
    with pytest.raises(InvalidInput):
        service.propose_create(name, _at(500), 30)


def test_invalid_input_is_raised_before_store_access():
    service = SchedulingService(_BrokenStore(), clock=lambda: _NOW)

    with pytest.raises(InvalidInput):
        service.propose_create("dr-test1", _at(0), 0)


def test_create_ending_past_the_calendar_is_invalid_input():
    service = SchedulingService(_BrokenStore(), clock=lambda: _NOW)

    with pytest.raises(InvalidInput, match="out of range"):
        service.propose_create("dr-test1", _NOW, 5_000_000_000)


def test_naive_clock_is_treated_as_utc(store):
    service = SchedulingService(store, clock=lambda: datetime(2026, 6, 1, 12, 0))

    outcome = service.propose_create("dr-test1", _at(0), 30)

    assert outcome.status == ProposalStatus.REJECTED
    assert [s.start for s in outcome.suggestions] == [
        _at(30),
        _at(60),
        _at(120),
        _at(150),
    ]


# ---------------------------------------------------------------------------
# propose_update
# ---------------------------------------------------------------------------


def test_update_onto_taken_slot_is_rejected_and_leaves_booking(service, store):
    outcome = service.propose_update(3, start=_NOW)

    assert outcome.status == ProposalStatus.REJECTED
    assert [s.start for s in outcome.suggestions] == [
        _at(30),
        _at(60),
        _at(90),
        _at(120),
    ]
    assert store.get(3).start == _at(90)


def test_update_with_all_fields(service, store):
    outcome = service.propose_update(
        1,
        resource="dr-test3",
        start=_at(1000),
        duration_minutes=25,
        patient_name="testP",
        description="Exam",
    )

    assert outcome.accepted
    updated = store.get(1)
    assert updated.resource == ResourceRef.named("dr-test3")
    assert updated.start == _at(1000)
    assert updated.duration_minutes == 25
    assert updated.patient_name == "testP"
    assert updated.description == "Exam"


def test_partial_update_keeps_unset_fields(service, store):
    outcome = service.propose_update(1, duration_minutes=25, patient_name="")

    assert outcome.accepted
    updated = store.get(1)
    assert updated.start == _NOW
    assert updated.duration_minutes == 25
    assert updated.resource == ResourceRef.named("dr-test1")
    assert updated.patient_name == "test"
    assert updated.description == "Checkup"


def test_partial_update_does_not_conflict_with_itself(service):
    outcome = service.propose_update(1, description="Follow-up")

    assert outcome.accepted


def test_update_with_shared_resource_keeps_existing_resource(service, store):
    naive_date = datetime(2030, 1, 1, 17, 30)

    outcome = service.propose_update(
        1, resource="All", start=naive_date, duration_minutes=15
    )

    assert outcome.accepted
    updated = store.get(1)
    assert updated.resource == ResourceRef.named("dr-test1")
    assert updated.start == datetime(2030, 1, 1, 17, 30, tzinfo=timezone.utc)
    assert updated.duration_minutes == 15


def test_update_missing_booking_is_not_found(service, store):
    outcome = service.propose_update(6)

    assert outcome.status == ProposalStatus.NOT_FOUND
    assert outcome.suggestions == []
    assert len(store.list_all()) == 3


def test_update_rejects_non_positive_duration(service):
    with pytest.raises(InvalidInput):
        service.propose_update(1, duration_minutes=0)


def test_update_ending_past_the_calendar_is_invalid_input(service, store):
    with pytest.raises(InvalidInput, match="out of range"):
        service.propose_update(1, duration_minutes=5_000_000_000)

    assert store.get(1).duration_minutes == 30


# ---------------------------------------------------------------------------
# delete
# ---------------------------------------------------------------------------


def test_delete_existing_booking(service, store):
    assert service.delete(1) == DeleteStatus.DELETED
    assert len(store.list_all()) == 2


def test_delete_missing_booking_is_not_found(service, store):
    assert service.delete(42) == DeleteStatus.NOT_FOUND
    assert len(store.list_all()) == 3


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


def test_list_for_resource_orders_by_start(service):
    bookings = service.list_for_resource("dr-test1")

    assert [b.id for b in bookings] == [1, 3]


def test_get_missing_booking_returns_none(service):
    assert service.get(99) is None


# ---------------------------------------------------------------------------
# Store failures
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "call",
    [
        lambda s: s.propose_create("dr-test1", _at(0), 30),
        lambda s: s.propose_update(1, start=_at(0)),
        lambda s: s.delete(1),
        lambda s: s.list_all(),
    ],
)
def test_store_errors_surface_as_store_failure(call):
    service = SchedulingService(_BrokenStore(), clock=lambda: _NOW)

    with pytest.raises(StoreFailure, match="An error occurred while") as excinfo:
        call(service)

    assert isinstance(excinfo.value.__cause__, OSError)
