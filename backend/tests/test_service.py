# -*- coding: utf-8 -*-
import os
import sys
from datetime import datetime, timedelta

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from clinicqueue.db import Database
from clinicqueue.domain import (
    AppointmentType,
    ClinicQueueService,
    DoctorStatus,
    InvalidTransitionError,
    NotFoundError,
    PatientStatus,
    PersistenceError,
    Treatment,
    ValidationError,
)


class Clock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: int) -> None:
        self.now += timedelta(minutes=minutes)


class FlakyStore:
    """In-memory store that can be switched to fail every write."""

    def __init__(self) -> None:
        self.rows = {}
        self.failing = False

    def insert(self, record):
        if self.failing:
            raise PersistenceError("store offline")
        self.rows[record["id"]] = dict(record)

    def update(self, patient_id, fields):
        if self.failing:
            raise PersistenceError("store offline")
        self.rows[patient_id].update(fields)

    def list_for_day(self, clinic_id, day):
        return [r for r in self.rows.values() if r["clinic_id"] == clinic_id and r["created_at"].date() == day]


@pytest.fixture
def clock():
    return Clock(datetime(2026, 10, 19, 9, 0))


@pytest.fixture
def db(tmp_path):
    return Database(str(tmp_path / "queue.db"))


@pytest.fixture
def service(db, clock):
    return ClinicQueueService(clinic_id="main", store=db, clock=clock)


def walk_in(service, name="Walk In"):
    return service.register_patient(name, "555-0000", Treatment.SCALING, AppointmentType.WALK_IN)


def booking(service, slot, name="Booked"):
    return service.register_patient(name, "555-1111", Treatment.CROWN, AppointmentType.APPOINTMENT, slot)


def statuses(service):
    return {p.name: p.status for p in service.snapshot()}


def assert_single_chair(service):
    assert sum(1 for p in service.snapshot() if p.status == PatientStatus.IN_TREATMENT) <= 1


def test_first_walk_in_is_seated_and_next_ones_queue(service):
    first = walk_in(service, "Ana")
    second = walk_in(service, "Bruno")
    assert first.patients[0].status == PatientStatus.IN_TREATMENT
    assert service.get(second.patient_id).status == PatientStatus.IN_QUEUE
    assert service.get(first.patient_id).arrival_time is not None
    assert_single_chair(service)


def test_registration_requires_name_phone_and_slot(service):
    with pytest.raises(ValidationError):
        service.register_patient("", "555", Treatment.FILLING, AppointmentType.WALK_IN)
    with pytest.raises(ValidationError):
        service.register_patient("Ana", "  ", Treatment.FILLING, AppointmentType.WALK_IN)
    with pytest.raises(ValidationError):
        service.register_patient("Ana", "555", Treatment.FILLING, AppointmentType.APPOINTMENT)
    with pytest.raises(ValidationError):
        service.register_patient("Ana", "555", Treatment.FILLING, AppointmentType.WALK_IN, "09:00")
    with pytest.raises(ValidationError):
        service.register_patient("Ana", "555", "Whitening", AppointmentType.WALK_IN)
    assert service.snapshot() == []


def test_appointment_slot_cannot_be_double_booked(service):
    booked = booking(service, "10:30")
    assert service.get(booked.patient_id).status == PatientStatus.BOOKED
    assert "10:30" not in service.available_slots()
    with pytest.raises(ValidationError):
        booking(service, "10:30", "Other")
    with pytest.raises(ValidationError):
        booking(service, "10:15", "Other")
    service.cancel(booked.patient_id)
    assert "10:30" in service.available_slots()


def test_full_day_flow_keeps_one_patient_in_chair(service, clock):
    a = walk_in(service, "A").patient_id
    clock.advance(5)
    b = walk_in(service, "B").patient_id
    c = booking(service, "09:30", "C").patient_id
    clock.advance(10)
    service.mark_arrived(c)
    assert statuses(service) == {
        "A": PatientStatus.IN_TREATMENT,
        "B": PatientStatus.IN_QUEUE,
        "C": PatientStatus.IN_QUEUE,
    }

    outcome = service.complete_treatment(a)
    # equal static waits: earliest arrival wins
    assert outcome.promoted_id == b
    assert_single_chair(service)

    outcome = service.complete_treatment(b)
    assert outcome.promoted_id == c
    outcome = service.complete_treatment(c)
    assert outcome.promoted_id is None
    assert service.summary()["completed_today"] == 3


def test_completion_cascade_picks_longest_wait(service):
    p0 = walk_in(service, "P0").patient_id
    p1 = walk_in(service, "P1").patient_id
    p2 = walk_in(service, "P2").patient_id
    service.registry.apply(p1, {"wait_time_minutes": 45})
    service.registry.apply(p2, {"wait_time_minutes": 5})
    outcome = service.complete_treatment(p0)
    assert outcome.promoted_id == p1
    assert statuses(service) == {
        "P0": PatientStatus.COMPLETED,
        "P1": PatientStatus.IN_TREATMENT,
        "P2": PatientStatus.IN_QUEUE,
    }


def test_break_suppresses_cascade_until_doctor_returns(service):
    p0 = walk_in(service, "P0").patient_id
    p1 = walk_in(service, "P1").patient_id
    p2 = walk_in(service, "P2").patient_id
    service.registry.apply(p1, {"wait_time_minutes": 45})
    service.registry.apply(p2, {"wait_time_minutes": 5})

    assert service.toggle_doctor_availability().doctor_status == DoctorStatus.ON_BREAK
    outcome = service.complete_treatment(p0)
    assert outcome.promoted_id is None
    assert all(p.status != PatientStatus.IN_TREATMENT for p in outcome.patients)

    outcome = service.toggle_doctor_availability()
    assert outcome.doctor_status == DoctorStatus.READY
    assert outcome.promoted_id == p1
    assert service.get(p2).status == PatientStatus.IN_QUEUE


def test_walk_in_during_break_waits(service):
    service.toggle_doctor_availability()
    outcome = walk_in(service)
    assert service.get(outcome.patient_id).status == PatientStatus.IN_QUEUE


def test_mark_arrived_twice_changes_nothing(service, clock):
    walk_in(service, "Seated")
    booked = booking(service, "11:00").patient_id
    service.mark_arrived(booked)
    first = service.get(booked)
    arrival, wait = first.arrival_time, first.wait_time_minutes
    clock.advance(30)
    service.mark_arrived(booked)
    again = service.get(booked)
    assert again.status == PatientStatus.IN_QUEUE
    assert again.arrival_time == arrival
    assert again.wait_time_minutes == wait


def test_invalid_transitions_are_rejected_without_side_effects(service):
    seated = walk_in(service, "Seated").patient_id
    waiting = walk_in(service, "Waiting").patient_id
    booked = booking(service, "12:00").patient_id
    with pytest.raises(InvalidTransitionError):
        service.update_status(waiting, PatientStatus.IN_TREATMENT)
    with pytest.raises(InvalidTransitionError):
        service.complete_treatment(waiting)
    with pytest.raises(InvalidTransitionError):
        service.update_status(booked, PatientStatus.BOOKED)
    with pytest.raises(NotFoundError):
        service.complete_treatment("missing")
    service.complete_treatment(seated)
    with pytest.raises(InvalidTransitionError):
        service.cancel(seated)
    with pytest.raises(InvalidTransitionError):
        service.mark_arrived(seated)
    assert service.get(waiting).status == PatientStatus.IN_TREATMENT


def test_update_status_routes_to_operations(service):
    seated = walk_in(service, "Seated").patient_id
    booked = booking(service, "13:00").patient_id
    assert service.update_status(booked, "IN_QUEUE").patients[1].status == PatientStatus.IN_QUEUE
    outcome = service.update_status(seated, PatientStatus.COMPLETED)
    assert outcome.promoted_id == booked
    service.update_status(booked, PatientStatus.CANCELLED)
    assert service.get(booked).status == PatientStatus.CANCELLED
    with pytest.raises(ValidationError):
        service.update_status(booked, "LOST")


def test_cancelling_seated_patient_does_not_promote(service):
    seated = walk_in(service, "Seated").patient_id
    waiting = walk_in(service, "Waiting").patient_id
    outcome = service.cancel(seated)
    assert outcome.promoted_id is None
    assert service.get(waiting).status == PatientStatus.IN_QUEUE


def test_board_orders_by_status(service):
    booking(service, "09:00", "Booked")
    walk_in(service, "Seated")
    walk_in(service, "Waiting")
    assert [p.name for p in service.board()] == ["Seated", "Waiting", "Booked"]


def test_state_is_written_through_and_hydrated(db, clock):
    service = ClinicQueueService(clinic_id="main", store=db, clock=clock)
    a = walk_in(service, "A").patient_id
    b = walk_in(service, "B").patient_id
    service.complete_treatment(a)

    rows = db.list_for_day("main", clock().date())
    assert [r["name"] for r in rows] == ["A", "B"]
    assert rows[0]["status"] == "COMPLETED"
    assert rows[1]["status"] == "IN_TREATMENT"

    restored = ClinicQueueService(clinic_id="main", store=db, clock=clock)
    assert restored.hydrate() == 2
    assert restored.get(b).status == PatientStatus.IN_TREATMENT
    assert restored.get(b).arrival_time == service.get(b).arrival_time
    assert db.list_for_day("other", clock().date()) == []
    assert db.list_for_day("main", clock().date() + timedelta(days=1)) == []


def test_failed_writes_are_reported_and_reconciled(clock):
    store = FlakyStore()
    service = ClinicQueueService(clinic_id="main", store=store, clock=clock)
    a = walk_in(service, "A").patient_id

    store.failing = True
    outcome = walk_in(service, "B")
    assert outcome.persistence_warning
    b = outcome.patient_id
    assert service.get(b).status == PatientStatus.IN_QUEUE
    outcome = service.complete_treatment(a)
    assert outcome.promoted_id == b
    assert service.reconcile() == sorted([a, b])

    store.failing = False
    assert service.reconcile() == []
    assert store.rows[a]["status"] == "COMPLETED"
    assert store.rows[b]["status"] == "IN_TREATMENT"


def test_recompute_wait_on_read(db, clock):
    service = ClinicQueueService(clinic_id="main", store=db, clock=clock, recompute_wait_on_read=True)
    seated = walk_in(service, "Seated").patient_id
    early = walk_in(service, "Early").patient_id
    clock.advance(20)
    late = walk_in(service, "Late").patient_id
    clock.advance(7)
    waits = {p.name: p.wait_time_minutes for p in service.snapshot()}
    assert waits["Early"] == 27
    assert waits["Late"] == 7
    assert service.complete_treatment(seated).promoted_id == early
    assert service.get(late).status == PatientStatus.IN_QUEUE


def test_status_route_cannot_send_seated_patient_back_to_queue(service):
    seated = walk_in(service, "Seated").patient_id
    waiting = walk_in(service, "Waiting").patient_id
    with pytest.raises(InvalidTransitionError):
        service.update_status(seated, PatientStatus.IN_QUEUE)
    assert service.get(seated).status == PatientStatus.IN_TREATMENT
    # repeated arrival of a queued patient stays a no-op
    outcome = service.update_status(waiting, PatientStatus.IN_QUEUE)
    assert outcome.persistence_warning is None
    assert service.get(waiting).status == PatientStatus.IN_QUEUE
