from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Dict, List, Optional, Protocol
import logging
import threading

from ..entities import Patient, PatientRegistry, ensure_slot_free, free_slots, validate_registration
from ..enums import BOARD_ORDER, AppointmentType, DoctorStatus, PatientStatus
from ..exceptions import InvalidTransitionError, PersistenceError, ValidationError
from .availability import DoctorAvailabilityController
from .queue_scheduler import QueueScheduler

logger = logging.getLogger(__name__)

INSERT = "insert"
UPDATE = "update"


class PatientStore(Protocol):
    def insert(self, record: Dict) -> None: ...

    def update(self, patient_id: str, fields: Dict) -> None: ...

    def list_for_day(self, clinic_id: str, day: date) -> List[Dict]: ...


@dataclass
class Outcome:
    patient_id: Optional[str]
    promoted_id: Optional[str]
    doctor_status: DoctorStatus
    patients: List[Patient]
    persistence_warning: Optional[str] = None


@dataclass
class ClinicQueueService:
    """Serialized scheduling actor for one clinic-day.

    Every public operation takes the same lock, reads the registry, applies its
    decision and only then writes the touched records to the store. A failed
    write does not undo the decision: the ids stay in ``pending_sync`` and are
    written again by ``reconcile``.
    """

    clinic_id: str
    store: Optional[PatientStore] = None
    recompute_wait_on_read: bool = False
    clock: Callable[[], datetime] = datetime.now
    registry: PatientRegistry = field(default_factory=PatientRegistry)
    scheduler: QueueScheduler = field(default_factory=QueueScheduler)
    availability: DoctorAvailabilityController = field(default_factory=DoctorAvailabilityController)
    pending_sync: Dict[str, str] = field(default_factory=dict)
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    def __post_init__(self) -> None:
        self.availability.scheduler = self.scheduler

    @property
    def doctor_status(self) -> DoctorStatus:
        return self.availability.status

    # --- scheduling operations ---
    def register_patient(
        self,
        name: str,
        phone: str,
        treatment,
        appointment_type,
        scheduled_time: Optional[str] = None,
    ) -> Outcome:
        validate_registration(name, phone, treatment, appointment_type, scheduled_time)
        with self._lock:
            snapshot = self.registry.list()
            if scheduled_time:
                ensure_slot_free(scheduled_time, snapshot)
            status = self.scheduler.compute_initial_status(appointment_type, self.doctor_status, snapshot)
            patient = Patient.new(
                self.clinic_id,
                name,
                phone,
                treatment,
                appointment_type,
                status,
                scheduled_time=scheduled_time,
                now=self.clock(),
            )
            self.registry.add(patient)
            logger.info(
                "Registered %s (%s) as %s", patient.id, patient.appointment_type.value, status.value
            )
            warning = self._persist({patient.id: INSERT})
            return self._outcome(patient.id, None, warning)

    def mark_arrived(self, patient_id: str) -> Outcome:
        with self._lock:
            before = self.registry.get(patient_id).status
            refreshed = self._refresh_waits()
            status = self.scheduler.request_arrival(self.registry, patient_id, self.doctor_status, now=self.clock())
            touched = refreshed + ([patient_id] if status != before else [])
            warning = self._persist({pid: UPDATE for pid in touched})
            return self._outcome(patient_id, None, warning)

    def complete_treatment(self, patient_id: str) -> Outcome:
        with self._lock:
            patient = self.registry.get(patient_id)
            self.scheduler.ensure_transition(patient, PatientStatus.COMPLETED)
            self.registry.apply(patient_id, {"status": PatientStatus.COMPLETED})
            logger.info("Treatment of %s completed", patient_id)
            refreshed = self._refresh_waits()
            promoted = self.scheduler.on_completion(self.registry, patient_id, self.doctor_status)
            touched = [patient_id] + refreshed + ([promoted] if promoted else [])
            warning = self._persist({pid: UPDATE for pid in touched})
            return self._outcome(patient_id, promoted, warning)

    def cancel(self, patient_id: str) -> Outcome:
        with self._lock:
            self.scheduler.cancel(self.registry, patient_id)
            warning = self._persist({patient_id: UPDATE})
            return self._outcome(patient_id, None, warning)

    def toggle_doctor_availability(self) -> Outcome:
        with self._lock:
            refreshed = self._refresh_waits()
            _, promoted = self.availability.toggle(self.registry)
            touched = refreshed + ([promoted] if promoted else [])
            warning = self._persist({pid: UPDATE for pid in touched})
            return self._outcome(None, promoted, warning)

    def update_status(self, patient_id: str, target) -> Outcome:
        try:
            target = PatientStatus(target)
        except ValueError as err:
            raise ValidationError(f"Unknown status: {target}.") from err
        if target == PatientStatus.IN_QUEUE:
            with self._lock:
                if self.registry.get(patient_id).status == PatientStatus.IN_TREATMENT:
                    raise InvalidTransitionError("A seated patient cannot go back to the queue.")
                return self.mark_arrived(patient_id)
        if target == PatientStatus.COMPLETED:
            return self.complete_treatment(patient_id)
        if target == PatientStatus.CANCELLED:
            return self.cancel(patient_id)
        patient = self.get(patient_id)
        if patient.status.is_terminal:
            raise InvalidTransitionError(f"Patient is already {patient.status.value}.")
        if target == PatientStatus.IN_TREATMENT:
            raise InvalidTransitionError("Patients are seated by the scheduler only.")
        raise InvalidTransitionError(f"Cannot move a patient back to {target.value}.")

    # --- reads ---
    def get(self, patient_id: str) -> Patient:
        with self._lock:
            return self.registry.get(patient_id)

    def snapshot(self) -> List[Patient]:
        with self._lock:
            self._refresh_waits()
            return self.registry.list()

    def board(self) -> List[Patient]:
        patients = self.snapshot()
        order = {p.id: i for i, p in enumerate(patients)}
        return sorted(patients, key=lambda p: (BOARD_ORDER[p.status], order[p.id]))

    def available_slots(self) -> List[str]:
        with self._lock:
            return free_slots(self.registry.list())

    def summary(self) -> Dict:
        with self._lock:
            patients = self.snapshot()
            counts = {s.value: 0 for s in PatientStatus}
            for p in patients:
                counts[p.status.value] += 1
            return {
                "clinic_id": self.clinic_id,
                "doctor_status": self.doctor_status,
                "counts": counts,
                "queue_length": counts[PatientStatus.IN_QUEUE.value],
                "completed_today": counts[PatientStatus.COMPLETED.value],
                "walk_ins": sum(1 for p in patients if p.appointment_type == AppointmentType.WALK_IN),
                "in_treatment": next((p for p in patients if p.status == PatientStatus.IN_TREATMENT), None),
            }

    # --- persistence ---
    def hydrate(self, day: Optional[date] = None) -> int:
        if self.store is None:
            return 0
        day = day or self.clock().date()
        with self._lock:
            if len(self.registry):
                raise ValidationError("Registry already holds patients.")
            rows = self.store.list_for_day(self.clinic_id, day)
            for row in rows:
                self.registry.add(Patient.from_record(row))
            logger.info("Hydrated %d patients for clinic %s on %s", len(rows), self.clinic_id, day)
            return len(rows)

    def reconcile(self) -> List[str]:
        """Write again every record whose last write failed; returns the ids still pending."""
        with self._lock:
            if self.pending_sync and self.store is not None:
                pending = dict(self.pending_sync)
                self.pending_sync.clear()
                self._persist(pending)
                logger.info("Reconciled %d patients, %d still pending", len(pending), len(self.pending_sync))
            return sorted(self.pending_sync)

    def _persist(self, changes: Dict[str, str]) -> Optional[str]:
        if self.store is None or not changes:
            return None
        failed = []
        for pid, kind in changes.items():
            # a record whose insert never landed must still be inserted
            if self.pending_sync.get(pid) == INSERT:
                kind = INSERT
            record = self.registry.get(pid).to_record()
            try:
                if kind == INSERT:
                    self.store.insert(record)
                else:
                    self.store.update(pid, {k: record[k] for k in ("status", "arrival_time", "wait_time_minutes")})
            except PersistenceError:
                self.pending_sync[pid] = kind
                failed.append(pid)
            else:
                self.pending_sync.pop(pid, None)
        if not failed:
            return None
        logger.warning("Could not persist patients %s, kept for reconciliation", ", ".join(failed))
        return f"Changes to {len(failed)} patient(s) are not saved yet."

    def _refresh_waits(self) -> List[str]:
        if not self.recompute_wait_on_read:
            return []
        return self.scheduler.refresh_wait_times(self.registry, now=self.clock())

    def _outcome(self, patient_id, promoted_id, warning) -> Outcome:
        return Outcome(
            patient_id=patient_id,
            promoted_id=promoted_id,
            doctor_status=self.doctor_status,
            patients=self.registry.list(),
            persistence_warning=warning,
        )
