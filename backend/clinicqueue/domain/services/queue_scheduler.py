from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional
import logging

from ..entities import Patient, PatientRegistry
from ..enums import TRANSITIONS, AppointmentType, DoctorStatus, PatientStatus
from ..exceptions import InvalidTransitionError

logger = logging.getLogger(__name__)


@dataclass
class QueueScheduler:
    """Chair scheduling rules for a single doctor and a single treatment chair.

    The scheduler keeps no state of its own: every decision is taken from the
    registry contents at call time, and only the registry is mutated.
    """

    def compute_initial_status(
        self, appointment_type: AppointmentType, doctor_status: DoctorStatus, snapshot: Iterable[Patient]
    ) -> PatientStatus:
        if AppointmentType(appointment_type) == AppointmentType.APPOINTMENT:
            return PatientStatus.BOOKED
        if self._can_seat(doctor_status, snapshot):
            return PatientStatus.IN_TREATMENT
        return PatientStatus.IN_QUEUE

    def request_arrival(
        self,
        registry: PatientRegistry,
        patient_id: str,
        doctor_status: DoctorStatus,
        now: Optional[datetime] = None,
    ) -> PatientStatus:
        patient = registry.get(patient_id)
        if patient.status.is_terminal:
            raise InvalidTransitionError(f"Patient is already {patient.status.value}.")
        if patient.status != PatientStatus.BOOKED:
            # already waiting or seated, nothing to do
            return patient.status

        others = [p for p in registry.list() if p.id != patient_id]
        target = PatientStatus.IN_TREATMENT if self._can_seat(doctor_status, others) else PatientStatus.IN_QUEUE
        changes = {"status": target}
        if not patient.has_arrived:
            changes["arrival_time"] = now or datetime.now()
            changes["wait_time_minutes"] = 0
        registry.apply(patient_id, changes)
        logger.info("Patient %s arrived, status %s", patient_id, target.value)
        return target

    def on_completion(
        self, registry: PatientRegistry, patient_id: str, doctor_status: DoctorStatus
    ) -> Optional[str]:
        completed = registry.get(patient_id)
        if completed.status != PatientStatus.COMPLETED:
            raise InvalidTransitionError("Patient must be completed before the chair is handed over.")
        if doctor_status != DoctorStatus.READY:
            logger.info("Doctor on break, chair left empty after %s", patient_id)
            return None
        candidate = self.select_next(registry.list(), exclude_id=patient_id)
        if candidate is None:
            return None
        registry.apply(candidate.id, {"status": PatientStatus.IN_TREATMENT})
        logger.info("Promoted %s to the chair after completion of %s", candidate.id, patient_id)
        return candidate.id

    def seat_next(self, registry: PatientRegistry) -> Optional[str]:
        """Seat the longest waiter if the chair is empty."""
        snapshot = registry.list()
        if any(p.status == PatientStatus.IN_TREATMENT for p in snapshot):
            return None
        candidate = self.select_next(snapshot)
        if candidate is None:
            return None
        registry.apply(candidate.id, {"status": PatientStatus.IN_TREATMENT})
        return candidate.id

    def cancel(self, registry: PatientRegistry, patient_id: str) -> None:
        patient = registry.get(patient_id)
        self.ensure_transition(patient, PatientStatus.CANCELLED)
        registry.apply(patient_id, {"status": PatientStatus.CANCELLED})
        logger.info("Patient %s cancelled", patient_id)

    def select_next(self, snapshot: Iterable[Patient], exclude_id: Optional[str] = None) -> Optional[Patient]:
        # Longest wait first, then earliest arrival, then registration order.
        waiting = [
            (index, p)
            for index, p in enumerate(snapshot)
            if p.status == PatientStatus.IN_QUEUE and p.id != exclude_id
        ]
        if not waiting:
            return None
        _, best = min(
            waiting,
            key=lambda item: (
                -item[1].wait_time_minutes,
                item[1].arrival_time or datetime.max,
                item[0],
            ),
        )
        return best

    def ensure_transition(self, patient: Patient, target: PatientStatus) -> None:
        if patient.status.is_terminal:
            raise InvalidTransitionError(f"Patient is already {patient.status.value}.")
        if target not in TRANSITIONS[patient.status]:
            raise InvalidTransitionError(
                f"Cannot move patient from {patient.status.value} to {target.value}."
            )

    def refresh_wait_times(self, registry: PatientRegistry, now: Optional[datetime] = None) -> List[str]:
        now = now or datetime.now()
        refreshed = []
        for p in registry.list():
            if p.status != PatientStatus.IN_QUEUE or p.arrival_time is None:
                continue
            minutes = max(0, int((now - p.arrival_time).total_seconds() // 60))
            if minutes != p.wait_time_minutes:
                registry.apply(p.id, {"wait_time_minutes": minutes})
                refreshed.append(p.id)
        return refreshed

    @staticmethod
    def _can_seat(doctor_status: DoctorStatus, snapshot: Iterable[Patient]) -> bool:
        if doctor_status != DoctorStatus.READY:
            return False
        statuses = {p.status for p in snapshot}
        return PatientStatus.IN_TREATMENT not in statuses and PatientStatus.IN_QUEUE not in statuses
