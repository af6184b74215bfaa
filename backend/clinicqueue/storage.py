from datetime import date, datetime, timedelta
from typing import Callable, Dict, Optional, Tuple
import logging
import threading
import uuid

from .config import settings
from .db import Database
from .domain import AppointmentType, ClinicQueueService, Patient, PatientStatus, Treatment
from .domain.exceptions import PersistenceError

logger = logging.getLogger(__name__)


class ClinicStore:
    """Keeps one scheduling service per clinic-day, hydrated from SQLite.

    A service is only valid for the day it was built for; the first call after
    midnight replaces it with a fresh one for the new day.
    """

    def __init__(self, path: Optional[str] = None, clock: Callable[[], datetime] = datetime.now) -> None:
        self.db = Database(path or settings.db_path)
        self.clock = clock
        self.services: Dict[str, Tuple[date, ClinicQueueService]] = {}
        self._lock = threading.Lock()

    def service(self, clinic_id: str) -> ClinicQueueService:
        today = self.clock().date()
        with self._lock:
            current = self.services.get(clinic_id)
            if current and current[0] == today:
                return current[1]
            if current:
                self._retire(current[1], current[0])
            service = ClinicQueueService(
                clinic_id=clinic_id,
                store=self.db,
                recompute_wait_on_read=settings.recompute_wait_on_read,
                clock=self.clock,
            )
            service.hydrate(today)
            if settings.seed_demo_data and not service.registry.list():
                self._seed(service)
            self.services[clinic_id] = (today, service)
            return service

    def _retire(self, service: ClinicQueueService, day: date) -> None:
        pending = service.reconcile()
        if pending:
            logger.warning(
                "Clinic %s closed %s with %d unsaved patients: %s",
                service.clinic_id, day, len(pending), ", ".join(pending),
            )
        logger.info("Clinic %s rolled over from %s", service.clinic_id, day)

    # --- demo data ---
    def _seed(self, service: ClinicQueueService) -> None:
        now = self.clock()
        demo = [
            ("Sarah Connor", "(555) 123-4567", Treatment.ROOT_CANAL, AppointmentType.APPOINTMENT, "09:00",
             PatientStatus.IN_TREATMENT, 30, 15),
            ("John Wick", "(555) 987-6543", Treatment.GENERAL_CHECK_UP, AppointmentType.WALK_IN, None,
             PatientStatus.IN_QUEUE, 45, 45),
            ("Ellen Ripley", "(555) 555-5555", Treatment.SCALING, AppointmentType.APPOINTMENT, "10:30",
             PatientStatus.IN_QUEUE, 5, 5),
            ("Marty McFly", "(555) 888-8888", Treatment.EXTRACTION, AppointmentType.APPOINTMENT, "14:00",
             PatientStatus.BOOKED, None, 0),
        ]
        for offset, (name, phone, treatment, kind, slot, status, arrived_ago, wait) in enumerate(demo):
            patient = Patient(
                _id=str(uuid.uuid4()),
                _clinic_id=service.clinic_id,
                _name=name,
                _phone=phone,
                _treatment=treatment,
                _appointment_type=kind,
                _status=status,
                _scheduled_time=slot,
                _arrival_time=now - timedelta(minutes=arrived_ago) if arrived_ago is not None else None,
                _wait_time_minutes=wait,
                _created_at=now + timedelta(microseconds=offset),
            )
            service.registry.add(patient)
            try:
                self.db.insert(patient.to_record())
            except PersistenceError:
                service.pending_sync[patient.id] = "insert"
        logger.info("Seeded %d demo patients for clinic %s", len(demo), service.clinic_id)


store = ClinicStore()
