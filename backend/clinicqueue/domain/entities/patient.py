from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional
import uuid

from ..enums import AppointmentType, PatientStatus, Treatment
from ..exceptions import ValidationError

# Fields the scheduler is allowed to change after registration.
MUTABLE_FIELDS = ("status", "arrival_time", "wait_time_minutes")


@dataclass
class Patient:
    _id: str
    _clinic_id: str
    _name: str
    _phone: str
    _treatment: Treatment
    _appointment_type: AppointmentType
    _status: PatientStatus
    _scheduled_time: Optional[str] = None
    _arrival_time: Optional[datetime] = None
    _wait_time_minutes: int = 0
    _created_at: datetime = field(default_factory=datetime.now)

    @property
    def id(self) -> str:
        return self._id

    @property
    def clinic_id(self) -> str:
        return self._clinic_id

    @property
    def name(self) -> str:
        return self._name

    @property
    def phone(self) -> str:
        return self._phone

    @property
    def treatment(self) -> Treatment:
        return self._treatment

    @property
    def appointment_type(self) -> AppointmentType:
        return self._appointment_type

    @property
    def scheduled_time(self) -> Optional[str]:
        return self._scheduled_time

    @property
    def status(self) -> PatientStatus:
        return self._status

    @property
    def arrival_time(self) -> Optional[datetime]:
        return self._arrival_time

    @property
    def wait_time_minutes(self) -> int:
        return self._wait_time_minutes

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @property
    def has_arrived(self) -> bool:
        return self._arrival_time is not None

    def apply(self, changes: Dict[str, Any]) -> None:
        for name, value in changes.items():
            if name not in MUTABLE_FIELDS:
                raise ValidationError(f"Field '{name}' cannot be changed.")
            if name == "arrival_time" and self._arrival_time is not None and value != self._arrival_time:
                raise ValidationError("Arrival time is already set.")
            if name == "wait_time_minutes" and value < 0:
                raise ValidationError("Wait time cannot be negative.")
        for name, value in changes.items():
            setattr(self, f"_{name}", value)

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self._id,
            "clinic_id": self._clinic_id,
            "name": self._name,
            "phone": self._phone,
            "treatment": self._treatment.value,
            "appointment_type": self._appointment_type.value,
            "scheduled_time": self._scheduled_time,
            "status": self._status.value,
            "arrival_time": self._arrival_time,
            "wait_time_minutes": self._wait_time_minutes,
            "created_at": self._created_at,
        }

    @staticmethod
    def from_record(row: Dict[str, Any]) -> "Patient":
        return Patient(
            _id=row["id"],
            _clinic_id=row["clinic_id"],
            _name=row["name"],
            _phone=row["phone"],
            _treatment=Treatment(row["treatment"]),
            _appointment_type=AppointmentType(row["appointment_type"]),
            _status=PatientStatus(row["status"]),
            _scheduled_time=row.get("scheduled_time"),
            _arrival_time=row.get("arrival_time"),
            _wait_time_minutes=row.get("wait_time_minutes") or 0,
            _created_at=row["created_at"],
        )

    @staticmethod
    def new(
        clinic_id: str,
        name: str,
        phone: str,
        treatment,
        appointment_type,
        status: PatientStatus,
        scheduled_time: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> "Patient":
        now = now or datetime.now()
        arrived = status in (PatientStatus.IN_QUEUE, PatientStatus.IN_TREATMENT)
        return Patient(
            _id=str(uuid.uuid4()),
            _clinic_id=clinic_id,
            _name=name.strip(),
            _phone=phone.strip(),
            _treatment=Treatment(treatment),
            _appointment_type=AppointmentType(appointment_type),
            _status=status,
            _scheduled_time=scheduled_time,
            _arrival_time=now if arrived else None,
            _wait_time_minutes=0,
            _created_at=now,
        )


def validate_registration(
    name: Optional[str],
    phone: Optional[str],
    treatment,
    appointment_type,
    scheduled_time: Optional[str],
) -> None:
    if not name or not name.strip():
        raise ValidationError("Patient name is required.")
    if not phone or not phone.strip():
        raise ValidationError("Patient phone is required.")
    try:
        Treatment(treatment)
    except ValueError as err:
        raise ValidationError(f"Unknown treatment: {treatment}.") from err
    try:
        kind = AppointmentType(appointment_type)
    except ValueError as err:
        raise ValidationError(f"Unknown appointment type: {appointment_type}.") from err
    if kind == AppointmentType.APPOINTMENT and not scheduled_time:
        raise ValidationError("Appointments require a scheduled time.")
    if kind == AppointmentType.WALK_IN and scheduled_time:
        raise ValidationError("Walk-ins cannot carry a scheduled time.")
