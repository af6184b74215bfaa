from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .domain import AppointmentType, DoctorStatus, PatientStatus, Treatment


class PatientCreate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    treatment: Treatment = Treatment.GENERAL_CHECK_UP
    appointment_type: AppointmentType = AppointmentType.WALK_IN
    scheduled_time: Optional[str] = Field(None, description="HH:MM slot, appointments only")


class StatusRequest(BaseModel):
    status: PatientStatus


class PatientOut(BaseModel):
    id: str
    clinic_id: str
    name: str
    phone: str
    treatment: Treatment
    appointment_type: AppointmentType
    scheduled_time: Optional[str] = None
    status: PatientStatus
    arrival_time: Optional[datetime] = None
    wait_time_minutes: int = 0
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OutcomeOut(BaseModel):
    patient_id: Optional[str] = None
    promoted_id: Optional[str] = None
    doctor_status: DoctorStatus
    patients: List[PatientOut]
    persistence_warning: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class DoctorOut(BaseModel):
    status: DoctorStatus


class SummaryOut(BaseModel):
    clinic_id: str
    doctor_status: DoctorStatus
    counts: Dict[str, int]
    queue_length: int
    completed_today: int
    walk_ins: int
    in_treatment: Optional[PatientOut] = None

    model_config = ConfigDict(from_attributes=True)


class ReconcileOut(BaseModel):
    pending: List[str]


class ApiState(BaseModel):
    doctor_status: DoctorStatus
    patients: List[PatientOut]
    slots: List[str]
    summary: SummaryOut
