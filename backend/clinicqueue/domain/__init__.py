"""Domain layer of the clinic chair queue."""

from .enums import AppointmentType, DoctorStatus, PatientStatus, Role, Treatment
from .entities import APPOINTMENT_SLOTS, Patient, PatientRegistry
from .services import ClinicQueueService, DoctorAvailabilityController, Outcome, QueueScheduler
from .exceptions import (
    DomainError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)

__all__ = [
    "AppointmentType",
    "DoctorStatus",
    "PatientStatus",
    "Role",
    "Treatment",
    "APPOINTMENT_SLOTS",
    "Patient",
    "PatientRegistry",
    "ClinicQueueService",
    "DoctorAvailabilityController",
    "Outcome",
    "QueueScheduler",
    "DomainError",
    "InvalidTransitionError",
    "NotFoundError",
    "PersistenceError",
    "ValidationError",
]
