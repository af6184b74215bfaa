from .patient import Patient, validate_registration
from .registry import PatientRegistry
from .slots import APPOINTMENT_SLOTS, ensure_slot_free, free_slots

__all__ = [
    "Patient",
    "PatientRegistry",
    "validate_registration",
    "APPOINTMENT_SLOTS",
    "ensure_slot_free",
    "free_slots",
]
