from __future__ import annotations
from typing import Iterable, List, Optional

from ..enums import AppointmentType
from ..exceptions import ValidationError


def _build_slots(first_hour: int = 9, last_hour: int = 17, step: int = 30) -> List[str]:
    slots = []
    minutes = first_hour * 60
    while minutes <= last_hour * 60:
        slots.append(f"{minutes // 60:02d}:{minutes % 60:02d}")
        minutes += step
    return slots


APPOINTMENT_SLOTS = _build_slots()


def held_slots(patients: Iterable, ignore_id: Optional[str] = None) -> set:
    return {
        p.scheduled_time
        for p in patients
        if p.appointment_type == AppointmentType.APPOINTMENT
        and p.scheduled_time
        and not p.status.is_terminal
        and p.id != ignore_id
    }


def free_slots(patients: Iterable) -> List[str]:
    taken = held_slots(patients)
    return [s for s in APPOINTMENT_SLOTS if s not in taken]


def ensure_slot_free(scheduled_time: str, patients: Iterable) -> None:
    if scheduled_time not in APPOINTMENT_SLOTS:
        raise ValidationError(f"Invalid time slot: {scheduled_time}.")
    if scheduled_time in held_slots(patients):
        raise ValidationError(f"Time slot {scheduled_time} is already booked.")
