from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List

from ..exceptions import NotFoundError, ValidationError
from .patient import Patient


@dataclass
class PatientRegistry:
    """Patients of one clinic-day, kept in registration order."""

    _patients: Dict[str, Patient] = field(default_factory=dict)

    def add(self, patient: Patient) -> str:
        if patient.id in self._patients:
            raise ValidationError("Patient already registered.")
        self._patients[patient.id] = patient
        return patient.id

    def get(self, patient_id: str) -> Patient:
        if patient_id not in self._patients:
            raise NotFoundError("Patient not found.")
        return self._patients[patient_id]

    def list(self) -> List[Patient]:
        return list(self._patients.values())

    def apply(self, patient_id: str, fields: Dict[str, Any]) -> Patient:
        patient = self.get(patient_id)
        patient.apply(fields)
        return patient

    def __len__(self) -> int:
        return len(self._patients)
