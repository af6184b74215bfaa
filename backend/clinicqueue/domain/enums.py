from enum import Enum


class Role(str, Enum):
    DOCTOR = "DOCTOR"
    ASSISTANT = "ASSISTANT"
    ADMIN = "ADMIN"


class PatientStatus(str, Enum):
    BOOKED = "BOOKED"
    IN_QUEUE = "IN_QUEUE"
    IN_TREATMENT = "IN_TREATMENT"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (PatientStatus.COMPLETED, PatientStatus.CANCELLED)


class AppointmentType(str, Enum):
    WALK_IN = "WALK_IN"
    APPOINTMENT = "APPOINTMENT"


class DoctorStatus(str, Enum):
    READY = "READY"
    ON_BREAK = "ON_BREAK"

    def flipped(self) -> "DoctorStatus":
        return DoctorStatus.ON_BREAK if self == DoctorStatus.READY else DoctorStatus.READY


class Treatment(str, Enum):
    GENERAL_CHECK_UP = "General Check-up"
    SCALING = "Scaling"
    FILLING = "Filling"
    ROOT_CANAL = "Root Canal"
    EXTRACTION = "Extraction"
    CROWN = "Crown"
    CUSTOM = "Custom Treatment"


# Allowed status changes per patient. IN_QUEUE -> IN_TREATMENT is reserved to the scheduler.
TRANSITIONS = {
    PatientStatus.BOOKED: {PatientStatus.IN_QUEUE, PatientStatus.CANCELLED},
    PatientStatus.IN_QUEUE: {PatientStatus.IN_TREATMENT, PatientStatus.CANCELLED},
    PatientStatus.IN_TREATMENT: {PatientStatus.COMPLETED, PatientStatus.CANCELLED},
    PatientStatus.COMPLETED: set(),
    PatientStatus.CANCELLED: set(),
}

# Display order used by the front-desk board.
BOARD_ORDER = {
    PatientStatus.IN_TREATMENT: 0,
    PatientStatus.IN_QUEUE: 1,
    PatientStatus.BOOKED: 2,
    PatientStatus.COMPLETED: 3,
    PatientStatus.CANCELLED: 4,
}
