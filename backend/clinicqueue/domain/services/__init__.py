from .queue_scheduler import QueueScheduler
from .availability import DoctorAvailabilityController
from .clinic_queue_service import ClinicQueueService, Outcome, PatientStore

__all__ = ["QueueScheduler", "DoctorAvailabilityController", "ClinicQueueService", "Outcome", "PatientStore"]
