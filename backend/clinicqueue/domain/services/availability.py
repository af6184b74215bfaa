from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Tuple
import logging

from ..entities import PatientRegistry
from ..enums import DoctorStatus
from .queue_scheduler import QueueScheduler

logger = logging.getLogger(__name__)


@dataclass
class DoctorAvailabilityController:
    status: DoctorStatus = DoctorStatus.READY
    scheduler: QueueScheduler = field(default_factory=QueueScheduler)

    def toggle(self, registry: PatientRegistry) -> Tuple[DoctorStatus, Optional[str]]:
        self.status = self.status.flipped()
        logger.info("Doctor is now %s", self.status.value)
        if self.status != DoctorStatus.READY:
            # an ongoing treatment is left as is
            return self.status, None
        promoted = self.scheduler.seat_next(registry)
        if promoted:
            logger.info("Promoted %s to the chair on doctor return", promoted)
        return self.status, promoted
