from datetime import datetime

from pydantic import BaseModel, Field

from clinicbook.core.config import settings
from clinicbook.models.appointment import AppointmentStatus
from clinicbook.models.schedule import UnavailableReason


class SlotInfo(BaseModel):
    start: datetime
    end: datetime


class AvailableSlotsResponse(BaseModel):
    date: str  # YYYY-MM-DD
    doctor_id: str
    clinic_id: str
    slot_duration_minutes: int
    slots: list[SlotInfo]
    # Set when the doctor has no schedule for this clinic/day
    reason: UnavailableReason | None = None


def _default_duration() -> int:
    return settings.default_slot_duration_minutes


class BookAppointmentRequest(BaseModel):
    patient_id: str
    doctor_id: str
    clinic_id: str
    start_time: datetime
    duration_minutes: int = Field(default_factory=_default_duration)
    notes: str | None = None


class StatusUpdateRequest(BaseModel):
    status: AppointmentStatus
