from clinicbook.models.appointment import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    Appointment,
    AppointmentCreate,
    AppointmentPublic,
    AppointmentStatus,
    DoctorBookingLock,
)
from clinicbook.models.schedule import DaySchedule, DayScheduleRecord, UnavailableReason, WeeklySchedule

__all__ = [
    "ALLOWED_TRANSITIONS",
    "TERMINAL_STATUSES",
    "Appointment",
    "AppointmentCreate",
    "AppointmentPublic",
    "AppointmentStatus",
    "DaySchedule",
    "DayScheduleRecord",
    "DoctorBookingLock",
    "UnavailableReason",
    "WeeklySchedule",
]
