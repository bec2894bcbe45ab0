"""Error kinds raised by the scheduling core.

Missing or mismatched schedules are not errors: they are folded into an empty
slot list and described by :class:`clinicbook.models.schedule.UnavailableReason`.
"""

from datetime import datetime


class SchedulingError(Exception):
    """Base class for every error the scheduling core raises."""


class InvalidDuration(SchedulingError, ValueError):
    def __init__(self, duration_minutes: int, maximum: int | None = None) -> None:
        self.duration_minutes = duration_minutes
        self.maximum = maximum
        if maximum is not None and duration_minutes > maximum:
            msg = f"Duration {duration_minutes} min exceeds the maximum of {maximum} min"
        else:
            msg = f"Duration must be a positive number of minutes, got {duration_minutes}"
        super().__init__(msg)


class SlotUnavailable(SchedulingError):
    def __init__(self, doctor_id: str, start_time: datetime, duration_minutes: int) -> None:
        self.doctor_id = doctor_id
        self.start_time = start_time
        self.duration_minutes = duration_minutes
        super().__init__(
            f"Doctor {doctor_id} is not available at {start_time.isoformat()} for {duration_minutes} min"
        )


class AppointmentNotFound(SchedulingError, LookupError):
    def __init__(self, appointment_id: int) -> None:
        self.appointment_id = appointment_id
        super().__init__(f"Appointment {appointment_id} not found")


class InvalidStatusTransition(SchedulingError):
    def __init__(self, appointment_id: int, current: str, requested: str) -> None:
        self.appointment_id = appointment_id
        self.current = current
        self.requested = requested
        super().__init__(f"Appointment {appointment_id} cannot move from {current} to {requested}")


class PersistenceError(SchedulingError):
    """Store-layer failure. The core never retries these."""
