"""Interfaces of the external stores the scheduling core talks to.

Services receive implementations through their constructors; see
``clinicbook.stores.sql`` for the database-backed ones and
``clinicbook.stores.memory`` for in-process ones.
"""

from datetime import datetime
from typing import Protocol

from clinicbook.models.appointment import Appointment, AppointmentCreate, AppointmentStatus
from clinicbook.models.schedule import DaySchedule, WeeklySchedule


class ScheduleStore(Protocol):
    async def get_weekly_schedule(self, doctor_id: str) -> WeeklySchedule:
        """Return the doctor's schedule; an unknown doctor yields an empty schedule."""
        ...

    async def set_day_schedule(self, doctor_id: str, weekday: int, day: DaySchedule | None) -> None:
        """Replace one weekday; ``None`` removes it."""
        ...

    async def replace_weekly_schedule(self, doctor_id: str, days: dict[int, DaySchedule]) -> None:
        """Replace the whole week at once; weekdays missing from ``days`` lose their schedule."""
        ...


class AppointmentStore(Protocol):
    async def get(self, appointment_id: int) -> Appointment | None: ...

    async def query_by_doctor_and_range(
        self, doctor_id: str, start: datetime, end: datetime
    ) -> list[Appointment]:
        """Appointments of any status with ``start <= start_time < end``, ascending by start time."""
        ...

    async def query_by_patient(self, patient_id: str) -> list[Appointment]:
        """All appointments of a patient, most recent start time first."""
        ...

    async def insert_if_available(self, data: AppointmentCreate) -> Appointment:
        """Insert a pending appointment unless it overlaps an active one of the same doctor.

        Check and insert are atomic with respect to concurrent callers.
        Raises SlotUnavailable on conflict.
        """
        ...

    async def update_status(
        self,
        appointment_id: int,
        new_status: AppointmentStatus,
        expected_status: AppointmentStatus | None = None,
    ) -> bool:
        """Set the status. Returns False if ``expected_status`` no longer matches.

        Raises AppointmentNotFound for unknown ids.
        """
        ...
