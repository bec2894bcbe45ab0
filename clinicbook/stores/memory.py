"""In-process stores for tests and local tooling.

Bookings are serialised with an asyncio.Lock around the re-check and insert,
which only holds within a single event loop.
"""

import asyncio
import itertools
from datetime import datetime

from clinicbook.core.errors import AppointmentNotFound, SlotUnavailable
from clinicbook.models.appointment import Appointment, AppointmentCreate, AppointmentStatus
from clinicbook.models.schedule import DaySchedule, WeeklySchedule, check_weekday
from clinicbook.services.conflict_service import overlaps


def _copy(a: Appointment) -> Appointment:
    return Appointment(**a.model_dump())


class InMemoryScheduleStore:
    def __init__(self) -> None:
        self._days: dict[str, dict[int, DaySchedule]] = {}

    async def get_weekly_schedule(self, doctor_id: str) -> WeeklySchedule:
        days = self._days.get(doctor_id)
        if days is None:
            return WeeklySchedule.empty(doctor_id)
        return WeeklySchedule(doctor_id=doctor_id, days=dict(days))

    async def set_day_schedule(self, doctor_id: str, weekday: int, day: DaySchedule | None) -> None:
        check_weekday(weekday)
        days = self._days.setdefault(doctor_id, {})
        if day is None:
            days.pop(weekday, None)
        else:
            days[weekday] = day

    async def replace_weekly_schedule(self, doctor_id: str, days: dict[int, DaySchedule]) -> None:
        for weekday in days:
            check_weekday(weekday)
        self._days[doctor_id] = dict(days)


class InMemoryAppointmentStore:
    def __init__(self) -> None:
        self._rows: dict[int, Appointment] = {}
        self._ids = itertools.count(1)
        self._lock = asyncio.Lock()

    async def get(self, appointment_id: int) -> Appointment | None:
        row = self._rows.get(appointment_id)
        return _copy(row) if row is not None else None

    async def query_by_doctor_and_range(self, doctor_id: str, start: datetime, end: datetime) -> list[Appointment]:
        found = [a for a in self._rows.values() if a.doctor_id == doctor_id and start <= a.start_time < end]
        return [_copy(a) for a in sorted(found, key=lambda a: a.start_time)]

    async def query_by_patient(self, patient_id: str) -> list[Appointment]:
        found = [a for a in self._rows.values() if a.patient_id == patient_id]
        return [_copy(a) for a in sorted(found, key=lambda a: a.start_time, reverse=True)]

    async def insert_if_available(self, data: AppointmentCreate) -> Appointment:
        async with self._lock:
            for a in self._rows.values():
                if (
                    a.doctor_id == data.doctor_id
                    and a.is_active
                    and overlaps(a.start_time, a.duration_minutes, data.start_time, data.duration_minutes)
                ):
                    raise SlotUnavailable(data.doctor_id, data.start_time, data.duration_minutes)
            appointment = Appointment(**data.model_dump(), id=next(self._ids), status=AppointmentStatus.PENDING)
            self._rows[appointment.id] = appointment
            return _copy(appointment)

    async def update_status(
        self,
        appointment_id: int,
        new_status: AppointmentStatus,
        expected_status: AppointmentStatus | None = None,
    ) -> bool:
        async with self._lock:
            row = self._rows.get(appointment_id)
            if row is None:
                raise AppointmentNotFound(appointment_id)
            if expected_status is not None and row.status != expected_status:
                return False
            row.status = new_status
            return True
