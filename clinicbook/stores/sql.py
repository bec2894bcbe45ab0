"""SQLAlchemy-backed stores.

Double bookings are prevented inside the booking transaction: it first bumps the
doctor's row in ``doctor_booking_locks``, which makes concurrent bookings of the
same doctor wait for each other, then re-reads the overlapping appointments and
inserts only if none is active.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta

from sqlalchemy import delete, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clinicbook.core.config import settings
from clinicbook.core.errors import AppointmentNotFound, PersistenceError, SlotUnavailable
from clinicbook.models.appointment import (
    Appointment,
    AppointmentCreate,
    AppointmentStatus,
    DoctorBookingLock,
)
from clinicbook.models.schedule import DaySchedule, DayScheduleRecord, WeeklySchedule, check_weekday
from clinicbook.services.conflict_service import check_duration, overlaps

logger = logging.getLogger(__name__)


class _SqlStore:
    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self.session_maker = session_maker

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        """One session and one transaction; commits on success, rolls back on any error."""
        async with self.session_maker() as session:
            try:
                async with session.begin():
                    yield session
            except SQLAlchemyError as e:
                logger.exception("Store operation failed: %s", e)
                raise PersistenceError(f"{type(e).__name__}: {e}") from e


class SqlScheduleStore(_SqlStore):
    async def get_weekly_schedule(self, doctor_id: str) -> WeeklySchedule:
        async with self._transaction() as session:
            result = await session.execute(
                select(DayScheduleRecord).where(DayScheduleRecord.doctor_id == doctor_id)
            )
            rows = result.scalars().all()
        return WeeklySchedule(doctor_id=doctor_id, days={r.weekday: r.to_day_schedule() for r in rows})

    async def set_day_schedule(self, doctor_id: str, weekday: int, day: DaySchedule | None) -> None:
        check_weekday(weekday)
        async with self._transaction() as session:
            result = await session.execute(
                select(DayScheduleRecord).where(
                    DayScheduleRecord.doctor_id == doctor_id,
                    DayScheduleRecord.weekday == weekday,
                )
            )
            record = result.scalar_one_or_none()
            if day is None:
                if record is not None:
                    await session.delete(record)
                return
            if record is None:
                session.add(DayScheduleRecord(doctor_id=doctor_id, weekday=weekday, **day.model_dump()))
                return
            for field, value in day.model_dump().items():
                setattr(record, field, value)

    async def replace_weekly_schedule(self, doctor_id: str, days: dict[int, DaySchedule]) -> None:
        for weekday in days:
            check_weekday(weekday)
        async with self._transaction() as session:
            await session.execute(delete(DayScheduleRecord).where(DayScheduleRecord.doctor_id == doctor_id))
            session.add_all(
                DayScheduleRecord(doctor_id=doctor_id, weekday=weekday, **day.model_dump())
                for weekday, day in sorted(days.items())
            )


class SqlAppointmentStore(_SqlStore):
    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        max_duration_minutes: int | None = None,
    ) -> None:
        super().__init__(session_maker)
        # Look-back when re-reading appointments that may still be running at a new start
        self.max_duration_minutes = max_duration_minutes or settings.max_appointment_duration_minutes

    async def get(self, appointment_id: int) -> Appointment | None:
        async with self._transaction() as session:
            return await session.get(Appointment, appointment_id)

    async def query_by_doctor_and_range(self, doctor_id: str, start: datetime, end: datetime) -> list[Appointment]:
        async with self._transaction() as session:
            result = await session.execute(
                select(Appointment)
                .where(
                    Appointment.doctor_id == doctor_id,
                    Appointment.start_time >= start,
                    Appointment.start_time < end,
                )
                .order_by(Appointment.start_time)
            )
            return list(result.scalars().all())

    async def query_by_patient(self, patient_id: str) -> list[Appointment]:
        async with self._transaction() as session:
            result = await session.execute(
                select(Appointment)
                .where(Appointment.patient_id == patient_id)
                .order_by(Appointment.start_time.desc())
            )
            return list(result.scalars().all())

    async def _lock_doctor(self, session: AsyncSession, doctor_id: str) -> None:
        """Hold the doctor's booking lock until the transaction ends.

        The UPDATE takes a row lock on PostgreSQL and the write lock on SQLite,
        so a second booking for the same doctor blocks here until we commit.
        """
        insert = sqlite_insert if session.get_bind().dialect.name == "sqlite" else pg_insert
        await session.execute(
            insert(DoctorBookingLock)
            .values(doctor_id=doctor_id, bookings=0)
            .on_conflict_do_nothing(index_elements=["doctor_id"])
        )
        await session.execute(
            update(DoctorBookingLock)
            .where(DoctorBookingLock.doctor_id == doctor_id)
            .values(bookings=DoctorBookingLock.bookings + 1)
            .execution_options(synchronize_session=False)
        )

    async def insert_if_available(self, data: AppointmentCreate) -> Appointment:
        check_duration(data.duration_minutes, self.max_duration_minutes)
        appointment = Appointment(**data.model_dump(), status=AppointmentStatus.PENDING)
        async with self._transaction() as session:
            await self._lock_doctor(session, data.doctor_id)
            result = await session.execute(
                select(Appointment).where(
                    Appointment.doctor_id == data.doctor_id,
                    Appointment.status != AppointmentStatus.CANCELLED,
                    Appointment.start_time >= data.start_time - timedelta(minutes=self.max_duration_minutes),
                    Appointment.start_time < data.end_time,
                )
            )
            for existing in result.scalars():
                if overlaps(existing.start_time, existing.duration_minutes, data.start_time, data.duration_minutes):
                    logger.debug("Doctor %s already booked by appointment %s", data.doctor_id, existing.id)
                    raise SlotUnavailable(data.doctor_id, data.start_time, data.duration_minutes)
            session.add(appointment)
            await session.flush()
        return appointment

    async def update_status(
        self,
        appointment_id: int,
        new_status: AppointmentStatus,
        expected_status: AppointmentStatus | None = None,
    ) -> bool:
        async with self._transaction() as session:
            stmt = update(Appointment).where(Appointment.id == appointment_id)
            if expected_status is not None:
                stmt = stmt.where(Appointment.status == expected_status)
            result = await session.execute(
                stmt.values(status=new_status).execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                if await session.get(Appointment, appointment_id) is None:
                    raise AppointmentNotFound(appointment_id)
                return False
            return True
