from datetime import UTC, datetime, timedelta
from enum import Enum

from pydantic import NaiveDatetime
from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


def _utc_naive_now() -> datetime:
    """Naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


TERMINAL_STATUSES = frozenset({AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED})

ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset({AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED}),
    AppointmentStatus.CONFIRMED: frozenset({AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED}),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.COMPLETED: frozenset(),
}


class AppointmentBase(SQLModel):
    patient_id: str = Field(index=True)
    doctor_id: str = Field(index=True)
    clinic_id: str
    start_time: NaiveDatetime = Field(index=True, sa_type=DateTime)
    duration_minutes: int
    notes: str | None = None

    @property
    def end_time(self) -> datetime:
        return self.start_time + timedelta(minutes=self.duration_minutes)


class Appointment(AppointmentBase, table=True):
    __tablename__ = "appointments"
    id: int | None = Field(default=None, primary_key=True)
    status: AppointmentStatus = Field(default=AppointmentStatus.PENDING, index=True)
    created_at: NaiveDatetime = Field(default_factory=_utc_naive_now, sa_type=DateTime)

    @property
    def is_active(self) -> bool:
        """Everything but cancelled blocks the interval."""
        return self.status != AppointmentStatus.CANCELLED


class AppointmentCreate(AppointmentBase):
    pass


class AppointmentPublic(AppointmentBase):
    id: int
    status: AppointmentStatus
    created_at: NaiveDatetime


class DoctorBookingLock(SQLModel, table=True):
    """One row per doctor; bookings update it first, so they commit one at a time per doctor."""

    __tablename__ = "doctor_booking_locks"
    doctor_id: str = Field(primary_key=True)
    bookings: int = 0
