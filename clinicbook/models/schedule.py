from datetime import date, time
from enum import Enum

from pydantic import field_validator, model_validator
from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from clinicbook.core.config import settings

WEEKDAYS = range(1, 8)  # 1=Monday .. 7=Sunday, same as date.isoweekday()


def check_weekday(weekday: int) -> int:
    if weekday not in WEEKDAYS:
        raise ValueError(f"weekday must be within 1..7, got {weekday}")
    return weekday


class UnavailableReason(str, Enum):
    """Why a provider-day has no slots. These are not error signals."""

    SCHEDULE_NOT_FOUND = "schedule_not_found"
    CLINIC_MISMATCH = "clinic_mismatch"
    DAY_UNAVAILABLE = "day_unavailable"


def _default_slot_duration() -> int:
    return settings.default_slot_duration_minutes


class DaySchedule(SQLModel):
    clinic_id: str
    start_time: time
    end_time: time
    slot_duration_minutes: int = Field(default_factory=_default_slot_duration)
    available: bool = True

    @field_validator("slot_duration_minutes")
    @classmethod
    def _positive_duration(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("slot_duration_minutes must be positive")
        return v

    @model_validator(mode="after")
    def _start_before_end(self) -> "DaySchedule":
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


class WeeklySchedule(SQLModel):
    """A provider's recurring availability. A weekday missing from ``days`` has no schedule."""

    doctor_id: str
    days: dict[int, DaySchedule] = Field(default_factory=dict)

    @field_validator("days")
    @classmethod
    def _known_weekdays(cls, v: dict[int, DaySchedule]) -> dict[int, DaySchedule]:
        for weekday in v:
            check_weekday(weekday)
        return v

    @classmethod
    def empty(cls, doctor_id: str) -> "WeeklySchedule":
        return cls(doctor_id=doctor_id)

    def day(self, weekday: int) -> DaySchedule | None:
        return self.days.get(check_weekday(weekday))

    def for_date(self, d: date) -> DaySchedule | None:
        return self.day(d.isoweekday())


class DayScheduleRecord(SQLModel, table=True):
    __tablename__ = "day_schedules"
    __table_args__ = (UniqueConstraint("doctor_id", "weekday", name="uq_day_schedules_doctor_weekday"),)
    id: int | None = Field(default=None, primary_key=True)
    doctor_id: str = Field(index=True)
    weekday: int
    clinic_id: str
    start_time: time
    end_time: time
    slot_duration_minutes: int = 30
    available: bool = True

    def to_day_schedule(self) -> DaySchedule:
        # model_construct: rows are trusted, the slot grid re-checks the duration
        return DaySchedule.model_construct(
            clinic_id=self.clinic_id,
            start_time=self.start_time,
            end_time=self.end_time,
            slot_duration_minutes=self.slot_duration_minutes,
            available=self.available,
        )
