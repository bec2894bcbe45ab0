from pydantic import BaseModel, field_validator

from clinicbook.models.schedule import DaySchedule, check_weekday


class WeeklyScheduleBody(BaseModel):
    """Full week, keyed 1 (Monday) .. 7 (Sunday). Missing weekdays have no schedule."""

    days: dict[int, DaySchedule]

    @field_validator("days")
    @classmethod
    def _known_weekdays(cls, v: dict[int, DaySchedule]) -> dict[int, DaySchedule]:
        for weekday in v:
            check_weekday(weekday)
        return v
