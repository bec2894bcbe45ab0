import logging
from datetime import date, datetime, timedelta

from clinicbook.core.errors import InvalidDuration
from clinicbook.models.schedule import DaySchedule, UnavailableReason
from clinicbook.services.conflict_service import ConflictDetector
from clinicbook.services.ports import ScheduleStore

logger = logging.getLogger(__name__)


def slot_times(d: date, day: DaySchedule) -> list[datetime]:
    """Generate slot start times for the given date from one day of a weekly schedule."""
    if day.slot_duration_minutes <= 0:
        raise InvalidDuration(day.slot_duration_minutes)
    slots: list[datetime] = []
    start = datetime.combine(d, day.start_time)
    end = datetime.combine(d, day.end_time)
    delta = timedelta(minutes=day.slot_duration_minutes)
    current = start
    # Half-open: the last slot ends exactly at `end`, never after it
    while current + delta <= end:
        slots.append(current)
        current += delta
    return slots


class SlotGenerator:
    def __init__(self, schedules: ScheduleStore, conflicts: ConflictDetector) -> None:
        self.schedules = schedules
        self.conflicts = conflicts

    async def resolve_day(
        self, doctor_id: str, clinic_id: str, d: date
    ) -> tuple[DaySchedule | None, UnavailableReason | None]:
        """Find the schedule that applies to doctor/clinic/date, or the reason none does."""
        weekly = await self.schedules.get_weekly_schedule(doctor_id)
        day = weekly.for_date(d)
        if day is None:
            logger.debug("No schedule for doctor %s on weekday %d", doctor_id, d.isoweekday())
            return None, UnavailableReason.SCHEDULE_NOT_FOUND
        if day.clinic_id != clinic_id:
            logger.debug(
                "Doctor %s works at clinic %s on %s, not %s", doctor_id, day.clinic_id, d, clinic_id
            )
            return None, UnavailableReason.CLINIC_MISMATCH
        if not day.available:
            return None, UnavailableReason.DAY_UNAVAILABLE
        return day, None

    async def generate_slots(self, doctor_id: str, clinic_id: str, d: date) -> list[datetime]:
        day, _ = await self.resolve_day(doctor_id, clinic_id, d)
        if day is None:
            return []
        return slot_times(d, day)

    async def available_slots(
        self, doctor_id: str, clinic_id: str, d: date
    ) -> tuple[list[datetime], int, UnavailableReason | None]:
        """Returns (free slot starts, slot duration, reason). Reason is set only when the day has no schedule."""
        day, reason = await self.resolve_day(doctor_id, clinic_id, d)
        if day is None:
            return [], 0, reason
        candidates = slot_times(d, day)
        free = await self.conflicts.available_among(doctor_id, candidates, day.slot_duration_minutes)
        return free, day.slot_duration_minutes, None
