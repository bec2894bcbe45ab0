"""
Overlap detection between candidate intervals and existing appointments.

All intervals are half-open, [start, start + duration). Two intervals that only
touch at a boundary do not overlap. Cancelled appointments never block.
"""

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta

from clinicbook.core.config import settings
from clinicbook.core.errors import InvalidDuration
from clinicbook.models.appointment import Appointment
from clinicbook.services.ports import AppointmentStore

logger = logging.getLogger(__name__)


def check_duration(duration_minutes: int, maximum: int) -> None:
    if duration_minutes <= 0 or duration_minutes > maximum:
        raise InvalidDuration(duration_minutes, maximum)


def overlaps(a_start: datetime, a_minutes: int, b_start: datetime, b_minutes: int) -> bool:
    return a_start < b_start + timedelta(minutes=b_minutes) and b_start < a_start + timedelta(minutes=a_minutes)


def filter_available(
    candidates: Iterable[datetime],
    appointments: Iterable[Appointment],
    duration_minutes: int,
) -> list[datetime]:
    """Keep the candidate starts whose interval overlaps no active appointment."""
    active = [a for a in appointments if a.is_active]
    return [
        s
        for s in candidates
        if not any(overlaps(s, duration_minutes, a.start_time, a.duration_minutes) for a in active)
    ]


class ConflictDetector:
    def __init__(self, appointments: AppointmentStore, max_duration_minutes: int | None = None) -> None:
        self.appointments = appointments
        self.max_duration_minutes = max_duration_minutes or settings.max_appointment_duration_minutes

    async def active_in_window(self, doctor_id: str, start: datetime, end: datetime) -> list[Appointment]:
        """Active appointments that may overlap [start, end).

        Anything overlapping must start before `end` and no earlier than
        `start - max duration`; callers still apply the exact overlap test.
        """
        lookback = start - timedelta(minutes=self.max_duration_minutes)
        found = await self.appointments.query_by_doctor_and_range(doctor_id, lookback, end)
        return [a for a in found if a.is_active]

    async def is_available(self, doctor_id: str, start_time: datetime, duration_minutes: int) -> bool:
        check_duration(duration_minutes, self.max_duration_minutes)
        end_time = start_time + timedelta(minutes=duration_minutes)
        active = await self.active_in_window(doctor_id, start_time, end_time)
        return bool(filter_available([start_time], active, duration_minutes))

    async def available_among(
        self, doctor_id: str, candidates: list[datetime], duration_minutes: int
    ) -> list[datetime]:
        if not candidates:
            return []
        window_start = min(candidates)
        window_end = max(candidates) + timedelta(minutes=duration_minutes)
        active = await self.active_in_window(doctor_id, window_start, window_end)
        free = filter_available(candidates, active, duration_minutes)
        logger.debug(
            "Doctor %s: %d of %d slots free between %s and %s",
            doctor_id, len(free), len(candidates), window_start, window_end,
        )
        return free
