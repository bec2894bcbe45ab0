from datetime import date, datetime, time

import pytest

from clinicbook.models.schedule import DaySchedule
from clinicbook.services.appointment_service import BookingCoordinator
from clinicbook.services.conflict_service import ConflictDetector
from clinicbook.services.slot_service import SlotGenerator
from clinicbook.stores.memory import InMemoryAppointmentStore, InMemoryScheduleStore

MONDAY = date(2026, 10, 19)
TUESDAY = date(2026, 10, 20)
DOCTOR = "doc-1"
CLINIC = "C1"


def at(d: date, hour: int, minute: int = 0) -> datetime:
    return datetime.combine(d, time(hour, minute))


@pytest.fixture
def schedules():
    return InMemoryScheduleStore()


@pytest.fixture
def appointments():
    return InMemoryAppointmentStore()


@pytest.fixture
def conflicts(appointments):
    return ConflictDetector(appointments, max_duration_minutes=240)


@pytest.fixture
def slot_generator(schedules, conflicts):
    return SlotGenerator(schedules, conflicts)


@pytest.fixture
def booking(appointments, conflicts):
    return BookingCoordinator(appointments, conflicts, poll_seconds=0.01)


@pytest.fixture
async def monday_schedule(schedules):
    """Monday at clinic C1, 09:00-11:00, 30 minute slots."""
    day = DaySchedule(clinic_id=CLINIC, start_time=time(9, 0), end_time=time(11, 0), slot_duration_minutes=30)
    await schedules.set_day_schedule(DOCTOR, 1, day)
    return day
