from fastapi import Depends

from clinicbook.core.db import async_session_maker
from clinicbook.services.appointment_service import BookingCoordinator
from clinicbook.services.conflict_service import ConflictDetector
from clinicbook.services.ports import AppointmentStore, ScheduleStore
from clinicbook.services.slot_service import SlotGenerator
from clinicbook.stores.sql import SqlAppointmentStore, SqlScheduleStore


def get_schedule_store() -> ScheduleStore:
    return SqlScheduleStore(async_session_maker)


def get_appointment_store() -> AppointmentStore:
    return SqlAppointmentStore(async_session_maker)


def get_conflict_detector(
    appointments: AppointmentStore = Depends(get_appointment_store),
) -> ConflictDetector:
    return ConflictDetector(appointments)


def get_slot_generator(
    schedules: ScheduleStore = Depends(get_schedule_store),
    conflicts: ConflictDetector = Depends(get_conflict_detector),
) -> SlotGenerator:
    return SlotGenerator(schedules, conflicts)


def get_booking_coordinator(
    appointments: AppointmentStore = Depends(get_appointment_store),
    conflicts: ConflictDetector = Depends(get_conflict_detector),
) -> BookingCoordinator:
    return BookingCoordinator(appointments, conflicts)
