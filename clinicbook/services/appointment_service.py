import logging
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from clinicbook.core.config import settings
from clinicbook.core.errors import AppointmentNotFound, InvalidStatusTransition, SlotUnavailable
from clinicbook.models.appointment import (
    ALLOWED_TRANSITIONS,
    Appointment,
    AppointmentCreate,
    AppointmentStatus,
)
from clinicbook.services.conflict_service import ConflictDetector, check_duration
from clinicbook.services.ports import AppointmentStore
from clinicbook.services.subscription import Subscription

logger = logging.getLogger(__name__)


def to_clinic_naive(dt: datetime) -> datetime:
    """Convert to naive clinic-local wall time, the form appointments are stored in."""
    if dt.tzinfo is None:
        return dt
    tz = ZoneInfo(settings.clinic_timezone)
    return dt.astimezone(tz).replace(tzinfo=None)


def day_bounds(d: date) -> tuple[datetime, datetime]:
    """[00:00, next 00:00) of a clinic-local day, i.e. 00:00 through 23:59 inclusive."""
    start = datetime.combine(d, time.min)
    return start, start + timedelta(days=1)


class BookingCoordinator:
    """Books appointments and owns their status lifecycle."""

    def __init__(
        self,
        appointments: AppointmentStore,
        conflicts: ConflictDetector | None = None,
        poll_seconds: float | None = None,
    ) -> None:
        self.appointments = appointments
        self.conflicts = conflicts or ConflictDetector(appointments)
        self.poll_seconds = poll_seconds

    async def book(
        self,
        patient_id: str,
        doctor_id: str,
        clinic_id: str,
        start_time: datetime,
        duration_minutes: int,
        notes: str | None = None,
    ) -> Appointment:
        check_duration(duration_minutes, self.conflicts.max_duration_minutes)
        start_time = to_clinic_naive(start_time)
        # Cheap read-only rejection; the store re-checks atomically on insert
        if not await self.conflicts.is_available(doctor_id, start_time, duration_minutes):
            logger.info("Booking rejected: doctor %s busy at %s (%d min)", doctor_id, start_time, duration_minutes)
            raise SlotUnavailable(doctor_id, start_time, duration_minutes)
        data = AppointmentCreate(
            patient_id=patient_id,
            doctor_id=doctor_id,
            clinic_id=clinic_id,
            start_time=start_time,
            duration_minutes=duration_minutes,
            notes=notes,
        )
        try:
            appointment = await self.appointments.insert_if_available(data)
        except SlotUnavailable:
            logger.info("Booking lost race: doctor %s at %s (%d min)", doctor_id, start_time, duration_minutes)
            raise
        logger.info(
            "Booked appointment %s: patient %s with doctor %s at clinic %s, %s (%d min)",
            appointment.id, patient_id, doctor_id, clinic_id, start_time, duration_minutes,
        )
        return appointment

    async def get(self, appointment_id: int) -> Appointment:
        appointment = await self.appointments.get(appointment_id)
        if appointment is None:
            raise AppointmentNotFound(appointment_id)
        return appointment

    async def update_status(self, appointment_id: int, new_status: AppointmentStatus) -> Appointment:
        appointment = await self.get(appointment_id)
        current = appointment.status
        if new_status not in ALLOWED_TRANSITIONS[current]:
            raise InvalidStatusTransition(appointment_id, current.value, new_status.value)
        if not await self.appointments.update_status(appointment_id, new_status, expected_status=current):
            # Someone else moved it first
            latest = await self.get(appointment_id)
            raise InvalidStatusTransition(appointment_id, latest.status.value, new_status.value)
        logger.info("Appointment %s: %s -> %s", appointment_id, current.value, new_status.value)
        return await self.get(appointment_id)

    async def cancel(self, appointment_id: int) -> Appointment:
        """Cancel; a no-op for appointments that are already cancelled."""
        appointment = await self.get(appointment_id)
        if appointment.status == AppointmentStatus.CANCELLED:
            return appointment
        try:
            return await self.update_status(appointment_id, AppointmentStatus.CANCELLED)
        except InvalidStatusTransition as e:
            if e.current == AppointmentStatus.CANCELLED.value:
                return await self.get(appointment_id)
            raise

    async def confirm(self, appointment_id: int) -> Appointment:
        return await self.update_status(appointment_id, AppointmentStatus.CONFIRMED)

    async def complete(self, appointment_id: int) -> Appointment:
        return await self.update_status(appointment_id, AppointmentStatus.COMPLETED)

    async def appointments_for_patient(self, patient_id: str) -> list[Appointment]:
        return await self.appointments.query_by_patient(patient_id)

    async def appointments_for_doctor_day(self, doctor_id: str, d: date) -> list[Appointment]:
        start, end = day_bounds(d)
        return await self.appointments.query_by_doctor_and_range(doctor_id, start, end)

    def subscribe_patient(self, patient_id: str) -> Subscription:
        return Subscription(lambda: self.appointments_for_patient(patient_id), self.poll_seconds)

    def subscribe_doctor_day(self, doctor_id: str, d: date) -> Subscription:
        return Subscription(lambda: self.appointments_for_doctor_day(doctor_id, d), self.poll_seconds)
