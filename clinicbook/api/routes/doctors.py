import logging
from datetime import date

from fastapi import APIRouter, Depends, Query

from clinicbook.api.deps import get_booking_coordinator, get_schedule_store
from clinicbook.api.routes.appointments import to_public
from clinicbook.api.schemas.schedule import WeeklyScheduleBody
from clinicbook.models.appointment import AppointmentPublic
from clinicbook.models.schedule import WeeklySchedule
from clinicbook.services.appointment_service import BookingCoordinator
from clinicbook.services.ports import ScheduleStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/doctors", tags=["doctors"])


@router.get("/{doctor_id}/schedule", response_model=WeeklySchedule)
async def get_weekly_schedule(
    doctor_id: str,
    schedules: ScheduleStore = Depends(get_schedule_store),
) -> WeeklySchedule:
    return await schedules.get_weekly_schedule(doctor_id)


@router.put("/{doctor_id}/schedule", response_model=WeeklySchedule)
async def replace_weekly_schedule(
    doctor_id: str,
    body: WeeklyScheduleBody,
    schedules: ScheduleStore = Depends(get_schedule_store),
) -> WeeklySchedule:
    """Replace the whole week; weekdays left out of the body lose their schedule."""
    await schedules.replace_weekly_schedule(doctor_id, body.days)
    logger.info("Weekly schedule for doctor %s set on weekdays %s", doctor_id, sorted(body.days))
    return await schedules.get_weekly_schedule(doctor_id)


@router.get("/{doctor_id}/appointments", response_model=list[AppointmentPublic])
async def list_doctor_day_appointments(
    doctor_id: str,
    date_param: date = Query(..., alias="date"),
    booking: BookingCoordinator = Depends(get_booking_coordinator),
) -> list[AppointmentPublic]:
    """All appointments of a doctor on one day, cancelled ones included, earliest first."""
    appointments = await booking.appointments_for_doctor_day(doctor_id, date_param)
    return [to_public(a) for a in appointments]
