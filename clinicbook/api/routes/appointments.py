from fastapi import APIRouter, Depends, HTTPException, Query, status

from clinicbook.api.deps import get_booking_coordinator
from clinicbook.api.schemas.appointment import BookAppointmentRequest, StatusUpdateRequest
from clinicbook.core.errors import (
    AppointmentNotFound,
    InvalidDuration,
    InvalidStatusTransition,
    SlotUnavailable,
)
from clinicbook.models.appointment import Appointment, AppointmentPublic
from clinicbook.services.appointment_service import BookingCoordinator

router = APIRouter(prefix="/appointments", tags=["appointments"])


def to_public(a: Appointment) -> AppointmentPublic:
    return AppointmentPublic.model_validate(a)


def _not_found(e: AppointmentNotFound) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("", response_model=AppointmentPublic, status_code=status.HTTP_201_CREATED)
async def book_appointment(
    body: BookAppointmentRequest,
    booking: BookingCoordinator = Depends(get_booking_coordinator),
) -> AppointmentPublic:
    try:
        appointment = await booking.book(
            patient_id=body.patient_id,
            doctor_id=body.doctor_id,
            clinic_id=body.clinic_id,
            start_time=body.start_time,
            duration_minutes=body.duration_minutes,
            notes=body.notes,
        )
    except SlotUnavailable as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    except InvalidDuration as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e
    return to_public(appointment)


@router.get("", response_model=list[AppointmentPublic])
async def list_patient_appointments(
    patient_id: str = Query(...),
    booking: BookingCoordinator = Depends(get_booking_coordinator),
) -> list[AppointmentPublic]:
    """Appointments of a patient, most recent first."""
    appointments = await booking.appointments_for_patient(patient_id)
    return [to_public(a) for a in appointments]


@router.get("/{appointment_id}", response_model=AppointmentPublic)
async def get_appointment(
    appointment_id: int,
    booking: BookingCoordinator = Depends(get_booking_coordinator),
) -> AppointmentPublic:
    try:
        return to_public(await booking.get(appointment_id))
    except AppointmentNotFound as e:
        raise _not_found(e) from e


@router.patch("/{appointment_id}/status", response_model=AppointmentPublic)
async def update_appointment_status(
    appointment_id: int,
    body: StatusUpdateRequest,
    booking: BookingCoordinator = Depends(get_booking_coordinator),
) -> AppointmentPublic:
    try:
        appointment = await booking.update_status(appointment_id, body.status)
    except AppointmentNotFound as e:
        raise _not_found(e) from e
    except InvalidStatusTransition as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    return to_public(appointment)


@router.post("/{appointment_id}/cancel", response_model=AppointmentPublic)
async def cancel_appointment(
    appointment_id: int,
    booking: BookingCoordinator = Depends(get_booking_coordinator),
) -> AppointmentPublic:
    """Cancel an appointment. Cancelling twice is not an error."""
    try:
        appointment = await booking.cancel(appointment_id)
    except AppointmentNotFound as e:
        raise _not_found(e) from e
    except InvalidStatusTransition as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    return to_public(appointment)
