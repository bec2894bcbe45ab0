from datetime import date, timedelta

from fastapi import APIRouter, Depends, Query

from clinicbook.api.deps import get_slot_generator
from clinicbook.api.schemas.appointment import AvailableSlotsResponse, SlotInfo
from clinicbook.services.slot_service import SlotGenerator

router = APIRouter(prefix="/slots", tags=["slots"])


@router.get("/available", response_model=AvailableSlotsResponse)
async def available_slots(
    doctor_id: str = Query(...),
    clinic_id: str = Query(...),
    date_param: date = Query(..., alias="date"),
    slots: SlotGenerator = Depends(get_slot_generator),
) -> AvailableSlotsResponse:
    """Return the free slots of a doctor at a clinic on the given date (clinic-local time)."""
    free, duration, reason = await slots.available_slots(doctor_id, clinic_id, date_param)
    return AvailableSlotsResponse(
        date=date_param.isoformat(),
        doctor_id=doctor_id,
        clinic_id=clinic_id,
        slot_duration_minutes=duration,
        slots=[SlotInfo(start=s, end=s + timedelta(minutes=duration)) for s in free],
        reason=reason,
    )
