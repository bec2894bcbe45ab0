"""Tests for overlap detection."""

from datetime import datetime

import pytest

from clinicbook.core.errors import InvalidDuration
from clinicbook.models.appointment import Appointment, AppointmentCreate, AppointmentStatus
from clinicbook.services.conflict_service import filter_available, overlaps

from tests.conftest import CLINIC, DOCTOR, MONDAY, at


def appointment(start: datetime, minutes: int = 30, status: AppointmentStatus = AppointmentStatus.PENDING, id: int = 1):
    return Appointment(
        id=id,
        patient_id="pat-1",
        doctor_id=DOCTOR,
        clinic_id=CLINIC,
        start_time=start,
        duration_minutes=minutes,
        status=status,
    )


class TestOverlaps:
    def test_identical_intervals_overlap(self):
        assert overlaps(at(MONDAY, 9), 30, at(MONDAY, 9), 30)

    def test_partial_overlap(self):
        assert overlaps(at(MONDAY, 9), 30, at(MONDAY, 9, 15), 30)
        assert overlaps(at(MONDAY, 9, 15), 30, at(MONDAY, 9), 30)

    def test_containment(self):
        assert overlaps(at(MONDAY, 9), 120, at(MONDAY, 10), 15)

    def test_back_to_back_intervals_do_not_overlap(self):
        assert not overlaps(at(MONDAY, 9), 30, at(MONDAY, 9, 30), 30)
        assert not overlaps(at(MONDAY, 9, 30), 30, at(MONDAY, 9), 30)

    def test_different_durations(self):
        assert overlaps(at(MONDAY, 9), 60, at(MONDAY, 9, 45), 15)
        assert not overlaps(at(MONDAY, 9), 45, at(MONDAY, 9, 45), 15)


class TestFilterAvailable:
    candidates = [at(MONDAY, 9), at(MONDAY, 9, 30), at(MONDAY, 10), at(MONDAY, 10, 30)]

    def test_pending_appointment_blocks_its_slot(self):
        free = filter_available(self.candidates, [appointment(at(MONDAY, 9, 30))], 30)
        assert free == [at(MONDAY, 9), at(MONDAY, 10), at(MONDAY, 10, 30)]

    def test_cancelled_appointment_does_not_block(self):
        cancelled = appointment(at(MONDAY, 9, 30), status=AppointmentStatus.CANCELLED)
        assert filter_available(self.candidates, [cancelled], 30) == self.candidates

    @pytest.mark.parametrize("status", [AppointmentStatus.CONFIRMED, AppointmentStatus.COMPLETED])
    def test_other_statuses_block(self, status):
        free = filter_available(self.candidates, [appointment(at(MONDAY, 10), status=status)], 30)
        assert at(MONDAY, 10) not in free

    def test_unaligned_appointment_blocks_every_touched_slot(self):
        free = filter_available(self.candidates, [appointment(at(MONDAY, 9, 20), minutes=20)], 30)
        assert free == [at(MONDAY, 10), at(MONDAY, 10, 30)]

    def test_result_never_overlaps_active_appointments(self):
        existing = [
            appointment(at(MONDAY, 8, 50), minutes=15, id=1),
            appointment(at(MONDAY, 10, 10), minutes=5, id=2),
            appointment(at(MONDAY, 10, 45), minutes=60, status=AppointmentStatus.CANCELLED, id=3),
        ]
        free = filter_available(self.candidates, existing, 30)
        assert free == [at(MONDAY, 9, 30), at(MONDAY, 10, 30)]
        for s in free:
            for a in existing:
                if a.is_active:
                    assert not overlaps(s, 30, a.start_time, a.duration_minutes)


class TestConflictDetector:
    async def _book(self, store, start, minutes=30):
        return await store.insert_if_available(
            AppointmentCreate(
                patient_id="pat-1",
                doctor_id=DOCTOR,
                clinic_id=CLINIC,
                start_time=start,
                duration_minutes=minutes,
            )
        )

    async def test_free_interval(self, conflicts):
        assert await conflicts.is_available(DOCTOR, at(MONDAY, 9), 30)

    async def test_busy_interval(self, conflicts, appointments):
        await self._book(appointments, at(MONDAY, 9, 30))
        assert not await conflicts.is_available(DOCTOR, at(MONDAY, 9, 15), 30)
        assert await conflicts.is_available(DOCTOR, at(MONDAY, 9), 30)
        assert await conflicts.is_available(DOCTOR, at(MONDAY, 10), 30)

    async def test_other_doctor_is_independent(self, conflicts, appointments):
        await self._book(appointments, at(MONDAY, 9, 30))
        assert await conflicts.is_available("doc-2", at(MONDAY, 9, 30), 30)

    async def test_long_appointment_starting_earlier_is_found(self, conflicts, appointments):
        # Starts well before the queried slot, still running when it begins
        await self._book(appointments, at(MONDAY, 6), minutes=240)
        assert not await conflicts.is_available(DOCTOR, at(MONDAY, 9, 30), 30)
        free = await conflicts.available_among(DOCTOR, [at(MONDAY, 9, 30), at(MONDAY, 10)], 30)
        assert free == [at(MONDAY, 10)]

    async def test_cancelled_appointment_frees_interval(self, conflicts, appointments):
        booked = await self._book(appointments, at(MONDAY, 9, 30))
        await appointments.update_status(booked.id, AppointmentStatus.CANCELLED)
        assert await conflicts.is_available(DOCTOR, at(MONDAY, 9, 30), 30)

    @pytest.mark.parametrize("minutes", [0, -30, 241])
    async def test_invalid_duration(self, conflicts, minutes):
        with pytest.raises(InvalidDuration):
            await conflicts.is_available(DOCTOR, at(MONDAY, 9), minutes)

    async def test_no_candidates(self, conflicts):
        assert await conflicts.available_among(DOCTOR, [], 30) == []
