"""Tests for the HTTP layer, backed by in-memory stores."""

import pytest
from httpx import ASGITransport, AsyncClient

from clinicbook.api.deps import get_appointment_store, get_schedule_store
from clinicbook.core.errors import PersistenceError
from clinicbook.main import app

from tests.conftest import CLINIC, DOCTOR, MONDAY, TUESDAY

MONDAY_SCHEDULE = {
    "days": {
        "1": {
            "clinic_id": CLINIC,
            "start_time": "09:00:00",
            "end_time": "11:00:00",
            "slot_duration_minutes": 30,
            "available": True,
        }
    }
}


@pytest.fixture
async def client(schedules, appointments):
    app.dependency_overrides[get_schedule_store] = lambda: schedules
    app.dependency_overrides[get_appointment_store] = lambda: appointments
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
async def client_with_schedule(client):
    response = await client.put(f"/api/v1/doctors/{DOCTOR}/schedule", json=MONDAY_SCHEDULE)
    assert response.status_code == 200
    return client


def booking_body(start="2026-10-19T10:00:00", patient="pat-1", **extra):
    return {"patient_id": patient, "doctor_id": DOCTOR, "clinic_id": CLINIC, "start_time": start, **extra}


async def free_starts(client, day=MONDAY, clinic=CLINIC):
    response = await client.get(
        "/api/v1/slots/available", params={"doctor_id": DOCTOR, "clinic_id": clinic, "date": day.isoformat()}
    )
    assert response.status_code == 200
    return response.json()


class TestScheduleRoutes:
    async def test_put_and_get_schedule(self, client_with_schedule):
        response = await client_with_schedule.get(f"/api/v1/doctors/{DOCTOR}/schedule")
        assert response.status_code == 200
        data = response.json()
        assert data["doctor_id"] == DOCTOR
        assert data["days"]["1"]["clinic_id"] == CLINIC

    async def test_put_replaces_the_whole_week(self, client_with_schedule):
        tuesday_only = {"days": {"2": MONDAY_SCHEDULE["days"]["1"]}}
        response = await client_with_schedule.put(f"/api/v1/doctors/{DOCTOR}/schedule", json=tuesday_only)
        assert response.status_code == 200
        assert list(response.json()["days"]) == ["2"]
        data = await free_starts(client_with_schedule)
        assert data["reason"] == "schedule_not_found"

    async def test_invalid_schedule_is_rejected(self, client):
        bad = {"days": {"1": {"clinic_id": CLINIC, "start_time": "11:00:00", "end_time": "09:00:00"}}}
        response = await client.put(f"/api/v1/doctors/{DOCTOR}/schedule", json=bad)
        assert response.status_code == 422

    async def test_unknown_weekday_is_rejected(self, client):
        bad = {"days": {"9": MONDAY_SCHEDULE["days"]["1"]}}
        response = await client.put(f"/api/v1/doctors/{DOCTOR}/schedule", json=bad)
        assert response.status_code == 422


class TestSlotRoutes:
    async def test_monday_slots(self, client_with_schedule):
        data = await free_starts(client_with_schedule)
        assert data["slot_duration_minutes"] == 30
        assert data["reason"] is None
        assert [s["start"] for s in data["slots"]] == [
            "2026-10-19T09:00:00",
            "2026-10-19T09:30:00",
            "2026-10-19T10:00:00",
            "2026-10-19T10:30:00",
        ]
        assert data["slots"][0]["end"] == "2026-10-19T09:30:00"

    async def test_day_without_schedule(self, client_with_schedule):
        data = await free_starts(client_with_schedule, day=TUESDAY)
        assert data["slots"] == []
        assert data["reason"] == "schedule_not_found"

    async def test_other_clinic(self, client_with_schedule):
        data = await free_starts(client_with_schedule, clinic="C2")
        assert data["slots"] == []
        assert data["reason"] == "clinic_mismatch"


class TestAppointmentRoutes:
    async def test_book_returns_pending(self, client_with_schedule):
        response = await client_with_schedule.post("/api/v1/appointments", json=booking_body(notes="hello"))
        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert data["duration_minutes"] == 30
        assert data["notes"] == "hello"

        response = await client_with_schedule.get(f"/api/v1/appointments/{data['id']}")
        assert response.status_code == 200
        assert response.json()["start_time"] == "2026-10-19T10:00:00"

    async def test_double_booking_conflicts(self, client_with_schedule):
        first = await client_with_schedule.post("/api/v1/appointments", json=booking_body())
        assert first.status_code == 201
        second = await client_with_schedule.post("/api/v1/appointments", json=booking_body(patient="pat-2"))
        assert second.status_code == 409

    async def test_invalid_duration(self, client):
        response = await client.post("/api/v1/appointments", json=booking_body(duration_minutes=0))
        assert response.status_code == 422

    async def test_booked_slot_leaves_and_returns(self, client_with_schedule):
        created = (await client_with_schedule.post("/api/v1/appointments", json=booking_body())).json()
        starts = [s["start"] for s in (await free_starts(client_with_schedule))["slots"]]
        assert "2026-10-19T10:00:00" not in starts

        response = await client_with_schedule.post(f"/api/v1/appointments/{created['id']}/cancel")
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        # Cancelling again is fine
        response = await client_with_schedule.post(f"/api/v1/appointments/{created['id']}/cancel")
        assert response.status_code == 200

        starts = [s["start"] for s in (await free_starts(client_with_schedule))["slots"]]
        assert "2026-10-19T10:00:00" in starts

    async def test_status_transitions(self, client):
        created = (await client.post("/api/v1/appointments", json=booking_body())).json()
        url = f"/api/v1/appointments/{created['id']}/status"
        assert (await client.patch(url, json={"status": "confirmed"})).json()["status"] == "confirmed"
        assert (await client.patch(url, json={"status": "completed"})).json()["status"] == "completed"
        response = await client.patch(url, json={"status": "cancelled"})
        assert response.status_code == 409

    async def test_unknown_status_value(self, client):
        created = (await client.post("/api/v1/appointments", json=booking_body())).json()
        response = await client.patch(f"/api/v1/appointments/{created['id']}/status", json={"status": "lost"})
        assert response.status_code == 422

    async def test_not_found(self, client):
        assert (await client.get("/api/v1/appointments/404")).status_code == 404
        assert (await client.post("/api/v1/appointments/404/cancel")).status_code == 404
        response = await client.patch("/api/v1/appointments/404/status", json={"status": "confirmed"})
        assert response.status_code == 404

    async def test_patient_and_doctor_listings(self, client):
        await client.post("/api/v1/appointments", json=booking_body(start="2026-10-19T09:00:00"))
        await client.post("/api/v1/appointments", json=booking_body(start="2026-10-19T11:00:00"))
        await client.post("/api/v1/appointments", json=booking_body(start="2026-10-20T09:00:00", patient="pat-2"))

        mine = (await client.get("/api/v1/appointments", params={"patient_id": "pat-1"})).json()
        assert [a["start_time"] for a in mine] == ["2026-10-19T11:00:00", "2026-10-19T09:00:00"]

        day = (await client.get(f"/api/v1/doctors/{DOCTOR}/appointments", params={"date": "2026-10-19"})).json()
        assert [a["start_time"] for a in day] == ["2026-10-19T09:00:00", "2026-10-19T11:00:00"]


async def test_health(client):
    response = await client.get("/health")
    assert response.json() == {"status": "ok"}


async def test_storage_failure_is_reported_as_unavailable(client, appointments):
    async def broken_get(appointment_id):
        raise PersistenceError("OperationalError: database is locked")

    appointments.get = broken_get
    response = await client.get("/api/v1/appointments/1", headers={"Origin": "http://localhost:3000"})
    assert response.status_code == 503
    assert response.json()["detail"] == "Storage unavailable: OperationalError: database is locked"
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"
