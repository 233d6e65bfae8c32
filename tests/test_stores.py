"""Tests for the SQL stores on an in-memory SQLite database."""

import uuid
from datetime import UTC, datetime, timedelta, timezone

import pytest
from conftest import DOCTOR_ID, MONDAY, PATIENT_ID, TUESDAY, at
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from carebook.core.exceptions import StoreUnavailableException
from carebook.schemas.doctors import AvailabilitySegment
from carebook.services.doctor_service import DoctorService
from carebook.stores.appointments import SqlAppointmentStore, to_storage, translate_store_errors
from carebook.stores.audits import SqlAuditStore


def appointment_values(start: datetime, **overrides) -> dict:
    now = datetime.now(UTC)
    values = {
        "id": str(uuid.uuid4()),
        "patient_id": PATIENT_ID,
        "doctor_id": DOCTOR_ID,
        "scheduled_at": start,
        "duration": 30,
        "type": "video",
        "urgency": "medium",
        "status": "scheduled",
        "symptoms": ["cough"],
        "created_at": now,
        "updated_at": now,
    }
    values.update(overrides)
    return values


def test_to_storage_converts_to_utc() -> None:
    plus_two = timezone(timedelta(hours=2))

    stored = to_storage({"scheduled_at": datetime(2030, 1, 7, 12, tzinfo=plus_two), "n": 1})

    assert stored["scheduled_at"] == datetime(2030, 1, 7, 10, tzinfo=UTC)
    assert stored["scheduled_at"].utcoffset() == timedelta(0)
    assert stored["n"] == 1


@pytest.mark.asyncio
async def test_create_and_get_round_trip_keeps_timezone(db_session: AsyncSession) -> None:
    store = SqlAppointmentStore(db_session)

    created = await store.create(appointment_values(at(MONDAY, 10)))
    fetched = await store.get(created["id"])

    assert fetched["scheduled_at"] == at(MONDAY, 10)
    assert fetched["scheduled_at"].tzinfo is not None
    assert fetched["symptoms"] == ["cough"]
    assert await store.get("missing") is None


@pytest.mark.asyncio
async def test_update_returns_row(db_session: AsyncSession) -> None:
    store = SqlAppointmentStore(db_session)
    created = await store.create(appointment_values(at(MONDAY, 10)))

    updated = await store.update(created["id"], {"status": "cancelled", "cancel_reason": "x"})

    assert updated["status"] == "cancelled"
    assert updated["cancel_reason"] == "x"
    assert await store.update("missing", {"status": "cancelled"}) is None


@pytest.mark.asyncio
async def test_list_for_doctor_narrows_to_bounds(db_session: AsyncSession) -> None:
    store = SqlAppointmentStore(db_session)
    late = await store.create(appointment_values(at(MONDAY, 15)))
    early = await store.create(appointment_values(at(MONDAY, 9)))
    await store.create(appointment_values(at(TUESDAY, 9)))
    await store.create(appointment_values(at(MONDAY, 9), doctor_id="doc-2"))

    items = await store.list_for_doctor(DOCTOR_ID, at(MONDAY, 0), at(MONDAY, 23, 59))

    assert [apt["id"] for apt in items] == [early["id"], late["id"]]
    assert len(await store.list_for_doctor(DOCTOR_ID)) == 3


@pytest.mark.asyncio
async def test_list_for_patient_newest_first(db_session: AsyncSession) -> None:
    store = SqlAppointmentStore(db_session)
    monday = await store.create(appointment_values(at(MONDAY, 9)))
    tuesday = await store.create(appointment_values(at(TUESDAY, 9)))

    items = await store.list_for_patient(PATIENT_ID)

    assert [apt["id"] for apt in items] == [tuesday["id"], monday["id"]]


@pytest.mark.asyncio
async def test_doctor_lock_is_noop_on_sqlite(db_session: AsyncSession) -> None:
    store = SqlAppointmentStore(db_session)

    async with store.doctor_lock(DOCTOR_ID):
        created = await store.create(appointment_values(at(MONDAY, 9)))

    assert await store.get(created["id"]) is not None


@pytest.mark.asyncio
async def test_translate_store_errors(db_session: AsyncSession) -> None:
    with pytest.raises(StoreUnavailableException):
        async with translate_store_errors(db_session, "appointment_get"):
            raise OperationalError("SELECT 1", {}, Exception("connection lost"))


@pytest.mark.asyncio
async def test_audit_store_append_and_list(db_session: AsyncSession) -> None:
    store = SqlAuditStore(db_session)
    base = datetime(2030, 1, 7, 9, tzinfo=UTC)
    for offset, action in enumerate(["book", "reschedule", "cancel"]):
        await store.append(
            {
                "id": str(uuid.uuid4()),
                "appointment_id": "apt-1",
                "user_id": PATIENT_ID,
                "action": action,
                "timestamp": base + timedelta(seconds=offset),
                "details": {"n": offset},
                "previous": None,
                "next": {"status": "scheduled"},
            }
        )

    history = await store.list_for_appointment("apt-1")

    assert [r["action"] for r in history] == ["book", "reschedule", "cancel"]
    assert history[0]["timestamp"] == base
    assert history[2]["details"] == {"n": 2}
    assert await store.list_for_appointment("apt-2") == []


@pytest.mark.asyncio
async def test_doctor_availability_round_trip(db_session: AsyncSession) -> None:
    service = DoctorService(db_session)
    await service.create_doctor(DOCTOR_ID, full_name="Dr. Roe")

    assert await service.get_availability(DOCTOR_ID) == []
    assert await service.get_availability("missing") is None

    segment = AvailabilitySegment(day_of_week=1, start_time="09:00", end_time="12:00")
    stored = await service.set_availability(DOCTOR_ID, [segment])

    assert stored == [
        {"day_of_week": 1, "start_time": "09:00", "end_time": "12:00", "slot_duration": 30}
    ]
    assert await service.get_availability(DOCTOR_ID) == stored
    assert await service.set_availability("missing", [segment]) is None
