"""Tests for double-booking detection."""

import pytest
from conftest import DOCTOR_ID, MONDAY, TUESDAY, FakeAppointmentStore, at

from carebook.services.conflict_service import ConflictChecker
from carebook.services.slot_service import SlotGenerator


@pytest.fixture
def checker(slot_generator: SlotGenerator) -> ConflictChecker:
    return ConflictChecker(slot_generator)


@pytest.fixture
async def ten_oclock(appointment_store: FakeAppointmentStore) -> dict:
    return await appointment_store.create(
        {
            "id": "booked",
            "patient_id": "p",
            "doctor_id": DOCTOR_ID,
            "scheduled_at": at(MONDAY, 10),
            "duration": 30,
            "status": "confirmed",
        }
    )


@pytest.mark.asyncio
async def test_overlapping_interval_conflicts(checker: ConflictChecker, ten_oclock: dict) -> None:
    assert await checker.has_conflict(DOCTOR_ID, at(MONDAY, 10, 15), 30)
    assert await checker.has_conflict(DOCTOR_ID, at(MONDAY, 9, 45), 30)
    assert await checker.has_conflict(DOCTOR_ID, at(MONDAY, 9), 120)


@pytest.mark.asyncio
async def test_touching_intervals_do_not_conflict(
    checker: ConflictChecker, ten_oclock: dict
) -> None:
    assert not await checker.has_conflict(DOCTOR_ID, at(MONDAY, 9, 30), 30)
    assert not await checker.has_conflict(DOCTOR_ID, at(MONDAY, 10, 30), 30)


@pytest.mark.asyncio
async def test_other_doctor_is_free(checker: ConflictChecker, ten_oclock: dict) -> None:
    assert not await checker.has_conflict("doc-2", at(MONDAY, 10), 30)


@pytest.mark.asyncio
async def test_excluded_appointment_is_ignored(checker: ConflictChecker, ten_oclock: dict) -> None:
    assert not await checker.has_conflict(
        DOCTOR_ID, at(MONDAY, 10, 15), 30, exclude_appointment_id="booked"
    )


@pytest.mark.asyncio
async def test_cancelled_appointment_does_not_conflict(
    checker: ConflictChecker,
    appointment_store: FakeAppointmentStore,
    ten_oclock: dict,
) -> None:
    await appointment_store.update("booked", {"status": "cancelled"})

    assert not await checker.has_conflict(DOCTOR_ID, at(MONDAY, 10), 30)


@pytest.mark.asyncio
async def test_find_conflicts_lists_offenders(checker: ConflictChecker, ten_oclock: dict) -> None:
    conflicts = await checker.find_conflicts(DOCTOR_ID, at(MONDAY, 10), 15)

    assert [apt["id"] for apt in conflicts] == ["booked"]


@pytest.mark.asyncio
async def test_late_evening_appointment_conflicts_after_midnight(
    checker: ConflictChecker,
    appointment_store: FakeAppointmentStore,
) -> None:
    await appointment_store.create(
        {
            "id": "late",
            "patient_id": "p",
            "doctor_id": DOCTOR_ID,
            "scheduled_at": at(MONDAY, 23, 30),
            "duration": 60,
            "status": "scheduled",
        }
    )

    assert await checker.has_conflict(DOCTOR_ID, at(TUESDAY, 0), 30)
    assert await checker.has_conflict(DOCTOR_ID, at(TUESDAY, 0, 15), 15)
    assert not await checker.has_conflict(DOCTOR_ID, at(TUESDAY, 0, 30), 30)


@pytest.mark.asyncio
async def test_proposal_running_past_midnight_sees_next_day(
    checker: ConflictChecker,
    appointment_store: FakeAppointmentStore,
) -> None:
    await appointment_store.create(
        {
            "id": "early",
            "patient_id": "p",
            "doctor_id": DOCTOR_ID,
            "scheduled_at": at(TUESDAY, 0, 10),
            "duration": 30,
            "status": "scheduled",
        }
    )

    conflicts = await checker.find_conflicts(DOCTOR_ID, at(MONDAY, 23, 45), 30)

    assert [apt["id"] for apt in conflicts] == ["early"]
