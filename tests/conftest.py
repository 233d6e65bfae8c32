import asyncio
import os
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, date, datetime, timedelta
from typing import Any

# Settings are read once at import time; pin the test configuration first
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CACHE_ENABLED"] = "false"
os.environ["SCHEDULING_TIMEZONE"] = "UTC"
os.environ["LOG_FORMAT"] = "console"
os.environ["JWT_SECRET_KEY"] = "test-secret"  # pragma: allowlist secret

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from carebook.core.exceptions import StoreUnavailableException
from carebook.core.security import create_access_token
from carebook.database import get_db
from carebook.dependencies import get_cache_manager
from carebook.main import app
from carebook.models import metadata
from carebook.schemas.doctors import AvailabilitySegment
from carebook.services.appointment_service import AppointmentService
from carebook.services.audit_service import AuditRecorder
from carebook.services.conflict_service import ConflictChecker
from carebook.services.doctor_service import DoctorService
from carebook.services.slot_service import SlotGenerator

# 2030-01-07 is a Monday, 2030-01-08 a Tuesday
MONDAY = date(2030, 1, 7)
TUESDAY = date(2030, 1, 8)

DOCTOR_ID = "doc-1"
PATIENT_ID = "patient-1"
OTHER_PATIENT_ID = "patient-2"

MONDAY_MORNING = [
    {"day_of_week": 1, "start_time": "09:00", "end_time": "12:00", "slot_duration": 30},
]


def at(day: date, hour: int, minute: int = 0) -> datetime:
    """UTC instant on `day`."""
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=UTC)


# ============================================================================
# In-memory collaborators for the scheduling core
# ============================================================================


class FakeAppointmentStore:
    """Dict-backed appointment store; yields to the loop on every call."""

    def __init__(self):
        self.rows: dict[str, dict[str, Any]] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self.lock_acquisitions = 0

    async def create(self, values: dict[str, Any]) -> dict[str, Any]:
        await asyncio.sleep(0)
        self.rows[values["id"]] = dict(values)
        return dict(values)

    async def get(self, appointment_id: str) -> dict[str, Any] | None:
        row = self.rows.get(appointment_id)
        return dict(row) if row else None

    async def update(self, appointment_id: str, values: dict[str, Any]) -> dict[str, Any] | None:
        await asyncio.sleep(0)
        if appointment_id not in self.rows:
            return None
        self.rows[appointment_id].update(values)
        return dict(self.rows[appointment_id])

    async def list_for_doctor(
        self,
        doctor_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[dict[str, Any]]:
        await asyncio.sleep(0)
        items = [
            dict(row)
            for row in self.rows.values()
            if row["doctor_id"] == doctor_id
            and (start is None or row["scheduled_at"] >= start)
            and (end is None or row["scheduled_at"] <= end)
        ]
        return sorted(items, key=lambda row: row["scheduled_at"])

    async def list_for_patient(self, patient_id: str) -> list[dict[str, Any]]:
        items = [dict(row) for row in self.rows.values() if row["patient_id"] == patient_id]
        return sorted(items, key=lambda row: row["scheduled_at"], reverse=True)

    @asynccontextmanager
    async def doctor_lock(self, doctor_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(doctor_id, asyncio.Lock())
        async with lock:
            self.lock_acquisitions += 1
            yield


class FakeAuditStore:
    def __init__(self):
        self.records: list[dict[str, Any]] = []

    async def append(self, values: dict[str, Any]) -> dict[str, Any]:
        self.records.append(dict(values))
        return dict(values)

    async def list_for_appointment(self, appointment_id: str) -> list[dict[str, Any]]:
        return [dict(r) for r in self.records if r["appointment_id"] == appointment_id]

    def actions(self, appointment_id: str) -> list[str]:
        return [r["action"] for r in self.records if r["appointment_id"] == appointment_id]


class FailingAuditStore(FakeAuditStore):
    async def append(self, values: dict[str, Any]) -> dict[str, Any]:
        raise StoreUnavailableException("audit table unreachable")


class FakeDirectory:
    def __init__(self, doctors: dict[str, list[dict[str, Any]]] | None = None):
        self.doctors = doctors if doctors is not None else {}

    async def get_availability(self, doctor_id: str) -> list[dict[str, Any]] | None:
        segments = self.doctors.get(doctor_id)
        return list(segments) if segments is not None else None


def build_service(
    store: FakeAppointmentStore,
    audits: FakeAuditStore,
    directory: FakeDirectory,
    **options: Any,
) -> AppointmentService:
    """Wire an AppointmentService over in-memory collaborators."""
    slots = SlotGenerator(store, directory)
    return AppointmentService(
        store,
        directory,
        slots,
        ConflictChecker(slots),
        AuditRecorder(audits),
        **options,
    )


@pytest.fixture
def appointment_store() -> FakeAppointmentStore:
    return FakeAppointmentStore()


@pytest.fixture
def audit_store() -> FakeAuditStore:
    return FakeAuditStore()


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory({DOCTOR_ID: list(MONDAY_MORNING)})


@pytest.fixture
def slot_generator(appointment_store, directory) -> SlotGenerator:
    return SlotGenerator(appointment_store, directory)


@pytest.fixture
def appointment_service(appointment_store, audit_store, directory) -> AppointmentService:
    return build_service(appointment_store, audit_store, directory)


# ============================================================================
# SQLite-backed database and HTTP client
# ============================================================================

test_engine = create_async_engine(
    "sqlite+aiosqlite://",
    echo=False,
    poolclass=StaticPool,
    connect_args={"check_same_thread": False},
)

TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
        await conn.run_sync(metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache_manager] = lambda: None

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def test_doctor(db_session: AsyncSession) -> dict:
    """Create a doctor working Monday 09:00-12:00."""
    service = DoctorService(db_session)
    return await service.create_doctor(
        DOCTOR_ID,
        full_name="Dr. Jane Roe",
        specialization="Cardiology",
        available_slots=[AvailabilitySegment.model_validate(s) for s in MONDAY_MORNING],
    )


def make_auth_headers(user_id: str) -> dict:
    token = create_access_token(data={"sub": user_id}, expires_delta=timedelta(minutes=30))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers() -> dict:
    """Create authentication headers for the test patient."""
    return make_auth_headers(PATIENT_ID)


@pytest.fixture
def doctor_headers() -> dict:
    """Create authentication headers for the test doctor."""
    return make_auth_headers(DOCTOR_ID)


@pytest.fixture
def sample_appointment_data() -> dict:
    """Booking payload for Monday 10:00."""
    return {
        "doctorId": DOCTOR_ID,
        "scheduledAt": at(MONDAY, 10).isoformat(),
        "duration": 30,
        "type": "video",
        "reasonForVisit": "Chest pain follow-up",
        "symptoms": ["chest pain"],
        "urgency": "high",
    }
