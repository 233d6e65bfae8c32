"""SQL-backed appointment store."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy import insert, select, text, update
from sqlalchemy.engine import Row
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from carebook.core.exceptions import StoreUnavailableException
from carebook.core.time_ranges import from_storage
from carebook.models.appointments import appointments

logger = structlog.get_logger(__name__)

TIMESTAMP_COLUMNS = (
    "scheduled_at",
    "call_start_time",
    "call_end_time",
    "created_at",
    "updated_at",
)


def to_storage(values: dict[str, Any]) -> dict[str, Any]:
    """Convert aware timestamps to UTC before they reach the database."""
    converted = dict(values)
    for key, value in converted.items():
        if isinstance(value, datetime) and value.tzinfo is not None:
            converted[key] = value.astimezone(UTC)
    return converted


def row_to_record(row: Row, timestamp_columns: tuple[str, ...]) -> dict[str, Any]:
    """Map a result row to a dict with timezone-aware timestamps."""
    record = dict(row._mapping)
    for column in timestamp_columns:
        if column in record:
            record[column] = from_storage(record[column])
    return record


@asynccontextmanager
async def translate_store_errors(db: AsyncSession, operation: str) -> AsyncIterator[None]:
    """Roll back and surface database failures as StoreUnavailableException."""
    try:
        yield
    except (SQLAlchemyError, OSError) as e:
        logger.error("store_operation_failed", operation=operation, error=str(e))
        try:
            await db.rollback()
        except (SQLAlchemyError, OSError) as rollback_error:
            logger.warning("store_rollback_failed", operation=operation, error=str(rollback_error))
        raise StoreUnavailableException(f"Store unavailable during {operation}") from e


class SqlAppointmentStore:
    """Appointment store over an async SQLAlchemy session."""

    def __init__(self, db: AsyncSession, lock_enabled: bool = True):
        """Initialize store with database session."""
        self.db = db
        self.lock_enabled = lock_enabled

    async def create(self, values: dict[str, Any]) -> dict[str, Any]:
        """Insert an appointment and return the stored row."""
        async with translate_store_errors(self.db, "appointment_create"):
            stmt = insert(appointments).values(**to_storage(values)).returning(appointments)
            result = await self.db.execute(stmt)
            row = result.fetchone()
            await self.db.commit()

        return row_to_record(row, TIMESTAMP_COLUMNS)

    async def get(self, appointment_id: str) -> dict[str, Any] | None:
        """Get appointment by ID."""
        async with translate_store_errors(self.db, "appointment_get"):
            stmt = select(appointments).where(appointments.c.id == appointment_id)
            result = await self.db.execute(stmt)
            row = result.fetchone()

        return row_to_record(row, TIMESTAMP_COLUMNS) if row else None

    async def update(self, appointment_id: str, values: dict[str, Any]) -> dict[str, Any] | None:
        """Apply `values` to an appointment and return the updated row."""
        async with translate_store_errors(self.db, "appointment_update"):
            stmt = (
                update(appointments)
                .where(appointments.c.id == appointment_id)
                .values(**to_storage(values))
                .returning(appointments)
            )
            result = await self.db.execute(stmt)
            row = result.fetchone()
            await self.db.commit()

        return row_to_record(row, TIMESTAMP_COLUMNS) if row else None

    async def list_for_doctor(
        self,
        doctor_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[dict[str, Any]]:
        """List a doctor's appointments, oldest first, optionally within [start, end]."""
        conditions = [appointments.c.doctor_id == doctor_id]
        if start is not None:
            conditions.append(appointments.c.scheduled_at >= start.astimezone(UTC))
        if end is not None:
            conditions.append(appointments.c.scheduled_at <= end.astimezone(UTC))

        async with translate_store_errors(self.db, "appointment_list_doctor"):
            stmt = select(appointments).where(*conditions).order_by(appointments.c.scheduled_at)
            result = await self.db.execute(stmt)
            rows = result.fetchall()

        return [row_to_record(row, TIMESTAMP_COLUMNS) for row in rows]

    async def list_for_patient(self, patient_id: str) -> list[dict[str, Any]]:
        """List a patient's appointments, newest first."""
        async with translate_store_errors(self.db, "appointment_list_patient"):
            stmt = (
                select(appointments)
                .where(appointments.c.patient_id == patient_id)
                .order_by(appointments.c.scheduled_at.desc())
            )
            result = await self.db.execute(stmt)
            rows = result.fetchall()

        return [row_to_record(row, TIMESTAMP_COLUMNS) for row in rows]

    @asynccontextmanager
    async def doctor_lock(self, doctor_id: str) -> AsyncIterator[None]:
        """
        Hold a per-doctor lock for the current transaction.

        On PostgreSQL this is a transaction-scoped advisory lock, released by
        the commit of the guarded write or by the rollback on failure. Other
        dialects get no locking.
        """
        if self.lock_enabled and self.db.get_bind().dialect.name == "postgresql":
            async with translate_store_errors(self.db, "appointment_lock"):
                await self.db.execute(
                    text("SELECT pg_advisory_xact_lock(hashtext(:lock_key))"),
                    {"lock_key": f"appointments:{doctor_id}"},
                )

        try:
            yield
        except Exception:
            await self.db.rollback()
            raise
