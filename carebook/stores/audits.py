"""SQL-backed, append-only appointment audit store."""

from typing import Any

from sqlalchemy import insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from carebook.models.appointment_audits import appointment_audits
from carebook.stores.appointments import row_to_record, to_storage, translate_store_errors


class SqlAuditStore:
    """Audit store over an async SQLAlchemy session; insert and read only."""

    def __init__(self, db: AsyncSession):
        """Initialize store with database session."""
        self.db = db

    async def append(self, values: dict[str, Any]) -> dict[str, Any]:
        """Insert one audit record."""
        async with translate_store_errors(self.db, "audit_append"):
            stmt = (
                insert(appointment_audits)
                .values(**to_storage(values))
                .returning(appointment_audits)
            )
            result = await self.db.execute(stmt)
            row = result.fetchone()
            await self.db.commit()

        return row_to_record(row, ("timestamp",))

    async def list_for_appointment(self, appointment_id: str) -> list[dict[str, Any]]:
        """List the audit records of one appointment in write order."""
        async with translate_store_errors(self.db, "audit_list"):
            stmt = (
                select(appointment_audits)
                .where(appointment_audits.c.appointment_id == appointment_id)
                .order_by(appointment_audits.c.timestamp, appointment_audits.c.id)
            )
            result = await self.db.execute(stmt)
            rows = result.fetchall()

        return [row_to_record(row, ("timestamp",)) for row in rows]
