"""Append-only audit trail of appointment lifecycle mutations."""

import uuid
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any

import structlog
from prometheus_client import Counter

from carebook.core.exceptions import StoreUnavailableException
from carebook.schemas.audits import AuditAction
from carebook.stores.base import AuditStore

logger = structlog.get_logger(__name__)

AUDIT_WRITE_FAILURES = Counter(
    "carebook_audit_write_failures_total",
    "Audit records that could not be written after a successful mutation",
    ["action"],
)


def to_jsonable(value: Any) -> Any:
    """Convert snapshot values into JSON-safe primitives."""
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [to_jsonable(v) for v in value]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime | date):
        return value.isoformat()
    return value


class AuditRecorder:
    """Writes one immutable record per lifecycle mutation."""

    def __init__(self, store: AuditStore):
        """Initialize recorder with its audit store."""
        self.store = store

    async def record(
        self,
        appointment_id: str,
        user_id: str,
        action: AuditAction,
        details: dict[str, Any] | None = None,
        before: dict[str, Any] | None = None,
        after: dict[str, Any] | None = None,
    ) -> str | None:
        """
        Append an audit record.

        The mutation being documented has already been committed, so a write
        failure is logged and counted instead of raised.

        Args:
            appointment_id: Mutated appointment
            user_id: Acting user, or "system"
            action: Lifecycle operation
            details: Free-form context
            before: Partial snapshot of the mutated fields before the change
            after: Partial snapshot after the change

        Returns:
            ID of the audit record, or None if it could not be written
        """
        values = {
            "id": str(uuid.uuid4()),
            "appointment_id": appointment_id,
            "user_id": user_id,
            "action": action.value,
            "timestamp": datetime.now(UTC),
            "details": to_jsonable(details) if details is not None else None,
            "previous": to_jsonable(before) if before is not None else None,
            "next": to_jsonable(after) if after is not None else None,
        }

        try:
            stored = await self.store.append(values)
        except StoreUnavailableException as e:
            AUDIT_WRITE_FAILURES.labels(action=action.value).inc()
            logger.error(
                "appointment_audit_write_failed",
                appointment_id=appointment_id,
                action=action.value,
                user_id=user_id,
                error=e.message,
            )
            return None

        return stored["id"]

    async def history(self, appointment_id: str) -> list[dict[str, Any]]:
        """List the audit records of an appointment, oldest first."""
        return await self.store.list_for_appointment(appointment_id)
