"""Appointment audit trail schemas."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import ConfigDict

from carebook.schemas.common import CamelModel


class AuditAction(str, Enum):
    """Lifecycle operations that produce an audit record."""

    BOOK = "book"
    RESCHEDULE = "reschedule"
    CANCEL = "cancel"
    STATUS_CHANGE = "status_change"


class AppointmentAuditResponse(CamelModel):
    """Schema for an audit record."""

    id: str
    appointment_id: str
    user_id: str
    action: AuditAction
    timestamp: datetime
    details: dict[str, Any] | None = None
    previous: dict[str, Any] | None = None
    next: dict[str, Any] | None = None

    model_config = ConfigDict(from_attributes=True)


class AppointmentAuditListResponse(CamelModel):
    """Audit history of one appointment, oldest first."""

    items: list[AppointmentAuditResponse]
