"""Persistence interfaces consumed by the scheduling core.

Records cross these interfaces as plain dicts keyed by table column name,
with timezone-aware datetimes.
"""

from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Any, Protocol


class AppointmentStore(Protocol):
    """Appointment persistence; written only by the lifecycle manager."""

    async def create(self, values: dict[str, Any]) -> dict[str, Any]: ...

    async def get(self, appointment_id: str) -> dict[str, Any] | None: ...

    async def update(
        self, appointment_id: str, values: dict[str, Any]
    ) -> dict[str, Any] | None: ...

    async def list_for_doctor(
        self,
        doctor_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[dict[str, Any]]:
        """Appointments of a doctor; stores may narrow to [start, end], callers re-filter."""
        ...

    async def list_for_patient(self, patient_id: str) -> list[dict[str, Any]]: ...

    def doctor_lock(self, doctor_id: str) -> AbstractAsyncContextManager[None]:
        """Serialize check-then-write sequences for one doctor's calendar."""
        ...


class AuditStore(Protocol):
    """Append-only audit persistence."""

    async def append(self, values: dict[str, Any]) -> dict[str, Any]: ...

    async def list_for_appointment(self, appointment_id: str) -> list[dict[str, Any]]: ...


class DoctorDirectory(Protocol):
    """Read-only view of doctor profiles."""

    async def get_availability(self, doctor_id: str) -> list[dict[str, Any]] | None:
        """Raw weekly segments of the doctor, or None when the doctor is unknown."""
        ...
