"""Double-booking detection for a doctor's calendar."""

from datetime import datetime
from typing import Any

from carebook.core.time_ranges import end_of
from carebook.services.slot_service import SlotGenerator, is_active


class ConflictChecker:
    """Single source of truth for whether a doctor is free for an interval."""

    def __init__(self, slots: SlotGenerator):
        """Initialize checker; the slot generator supplies the appointment fetch."""
        self.slots = slots

    async def find_conflicts(
        self,
        doctor_id: str,
        start: datetime,
        duration: int,
        exclude_appointment_id: str | None = None,
    ) -> list[dict[str, Any]]:
        """
        List non-cancelled appointments overlapping [start, start + duration).

        Appointments started on an earlier day that run into the interval
        count as well.

        Args:
            doctor_id: Doctor ID
            start: Proposed start
            duration: Proposed duration in minutes
            exclude_appointment_id: Appointment to ignore, e.g. the one being rescheduled

        Returns:
            Conflicting appointments
        """
        end = end_of(start, duration)
        nearby = await self.slots.get_overlapping_appointments(doctor_id, start, end)

        return [apt for apt in nearby if apt["id"] != exclude_appointment_id and is_active(apt)]

    async def has_conflict(
        self,
        doctor_id: str,
        start: datetime,
        duration: int,
        exclude_appointment_id: str | None = None,
    ) -> bool:
        """Check whether the proposed interval overlaps an existing booking."""
        conflicts = await self.find_conflicts(doctor_id, start, duration, exclude_appointment_id)
        return bool(conflicts)
