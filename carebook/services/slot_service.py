"""Slot generation from weekly availability and existing bookings."""

from datetime import UTC, date, datetime, timedelta, tzinfo
from typing import Any

import structlog
from pydantic import ValidationError

from carebook.core.exceptions import ValidationException
from carebook.core.time_ranges import (
    at_clock,
    day_bounds,
    end_of,
    local_day,
    overlaps,
    weekday_index,
)
from carebook.schemas.appointments import (
    MAX_APPOINTMENT_DURATION,
    AppointmentSlot,
    AppointmentStatus,
)
from carebook.schemas.doctors import AvailabilitySegment
from carebook.stores.base import AppointmentStore, DoctorDirectory

logger = structlog.get_logger(__name__)


def is_active(appointment: dict[str, Any]) -> bool:
    """Cancelled appointments never occupy time."""
    return appointment["status"] != AppointmentStatus.CANCELLED.value


def appointment_interval(appointment: dict[str, Any]) -> tuple[datetime, datetime]:
    """Occupied interval [scheduled_at, scheduled_at + duration)."""
    start = appointment["scheduled_at"]
    return start, end_of(start, appointment["duration"])


class SlotGenerator:
    """Computes the bookable slots of a doctor for one calendar day."""

    def __init__(
        self,
        appointments: AppointmentStore,
        directory: DoctorDirectory,
        tz: tzinfo = UTC,
        fallback_start: str = "10:00",
        fallback_end: str = "17:00",
        fallback_slot_duration: int = 30,
        max_duration: int = MAX_APPOINTMENT_DURATION,
    ):
        """Initialize generator with its stores and the fallback schedule."""
        self.appointments = appointments
        self.directory = directory
        self.tz = tz
        self.fallback_start = fallback_start
        self.fallback_end = fallback_end
        self.fallback_slot_duration = fallback_slot_duration
        self.max_duration = max_duration

    def fallback_segment(self, day_of_week: int) -> AvailabilitySegment:
        """Default schedule used when a doctor has nothing configured for the day."""
        return AvailabilitySegment(
            day_of_week=day_of_week,
            start_time=self.fallback_start,
            end_time=self.fallback_end,
            slot_duration=self.fallback_slot_duration,
        )

    async def get_day_appointments(
        self,
        doctor_id: str,
        day: date | datetime,
    ) -> list[dict[str, Any]]:
        """
        Fetch a doctor's appointments starting on the given local day.

        Cancelled appointments are included; callers decide whether they count.
        """
        day_start, day_end = day_bounds(local_day(day, self.tz), self.tz)
        fetched = await self.appointments.list_for_doctor(doctor_id, day_start, day_end)
        return [apt for apt in fetched if day_start <= apt["scheduled_at"] <= day_end]

    async def get_overlapping_appointments(
        self,
        doctor_id: str,
        start: datetime,
        end: datetime,
    ) -> list[dict[str, Any]]:
        """
        Fetch a doctor's appointments whose occupied time overlaps [start, end).

        The fetch reaches back by the longest bookable duration so that an
        appointment started before `start`, e.g. the evening before, is seen.
        Cancelled appointments are included; callers decide whether they count.
        """
        lookback = start - timedelta(minutes=self.max_duration)
        fetched = await self.appointments.list_for_doctor(doctor_id, lookback, end)
        return [apt for apt in fetched if overlaps(start, end, *appointment_interval(apt))]

    def parse_segments(
        self,
        doctor_id: str,
        raw: list[dict[str, Any]],
    ) -> list[AvailabilitySegment]:
        """Validate stored segments; any malformed segment rejects the whole list."""
        try:
            return [AvailabilitySegment.model_validate(item) for item in raw]
        except ValidationError as e:
            logger.error("availability_segment_invalid", doctor_id=doctor_id, error=str(e))
            raise ValidationException(f"Doctor {doctor_id} has malformed availability") from e

    async def generate_slots(
        self,
        doctor_id: str,
        day: date | datetime,
    ) -> list[AppointmentSlot]:
        """
        Generate available slots for a doctor on a day.

        Slots are emitted per segment in declaration order, chronologically
        within a segment, and never overlap a non-cancelled appointment.

        Args:
            doctor_id: Doctor ID
            day: Calendar day; the time of day of a datetime is ignored

        Returns:
            Ordered list of free slots, empty if the doctor is unknown

        Raises:
            ValidationException: If the doctor's availability is malformed
        """
        raw_segments = await self.directory.get_availability(doctor_id)
        if raw_segments is None:
            return []

        target_day = local_day(day, self.tz)
        day_of_week = weekday_index(target_day)

        segments = [
            segment
            for segment in self.parse_segments(doctor_id, raw_segments)
            if segment.day_of_week == day_of_week
        ]
        if not segments:
            segments = [self.fallback_segment(day_of_week)]

        day_start, day_end = day_bounds(target_day, self.tz)
        busy = [
            appointment_interval(apt)
            for apt in await self.get_overlapping_appointments(doctor_id, day_start, day_end)
            if is_active(apt)
        ]

        slots: list[AppointmentSlot] = []
        for segment in segments:
            segment_end = at_clock(target_day, segment.end_clock, self.tz)
            step = timedelta(minutes=segment.slot_duration)

            cursor = at_clock(target_day, segment.start_clock, self.tz)
            while cursor < segment_end:
                slot_end = cursor + step
                if slot_end > segment_end:
                    break

                if not any(overlaps(cursor, slot_end, start, end) for start, end in busy):
                    slots.append(AppointmentSlot(start=cursor, end=slot_end))

                cursor = slot_end

        return slots
