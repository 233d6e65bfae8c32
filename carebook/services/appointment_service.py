"""Appointment lifecycle: booking, rescheduling, cancellation and status changes.

Every mutation goes through `AppointmentService` and is followed by exactly
one audit record. No other component writes appointments or audits.
"""

import uuid
from collections.abc import Awaitable, Callable
from datetime import UTC, date, datetime, tzinfo
from typing import Any

import structlog

from carebook.core.exceptions import (
    ForbiddenException,
    NotFoundException,
    SlotUnavailableException,
    ValidationException,
)
from carebook.core.time_ranges import ensure_aware, local_day
from carebook.schemas.appointments import (
    AppointmentCreate,
    AppointmentStatus,
    AppointmentType,
    CallType,
)
from carebook.schemas.audits import AuditAction
from carebook.services.audit_service import AuditRecorder
from carebook.services.conflict_service import ConflictChecker
from carebook.services.slot_service import SlotGenerator
from carebook.stores.base import AppointmentStore, DoctorDirectory

logger = structlog.get_logger(__name__)

STATUS_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.SCHEDULED: frozenset(
        {
            AppointmentStatus.CONFIRMED,
            AppointmentStatus.IN_PROGRESS,
            AppointmentStatus.CANCELLED,
            AppointmentStatus.NO_SHOW,
        }
    ),
    AppointmentStatus.CONFIRMED: frozenset(
        {
            AppointmentStatus.IN_PROGRESS,
            AppointmentStatus.CANCELLED,
            AppointmentStatus.NO_SHOW,
        }
    ),
    AppointmentStatus.IN_PROGRESS: frozenset(
        {
            AppointmentStatus.COMPLETED,
            AppointmentStatus.CANCELLED,
            AppointmentStatus.NO_SHOW,
        }
    ),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.NO_SHOW: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in STATUS_TRANSITIONS.items() if not targets
)

SYSTEM_USER = "system"


class AppointmentService:
    """Owns every appointment state mutation and its audit record."""

    def __init__(
        self,
        appointments: AppointmentStore,
        directory: DoctorDirectory,
        slots: SlotGenerator,
        conflicts: ConflictChecker,
        audit: AuditRecorder,
        default_duration: int = 30,
        enforce_transitions: bool = True,
        call_base_url: str = "https://meet.jit.si",
    ):
        """Initialize service with its injected collaborators."""
        self.appointments = appointments
        self.directory = directory
        self.slots = slots
        self.conflicts = conflicts
        self.audit = audit
        self.default_duration = default_duration
        self.enforce_transitions = enforce_transitions
        self.call_base_url = call_base_url.rstrip("/")

    @property
    def tz(self) -> tzinfo:
        return self.slots.tz

    @staticmethod
    def _now() -> datetime:
        return datetime.now(UTC)

    def _check_transition(self, appointment: dict[str, Any], target: AppointmentStatus) -> None:
        if not self.enforce_transitions:
            return
        current = AppointmentStatus(appointment["status"])
        if target not in STATUS_TRANSITIONS[current]:
            raise ValidationException(
                f"Cannot change appointment status from {current.value} to {target.value}"
            )

    def _validate_duration(self, duration: int) -> None:
        if duration <= 0:
            raise ValidationException("Duration must be a positive number of minutes")
        # Conflict lookback only reaches this far
        if duration > self.slots.max_duration:
            raise ValidationException(
                f"Duration must not exceed {self.slots.max_duration} minutes"
            )

    async def _get_existing(self, appointment_id: str) -> dict[str, Any]:
        appointment = await self.appointments.get(appointment_id)
        if not appointment:
            raise NotFoundException("Appointment not found")
        return appointment

    @staticmethod
    def _ensure_participant(appointment: dict[str, Any], user_id: str) -> None:
        if user_id not in (appointment["patient_id"], appointment["doctor_id"]):
            raise ForbiddenException("Access denied. You are not part of this appointment.")

    async def _reserve(
        self,
        doctor_id: str,
        start: datetime,
        duration: int,
        write: Callable[[], Awaitable[dict[str, Any] | None]],
        exclude_appointment_id: str | None = None,
    ) -> dict[str, Any] | None:
        """
        Check the doctor is free and perform `write` under the doctor's lock.

        This is the only place where a conflict check is tied to a write.

        Raises:
            SlotUnavailableException: If the interval overlaps a booking
        """
        async with self.appointments.doctor_lock(doctor_id):
            conflicts = await self.conflicts.find_conflicts(
                doctor_id, start, duration, exclude_appointment_id
            )
            if conflicts:
                logger.info(
                    "appointment_slot_conflict",
                    doctor_id=doctor_id,
                    start=start.isoformat(),
                    duration=duration,
                    conflicting_ids=[apt["id"] for apt in conflicts],
                )
                raise SlotUnavailableException()

            return await write()

    async def book(self, patient_id: str, data: AppointmentCreate) -> dict[str, Any]:
        """
        Book a new appointment.

        Args:
            patient_id: Patient making the booking
            data: Booking request

        Returns:
            Created appointment

        Raises:
            ValidationException: If the duration is out of range
            NotFoundException: If the doctor does not exist
            SlotUnavailableException: If the doctor is busy
        """
        duration = data.duration if data.duration is not None else self.default_duration
        self._validate_duration(duration)
        start = ensure_aware(data.scheduled_at, self.tz)

        if await self.directory.get_availability(data.doctor_id) is None:
            raise NotFoundException("Doctor not found")

        now = self._now()
        values = {
            "id": str(uuid.uuid4()),
            "patient_id": patient_id,
            "doctor_id": data.doctor_id,
            "scheduled_at": start,
            "duration": duration,
            "type": data.type.value,
            "urgency": data.urgency.value,
            "status": AppointmentStatus.SCHEDULED.value,
            "reason_for_visit": data.reason_for_visit,
            "symptoms": list(data.symptoms),
            "consultation_notes": None,
            "cancel_reason": None,
            "call_type": None,
            "call_room_id": None,
            "call_start_time": None,
            "call_end_time": None,
            "call_duration": None,
            "created_at": now,
            "updated_at": now,
        }

        appointment = await self._reserve(
            data.doctor_id,
            start,
            duration,
            lambda: self.appointments.create(values),
        )

        logger.info(
            "appointment_booked",
            appointment_id=appointment["id"],
            doctor_id=data.doctor_id,
            patient_id=patient_id,
            scheduled_at=start.isoformat(),
            duration=duration,
        )
        await self.audit.record(
            appointment["id"],
            patient_id,
            AuditAction.BOOK,
            details={"doctor_id": data.doctor_id, "scheduled_at": start, "duration": duration},
            after={
                "status": AppointmentStatus.SCHEDULED,
                "scheduled_at": start,
                "duration": duration,
            },
        )
        return appointment

    async def reschedule(
        self,
        appointment_id: str,
        new_start: datetime,
        new_duration: int | None,
        acting_user_id: str,
    ) -> dict[str, Any]:
        """
        Move an appointment to a new interval.

        A `new_duration` of None keeps the current duration. On conflict the
        appointment is left untouched and no audit record is written.

        Raises:
            ValidationException: If the duration is out of range or the appointment is closed
            NotFoundException: If the appointment does not exist
            SlotUnavailableException: If the doctor is busy
        """
        if new_duration is not None:
            self._validate_duration(new_duration)
        start = ensure_aware(new_start, self.tz)

        existing = await self._get_existing(appointment_id)
        if self.enforce_transitions and AppointmentStatus(existing["status"]) in TERMINAL_STATUSES:
            raise ValidationException(f"Cannot reschedule a {existing['status']} appointment")

        duration = new_duration if new_duration is not None else existing["duration"]
        previous = {"scheduled_at": existing["scheduled_at"], "duration": existing["duration"]}

        updated = await self._reserve(
            existing["doctor_id"],
            start,
            duration,
            lambda: self.appointments.update(
                appointment_id,
                {"scheduled_at": start, "duration": duration, "updated_at": self._now()},
            ),
            exclude_appointment_id=appointment_id,
        )
        if updated is None:
            raise NotFoundException("Appointment not found")

        logger.info(
            "appointment_rescheduled",
            appointment_id=appointment_id,
            previous_start=previous["scheduled_at"].isoformat(),
            new_start=start.isoformat(),
            duration=duration,
        )
        await self.audit.record(
            appointment_id,
            acting_user_id,
            AuditAction.RESCHEDULE,
            details={"new_start": start, "duration": duration},
            before=previous,
            after={"scheduled_at": start, "duration": duration},
        )
        return updated

    async def cancel(
        self,
        appointment_id: str,
        reason: str,
        acting_user_id: str,
    ) -> dict[str, Any]:
        """
        Cancel an appointment; cancellation is never blocked by conflicts.

        Raises:
            NotFoundException: If the appointment does not exist
            ValidationException: If the appointment is already closed
        """
        existing = await self._get_existing(appointment_id)
        self._check_transition(existing, AppointmentStatus.CANCELLED)

        updated = await self.appointments.update(
            appointment_id,
            {
                "status": AppointmentStatus.CANCELLED.value,
                "cancel_reason": reason,
                "updated_at": self._now(),
            },
        )
        if updated is None:
            raise NotFoundException("Appointment not found")

        logger.info("appointment_cancelled", appointment_id=appointment_id, user_id=acting_user_id)
        await self.audit.record(
            appointment_id,
            acting_user_id,
            AuditAction.CANCEL,
            details={"reason": reason},
            before={"status": existing["status"]},
            after={"status": AppointmentStatus.CANCELLED, "cancel_reason": reason},
        )
        return updated

    async def change_status(
        self,
        appointment_id: str,
        new_status: AppointmentStatus,
        notes: str | None = None,
        acting_user_id: str = SYSTEM_USER,
    ) -> dict[str, Any]:
        """
        Move an appointment to `new_status`, storing consultation notes if given.

        Raises:
            NotFoundException: If the appointment does not exist
            ValidationException: If the transition is not allowed
        """
        existing = await self._get_existing(appointment_id)
        self._check_transition(existing, new_status)

        values: dict[str, Any] = {"status": new_status.value, "updated_at": self._now()}
        after: dict[str, Any] = {"status": new_status}
        if notes:
            values["consultation_notes"] = notes
            after["consultation_notes"] = notes

        updated = await self.appointments.update(appointment_id, values)
        if updated is None:
            raise NotFoundException("Appointment not found")

        logger.info(
            "appointment_status_changed",
            appointment_id=appointment_id,
            previous_status=existing["status"],
            status=new_status.value,
        )
        await self.audit.record(
            appointment_id,
            acting_user_id,
            AuditAction.STATUS_CHANGE,
            details={"status": new_status, "notes": notes},
            before={"status": existing["status"]},
            after=after,
        )
        return updated

    def _call_session(self, appointment: dict[str, Any], reused: bool = False) -> dict[str, Any]:
        room_id = appointment["call_room_id"]
        return {
            "appointment_id": appointment["id"],
            "room_id": room_id,
            "call_url": f"{self.call_base_url}/{room_id}",
            "call_type": appointment["call_type"],
            "call_start_time": appointment["call_start_time"],
            "call_end_time": appointment.get("call_end_time"),
            "call_duration_minutes": appointment.get("call_duration"),
            "reused": reused,
        }

    async def start_call(
        self,
        appointment_id: str,
        user_id: str,
        call_type: CallType = CallType.VIDEO,
    ) -> dict[str, Any]:
        """
        Open a teleconsultation room and move the appointment to in-progress.

        A call already in progress is returned as-is.

        Raises:
            NotFoundException: If the appointment does not exist
            ForbiddenException: If the user is neither patient nor doctor
            ValidationException: If the appointment cannot start a call
        """
        existing = await self._get_existing(appointment_id)
        self._ensure_participant(existing, user_id)

        in_progress = existing["status"] == AppointmentStatus.IN_PROGRESS.value
        if in_progress and existing.get("call_room_id"):
            return self._call_session(existing, reused=True)

        if existing["status"] not in (
            AppointmentStatus.SCHEDULED.value,
            AppointmentStatus.CONFIRMED.value,
        ):
            raise ValidationException("Appointment must be scheduled or confirmed to start a call")
        if existing["type"] != AppointmentType.VIDEO.value:
            raise ValidationException("Only video appointments can start a call")

        now = self._now()
        room_id = f"carebook-{appointment_id}-{int(now.timestamp() * 1000)}"
        updated = await self.appointments.update(
            appointment_id,
            {
                "call_type": call_type.value,
                "call_room_id": room_id,
                "call_start_time": now,
                "status": AppointmentStatus.IN_PROGRESS.value,
                "updated_at": now,
            },
        )
        if updated is None:
            raise NotFoundException("Appointment not found")

        logger.info("appointment_call_started", appointment_id=appointment_id, room_id=room_id)
        await self.audit.record(
            appointment_id,
            user_id,
            AuditAction.STATUS_CHANGE,
            details={"event": "start_call", "call_type": call_type, "call_room_id": room_id},
            before={"status": existing["status"]},
            after={
                "status": AppointmentStatus.IN_PROGRESS,
                "call_type": call_type,
                "call_room_id": room_id,
                "call_start_time": now,
            },
        )
        return self._call_session(updated)

    async def end_call(self, appointment_id: str, user_id: str) -> dict[str, Any]:
        """
        Close the active call, record its duration and complete the appointment.

        Raises:
            NotFoundException: If the appointment does not exist
            ForbiddenException: If the user is neither patient nor doctor
            ValidationException: If no call is in progress
        """
        existing = await self._get_existing(appointment_id)
        self._ensure_participant(existing, user_id)

        call_start = existing.get("call_start_time")
        if not call_start or existing["status"] != AppointmentStatus.IN_PROGRESS.value:
            raise ValidationException("No active call found for this appointment")

        now = self._now()
        minutes = round((now - call_start).total_seconds() / 60)
        updated = await self.appointments.update(
            appointment_id,
            {
                "call_end_time": now,
                "call_duration": minutes,
                "status": AppointmentStatus.COMPLETED.value,
                "updated_at": now,
            },
        )
        if updated is None:
            raise NotFoundException("Appointment not found")

        logger.info("appointment_call_ended", appointment_id=appointment_id, minutes=minutes)
        await self.audit.record(
            appointment_id,
            user_id,
            AuditAction.STATUS_CHANGE,
            details={"event": "end_call"},
            before={"status": existing["status"]},
            after={
                "status": AppointmentStatus.COMPLETED,
                "call_end_time": now,
                "call_duration": minutes,
            },
        )
        return self._call_session(updated)

    async def get_appointment(
        self,
        appointment_id: str,
        user_id: str | None = None,
    ) -> dict[str, Any]:
        """
        Get appointment by ID, restricted to its participants when `user_id` is given.

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If user doesn't have access
        """
        appointment = await self._get_existing(appointment_id)
        if user_id is not None:
            self._ensure_participant(appointment, user_id)
        return appointment

    async def list_patient_appointments(
        self,
        patient_id: str,
        day: date | None = None,
        status: AppointmentStatus | None = None,
    ) -> list[dict[str, Any]]:
        """List a patient's appointments, newest first, optionally for one local day."""
        items = await self.appointments.list_for_patient(patient_id)
        if day is not None:
            items = [apt for apt in items if local_day(apt["scheduled_at"], self.tz) == day]
        if status:
            items = [apt for apt in items if apt["status"] == status.value]
        return items

    async def list_doctor_appointments(
        self,
        doctor_id: str,
        day: date | None = None,
        status: AppointmentStatus | None = None,
    ) -> list[dict[str, Any]]:
        """List a doctor's appointments, oldest first, optionally for one day."""
        if day is not None:
            items = await self.slots.get_day_appointments(doctor_id, day)
        else:
            items = await self.appointments.list_for_doctor(doctor_id)
        if status:
            items = [apt for apt in items if apt["status"] == status.value]
        return items

    async def get_history(
        self,
        appointment_id: str,
        user_id: str | None = None,
    ) -> list[dict[str, Any]]:
        """List the audit trail of an appointment, oldest first."""
        await self.get_appointment(appointment_id, user_id)
        return await self.audit.history(appointment_id)
