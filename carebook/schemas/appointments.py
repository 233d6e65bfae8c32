"""Appointment schemas for request/response validation."""

from datetime import datetime
from enum import Enum

from pydantic import ConfigDict, Field, field_validator, model_validator

from carebook.schemas.common import CamelModel

# Longest bookable appointment, in minutes
MAX_APPOINTMENT_DURATION = 480


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"


class AppointmentType(str, Enum):
    """Consultation type enumeration."""

    VIDEO = "video"
    IN_PERSON = "in-person"


class Urgency(str, Enum):
    """Patient-declared urgency enumeration."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    EMERGENCY = "emergency"


class CallType(str, Enum):
    """Teleconsultation call type."""

    VIDEO = "video"
    VOICE = "voice"


class AppointmentAction(str, Enum):
    """Actions accepted by the modify endpoint."""

    RESCHEDULE = "reschedule"
    CANCEL = "cancel"


class AppointmentSlot(CamelModel):
    """A bookable interval; generated per query and never stored."""

    start: datetime
    end: datetime


class SlotListResponse(CamelModel):
    """Available slots of a doctor for one day."""

    slots: list[AppointmentSlot]


class AppointmentCreate(CamelModel):
    """Schema for booking a new appointment."""

    doctor_id: str = Field(..., min_length=1, max_length=128)
    scheduled_at: datetime
    duration: int | None = Field(None, gt=0, le=MAX_APPOINTMENT_DURATION, description="Minutes")
    type: AppointmentType = AppointmentType.VIDEO
    reason_for_visit: str | None = Field(None, max_length=1000)
    symptoms: list[str] = Field(default_factory=list)
    urgency: Urgency = Urgency.MEDIUM


class AppointmentStatusUpdate(CamelModel):
    """Schema for updating appointment status."""

    id: str = Field(..., min_length=1)
    status: AppointmentStatus
    notes: str | None = Field(None, max_length=2000)


class AppointmentModify(CamelModel):
    """Schema for rescheduling or cancelling an appointment."""

    action: AppointmentAction
    id: str = Field(..., min_length=1)
    new_scheduled_at: datetime | None = None
    duration: int | None = Field(None, gt=0, le=MAX_APPOINTMENT_DURATION)
    reason: str | None = Field(None, max_length=1000)

    @model_validator(mode="after")
    def validate_reschedule_target(self) -> "AppointmentModify":
        """Validate a reschedule names the new start."""
        if self.action == AppointmentAction.RESCHEDULE and self.new_scheduled_at is None:
            raise ValueError("newScheduledAt is required for reschedule")
        return self


class AppointmentResponse(CamelModel):
    """Schema for appointment response."""

    id: str
    patient_id: str
    doctor_id: str
    scheduled_at: datetime
    duration: int
    type: AppointmentType
    urgency: Urgency
    status: AppointmentStatus
    reason_for_visit: str | None = None
    symptoms: list[str] = Field(default_factory=list)
    consultation_notes: str | None = None
    cancel_reason: str | None = None
    call_type: CallType | None = None
    call_room_id: str | None = None
    call_start_time: datetime | None = None
    call_end_time: datetime | None = None
    call_duration: int | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("symptoms", mode="before")
    @classmethod
    def default_symptoms(cls, v: list[str] | None) -> list[str]:
        """Stored rows may carry NULL symptoms."""
        return v or []


class AppointmentListResponse(CamelModel):
    """Schema for appointment list response."""

    items: list[AppointmentResponse]


class CallStartRequest(CamelModel):
    """Schema for starting a teleconsultation call."""

    call_type: CallType = CallType.VIDEO


class CallSessionResponse(CamelModel):
    """Call room details returned by start-call and end-call."""

    appointment_id: str
    room_id: str
    call_url: str
    call_type: CallType
    call_start_time: datetime
    call_end_time: datetime | None = None
    call_duration_minutes: int | None = None
    reused: bool = False
