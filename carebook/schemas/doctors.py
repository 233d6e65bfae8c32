"""Doctor availability schemas."""

from datetime import time

from pydantic import Field, field_validator, model_validator

from carebook.core.time_ranges import parse_clock
from carebook.schemas.common import CamelModel


class AvailabilitySegment(CamelModel):
    """A weekly recurring window during which a doctor takes appointments."""

    day_of_week: int = Field(..., ge=0, le=6, description="0 = Sunday .. 6 = Saturday")
    start_time: str = Field(..., examples=["09:00"])
    end_time: str = Field(..., examples=["17:00"])
    slot_duration: int = Field(default=30, gt=0, le=480, description="Minutes per slot")

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_clock(cls, v: str) -> str:
        """Validate HH:MM format."""
        parse_clock(v)
        return v

    @model_validator(mode="after")
    def validate_window(self) -> "AvailabilitySegment":
        """Validate the segment ends after it starts."""
        if self.start_clock >= self.end_clock:
            raise ValueError("startTime must be before endTime")
        return self

    @property
    def start_clock(self) -> time:
        return parse_clock(self.start_time)

    @property
    def end_clock(self) -> time:
        return parse_clock(self.end_time)


class DoctorAvailabilityUpdate(CamelModel):
    """Schema for replacing a doctor's weekly availability."""

    available_slots: list[AvailabilitySegment] = Field(default_factory=list)


class DoctorAvailabilityResponse(CamelModel):
    """Doctor availability response schema."""

    doctor_id: str
    available_slots: list[AvailabilitySegment]
