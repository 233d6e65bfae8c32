"""Appointments table model using SQLAlchemy Core."""

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
)

# Metadata for all tables
metadata = MetaData()

# Appointments table
appointments = Table(
    "appointments",
    metadata,
    Column("id", String(36), primary_key=True),
    # Parties (opaque references into the user directory)
    Column("patient_id", String(128), nullable=False, index=True),
    Column("doctor_id", String(128), nullable=False, index=True),
    # Timing
    Column("scheduled_at", DateTime(timezone=True), nullable=False),
    Column("duration", Integer, nullable=False),
    # Classification
    Column("type", String(20), nullable=False, server_default="video"),
    Column("urgency", String(20), nullable=False, server_default="medium"),
    # Status management
    Column("status", String(20), nullable=False, server_default="scheduled"),
    # Narrative
    Column("reason_for_visit", Text, nullable=True),
    Column("symptoms", JSON, nullable=True),
    Column("consultation_notes", Text, nullable=True),
    Column("cancel_reason", Text, nullable=True),
    # Call metadata
    Column("call_type", String(20), nullable=True),
    Column("call_room_id", String(200), nullable=True),
    Column("call_start_time", DateTime(timezone=True), nullable=True),
    Column("call_end_time", DateTime(timezone=True), nullable=True),
    Column("call_duration", Integer, nullable=True),
    # Audit fields
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    # Constraints
    CheckConstraint(
        "status IN ('scheduled', 'confirmed', 'in-progress', 'completed', 'cancelled', 'no-show')",
        name="appointments_status_check",
    ),
    CheckConstraint("duration > 0", name="appointments_duration_check"),
    CheckConstraint("type IN ('video', 'in-person')", name="appointments_type_check"),
    Index("idx_appointments_doctor_scheduled_at", "doctor_id", "scheduled_at"),
)
