"""Appointment audit trail table model using SQLAlchemy Core."""

from sqlalchemy import JSON, CheckConstraint, Column, DateTime, MetaData, String, Table

metadata = MetaData()

# Append-only; rows are never updated or deleted
appointment_audits = Table(
    "appointment_audits",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("appointment_id", String(36), nullable=False, index=True),
    Column("user_id", String(128), nullable=False),
    Column("action", String(20), nullable=False),
    Column("timestamp", DateTime(timezone=True), nullable=False),
    Column("details", JSON, nullable=True),
    Column("previous", JSON, nullable=True),
    Column("next", JSON, nullable=True),
    CheckConstraint(
        "action IN ('book', 'reschedule', 'cancel', 'status_change')",
        name="appointment_audits_action_check",
    ),
)
