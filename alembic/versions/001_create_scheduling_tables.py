"""Create doctors, appointments and appointment_audits tables.

Revision ID: 001
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade database schema."""
    # Doctor directory
    op.create_table(
        "doctors",
        sa.Column("id", sa.String(length=128), nullable=False),
        sa.Column("full_name", sa.Text(), nullable=False),
        sa.Column("specialization", sa.String(length=200), nullable=True),
        sa.Column("available_slots", sa.JSON(), nullable=True),
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_doctors_specialization", "doctors", ["specialization"])

    # Appointments
    op.create_table(
        "appointments",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("patient_id", sa.String(length=128), nullable=False),
        sa.Column("doctor_id", sa.String(length=128), nullable=False),
        sa.Column("scheduled_at", postgresql.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(length=20), server_default="video", nullable=False),
        sa.Column("urgency", sa.String(length=20), server_default="medium", nullable=False),
        sa.Column("status", sa.String(length=20), server_default="scheduled", nullable=False),
        sa.Column("reason_for_visit", sa.Text(), nullable=True),
        sa.Column("symptoms", sa.JSON(), nullable=True),
        sa.Column("consultation_notes", sa.Text(), nullable=True),
        sa.Column("cancel_reason", sa.Text(), nullable=True),
        sa.Column("call_type", sa.String(length=20), nullable=True),
        sa.Column("call_room_id", sa.String(length=200), nullable=True),
        sa.Column("call_start_time", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("call_end_time", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("call_duration", sa.Integer(), nullable=True),
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.CheckConstraint(
            "status IN ('scheduled', 'confirmed', 'in-progress', "
            "'completed', 'cancelled', 'no-show')",
            name="appointments_status_check",
        ),
        sa.CheckConstraint("duration > 0", name="appointments_duration_check"),
        sa.CheckConstraint("type IN ('video', 'in-person')", name="appointments_type_check"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_appointments_patient_id", "appointments", ["patient_id"])
    op.create_index("ix_appointments_doctor_id", "appointments", ["doctor_id"])
    op.create_index(
        "idx_appointments_doctor_scheduled_at",
        "appointments",
        ["doctor_id", "scheduled_at"],
    )

    # Append-only audit trail
    op.create_table(
        "appointment_audits",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("appointment_id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("action", sa.String(length=20), nullable=False),
        sa.Column("timestamp", postgresql.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("previous", sa.JSON(), nullable=True),
        sa.Column("next", sa.JSON(), nullable=True),
        sa.CheckConstraint(
            "action IN ('book', 'reschedule', 'cancel', 'status_change')",
            name="appointment_audits_action_check",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_appointment_audits_appointment_id",
        "appointment_audits",
        ["appointment_id"],
    )


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_index("ix_appointment_audits_appointment_id", table_name="appointment_audits")
    op.drop_table("appointment_audits")

    op.drop_index("idx_appointments_doctor_scheduled_at", table_name="appointments")
    op.drop_index("ix_appointments_doctor_id", table_name="appointments")
    op.drop_index("ix_appointments_patient_id", table_name="appointments")
    op.drop_table("appointments")

    op.drop_index("ix_doctors_specialization", table_name="doctors")
    op.drop_table("doctors")
