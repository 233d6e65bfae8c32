"""Doctor directory model definition using SQLAlchemy Core."""

from sqlalchemy import JSON, Column, DateTime, MetaData, String, Table, Text

metadata = MetaData()

doctors = Table(
    "doctors",
    metadata,
    Column("id", String(128), primary_key=True),
    Column("full_name", Text, nullable=False),
    Column("specialization", String(200), index=True),
    # Weekly segments: [{"day_of_week", "start_time", "end_time", "slot_duration"}]
    Column("available_slots", JSON, nullable=True),
    # Metadata
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)
