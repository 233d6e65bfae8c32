"""Database models."""

from sqlalchemy import MetaData

from carebook.models.appointment_audits import appointment_audits
from carebook.models.appointment_audits import metadata as audits_metadata
from carebook.models.appointments import appointments
from carebook.models.appointments import metadata as appointments_metadata
from carebook.models.doctors import doctors
from carebook.models.doctors import metadata as doctors_metadata

# Combined metadata for table creation and migrations
metadata = MetaData()
for _source in (appointments_metadata, audits_metadata, doctors_metadata):
    for _table in _source.tables.values():
        _table.to_metadata(metadata)

__all__ = [
    "appointment_audits",
    "appointments",
    "doctors",
    "metadata",
]
