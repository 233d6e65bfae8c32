"""Script to initialize the database and seed a demo doctor."""

import asyncio
import sys

from carebook.database import AsyncSessionLocal, engine
from carebook.models import metadata
from carebook.schemas.doctors import AvailabilitySegment
from carebook.services.doctor_service import DoctorService

DEMO_DOCTOR_ID = "demo-doctor"

# Monday-Friday 09:00-17:00, Saturday 09:00-13:00
DEMO_AVAILABILITY = [
    AvailabilitySegment(day_of_week=day, start_time="09:00", end_time="17:00", slot_duration=30)
    for day in range(1, 6)
] + [AvailabilitySegment(day_of_week=6, start_time="09:00", end_time="13:00", slot_duration=30)]


async def init_db(seed: bool = True) -> None:
    """Create all tables and optionally seed the demo doctor."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    print("✓ Tables created")

    if seed:
        async with AsyncSessionLocal() as session:
            service = DoctorService(session)
            if await service.get_doctor_by_id(DEMO_DOCTOR_ID):
                print(f"• Doctor {DEMO_DOCTOR_ID} already exists, skipping seed")
            else:
                await service.create_doctor(
                    DEMO_DOCTOR_ID,
                    full_name="Dr. Demo",
                    specialization="General Practice",
                    available_slots=DEMO_AVAILABILITY,
                )
                print(f"✓ Seeded doctor {DEMO_DOCTOR_ID}")

    await engine.dispose()
    print("✓ Database initialized successfully!")


if __name__ == "__main__":
    asyncio.run(init_db(seed="--no-seed" not in sys.argv[1:]))
