"""Doctor directory service: profile lookup and weekly availability."""

from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from carebook.core.redis_client import CacheManager
from carebook.models.doctors import doctors
from carebook.schemas.doctors import AvailabilitySegment
from carebook.stores.appointments import translate_store_errors

logger = structlog.get_logger(__name__)


class DoctorService:
    """Service for doctor profile lookups, with optional Redis caching."""

    # Cache TTL in seconds
    AVAILABILITY_CACHE_TTL = 900  # 15 minutes

    def __init__(
        self,
        db: AsyncSession,
        cache_manager: CacheManager | None = None,
        cache_ttl: int | None = None,
    ):
        """Initialize service with database session and optional cache manager."""
        self.db = db
        self.cache = cache_manager
        self.cache_ttl = cache_ttl or self.AVAILABILITY_CACHE_TTL

    @staticmethod
    def _get_availability_cache_key(doctor_id: str) -> str:
        """Generate cache key for doctor availability."""
        return f"doctor:{doctor_id}:availability"

    async def create_doctor(
        self,
        doctor_id: str,
        full_name: str,
        specialization: str | None = None,
        available_slots: list[AvailabilitySegment] | None = None,
    ) -> dict:
        """Create a doctor profile."""
        now = datetime.now(UTC)
        async with translate_store_errors(self.db, "doctor_create"):
            stmt = (
                insert(doctors)
                .values(
                    id=doctor_id,
                    full_name=full_name,
                    specialization=specialization,
                    available_slots=[s.model_dump() for s in available_slots or []],
                    created_at=now,
                    updated_at=now,
                )
                .returning(doctors)
            )
            result = await self.db.execute(stmt)
            doctor = result.mappings().first()
            await self.db.commit()

        if not doctor:
            raise ValueError("Failed to create doctor")

        return dict(doctor)

    async def get_doctor_by_id(self, doctor_id: str) -> dict | None:
        """Get doctor by ID."""
        async with translate_store_errors(self.db, "doctor_get"):
            query = select(doctors).where(doctors.c.id == doctor_id)
            result = await self.db.execute(query)
            doctor = result.mappings().first()

        return dict(doctor) if doctor else None

    async def get_availability(self, doctor_id: str) -> list[dict[str, Any]] | None:
        """
        Get the raw weekly segments of a doctor.

        Args:
            doctor_id: Doctor ID

        Returns:
            Segment dicts as stored, or None if the doctor does not exist
        """
        # Try cache first
        if self.cache:
            cached = self.cache.get_json(self._get_availability_cache_key(doctor_id))
            if cached is not None:
                return cached

        doctor = await self.get_doctor_by_id(doctor_id)
        if not doctor:
            return None

        segments = doctor["available_slots"] or []

        if self.cache:
            self.cache.set_json(
                self._get_availability_cache_key(doctor_id),
                segments,
                ttl=self.cache_ttl,
            )

        return segments

    async def set_availability(
        self,
        doctor_id: str,
        segments: list[AvailabilitySegment],
    ) -> list[dict[str, Any]] | None:
        """
        Replace the weekly segments of a doctor.

        Returns:
            Stored segments, or None if the doctor does not exist
        """
        stored = [segment.model_dump() for segment in segments]

        async with translate_store_errors(self.db, "doctor_set_availability"):
            stmt = (
                update(doctors)
                .where(doctors.c.id == doctor_id)
                .values(available_slots=stored, updated_at=datetime.now(UTC))
                .returning(doctors.c.id)
            )
            result = await self.db.execute(stmt)
            row = result.fetchone()
            await self.db.commit()

        if not row:
            return None

        # Invalidate cache
        if self.cache:
            self.cache.delete(self._get_availability_cache_key(doctor_id))

        logger.info("doctor_availability_updated", doctor_id=doctor_id, segments=len(stored))
        return stored
