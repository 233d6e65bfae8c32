"""FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from carebook.config import settings
from carebook.core.redis_client import CacheManager, get_redis_client
from carebook.core.security import acting_user_id
from carebook.database import get_db
from carebook.services.appointment_service import AppointmentService
from carebook.services.audit_service import AuditRecorder
from carebook.services.conflict_service import ConflictChecker
from carebook.services.doctor_service import DoctorService
from carebook.services.slot_service import SlotGenerator
from carebook.stores.appointments import SqlAppointmentStore
from carebook.stores.audits import SqlAuditStore

# Security
security = HTTPBearer()


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> str:
    """
    Extract and validate user ID from JWT token.

    Args:
        credentials: Bearer token credentials

    Returns:
        User ID from token

    Raises:
        HTTPException: If token is invalid or expired
    """
    user_id = acting_user_id(credentials.credentials)

    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user_id


def get_cache_manager() -> CacheManager | None:
    """Get cache manager, or None when caching is disabled."""
    if not settings.cache_enabled:
        return None
    return CacheManager(get_redis_client())


def get_doctor_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    cache_manager: Annotated[CacheManager | None, Depends(get_cache_manager)],
) -> DoctorService:
    """Get doctor service instance."""
    return DoctorService(db, cache_manager, cache_ttl=settings.availability_cache_ttl)


def get_slot_generator(
    db: Annotated[AsyncSession, Depends(get_db)],
    doctor_service: Annotated[DoctorService, Depends(get_doctor_service)],
) -> SlotGenerator:
    """Get slot generator configured with the scheduling zone and fallback schedule."""
    return SlotGenerator(
        SqlAppointmentStore(db, lock_enabled=settings.booking_lock_enabled),
        doctor_service,
        tz=settings.scheduling_tz,
        fallback_start=settings.fallback_start_time,
        fallback_end=settings.fallback_end_time,
        fallback_slot_duration=settings.fallback_slot_duration,
    )


def get_appointment_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    slot_generator: Annotated[SlotGenerator, Depends(get_slot_generator)],
) -> AppointmentService:
    """Get appointment service instance; all collaborators share one session."""
    return AppointmentService(
        slot_generator.appointments,
        slot_generator.directory,
        slot_generator,
        ConflictChecker(slot_generator),
        AuditRecorder(SqlAuditStore(db)),
        default_duration=settings.default_appointment_duration,
        enforce_transitions=settings.enforce_status_transitions,
        call_base_url=settings.call_base_url,
    )


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUserId = Annotated[str, Depends(get_current_user_id)]
DoctorServiceDep = Annotated[DoctorService, Depends(get_doctor_service)]
SlotGeneratorDep = Annotated[SlotGenerator, Depends(get_slot_generator)]
AppointmentServiceDep = Annotated[AppointmentService, Depends(get_appointment_service)]
