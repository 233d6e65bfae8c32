"""Doctor availability endpoints."""

from fastapi import APIRouter, status

from carebook.core.exceptions import ForbiddenException, NotFoundException
from carebook.dependencies import CurrentUserId, DoctorServiceDep, SlotGeneratorDep
from carebook.schemas.doctors import DoctorAvailabilityResponse, DoctorAvailabilityUpdate

router = APIRouter()


@router.get(
    "/doctors/{doctor_id}/availability",
    response_model=DoctorAvailabilityResponse,
    status_code=status.HTTP_200_OK,
    summary="Get doctor weekly availability",
)
async def get_doctor_availability(
    doctor_id: str,
    doctor_service: DoctorServiceDep,
    slot_generator: SlotGeneratorDep,
) -> DoctorAvailabilityResponse:
    """
    Get the weekly availability segments of a doctor.

    Raises:
        NotFoundException: If the doctor does not exist
        ValidationException: If the stored availability is malformed
    """
    raw = await doctor_service.get_availability(doctor_id)
    if raw is None:
        raise NotFoundException("Doctor not found")

    return DoctorAvailabilityResponse(
        doctor_id=doctor_id,
        available_slots=slot_generator.parse_segments(doctor_id, raw),
    )


@router.put(
    "/doctors/{doctor_id}/availability",
    response_model=DoctorAvailabilityResponse,
    status_code=status.HTTP_200_OK,
    summary="Replace doctor weekly availability",
)
async def update_doctor_availability(
    doctor_id: str,
    data: DoctorAvailabilityUpdate,
    current_user_id: CurrentUserId,
    doctor_service: DoctorServiceDep,
) -> DoctorAvailabilityResponse:
    """
    Replace the weekly availability of the authenticated doctor.

    - **availableSlots**: segments with dayOfWeek (0 = Sunday), startTime,
      endTime (HH:MM) and slotDuration in minutes
    """
    if current_user_id != doctor_id:
        raise ForbiddenException("Only the doctor can change their availability")

    stored = await doctor_service.set_availability(doctor_id, data.available_slots)
    if stored is None:
        raise NotFoundException("Doctor not found")

    return DoctorAvailabilityResponse(doctor_id=doctor_id, available_slots=data.available_slots)
