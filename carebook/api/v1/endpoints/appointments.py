"""Appointment endpoints."""

from datetime import date, datetime
from enum import Enum

from fastapi import APIRouter, Query, status

from carebook.config import settings
from carebook.dependencies import AppointmentServiceDep, CurrentUserId, SlotGeneratorDep
from carebook.schemas.appointments import (
    AppointmentAction,
    AppointmentCreate,
    AppointmentListResponse,
    AppointmentModify,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentStatusUpdate,
    CallSessionResponse,
    CallStartRequest,
    SlotListResponse,
)
from carebook.schemas.audits import AppointmentAuditListResponse
from carebook.schemas.common import SuccessResponse

router = APIRouter()


class ListRole(str, Enum):
    """Side of the appointment the caller lists from."""

    PATIENT = "patient"
    DOCTOR = "doctor"


@router.get(
    "/slots",
    response_model=SlotListResponse,
    status_code=status.HTTP_200_OK,
    summary="Get available slots",
)
async def get_available_slots(
    slot_generator: SlotGeneratorDep,
    doctor_id: str = Query(..., alias="doctorId", min_length=1),
    day: date | None = Query(None, alias="date", description="YYYY-MM-DD, defaults to today"),
) -> SlotListResponse:
    """
    List the free slots of a doctor for one day.

    Args:
        slot_generator: Slot generator
        doctor_id: Doctor ID
        day: Calendar day in the scheduling timezone

    Returns:
        Ordered free slots
    """
    target_day = day or datetime.now(settings.scheduling_tz).date()
    slots = await slot_generator.generate_slots(doctor_id, target_day)
    return SlotListResponse(slots=slots)


@router.post(
    "",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book appointment",
)
async def book_appointment(
    data: AppointmentCreate,
    current_user_id: CurrentUserId,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """
    Book an appointment for the authenticated patient.

    Args:
        data: Booking data
        current_user_id: Authenticated patient
        service: Appointment service

    Returns:
        Created appointment
    """
    appointment = await service.book(current_user_id, data)
    return AppointmentResponse.model_validate(appointment)


@router.put(
    "",
    response_model=SuccessResponse,
    status_code=status.HTTP_200_OK,
    summary="Update appointment status",
)
async def update_appointment_status(
    data: AppointmentStatusUpdate,
    current_user_id: CurrentUserId,
    service: AppointmentServiceDep,
) -> SuccessResponse:
    """
    Update appointment status (e.g., confirm, complete, no-show).

    Args:
        data: Status update data
        current_user_id: Authenticated user
        service: Appointment service

    Returns:
        Acknowledgement
    """
    await service.change_status(data.id, data.status, data.notes, acting_user_id=current_user_id)
    return SuccessResponse()


@router.patch(
    "",
    response_model=SuccessResponse,
    status_code=status.HTTP_200_OK,
    summary="Reschedule or cancel appointment",
)
async def modify_appointment(
    data: AppointmentModify,
    current_user_id: CurrentUserId,
    service: AppointmentServiceDep,
) -> SuccessResponse:
    """
    Reschedule or cancel an appointment.

    Args:
        data: Modification request
        current_user_id: Authenticated user
        service: Appointment service

    Returns:
        Acknowledgement
    """
    if data.action == AppointmentAction.RESCHEDULE:
        await service.reschedule(
            data.id,
            data.new_scheduled_at,
            data.duration,
            acting_user_id=current_user_id,
        )
    else:
        await service.cancel(data.id, data.reason or "Cancelled", acting_user_id=current_user_id)
    return SuccessResponse()


@router.get(
    "",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    summary="List appointments",
)
async def list_appointments(
    current_user_id: CurrentUserId,
    service: AppointmentServiceDep,
    role: ListRole = Query(ListRole.PATIENT),
    day: date | None = Query(None, alias="date"),
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
) -> AppointmentListResponse:
    """
    List the caller's appointments as patient or as doctor.

    Args:
        current_user_id: Authenticated user
        service: Appointment service
        role: Whether the caller is the patient or the doctor
        day: Only appointments starting on this day
        status_filter: Filter by status

    Returns:
        Appointments; doctors get oldest first, patients newest first
    """
    if role == ListRole.DOCTOR:
        items = await service.list_doctor_appointments(current_user_id, day, status_filter)
    else:
        items = await service.list_patient_appointments(current_user_id, day, status_filter)

    return AppointmentListResponse(
        items=[AppointmentResponse.model_validate(item) for item in items],
    )


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: str,
    current_user_id: CurrentUserId,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """
    Get a specific appointment by ID.

    Raises:
        NotFoundException: If appointment not found
        ForbiddenException: If the caller is not a participant
    """
    appointment = await service.get_appointment(appointment_id, current_user_id)
    return AppointmentResponse.model_validate(appointment)


@router.get(
    "/{appointment_id}/history",
    response_model=AppointmentAuditListResponse,
    status_code=status.HTTP_200_OK,
    summary="Get appointment audit history",
)
async def get_appointment_history(
    appointment_id: str,
    current_user_id: CurrentUserId,
    service: AppointmentServiceDep,
) -> AppointmentAuditListResponse:
    """List the audit trail of an appointment, oldest first."""
    records = await service.get_history(appointment_id, current_user_id)
    return AppointmentAuditListResponse.model_validate({"items": records})


@router.post(
    "/{appointment_id}/start-call",
    response_model=CallSessionResponse,
    status_code=status.HTTP_200_OK,
    summary="Start teleconsultation call",
)
async def start_call(
    appointment_id: str,
    current_user_id: CurrentUserId,
    service: AppointmentServiceDep,
    data: CallStartRequest | None = None,
) -> CallSessionResponse:
    """
    Open the call room of a video appointment.

    Args:
        appointment_id: Appointment ID
        current_user_id: Patient or doctor of the appointment
        service: Appointment service
        data: Optional call type, video by default

    Returns:
        Call room details
    """
    call_type = (data or CallStartRequest()).call_type
    session = await service.start_call(appointment_id, current_user_id, call_type)
    return CallSessionResponse.model_validate(session)


@router.post(
    "/{appointment_id}/end-call",
    response_model=CallSessionResponse,
    status_code=status.HTTP_200_OK,
    summary="End teleconsultation call",
)
async def end_call(
    appointment_id: str,
    current_user_id: CurrentUserId,
    service: AppointmentServiceDep,
) -> CallSessionResponse:
    """Close the active call and complete the appointment."""
    session = await service.end_call(appointment_id, current_user_id)
    return CallSessionResponse.model_validate(session)
