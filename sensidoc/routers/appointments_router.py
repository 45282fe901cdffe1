from typing import List, Optional
from fastapi import APIRouter, Depends, Query
import logging

from ..application.identity import IdentityContext
from ..application.ports.appointments_repo import AppointmentDto, NotesPatch
from ..application.services.appointments_service import AppointmentsService
from ..exceptions import create_success_response
from ..schemas.common.common import ErrorResponse
from ..schemas.appointments.appointment import (
    AppointmentBooked,
    AppointmentCreate,
    AppointmentResponse,
    AppointmentStatusResponse,
    AppointmentStatusUpdate,
)
from .deps import get_appointments_service, get_identity

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/appointments",
    tags=["Appointments"],
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)


def _to_response(a: AppointmentDto) -> AppointmentResponse:
    return AppointmentResponse(
        id=a.id,
        patient_id=a.patient_id,
        doctor_id=a.doctor_id,
        appointment_date=a.appointment_date,
        appointment_time=a.appointment_time,
        consultation_type=a.consultation_kind,
        status=a.status,
        symptoms=a.symptom_notes,
        notes=a.clinical_notes,
        prescription=a.prescription_text,
        created_at=a.created_at,
        updated_at=a.updated_at,
    )


@router.post("/", status_code=201, responses={409: {"model": ErrorResponse}})
def book_appointment(
    appointment_data: AppointmentCreate,
    identity: IdentityContext = Depends(get_identity),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    appt = appt_service.book(
        identity,
        doctor_id=appointment_data.doctor_id,
        appointment_date=appointment_data.appointment_date,
        appointment_time=appointment_data.appointment_time,
        consultation_kind=appointment_data.consultation_type,
        symptom_notes=appointment_data.symptoms,
    )
    booked = AppointmentBooked(id=appt.id, status=appt.status)
    return create_success_response(booked.model_dump(mode="json"), "Appointment booked successfully")


@router.get("/")
def get_my_appointments(
    status: Optional[str] = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    identity: IdentityContext = Depends(get_identity),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    result = appt_service.list_visible(identity, status=status, page=page, limit=limit)
    items: List[dict] = [_to_response(a).model_dump(mode="json") for a in result.items]
    return create_success_response(items, "Appointments retrieved successfully", pagination=result.meta())


@router.get("/{appointment_id}")
def get_appointment(
    appointment_id: str,
    identity: IdentityContext = Depends(get_identity),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    appt = appt_service.get_visible(identity, appointment_id)
    return create_success_response(_to_response(appt).model_dump(mode="json"), "Appointment details retrieved successfully")


@router.put("/{appointment_id}/status", responses={409: {"model": ErrorResponse}})
def update_appointment_status(
    appointment_id: str,
    update: AppointmentStatusUpdate,
    identity: IdentityContext = Depends(get_identity),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    notes = None
    if update.notes is not None or update.prescription is not None:
        notes = NotesPatch(clinical_notes=update.notes, prescription_text=update.prescription)
    appt = appt_service.transition(identity, appointment_id, update.status, notes)
    body = AppointmentStatusResponse(id=appt.id, status=appt.status, updated_at=appt.updated_at)
    return create_success_response(body.model_dump(mode="json"), "Appointment status updated successfully")
