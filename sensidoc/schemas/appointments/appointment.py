# sensidoc/schemas/appointments/appointment.py
from pydantic import BaseModel, Field
from typing import Optional
from datetime import date, datetime

from ...application.enums import AppointmentStatus, ConsultationKind

class AppointmentCreate(BaseModel):
    doctor_id: str
    appointment_date: date
    appointment_time: str = Field(pattern=r"^\d{1,2}:\d{2}$")  # HH:MM
    consultation_type: ConsultationKind
    symptoms: Optional[str] = Field(default=None, max_length=2000)

class AppointmentBooked(BaseModel):
    id: str
    status: AppointmentStatus

class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus
    notes: Optional[str] = Field(default=None, max_length=5000)
    prescription: Optional[str] = Field(default=None, max_length=5000)

class AppointmentStatusResponse(BaseModel):
    id: str
    status: AppointmentStatus
    updated_at: datetime

class AppointmentResponse(BaseModel):
    id: str
    patient_id: str
    doctor_id: str
    appointment_date: date
    appointment_time: str
    consultation_type: ConsultationKind
    status: AppointmentStatus
    symptoms: Optional[str] = None
    notes: Optional[str] = None
    prescription: Optional[str] = None
    created_at: datetime
    updated_at: datetime
