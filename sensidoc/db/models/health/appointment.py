# sensidoc/db/models/health/appointment.py
from typing import Optional
from sqlalchemy import DateTime, Index, text
from sqlmodel import SQLModel, Field
from datetime import date, datetime

from ....application.clock import utc_now

_ACTIVE = text("status IN ('pending', 'confirmed')")


class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    # One active appointment per slot; finished ones free it
    __table_args__ = (
        Index(
            "uq_appointments_active_slot",
            "doctor_id", "appointment_date", "appointment_time",
            unique=True,
            sqlite_where=_ACTIVE,
            postgresql_where=_ACTIVE,
        ),
    )

    id: str = Field(primary_key=True)
    patient_id: str = Field(foreign_key="users.id", index=True)
    doctor_id: str = Field(foreign_key="doctors.id", index=True)
    appointment_date: date
    appointment_time: str = Field(max_length=5)
    consultation_kind: str = Field(max_length=10)
    status: str = Field(default="pending", max_length=10)
    symptom_notes: Optional[str] = None
    clinical_notes: Optional[str] = None
    prescription_text: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=DateTime)
