from dataclasses import dataclass
from typing import List, Optional
from datetime import datetime, date


@dataclass
class DoctorDto:
    id: str
    name: str
    is_verified: bool


@dataclass
class AppointmentDto:
    id: str
    patient_id: str
    doctor_id: str
    appointment_date: date
    appointment_time: str
    consultation_kind: str
    status: str
    symptom_notes: Optional[str]
    clinical_notes: Optional[str]
    prescription_text: Optional[str]
    created_at: datetime
    updated_at: datetime


@dataclass
class NotesPatch:
    clinical_notes: Optional[str] = None
    prescription_text: Optional[str] = None

    def is_empty(self) -> bool:
        return self.clinical_notes is None and self.prescription_text is None


class AppointmentsRepository:
    """Slot ledger. ``create`` must refuse a second active appointment on the same slot by raising SlotTaken."""

    def get_doctor(self, doctor_id: str) -> Optional[DoctorDto]:
        ...

    def find_conflict(self, doctor_id: str, appointment_date: date, appointment_time: str) -> bool:
        ...

    def create(self, appointment: AppointmentDto) -> AppointmentDto:
        ...

    def get_by_id(self, appointment_id: str) -> Optional[AppointmentDto]:
        ...

    def update_status(self, appointment_id: str, expected_status: str, new_status: str, updated_at: datetime, notes: Optional[NotesPatch] = None) -> Optional[AppointmentDto]:
        """Compare-and-set on status. Returns None when the row is no longer in ``expected_status``."""
        ...

    def list(self, patient_id: Optional[str] = None, doctor_id: Optional[str] = None, status: Optional[str] = None, offset: int = 0, limit: int = 10) -> List[AppointmentDto]:
        ...

    def count(self, patient_id: Optional[str] = None, doctor_id: Optional[str] = None, status: Optional[str] = None) -> int:
        ...
