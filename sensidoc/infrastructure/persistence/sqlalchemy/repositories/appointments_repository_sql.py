from typing import List, Optional
from datetime import date, datetime
import logging

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from .....db.models import Appointment, Doctor, User
from .....application.enums import ACTIVE_STATUSES
from .....application.ports.appointments_repo import (
    AppointmentsRepository,
    AppointmentDto,
    DoctorDto,
    NotesPatch,
)
from .....exceptions import SlotTaken

logger = logging.getLogger(__name__)

_ACTIVE_VALUES = [s.value for s in ACTIVE_STATUSES]


def _is_slot_violation(error: IntegrityError) -> bool:
    message = str(error.orig)
    return "uq_appointments_active_slot" in message or "appointments.doctor_id" in message


class SqlAppointmentsRepository(AppointmentsRepository):
    def __init__(self, session: Session):
        self.session = session

    def _appt_to_dto(self, a: Appointment) -> AppointmentDto:
        return AppointmentDto(
            id=a.id,
            patient_id=a.patient_id,
            doctor_id=a.doctor_id,
            appointment_date=a.appointment_date,
            appointment_time=a.appointment_time,
            consultation_kind=a.consultation_kind,
            status=a.status,
            symptom_notes=a.symptom_notes,
            clinical_notes=a.clinical_notes,
            prescription_text=a.prescription_text,
            created_at=a.created_at,
            updated_at=a.updated_at,
        )

    def get_doctor(self, doctor_id: str) -> Optional[DoctorDto]:
        row = self.session.exec(
            select(Doctor, User).join(User, User.id == Doctor.id).where(Doctor.id == doctor_id)
        ).first()
        if not row:
            return None
        d, u = row
        return DoctorDto(id=d.id, name=u.full_name, is_verified=bool(d.is_verified))

    def find_conflict(self, doctor_id: str, appointment_date: date, appointment_time: str) -> bool:
        existing = self.session.exec(
            select(Appointment.id)
            .where(Appointment.doctor_id == doctor_id)
            .where(Appointment.appointment_date == appointment_date)
            .where(Appointment.appointment_time == appointment_time)
            .where(Appointment.status.in_(_ACTIVE_VALUES))
        ).first()
        return existing is not None

    def create(self, appointment: AppointmentDto) -> AppointmentDto:
        appt = Appointment(
            id=appointment.id,
            patient_id=appointment.patient_id,
            doctor_id=appointment.doctor_id,
            appointment_date=appointment.appointment_date,
            appointment_time=appointment.appointment_time,
            consultation_kind=appointment.consultation_kind,
            status=appointment.status,
            symptom_notes=appointment.symptom_notes,
            created_at=appointment.created_at,
            updated_at=appointment.updated_at,
        )
        self.session.add(appt)
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            if _is_slot_violation(e):
                logger.info(f"Slot already taken for doctor {appointment.doctor_id} at {appointment.appointment_date} {appointment.appointment_time}")
                raise SlotTaken()
            raise
        self.session.refresh(appt)
        return self._appt_to_dto(appt)

    def get_by_id(self, appointment_id: str) -> Optional[AppointmentDto]:
        a = self.session.exec(select(Appointment).where(Appointment.id == appointment_id)).first()
        return self._appt_to_dto(a) if a else None

    def update_status(self, appointment_id: str, expected_status: str, new_status: str, updated_at: datetime, notes: Optional[NotesPatch] = None) -> Optional[AppointmentDto]:
        values = {"status": new_status, "updated_at": updated_at}
        if notes is not None:
            if notes.clinical_notes is not None:
                values["clinical_notes"] = notes.clinical_notes
            if notes.prescription_text is not None:
                values["prescription_text"] = notes.prescription_text

        result = self.session.exec(
            update(Appointment)
            .where(Appointment.id == appointment_id)
            .where(Appointment.status == expected_status)
            .values(**values)
        )
        if result.rowcount == 0:
            self.session.rollback()
            return None
        self.session.commit()
        return self.get_by_id(appointment_id)

    def _filtered(self, query, patient_id: Optional[str], doctor_id: Optional[str], status: Optional[str]):
        if patient_id is not None:
            query = query.where(Appointment.patient_id == patient_id)
        if doctor_id is not None:
            query = query.where(Appointment.doctor_id == doctor_id)
        if status is not None:
            query = query.where(Appointment.status == status)
        return query

    def list(self, patient_id: Optional[str] = None, doctor_id: Optional[str] = None, status: Optional[str] = None, offset: int = 0, limit: int = 10) -> List[AppointmentDto]:
        query = self._filtered(select(Appointment), patient_id, doctor_id, status)
        rows = self.session.exec(
            query
            .order_by(Appointment.appointment_date.desc(), Appointment.appointment_time.desc())
            .offset(offset)
            .limit(limit)
        ).all()
        return [self._appt_to_dto(r) for r in rows]

    def count(self, patient_id: Optional[str] = None, doctor_id: Optional[str] = None, status: Optional[str] = None) -> int:
        query = self._filtered(select(func.count(Appointment.id)), patient_id, doctor_id, status)
        return self.session.exec(query).one()
