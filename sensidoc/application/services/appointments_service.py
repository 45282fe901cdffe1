from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Union
from datetime import datetime, date
import logging
import uuid

from ..clock import utc_now
from ..enums import AppointmentStatus, ConsultationKind, Role
from ..identity import IdentityContext
from ..pagination import Page, page_bounds
from ..policies import NOTES_AUTHORS, NOTES_TARGET, Relation, allowed_actors, relation_to
from ..ports.appointments_repo import AppointmentsRepository, AppointmentDto, NotesPatch
from ..ports.audit_logger import AuditLogger
from ..ports.notifier import NotificationSink
from ..ports.slot_locks import SlotLocks
from ...exceptions import (
    DoctorUnavailable,
    InvalidDate,
    InvalidRequest,
    InvalidTime,
    InvalidTransition,
    NotAuthorized,
    NotFound,
    SlotTaken,
)

logger = logging.getLogger(__name__)


@dataclass
class AppointmentsService:
    """Books doctor slots and moves appointments through their status lifecycle."""

    repo: AppointmentsRepository
    slot_locks: SlotLocks
    notifier: Optional[NotificationSink] = None
    audit: Optional[AuditLogger] = None
    clock: Callable[[], datetime] = field(default=utc_now)

    def book(
        self,
        identity: IdentityContext,
        doctor_id: str,
        appointment_date: Union[date, str],
        appointment_time: str,
        consultation_kind: Union[ConsultationKind, str],
        symptom_notes: Optional[str] = None,
    ) -> AppointmentDto:
        appointment_date = self._parse_date(appointment_date)
        if appointment_date < self.clock().date():
            raise InvalidDate()
        appointment_time = self._parse_time(appointment_time)
        try:
            kind = ConsultationKind(consultation_kind)
        except ValueError:
            raise InvalidRequest(f"Invalid consultation type. Must be one of: {[k.value for k in ConsultationKind]}")

        doctor = self.repo.get_doctor(doctor_id)
        if not doctor or not doctor.is_verified:
            raise DoctorUnavailable()
        if doctor.id == identity.user_id:
            raise InvalidRequest("Doctors cannot book their own time slots")

        slot = (doctor_id, appointment_date.isoformat(), appointment_time)
        with self.slot_locks.hold(slot):
            if self.repo.find_conflict(doctor_id, appointment_date, appointment_time):
                self._audit("appointment.book", identity.user_id, success=False, details={"reason": SlotTaken.code, "slot": list(slot)})
                raise SlotTaken()
            now = self.clock()
            appt = self.repo.create(AppointmentDto(
                id=str(uuid.uuid4()),
                patient_id=identity.user_id,
                doctor_id=doctor_id,
                appointment_date=appointment_date,
                appointment_time=appointment_time,
                consultation_kind=kind.value,
                status=AppointmentStatus.PENDING.value,
                symptom_notes=symptom_notes,
                clinical_notes=None,
                prescription_text=None,
                created_at=now,
                updated_at=now,
            ))

        logger.info(f"Appointment {appt.id} booked with doctor {doctor_id} on {appointment_date} {appointment_time}")
        self._audit("appointment.book", identity.user_id, appt.id, details={"doctor_id": doctor_id})
        self._notify_booked(appt)
        return appt

    def transition(
        self,
        identity: IdentityContext,
        appointment_id: str,
        new_status: Union[AppointmentStatus, str],
        notes: Optional[NotesPatch] = None,
    ) -> AppointmentDto:
        try:
            target = AppointmentStatus(new_status)
        except ValueError:
            raise InvalidRequest(f"Invalid status. Must be one of: {[s.value for s in AppointmentStatus]}")

        appt = self.repo.get_by_id(appointment_id)
        if not appt:
            raise NotFound()

        relation = relation_to(identity, appt.patient_id, appt.doctor_id)
        if relation is Relation.NONE:
            raise NotAuthorized("Not authorized to update this appointment")

        current = AppointmentStatus(appt.status)
        allowed = allowed_actors(current, target)
        if not allowed:
            raise InvalidTransition(f"Cannot change appointment status from {current.value} to {target.value}")
        if relation not in allowed:
            raise NotAuthorized(f"Not authorized to mark this appointment as {target.value}")

        if notes is not None and notes.is_empty():
            notes = None
        if notes is not None:
            if target is not NOTES_TARGET:
                raise InvalidTransition("Clinical notes and prescriptions can only be attached when completing an appointment")
            if relation not in NOTES_AUTHORS:
                raise NotAuthorized("Only the assigned doctor or an admin may add clinical notes")

        updated_at = max(self.clock(), appt.updated_at)
        updated = self.repo.update_status(appointment_id, current.value, target.value, updated_at, notes)
        if updated is None:
            # Another request moved the appointment after we read it
            raise InvalidTransition("Appointment status changed by another request. Reload and try again")

        logger.info(f"Appointment {appointment_id} moved {current.value} -> {target.value} by {relation.value}")
        self._audit("appointment.transition", identity.user_id, appointment_id, details={"from": current.value, "to": target.value})
        return updated

    def get_visible(self, identity: IdentityContext, appointment_id: str) -> AppointmentDto:
        appt = self.repo.get_by_id(appointment_id)
        if not appt:
            raise NotFound()
        if relation_to(identity, appt.patient_id, appt.doctor_id) is Relation.NONE:
            raise NotAuthorized("Not authorized to view this appointment")
        return appt

    def list_visible(self, identity: IdentityContext, status: Optional[str] = None, page: int = 1, limit: int = 10) -> Page[AppointmentDto]:
        if status is not None:
            try:
                status = AppointmentStatus(status).value
            except ValueError:
                raise InvalidRequest(f"Invalid status. Must be one of: {[s.value for s in AppointmentStatus]}")
        offset, limit = page_bounds(page, limit)

        if identity.role is Role.PATIENT:
            scope = {"patient_id": identity.user_id}
        elif identity.role is Role.DOCTOR:
            scope = {"doctor_id": identity.user_id}
        elif identity.role is Role.ADMIN:
            scope = {}
        else:
            raise ValueError(f"Unhandled role: {identity.role!r}")
        items = self.repo.list(status=status, offset=offset, limit=limit, **scope)
        return Page(items=items, total=self.repo.count(status=status, **scope), page=page, limit=limit)

    @staticmethod
    def _parse_date(value: Union[date, str]) -> date:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        try:
            return datetime.strptime(value, "%Y-%m-%d").date()
        except (TypeError, ValueError):
            raise InvalidDate("Invalid appointment date format. Use YYYY-MM-DD")

    @staticmethod
    def _parse_time(value: str) -> str:
        try:
            return datetime.strptime(value, "%H:%M").strftime("%H:%M")
        except (TypeError, ValueError):
            raise InvalidTime()

    def _notify_booked(self, appt: AppointmentDto) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.appointment_booked(appt)
        except Exception:
            logger.exception(f"Booking notification failed for appointment {appt.id}")

    def _audit(self, action: str, user_id: str, resource_id: Optional[str] = None, success: bool = True, details: Optional[Dict[str, Any]] = None) -> None:
        if self.audit is not None:
            self.audit.log(action, user_id, resource_id=resource_id, success=success, details=details)
