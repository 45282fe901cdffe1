import json
import logging

from sqlmodel import Session

from ...db.models import Notification
from ...application.ports.appointments_repo import AppointmentDto
from ...application.ports.notifier import NotificationSink

logger = logging.getLogger(__name__)


class DbNotificationSink(NotificationSink):
    """Writes in-app booking notifications for the patient and the doctor.

    Opens its own session so it can run after the request session is closed.
    """

    def __init__(self, bind):
        self.bind = bind

    def appointment_booked(self, appointment: AppointmentDto) -> None:
        when = f"{appointment.appointment_date.isoformat()} {appointment.appointment_time}"
        data = json.dumps({
            "appointment_id": appointment.id,
            "consultation_kind": appointment.consultation_kind,
            "status": appointment.status,
        })
        with Session(self.bind) as session:
            session.add(Notification(
                user_id=appointment.patient_id,
                type="appointment_booked",
                title="Appointment requested",
                message=f"Your {appointment.consultation_kind} appointment on {when} is awaiting confirmation.",
                data=data,
            ))
            session.add(Notification(
                user_id=appointment.doctor_id,
                type="appointment_request",
                title="New appointment request",
                message=f"A patient requested a {appointment.consultation_kind} appointment on {when}.",
                data=data,
            ))
            session.commit()
        logger.info(f"Booking notifications stored for appointment {appointment.id}")
