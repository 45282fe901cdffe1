import logging

from fastapi import BackgroundTasks

from ...application.ports.appointments_repo import AppointmentDto
from ...application.ports.notifier import NotificationSink

logger = logging.getLogger(__name__)


class BackgroundNotificationSink(NotificationSink):
    """Defers delivery until after the response is sent."""

    def __init__(self, background_tasks: BackgroundTasks, inner: NotificationSink):
        self.background_tasks = background_tasks
        self.inner = inner

    def appointment_booked(self, appointment: AppointmentDto) -> None:
        self.background_tasks.add_task(self._deliver, appointment)

    def _deliver(self, appointment: AppointmentDto) -> None:
        try:
            self.inner.appointment_booked(appointment)
        except Exception as e:
            logger.error(f"Background booking notification failed for {appointment.id}: {e}")
