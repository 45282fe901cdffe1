from typing import Protocol

from .appointments_repo import AppointmentDto


class NotificationSink(Protocol):
    def appointment_booked(self, appointment: AppointmentDto) -> None:
        ...
