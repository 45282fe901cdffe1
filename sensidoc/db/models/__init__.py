# Models package (re-export feature modules for stable imports)
from .users.user import User
from .health.doctor import Doctor
from .health.appointment import Appointment
from .health.notification import Notification
from .ai.usage import UsageRecord
from .ai.advisory import DiagnosisRecord, DrugAnalysisRecord

__all__ = [
    "User",
    "Doctor",
    "Appointment",
    "Notification",
    "UsageRecord",
    "DiagnosisRecord",
    "DrugAnalysisRecord",
]
