from enum import Enum


class Role(str, Enum):
    PATIENT = "patient"
    DOCTOR = "doctor"
    ADMIN = "admin"


class MembershipTier(str, Enum):
    FREE = "free"
    PREMIUM = "premium"


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Statuses that occupy a slot
ACTIVE_STATUSES = frozenset({AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED})


class ConsultationKind(str, Enum):
    CHAT = "chat"
    VIDEO = "video"
    IN_PERSON = "in_person"


class ServiceKind(str, Enum):
    DIAGNOSIS = "diagnosis"
    DRUG_ANALYSIS = "drug_analysis"
