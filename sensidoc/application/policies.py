"""Who may see or move an appointment, and which status moves exist at all."""
from enum import Enum
from typing import Dict, FrozenSet, Tuple

from .enums import AppointmentStatus, Role
from .identity import IdentityContext


class Relation(str, Enum):
    OWNER = "owner"
    ASSIGNED_DOCTOR = "assigned_doctor"
    ADMIN = "admin"
    NONE = "none"


_S = AppointmentStatus
_STAFF = frozenset({Relation.ASSIGNED_DOCTOR, Relation.ADMIN})
_ANY_PARTY = frozenset({Relation.OWNER, Relation.ASSIGNED_DOCTOR, Relation.ADMIN})

TRANSITIONS: Dict[Tuple[AppointmentStatus, AppointmentStatus], FrozenSet[Relation]] = {
    (_S.PENDING, _S.CONFIRMED): _STAFF,
    (_S.PENDING, _S.REJECTED): _STAFF,
    (_S.PENDING, _S.CANCELLED): _ANY_PARTY,
    (_S.CONFIRMED, _S.CANCELLED): _ANY_PARTY,
    (_S.CONFIRMED, _S.COMPLETED): _STAFF,
}

# Only completion may carry clinical notes or a prescription
NOTES_TARGET = _S.COMPLETED
NOTES_AUTHORS = _STAFF


def relation_to(identity: IdentityContext, patient_id: str, doctor_id: str) -> Relation:
    """Classify the caller against one appointment. Every Role member is handled."""
    role = identity.role
    if role is Role.ADMIN:
        return Relation.ADMIN
    if role is Role.DOCTOR:
        return Relation.ASSIGNED_DOCTOR if identity.user_id == doctor_id else Relation.NONE
    if role is Role.PATIENT:
        return Relation.OWNER if identity.user_id == patient_id else Relation.NONE
    raise ValueError(f"Unhandled role: {role!r}")


def allowed_actors(current: AppointmentStatus, target: AppointmentStatus) -> FrozenSet[Relation]:
    """Relations permitted to move ``current`` -> ``target``; empty when the move does not exist."""
    return TRANSITIONS.get((current, target), frozenset())
