# sensidoc/db/models/health/doctor.py
from typing import Optional
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field
from datetime import datetime

from ....application.clock import utc_now


class Doctor(SQLModel, table=True):
    """Doctor profile; ``id`` is the doctor's account id."""
    __tablename__ = "doctors"
    id: str = Field(foreign_key="users.id", primary_key=True)
    specialization: str
    experience_years: int = Field(default=0)
    consultation_fee: float = Field(default=0.0)
    city: Optional[str] = None
    hospital_name: Optional[str] = None
    is_verified: bool = Field(default=False)
    is_online: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime)
