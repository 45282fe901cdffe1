# sensidoc/db/models/users/user.py
from typing import Optional
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field
from datetime import datetime
import uuid

from ....application.clock import utc_now


class User(SQLModel, table=True):
    __tablename__ = "users"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    full_name: str = Field(max_length=100)
    email: Optional[str] = Field(max_length=100, default=None, unique=True, index=True)
    phone: Optional[str] = Field(max_length=20, default=None)
    role: str = Field(default="patient", max_length=10)
    membership_type: str = Field(default="free", max_length=10)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=DateTime)
