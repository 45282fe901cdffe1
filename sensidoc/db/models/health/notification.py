# sensidoc/db/models/health/notification.py
from typing import Optional
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field
from datetime import datetime

from ....application.clock import utc_now


class Notification(SQLModel, table=True):
    __tablename__ = "notifications"
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    type: str
    title: str
    message: str
    read: bool = Field(default=False)
    data: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime)
