# sensidoc/db/models/ai/usage.py
from typing import Optional
from sqlalchemy import DateTime, Index
from sqlmodel import SQLModel, Field
from datetime import datetime


class UsageRecord(SQLModel, table=True):
    """One row per successful metered AI call. Never updated or deleted."""
    __tablename__ = "usage_records"
    __table_args__ = (
        Index("ix_usage_records_user_kind_time", "user_id", "service_kind", "occurred_at"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(foreign_key="users.id")
    service_kind: str = Field(max_length=20)
    occurred_at: datetime = Field(sa_type=DateTime)
