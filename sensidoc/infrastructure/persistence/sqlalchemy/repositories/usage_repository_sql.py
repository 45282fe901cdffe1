from datetime import datetime

from sqlalchemy import func
from sqlmodel import Session, select

from .....db.models import UsageRecord
from .....application.ports.usage_repo import UsageStore


class SqlUsageStore(UsageStore):
    def __init__(self, session: Session):
        self.session = session

    def add(self, user_id: str, service_kind: str, occurred_at: datetime) -> None:
        self.session.add(UsageRecord(user_id=user_id, service_kind=service_kind, occurred_at=occurred_at))
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def count(self, user_id: str, service_kind: str, start: datetime, end: datetime) -> int:
        return self.session.exec(
            select(func.count(UsageRecord.id))
            .where(UsageRecord.user_id == user_id)
            .where(UsageRecord.service_kind == service_kind)
            .where(UsageRecord.occurred_at >= start)
            .where(UsageRecord.occurred_at < end)
        ).one()
