from typing import Protocol
from datetime import datetime


class UsageStore(Protocol):
    """Append-only log of metered calls."""

    def add(self, user_id: str, service_kind: str, occurred_at: datetime) -> None:
        ...

    def count(self, user_id: str, service_kind: str, start: datetime, end: datetime) -> int:
        """Records with ``start <= occurred_at < end``."""
        ...
