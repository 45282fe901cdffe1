import threading
from bisect import bisect_left, insort
from datetime import datetime
from typing import Dict, List, Tuple

from ...application.ports.usage_repo import UsageStore


class InMemoryUsageStore(UsageStore):
    def __init__(self) -> None:
        self._store: Dict[Tuple[str, str], List[datetime]] = {}
        self._lock = threading.Lock()

    def add(self, user_id: str, service_kind: str, occurred_at: datetime) -> None:
        with self._lock:
            insort(self._store.setdefault((user_id, service_kind), []), occurred_at)

    def count(self, user_id: str, service_kind: str, start: datetime, end: datetime) -> int:
        with self._lock:
            times = self._store.get((user_id, service_kind), [])
            return bisect_left(times, end) - bisect_left(times, start)
