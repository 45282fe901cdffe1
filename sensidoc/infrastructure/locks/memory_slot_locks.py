import threading
from contextlib import contextmanager
from typing import Dict, Iterator

from ...application.ports.slot_locks import SlotKey, SlotLocks


class InMemorySlotLocks(SlotLocks):
    """Per-slot mutexes for one process. Entries are dropped once nobody holds or waits on them."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[SlotKey, threading.Lock] = {}
        self._waiters: Dict[SlotKey, int] = {}

    @contextmanager
    def hold(self, key: SlotKey) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
            self._waiters[key] = self._waiters.get(key, 0) + 1
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                self._waiters[key] -= 1
                if self._waiters[key] == 0:
                    del self._waiters[key]
                    del self._locks[key]
