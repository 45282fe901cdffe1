from typing import ContextManager, Protocol, Tuple


SlotKey = Tuple[str, str, str]


class SlotLocks(Protocol):
    def hold(self, key: SlotKey) -> ContextManager[None]:
        """Serialize check-then-insert for one (doctor_id, date, time) slot."""
        ...
