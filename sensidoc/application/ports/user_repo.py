from dataclasses import dataclass
from typing import Protocol, Optional


@dataclass
class UserDto:
    id: str
    full_name: str
    email: Optional[str]
    role: str
    membership_type: str
    is_active: bool


class UserRepository(Protocol):
    def get_by_id(self, user_id: str) -> Optional[UserDto]:
        ...
