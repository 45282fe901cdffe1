from typing import Optional
from sqlmodel import Session, select

from .....db.models import User
from .....application.ports.user_repo import UserRepository, UserDto


class SqlUserRepository(UserRepository):
    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, user_id: str) -> Optional[UserDto]:
        u = self.session.exec(select(User).where(User.id == user_id)).first()
        if not u:
            return None
        return UserDto(
            id=u.id,
            full_name=u.full_name,
            email=u.email,
            role=u.role,
            membership_type=u.membership_type,
            is_active=u.is_active,
        )
