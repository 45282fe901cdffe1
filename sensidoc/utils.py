from datetime import timedelta
from typing import Optional

import jwt

from .application.clock import utc_now
from .config import settings

INSECURE_DEFAULT_SECRET = "change-me-in-prod"


# =========================
# JWT Token Handling
# =========================
def create_jwt_token(data: dict, expires_minutes: Optional[int] = None) -> str:
    """Create JWT access token; ``sub`` must carry the user id."""
    if not settings.SECRET_KEY or settings.SECRET_KEY == INSECURE_DEFAULT_SECRET:
        raise ValueError("SECRET_KEY not properly configured")

    to_encode = data.copy()
    expire = utc_now() + timedelta(minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

def decode_jwt_token(token: str) -> Optional[dict]:
    """Decode and verify JWT token; None when invalid, expired or unsigned-configured"""
    if not settings.SECRET_KEY or settings.SECRET_KEY == INSECURE_DEFAULT_SECRET:
        return None
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None
