# Stable import path for routers
from ..database import engine, get_session

__all__ = ["engine", "get_session"]
