# Routers package
from . import appointments_router
from . import ai_router

__all__ = [
    "appointments_router",
    "ai_router",
]
