"""API route modules."""
from .session import router as session_router
from .timer import router as timer_router
from .auth import router as auth_router
from .history import router as history_router

__all__ = [
    "session_router",
    "timer_router",
    "auth_router",
    "history_router",
]
