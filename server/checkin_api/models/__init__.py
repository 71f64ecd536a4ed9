"""Pydantic models for check-in API requests and responses."""
from .session import (
    EnergyRequest,
    ActivityRequest,
    TimerStartRequest,
    FeedbackRequest,
    FeedbackResult,
    SessionSnapshot,
)
from .auth import SignInRequest, AuthCallbackRequest, AuthStatus, AuthMessage
from .history import JournalEntry

__all__ = [
    "EnergyRequest",
    "ActivityRequest",
    "TimerStartRequest",
    "FeedbackRequest",
    "FeedbackResult",
    "SessionSnapshot",
    "SignInRequest",
    "AuthCallbackRequest",
    "AuthStatus",
    "AuthMessage",
    "JournalEntry",
]
