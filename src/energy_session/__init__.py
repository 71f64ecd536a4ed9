"""
Energy Session Module.

Energy check-in flow, countdown timer and local persistence for the
StudyByEnergy service.
"""

from .exceptions import InvalidTransitionError, SessionError
from .local_store import LocalSessionStore
from .models import (
    Activity,
    CompletedSession,
    EnergyLevel,
    FeedbackChoice,
    SessionData,
    SessionPhase,
    TimerState,
)
from .recommendation import Recommendation, get_recommendation
from .state_machine import SessionStateMachine

__all__ = [
    "Activity",
    "CompletedSession",
    "EnergyLevel",
    "FeedbackChoice",
    "InvalidTransitionError",
    "LocalSessionStore",
    "Recommendation",
    "SessionData",
    "SessionError",
    "SessionPhase",
    "SessionStateMachine",
    "TimerState",
    "get_recommendation",
]
