"""Service layer for the check-in API."""
from .session_service import CheckinServices, get_services, set_services
from .state_stream import StateStream, SnapshotEvent

__all__ = [
    "CheckinServices",
    "get_services",
    "set_services",
    "StateStream",
    "SnapshotEvent",
]
