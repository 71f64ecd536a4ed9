"""Core data model for energy check-in sessions."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class EnergyLevel(str, Enum):
    """Self-reported energy at check-in time."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Activity(str, Enum):
    """Activity chosen after the energy check-in."""

    STUDY = "study"
    REST = "rest"
    REFLECT = "reflect"


class FeedbackChoice(str, Enum):
    """Preset answers to "how did that feel?"."""

    GOOD = "good"
    OKAY = "okay"
    COULD_BE_BETTER = "could_be_better"


class SessionPhase(str, Enum):
    """Where the current session sits in the check-in flow."""

    IDLE = "idle"
    ENERGY_CHOSEN = "energy_chosen"
    ACTIVITY_CHOSEN = "activity_chosen"
    TIMER_RUNNING = "timer_running"
    TIMER_COMPLETE = "timer_complete"
    FEEDBACK_PROMPT = "feedback_prompt"
    REFLECTION = "reflection"


@dataclass
class SessionData:
    """The locally persisted slice of a session."""

    energy_level: Optional[EnergyLevel] = None
    activity: Optional[Activity] = None
    timestamp: Optional[datetime] = None

    @property
    def is_empty(self) -> bool:
        return self.energy_level is None and self.activity is None

    def to_dict(self) -> dict:
        """Convert to the on-disk JSON shape."""
        return {
            "energyLevel": self.energy_level.value if self.energy_level else None,
            "currentActivity": self.activity.value if self.activity else None,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }

    @classmethod
    def from_dict(cls, payload: dict) -> "SessionData":
        """Build from the on-disk JSON shape.

        Raises:
            ValueError: If the payload is not a mapping or holds unknown values.
        """
        if not isinstance(payload, dict):
            raise ValueError("Session payload must be a JSON object")

        energy_raw = payload.get("energyLevel")
        activity_raw = payload.get("currentActivity")
        timestamp_raw = payload.get("timestamp")

        return cls(
            energy_level=EnergyLevel(energy_raw) if energy_raw else None,
            activity=Activity(activity_raw) if activity_raw else None,
            timestamp=datetime.fromisoformat(timestamp_raw) if timestamp_raw else None,
        )


@dataclass
class TimerState:
    """Countdown state for a study or rest run."""

    duration_minutes: int = 25
    remaining_seconds: int = 0
    is_running: bool = False
    pomodoro_enabled: bool = False
    is_complete: bool = False

    @property
    def total_seconds(self) -> int:
        return self.duration_minutes * 60

    def to_dict(self) -> dict:
        return {
            "duration_minutes": self.duration_minutes,
            "remaining_seconds": self.remaining_seconds,
            "is_running": self.is_running,
            "pomodoro_enabled": self.pomodoro_enabled,
            "is_complete": self.is_complete,
        }


@dataclass
class CompletedSession:
    """What a finished cycle hands to the remote sync client."""

    energy_level: EnergyLevel
    activity: Activity
    duration_minutes: Optional[int] = None
    feedback: Optional[str] = None
    completed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
