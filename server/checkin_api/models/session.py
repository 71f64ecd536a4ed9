"""Session and timer API models."""
from pydantic import BaseModel, Field
from typing import Literal, Optional

from energy_session.models import Activity, EnergyLevel, FeedbackChoice

Phase = Literal[
    "idle",
    "energy_chosen",
    "activity_chosen",
    "timer_running",
    "timer_complete",
    "feedback_prompt",
    "reflection",
]


class EnergyRequest(BaseModel):
    """Energy check-in."""

    level: EnergyLevel


class ActivityRequest(BaseModel):
    """Activity choice for the current energy level."""

    activity: Activity


class TimerStartRequest(BaseModel):
    """Countdown configuration. Presets are 10, 25 and 45 minutes."""

    duration_minutes: int = Field(default=25, ge=5, le=90, multiple_of=5)
    pomodoro: bool = False


class FeedbackRequest(BaseModel):
    """End-of-session feedback. Both fields empty means skip."""

    choice: Optional[FeedbackChoice] = None
    text: Optional[str] = Field(default=None, max_length=500)

    def resolved(self):
        if self.choice is not None:
            return self.choice
        return self.text


class RecommendationView(BaseModel):
    primary: str
    message: str
    options: list[str]


class TimerView(BaseModel):
    duration_minutes: int
    remaining_seconds: int = Field(ge=0)
    remaining_display: str
    is_running: bool
    pomodoro_enabled: bool
    is_complete: bool


class SessionSnapshot(BaseModel):
    """Full session state as rendered by the front end."""

    phase: Phase
    energy_level: Optional[EnergyLevel] = None
    activity: Optional[Activity] = None
    recommendation: Optional[RecommendationView] = None
    show_reflection: bool = False
    timer: Optional[TimerView] = None
    suggested_break_minutes: Optional[int] = None


class FeedbackResult(BaseModel):
    """Outcome of closing a session."""

    state: SessionSnapshot
    feedback: Optional[str] = None
    sync_attempted: bool
