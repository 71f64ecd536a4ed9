"""Session history (journal) models."""
from pydantic import BaseModel
from typing import Optional


class JournalEntry(BaseModel):
    """One past session, formatted for gentle reflection."""

    id: Optional[str] = None
    activity: str
    energy_level: str
    feedback: Optional[str] = None
    duration_minutes: Optional[int] = None
    day: str
    time: str
    created_at: Optional[str] = None
