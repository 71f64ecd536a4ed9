"""Remote session record model."""
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from energy_session.models import CompletedSession

EnergyLevelValue = Literal["low", "medium", "high"]
ActivityValue = Literal["study", "rest", "reflect"]


class SessionRecord(BaseModel):
    """One completed check-in cycle in the remote ``sessions`` table."""

    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: Optional[str] = None
    user_id: Optional[str] = None
    energy_level: EnergyLevelValue
    activity: ActivityValue
    duration_minutes: Optional[int] = Field(default=None, ge=0)
    feedback: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_completed(cls, session: CompletedSession) -> "SessionRecord":
        return cls(
            energy_level=session.energy_level.value,
            activity=session.activity.value,
            duration_minutes=session.duration_minutes,
            feedback=session.feedback,
        )

    def to_insert_payload(self, user_id: str, created_at: datetime) -> dict:
        """Row body for an insert, stamped with identity and time."""
        payload = self.model_dump(
            mode="json",
            exclude={"id", "user_id", "created_at"},
            exclude_none=True,
        )
        payload["user_id"] = user_id
        payload["created_at"] = created_at.isoformat()
        return payload
