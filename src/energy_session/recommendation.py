"""Energy-aware activity recommendations."""

from dataclasses import dataclass, field
from typing import Optional

from .models import EnergyLevel


@dataclass(frozen=True)
class Recommendation:
    """Suggested focus for a given energy level."""

    primary: str
    message: str
    options: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "primary": self.primary,
            "message": self.message,
            "options": list(self.options),
        }


RECOMMENDATIONS = {
    EnergyLevel.LOW: Recommendation(
        primary="rest",
        message="Your energy is low. Rest is productive. Consider taking a break.",
        options=("Rest", "Light reading", "Reflect"),
    ),
    EnergyLevel.MEDIUM: Recommendation(
        primary="balanced",
        message="Your energy is moderate. Balance study with breaks.",
        options=("Study session", "Rest", "Reflect"),
    ),
    EnergyLevel.HIGH: Recommendation(
        primary="study",
        message="Your energy is high. Great time for focused work.",
        options=("Deep study", "Rest (if needed)", "Reflect"),
    ),
}


def get_recommendation(energy_level: Optional[EnergyLevel]) -> Optional[Recommendation]:
    """Return the recommendation for an energy level, or None when unset."""
    if energy_level is None:
        return None
    return RECOMMENDATIONS.get(EnergyLevel(energy_level))
