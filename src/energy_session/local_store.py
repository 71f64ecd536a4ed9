"""
Local Session Store.

Keeps the single "current session" record in a JSON file so the check-in
survives restarts. Every operation fails soft: a missing or corrupt file is
treated as "no prior session" and write errors are logged, never raised.
"""

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from .models import Activity, EnergyLevel, SessionData

logger = logging.getLogger(__name__)

SESSION_FILENAME = "studyByEnergySession.json"


class LocalSessionStore:
    """Single-record, last-write-wins session persistence."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    @classmethod
    def in_directory(cls, data_path: Union[str, Path]) -> "LocalSessionStore":
        """Create a store using the fixed session filename inside ``data_path``."""
        return cls(Path(data_path) / SESSION_FILENAME)

    def save(
        self,
        energy_level: Optional[EnergyLevel],
        activity: Optional[Activity],
    ) -> Optional[SessionData]:
        """
        Overwrite the stored session with the current choice.

        Nothing is written when both fields are unset.

        Returns:
            The SessionData written, or None if nothing was written
        """
        if energy_level is None and activity is None:
            return None

        session = SessionData(
            energy_level=energy_level,
            activity=activity,
            timestamp=datetime.now(timezone.utc),
        )

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(session.to_dict()), encoding="utf-8")
        except OSError as e:
            logger.warning(f"[STORE] Failed to save session to {self.path}: {e}")
            return None

        logger.debug(f"[STORE] Saved session energy={energy_level} activity={activity}")
        return session

    def load(self) -> SessionData:
        """Read the stored session, or an empty one if absent or unreadable."""
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            return SessionData()
        except OSError as e:
            logger.warning(f"[STORE] Failed to read session from {self.path}: {e}")
            return SessionData()

        try:
            session = SessionData.from_dict(json.loads(raw.decode("utf-8")))
        except (ValueError, TypeError) as e:
            # JSONDecodeError and UnicodeDecodeError are both ValueErrors
            logger.warning(f"[STORE] Failed to load session, starting fresh: {e}")
            return SessionData()

        logger.info(
            f"[STORE] Restored session energy={session.energy_level} activity={session.activity}"
        )
        return session

    def clear(self) -> None:
        """Remove the stored session. Safe to call when nothing is stored."""
        try:
            os.remove(self.path)
            logger.debug(f"[STORE] Cleared session at {self.path}")
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"[STORE] Failed to clear session at {self.path}: {e}")
