"""
Remote History Reader.

Pulls a user's recent sessions on demand and formats them as a gentle
journal (relative day, clock time) rather than as metrics.
"""

import logging
from datetime import datetime, timezone, tzinfo
from typing import List, Optional

import httpx
from pydantic import ValidationError

from .auth import AuthAdapter
from .client import RemoteError, SupabaseClient
from .config import RemoteConfig
from .models import SessionRecord

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 10


class HistoryReader:
    """Reads the most recent sessions of the signed-in user."""

    def __init__(
        self,
        config: RemoteConfig,
        auth: AuthAdapter,
        client: Optional[SupabaseClient] = None,
    ):
        self.config = config
        self.auth = auth
        self.client = client or auth.client

    async def fetch_recent(self, limit: int = DEFAULT_HISTORY_LIMIT) -> List[SessionRecord]:
        """
        Fetch up to ``limit`` sessions, newest first.

        Returns:
            The records, or an empty list when unconfigured, signed out or
            on any read failure
        """
        if not self.config.is_configured or limit <= 0:
            return []

        identity = self.auth.current_identity
        if identity is None:
            return []

        try:
            rows = await self.client.select(
                self.config.sessions_table,
                access_token=identity.access_token,
                filters={"user_id": f"eq.{identity.id}"},
                order="created_at.desc",
                limit=limit,
            )
        except RemoteError as e:
            logger.warning(f"[HISTORY] Failed to load sessions: {e}")
            return []
        except httpx.HTTPError as e:
            logger.warning(f"[HISTORY] Error loading sessions: {e}")
            return []

        records = []
        for row in rows:
            try:
                records.append(SessionRecord.model_validate(row))
            except ValidationError as e:
                logger.warning(f"[HISTORY] Skipping malformed session row: {e}")

        # Ordering is enforced here too in case the store ignores it
        records.sort(
            key=lambda r: r.created_at or datetime.min.replace(tzinfo=timezone.utc),
            reverse=True,
        )
        return records[:limit]


def format_relative_day(created_at: Optional[datetime], now: Optional[datetime] = None) -> str:
    """
    Describe when a session happened: Today, Yesterday, N days ago, or "Mon D".

    Args:
        created_at: Session creation time
        now: Reference time (defaults to current UTC time)
    """
    if created_at is None:
        return ""

    now = now or datetime.now(timezone.utc)
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    diff_days = int((now - created_at).total_seconds() // 86400)

    if diff_days == 0:
        return "Today"
    if diff_days == 1:
        return "Yesterday"
    if diff_days < 7:
        return f"{diff_days} days ago"
    return f"{created_at.strftime('%b')} {created_at.day}"


def format_clock_time(created_at: Optional[datetime], tz: Optional[tzinfo] = None) -> str:
    """
    Format a time as e.g. '9:05 AM' on the local clock.

    Aware times are converted to ``tz`` (the system zone when None); naive
    times are taken as already local.
    """
    if created_at is None:
        return ""
    if created_at.tzinfo is not None:
        created_at = created_at.astimezone(tz)
    hour = created_at.hour % 12 or 12
    suffix = "AM" if created_at.hour < 12 else "PM"
    return f"{hour}:{created_at.minute:02d} {suffix}"


def to_journal_entry(
    record: SessionRecord,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> dict:
    """Convert a record into a display-ready journal entry."""
    return {
        "id": record.id,
        "activity": record.activity,
        "energy_level": record.energy_level,
        "feedback": record.feedback,
        "duration_minutes": record.duration_minutes,
        "day": format_relative_day(record.created_at, now),
        "time": format_clock_time(record.created_at, tz),
        "created_at": record.created_at.isoformat() if record.created_at else None,
    }
