"""
Remote Sync Client.

Best-effort append of completed sessions to the remote ``sessions`` table.
``sync`` never raises: every failure is logged and reported as False so the
app keeps working locally.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Union

import httpx

from energy_session.models import CompletedSession

from .auth import AuthAdapter
from .client import RemoteError, SupabaseClient
from .config import RemoteConfig
from .models import SessionRecord

logger = logging.getLogger(__name__)


class SessionSyncClient:
    """Appends completed sessions for the signed-in user."""

    def __init__(
        self,
        config: RemoteConfig,
        auth: AuthAdapter,
        client: Optional[SupabaseClient] = None,
    ):
        self.config = config
        self.auth = auth
        self.client = client or auth.client

    async def sync(self, record: Union[SessionRecord, CompletedSession]) -> bool:
        """
        Insert one session record.

        Args:
            record: The record to append; a CompletedSession is converted

        Returns:
            True if the remote store accepted the insert
        """
        if not self.config.is_configured:
            logger.debug("[SYNC] Cloud sync not configured, skipping")
            return False

        identity = self.auth.current_identity
        if identity is None:
            logger.debug("[SYNC] Not signed in, skipping")
            return False

        try:
            if isinstance(record, CompletedSession):
                record = SessionRecord.from_completed(record)

            payload = record.to_insert_payload(
                user_id=identity.id,
                created_at=datetime.now(timezone.utc),
            )
            await self.client.insert(
                self.config.sessions_table, payload, access_token=identity.access_token
            )
        except RemoteError as e:
            logger.warning(f"[SYNC] Cloud sync failed, continuing locally: {e}")
            return False
        except httpx.HTTPError as e:
            logger.warning(f"[SYNC] Cloud sync error, continuing locally: {e}")
            return False
        except Exception as e:
            logger.warning(f"[SYNC] Unexpected cloud sync error, continuing locally: {e}")
            return False

        logger.info(f"[SYNC] Synced {payload['activity']} session")
        return True
