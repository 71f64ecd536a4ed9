"""Wiring of the check-in components for the API process.

One state machine, one local store and one set of cloud adapters per
process. Routes reach them through the ``get_services`` dependency so tests
can swap in their own instance.
"""
import logging
from typing import Optional

from energy_session import LocalSessionStore, SessionStateMachine
from cloud_sync import (
    AuthAdapter,
    HistoryReader,
    RemoteConfig,
    SessionSyncClient,
    SupabaseClient,
    get_remote_config,
)

from ..config import Settings, get_settings
from .state_stream import StateStream

log = logging.getLogger(__name__)


class CheckinServices:
    """Holds the components behind the HTTP surface."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        remote_config: Optional[RemoteConfig] = None,
        client: Optional[SupabaseClient] = None,
    ):
        self.settings = settings or get_settings()
        self.remote_config = remote_config or get_remote_config()

        self.client = client or SupabaseClient(self.remote_config)
        self.auth = AuthAdapter(
            self.remote_config,
            client=self.client,
            session_path=self.settings.auth_session_file,
        )
        self.sync_client = SessionSyncClient(self.remote_config, self.auth, client=self.client)
        self.history = HistoryReader(self.remote_config, self.auth, client=self.client)

        self.store = LocalSessionStore(self.settings.session_file)
        self.machine = SessionStateMachine(
            self.store,
            sync_client=self.sync_client,
            identity_provider=lambda: self.auth.current_identity,
            tick_interval=self.settings.tick_interval_seconds,
        )

        self.stream = StateStream()
        self._unsubscribe = self.machine.subscribe(self.stream.publish)

    async def startup(self) -> None:
        """Restore local state and re-check any remembered sign-in."""
        self.machine.restore()
        self.stream.publish(self.machine.snapshot())
        identity = await self.auth.refresh_identity()
        log.info(
            f"[API] Started: phase={self.machine.phase.value}, "
            f"cloud={self.remote_config.is_configured}, signed_in={identity is not None}"
        )

    def shutdown(self) -> None:
        self._unsubscribe()
        self.machine.dispose()
        log.info("[API] Stopped")


_services: Optional[CheckinServices] = None


def get_services() -> CheckinServices:
    """FastAPI dependency returning the process-wide services."""
    global _services
    if _services is None:
        _services = CheckinServices()
    return _services


def set_services(services: Optional[CheckinServices]) -> None:
    global _services
    _services = services
