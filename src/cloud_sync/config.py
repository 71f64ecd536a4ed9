"""Remote store configuration loaded from environment variables."""
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class RemoteSettings(BaseSettings):
    """Supabase connection settings loaded from environment."""

    url: Optional[str] = None
    anon_key: Optional[str] = None

    # Transport
    timeout_seconds: float = 10.0
    sessions_table: str = "sessions"

    class Config:
        env_prefix = "SUPABASE_"


@dataclass(frozen=True)
class RemoteConfig:
    """
    Resolved remote configuration injected into the cloud adapters.

    Sync, history and auth are all disabled when either the endpoint or the
    public key is missing.
    """

    endpoint: Optional[str] = None
    key: Optional[str] = None
    timeout_seconds: float = 10.0
    sessions_table: str = "sessions"

    @property
    def is_configured(self) -> bool:
        return bool(self.endpoint and self.key)

    @property
    def base_url(self) -> str:
        return (self.endpoint or "").rstrip("/")

    @classmethod
    def from_settings(cls, settings: RemoteSettings) -> "RemoteConfig":
        return cls(
            endpoint=(settings.url or "").strip() or None,
            key=(settings.anon_key or "").strip() or None,
            timeout_seconds=settings.timeout_seconds,
            sessions_table=settings.sessions_table,
        )

    @classmethod
    def disabled(cls) -> "RemoteConfig":
        return cls()


@lru_cache
def get_remote_config() -> RemoteConfig:
    config = RemoteConfig.from_settings(RemoteSettings())
    # Booleans only, never the values themselves
    logger.info(
        f"[CLOUD] url_present={bool(config.endpoint)}, "
        f"key_present={bool(config.key)}, configured={config.is_configured}"
    )
    return config
