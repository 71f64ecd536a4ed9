"""Application configuration loaded from environment variables."""
import os
from functools import lru_cache
from pydantic_settings import BaseSettings

from energy_session.local_store import SESSION_FILENAME
from cloud_sync.auth import AUTH_SESSION_FILENAME


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Local state directory
    data_path: str = os.getenv(
        "DATA_PATH",
        os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))), "data"),
    )

    @property
    def session_file(self) -> str:
        return os.path.join(self.data_path, SESSION_FILENAME)

    @property
    def auth_session_file(self) -> str:
        return os.path.join(self.data_path, AUTH_SESSION_FILENAME)

    # Countdown
    tick_interval_seconds: float = 1.0

    # Magic link redirect target (front end URL)
    auth_redirect_url: str | None = None

    # API configuration
    api_host: str = "127.0.0.1"
    api_port: int = 8090

    # CORS
    cors_origins: list[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]

    class Config:
        env_prefix = "CHECKIN_"


@lru_cache
def get_settings() -> Settings:
    return Settings()
