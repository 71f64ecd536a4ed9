"""
Cloud Sync Module.

Optional Supabase-backed authentication, session sync and history. Every
adapter degrades to a no-op when the remote is not configured.
"""

from .auth import AuthAdapter, Identity
from .client import RemoteError, RemoteNotConfiguredError, SupabaseClient
from .config import RemoteConfig, RemoteSettings, get_remote_config
from .history import HistoryReader, format_clock_time, format_relative_day, to_journal_entry
from .models import SessionRecord
from .sync import SessionSyncClient

__all__ = [
    "AuthAdapter",
    "HistoryReader",
    "Identity",
    "RemoteConfig",
    "RemoteError",
    "RemoteNotConfiguredError",
    "RemoteSettings",
    "SessionRecord",
    "SessionSyncClient",
    "SupabaseClient",
    "format_clock_time",
    "format_relative_day",
    "get_remote_config",
    "to_journal_entry",
]
