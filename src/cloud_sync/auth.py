"""
Authentication Adapter.

Wraps Supabase's passwordless (magic link) sign-in. Tracks the current
identity, notifies subscribers when it changes, and turns every failure into
a short human-readable message instead of raising.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Union

import httpx

from .client import RemoteError, SupabaseClient
from .config import RemoteConfig

logger = logging.getLogger(__name__)

MSG_LINK_SENT = "Check your email for a sign-in link"
MSG_SIGNED_OUT = "Signed out"
MSG_NOT_CONFIGURED = "Cloud sync is not configured"
MSG_MISSING_EMAIL = "Please enter an email address"
MSG_GENERIC_ERROR = "Something went wrong"
MSG_SIGN_OUT_ERROR = "Error signing out"

AUTH_SESSION_FILENAME = "auth_session.json"

# GoTrue answers these for a bad, expired or revoked access token
REJECTED_TOKEN_STATUSES = (400, 401, 403)


@dataclass
class Identity:
    """The signed-in user."""

    id: str
    email: Optional[str] = None
    access_token: str = field(default="", repr=False)

    def to_dict(self) -> dict:
        """Public view; never includes the token."""
        return {"id": self.id, "email": self.email}


IdentityListener = Callable[[Optional[Identity]], None]


class AuthAdapter:
    """
    Magic-link authentication with change notifications.

    Args:
        config: Remote configuration; an incomplete config makes every
            action a no-op
        client: Supabase transport (built from config when omitted)
        session_path: Optional file used to remember the access token
            across restarts
    """

    def __init__(
        self,
        config: RemoteConfig,
        client: Optional[SupabaseClient] = None,
        session_path: Optional[Union[str, Path]] = None,
    ):
        self.config = config
        self.client = client or SupabaseClient(config)
        self.session_path = Path(session_path) if session_path else None
        self._identity: Optional[Identity] = None
        self._listeners: List[IdentityListener] = []

        if not config.is_configured:
            logger.info("[AUTH] Cloud sync not configured, authentication disabled")

    @property
    def is_enabled(self) -> bool:
        return self.config.is_configured

    @property
    def current_identity(self) -> Optional[Identity]:
        return self._identity

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        """
        Register a callback for identity changes.

        Returns:
            A callable that removes the callback
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_identity(self, identity: Optional[Identity]) -> None:
        previous = self._identity
        self._identity = identity

        if (previous and previous.id) == (identity and identity.id):
            return

        logger.info(f"[AUTH] Identity changed: signed_in={identity is not None}")
        for listener in list(self._listeners):
            try:
                listener(identity)
            except Exception as e:
                logger.error(f"[AUTH] Identity listener failed: {e}")

    # ---- Actions ----

    async def request_sign_in_link(self, email: str, redirect_to: Optional[str] = None) -> str:
        """
        Email a magic sign-in link.

        Returns:
            A status message suitable for showing to the user
        """
        if not self.is_enabled:
            return MSG_NOT_CONFIGURED

        email = (email or "").strip()
        if not email:
            return MSG_MISSING_EMAIL

        try:
            await self.client.send_magic_link(email, redirect_to=redirect_to)
        except RemoteError as e:
            logger.warning(f"[AUTH] Sign-in link request rejected: {e}")
            return str(e) or MSG_GENERIC_ERROR
        except httpx.HTTPError as e:
            logger.warning(f"[AUTH] Sign-in link request failed: {e}")
            return MSG_GENERIC_ERROR

        logger.info("[AUTH] Sign-in link sent")
        return MSG_LINK_SENT

    async def complete_sign_in(self, access_token: str) -> Optional[Identity]:
        """
        Finish a magic-link sign-in using the token from the redirect URL.

        Returns:
            The resolved identity, or None if the token was not accepted
        """
        if not self.is_enabled or not access_token:
            return None

        identity = await self._resolve(access_token)
        if identity is not None:
            self._set_identity(identity)
            self._save_token(access_token)
        return identity

    async def refresh_identity(self) -> Optional[Identity]:
        """
        Re-check the stored session with the provider.

        A rejected token signs the user out locally. A network failure or an
        unusable response keeps whatever identity is already held.
        """
        if not self.is_enabled:
            return None

        token = self._identity.access_token if self._identity else self._load_token()
        if not token:
            return None

        try:
            user = await self.client.get_user(token)
        except RemoteError as e:
            if e.status_code not in REJECTED_TOKEN_STATUSES:
                logger.warning(f"[AUTH] Could not refresh identity: {e}")
                return self._identity
            logger.warning(f"[AUTH] Stored session rejected, signing out locally: {e}")
            self._forget()
            return None
        except httpx.HTTPError as e:
            logger.warning(f"[AUTH] Could not refresh identity: {e}")
            return self._identity

        identity = _identity_from_user(user, token)
        self._set_identity(identity)
        return identity

    async def sign_out(self) -> str:
        """
        Sign out remotely (best effort) and always clear the local identity.

        Returns:
            A status message suitable for showing to the user
        """
        if not self.is_enabled:
            return MSG_NOT_CONFIGURED

        identity = self._identity
        message = MSG_SIGNED_OUT
        if identity is not None:
            try:
                await self.client.sign_out(identity.access_token)
            except (RemoteError, httpx.HTTPError) as e:
                logger.warning(f"[AUTH] Remote sign-out failed: {e}")
                message = str(e) or MSG_SIGN_OUT_ERROR

        self._forget()
        return message

    # ---- Helpers ----

    async def _resolve(self, access_token: str) -> Optional[Identity]:
        try:
            user = await self.client.get_user(access_token)
        except (RemoteError, httpx.HTTPError) as e:
            logger.warning(f"[AUTH] Could not resolve user: {e}")
            return None
        return _identity_from_user(user, access_token)

    def _forget(self) -> None:
        self._set_identity(None)
        if self.session_path is None:
            return
        try:
            self.session_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"[AUTH] Failed to remove stored session: {e}")

    def _save_token(self, access_token: str) -> None:
        if self.session_path is None:
            return
        try:
            self.session_path.parent.mkdir(parents=True, exist_ok=True)
            self.session_path.write_text(
                json.dumps({"access_token": access_token}), encoding="utf-8"
            )
        except OSError as e:
            logger.warning(f"[AUTH] Failed to store session: {e}")

    def _load_token(self) -> Optional[str]:
        if self.session_path is None:
            return None
        try:
            payload = json.loads(self.session_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning(f"[AUTH] Ignoring unreadable stored session: {e}")
            return None
        return payload.get("access_token") if isinstance(payload, dict) else None


def _identity_from_user(user: dict, access_token: str) -> Optional[Identity]:
    user_id = user.get("id") if isinstance(user, dict) else None
    if not user_id:
        return None
    return Identity(id=str(user_id), email=user.get("email"), access_token=access_token)
