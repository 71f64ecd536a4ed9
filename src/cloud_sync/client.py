"""
Supabase REST transport.

Thin async wrapper over the two Supabase HTTP surfaces this service needs:
GoTrue (``/auth/v1``) for magic-link auth and PostgREST (``/rest/v1``) for
the sessions table. Errors are raised here and caught by the adapters.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from .config import RemoteConfig

logger = logging.getLogger(__name__)


class RemoteError(Exception):
    """A remote call returned an error status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class RemoteNotConfiguredError(RemoteError):
    """The remote endpoint or key is missing."""

    def __init__(self):
        super().__init__("Cloud sync is not configured")


def _error_message(response: httpx.Response) -> str:
    """Pull the most human-readable message out of an error response."""
    try:
        payload = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"

    if isinstance(payload, dict):
        for key in ("msg", "message", "error_description", "error"):
            value = payload.get(key)
            if value:
                return str(value)
    return f"HTTP {response.status_code}"


def _json(response: httpx.Response) -> Any:
    """Decode a success body; a non-JSON page (proxy, maintenance) is a RemoteError."""
    try:
        return response.json()
    except ValueError:
        raise RemoteError(
            f"Unexpected non-JSON response from {response.request.url.path}",
            status_code=response.status_code,
        )


class SupabaseClient:
    """
    Minimal Supabase client over httpx.

    Args:
        config: Remote configuration; calls raise RemoteNotConfiguredError
            when it is incomplete
        transport: Optional httpx transport (used by tests)
    """

    def __init__(
        self,
        config: RemoteConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return self.config.is_configured

    def _headers(self, access_token: Optional[str] = None) -> Dict[str, str]:
        return {
            "apikey": self.config.key or "",
            "Authorization": f"Bearer {access_token or self.config.key}",
            "Content-Type": "application/json",
        }

    async def _request(
        self,
        method: str,
        path: str,
        access_token: Optional[str] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        if not self.is_configured:
            raise RemoteNotConfiguredError()

        headers = self._headers(access_token)
        headers.update(kwargs.pop("headers", {}))

        async with httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=httpx.Timeout(self.config.timeout_seconds),
            transport=self._transport,
        ) as client:
            response = await client.request(method, path, headers=headers, **kwargs)

        if response.status_code >= 400:
            raise RemoteError(_error_message(response), status_code=response.status_code)
        return response

    # ---- GoTrue ----

    async def send_magic_link(self, email: str, redirect_to: Optional[str] = None) -> None:
        """Ask GoTrue to email a one-time sign-in link."""
        params = {"redirect_to": redirect_to} if redirect_to else None
        await self._request(
            "POST",
            "/auth/v1/otp",
            json={"email": email, "create_user": True},
            params=params,
        )

    async def get_user(self, access_token: str) -> Dict[str, Any]:
        """Resolve the user behind an access token."""
        response = await self._request("GET", "/auth/v1/user", access_token=access_token)
        return _json(response)

    async def sign_out(self, access_token: str) -> None:
        await self._request("POST", "/auth/v1/logout", access_token=access_token)

    # ---- PostgREST ----

    async def insert(self, table: str, row: Dict[str, Any], access_token: str) -> None:
        await self._request(
            "POST",
            f"/rest/v1/{table}",
            access_token=access_token,
            json=row,
            headers={"Prefer": "return=minimal"},
        )

    async def select(
        self,
        table: str,
        access_token: str,
        filters: Optional[Dict[str, str]] = None,
        order: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Read rows from a table.

        Args:
            table: Table name
            access_token: Bearer token of the signed-in user
            filters: PostgREST filters, e.g. {"user_id": "eq.<id>"}
            order: PostgREST order clause, e.g. "created_at.desc"
            limit: Maximum number of rows

        Returns:
            List of row dicts
        """
        params: Dict[str, Any] = {"select": "*"}
        params.update(filters or {})
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = limit

        response = await self._request(
            "GET", f"/rest/v1/{table}", access_token=access_token, params=params
        )
        data = _json(response)
        return data if isinstance(data, list) else []
