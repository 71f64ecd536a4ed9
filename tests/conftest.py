"""
Pytest fixtures for StudyByEnergy tests.
"""
import json
import sys
import pytest
from pathlib import Path
from unittest.mock import AsyncMock

import httpx
from dotenv import load_dotenv

# Ensure src/ and the repo root are on sys.path so tests can import
# energy_session, cloud_sync and server.checkin_api.
ROOT = Path(__file__).resolve().parent.parent
SRC = ROOT / "src"
for path in (SRC, ROOT):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

# Load environment variables
load_dotenv()

from energy_session import LocalSessionStore, SessionStateMachine  # noqa: E402
from cloud_sync import AuthAdapter, Identity, RemoteConfig, SupabaseClient  # noqa: E402


SUPABASE_URL = "https://demo-project.supabase.co"
TEST_USER = {"id": "user-123", "email": "student@example.com"}
TEST_TOKEN = "token-abc"


# ============================================================================
# Local session fixtures
# ============================================================================

@pytest.fixture
def store(tmp_path):
    """Local session store in a temporary directory."""
    return LocalSessionStore.in_directory(tmp_path)


@pytest.fixture
def machine(store):
    """State machine with no remote sync."""
    m = SessionStateMachine(store)
    yield m
    m.dispose()


class IdentityHolder:
    """Switchable identity for tests of the sync gate."""

    def __init__(self, identity=None):
        self.identity = identity

    def __call__(self):
        return self.identity


@pytest.fixture
def signed_in_identity():
    return Identity(id=TEST_USER["id"], email=TEST_USER["email"], access_token=TEST_TOKEN)


@pytest.fixture
def sync_client():
    """Sync client stub whose ``sync`` succeeds."""
    client = AsyncMock()
    client.sync.return_value = True
    return client


@pytest.fixture
def identity_holder(signed_in_identity):
    return IdentityHolder(signed_in_identity)


@pytest.fixture
def syncing_machine(store, sync_client, identity_holder):
    """State machine with a signed-in identity and a stub sync client."""
    m = SessionStateMachine(
        store,
        sync_client=sync_client,
        identity_provider=identity_holder,
    )
    yield m
    m.dispose()


@pytest.fixture
def drive_to_feedback():
    """Return a helper that walks a machine through a study run to the feedback prompt."""

    def _drive(m: SessionStateMachine, duration: int = 5) -> None:
        m.select_energy("high")
        m.select_activity("study")
        m.start_timer(duration)
        m.toggle_play_pause()
        for _ in range(duration * 60):
            m.tick()
        m.request_feedback()

    return _drive


# ============================================================================
# Remote fixtures
# ============================================================================

@pytest.fixture
def remote_config():
    return RemoteConfig(endpoint=SUPABASE_URL, key="anon-key")


@pytest.fixture
def disabled_config():
    return RemoteConfig.disabled()


class FakeSupabase:
    """
    In-memory stand-in for the Supabase HTTP API, served through
    ``httpx.MockTransport``.

    Records every request so tests can assert on what was (or was not) sent.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.rows: list[dict] = []
        self.valid_tokens = {TEST_TOKEN: dict(TEST_USER)}
        self.fail_with: dict[str, int] = {}
        self.raise_connect = False
        self.non_json_paths: set[str] = set()

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if self.raise_connect:
            raise httpx.ConnectError("connection refused", request=request)
        if path in self.fail_with:
            return httpx.Response(self.fail_with[path], json={"message": "store unavailable"})
        if path in self.non_json_paths:
            return httpx.Response(200, text="<html>down for maintenance</html>")

        token = request.headers.get("Authorization", "").removeprefix("Bearer ")

        if path == "/auth/v1/otp":
            body = json.loads(request.content)
            if "@" not in body.get("email", ""):
                return httpx.Response(422, json={"msg": "Unable to validate email address"})
            return httpx.Response(200, json={})

        if path == "/auth/v1/user":
            user = self.valid_tokens.get(token)
            if user is None:
                return httpx.Response(401, json={"msg": "invalid JWT"})
            return httpx.Response(200, json=user)

        if path == "/auth/v1/logout":
            return httpx.Response(204)

        if path == "/rest/v1/sessions" and request.method == "POST":
            self.rows.append(json.loads(request.content))
            return httpx.Response(201)

        if path == "/rest/v1/sessions" and request.method == "GET":
            user_filter = request.url.params.get("user_id", "")
            user_id = user_filter.removeprefix("eq.")
            rows = [row for row in self.rows if row.get("user_id") == user_id]
            rows.sort(key=lambda row: row.get("created_at", ""), reverse=True)
            limit = request.url.params.get("limit")
            if limit:
                rows = rows[: int(limit)]
            return httpx.Response(200, json=rows)

        return httpx.Response(404, json={"message": f"unknown path {path}"})

    def calls_to(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]


@pytest.fixture
def fake_supabase():
    return FakeSupabase()


@pytest.fixture
def supabase_client(remote_config, fake_supabase):
    return SupabaseClient(remote_config, transport=httpx.MockTransport(fake_supabase.handler))


@pytest.fixture
def auth(remote_config, supabase_client, tmp_path):
    return AuthAdapter(remote_config, client=supabase_client, session_path=tmp_path / "auth.json")
