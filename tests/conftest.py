"""Pytest configuration and fixtures."""

from typing import Any, Dict, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from client import SeqAPIError
from plugins.registry import reset_registry

SEQ_ENV_VARS = [
    "SEQ_SERVER_URL",
    "SEQ_API_KEY",
    "SEQ_INSECURE_SKIP_VERIFY",
    "SEQ_TIMEOUT_SECONDS",
    "SEQ_STATE_FILE",
    "LOG_LEVEL",
]


class FakeSeqAPI:
    """
    In-memory stand-in for the Seq /api/apikeys endpoints.

    Like Seq, the token is only returned in the create response.
    """

    def __init__(self):
        self.keys: Dict[str, Dict[str, Any]] = {}
        self.calls = []
        self._next_id = 1

    def _public(self, key: Dict[str, Any]) -> Dict[str, Any]:
        return {**key, "Token": ""}

    async def __call__(
        self, method: str, path: str, body: Optional[Dict[str, Any]] = None
    ) -> Optional[Dict[str, Any]]:
        self.calls.append((method, path, body))

        if path == "/health":
            return {"status": "The Seq node is in service."}

        if path == "/api/apikeys" and method == "POST":
            key_id = f"apikey-{self._next_id}"
            token = f"tok-{self._next_id}"
            self._next_id += 1
            key = {
                "Id": key_id,
                "Title": body["Title"],
                "Token": token,
                "OwnerId": body.get("OwnerId", "user-admin"),
                "Permissions": body.get("Permissions", ["Ingest"]),
            }
            self.keys[key_id] = key
            return key

        key_id = path.rsplit("/", 1)[-1]
        if key_id not in self.keys:
            raise SeqAPIError(404, "API key not found")

        if method == "GET":
            return self._public(self.keys[key_id])
        if method == "PUT":
            key = self.keys[key_id]
            key["Title"] = body["Title"]
            if "OwnerId" in body:
                key["OwnerId"] = body["OwnerId"]
            if "Permissions" in body:
                key["Permissions"] = body["Permissions"]
            return self._public(key)
        if method == "DELETE":
            del self.keys[key_id]
            return None

        raise SeqAPIError(405, "Method not allowed")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the caller's Seq settings out of the tests."""
    for name in SEQ_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _reset_registry():
    reset_registry()
    yield
    reset_registry()


@pytest.fixture
def mock_client():
    """Create a mock Seq client whose request() returns nothing."""
    client = MagicMock()
    client.request = AsyncMock(return_value=None)
    client.health = AsyncMock(return_value={"status": "ok"})
    return client


@pytest.fixture
def fake_seq():
    return FakeSeqAPI()


@pytest.fixture
def fake_client(fake_seq):
    """A mock Seq client backed by the in-memory API."""
    client = MagicMock()
    client.request = AsyncMock(side_effect=fake_seq.__call__)
    client.health = AsyncMock(return_value={"status": "The Seq node is in service."})
    return client


@pytest.fixture
def sample_state():
    """Recorded state of an API key created earlier."""
    return {
        "id": "k1",
        "title": "ingest",
        "token": "tok-123",
        "owner_id": "user-admin",
        "permissions": ["Ingest"],
    }
