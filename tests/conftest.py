"""
Pytest fixtures for the relay. The backend is an `httpx.MockTransport` that
records every request it receives, so tests can assert on headers and call
counts without any network.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from userdemo.domain.settings import Settings
from userdemo.service.context import RelayContext
from userdemo.service.relay import RelayClient
from userdemo.service.settings_store import SettingsStore

BACKEND_URL = "https://accounts.example.test"


class FakeBackend:
    """Routes `(method, path)` to canned responses and records requests."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    def reply(self, method: str, path: str, body: Any, status_code: int = 200) -> None:
        """Answer `method path` with `body` (JSON-encoded unless already bytes)."""
        content = body if isinstance(body, bytes) else json.dumps(body).encode("utf-8")
        self.routes[(method, path)] = lambda request: httpx.Response(status_code, content=content)

    def fail(self, method: str, path: str) -> None:
        def _raise(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        self.routes[(method, path)] = _raise

    def last_json(self) -> Any:
        return json.loads(self.requests[-1].content)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"success": False, "message": "not found"})
        return route(request)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def settings() -> Settings:
    return Settings(server_url=BACKEND_URL, user_api_key="key-123", user_id=7)


@pytest.fixture
def store(tmp_path) -> SettingsStore:
    return SettingsStore(tmp_path / "config.json", env={})


@pytest.fixture
def context(settings, store) -> RelayContext:
    return RelayContext(settings, store)


@pytest.fixture
def relay(context, backend) -> RelayClient:
    return RelayClient(context, transport=httpx.MockTransport(backend.handler))


@pytest.fixture
def client(context, backend):
    """FastAPI TestClient wired to the fake backend."""
    from fastapi.testclient import TestClient

    from userdemo.main import create_app

    app = create_app(context, transport=httpx.MockTransport(backend.handler))
    return TestClient(app)
