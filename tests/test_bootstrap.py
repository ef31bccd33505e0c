"""
Tests for the session bootstrap flows: token exchange, login and registration.
"""

from __future__ import annotations

import asyncio

import httpx
import pytest

from userdemo.domain.envelope import CredentialMode
from userdemo.domain.errors import APIError, ConfigurationError, DecodeError
from userdemo.service import bootstrap
from userdemo.service.relay import RelayClient

GRANT = {
    "access_token": "abc123",
    "token_type": "Bearer",
    "expires_in": 3600,
    "user_id": 7,
    "username": "ann",
}


def test_exchange_then_bearer_call_uses_token(relay, backend, context):
    """After a token exchange, bearer calls carry the exchanged token."""
    backend.reply("POST", "/api/user-api/token", {"success": True, "data": GRANT})
    backend.reply("GET", "/api/auth/profile", {"success": True, "data": {"id": 7}})

    grant = asyncio.run(bootstrap.exchange_token(relay))
    asyncio.run(relay.request("GET", "/api/auth/profile", mode=CredentialMode.bearer_token))

    assert grant.access_token == "abc123"
    exchange_req, profile_req = backend.requests
    assert exchange_req.headers["X-User-API-Key"] == "key-123"
    assert profile_req.headers["Authorization"] == "Bearer abc123"
    assert asyncio.run(context.has_token()) is True


def test_exchange_rejected_leaves_no_session(relay, backend, context):
    backend.reply("POST", "/api/user-api/token", {"success": False, "message": "bad key"})
    with pytest.raises(APIError, match="bad key"):
        asyncio.run(bootstrap.exchange_token(relay))
    assert asyncio.run(context.has_token()) is False


def test_exchange_without_access_token_is_decode_error(relay, backend, context):
    backend.reply("POST", "/api/user-api/token", {"success": True, "data": {"user_id": 7}})
    with pytest.raises(DecodeError):
        asyncio.run(bootstrap.exchange_token(relay))
    assert asyncio.run(context.has_token()) is False


def test_login_success_sets_token_and_user_id(relay, backend, context):
    backend.reply(
        "POST",
        "/api/auth/login",
        {"success": True, "data": {"token": "tok1", "user": {"id": 42, "username": "u"}}},
    )

    env = asyncio.run(bootstrap.login(relay, {"username": "u", "password": "p"}))

    assert env.success is True
    assert backend.last_json() == {"username": "u", "password": "p"}
    assert "Authorization" not in backend.requests[0].headers
    snap = asyncio.run(context.snapshot())
    assert snap.bearer_token == "tok1"
    assert snap.settings.user_id == 42


def test_failed_login_changes_nothing(relay, backend, context):
    backend.reply(
        "POST",
        "/api/auth/login",
        {"success": True, "data": {"token": "tok1", "user": {"id": 42}}},
    )
    asyncio.run(bootstrap.login(relay, {"username": "u", "password": "p"}))

    backend.reply("POST", "/api/auth/login", {"success": False, "message": "wrong password"})
    env = asyncio.run(bootstrap.login(relay, {"username": "u", "password": "nope"}))

    assert env.success is False
    assert env.message == "wrong password"
    snap = asyncio.run(context.snapshot())
    assert snap.bearer_token == "tok1"
    assert snap.settings.user_id == 42


def test_login_success_without_token_changes_nothing(relay, backend, context):
    backend.reply("POST", "/api/auth/login", {"success": True, "data": {"need_captcha": True}})
    env = asyncio.run(bootstrap.login(relay, {"username": "u"}))

    assert env.success is True
    snap = asyncio.run(context.snapshot())
    assert snap.bearer_token is None
    assert snap.settings.user_id == 7


def test_register_success_sets_session(relay, backend, context):
    backend.reply(
        "POST",
        "/api/auth/register",
        {"success": True, "data": {"token": "new-tok", "user": {"id": 99}}},
    )
    asyncio.run(bootstrap.register(relay, {"username": "n", "password": "p", "email": "n@x"}))

    snap = asyncio.run(context.snapshot())
    assert snap.bearer_token == "new-tok"
    assert snap.settings.user_id == 99


def test_login_does_not_persist_user_id(relay, backend, store):
    backend.reply(
        "POST", "/api/auth/login", {"success": True, "data": {"token": "t", "user": {"id": 5}}}
    )
    asyncio.run(bootstrap.login(relay, {"username": "u", "password": "p"}))
    assert not store.path.exists()


def _relay_with_handler(context, handler) -> RelayClient:
    return RelayClient(context, transport=httpx.MockTransport(handler))


def test_settings_update_during_login_wins(context):
    """A settings change that lands while login is in flight discards the old backend's token."""

    async def handler(request: httpx.Request) -> httpx.Response:
        await context.update_settings(server_url="https://new.test", user_api_key="k", user_id=11)
        return httpx.Response(
            200,
            json={"success": True, "data": {"token": "old-backend-token", "user": {"id": 42}}},
        )

    env = asyncio.run(bootstrap.login(_relay_with_handler(context, handler), {"username": "u"}))

    assert env.success is True
    snap = asyncio.run(context.snapshot())
    assert snap.settings.server_url == "https://new.test"
    assert snap.settings.user_id == 11
    assert snap.bearer_token is None


def test_settings_update_during_exchange_is_reported(context):
    async def handler(request: httpx.Request) -> httpx.Response:
        await context.update_settings(server_url="https://new.test", user_api_key="k", user_id=11)
        return httpx.Response(200, json={"success": True, "data": GRANT})

    with pytest.raises(ConfigurationError, match="settings changed"):
        asyncio.run(bootstrap.exchange_token(_relay_with_handler(context, handler)))
    assert asyncio.run(context.has_token()) is False


def test_login_with_out_of_range_user_id_changes_nothing(relay, backend, context):
    backend.reply(
        "POST",
        "/api/auth/login",
        {"success": True, "data": {"token": "tok", "user": {"id": 2**32}}},
    )
    env = asyncio.run(bootstrap.login(relay, {"username": "u", "password": "p"}))

    assert env.success is True
    snap = asyncio.run(context.snapshot())
    assert snap.bearer_token is None
    assert snap.settings.user_id == 7
