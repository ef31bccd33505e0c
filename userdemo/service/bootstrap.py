"""Flows whose success establishes a new session credential.

Each flow pins its backend call to one context snapshot and hands that
snapshot's generation to `set_token`, so a settings update that lands while the
call is in flight wins over the token it returns.
"""
from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from ..domain.envelope import CredentialMode, Envelope, decode_data
from ..domain.errors import ConfigurationError
from ..domain.shapes import AuthResult, TokenGrant
from ..logging_conf import get_logger
from .relay import RelayClient

logger = get_logger("service.bootstrap")

TOKEN_PATH = "/api/user-api/token"
LOGIN_PATH = "/api/auth/login"
REGISTER_PATH = "/api/auth/register"


async def exchange_token(relay: RelayClient) -> TokenGrant:
    """Trade the static API key for a bearer token and cache it.

    Raises:
        ConfigurationError: if the settings changed while the exchange ran; the
            token belongs to the old configuration and is not cached.
    """
    snap = await relay.context.snapshot()
    envelope = await relay.request(
        "POST", TOKEN_PATH, mode=CredentialMode.static_key, snapshot=snap
    )
    grant = decode_data(envelope, TokenGrant)
    if not await relay.context.set_token(grant.access_token, generation=snap.generation):
        raise ConfigurationError("settings changed during token exchange, try again")
    logger.info("session.exchanged", extra={"event": "session_exchanged", "user_id": grant.user_id})
    return grant


async def _authenticate(relay: RelayClient, path: str, body: dict[str, Any], flow: str) -> Envelope:
    snap = await relay.context.snapshot()
    envelope = await relay.public_request("POST", path, body=body, snapshot=snap)
    if not envelope.success or envelope.data is None:
        logger.info(
            "session.rejected",
            extra={"event": "session_rejected", "flow": flow, "reason": envelope.message},
        )
        return envelope
    try:
        result = AuthResult.model_validate(envelope.data)
    except ValidationError:
        # Declared success without a usable token: relay it, keep state untouched.
        logger.warning(
            "session.unusable_payload",
            extra={"event": "session_unusable_payload", "flow": flow},
        )
        return envelope
    if not result.token:
        return envelope
    stored = await relay.context.set_token(
        result.token, user_id=result.user.id or None, generation=snap.generation
    )
    if stored:
        logger.info(
            "session.established",
            extra={"event": "session_established", "flow": flow, "user_id": result.user.id},
        )
    return envelope


async def login(relay: RelayClient, credentials: dict[str, Any]) -> Envelope:
    """Log in with username/password (and captcha fields, if any).

    Returns the backend envelope unchanged; a rejected login is not an error.
    """
    return await _authenticate(relay, LOGIN_PATH, credentials, "login")


async def register(relay: RelayClient, details: dict[str, Any]) -> Envelope:
    """Register a new account; on success the new session becomes active."""
    return await _authenticate(relay, REGISTER_PATH, details, "register")
