"""Outbound calls to the account backend.

Every call goes through `RelayClient`. The credential mode decides which
headers are attached; the response envelope is unwrapped the same way for all
modes.
"""
from __future__ import annotations

import asyncio
import json
import time
from typing import Any

import httpx

from ..domain.envelope import CredentialMode, Envelope, parse_envelope
from ..domain.errors import APIError, ConfigurationError, TransportError
from ..logging_conf import get_logger
from .context import RelayContext, Snapshot

logger = get_logger("service.relay")

DEFAULT_TIMEOUT_S = 30.0


def build_auth_headers(snapshot: Snapshot, mode: CredentialMode) -> dict[str, str]:
    """Return the credential headers for `mode`.

    Raises:
        ConfigurationError: if a setting or the session token that `mode` needs
            is missing.
    """
    settings = snapshot.settings
    if not settings.server_url:
        raise ConfigurationError("server URL is not configured")
    if mode is CredentialMode.none:
        return {}
    if mode is CredentialMode.static_key:
        if not settings.user_api_key:
            raise ConfigurationError("API key is not configured")
        if not settings.user_id:
            raise ConfigurationError("user ID is not configured")
        return {
            "X-User-API-Key": settings.user_api_key,
            "X-User-ID": str(settings.user_id),
        }
    if mode is CredentialMode.bearer_token:
        if not snapshot.bearer_token:
            raise ConfigurationError("no active session")
        return {"Authorization": f"Bearer {snapshot.bearer_token}"}
    raise ConfigurationError(f"unsupported credential mode: {mode}")


class RelayClient:
    """Issues backend calls under a credential mode and unwraps the envelope.

    `transport` lets tests substitute an `httpx.MockTransport` for the network.
    """

    def __init__(
        self,
        context: RelayContext,
        *,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.context = context
        self.timeout_s = timeout_s
        self._transport = transport

    async def request(
        self,
        method: str,
        path: str,
        *,
        body: Any = None,
        mode: CredentialMode = CredentialMode.none,
        snapshot: Snapshot | None = None,
    ) -> Envelope:
        """Call the backend and return the envelope of a successful response.

        Raises:
            ConfigurationError: before any network I/O, if `mode` cannot be satisfied.
            TransportError: if the backend cannot be reached.
            DecodeError: if the body is not an envelope.
            APIError: if the backend reports `success: false`.
        """
        snapshot = snapshot or await self.context.snapshot()
        headers = build_auth_headers(snapshot, mode)
        envelope = await self._send(
            method,
            path,
            body=body,
            headers=headers,
            base_url=snapshot.settings.server_url,
            mode=mode,
        )
        if not envelope.success:
            raise APIError(envelope.message)
        return envelope

    async def public_request(
        self, method: str, path: str, *, body: Any = None, snapshot: Snapshot | None = None
    ) -> Envelope:
        """Call an unauthenticated endpoint and return the envelope as-is.

        Unlike `request`, a `success: false` envelope is returned rather than
        raised, so callers can show the backend's own failure message.

        Pass `snapshot` to pin the call to state the caller already captured.
        """
        snapshot = snapshot or await self.context.snapshot()
        headers = build_auth_headers(snapshot, CredentialMode.none)
        return await self._send(
            method,
            path,
            body=body,
            headers=headers,
            base_url=snapshot.settings.server_url,
            mode=CredentialMode.none,
        )

    async def _send(
        self,
        method: str,
        path: str,
        *,
        body: Any,
        headers: dict[str, str],
        base_url: str,
        mode: CredentialMode,
    ) -> Envelope:
        headers = {"Accept": "application/json", **headers}
        content: bytes | None = None
        if body is not None:
            content = json.dumps(body, ensure_ascii=False).encode("utf-8")
            headers["Content-Type"] = "application/json"

        start = time.perf_counter()
        logger.info(
            "relay.request",
            extra={"event": "relay_request", "method": method, "path": path, "mode": mode.value},
        )
        try:
            # httpx timeouts apply per phase and per read; this bounds the whole call.
            async with asyncio.timeout(self.timeout_s):
                async with httpx.AsyncClient(
                    base_url=base_url, timeout=self.timeout_s, transport=self._transport
                ) as client:
                    r = await client.request(method, path, content=content, headers=headers)
        except (httpx.HTTPError, TimeoutError) as e:
            logger.warning(
                "relay.transport_error",
                extra={
                    "event": "relay_transport_error",
                    "method": method,
                    "path": path,
                    "error": str(e) or type(e).__name__,
                },
            )
            reason = str(e) or f"no response within {self.timeout_s:g}s"
            raise TransportError(f"request failed: {reason}") from e

        elapsed_ms = (time.perf_counter() - start) * 1000.0
        logger.info(
            "relay.response",
            extra={
                "event": "relay_response",
                "method": method,
                "path": path,
                "status_code": r.status_code,
                "elapsed_ms": round(elapsed_ms, 2),
            },
        )
        return parse_envelope(r.content)
