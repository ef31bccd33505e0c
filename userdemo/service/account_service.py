from __future__ import annotations

from typing import Any

from ..domain.envelope import CredentialMode, Envelope, decode_data
from ..domain.shapes import (
    BalanceLogPage,
    MessagePage,
    UnreadCount,
    UserBalance,
    UserProfile,
)
from ..logging_conf import get_logger
from .relay import RelayClient

logger = get_logger("service.account")

_KEY = CredentialMode.static_key
_BEARER = CredentialMode.bearer_token

PAGE_QUERY = "page=1&page_size=10"


# ------------------------
# Static API key
# ------------------------

async def fetch_profile(relay: RelayClient) -> UserProfile:
    """Profile of the account the static API key belongs to."""
    env = await relay.request("GET", "/api/user-api/profile", mode=_KEY)
    return decode_data(env, UserProfile)


async def fetch_balance(relay: RelayClient) -> UserBalance:
    env = await relay.request("GET", "/api/user-api/balance", mode=_KEY)
    return decode_data(env, UserBalance)


# ------------------------
# Bearer session
# ------------------------

async def session_profile(relay: RelayClient) -> UserProfile:
    env = await relay.request("GET", "/api/auth/profile", mode=_BEARER)
    return decode_data(env, UserProfile)


async def list_messages(relay: RelayClient) -> MessagePage:
    """First page of the account's messages."""
    env = await relay.request("GET", f"/api/messages?{PAGE_QUERY}", mode=_BEARER)
    return decode_data(env, MessagePage)


async def unread_count(relay: RelayClient) -> UnreadCount:
    env = await relay.request("GET", "/api/messages/unread-count", mode=_BEARER)
    return decode_data(env, UnreadCount)


async def read_all_messages(relay: RelayClient) -> Envelope:
    return await relay.request("POST", "/api/messages/read-all", mode=_BEARER)


async def balance_logs(relay: RelayClient) -> BalanceLogPage:
    """First page of balance changes.

    A payload that does not match `BalanceLogPage` raises `DecodeError` like
    every other typed endpoint.
    """
    env = await relay.request("GET", f"/api/auth/user-logs/balance?{PAGE_QUERY}", mode=_BEARER)
    return decode_data(env, BalanceLogPage)


async def update_profile(relay: RelayClient, changes: dict[str, str]) -> Envelope:
    return await relay.request("PUT", "/api/auth/profile", body=changes, mode=_BEARER)


async def session_balance(relay: RelayClient) -> Any:
    env = await relay.request("GET", "/api/auth/balance", mode=_BEARER)
    return env.data


async def third_party_status(relay: RelayClient) -> Any:
    env = await relay.request("GET", "/api/auth/third-party-status", mode=_BEARER)
    return env.data


async def payment_orders(relay: RelayClient) -> Any:
    env = await relay.request(
        "GET", f"/api/auth/user-logs/payment-orders?{PAGE_QUERY}", mode=_BEARER
    )
    return env.data


async def create_payment(relay: RelayClient, order: dict[str, Any], product_type: str) -> Envelope:
    """Create a payment order; `product_type` ("vip" or "recharge") overrides the body's."""
    body = {**order, "product_type": product_type}
    logger.info(
        "payment.create",
        extra={"event": "payment_create", "product_type": product_type},
    )
    return await relay.request("POST", "/api/payment/create", body=body, mode=_BEARER)


async def purchase_vip(relay: RelayClient, order: dict[str, Any]) -> Envelope:
    return await create_payment(relay, order, "vip")


async def recharge(relay: RelayClient, order: dict[str, Any]) -> Envelope:
    return await create_payment(relay, order, "recharge")


# ------------------------
# Public catalog and captcha
# ------------------------

async def captcha_status(relay: RelayClient) -> Any:
    env = await relay.public_request("GET", "/api/captcha/status")
    return env.data


async def captcha_generate(relay: RelayClient) -> Any:
    env = await relay.public_request("POST", "/api/captcha/generate")
    return env.data


async def captcha_verify(relay: RelayClient, answer: dict[str, Any]) -> Envelope:
    """Verify a captcha answer; a wrong answer comes back as `success: false`."""
    return await relay.public_request("POST", "/api/captcha/verify", body=answer)


async def vip_levels(relay: RelayClient) -> Any:
    env = await relay.public_request("GET", "/api/vip-levels")
    return env.data


async def recharge_settings(relay: RelayClient) -> Any:
    env = await relay.public_request("GET", "/api/recharge-settings")
    return env.data
