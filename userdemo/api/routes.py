from __future__ import annotations

import asyncio
from typing import Any

from fastapi import APIRouter, Body, Depends, Query, Request

from ..logging_conf import get_logger
from ..service import account_service, bootstrap, browser
from ..service.relay import RelayClient
from .models import (
    ConfigUpdateRequest,
    ConfigView,
    OpenBrowserResponse,
    RelayResponse,
    TokenStatusResponse,
)

router = APIRouter()
logger = get_logger("api")

_RELAY = {"response_model": RelayResponse, "response_model_exclude_none": True}


def get_relay(request: Request) -> RelayClient:
    return request.app.state.relay


# ------------------------
# Local state
# ------------------------

@router.get("/api/config", response_model=ConfigView, summary="Show connection settings")
async def show_config(relay: RelayClient = Depends(get_relay)) -> ConfigView:
    snap = await relay.context.snapshot()
    s = snap.settings
    return ConfigView(
        server_url=s.server_url,
        user_id=s.user_id,
        port=s.port,
        has_api_key=bool(s.user_api_key),
        is_configured=s.has_static_key,
        has_token=bool(snap.bearer_token),
    )


@router.post("/api/config", **_RELAY, summary="Replace connection settings")
async def update_config(
    req: ConfigUpdateRequest, relay: RelayClient = Depends(get_relay)
) -> RelayResponse:
    """Save new settings; any active session is discarded."""
    await relay.context.update_settings(
        server_url=req.server_url,
        user_api_key=req.user_api_key,
        user_id=req.user_id,
        port=req.port,
    )
    return RelayResponse.ok(message="config_saved")


@router.get("/api/token-status", response_model=TokenStatusResponse, summary="Session presence")
async def token_status(relay: RelayClient = Depends(get_relay)) -> TokenStatusResponse:
    return TokenStatusResponse(has_token=await relay.context.has_token())


@router.get("/open-browser", response_model=OpenBrowserResponse, summary="Open the account site")
async def open_browser(
    target: str | None = Query(None, description="login, profile or register"),
    relay: RelayClient = Depends(get_relay),
) -> OpenBrowserResponse:
    settings = await relay.context.settings()
    url = browser.target_url(settings.server_url, target)
    await asyncio.to_thread(browser.open_url, url)
    return OpenBrowserResponse(message="browser opened", url=url)


# ------------------------
# Static API key
# ------------------------

@router.get("/api/profile", **_RELAY, summary="Profile via API key")
async def profile(relay: RelayClient = Depends(get_relay)) -> RelayResponse:
    out = await account_service.fetch_profile(relay)
    return RelayResponse.ok(out.model_dump(mode="json"))


@router.get("/api/balance", **_RELAY, summary="Balance via API key")
async def balance(relay: RelayClient = Depends(get_relay)) -> RelayResponse:
    out = await account_service.fetch_balance(relay)
    return RelayResponse.ok(out.model_dump(mode="json"))


@router.api_route("/api/token", methods=["GET", "POST"], **_RELAY, summary="Exchange key for token")
async def token(relay: RelayClient = Depends(get_relay)) -> RelayResponse:
    """Exchange the API key for a bearer token and keep it for /api/jwt/* calls."""
    grant = await bootstrap.exchange_token(relay)
    return RelayResponse.ok(grant.model_dump(mode="json"))


# ------------------------
# Bearer session
# ------------------------

@router.get("/api/jwt/profile", **_RELAY, summary="Profile via session")
async def jwt_profile(relay: RelayClient = Depends(get_relay)) -> RelayResponse:
    out = await account_service.session_profile(relay)
    return RelayResponse.ok(out.model_dump(mode="json"))


@router.get("/api/jwt/messages", **_RELAY, summary="Message list")
async def jwt_messages(relay: RelayClient = Depends(get_relay)) -> RelayResponse:
    out = await account_service.list_messages(relay)
    return RelayResponse.ok(out.model_dump(mode="json"))


@router.get("/api/jwt/unread-count", **_RELAY, summary="Unread message count")
async def jwt_unread_count(relay: RelayClient = Depends(get_relay)) -> RelayResponse:
    out = await account_service.unread_count(relay)
    return RelayResponse.ok(out.model_dump(mode="json"))


@router.post("/api/jwt/read-all-messages", **_RELAY, summary="Mark all messages read")
async def jwt_read_all(relay: RelayClient = Depends(get_relay)) -> RelayResponse:
    env = await account_service.read_all_messages(relay)
    return RelayResponse.ok(message=env.message)


@router.get("/api/jwt/balance-logs", **_RELAY, summary="Balance history")
async def jwt_balance_logs(relay: RelayClient = Depends(get_relay)) -> RelayResponse:
    out = await account_service.balance_logs(relay)
    return RelayResponse.ok(out.model_dump(mode="json"))


@router.post("/api/jwt/update-profile", **_RELAY, summary="Update profile fields")
async def jwt_update_profile(
    changes: dict[str, str] = Body(...), relay: RelayClient = Depends(get_relay)
) -> RelayResponse:
    env = await account_service.update_profile(relay, changes)
    return RelayResponse.ok(env.data, message=env.message)


@router.get("/api/jwt/balance", **_RELAY, summary="Balance via session")
async def jwt_balance(relay: RelayClient = Depends(get_relay)) -> RelayResponse:
    return RelayResponse.ok(await account_service.session_balance(relay))


@router.get("/api/jwt/third-party-status", **_RELAY, summary="Third-party bindings")
async def jwt_third_party_status(relay: RelayClient = Depends(get_relay)) -> RelayResponse:
    return RelayResponse.ok(await account_service.third_party_status(relay))


@router.get("/api/jwt/payment-orders", **_RELAY, summary="Payment order history")
async def jwt_payment_orders(relay: RelayClient = Depends(get_relay)) -> RelayResponse:
    return RelayResponse.ok(await account_service.payment_orders(relay))


@router.post("/api/jwt/purchase-vip", **_RELAY, summary="Create a VIP payment order")
async def jwt_purchase_vip(
    order: dict[str, Any] = Body(...), relay: RelayClient = Depends(get_relay)
) -> RelayResponse:
    env = await account_service.purchase_vip(relay, order)
    return RelayResponse.ok(env.data, message=env.message)


@router.post("/api/jwt/recharge", **_RELAY, summary="Create a recharge payment order")
async def jwt_recharge(
    order: dict[str, Any] = Body(...), relay: RelayClient = Depends(get_relay)
) -> RelayResponse:
    env = await account_service.recharge(relay, order)
    return RelayResponse.ok(env.data, message=env.message)


# ------------------------
# Public: captcha, login, registration, catalog
# ------------------------

@router.get("/api/captcha/status", **_RELAY, summary="Captcha requirement")
async def captcha_status(relay: RelayClient = Depends(get_relay)) -> RelayResponse:
    return RelayResponse.ok(await account_service.captcha_status(relay))


@router.post("/api/captcha/generate", **_RELAY, summary="New captcha challenge")
async def captcha_generate(relay: RelayClient = Depends(get_relay)) -> RelayResponse:
    return RelayResponse.ok(await account_service.captcha_generate(relay))


@router.post("/api/captcha/verify", **_RELAY, summary="Check a captcha answer")
async def captcha_verify(
    answer: dict[str, Any] = Body(...), relay: RelayClient = Depends(get_relay)
) -> RelayResponse:
    return RelayResponse.relayed(await account_service.captcha_verify(relay, answer))


@router.post("/api/login", **_RELAY, summary="Username/password login")
async def login(
    credentials: dict[str, Any] = Body(...), relay: RelayClient = Depends(get_relay)
) -> RelayResponse:
    """Relay a login attempt; a rejected attempt is reported with success=false."""
    return RelayResponse.relayed(await bootstrap.login(relay, credentials))


@router.post("/api/register", **_RELAY, summary="Create an account")
async def register(
    details: dict[str, Any] = Body(...), relay: RelayClient = Depends(get_relay)
) -> RelayResponse:
    return RelayResponse.relayed(await bootstrap.register(relay, details))


@router.get("/api/vip-levels", **_RELAY, summary="VIP level catalog")
async def vip_levels(relay: RelayClient = Depends(get_relay)) -> RelayResponse:
    return RelayResponse.ok(await account_service.vip_levels(relay))


@router.get("/api/recharge-settings", **_RELAY, summary="Recharge options")
async def recharge_settings(relay: RelayClient = Depends(get_relay)) -> RelayResponse:
    return RelayResponse.ok(await account_service.recharge_settings(relay))
