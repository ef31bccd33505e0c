"""FastAPI app factory: request logging, health endpoint, relay routes."""
from __future__ import annotations

import os
import time
from collections.abc import Callable
from uuid import uuid4

import httpx
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from .api import router as api_router
from .api.models import ErrorResponse
from .domain.errors import RelayError
from .logging_conf import get_logger, setup_logging
from .service.context import RelayContext
from .service.relay import RelayClient
from .service.settings_store import SettingsStore, get_config_path_from_env

# Configure logging before anything else.
setup_logging()
logger = get_logger("app")


def create_app(
    context: RelayContext | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the relay app.

    Without an explicit `context` the settings are loaded from the file named by
    USERDEMO_CONFIG (default ./config.json) plus environment overrides.
    """
    if context is None:
        context = RelayContext.from_store(SettingsStore(get_config_path_from_env()))

    app = FastAPI(
        title="User API Demo",
        version=os.getenv("APP_VERSION", "0.1.0"),
    )
    app.state.relay = RelayClient(context, transport=transport)

    @app.on_event("startup")
    async def _on_startup() -> None:
        logger.info("startup", extra={"event": "startup"})

    @app.on_event("shutdown")
    async def _on_shutdown() -> None:
        logger.info("shutdown", extra={"event": "shutdown"})

    @app.exception_handler(RelayError)
    async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
        logger.warning(
            "request.relay_error",
            extra={
                "event": "request_relay_error",
                "path": request.url.path,
                "error_code": exc.code,
                "error": str(exc),
            },
        )
        body = ErrorResponse(error=str(exc), error_code=exc.code)
        return JSONResponse(status_code=exc.status_code, content=body.model_dump())

    @app.middleware("http")
    async def trace_requests(request: Request, call_next: Callable[[Request], Response]):
        """Tag each inbound call with a request id and log one line when it finishes."""
        request_id = request.headers.get("X-Request-ID") or uuid4().hex
        request.state.request_id = request_id
        fields = {"method": request.method, "path": request.url.path, "request_id": request_id}

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("request.failed", extra={"event": "request_failed", **fields})
            raise
        took_ms = round((time.perf_counter() - started) * 1000.0, 2)

        response.headers["X-Request-ID"] = request_id
        logger.info(
            "request.done",
            extra={
                "event": "request_done",
                "status_code": response.status_code,
                "elapsed_ms": took_ms,
                **fields,
            },
        )
        return response

    @app.get("/health", summary="Liveness/readiness check")
    async def health() -> JSONResponse:
        return JSONResponse(content={"ok": True})

    app.include_router(api_router)

    return app


# ASGI entrypoint for uvicorn: `uvicorn --factory userdemo.main:create_app --port 8183`
