from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field

from ..domain.envelope import Envelope


class RelayResponse(BaseModel):
    """Local envelope returned by every relay route."""
    success: bool
    message: Optional[str] = None
    data: Any = None

    @classmethod
    def ok(cls, data: Any = None, message: Optional[str] = None) -> RelayResponse:
        return cls(success=True, message=message, data=data)

    @classmethod
    def relayed(cls, envelope: Envelope) -> RelayResponse:
        """Mirror a backend envelope, including a reported failure."""
        return cls(success=envelope.success, message=envelope.message, data=envelope.data)


class ErrorResponse(BaseModel):
    """Body sent when a relay call fails locally or the backend rejects it."""
    success: bool = False
    error: str
    error_code: str


class ConfigUpdateRequest(BaseModel):
    """New connection settings; the session token is dropped on every update."""
    server_url: str = ""
    user_api_key: str = ""
    user_id: str | int = Field(0, description="Unsigned integer account id")
    port: Optional[int] = None


class ConfigView(BaseModel):
    """Current settings with the API key reduced to a presence flag."""
    server_url: str
    user_id: int
    port: int
    has_api_key: bool
    is_configured: bool
    has_token: bool


class TokenStatusResponse(BaseModel):
    success: bool = True
    has_token: bool


class OpenBrowserResponse(BaseModel):
    success: bool = True
    message: str
    url: str
