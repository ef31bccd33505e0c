"""Records decoded from the `data` field of backend envelopes.

Only endpoints whose payload the relay actually interprets get a model here;
everything else is relayed as opaque JSON.
"""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .settings import UINT32_MAX

__all__ = [
    "UserProfile",
    "UserBalance",
    "TokenGrant",
    "Message",
    "MessagePage",
    "UnreadCount",
    "BalanceLog",
    "BalanceLogPage",
    "AuthUser",
    "AuthResult",
]


class _Shape(BaseModel):
    model_config = ConfigDict(extra="ignore")


class UserProfile(_Shape):
    id: int = Field(..., ge=0)
    email: str = ""
    username: str = ""
    display_name: str = ""
    avatar: str = ""
    balance: float = 0.0
    vip_level: int = 0
    vip_expire_at: datetime | None = None
    is_active: bool = False
    last_login_at: datetime | None = None
    created_at: datetime | None = None
    email_verified: bool = False


class UserBalance(_Shape):
    balance: float
    vip_level: int = 0
    vip_name: str = ""
    vip_expire_at: datetime | None = None


class TokenGrant(_Shape):
    """Result of exchanging a static API key for a bearer token."""

    access_token: str = Field(..., min_length=1)
    token_type: str = "Bearer"
    expires_in: int = 0
    user_id: int = 0
    username: str = ""
    email: str = ""
    display_name: str = ""


class Message(_Shape):
    id: int
    title: str = ""
    content: str = ""
    type: str = ""
    is_read: bool = False
    read_at: datetime | None = None
    created_at: datetime | None = None


class MessagePage(_Shape):
    messages: list[Message] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 10


class UnreadCount(_Shape):
    unread_count: int


class BalanceLog(_Shape):
    id: int
    type: str = ""
    amount: float = 0.0
    balance_after: float = 0.0
    description: str = ""
    created_at: datetime | None = None


class BalanceLogPage(_Shape):
    logs: list[BalanceLog] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 10


class AuthUser(_Shape):
    id: int = Field(0, ge=0, le=UINT32_MAX)
    username: str = ""
    email: str = ""
    display_name: str = ""


class AuthResult(_Shape):
    """Payload of a successful login or registration."""

    token: str = ""
    user: AuthUser = Field(default_factory=AuthUser)
