from __future__ import annotations

from collections.abc import Mapping

from pydantic import BaseModel, Field, field_validator

from ..logging_conf import get_logger
from .errors import ConfigurationError

__all__ = [
    "DEFAULT_PORT",
    "UINT32_MAX",
    "Settings",
    "parse_user_id",
    "apply_env_overrides",
]

DEFAULT_PORT = 8183
UINT32_MAX = (1 << 32) - 1

logger = get_logger("domain.settings")


class Settings(BaseModel):
    """Connection settings for the account backend.

    Serialized as the flat settings file: server_url, user_api_key, user_id, port.
    """

    server_url: str = ""
    user_api_key: str = ""
    user_id: int = Field(0, ge=0, le=UINT32_MAX)  # 0 means "not set"
    port: int = DEFAULT_PORT

    @field_validator("server_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.strip().rstrip("/")

    @field_validator("port")
    @classmethod
    def _default_port(cls, v: int) -> int:
        return v or DEFAULT_PORT

    @property
    def has_static_key(self) -> bool:
        """True when every field needed for static-key calls is present."""
        return bool(self.server_url and self.user_api_key and self.user_id)


def parse_user_id(raw: str | int) -> int:
    """Parse an account identifier as an unsigned 32-bit integer.

    Raises:
        ConfigurationError: if the value is not a non-negative integer in range.
    """
    if isinstance(raw, bool):
        raise ConfigurationError("user_id must be an unsigned integer")
    if isinstance(raw, int):
        value = raw
    else:
        text = raw.strip()
        if not text.isdigit():
            raise ConfigurationError("user_id must be an unsigned integer")
        value = int(text, 10)
    if not (0 <= value <= UINT32_MAX):
        raise ConfigurationError("user_id is out of range")
    return value


def apply_env_overrides(settings: Settings, env: Mapping[str, str]) -> Settings:
    """Return a copy of `settings` with environment overrides applied.

    SERVER_URL and USER_API_KEY win when non-empty; USER_ID and PORT win only
    when they parse. Unparseable values are ignored.
    """
    updates: dict[str, object] = {}
    if server_url := env.get("SERVER_URL"):
        updates["server_url"] = server_url
    if api_key := env.get("USER_API_KEY"):
        updates["user_api_key"] = api_key
    if raw_uid := env.get("USER_ID"):
        try:
            updates["user_id"] = parse_user_id(raw_uid)
        except ConfigurationError:
            logger.warning(
                "settings.env_ignored",
                extra={"event": "settings_env_ignored", "variable": "USER_ID"},
            )
    if raw_port := env.get("PORT"):
        try:
            updates["port"] = int(raw_port, 10)
        except ValueError:
            logger.warning(
                "settings.env_ignored",
                extra={"event": "settings_env_ignored", "variable": "PORT"},
            )
    if not updates:
        return settings
    # Re-validate so the URL and port normalization rules still apply.
    return Settings.model_validate({**settings.model_dump(), **updates})
