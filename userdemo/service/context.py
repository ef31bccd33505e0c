"""Process state shared by every relay call.

`RelayContext` owns the current settings and the single bearer-token slot. All
reads and writes go through its lock so that a settings update cannot interleave
with a request that is reading the credential.

Every settings update bumps `generation`. A token obtained under an older
generation belongs to the previous backend and is discarded instead of cached.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass

from pydantic import ValidationError

from ..domain.errors import ConfigurationError
from ..domain.settings import Settings, parse_user_id
from ..logging_conf import get_logger
from .settings_store import SettingsStore

logger = get_logger("service.context")


@dataclass(frozen=True)
class Snapshot:
    """Consistent view of settings and credential taken under the lock."""

    settings: Settings
    bearer_token: str | None
    generation: int = 0


class RelayContext:
    def __init__(self, settings: Settings, store: SettingsStore | None = None) -> None:
        self._settings = settings
        self._store = store
        self._bearer_token: str | None = None
        self._generation = 0
        self._lock = asyncio.Lock()

    @classmethod
    def from_store(cls, store: SettingsStore) -> RelayContext:
        """Build a context from the persisted settings."""
        return cls(store.load(), store)

    async def snapshot(self) -> Snapshot:
        async with self._lock:
            return Snapshot(
                settings=self._settings,
                bearer_token=self._bearer_token,
                generation=self._generation,
            )

    async def settings(self) -> Settings:
        async with self._lock:
            return self._settings

    async def has_token(self) -> bool:
        async with self._lock:
            return bool(self._bearer_token)

    async def set_token(
        self, token: str, *, user_id: int | None = None, generation: int | None = None
    ) -> bool:
        """Store a new bearer token, optionally adopting the account it belongs to.

        With `generation`, the write only happens if no settings update ran
        since that snapshot was taken. Returns whether the token was stored.
        The account id only changes in memory; it is persisted with the next
        settings update.
        """
        if not token:
            raise ConfigurationError("cannot cache an empty token")
        async with self._lock:
            if generation is not None and generation != self._generation:
                logger.warning(
                    "credential.stale",
                    extra={
                        "event": "credential_stale",
                        "obtained_generation": generation,
                        "current_generation": self._generation,
                    },
                )
                return False
            settings = self._settings
            if user_id is not None:
                try:
                    settings = Settings.model_validate({**settings.model_dump(), "user_id": user_id})
                except ValidationError as e:
                    raise ConfigurationError(f"invalid user id from backend: {user_id}") from e
            self._settings = settings
            self._bearer_token = token
        logger.info("credential.set", extra={"event": "credential_set", "user_id": user_id})
        return True

    async def update_settings(
        self,
        *,
        server_url: str,
        user_api_key: str,
        user_id: str | int,
        port: int | None = None,
    ) -> Settings:
        """Replace the settings, drop the session credential and persist.

        Raises:
            ConfigurationError: if `user_id` is not an unsigned integer.
            PersistenceError: if the file write fails; the new settings stay
                active in memory.
        """
        uid = parse_user_id(user_id)
        async with self._lock:
            new = Settings(
                server_url=server_url,
                user_api_key=user_api_key,
                user_id=uid,
                port=port if port is not None else self._settings.port,
            )
            self._settings = new
            self._bearer_token = None
            self._generation += 1
            logger.info(
                "settings.updated",
                extra={
                    "event": "settings_updated",
                    "server_url": new.server_url,
                    "user_id": uid,
                    "generation": self._generation,
                },
            )
            if self._store is not None:
                # Written under the lock so concurrent updates reach disk in order.
                await asyncio.to_thread(self._store.save, new)
        return new
