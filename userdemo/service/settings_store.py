from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import ValidationError

from ..domain.errors import PersistenceError
from ..domain.settings import Settings, apply_env_overrides
from ..logging_conf import get_logger

logger = get_logger("service.settings")

DEFAULT_CONFIG_FILE = "config.json"


def get_config_path_from_env() -> Path:
    """Return USERDEMO_CONFIG from environment, defaulting to ./config.json."""
    return Path(os.getenv("USERDEMO_CONFIG") or DEFAULT_CONFIG_FILE)


class SettingsStore:
    """Reads and writes the flat JSON settings file.

    Startup problems with the file are never fatal: they are logged and the
    defaults are used instead. Write failures after startup raise
    `PersistenceError`.
    """

    def __init__(self, path: Path | str, env: Mapping[str, str] | None = None) -> None:
        self.path = Path(path)
        self._env = os.environ if env is None else env

    def load(self) -> Settings:
        """Load settings from disk, then apply environment overrides."""
        settings = Settings()
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            self._write_defaults()
        except OSError as e:
            logger.warning(
                "settings.read_failed",
                extra={"event": "settings_read_failed", "path": str(self.path), "error": str(e)},
            )
        else:
            try:
                settings = Settings.model_validate_json(raw)
            except ValidationError as e:
                logger.warning(
                    "settings.parse_failed",
                    extra={
                        "event": "settings_parse_failed",
                        "path": str(self.path),
                        "error": str(e),
                    },
                )
            else:
                logger.info(
                    "settings.loaded",
                    extra={"event": "settings_loaded", "path": str(self.path)},
                )
        return apply_env_overrides(settings, self._env)

    def save(self, settings: Settings) -> None:
        """Persist `settings` as indented JSON readable only by the owner.

        Raises:
            PersistenceError: if the file cannot be written.
        """
        try:
            self._write(settings)
        except OSError as e:
            raise PersistenceError(f"failed to save settings: {e}") from e
        logger.info("settings.saved", extra={"event": "settings_saved", "path": str(self.path)})

    def _write_defaults(self) -> None:
        try:
            self._write(Settings())
        except OSError as e:
            logger.warning(
                "settings.default_write_failed",
                extra={
                    "event": "settings_default_write_failed",
                    "path": str(self.path),
                    "error": str(e),
                },
            )
            return
        logger.warning(
            "settings.defaults_created",
            extra={"event": "settings_defaults_created", "path": str(self.path)},
        )

    def _write(self, settings: Settings) -> None:
        if self.path.parent != Path(""):
            self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(settings.model_dump_json(indent=2) + "\n", encoding="utf-8")
        os.chmod(self.path, 0o600)
