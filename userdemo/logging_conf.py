"""JSON-line logging for the relay.

One JSON object per line on stdout, built from the record's level, logger name,
message and any `extra={...}` fields. Fields that could carry a credential are
masked before they are written. `setup_logging()` is idempotent.
"""
from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import Iterator
from datetime import UTC, datetime
from typing import Any

_DEFAULT_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Attributes every LogRecord carries; anything else came in through `extra`.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
}

# Extra keys whose values are never written out.
SECRET_KEYS = frozenset(
    {"authorization", "user_api_key", "api_key", "token", "access_token", "password"}
)
_MASK = "***"


def _structured_fields(record: logging.LogRecord) -> Iterator[tuple[str, Any]]:
    if isinstance(record.msg, dict):
        yield from record.msg.items()
    for key, value in vars(record).items():
        if key not in _RECORD_ATTRS:
            yield key, value


class JsonFormatter(logging.Formatter):
    """Render a record as a single JSON line with masked secrets."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        out: dict[str, Any] = {
            "ts": datetime.now(UTC).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
        }
        if not isinstance(record.msg, dict):
            out["message"] = record.getMessage()
        for key, value in _structured_fields(record):
            if key.lower() in SECRET_KEYS:
                value = _MASK
            out.setdefault(key, value)
        if record.exc_info:
            out["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(out, ensure_ascii=False, default=str)


def setup_logging(level: str | int = _DEFAULT_LEVEL) -> None:
    """Send root and uvicorn logs through one JSON stdout handler.

    Does nothing when the root logger already has handlers (reloads, tests).
    """
    root = logging.getLogger()
    if root.handlers:
        return
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JsonFormatter())
    root.setLevel(level)
    root.addHandler(handler)

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        server_logger = logging.getLogger(name)
        server_logger.handlers.clear()
        server_logger.setLevel(level)
        server_logger.propagate = True


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the named logger (this module's when `name` is empty)."""
    return logging.getLogger(name or __name__)
