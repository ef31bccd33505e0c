from __future__ import annotations

import json
from enum import Enum
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from .errors import DecodeError

__all__ = [
    "CredentialMode",
    "Envelope",
    "parse_envelope",
    "decode_data",
]

M = TypeVar("M", bound=BaseModel)


class CredentialMode(str, Enum):
    none = "none"
    static_key = "static_key"
    bearer_token = "bearer_token"


class Envelope(BaseModel):
    """Uniform response wrapper returned by every backend endpoint.

    `data` is kept as parsed-but-uninterpreted JSON; call sites decode it into
    the shape they expect with `decode_data`.
    """

    success: bool = False
    message: str | None = None
    data: Any = None


def parse_envelope(raw: bytes) -> Envelope:
    """Parse a raw response body into an `Envelope`.

    Raises:
        DecodeError: if the body is not JSON or not an envelope object.
    """
    try:
        parsed = json.loads(raw)
    except (ValueError, UnicodeDecodeError) as e:
        raise DecodeError(f"response is not valid JSON: {e}", raw) from e
    if not isinstance(parsed, dict):
        raise DecodeError("response is not a JSON object", raw)
    try:
        return Envelope.model_validate(parsed)
    except ValidationError as e:
        raise DecodeError(f"response envelope is malformed: {e}", raw) from e


def decode_data(envelope: Envelope, model: type[M]) -> M:
    """Decode the envelope payload into `model`.

    A successful call can still carry data of the wrong shape; that is reported
    as `DecodeError`, never as an API failure.
    """
    try:
        return model.model_validate(envelope.data)
    except ValidationError as e:
        raw = json.dumps(envelope.data, ensure_ascii=False).encode("utf-8")
        raise DecodeError(f"cannot decode {model.__name__}: {e}", raw) from e
