from __future__ import annotations

__all__ = [
    "RelayError",
    "ConfigurationError",
    "TransportError",
    "DecodeError",
    "APIError",
    "PersistenceError",
]


class RelayError(Exception):
    """Base class for every failure the relay layer reports.

    `code` is a stable machine code and `status_code` the HTTP status used when
    the error reaches the inbound API.
    """

    code: str = "relay_error"
    status_code: int = 500


class ConfigurationError(RelayError):
    """A required setting or the session credential is missing."""

    code = "configuration_error"
    status_code = 400


class TransportError(RelayError):
    """The backend could not be reached or the connection failed mid-call."""

    code = "transport_error"
    status_code = 502


class DecodeError(RelayError):
    """A response body (envelope or payload) did not have the expected shape.

    The undecodable bytes are kept on `raw` for diagnosis.
    """

    code = "decode_error"
    status_code = 502

    def __init__(self, message: str, raw: bytes = b"") -> None:
        self.raw = raw
        body = raw.decode("utf-8", errors="replace")
        super().__init__(f"{message}, body: {body}" if raw else message)


class APIError(RelayError):
    """The backend answered with `success: false`."""

    code = "api_error"
    status_code = 400

    def __init__(self, message: str | None) -> None:
        self.message = message or ""
        super().__init__(self.message)


class PersistenceError(RelayError):
    """Settings were changed in memory but could not be written to disk."""

    code = "persistence_error"
    status_code = 500
