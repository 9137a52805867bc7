"""Exceptions raised by the stream client."""

from __future__ import annotations

from typing import Any


class ClientError(Exception):
    """Base exception for all client errors."""


class ConfigError(ClientError):
    """Raised when API configuration is invalid or missing."""


class DecodeError(ClientError):
    """Raised when a wire payload does not match the expected schema."""

    def __init__(self, path: str, value: Any = None, reason: str | None = None) -> None:
        self.path = path
        self.value = value
        self.reason = reason
        if reason is None:
            reason = "missing field" if value is None else "invalid value"
        message = f"{reason} '{path}'"
        if value is not None:
            message = f"{message}: {value!r}"
        super().__init__(message)

    def nested(self, prefix: str) -> DecodeError:
        """Return a copy of this error with the path rooted at ``prefix``."""
        return DecodeError(f"{prefix}.{self.path}", self.value, self.reason)


class AuthenticationError(ClientError):
    """Raised when the stream endpoint rejects our credentials."""

    def __init__(self, message: str = "authentication not successful") -> None:
        super().__init__(message)


class SubscriptionError(ClientError):
    """Raised when the broker does not acknowledge a requested stream."""


class TransportError(ClientError):
    """Raised when the websocket connection fails."""


class RequestError(ClientError):
    """Raised when a REST request fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
