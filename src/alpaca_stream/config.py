"""Environment-driven API configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Self
from urllib.parse import urlsplit, urlunsplit

from dotenv import load_dotenv

from alpaca_stream.errors import ConfigError
from alpaca_stream.streams.base import StreamType

DEFAULT_BASE_URL = "https://paper-api.alpaca.markets"
DEFAULT_LOG_LEVEL = "INFO"


def first_env(*names: str, default: str = "") -> str:
    """Return the first non-empty environment variable among ``names``."""
    for name in names:
        value = os.getenv(name)
        if value is not None and value.strip():
            return value.strip()
    return default


def parse_optional_positive_int(value: str | None, *, field_name: str) -> int | None:
    """Parse optional positive integer values from env strings."""
    if value is None:
        return None
    text = value.strip()
    if not text:
        return None
    try:
        parsed = int(text)
    except ValueError as exc:
        raise ConfigError(f"{field_name} must be an integer") from exc
    if parsed <= 0:
        raise ConfigError(f"{field_name} must be positive")
    return parsed


@dataclass(frozen=True)
class ApiInfo:
    """Endpoint and credentials for the trading API."""

    base_url: str = DEFAULT_BASE_URL
    key_id: str = ""
    secret: str = ""

    @classmethod
    def from_env(cls) -> Self:
        """Create API info from environment variables (and a ``.env`` file)."""
        load_dotenv()
        raw = cls(
            base_url=first_env("APCA_API_BASE_URL", "ALPACA_BASE_URL", default=DEFAULT_BASE_URL),
            key_id=first_env("APCA_API_KEY_ID", "ALPACA_API_KEY"),
            secret=first_env("APCA_API_SECRET_KEY", "ALPACA_SECRET_KEY"),
        )
        return raw.validate()

    @property
    def stream_url(self) -> str:
        """Websocket endpoint carrying the account and trade streams."""
        parts = urlsplit(self.base_url.rstrip("/"))
        scheme = "wss" if parts.scheme == "https" else "ws"
        return urlunsplit((scheme, parts.netloc, f"{parts.path}/stream", "", ""))

    def validate(self) -> Self:
        """Validate endpoint and credentials."""
        parts = urlsplit(self.base_url)
        if parts.scheme not in {"http", "https"} or not parts.netloc:
            raise ConfigError(f"base_url must be an http(s) URL, got '{self.base_url}'")
        if not self.key_id:
            raise ConfigError("APCA_API_KEY_ID (or ALPACA_API_KEY) is required")
        if not self.secret:
            raise ConfigError("APCA_API_SECRET_KEY (or ALPACA_SECRET_KEY) is required")
        return self

    def __repr__(self) -> str:
        return f"ApiInfo(base_url={self.base_url!r}, key_id={self.key_id!r}, secret='***')"


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the command-line watcher."""

    api: ApiInfo
    stream: StreamType = StreamType.TRADE_UPDATES
    max_events: int | None = None
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls) -> Self:
        api = ApiInfo.from_env()
        stream_name = first_env("STREAM", default=StreamType.TRADE_UPDATES.value)
        try:
            stream = StreamType(stream_name.lower())
        except ValueError as exc:
            raise ConfigError(f"Unknown stream '{stream_name}'") from exc
        return cls(
            api=api,
            stream=stream,
            max_events=parse_optional_positive_int(
                os.getenv("MAX_EVENTS"), field_name="max_events"
            ),
            log_level=first_env("LOG_LEVEL", default=DEFAULT_LOG_LEVEL).upper(),
        ).validate()

    def with_overrides(self, **kwargs: object) -> Self:
        """Return a new settings object with updated values."""
        overrides = dict(kwargs)
        stream_override = overrides.get("stream")
        if isinstance(stream_override, str):
            overrides["stream"] = StreamType(stream_override)
        updated = replace(self, **overrides)
        return updated.validate()

    def validate(self) -> Self:
        if self.max_events is not None and self.max_events <= 0:
            raise ConfigError("max_events must be positive")
        if self.log_level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ConfigError(f"Unknown log level '{self.log_level}'")
        return self
