"""Scalar decoders shared by the wire models."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, TypeVar
from uuid import UUID

from alpaca_stream.errors import DecodeError

EnumT = TypeVar("EnumT", bound=Enum)

_MISSING = object()


def require(payload: Mapping[str, Any], key: str, *, path: str | None = None) -> Any:
    """Return ``payload[key]``, failing when the key is absent or null."""
    value = payload.get(key, _MISSING)
    if value is _MISSING or value is None:
        raise DecodeError(path or key)
    return value


def parse_str(value: Any, *, path: str) -> str:
    if not isinstance(value, str):
        raise DecodeError(path, value, "expected string for")
    return value


def parse_bool(value: Any, *, path: str, default: bool = False) -> bool:
    if value is None:
        return default
    if not isinstance(value, bool):
        raise DecodeError(path, value, "expected boolean for")
    return value


def parse_uuid(value: Any, *, path: str) -> UUID:
    if isinstance(value, UUID):
        return value
    if not isinstance(value, str):
        raise DecodeError(path, value, "expected uuid for")
    try:
        return UUID(value)
    except ValueError as exc:
        raise DecodeError(path, value, "invalid uuid") from exc


def parse_enum(enum_type: type[EnumT], value: Any, *, path: str) -> EnumT:
    """Strictly map a wire name onto ``enum_type``; unknown names fail."""
    try:
        return enum_type(value)
    except ValueError as exc:
        raise DecodeError(path, value, f"unknown {enum_type.__name__} for") from exc


def parse_decimal(value: Any, *, path: str) -> Decimal:
    """Decode a JSON string or number into an exact decimal."""
    if isinstance(value, bool):
        raise DecodeError(path, value, "expected decimal for")
    if isinstance(value, Decimal):
        parsed = value
    elif isinstance(value, int):
        parsed = Decimal(value)
    elif isinstance(value, float):
        # repr() is the shortest text that round-trips, so no binary noise.
        parsed = Decimal(repr(value))
    elif isinstance(value, str):
        # Decimal() also takes digit separators and padding; JSON text does not.
        if "_" in value or value != value.strip():
            raise DecodeError(path, value, "invalid decimal")
        try:
            parsed = Decimal(value)
        except InvalidOperation as exc:
            raise DecodeError(path, value, "invalid decimal") from exc
    else:
        raise DecodeError(path, value, "expected decimal for")
    if not parsed.is_finite():
        raise DecodeError(path, value, "non-finite decimal")
    return parsed


def parse_optional_decimal(value: Any, *, path: str) -> Decimal | None:
    if value is None or value == "":
        return None
    return parse_decimal(value, path=path)


def parse_optional_time(value: Any, *, path: str) -> datetime | None:
    """Decode an optional ISO-8601 timestamp.

    ``None`` and the empty string both mean "absent". Anything else must be
    a date-time carrying an explicit UTC offset; ``Z`` is accepted and
    sub-microsecond digits are truncated.
    """
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise DecodeError(path, value, "expected timestamp for")
    try:
        parsed = datetime.fromisoformat(_truncate_fraction(value.strip()))
    except ValueError as exc:
        raise DecodeError(path, value, "invalid timestamp") from exc
    if parsed.tzinfo is None or parsed.utcoffset() is None:
        raise DecodeError(path, value, "timestamp without offset")
    return parsed


def _truncate_fraction(text: str) -> str:
    # Broker timestamps may carry nanoseconds; datetime stops at micros.
    dot = text.find(".")
    if dot < 0:
        return text
    end = dot + 1
    while end < len(text) and text[end].isdigit():
        end += 1
    digits = text[dot + 1 : end]
    if len(digits) <= 6:
        return text
    return f"{text[:dot + 1]}{digits[:6]}{text[end:]}"


def parse_object(value: Any, *, path: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise DecodeError(path, value, "expected object for")
    return value
