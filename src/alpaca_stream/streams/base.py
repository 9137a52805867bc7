"""Stream tag contract binding a wire stream to its message type."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from typing import Any, ClassVar, Generic, Protocol, Self, TypeVar


class StreamType(StrEnum):
    """Stream identifiers used in listen frames and inbound routing."""

    ACCOUNT_UPDATES = "account_updates"
    TRADE_UPDATES = "trade_updates"


class Decodable(Protocol):
    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> Self: ...


EventT = TypeVar("EventT", bound=Decodable)

_REGISTRY: dict[StreamType, type[EventStream[Any]]] = {}


class EventStream(Generic[EventT]):
    """Base class for stream tags.

    A tag is never instantiated. Subclasses set ``stream`` and ``event`` and
    are registered on definition, one tag per ``StreamType``.
    """

    stream: ClassVar[StreamType]
    event: ClassVar[type[Any]]

    def __new__(cls, *args: object, **kwargs: object) -> Self:
        raise TypeError(f"{cls.__name__} is a stream tag and cannot be instantiated")

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        stream = getattr(cls, "stream", None)
        if stream is None:
            raise TypeError(f"{cls.__name__} must declare a stream")
        if not isinstance(getattr(cls, "event", None), type):
            raise TypeError(f"{cls.__name__} must declare an event type")
        existing = _REGISTRY.get(stream)
        if existing is not None:
            raise ValueError(
                f"stream '{stream}' is already bound to {existing.__name__}"
            )
        _REGISTRY[stream] = cls

    @classmethod
    def decode(cls, payload: Mapping[str, Any]) -> EventT:
        """Decode one frame's ``data`` object into this stream's event type."""
        return cls.event.from_dict(payload)


def tag_for(stream: StreamType | str) -> type[EventStream[Any]]:
    """Return the tag bound to ``stream``."""
    try:
        return _REGISTRY[StreamType(stream)]
    except (KeyError, ValueError) as exc:
        raise KeyError(f"no stream tag bound to '{stream}'") from exc


def registered_streams() -> dict[StreamType, type[EventStream[Any]]]:
    return dict(_REGISTRY)
