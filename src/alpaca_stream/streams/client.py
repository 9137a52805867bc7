"""Multiplexed websocket client for the account and trade update streams."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import weakref
from collections.abc import AsyncIterator
from decimal import Decimal
from types import TracebackType
from typing import TYPE_CHECKING, Any, Generic

import websockets
from websockets.exceptions import ConnectionClosed, ConnectionClosedError, WebSocketException

from alpaca_stream.errors import (
    AuthenticationError,
    ClientError,
    DecodeError,
    SubscriptionError,
    TransportError,
)
from alpaca_stream.streams.base import EventStream, EventT, StreamType, tag_for

if TYPE_CHECKING:
    from alpaca_stream.config import ApiInfo

logger = logging.getLogger(__name__)

_CLOSED = object()
_STREAM_NAMES = frozenset(stream.value for stream in StreamType)


class Subscription(Generic[EventT]):
    """Consumer handle on one demultiplexed stream.

    Iterating yields, in wire order, either a decoded event or the
    ``DecodeError`` raised for that frame. Iteration stops when the
    connection closes; a lost connection is raised as ``TransportError``.

    The client only holds subscriptions weakly: one that is dropped without
    ``aclose()`` is released once it is garbage collected.
    """

    def __init__(self, client: StreamClient, tag: type[EventStream[EventT]]) -> None:
        self.tag = tag
        self._client = client
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._finished = False
        self._closed = False
        self._finalizer: weakref.finalize | None = None

    @property
    def stream(self) -> StreamType:
        return self.tag.stream

    def __aiter__(self) -> Subscription[EventT]:
        return self

    async def __anext__(self) -> EventT | DecodeError:
        if self._finished:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            self._finished = True
            raise StopAsyncIteration
        if isinstance(item, TransportError):
            self._finished = True
            raise item
        return item

    async def events(self) -> AsyncIterator[EventT]:
        """Yield decoded events only, logging frames that failed to decode."""
        async for item in self:
            if isinstance(item, DecodeError):
                logger.warning("Skipping undecodable %s frame: %s", self.stream, item)
                continue
            yield item

    async def aclose(self) -> None:
        """Stop receiving; the stream is dropped once no subscriber remains."""
        if self._closed:
            return
        self._closed = True
        self._detach()
        self._deliver(_CLOSED)
        await self._client._unsubscribe(self)

    async def __aenter__(self) -> Subscription[EventT]:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    def _deliver(self, item: Any) -> None:
        self._queue.put_nowait(item)

    def _detach(self) -> None:
        if self._finalizer is not None:
            self._finalizer.detach()
            self._finalizer = None


class StreamClient:
    """Owns one authenticated websocket shared by all subscriptions."""

    def __init__(self, api_info: ApiInfo) -> None:
        self.api_info = api_info
        self._ws: Any = None
        self._reader: asyncio.Task[None] | None = None
        self._lock = asyncio.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._subscribers: dict[StreamType, weakref.WeakSet[Subscription[Any]]] = {}
        self._listening: set[StreamType] = set()
        self._listen_ack: asyncio.Future[list[str]] | None = None
        self._releases: set[asyncio.Task[None]] = set()

    @property
    def connected(self) -> bool:
        return self._ws is not None

    @property
    def listening(self) -> frozenset[StreamType]:
        return frozenset(self._listening)

    async def subscribe(self, tag: type[EventStream[EventT]]) -> Subscription[EventT]:
        """Subscribe to the stream bound to ``tag``.

        Connects and authenticates on first use. Raises
        ``AuthenticationError`` when the credentials are rejected.
        """
        async with self._lock:
            await self._ensure_connected()
            subscription: Subscription[EventT] = Subscription(self, tag)
            self._subscribers.setdefault(tag.stream, weakref.WeakSet()).add(subscription)
            if tag.stream not in self._listening:
                try:
                    await self._listen(self._active_streams())
                    if tag.stream not in self._listening:
                        raise SubscriptionError(f"stream '{tag.stream}' was not acknowledged")
                except BaseException:
                    # Also covers a caller cancelling while the ack is pending.
                    self._remove(subscription)
                    raise
                logger.info("Subscribed to %s", tag.stream)
            subscription._finalizer = weakref.finalize(subscription, self._abandoned, tag.stream)
            return subscription

    async def close(self) -> None:
        """Close the connection and end every subscription."""
        async with self._lock:
            await self._shutdown()

    async def __aenter__(self) -> StreamClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def _ensure_connected(self) -> None:
        if self._ws is not None:
            return
        url = self.api_info.stream_url
        logger.info("Connecting to %s", url)
        try:
            ws = await websockets.connect(url)
        except (OSError, WebSocketException) as exc:
            raise TransportError(f"unable to connect to {url}: {exc}") from exc
        try:
            await self._authenticate(ws)
        except BaseException:
            await ws.close()
            raise
        self._ws = ws
        self._loop = asyncio.get_running_loop()
        self._reader = asyncio.create_task(self._read_frames(ws), name="alpaca-stream-reader")

    async def _authenticate(self, ws: Any) -> None:
        await self._send(
            ws,
            {
                "action": "authenticate",
                "data": {"key_id": self.api_info.key_id, "secret_key": self.api_info.secret},
            },
        )
        try:
            raw = await ws.recv()
        except ConnectionClosed as exc:
            raise TransportError(f"connection closed during authentication: {exc}") from exc
        try:
            frame = _load_frame(raw)
        except ValueError as exc:
            raise TransportError(f"unexpected authentication response: {exc}") from exc
        data = frame.get("data")
        if not isinstance(data, dict):
            data = {}
        if frame.get("stream") != "authorization" or data.get("status") != "authorized":
            logger.warning("Stream authentication rejected (status=%s)", data.get("status"))
            raise AuthenticationError()
        logger.info("Stream authenticated")

    async def _listen(self, streams: set[StreamType]) -> None:
        if self._ws is None:
            raise TransportError("stream connection closed")
        self._listen_ack = asyncio.get_running_loop().create_future()
        try:
            await self._send(
                self._ws,
                {"action": "listen", "data": {"streams": sorted(str(s) for s in streams)}},
            )
            acknowledged = await self._listen_ack
        finally:
            self._listen_ack = None
        self._listening = {
            StreamType(name) for name in acknowledged if name in _STREAM_NAMES
        }
        logger.info("Listening to %s", ", ".join(sorted(self._listening)) or "nothing")

    async def _unsubscribe(self, subscription: Subscription[Any]) -> None:
        async with self._lock:
            self._remove(subscription)
            await self._release_stream(subscription.stream)

    def _abandoned(self, stream: StreamType) -> None:
        """Finalizer for a subscription collected without ``aclose()``."""
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self._schedule_release, stream)

    def _schedule_release(self, stream: StreamType) -> None:
        task = asyncio.create_task(self._release_abandoned(stream))
        self._releases.add(task)
        task.add_done_callback(self._releases.discard)

    async def _release_abandoned(self, stream: StreamType) -> None:
        async with self._lock:
            if self._ws is None:
                return
            logger.info("Releasing abandoned %s subscription", stream)
            await self._release_stream(stream)

    async def _release_stream(self, stream: StreamType) -> None:
        # Caller holds the lock.
        active = self._active_streams()
        if not active:
            await self._shutdown()
            return
        if stream in active or stream not in self._listening or self._ws is None:
            return
        try:
            await self._listen(active)
        except ClientError as exc:
            logger.warning("Failed to stop listening to %s: %s", stream, exc)

    def _active_streams(self) -> set[StreamType]:
        return {stream for stream, subscribers in self._subscribers.items() if subscribers}

    def _remove(self, subscription: Subscription[Any]) -> None:
        subscribers = self._subscribers.get(subscription.stream)
        if subscribers is not None:
            subscribers.discard(subscription)
        for stream in [stream for stream, subs in self._subscribers.items() if not subs]:
            del self._subscribers[stream]

    async def _shutdown(self) -> None:
        ws, reader = self._ws, self._reader
        self._ws = None
        self._reader = None
        if reader is not None:
            reader.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await reader
        if ws is not None:
            await ws.close()
            logger.info("Stream connection closed")
        self._finish(None)

    async def _send(self, ws: Any, message: dict[str, Any]) -> None:
        try:
            await ws.send(json.dumps(message))
        except ConnectionClosed as exc:
            raise TransportError(f"unable to send '{message['action']}': {exc}") from exc

    async def _read_frames(self, ws: Any) -> None:
        error: TransportError | None = None
        try:
            async for message in ws:
                self._dispatch(message)
        except (ConnectionClosedError, OSError) as exc:
            logger.warning("Stream connection lost: %s", exc)
            error = TransportError(f"stream connection lost: {exc}")
        except Exception as exc:
            logger.exception("Stream reader failed")
            error = TransportError(f"stream reader failed: {exc}")
            await ws.close()
        if self._ws is ws:
            self._ws = None
            self._reader = None
        self._finish(error)

    def _finish(self, error: TransportError | None) -> None:
        if self._listen_ack is not None and not self._listen_ack.done():
            self._listen_ack.set_exception(error or TransportError("stream connection closed"))
        for subscribers in self._subscribers.values():
            for subscription in list(subscribers):
                subscription._detach()
                if error is not None:
                    subscription._deliver(error)
                subscription._deliver(_CLOSED)
        self._subscribers.clear()
        self._listening.clear()

    def _dispatch(self, message: str | bytes) -> None:
        try:
            frame = _load_frame(message)
        except (ValueError, RecursionError) as exc:
            logger.warning("Dropping malformed frame: %s", exc)
            return
        stream = frame.get("stream")
        data = frame.get("data")
        if stream == "listening":
            streams = data.get("streams") if isinstance(data, dict) else None
            if self._listen_ack is not None and not self._listen_ack.done():
                self._listen_ack.set_result(streams if isinstance(streams, list) else [])
            return
        if stream == "authorization":
            logger.debug("Ignoring late authorization frame")
            return
        try:
            tag = tag_for(stream)
        except KeyError:
            logger.warning("Dropping frame for unknown stream %r", stream)
            return
        subscribers = self._subscribers.get(tag.stream)
        if not subscribers:
            logger.debug("No subscriber for %s frame", tag.stream)
            return
        try:
            item = tag.decode(data)
        except DecodeError as exc:
            logger.warning("Failed to decode %s frame: %s", tag.stream, exc)
            item = exc
        for subscription in list(subscribers):
            subscription._deliver(item)


def _load_frame(message: str | bytes) -> dict[str, Any]:
    """Parse a JSON frame, keeping every number exact."""
    if isinstance(message, bytes):
        message = message.decode("utf-8")
    frame = json.loads(message, parse_float=Decimal)
    if not isinstance(frame, dict):
        raise ValueError(f"expected JSON object frame, got {type(frame).__name__}")
    return frame
