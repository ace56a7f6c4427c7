from __future__ import annotations

import asyncio
import time
import uuid
from collections import deque
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Awaitable, Callable, Iterable, Mapping

from groupsync.services.base import EventHook
from groupsync.utils import get_logger


logger = get_logger(__name__)


class InvalidationSignal(StrEnum):
    GROUPS_INVALIDATE = "groups:invalidate"
    GROUP_JOINED = "group:joined"
    GROUP_LEFT = "group:left"
    GROUP_INVITES_CHANGED = "group.invites.changed"
    SESSION_CREATED = "session:created"
    SESSIONS_INVALIDATE = "sessions:invalidate"


GROUP_RESYNC_SIGNALS: frozenset[InvalidationSignal] = frozenset(
    {
        InvalidationSignal.GROUPS_INVALIDATE,
        InvalidationSignal.GROUP_JOINED,
        InvalidationSignal.GROUP_LEFT,
        InvalidationSignal.GROUP_INVITES_CHANGED,
        InvalidationSignal.SESSION_CREATED,
    }
)


@dataclass(frozen=True, slots=True)
class InvalidationMessage:
    """Fire-and-forget notice that cached state may be stale.

    ``detail`` is informational only; receivers refetch instead of applying it.
    """

    signal: InvalidationSignal
    message_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    origin: str = ""
    detail: Mapping[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)


MessageCallback = Callable[[InvalidationMessage], None]


class WindowEventTarget:
    """Same-window custom-event dispatch."""

    def __init__(self) -> None:
        self._hooks: dict[str, EventHook[InvalidationMessage]] = {}

    def add_listener(self, signal: str, callback: MessageCallback) -> Callable[[], None]:
        hook = self._hooks.setdefault(str(signal), EventHook())
        return hook.subscribe(callback)

    def dispatch(self, message: InvalidationMessage) -> None:
        hook = self._hooks.get(str(message.signal))
        if hook is not None:
            hook.emit(message)

    def listener_count(self, signal: str) -> int:
        hook = self._hooks.get(str(signal))
        return len(hook) if hook is not None else 0


class BroadcastChannel:
    """Named cross-tab channel; a message never reaches the instance that posted it."""

    def __init__(self, name: str, hub: "BroadcastHub") -> None:
        self.name = name
        self._hub = hub
        self._hook: EventHook[InvalidationMessage] = EventHook()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def post_message(self, message: InvalidationMessage) -> None:
        if self._closed:
            raise RuntimeError(f"Broadcast channel {self.name!r} is closed")
        self._hub.deliver(self, message)

    def on_message(self, callback: MessageCallback) -> Callable[[], None]:
        return self._hook.subscribe(callback)

    def receive(self, message: InvalidationMessage) -> None:
        if not self._closed:
            self._hook.emit(message)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._hub.detach(self)


class BroadcastHub:
    """Routes channel messages between every open channel sharing a name."""

    def __init__(self) -> None:
        self._channels: dict[str, list[BroadcastChannel]] = {}

    def open(self, name: str) -> BroadcastChannel:
        channel = BroadcastChannel(name, self)
        self._channels.setdefault(name, []).append(channel)
        return channel

    def deliver(self, sender: BroadcastChannel, message: InvalidationMessage) -> None:
        for channel in list(self._channels.get(sender.name, ())):
            if channel is sender:
                continue
            channel.receive(message)

    def detach(self, channel: BroadcastChannel) -> None:
        peers = self._channels.get(channel.name)
        if not peers:
            return
        try:
            peers.remove(channel)
        except ValueError:  # pragma: no cover - already detached
            pass
        if not peers:
            self._channels.pop(channel.name, None)

    def open_count(self, name: str) -> int:
        return len(self._channels.get(name, ()))


class InvalidationBus:
    """Publishes and receives invalidation signals on both transports.

    Each bus represents one view; ``origin`` tags everything it publishes.
    """

    def __init__(
        self,
        window: WindowEventTarget,
        hub: BroadcastHub,
        channel_name: str,
        *,
        origin: str | None = None,
    ) -> None:
        self.origin = origin or uuid.uuid4().hex
        self._window = window
        self._channel = hub.open(channel_name)

    @property
    def window(self) -> WindowEventTarget:
        return self._window

    @property
    def channel(self) -> BroadcastChannel:
        return self._channel

    def publish(
        self,
        signal: InvalidationSignal,
        detail: Mapping[str, Any] | None = None,
    ) -> InvalidationMessage:
        message = InvalidationMessage(
            signal=signal,
            origin=self.origin,
            detail=dict(detail or {}),
        )
        logger.debug(
            "Publishing invalidation signal",
            signal=str(signal),
            message_id=message.message_id,
        )
        self._window.dispatch(message)
        if not self._channel.closed:
            self._channel.post_message(message)
        return message

    def subscribe(
        self,
        callback: MessageCallback,
        signals: Iterable[InvalidationSignal] = GROUP_RESYNC_SIGNALS,
    ) -> Callable[[], None]:
        wanted = frozenset(signals)
        unsubscribers = [
            self._window.add_listener(signal, callback) for signal in wanted
        ]

        def on_channel(message: InvalidationMessage) -> None:
            if message.signal in wanted:
                callback(message)

        unsubscribers.append(self._channel.on_message(on_channel))

        def unsubscribe() -> None:
            while unsubscribers:
                unsubscribers.pop()()

        return unsubscribe

    def close(self) -> None:
        self._channel.close()


class InvalidationAdapter:
    """Funnels invalidation signals from both transports into one resync call.

    Signals published by the owning bus are ignored, repeated deliveries of
    one message are dropped, and signals arriving while a resync runs are
    coalesced into a single follow-up resync.
    """

    def __init__(
        self,
        bus: InvalidationBus,
        resync: Callable[[], Awaitable[object]],
        *,
        signals: Iterable[InvalidationSignal] = GROUP_RESYNC_SIGNALS,
        dedupe_window: int = 256,
    ) -> None:
        self._bus = bus
        self._resync = resync
        self._signals = frozenset(signals)
        self._seen: deque[str] = deque(maxlen=max(dedupe_window, 1))
        self._seen_set: set[str] = set()
        self._unsubscribe: Callable[[], None] | None = None
        self._task: asyncio.Task[None] | None = None
        self._pending = False
        self.triggered = 0

    @property
    def attached(self) -> bool:
        return self._unsubscribe is not None

    def attach(self) -> None:
        if self._unsubscribe is not None:
            return
        self._unsubscribe = self._bus.subscribe(self._on_message, self._signals)
        logger.debug("Invalidation adapter attached", origin=self._bus.origin)

    def detach(self) -> None:
        if self._unsubscribe is None:
            return
        self._unsubscribe()
        self._unsubscribe = None
        self._pending = False
        logger.debug("Invalidation adapter detached", origin=self._bus.origin)

    def request_resync(self) -> None:
        if self._task is not None and not self._task.done():
            self._pending = True
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("Invalidation received outside an event loop; resync skipped")
            return
        self._task = loop.create_task(self._run())

    async def drain(self) -> None:
        """Wait until every requested resync has finished."""
        while self._task is not None and not self._task.done():
            await self._task

    def _on_message(self, message: InvalidationMessage) -> None:
        if message.origin and message.origin == self._bus.origin:
            return
        if message.message_id in self._seen_set:
            logger.debug("Duplicate invalidation dropped", message_id=message.message_id)
            return
        if len(self._seen) == self._seen.maxlen:
            self._seen_set.discard(self._seen[0])
        self._seen.append(message.message_id)
        self._seen_set.add(message.message_id)
        logger.info(
            "Invalidation received",
            signal=str(message.signal),
            origin=message.origin or None,
        )
        self.request_resync()

    async def _run(self) -> None:
        while True:
            self._pending = False
            self.triggered += 1
            try:
                await self._resync()
            except Exception:  # noqa: BLE001
                logger.exception("Resync after invalidation failed")
            if not self._pending or not self.attached:
                break


__all__ = [
    "BroadcastChannel",
    "BroadcastHub",
    "GROUP_RESYNC_SIGNALS",
    "InvalidationAdapter",
    "InvalidationBus",
    "InvalidationMessage",
    "InvalidationSignal",
    "WindowEventTarget",
]
