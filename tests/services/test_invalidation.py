from __future__ import annotations

import asyncio

import pytest

from groupsync.services.invalidation import (
    BroadcastHub,
    InvalidationAdapter,
    InvalidationBus,
    InvalidationMessage,
    InvalidationSignal,
    WindowEventTarget,
)


CHANNEL = "studybuddy-events"


class _CountingResync:
    def __init__(self) -> None:
        self.calls = 0
        self.gate: asyncio.Event | None = None

    async def __call__(self) -> None:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()


def test_window_target_dispatches_by_signal(window: WindowEventTarget) -> None:
    received: list[InvalidationMessage] = []
    window.add_listener(InvalidationSignal.GROUP_JOINED, received.append)

    window.dispatch(InvalidationMessage(InvalidationSignal.GROUP_JOINED))
    window.dispatch(InvalidationMessage(InvalidationSignal.GROUP_LEFT))

    assert [message.signal for message in received] == [InvalidationSignal.GROUP_JOINED]
    assert window.listener_count(InvalidationSignal.GROUP_LEFT) == 0


def test_broadcast_channel_skips_sender(hub: BroadcastHub) -> None:
    sender = hub.open(CHANNEL)
    peer = hub.open(CHANNEL)
    other = hub.open("unrelated")
    sender_seen: list[InvalidationMessage] = []
    peer_seen: list[InvalidationMessage] = []
    other_seen: list[InvalidationMessage] = []
    sender.on_message(sender_seen.append)
    peer.on_message(peer_seen.append)
    other.on_message(other_seen.append)

    sender.post_message(InvalidationMessage(InvalidationSignal.GROUPS_INVALIDATE))

    assert sender_seen == []
    assert len(peer_seen) == 1
    assert other_seen == []


def test_closed_channel_refuses_posts_and_detaches(hub: BroadcastHub) -> None:
    channel = hub.open(CHANNEL)
    channel.close()

    with pytest.raises(RuntimeError):
        channel.post_message(InvalidationMessage(InvalidationSignal.GROUPS_INVALIDATE))
    assert hub.open_count(CHANNEL) == 0


def test_bus_publishes_on_both_transports(
    window: WindowEventTarget, hub: BroadcastHub
) -> None:
    publisher = InvalidationBus(window, hub, CHANNEL, origin="tab-a")
    other_tab = hub.open(CHANNEL)
    same_window: list[InvalidationMessage] = []
    cross_tab: list[InvalidationMessage] = []
    window.add_listener(InvalidationSignal.GROUP_LEFT, same_window.append)
    other_tab.on_message(cross_tab.append)

    message = publisher.publish(InvalidationSignal.GROUP_LEFT, {"groupId": "g-1"})

    assert same_window == [message]
    assert cross_tab == [message]
    assert message.origin == "tab-a"
    assert message.detail == {"groupId": "g-1"}


@pytest.mark.asyncio
async def test_adapter_resyncs_once_for_message_seen_on_both_transports(
    window: WindowEventTarget, hub: BroadcastHub
) -> None:
    listener_bus = InvalidationBus(window, hub, CHANNEL, origin="view-1")
    publisher = InvalidationBus(window, hub, CHANNEL, origin="view-2")
    resync = _CountingResync()
    adapter = InvalidationAdapter(listener_bus, resync)
    adapter.attach()

    publisher.publish(InvalidationSignal.GROUPS_INVALIDATE)
    await adapter.drain()

    assert resync.calls == 1
    assert adapter.triggered == 1


@pytest.mark.asyncio
async def test_adapter_ignores_its_own_signals(
    window: WindowEventTarget, hub: BroadcastHub
) -> None:
    bus = InvalidationBus(window, hub, CHANNEL)
    resync = _CountingResync()
    adapter = InvalidationAdapter(bus, resync)
    adapter.attach()

    bus.publish(InvalidationSignal.GROUP_JOINED)
    await adapter.drain()

    assert resync.calls == 0


@pytest.mark.asyncio
async def test_adapter_ignores_signals_outside_its_vocabulary(
    window: WindowEventTarget, hub: BroadcastHub
) -> None:
    listener_bus = InvalidationBus(window, hub, CHANNEL)
    publisher = InvalidationBus(window, hub, CHANNEL)
    resync = _CountingResync()
    adapter = InvalidationAdapter(listener_bus, resync)
    adapter.attach()

    publisher.publish(InvalidationSignal.SESSIONS_INVALIDATE)
    await adapter.drain()

    assert resync.calls == 0


@pytest.mark.asyncio
async def test_signals_during_a_running_resync_coalesce(
    window: WindowEventTarget, hub: BroadcastHub
) -> None:
    listener_bus = InvalidationBus(window, hub, CHANNEL)
    publisher = InvalidationBus(window, hub, CHANNEL)
    resync = _CountingResync()
    resync.gate = asyncio.Event()
    adapter = InvalidationAdapter(listener_bus, resync)
    adapter.attach()

    publisher.publish(InvalidationSignal.GROUPS_INVALIDATE)
    await asyncio.sleep(0)
    assert resync.calls == 1

    publisher.publish(InvalidationSignal.GROUP_JOINED)
    publisher.publish(InvalidationSignal.GROUP_LEFT)
    publisher.publish(InvalidationSignal.GROUPS_INVALIDATE)
    resync.gate.set()
    await adapter.drain()

    assert resync.calls == 2


@pytest.mark.asyncio
async def test_detach_removes_every_listener(
    window: WindowEventTarget, hub: BroadcastHub
) -> None:
    listener_bus = InvalidationBus(window, hub, CHANNEL)
    publisher = InvalidationBus(window, hub, CHANNEL)
    resync = _CountingResync()
    adapter = InvalidationAdapter(listener_bus, resync)
    adapter.attach()

    adapter.detach()
    publisher.publish(InvalidationSignal.GROUPS_INVALIDATE)
    await adapter.drain()

    assert resync.calls == 0
    assert adapter.attached is False
    assert window.listener_count(InvalidationSignal.GROUPS_INVALIDATE) == 0


@pytest.mark.asyncio
async def test_dedupe_window_is_bounded(
    window: WindowEventTarget, hub: BroadcastHub
) -> None:
    listener_bus = InvalidationBus(window, hub, CHANNEL)
    resync = _CountingResync()
    adapter = InvalidationAdapter(listener_bus, resync, dedupe_window=2)
    adapter.attach()
    first = InvalidationMessage(InvalidationSignal.GROUPS_INVALIDATE, origin="x")

    for message in (
        first,
        first,
        InvalidationMessage(InvalidationSignal.GROUPS_INVALIDATE, origin="x"),
        InvalidationMessage(InvalidationSignal.GROUPS_INVALIDATE, origin="x"),
        first,
    ):
        window.dispatch(message)
        await adapter.drain()

    assert resync.calls == 4


def test_request_outside_event_loop_is_skipped(
    window: WindowEventTarget, hub: BroadcastHub
) -> None:
    resync = _CountingResync()
    adapter = InvalidationAdapter(InvalidationBus(window, hub, CHANNEL), resync)

    adapter.request_resync()

    assert resync.calls == 0
