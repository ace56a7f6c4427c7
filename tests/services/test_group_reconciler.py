from __future__ import annotations

import asyncio
from typing import Any

import httpx
import pytest

from groupsync.data import GroupDraft
from groupsync.services import (
    BroadcastHub,
    InvalidationBus,
    InvalidationSignal,
    RefreshEvent,
    ServiceErrorEvent,
    WindowEventTarget,
)

from tests.factories import (
    by_name,
    example_catalog,
    make_group_payload,
    make_legacy_payload,
    make_member,
    make_reconciler,
    make_settings,
)
from tests.stubs import FakeGroupBackend, IdentityAwareBackend


async def settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_resync_renders_catalog_with_ownership_and_membership(
    backend: FakeGroupBackend, window: WindowEventTarget, hub: BroadcastHub
) -> None:
    reconciler, _ = make_reconciler(backend, window=window, hub=hub)
    refreshed: list[RefreshEvent] = []
    reconciler.refreshed.subscribe(refreshed.append)

    groups = await reconciler.resync()

    group_a = by_name(groups, "Group A")
    group_b = by_name(groups, "Group B")
    assert (group_a.member_count, group_a.max_members) == (1, 8)
    assert (group_b.member_count, group_b.max_members) == (2, 5)
    assert reconciler.is_owner(group_a) is True
    assert reconciler.is_owner(group_b) is False
    assert reconciler.is_member(group_a) is True
    assert reconciler.is_member(group_b) is False
    assert refreshed and refreshed[-1].demo_mode is False
    assert reconciler.backend_id_for(group_b.local_id) == "B"


@pytest.mark.asyncio
async def test_membership_follows_joined_subset_over_inline_members(
    window: WindowEventTarget, hub: BroadcastHub
) -> None:
    backend = FakeGroupBackend(
        groups=[
            make_group_payload("listed", members=[make_member("2", role="admin")]),
            make_group_payload(
                "stale", members=[make_member("2", role="admin"), make_member("1")]
            ),
        ],
        joined={"listed"},
    )
    reconciler, _ = make_reconciler(backend, window=window, hub=hub)

    groups = await reconciler.resync()

    assert reconciler.is_member(by_name(groups, "Group listed")) is True
    assert reconciler.is_member(by_name(groups, "Group stale")) is False


@pytest.mark.asyncio
async def test_joined_fetch_failure_keeps_known_membership(
    window: WindowEventTarget, hub: BroadcastHub
) -> None:
    backend = FakeGroupBackend(groups=example_catalog(), joined={"B"})
    reconciler, _ = make_reconciler(backend, window=window, hub=hub)
    await reconciler.resync()
    group_b = by_name(reconciler.groups, "Group B")
    assert reconciler.is_member(group_b) is True

    backend.fail("list_my_groups", httpx.ConnectError("flaky"))
    backend.joined.clear()
    await reconciler.resync()

    assert reconciler.is_member(group_b.local_id) is True
    assert reconciler.demo_mode is False


@pytest.mark.asyncio
async def test_joined_groups_missing_from_catalog_are_rendered(
    window: WindowEventTarget, hub: BroadcastHub
) -> None:
    class PartialCatalogBackend(FakeGroupBackend):
        async def list_all_groups(self) -> list[dict[str, Any]]:
            groups = await super().list_all_groups()
            return [group for group in groups if group["id"] != "private"]

    backend = PartialCatalogBackend(
        groups=[*example_catalog(), make_group_payload("private", name="Private")],
        joined={"private"},
    )
    reconciler, _ = make_reconciler(backend, window=window, hub=hub)

    groups = await reconciler.resync()

    private = by_name(groups, "Private")
    assert reconciler.is_member(private) is True
    assert len(groups) == 3


@pytest.mark.asyncio
async def test_invalid_payloads_are_skipped(
    backend: FakeGroupBackend, window: WindowEventTarget, hub: BroadcastHub
) -> None:
    backend.add_group({"id": "broken", "name": "Broken", "maxMembers": "plenty"})
    reconciler, _ = make_reconciler(backend, window=window, hub=hub)

    groups = await reconciler.resync()

    assert sorted(group.name for group in groups) == ["Group A", "Group B"]


@pytest.mark.asyncio
async def test_mixed_shapes_with_overlapping_native_ids_all_render(
    window: WindowEventTarget, hub: BroadcastHub
) -> None:
    backend = FakeGroupBackend(
        groups=[
            make_group_payload("x", group_id=3),
            make_group_payload("y", group_id=3),
            make_legacy_payload(4, name="Legacy"),
        ],
    )
    reconciler, _ = make_reconciler(backend, window=window, hub=hub)

    groups = await reconciler.resync()

    assert sorted(group.name for group in groups) == ["Group x", "Group y", "Legacy"]
    assert len({group.local_id for group in groups}) == 3
    assert reconciler.backend_id_for(by_name(groups, "Legacy").local_id) == ""


@pytest.mark.asyncio
async def test_catalog_failure_enters_demo_mode(
    backend: FakeGroupBackend, window: WindowEventTarget, hub: BroadcastHub
) -> None:
    backend.fail("list_all_groups", httpx.ConnectError("offline"))
    reconciler, _ = make_reconciler(backend, window=window, hub=hub)
    refreshed: list[RefreshEvent] = []
    errors: list[ServiceErrorEvent] = []
    reconciler.refreshed.subscribe(refreshed.append)
    reconciler.errors.subscribe(errors.append)

    groups = await reconciler.resync()

    assert reconciler.demo_mode is True
    assert len(groups) == 4
    assert all(not group.is_persisted for group in groups)
    assert reconciler.is_owner(by_name(groups, "CS Advanced Study Group")) is True
    assert refreshed[-1].demo_mode is True
    assert errors and errors[-1].action == "resync"
    assert backend.count("list_my_groups") == 0


@pytest.mark.asyncio
async def test_catalog_failure_after_sync_keeps_last_list(
    backend: FakeGroupBackend, window: WindowEventTarget, hub: BroadcastHub
) -> None:
    reconciler, _ = make_reconciler(backend, window=window, hub=hub)
    await reconciler.resync()

    backend.fail("list_all_groups", httpx.ConnectError("offline"))
    groups = await reconciler.resync()

    assert reconciler.demo_mode is True
    assert sorted(group.name for group in groups) == ["Group A", "Group B"]

    backend.recover("list_all_groups")
    await reconciler.resync()
    assert reconciler.demo_mode is False


@pytest.mark.asyncio
async def test_recovery_replaces_demo_dataset(
    backend: FakeGroupBackend, window: WindowEventTarget, hub: BroadcastHub
) -> None:
    backend.fail("list_all_groups", httpx.ConnectError("offline"))
    reconciler, _ = make_reconciler(backend, window=window, hub=hub)
    await reconciler.resync()

    backend.recover("list_all_groups")
    groups = await reconciler.resync()

    assert reconciler.demo_mode is False
    assert sorted(group.name for group in groups) == ["Group A", "Group B"]


@pytest.mark.asyncio
async def test_groups_invalidate_while_idle_triggers_exactly_one_resync(
    backend: FakeGroupBackend, window: WindowEventTarget, hub: BroadcastHub
) -> None:
    reconciler, _ = make_reconciler(backend, window=window, hub=hub)
    await reconciler.start()
    other_view = InvalidationBus(window, hub, "studybuddy-events")
    before = backend.count("list_all_groups")
    backend.add_group(make_group_payload("C", name="Group C"))

    other_view.publish(InvalidationSignal.GROUPS_INVALIDATE, {"type": "group.created"})
    await reconciler.adapter.drain()

    assert backend.count("list_all_groups") == before + 1
    assert by_name(reconciler.groups, "Group C").backend_id == "C"


@pytest.mark.asyncio
async def test_cross_tab_signal_reaches_other_reconciler(
    backend: FakeGroupBackend, hub: BroadcastHub
) -> None:
    first, _ = make_reconciler(backend, window=WindowEventTarget(), hub=hub)
    second, _ = make_reconciler(backend, window=WindowEventTarget(), hub=hub)
    await first.start()
    await second.start()
    group_b = by_name(first.groups, "Group B")
    before = backend.count("list_all_groups")

    assert await first.join(group_b.local_id) is True
    await second.adapter.drain()

    assert backend.count("list_all_groups") == before + 2
    assert second.is_member(by_name(second.groups, "Group B")) is True


@pytest.mark.asyncio
async def test_own_signals_do_not_trigger_extra_resync(
    backend: FakeGroupBackend, window: WindowEventTarget, hub: BroadcastHub
) -> None:
    reconciler, _ = make_reconciler(backend, window=window, hub=hub)
    await reconciler.start()
    group_b = by_name(reconciler.groups, "Group B")

    await reconciler.join(group_b.local_id)
    await reconciler.adapter.drain()

    assert backend.count("list_all_groups") == 2
    assert reconciler.adapter.triggered == 0


@pytest.mark.asyncio
async def test_close_drops_late_resync_result(
    backend: FakeGroupBackend, window: WindowEventTarget, hub: BroadcastHub
) -> None:
    reconciler, _ = make_reconciler(backend, window=window, hub=hub)
    refreshed: list[RefreshEvent] = []
    reconciler.refreshed.subscribe(refreshed.append)
    backend.hold("list_all_groups")

    pending = asyncio.create_task(reconciler.resync())
    await settle()
    reconciler.close()
    backend.release("list_all_groups")

    assert await pending == []
    assert reconciler.groups == []
    assert refreshed == []
    assert reconciler.adapter.attached is False
    assert hub.open_count("studybuddy-events") == 0


@pytest.mark.asyncio
async def test_start_resolves_viewer_from_backend(
    window: WindowEventTarget, hub: BroadcastHub
) -> None:
    backend = IdentityAwareBackend(groups=example_catalog(), viewer_id="2")
    reconciler, _ = make_reconciler(
        backend, settings=make_settings(viewer_id=""), window=window, hub=hub
    )

    await reconciler.start()

    assert reconciler.viewer_id == "2"
    assert reconciler.is_owner(by_name(reconciler.groups, "Group B")) is True


@pytest.mark.asyncio
async def test_start_falls_back_to_anonymous_viewer(
    backend: FakeGroupBackend, window: WindowEventTarget, hub: BroadcastHub
) -> None:
    reconciler, _ = make_reconciler(
        backend, settings=make_settings(viewer_id=""), window=window, hub=hub
    )

    await reconciler.start()

    assert reconciler.viewer_id == "1"


@pytest.mark.asyncio
async def test_local_only_groups_survive_resync(
    backend: FakeGroupBackend, window: WindowEventTarget, hub: BroadcastHub
) -> None:
    reconciler, _ = make_reconciler(backend, window=window, hub=hub)
    await reconciler.resync()
    backend.fail("create_group")

    local = await reconciler.create(GroupDraft(name="Offline"))
    groups = await reconciler.resync()

    assert groups[0].local_id == local.local_id
    assert reconciler.is_member(local.local_id) is True
    assert reconciler.is_owner(local.local_id) is True
