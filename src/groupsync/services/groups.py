from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Awaitable, Callable, Iterable

from pydantic import ValidationError

from groupsync.backend.errors import MutationFailedError
from groupsync.backend.interface import (
    GroupBackend,
    SupportsCurrentUser,
    SupportsInviteResponses,
)
from groupsync.config import Settings
from groupsync.data import (
    GroupDraft,
    GroupInvite,
    GroupNotice,
    GroupPatch,
    GroupPayload,
    GroupView,
    MemberRole,
    PayloadValidator,
    coerce_identifier,
    demo_group_payloads,
)
from groupsync.reconcile import (
    GroupNormalizer,
    GroupState,
    OwnershipResolver,
    inline_membership,
)
from groupsync.services.base import (
    EventHook,
    MutationStatus,
    RefreshEvent,
    ServiceErrorEvent,
    run_optimistic_mutation,
)
from groupsync.services.invalidation import (
    InvalidationAdapter,
    InvalidationBus,
    InvalidationSignal,
)
from groupsync.services.members import MemberRosterCache
from groupsync.utils import get_logger


logger = get_logger(__name__)

ANONYMOUS_VIEWER = "1"


class MutationKind(StrEnum):
    JOIN = "join"
    LEAVE = "leave"
    DELETE = "delete"
    CREATE = "create"
    UPDATE = "update"
    INVITE = "invite"
    ACCEPT_INVITE = "accept_invite"
    DECLINE_INVITE = "decline_invite"


@dataclass(slots=True)
class GroupMutationEvent:
    action: MutationKind
    status: MutationStatus
    local_id: int | None
    backend_id: str
    error: BaseException | None = None


class GroupReconciler:
    """Keep the rendered group list consistent with the group service.

    Mutations are applied optimistically, confirmed remotely and then either
    reconciled through a full resync or rolled back. Invalidation signals
    from other views and tabs only ever trigger ``resync``.
    """

    def __init__(
        self,
        backend: GroupBackend,
        bus: InvalidationBus,
        settings: Settings,
        *,
        state: GroupState | None = None,
        roster: MemberRosterCache | None = None,
    ) -> None:
        self._backend = backend
        self._bus = bus
        self._settings = settings
        self._state = state or GroupState()
        self._roster = roster or MemberRosterCache(backend)
        self._normalizer = GroupNormalizer(
            self._state.identity,
            self._state.owners,
            fallback_max_members=settings.fallback_max_members,
        )
        self._resolver = OwnershipResolver(self._state.owners)
        self._validator = PayloadValidator("groups")
        self._invite_validator = PayloadValidator("group_invites")
        self._adapter = InvalidationAdapter(
            bus,
            self.resync,
            dedupe_window=settings.signal_dedupe_window,
        )
        self._in_flight: set[tuple[int, MutationKind]] = set()
        self._closed = False
        self.viewer_id = settings.viewer_id

        self.refreshed: EventHook[RefreshEvent[list[GroupView]]] = EventHook()
        self.mutations: EventHook[GroupMutationEvent] = EventHook()
        self.errors: EventHook[ServiceErrorEvent] = EventHook()

    # ---------------------------------------------------------------- Queries

    @property
    def state(self) -> GroupState:
        return self._state

    @property
    def roster(self) -> MemberRosterCache:
        return self._roster

    @property
    def adapter(self) -> InvalidationAdapter:
        return self._adapter

    @property
    def groups(self) -> list[GroupView]:
        return list(self._state.groups)

    @property
    def demo_mode(self) -> bool:
        return self._state.demo_mode

    @property
    def closed(self) -> bool:
        return self._closed

    def group(self, local_id: int) -> GroupView | None:
        found = self._state.find(local_id)
        return found[1] if found is not None else None

    def backend_id_for(self, local_id: int) -> str:
        mapped = self._state.identity.backend_id_for(local_id)
        if mapped:
            return mapped
        group = self.group(local_id)
        return group.backend_id if group is not None else ""

    def is_owner(self, group: GroupView | int) -> bool:
        view = self.group(group) if isinstance(group, int) else group
        if view is None:
            return False
        return self._resolver.is_owner(view, self.viewer_id)

    def is_member(self, group: GroupView | int) -> bool:
        view = self.group(group) if isinstance(group, int) else group
        if view is None:
            return False
        return self._state.membership.is_member(view.key)

    def is_in_flight(self, local_id: int, kind: MutationKind | None = None) -> bool:
        if kind is not None:
            return (local_id, kind) in self._in_flight
        return any(entry[0] == local_id for entry in self._in_flight)

    def in_flight_kind(self, local_id: int) -> MutationKind | None:
        for entry_id, kind in self._in_flight:
            if entry_id == local_id:
                return kind
        return None

    # -------------------------------------------------------------- Lifecycle

    async def start(self) -> list[GroupView]:
        """Subscribe to invalidation signals and perform the initial resync."""

        self._adapter.attach()
        if not self.viewer_id:
            await self.resolve_viewer()
        return await self.resync()

    async def resolve_viewer(self) -> str:
        if self.viewer_id:
            return self.viewer_id
        viewer = ""
        if isinstance(self._backend, SupportsCurrentUser):
            try:
                me = await self._backend.current_user()
            except Exception as exc:  # noqa: BLE001
                logger.warning("Unable to resolve current user", error=str(exc))
            else:
                viewer = coerce_identifier(me.get("user_id", me.get("id"))) or ""
        self.viewer_id = viewer or ANONYMOUS_VIEWER
        logger.debug("Viewer resolved", viewer_id=self.viewer_id)
        return self.viewer_id

    def close(self) -> None:
        """Tear down listeners and tables; late network results are dropped."""

        if self._closed:
            return
        self._closed = True
        self._adapter.detach()
        self._bus.close()
        self._roster.clear()
        self._state.clear()
        self._in_flight.clear()
        logger.debug("Group reconciler closed")

    # ----------------------------------------------------------------- Resync

    async def resync(self) -> list[GroupView]:
        """Re-fetch the authoritative list and rebuild every derived table."""

        if self._closed:
            return []
        try:
            catalog = await self._backend.list_all_groups()
        except Exception as exc:  # noqa: BLE001
            if self._closed:
                return []
            return self._enter_demo_mode(exc)

        joined_ids: set[str] | None
        joined: list[dict[str, Any]] = []
        try:
            joined = list(await self._backend.list_my_groups() or [])
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Joined-group fetch failed; keeping known membership",
                error=str(exc),
            )
            joined_ids = None
        else:
            joined_ids = {
                identifier
                for identifier in (
                    coerce_identifier(item.get("id")) if isinstance(item, dict) else None
                    for item in joined
                )
                if identifier
            }

        if self._closed:
            logger.debug("Resync result dropped after teardown")
            return []

        self._apply_catalog(list(catalog or []), joined, joined_ids)
        return self.groups

    def _apply_catalog(
        self,
        catalog: list[Any],
        joined: list[dict[str, Any]],
        joined_ids: set[str] | None,
    ) -> None:
        self._validator.reset()
        now = datetime.now(UTC)
        views: list[GroupView] = []
        seen: set[int] = set()

        catalog_ids = {
            coerce_identifier(item.get("id")) for item in catalog if isinstance(item, dict)
        }
        extra = [
            item
            for item in joined
            if isinstance(item, dict) and coerce_identifier(item.get("id")) not in catalog_ids
        ]

        for payload in self._validator.parse_many(GroupPayload, [*catalog, *extra]):
            view = self._normalizer.normalize(payload, now=now)
            if view.local_id in seen:
                continue
            seen.add(view.local_id)
            views.append(view)

        retained = [
            view for view in self._state.local_only.values() if view.local_id not in seen
        ]
        views = retained + views

        prior = self._state.membership.snapshot()
        entries = {
            view.key: self._derive_membership(view, joined_ids, prior) for view in views
        }

        self._state.groups = views
        self._state.membership.replace(entries)
        self._state.demo_mode = False
        self._state.synced = True

        invalid = len(self._validator.issues())
        if invalid:
            logger.warning("Resync skipped invalid group payloads", invalid=invalid)
        logger.info(
            "Groups resynced",
            count=len(views),
            joined=len(joined_ids) if joined_ids is not None else None,
        )
        self.refreshed.emit(RefreshEvent(items=self.groups, demo_mode=False))

    def _derive_membership(
        self,
        view: GroupView,
        joined_ids: set[str] | None,
        prior: dict[str, bool],
    ) -> bool:
        if self._resolver.is_owner(view, self.viewer_id):
            return True
        if joined_ids is not None and view.is_persisted:
            return view.backend_id in joined_ids
        known = prior.get(view.key)
        if known is not None:
            return known
        return bool(inline_membership(view, self.viewer_id))

    def _enter_demo_mode(self, exc: BaseException) -> list[GroupView]:
        logger.warning("Group catalog unavailable; showing demo data", error=str(exc))
        self._state.demo_mode = True
        if not self._state.groups:
            now = datetime.now(UTC)
            views = list(self._state.local_only.values())
            seen = {view.local_id for view in views}
            for payload in demo_group_payloads(now):
                view = self._normalizer.normalize(payload, now=now)
                if view.local_id not in seen:
                    seen.add(view.local_id)
                    views.append(view)
            prior = self._state.membership.snapshot()
            self._state.groups = views
            self._state.membership.replace(
                {view.key: self._derive_membership(view, None, prior) for view in views}
            )
        self.refreshed.emit(RefreshEvent(items=self.groups, demo_mode=True))
        self.errors.emit(ServiceErrorEvent(action="resync", error=exc))
        return self.groups

    # -------------------------------------------------------------- Mutations

    async def join(self, local_id: int) -> bool:
        view = self._require(local_id, MutationKind.JOIN)
        if view is None:
            return False
        backend_id = self.backend_id_for(local_id)
        key = view.key
        prior_count = view.member_count
        prior_member = self._state.membership.get(key)

        def apply() -> None:
            self._patch(local_id, member_count=(prior_count or 0) + 1)
            self._state.membership.set(key, True)

        def rollback() -> None:
            self._patch(local_id, member_count=prior_count)
            self._state.membership.set(key, bool(prior_member))

        async def reconcile(_: object) -> None:
            await self.resync()
            # The joined-groups listing can lag behind a successful join.
            self._state.membership.set(key, True)
            await self._roster.invalidate(backend_id)
            self._bus.publish(InvalidationSignal.GROUP_JOINED, {"groupId": backend_id})

        return await self._execute(
            MutationKind.JOIN,
            local_id,
            backend_id,
            apply=apply,
            rollback=rollback,
            operation=lambda: self._backend.join_group(backend_id),
            on_success=reconcile,
        )

    async def leave(self, local_id: int) -> bool:
        view = self._require(local_id, MutationKind.LEAVE)
        if view is None:
            return False
        backend_id = self.backend_id_for(local_id)
        key = view.key
        prior_count = view.member_count
        prior_member = self._state.membership.get(key)

        def apply() -> None:
            self._patch(local_id, member_count=max((prior_count or 0) - 1, 0))
            self._state.membership.set(key, False)

        def rollback() -> None:
            self._patch(local_id, member_count=prior_count)
            self._state.membership.set(key, True if prior_member is None else prior_member)

        async def reconcile(_: object) -> None:
            await self.resync()
            await self._roster.invalidate(backend_id)
            self._bus.publish(InvalidationSignal.GROUP_LEFT, {"groupId": backend_id})

        return await self._execute(
            MutationKind.LEAVE,
            local_id,
            backend_id,
            apply=apply,
            rollback=rollback,
            operation=lambda: self._backend.leave_group(backend_id),
            on_success=reconcile,
        )

    async def delete(self, local_id: int) -> bool:
        found = self._state.find(local_id)
        if found is None:
            logger.warning("Delete requested for unknown group", local_id=local_id)
            return False
        index, removed = found
        backend_id = self.backend_id_for(local_id)

        def apply() -> None:
            self._state.groups = [
                group for group in self._state.groups if group.local_id != local_id
            ]

        def rollback() -> None:
            if self._state.find(local_id) is not None:
                return
            position = min(index, len(self._state.groups))
            self._state.groups.insert(position, removed)

        async def operation() -> bool:
            await self._notify_quietly(
                backend_id,
                GroupNotice(
                    title="Group deleted",
                    message=f'"{removed.name}" was deleted by its owner.',
                    metadata={"groupId": backend_id, "type": "group_deleted"},
                ),
            )
            return await self._backend.delete_group(backend_id)

        async def reconcile(_: object) -> None:
            self._roster.forget(backend_id)
            self._state.membership.discard(removed.key)
            self._bus.publish(
                InvalidationSignal.GROUPS_INVALIDATE,
                {"type": "group.deleted", "groupId": backend_id},
            )
            await self.resync()

        def forget_local() -> None:
            self._state.local_only.pop(local_id, None)
            self._state.membership.discard(removed.key)

        return await self._execute(
            MutationKind.DELETE,
            local_id,
            backend_id,
            apply=apply,
            rollback=rollback,
            operation=operation,
            on_success=reconcile,
            on_local_success=forget_local,
        )

    async def create(self, draft: GroupDraft) -> GroupView:
        """Create a group remotely, falling back to a local-only entry on failure."""

        kind = MutationKind.CREATE
        flag = (0, kind)
        self._in_flight.add(flag)
        created: list[GroupView] = []

        async def operation() -> GroupView | None:
            entity = await self._backend.create_group(draft.to_payload())
            if not entity:
                return None
            try:
                view = self._normalizer.normalize(GroupPayload.from_payload(entity))
            except ValidationError:
                logger.warning("Created group payload failed validation")
                return None
            return view if view.is_persisted else None

        async def reconcile(view: GroupView | None) -> None:
            if view is None:
                raise MutationFailedError(MutationKind.CREATE.value)
            created.append(view)
            if self._closed:
                return
            backend_id = view.backend_id
            try:
                joined = await self._backend.join_group(backend_id)
            except Exception as exc:  # noqa: BLE001
                joined = False
                logger.warning("Auto-join after create failed", backend_id=backend_id, error=str(exc))
            if self.viewer_id and self._state.owners.get(backend_id) is None:
                self._state.owners.record(backend_id, self.viewer_id)
            view = view.model_copy(
                update={
                    "owner_hint": True,
                    "member_count": max(view.member_count or 0, 1),
                }
            )
            self._prepend(view)
            self._state.membership.set(view.key, True)
            created[0] = view
            self._bus.publish(
                InvalidationSignal.GROUPS_INVALIDATE,
                {"type": "group.created", "groupId": backend_id},
            )
            logger.info("Group created", backend_id=backend_id, auto_joined=bool(joined))
            await self.resync()

        try:
            await run_optimistic_mutation(
                emitter=self.mutations,
                event_builder=self._event_builder(kind, None, ""),
                operation=operation,
                on_success=reconcile,
                action=kind.value,
            )
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            if self._closed:
                raise
            logger.exception("Group create failed; keeping a local copy", name=draft.name)
            self.errors.emit(ServiceErrorEvent(action=kind.value, error=exc))
            return self._create_local(draft)
        finally:
            self._in_flight.discard(flag)

        view = created[0]
        return self.group(view.local_id) or view

    async def update(self, local_id: int, patch: GroupPatch) -> bool:
        view = self._require(local_id, MutationKind.UPDATE)
        if view is None:
            return False
        if not self.is_owner(view):
            logger.warning("Update refused; viewer does not own the group", local_id=local_id)
            return False
        if patch.is_empty():
            return True
        backend_id = self.backend_id_for(local_id)
        changes = patch.view_updates()

        def apply() -> None:
            self._patch(local_id, **changes)

        def rollback() -> None:
            self._patch(
                local_id,
                **{field_name: getattr(view, field_name) for field_name in changes},
            )

        async def reconcile(_: object) -> None:
            await self._notify_quietly(
                backend_id,
                GroupNotice(
                    title="Group updated",
                    message=f'"{changes.get("name", view.name)}" has new details.',
                    metadata={
                        "groupId": backend_id,
                        "type": "group_updated",
                        "changes": sorted(changes),
                    },
                ),
            )
            self._bus.publish(
                InvalidationSignal.GROUPS_INVALIDATE,
                {"type": "group.updated", "groupId": backend_id},
            )
            await self.resync()

        ok = await self._execute(
            MutationKind.UPDATE,
            local_id,
            backend_id,
            apply=apply,
            rollback=rollback,
            operation=lambda: self._backend.update_group(backend_id, patch.to_payload()),
            on_success=reconcile,
        )
        if not ok and backend_id and not self._closed:
            await self.resync()
        return ok

    async def accept_invite(self, local_id: int) -> bool:
        view = self._require(local_id, MutationKind.ACCEPT_INVITE)
        if view is None:
            return False
        backend_id = self.backend_id_for(local_id)
        if not backend_id or not isinstance(self._backend, SupportsInviteResponses):
            logger.info("Invite accept endpoint unavailable; joining instead", local_id=local_id)
            self._patch(local_id, invited_hint=False)
            ok = await self.join(local_id)
            if ok and backend_id:
                self._bus.publish(
                    InvalidationSignal.GROUP_INVITES_CHANGED,
                    {"groupId": backend_id, "status": "accepted"},
                )
            return ok

        backend = self._backend
        key = view.key

        def apply() -> None:
            self._patch(local_id, invited_hint=False)
            self._state.membership.set(key, True)

        async def reconcile(_: object) -> None:
            await self.resync()
            self._state.membership.set(key, True)
            await self._roster.invalidate(backend_id)
            self._bus.publish(
                InvalidationSignal.GROUP_INVITES_CHANGED,
                {"groupId": backend_id, "status": "accepted"},
            )

        return await self._execute(
            MutationKind.ACCEPT_INVITE,
            local_id,
            backend_id,
            apply=apply,
            rollback=None,
            operation=lambda: backend.accept_invite(backend_id),
            on_success=reconcile,
        )

    async def decline_invite(self, local_id: int) -> bool:
        view = self._require(local_id, MutationKind.DECLINE_INVITE)
        if view is None:
            return False
        backend_id = self.backend_id_for(local_id)
        if not backend_id or not isinstance(self._backend, SupportsInviteResponses):
            logger.info("Invite decline endpoint unavailable; clearing locally", local_id=local_id)
            self._patch(local_id, invited_hint=False)
            return True

        backend = self._backend

        async def reconcile(_: object) -> None:
            await self.resync()
            self._bus.publish(
                InvalidationSignal.GROUP_INVITES_CHANGED,
                {"groupId": backend_id, "status": "declined"},
            )

        return await self._execute(
            MutationKind.DECLINE_INVITE,
            local_id,
            backend_id,
            apply=lambda: self._patch(local_id, invited_hint=False),
            rollback=None,
            operation=lambda: backend.decline_invite(backend_id),
            on_success=reconcile,
        )

    async def invite_members(self, local_id: int, user_ids: Iterable[str]) -> bool:
        view = self._require(local_id, MutationKind.INVITE)
        if view is None:
            return False
        invitees = list(dict.fromkeys(str(user_id) for user_id in user_ids if user_id))
        if not invitees:
            return False
        backend_id = self.backend_id_for(local_id)

        async def reconcile(_: object) -> None:
            for user_id in invitees:
                try:
                    await self._backend.create_notification(
                        {
                            "userId": user_id,
                            "type": "group_invite",
                            "title": "Study group invitation",
                            "message": f'You have been invited to join "{view.name}".',
                            "metadata": {"groupId": backend_id},
                        }
                    )
                except Exception as exc:  # noqa: BLE001
                    logger.warning(
                        "Invite notification failed",
                        backend_id=backend_id,
                        user_id=user_id,
                        error=str(exc),
                    )
            self._bus.publish(
                InvalidationSignal.GROUP_INVITES_CHANGED,
                {"groupId": backend_id, "status": "sent", "count": len(invitees)},
            )

        return await self._execute(
            MutationKind.INVITE,
            local_id,
            backend_id,
            apply=None,
            rollback=None,
            operation=lambda: self._backend.invite_to_group(backend_id, invitees),
            on_success=reconcile,
        )

    async def pending_invites(self, local_id: int) -> list[GroupInvite]:
        backend_id = self.backend_id_for(local_id)
        if not backend_id:
            return []
        try:
            raw = await self._backend.list_pending_invites(backend_id)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to fetch pending invites", backend_id=backend_id, error=str(exc))
            self.errors.emit(
                ServiceErrorEvent(
                    action="pending_invites",
                    error=exc,
                    local_id=local_id,
                    backend_id=backend_id,
                )
            )
            return []
        self._invite_validator.reset()
        return self._invite_validator.parse_many(GroupInvite, raw or [])

    # --------------------------------------------------------------- Helpers

    async def _execute(
        self,
        kind: MutationKind,
        local_id: int,
        backend_id: str,
        *,
        apply: Callable[[], None] | None,
        rollback: Callable[[], None] | None,
        operation: Callable[[], Awaitable[Any]],
        on_success: Callable[[Any], Awaitable[None]],
        on_local_success: Callable[[], None] | None = None,
    ) -> bool:
        flag = (local_id, kind)
        self._in_flight.add(flag)

        if backend_id:
            remote = operation
            finalize = on_success
        else:
            # Groups that only exist client-side never touch the network.
            remote = self._simulate_local

            async def finalize(_: Any) -> None:
                if on_local_success is not None:
                    on_local_success()

        def guarded_rollback() -> None:
            if rollback is not None and not self._closed:
                rollback()

        async def guarded_finalize(result: Any) -> None:
            if self._closed:
                logger.debug("Mutation result dropped after teardown", action=kind.value)
                return
            await finalize(result)

        try:
            await run_optimistic_mutation(
                emitter=self.mutations,
                event_builder=self._event_builder(kind, local_id, backend_id),
                operation=remote,
                apply=apply,
                rollback=guarded_rollback,
                on_success=guarded_finalize,
                action=kind.value,
            )
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.exception(
                "Group mutation failed",
                action=kind.value,
                local_id=local_id,
                backend_id=backend_id,
            )
            self.errors.emit(
                ServiceErrorEvent(
                    action=kind.value,
                    error=exc,
                    local_id=local_id,
                    backend_id=backend_id,
                )
            )
            return False
        finally:
            self._in_flight.discard(flag)

        logger.info(
            "Group mutation completed",
            action=kind.value,
            local_id=local_id,
            backend_id=backend_id or None,
        )
        return True

    async def _simulate_local(self) -> bool:
        await asyncio.sleep(self._settings.local_operation_delay)
        return True

    def _event_builder(
        self,
        kind: MutationKind,
        local_id: int | None,
        backend_id: str,
    ) -> Callable[[MutationStatus, BaseException | None], GroupMutationEvent]:
        def build(
            status: MutationStatus, error: BaseException | None = None
        ) -> GroupMutationEvent:
            return GroupMutationEvent(
                action=kind,
                status=status,
                local_id=local_id,
                backend_id=backend_id,
                error=error,
            )

        return build

    def _require(self, local_id: int, kind: MutationKind) -> GroupView | None:
        view = self.group(local_id)
        if view is None:
            logger.warning(
                "Mutation requested for unknown group",
                action=kind.value,
                local_id=local_id,
            )
        return view

    def _patch(self, local_id: int, **updates: Any) -> GroupView | None:
        patched: GroupView | None = None
        found = self._state.find(local_id)
        if found is not None:
            index, current = found
            patched = current.model_copy(update=updates)
            self._state.groups[index] = patched
        local = self._state.local_only.get(local_id)
        if local is not None:
            self._state.local_only[local_id] = patched or local.model_copy(update=updates)
        return patched

    def _prepend(self, view: GroupView) -> None:
        self._state.groups = [view] + [
            group for group in self._state.groups if group.local_id != view.local_id
        ]

    def _create_local(self, draft: GroupDraft) -> GroupView:
        now = datetime.now(UTC)
        stamp = now.isoformat()
        viewer = self.viewer_id
        payload: dict[str, Any] = {
            "name": draft.name,
            "description": draft.description,
            "maxMembers": draft.max_members,
            "isPublic": draft.is_public,
            "course": draft.course,
            "courseCode": draft.course_code,
            "createdBy": viewer or None,
            "members": [
                {
                    "userId": viewer,
                    "role": MemberRole.ADMIN.value,
                    "status": "active",
                    "joinedAt": stamp,
                }
            ]
            if viewer
            else [],
            "createdAt": stamp,
            "lastActivity": stamp,
            "group_type": "study",
        }
        view = self._normalizer.normalize(payload, now=now)
        view = view.model_copy(
            update={"owner_hint": True, "member_count": max(view.member_count or 0, 1)}
        )
        self._state.local_only[view.local_id] = view
        self._prepend(view)
        self._state.membership.set(view.key, True)
        self._bus.publish(
            InvalidationSignal.GROUPS_INVALIDATE,
            {"type": "group.created", "localId": view.local_id},
        )
        return view

    async def _notify_quietly(self, backend_id: str, notice: GroupNotice) -> None:
        if not backend_id:
            return
        try:
            await self._backend.notify_group(backend_id, notice.to_payload())
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Group notification failed",
                backend_id=backend_id,
                title=notice.title,
                error=str(exc),
            )


__all__ = ["GroupReconciler", "GroupMutationEvent", "MutationKind"]
