from __future__ import annotations

from collections.abc import Callable, Iterable

from groupsync.data import (
    GroupDraft,
    GroupInvite,
    GroupMemberEntry,
    GroupPatch,
    GroupView,
    SessionDraft,
    StudySession,
)
from groupsync.services import (
    GroupMutationEvent,
    GroupReconciler,
    MemberRosterCache,
    MutationKind,
    RosterEntry,
    RosterEvent,
    ServiceErrorEvent,
    ServiceRegistry,
    SessionScheduler,
)
from groupsync.utils import get_logger

from .models import DEMO_BANNER, GroupCard


logger = get_logger(__name__)


class GroupController:
    """Bridge between the groups view and the service layer.

    Actions are refused while another action on the same group is in flight,
    which is how the view keeps a control from being submitted twice.
    """

    def __init__(self, services: ServiceRegistry) -> None:
        self._services = services
        self._service: GroupReconciler | None = services.groups
        self._rosters: MemberRosterCache | None = services.rosters
        self._sessions: SessionScheduler | None = services.sessions
        self._subscriptions: list[Callable[[], None]] = []
        self._disposed = False

    def register_callbacks(
        self,
        *,
        refreshed: Callable[[list[GroupCard], bool], None] | None = None,
        error: Callable[[ServiceErrorEvent], None] | None = None,
        mutation: Callable[[GroupMutationEvent], None] | None = None,
        roster: Callable[[RosterEvent], None] | None = None,
    ) -> None:
        if self._service is None:
            return
        if refreshed is not None:
            self._subscriptions.append(
                self._service.refreshed.subscribe(
                    lambda event: refreshed(self.cards(), event.demo_mode),
                ),
            )
        if error is not None:
            self._subscriptions.append(self._service.errors.subscribe(error))
            if self._sessions is not None:
                self._subscriptions.append(self._sessions.errors.subscribe(error))
        if mutation is not None:
            self._subscriptions.append(self._service.mutations.subscribe(mutation))
        if roster is not None and self._rosters is not None:
            self._subscriptions.append(self._rosters.changed.subscribe(roster))

    def dispose(self) -> None:
        while self._subscriptions:
            unsubscribe = self._subscriptions.pop()
            try:
                unsubscribe()
            except Exception:  # pragma: no cover - best effort cleanup
                pass
        if self._service is not None and not self._disposed:
            self._service.close()
        self._disposed = True

    async def aclose(self) -> None:
        """Dispose and release the backend held by the service registry."""

        self.dispose()
        await self._services.aclose()

    # ----------------------------------------------------------------- Queries

    @property
    def demo_banner(self) -> str | None:
        if self._service is None or not self._service.demo_mode:
            return None
        return DEMO_BANNER

    def groups(self) -> list[GroupView]:
        if self._service is None:
            return []
        return self._service.groups

    def cards(self) -> list[GroupCard]:
        if self._service is None:
            return []
        return [self.card_for(group) for group in self._service.groups]

    def card_for(self, group: GroupView) -> GroupCard:
        service = self._require_service()
        return GroupCard.from_view(
            group,
            is_owner=service.is_owner(group),
            is_member=service.is_member(group),
            in_flight=service.in_flight_kind(group.local_id),
        )

    def card(self, local_id: int) -> GroupCard | None:
        if self._service is None:
            return None
        group = self._service.group(local_id)
        return self.card_for(group) if group is not None else None

    def is_busy(self, local_id: int) -> bool:
        if self._service is None:
            return False
        return self._service.is_in_flight(local_id)

    def roster(self, local_id: int) -> RosterEntry | None:
        if self._service is None or self._rosters is None:
            return None
        backend_id = self._service.backend_id_for(local_id)
        return self._rosters.entry(backend_id) if backend_id else None

    # ----------------------------------------------------------------- Actions

    async def start(self) -> list[GroupCard]:
        await self._require_service().start()
        return self.cards()

    async def refresh(self) -> list[GroupCard]:
        await self._require_service().resync()
        return self.cards()

    async def join(self, local_id: int) -> bool:
        if self._refuse(local_id, MutationKind.JOIN):
            return False
        return await self._require_service().join(local_id)

    async def leave(self, local_id: int) -> bool:
        if self._refuse(local_id, MutationKind.LEAVE):
            return False
        return await self._require_service().leave(local_id)

    async def delete(self, local_id: int) -> bool:
        service = self._require_service()
        if self._refuse(local_id, MutationKind.DELETE):
            return False
        if not service.is_owner(local_id):
            logger.warning("Delete refused; viewer does not own the group", local_id=local_id)
            return False
        return await service.delete(local_id)

    async def create(self, draft: GroupDraft) -> GroupView:
        return await self._require_service().create(draft)

    async def update(self, local_id: int, patch: GroupPatch) -> bool:
        if self._refuse(local_id, MutationKind.UPDATE):
            return False
        return await self._require_service().update(local_id, patch)

    async def accept_invite(self, local_id: int) -> bool:
        if self._refuse(local_id, MutationKind.ACCEPT_INVITE):
            return False
        return await self._require_service().accept_invite(local_id)

    async def decline_invite(self, local_id: int) -> bool:
        if self._refuse(local_id, MutationKind.DECLINE_INVITE):
            return False
        return await self._require_service().decline_invite(local_id)

    async def invite(self, local_id: int, user_ids: Iterable[str]) -> bool:
        if self._refuse(local_id, MutationKind.INVITE):
            return False
        return await self._require_service().invite_members(local_id, user_ids)

    async def pending_invites(self, local_id: int) -> list[GroupInvite]:
        return await self._require_service().pending_invites(local_id)

    async def schedule_session(self, local_id: int, draft: SessionDraft) -> StudySession:
        if self._sessions is None:
            raise RuntimeError("Session scheduler not configured")
        group = self._require_service().group(local_id)
        if group is None:
            raise KeyError(local_id)
        return await self._sessions.schedule(group, draft)

    async def expand_roster(self, local_id: int) -> list[GroupMemberEntry]:
        backend_id = self._roster_key(local_id)
        if backend_id is None:
            return []
        entry = await self._rosters.expand(backend_id)  # type: ignore[union-attr]
        return list(entry.members)

    def collapse_roster(self, local_id: int) -> None:
        backend_id = self._roster_key(local_id)
        if backend_id is not None:
            self._rosters.collapse(backend_id)  # type: ignore[union-attr]

    # ----------------------------------------------------------------- Helpers

    def _require_service(self) -> GroupReconciler:
        if self._service is None:
            raise RuntimeError("Group service not configured")
        return self._service

    def _refuse(self, local_id: int, kind: MutationKind) -> bool:
        if not self._require_service().is_in_flight(local_id):
            return False
        logger.debug(
            "Action ignored while another is in flight",
            action=kind.value,
            local_id=local_id,
        )
        return True

    def _roster_key(self, local_id: int) -> str | None:
        if self._rosters is None:
            raise RuntimeError("Member roster cache not configured")
        backend_id = self._require_service().backend_id_for(local_id)
        return backend_id or None


__all__ = ["GroupController"]
