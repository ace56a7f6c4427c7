from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum

from groupsync.backend.interface import GroupBackend
from groupsync.data import GroupMemberEntry, PayloadValidator
from groupsync.services.base import EventHook
from groupsync.utils import (
    ErrorDescriptor,
    ErrorKind,
    classify_error,
    describe_exception,
    get_logger,
)


logger = get_logger(__name__)


class RosterState(StrEnum):
    NOT_LOADED = "not_loaded"
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


@dataclass(slots=True)
class RosterEntry:
    state: RosterState
    members: list[GroupMemberEntry] = field(default_factory=list)
    error: ErrorDescriptor | None = None
    error_kind: ErrorKind | None = None
    loaded_at: datetime | None = None


@dataclass(slots=True)
class RosterEvent:
    backend_id: str
    state: RosterState


class MemberRosterCache:
    """Lazily loaded member lists for groups whose roster is expanded.

    Fetch errors are classified and kept on the group's entry instead of
    being raised, so one failing roster never affects the rest of the list.
    """

    def __init__(self, backend: GroupBackend) -> None:
        self._backend = backend
        self._entries: dict[str, RosterEntry] = {}
        self._expanded: set[str] = set()
        self._generation: dict[str, int] = {}
        self._validator = PayloadValidator("group_members")
        self.changed: EventHook[RosterEvent] = EventHook()

    # ----------------------------------------------------------------- Queries

    def state(self, backend_id: str) -> RosterState:
        entry = self._entries.get(backend_id)
        return entry.state if entry is not None else RosterState.NOT_LOADED

    def entry(self, backend_id: str) -> RosterEntry | None:
        return self._entries.get(backend_id)

    def members(self, backend_id: str) -> list[GroupMemberEntry] | None:
        entry = self._entries.get(backend_id)
        if entry is None or entry.state is not RosterState.LOADED:
            return None
        return list(entry.members)

    def error(self, backend_id: str) -> ErrorDescriptor | None:
        entry = self._entries.get(backend_id)
        return entry.error if entry is not None else None

    def is_expanded(self, backend_id: str) -> bool:
        return backend_id in self._expanded

    # ----------------------------------------------------------------- Actions

    async def expand(self, backend_id: str) -> RosterEntry:
        self._expanded.add(backend_id)
        if self.state(backend_id) in {RosterState.NOT_LOADED, RosterState.ERROR}:
            await self.load_members(backend_id)
        # forget() or clear() may have dropped the entry while the fetch was pending.
        return self._entries.get(backend_id) or RosterEntry(state=RosterState.NOT_LOADED)

    def collapse(self, backend_id: str) -> None:
        self._expanded.discard(backend_id)

    async def load_members(self, backend_id: str) -> list[GroupMemberEntry]:
        current = self._entries.get(backend_id)
        if current is not None and current.state in {
            RosterState.LOADED,
            RosterState.LOADING,
        }:
            return list(current.members)

        generation = self._generation.get(backend_id, 0) + 1
        self._generation[backend_id] = generation
        self._set(backend_id, RosterEntry(state=RosterState.LOADING))

        try:
            raw = await self._backend.list_members(backend_id)
        except Exception as exc:  # noqa: BLE001
            if self._generation.get(backend_id) != generation:
                return []
            kind = classify_error(exc)
            logger.warning(
                "Failed to load group members",
                backend_id=backend_id,
                kind=kind.value,
                error=str(exc),
            )
            self._set(
                backend_id,
                RosterEntry(
                    state=RosterState.ERROR,
                    error=describe_exception(exc),
                    error_kind=kind,
                ),
            )
            return []

        if self._generation.get(backend_id) != generation:
            return []
        members = self._validator.parse_many(GroupMemberEntry, raw or [])
        self._set(
            backend_id,
            RosterEntry(
                state=RosterState.LOADED,
                members=members,
                loaded_at=datetime.now(UTC),
            ),
        )
        logger.debug("Loaded group members", backend_id=backend_id, count=len(members))
        return list(members)

    async def invalidate(self, backend_id: str) -> None:
        """Drop a roster; reload it straight away if it is still expanded."""

        if not backend_id:
            return
        self._generation[backend_id] = self._generation.get(backend_id, 0) + 1
        dropped = self._entries.pop(backend_id, None)
        if dropped is not None:
            self.changed.emit(RosterEvent(backend_id, RosterState.NOT_LOADED))
        if backend_id in self._expanded:
            await self.load_members(backend_id)

    def forget(self, backend_id: str) -> None:
        self._generation[backend_id] = self._generation.get(backend_id, 0) + 1
        self._entries.pop(backend_id, None)
        self._expanded.discard(backend_id)

    def clear(self) -> None:
        for backend_id in list(self._generation):
            self._generation[backend_id] += 1
        self._entries.clear()
        self._expanded.clear()

    def _set(self, backend_id: str, entry: RosterEntry) -> None:
        self._entries[backend_id] = entry
        self.changed.emit(RosterEvent(backend_id, entry.state))


__all__ = ["MemberRosterCache", "RosterEntry", "RosterEvent", "RosterState"]
