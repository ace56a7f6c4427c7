from __future__ import annotations

from groupsync.data.models import GroupView


class OwnerRecord:
    """``backend_id -> creator id``, refreshed on every normalization pass."""

    def __init__(self) -> None:
        self._owners: dict[str, str] = {}

    def record(self, backend_id: str, creator_id: str | None) -> None:
        if not backend_id or not creator_id:
            return
        self._owners[backend_id] = str(creator_id)

    def get(self, backend_id: str) -> str | None:
        if not backend_id:
            return None
        return self._owners.get(backend_id)

    def snapshot(self) -> dict[str, str]:
        return dict(self._owners)

    def clear(self) -> None:
        self._owners.clear()


class OwnershipResolver:
    """Decide whether the viewer controls a group.

    Signals are checked in priority order and the first definite answer
    wins: the explicit owner flag on the group, the owner record, the raw
    creator field, then an owner/admin entry for the viewer in the inline
    member list.
    """

    def __init__(self, owners: OwnerRecord) -> None:
        self._owners = owners

    def is_owner(self, group: GroupView, viewer_id: str | None) -> bool:
        viewer = str(viewer_id or "").strip()
        if not viewer:
            return False

        if group.owner_hint is not None:
            return group.owner_hint

        recorded = self._owners.get(group.backend_id)
        if recorded:
            return recorded == viewer

        if group.creator_id:
            return group.creator_id == viewer

        for member in group.members or ():
            if not member.is_active:
                continue
            if member.user_id == viewer and member.controls_group:
                return True
        return False


__all__ = ["OwnerRecord", "OwnershipResolver"]
