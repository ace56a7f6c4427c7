from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from groupsync.data.models import GroupPayload, GroupView, compose_module_name
from groupsync.reconcile.identity import IdentityMapper
from groupsync.reconcile.ownership import OwnerRecord

UNTITLED_GROUP = "Untitled group"


class GroupNormalizer:
    """Fold rich, legacy and locally-built payloads into ``GroupView``.

    Normalizing registers the group's identity and refreshes its owner record.
    """

    def __init__(
        self,
        identity: IdentityMapper,
        owners: OwnerRecord,
        *,
        fallback_max_members: int = 10,
    ) -> None:
        self._identity = identity
        self._owners = owners
        self._fallback_max_members = fallback_max_members

    def normalize(
        self,
        payload: GroupPayload | dict[str, Any],
        *,
        now: datetime | None = None,
    ) -> GroupView:
        raw = payload if isinstance(payload, GroupPayload) else GroupPayload.from_payload(payload)
        stamp = now or datetime.now(UTC)

        local_id = self._identity.to_local_id(raw, seed_timestamp=stamp.isoformat())
        backend_id = raw.backend_id
        creator_id = raw.created_by or ""
        self._owners.record(backend_id, creator_id)

        active = raw.active_members
        if active is not None:
            member_count: int | None = len(active)
        else:
            member_count = raw.member_count

        created_at = raw.created_at or stamp
        updated_at = raw.updated_at or created_at

        return GroupView(
            local_id=local_id,
            backend_id=backend_id,
            name=raw.name or UNTITLED_GROUP,
            description=raw.description or "",
            max_members=raw.max_members or self._fallback_max_members,
            group_type=raw.group_type or "study",
            is_active=True if raw.is_active is None else raw.is_active,
            created_at=created_at,
            updated_at=updated_at,
            member_count=member_count,
            owner_hint=raw.owner_hint,
            invited_hint=raw.invited_hint,
            creator_id=creator_id,
            creator_name=raw.created_by_name,
            members=tuple(raw.members) if raw.members is not None else None,
            module_name=compose_module_name(raw.course, raw.course_code) or raw.module_name,
            is_public=raw.is_public,
        )


def inline_membership(group: GroupView, viewer_id: str | None) -> bool | None:
    """Membership implied by an inline member list, or ``None`` when absent."""

    viewer = str(viewer_id or "").strip()
    if not viewer or group.members is None:
        return None
    return any(
        member.is_active and member.user_id == viewer for member in group.members
    )


__all__ = ["GroupNormalizer", "inline_membership", "UNTITLED_GROUP"]
