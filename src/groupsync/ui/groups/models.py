from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from groupsync.data import GroupView
from groupsync.services import MutationKind


OWNER_BADGE = "Owner"
DEMO_BANNER = "(demo data)"


class CardAction(StrEnum):
    JOIN = "join"
    LEAVE = "leave"
    INVITE = "invite"
    DELETE = "delete"
    EDIT = "edit"
    SCHEDULE = "schedule"
    ACCEPT_INVITE = "accept_invite"
    DECLINE_INVITE = "decline_invite"


OWNER_ACTIONS: tuple[CardAction, ...] = (
    CardAction.INVITE,
    CardAction.DELETE,
    CardAction.EDIT,
    CardAction.SCHEDULE,
)

_PRIMARY_LABELS = {
    CardAction.JOIN: ("Join Group", "Joining…"),
    CardAction.LEAVE: ("Leave Group", "Leaving…"),
}


def _primary_action(in_flight: MutationKind | None) -> CardAction | None:
    if in_flight is None:
        return None
    for action in _PRIMARY_LABELS:
        if action.value == in_flight.value:
            return action
    return None


def group_type_label(group_type: str | None) -> str:
    return (group_type or "study").replace("_", " ").upper()


def member_text(group: GroupView) -> str:
    return f"{group.display_member_count}/{group.max_members} members"


@dataclass(slots=True)
class PrimaryControl:
    action: CardAction
    label: str
    enabled: bool


@dataclass(slots=True)
class GroupCard:
    """Everything a group card renders, derived from one ``GroupView``."""

    local_id: int
    name: str
    description: str
    type_label: str
    member_text: str
    module_name: str | None
    creator_name: str | None
    badge: str | None
    is_owner: bool
    is_member: bool
    invited: bool
    primary: PrimaryControl | None
    owner_actions: tuple[CardAction, ...]

    @classmethod
    def from_view(
        cls,
        group: GroupView,
        *,
        is_owner: bool,
        is_member: bool,
        in_flight: MutationKind | None = None,
    ) -> "GroupCard":
        primary: PrimaryControl | None = None
        if not is_owner:
            # Membership flips optimistically, so the pending action names the control.
            pending = _primary_action(in_flight)
            action = pending or (CardAction.LEAVE if is_member else CardAction.JOIN)
            idle, busy = _PRIMARY_LABELS[action]
            primary = PrimaryControl(
                action=action,
                label=busy if pending is not None else idle,
                enabled=in_flight is None,
            )
        return cls(
            local_id=group.local_id,
            name=group.name,
            description=group.description,
            type_label=group_type_label(group.group_type),
            member_text=member_text(group),
            module_name=group.module_name,
            creator_name=group.creator_name,
            badge=OWNER_BADGE if is_owner else None,
            is_owner=is_owner,
            is_member=is_member,
            invited=bool(group.invited_hint) and not is_member,
            primary=primary,
            owner_actions=OWNER_ACTIONS if is_owner else (),
        )


__all__ = [
    "CardAction",
    "DEMO_BANNER",
    "GroupCard",
    "OWNER_ACTIONS",
    "OWNER_BADGE",
    "PrimaryControl",
    "group_type_label",
    "member_text",
]
