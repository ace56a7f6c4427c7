"""Domain models for study groups and their sessions."""

from .common import PayloadModel, coerce_identifier
from .group import (
    CONTROLLING_ROLES,
    GroupDraft,
    GroupInvite,
    GroupMemberEntry,
    GroupNotice,
    GroupPatch,
    GroupPayload,
    GroupType,
    GroupView,
    MemberRole,
    compose_module_name,
    split_module_name,
)
from .session import SessionDraft, StudySession

__all__ = [
    "PayloadModel",
    "coerce_identifier",
    "CONTROLLING_ROLES",
    "GroupDraft",
    "GroupInvite",
    "GroupMemberEntry",
    "GroupNotice",
    "GroupPatch",
    "GroupPayload",
    "GroupType",
    "GroupView",
    "MemberRole",
    "compose_module_name",
    "split_module_name",
    "SessionDraft",
    "StudySession",
]
