"""Data layer: payload models, validation and the demo dataset."""

from .demo import demo_group_payloads
from .models import (
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
    PayloadModel,
    SessionDraft,
    StudySession,
    coerce_identifier,
    compose_module_name,
    split_module_name,
)
from .validation import PayloadValidator, ValidationIssue

__all__ = [
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
    "PayloadModel",
    "SessionDraft",
    "StudySession",
    "coerce_identifier",
    "compose_module_name",
    "split_module_name",
    "demo_group_payloads",
    "PayloadValidator",
    "ValidationIssue",
]
