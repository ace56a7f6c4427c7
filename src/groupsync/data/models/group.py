from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import AliasChoices, Field, field_validator

from .common import PayloadModel, coerce_identifier


class GroupType(StrEnum):
    STUDY = "study"
    PROJECT = "project"
    EXAM_PREP = "exam_prep"
    DISCUSSION = "discussion"


class MemberRole(StrEnum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


CONTROLLING_ROLES = frozenset({MemberRole.OWNER.value, MemberRole.ADMIN.value})


class GroupMemberEntry(PayloadModel):
    """One roster entry, either inline on a group or from the members endpoint."""

    user_id: str | None = Field(
        default=None,
        alias="userId",
        validation_alias=AliasChoices("userId", "user_id", "id"),
    )
    role: str | None = None
    status: str | None = None
    display_name: str | None = Field(
        default=None,
        alias="name",
        validation_alias=AliasChoices("name", "displayName", "display_name"),
    )
    email: str | None = None
    joined_at: datetime | None = Field(
        default=None,
        alias="joinedAt",
        validation_alias=AliasChoices("joinedAt", "joined_at"),
    )

    @field_validator("user_id", mode="before")
    @classmethod
    def _coerce_user_id(cls, value: Any) -> str | None:
        return coerce_identifier(value)

    @property
    def is_active(self) -> bool:
        # Missing status predates the status field and counts as active.
        return not self.status or self.status == "active"

    @property
    def controls_group(self) -> bool:
        return (self.role or "").lower() in CONTROLLING_ROLES


class GroupPayload(PayloadModel):
    """Server-shaped group in either the rich or the legacy/local form."""

    id: str | None = None
    group_id: int | str | None = None
    name: str | None = Field(
        default=None,
        validation_alias=AliasChoices("name", "group_name"),
    )
    description: str | None = None
    max_members: int | None = Field(
        default=None,
        alias="maxMembers",
        validation_alias=AliasChoices("maxMembers", "max_members"),
    )
    is_public: bool | None = Field(
        default=None,
        alias="isPublic",
        validation_alias=AliasChoices("isPublic", "is_public"),
    )
    created_by: str | None = Field(
        default=None,
        alias="createdBy",
        validation_alias=AliasChoices("createdBy", "creator_id", "creatorId"),
    )
    created_by_name: str | None = Field(
        default=None,
        alias="createdByName",
        validation_alias=AliasChoices("createdByName", "creator_name"),
    )
    members: list[GroupMemberEntry] | None = None
    member_count: int | None = Field(
        default=None,
        validation_alias=AliasChoices("member_count", "memberCount"),
    )
    group_type: str | None = Field(
        default=None,
        validation_alias=AliasChoices("group_type", "groupType"),
    )
    is_active: bool | None = Field(
        default=None,
        validation_alias=AliasChoices("is_active", "isActive"),
    )
    created_at: datetime | None = Field(
        default=None,
        alias="createdAt",
        validation_alias=AliasChoices("createdAt", "created_at"),
    )
    updated_at: datetime | None = Field(
        default=None,
        alias="lastActivity",
        validation_alias=AliasChoices("lastActivity", "updatedAt", "updated_at"),
    )
    course: str | None = None
    course_code: str | None = Field(
        default=None,
        alias="courseCode",
        validation_alias=AliasChoices("courseCode", "course_code"),
    )
    module_name: str | None = None
    owner_hint: bool | None = Field(
        default=None,
        alias="isOwner",
        validation_alias=AliasChoices("isOwner", "is_owner"),
    )
    invited_hint: bool | None = Field(
        default=None,
        alias="isInvited",
        validation_alias=AliasChoices("isInvited", "is_invited", "invited"),
    )

    @field_validator("id", "created_by", mode="before")
    @classmethod
    def _coerce_ids(cls, value: Any) -> str | None:
        return coerce_identifier(value)

    @property
    def native_local_id(self) -> int | None:
        """Numeric id carried by legacy payloads, usable as a local key as-is."""
        if isinstance(self.group_id, int) and not isinstance(self.group_id, bool):
            return self.group_id
        return None

    @property
    def backend_id(self) -> str:
        return self.id or ""

    @property
    def active_members(self) -> list[GroupMemberEntry] | None:
        if self.members is None:
            return None
        return [member for member in self.members if member.is_active]


class GroupView(PayloadModel):
    """Normalized group as rendered by the view layer.

    ``local_id`` is a session-local rendering key and is never sent to the
    server. An empty ``backend_id`` means the group has not been persisted.
    """

    local_id: int
    backend_id: str = ""
    name: str
    description: str = ""
    max_members: int
    group_type: str = GroupType.STUDY.value
    is_active: bool = True
    created_at: datetime
    updated_at: datetime
    member_count: int | None = None
    owner_hint: bool | None = None
    invited_hint: bool | None = None
    creator_id: str = ""
    creator_name: str | None = None
    members: tuple[GroupMemberEntry, ...] | None = None
    module_name: str | None = None
    is_public: bool | None = None

    @property
    def key(self) -> str:
        """Membership key: the backend id, or a local marker for unsaved groups."""
        return self.backend_id or f"local:{self.local_id}"

    @property
    def is_persisted(self) -> bool:
        return bool(self.backend_id)

    @property
    def display_member_count(self) -> int:
        return self.member_count or 0


class GroupDraft(PayloadModel):
    """Form input for creating a group."""

    name: str
    description: str = ""
    course: str = ""
    course_code: str = Field(default="", alias="courseCode")
    max_members: int = Field(default=8, alias="maxMembers")
    is_public: bool = Field(default=True, alias="isPublic")
    subjects: list[str] = Field(default_factory=list)


class GroupPatch(PayloadModel):
    """Owner-editable fields; ``None`` leaves a field untouched."""

    name: str | None = None
    description: str | None = None
    max_members: int | None = Field(default=None, alias="maxMembers")

    def is_empty(self) -> bool:
        return self.name is None and self.description is None and self.max_members is None

    def view_updates(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class GroupInvite(PayloadModel):
    id: str | None = None
    group_id: str | None = Field(
        default=None,
        alias="groupId",
        validation_alias=AliasChoices("groupId", "group_id"),
    )
    user_id: str | None = Field(
        default=None,
        alias="userId",
        validation_alias=AliasChoices("userId", "user_id", "inviteeId"),
    )
    invited_by: str | None = Field(
        default=None,
        alias="invitedBy",
        validation_alias=AliasChoices("invitedBy", "invited_by"),
    )
    status: str = "pending"
    created_at: datetime | None = Field(
        default=None,
        alias="createdAt",
        validation_alias=AliasChoices("createdAt", "created_at"),
    )

    @field_validator("id", "group_id", "user_id", "invited_by", mode="before")
    @classmethod
    def _coerce_ids(cls, value: Any) -> str | None:
        return coerce_identifier(value)


class GroupNotice(PayloadModel):
    """Body for a group-wide notification."""

    title: str
    message: str
    metadata: dict[str, Any] = Field(default_factory=dict)


def compose_module_name(course: str | None, course_code: str | None) -> str | None:
    pieces = [piece for piece in (course_code, course) if piece]
    if not pieces:
        return None
    return " - ".join(pieces)


def split_module_name(module_name: str | None) -> tuple[str | None, str | None]:
    """Return ``(course_code, course)`` from a label like ``"CS 201 - Data Structures"``."""

    if not module_name:
        return None, None
    parts = module_name.split(" - ")
    if len(parts) >= 2:
        return parts[0], " - ".join(parts[1:])
    return None, module_name
