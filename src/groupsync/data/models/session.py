from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, field_validator

from .common import PayloadModel, coerce_identifier


class SessionDraft(PayloadModel):
    """Form input for scheduling a study session for a group."""

    title: str
    date: str
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")
    location: str
    description: str | None = None
    session_type: str = Field(default="study", alias="type")


class StudySession(PayloadModel):
    id: str | None = None
    title: str
    date: str | None = None
    start_time: str | None = Field(
        default=None,
        alias="startTime",
        validation_alias=AliasChoices("startTime", "start_time"),
    )
    end_time: str | None = Field(
        default=None,
        alias="endTime",
        validation_alias=AliasChoices("endTime", "end_time"),
    )
    location: str | None = None
    session_type: str = Field(
        default="study",
        alias="type",
        validation_alias=AliasChoices("type", "session_type"),
    )
    participants: int = 1
    status: str = "upcoming"
    is_creator: bool = Field(default=True, alias="isCreator")
    is_attending: bool = Field(default=True, alias="isAttending")
    group_id: str | None = Field(
        default=None,
        alias="groupId",
        validation_alias=AliasChoices("groupId", "group_id"),
    )
    course: str | None = None
    course_code: str | None = Field(
        default=None,
        alias="courseCode",
        validation_alias=AliasChoices("courseCode", "course_code"),
    )

    @field_validator("id", "group_id", mode="before")
    @classmethod
    def _coerce_ids(cls, value: Any) -> str | None:
        return coerce_identifier(value)
