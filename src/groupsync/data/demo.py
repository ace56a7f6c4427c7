from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

_DEMO_GROUPS: tuple[dict[str, Any], ...] = (
    {
        "group_id": 1,
        "group_name": "CS Advanced Study Group",
        "description": "Advanced computer science topics and algorithms",
        "creator_id": 1,
        "max_members": 8,
        "group_type": "study",
        "member_count": 5,
        "module_name": "CS 201 - Data Structures",
        "creator_name": "John Doe",
    },
    {
        "group_id": 2,
        "group_name": "Math Warriors",
        "description": "Tackling linear algebra together",
        "creator_id": 2,
        "max_members": 6,
        "group_type": "exam_prep",
        "member_count": 4,
        "module_name": "MATH 204 - Linear Algebra",
        "creator_name": "Jane Smith",
    },
    {
        "group_id": 3,
        "group_name": "Physics Lab Partners",
        "description": "Lab work and problem solving",
        "creator_id": 3,
        "max_members": 4,
        "group_type": "project",
        "member_count": 3,
        "module_name": "PHY 101 - Mechanics",
        "creator_name": "Alex Johnson",
    },
    {
        "group_id": 4,
        "group_name": "Open Discussion Circle",
        "description": "General questions and peer support",
        "creator_id": 4,
        "max_members": 10,
        "group_type": "discussion",
        "member_count": 1,
        "module_name": "GEN 101 - General",
        "creator_name": "Sam Lee",
    },
)


def demo_group_payloads(now: datetime | None = None) -> list[dict[str, Any]]:
    """Return the illustrative legacy-shaped groups shown when the backend is down.

    The payloads carry numeric ``group_id`` values and no backend identifier,
    so every operation on them stays local.
    """

    stamp = (now or datetime.now(UTC)).isoformat()
    payloads: list[dict[str, Any]] = []
    for entry in _DEMO_GROUPS:
        payload = dict(entry)
        payload["is_active"] = True
        payload["created_at"] = stamp
        payload["updated_at"] = stamp
        payloads.append(payload)
    return payloads


__all__ = ["demo_group_payloads"]
