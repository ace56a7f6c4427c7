from __future__ import annotations

from typing import Any, Protocol, Sequence, runtime_checkable


class GroupBackend(Protocol):
    """Data-access boundary consumed by the reconciliation layer.

    Reads return raw server-shaped payloads; writes return the created entity
    or a success flag. Implementations may raise; callers treat any raised
    error the same as a falsy result.
    """

    async def list_all_groups(self) -> list[dict[str, Any]]: ...

    async def list_my_groups(self) -> list[dict[str, Any]]: ...

    async def create_group(self, payload: dict[str, Any]) -> dict[str, Any] | None: ...

    async def update_group(
        self, group_id: str, patch: dict[str, Any]
    ) -> dict[str, Any] | bool: ...

    async def delete_group(self, group_id: str) -> bool: ...

    async def join_group(self, group_id: str) -> bool: ...

    async def leave_group(self, group_id: str) -> bool: ...

    async def invite_to_group(self, group_id: str, user_ids: Sequence[str]) -> bool: ...

    async def list_pending_invites(self, group_id: str) -> list[dict[str, Any]]: ...

    async def list_members(self, group_id: str) -> list[dict[str, Any]]: ...

    async def notify_group(self, group_id: str, notice: dict[str, Any]) -> bool: ...

    async def create_notification(self, payload: dict[str, Any]) -> bool: ...

    async def create_session(self, payload: dict[str, Any]) -> dict[str, Any] | None: ...

    async def schedule_session_reminder(self, session_id: str) -> bool: ...


@runtime_checkable
class SupportsInviteResponses(Protocol):
    """Optional capability: explicit invite accept/decline endpoints."""

    async def accept_invite(self, group_id: str) -> bool: ...

    async def decline_invite(self, group_id: str) -> bool: ...


@runtime_checkable
class SupportsCurrentUser(Protocol):
    """Optional capability: resolve the signed-in user."""

    async def current_user(self) -> dict[str, Any]: ...


@runtime_checkable
class SupportsClose(Protocol):
    """Backends that hold a connection pool release it here."""

    async def close(self) -> None: ...


__all__ = [
    "GroupBackend",
    "SupportsClose",
    "SupportsCurrentUser",
    "SupportsInviteResponses",
]
