from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Sequence
from urllib.parse import quote

import httpx

from groupsync.backend.errors import (
    BackendError,
    BackendErrorCategory,
    map_response_to_error,
)
from groupsync.utils.logging import get_logger


logger = get_logger(__name__)

_COLLECTION_KEYS = ("groups", "members", "invites", "items", "value", "data")
_BEARER_PREFIX = re.compile(r"^Bearer\s+", re.IGNORECASE)


def clean_token(raw: str | None) -> str | None:
    """Strip stray quotes and a duplicated ``Bearer`` prefix from stored tokens."""

    if not raw:
        return None
    token = raw.strip().strip("\"'")
    token = _BEARER_PREFIX.sub("", token).strip()
    return token or None


def unwrap_collection(body: Any, *keys: str) -> list[dict[str, Any]]:
    if isinstance(body, list):
        return [item for item in body if isinstance(item, dict)]
    if isinstance(body, dict):
        for key in (*keys, *_COLLECTION_KEYS):
            value = body.get(key)
            if isinstance(value, list):
                return [item for item in value if isinstance(item, dict)]
    return []


def unwrap_entity(body: Any, key: str) -> dict[str, Any] | None:
    if not isinstance(body, dict):
        return None
    inner = body.get(key)
    if isinstance(inner, dict):
        return inner
    inner = body.get("data")
    if isinstance(inner, dict):
        return inner
    return body or None


@dataclass(slots=True)
class BackendClientConfig:
    base_url: str
    token: str | None = None
    api_prefix: str = "/api/v1"
    user_agent: str = "GroupSync-Python"
    timeout: float = 30.0


class HttpGroupBackend:
    """REST implementation of the group data-access interface."""

    def __init__(
        self,
        config: BackendClientConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._http_client: httpx.AsyncClient | None = None

    # ----------------------------------------------------------------- Groups

    async def list_all_groups(self) -> list[dict[str, Any]]:
        body = await self.request_json("GET", "/groups")
        groups = unwrap_collection(body, "groups")
        logger.debug("Fetched group catalog", count=len(groups))
        return groups

    async def list_my_groups(self) -> list[dict[str, Any]]:
        body = await self.request_json("GET", "/groups/my-groups")
        groups = unwrap_collection(body, "groups")
        logger.debug("Fetched joined groups", count=len(groups))
        return groups

    async def create_group(self, payload: dict[str, Any]) -> dict[str, Any] | None:
        body = await self.request_json("POST", "/groups", json_body=payload)
        return unwrap_entity(body, "group")

    async def update_group(
        self, group_id: str, patch: dict[str, Any]
    ) -> dict[str, Any] | bool:
        try:
            body = await self.request_json(
                "PATCH", self._group_path(group_id), json_body=patch
            )
        except BackendError as exc:
            if exc.category is BackendErrorCategory.NETWORK:
                raise
            logger.warning("Group update rejected", group_id=group_id, error=str(exc))
            return False
        return unwrap_entity(body, "group") or True

    async def delete_group(self, group_id: str) -> bool:
        return await self._mutate("DELETE", self._group_path(group_id))

    async def join_group(self, group_id: str) -> bool:
        return await self._mutate("POST", self._group_path(group_id, "join"))

    async def leave_group(self, group_id: str) -> bool:
        return await self._mutate("POST", self._group_path(group_id, "leave"))

    async def invite_to_group(self, group_id: str, user_ids: Sequence[str]) -> bool:
        return await self._mutate(
            "POST",
            self._group_path(group_id, "invite"),
            json_body={"userIds": [str(user_id) for user_id in user_ids]},
        )

    async def accept_invite(self, group_id: str) -> bool:
        return await self._mutate("POST", self._group_path(group_id, "invites/accept"))

    async def decline_invite(self, group_id: str) -> bool:
        return await self._mutate("POST", self._group_path(group_id, "invites/decline"))

    async def list_pending_invites(self, group_id: str) -> list[dict[str, Any]]:
        body = await self.request_json("GET", self._group_path(group_id, "invites"))
        return unwrap_collection(body, "invites")

    async def list_members(self, group_id: str) -> list[dict[str, Any]]:
        body = await self.request_json("GET", self._group_path(group_id, "members"))
        return unwrap_collection(body, "members")

    async def notify_group(self, group_id: str, notice: dict[str, Any]) -> bool:
        return await self._mutate(
            "POST", self._group_path(group_id, "notify"), json_body=notice
        )

    # ---------------------------------------------------- Notifications/Sessions

    async def create_notification(self, payload: dict[str, Any]) -> bool:
        return await self._mutate("POST", "/notifications", json_body=payload)

    async def create_session(self, payload: dict[str, Any]) -> dict[str, Any] | None:
        body = await self.request_json("POST", "/sessions", json_body=payload)
        return unwrap_entity(body, "session")

    async def schedule_session_reminder(self, session_id: str) -> bool:
        return await self._mutate(
            "POST", f"/sessions/{quote(str(session_id), safe='')}/reminder"
        )

    async def current_user(self) -> dict[str, Any]:
        body = await self.request_json("GET", "/users/me")
        return unwrap_entity(body, "user") or {}

    # -------------------------------------------------------------- Transport

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any | None = None,
    ) -> httpx.Response:
        client = self._get_http_client()
        url = self._absolute_url(path)
        try:
            response = await client.request(method, url, params=params, json=json_body)
        except httpx.TimeoutException as exc:
            raise BackendError(
                message="Network timeout communicating with the group service",
                category=BackendErrorCategory.NETWORK,
                inner_error=exc,
                request_method=method.upper(),
                request_url=url,
            ) from exc
        except httpx.RequestError as exc:
            raise BackendError(
                message=f"Network error communicating with the group service: {exc}",
                category=BackendErrorCategory.NETWORK,
                inner_error=exc,
                request_method=method.upper(),
                request_url=url,
            ) from exc

        if response.status_code >= 400:
            error = map_response_to_error(response)
            error.request_method = method.upper()
            error.request_url = url
            raise error
        return response

    async def request_json(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any | None = None,
    ) -> Any:
        response = await self.request(method, path, params=params, json_body=json_body)
        if not response.content:
            return None
        return response.json()

    async def close(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    # ------------------------------------------------------------- Internals

    async def _mutate(
        self,
        method: str,
        path: str,
        *,
        json_body: Any | None = None,
    ) -> bool:
        try:
            await self.request(method, path, json_body=json_body)
        except BackendError as exc:
            if exc.category is BackendErrorCategory.NETWORK:
                raise
            logger.warning(
                "Group service rejected request",
                method=method,
                path=path,
                status=exc.status_code,
                error=str(exc),
            )
            return False
        return True

    def _group_path(self, group_id: str, suffix: str | None = None) -> str:
        path = f"/groups/{quote(str(group_id), safe='')}"
        if suffix:
            path = f"{path}/{suffix}"
        return path

    def _absolute_url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        base = self._config.base_url.rstrip("/")
        prefix = self._config.api_prefix.rstrip("/")
        return f"{base}{prefix}{path}"

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            headers = {
                "User-Agent": self._config.user_agent,
                "Content-Type": "application/json",
            }
            token = clean_token(self._config.token)
            if token:
                headers["Authorization"] = f"Bearer {token}"
            self._http_client = httpx.AsyncClient(
                headers=headers,
                transport=self._transport,
                timeout=httpx.Timeout(self._config.timeout, connect=10.0),
            )
        return self._http_client


__all__ = [
    "BackendClientConfig",
    "HttpGroupBackend",
    "clean_token",
    "unwrap_collection",
    "unwrap_entity",
]
