from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum

import httpx


class BackendErrorCategory(str, Enum):
    NETWORK = "network"
    AUTHENTICATION = "authentication"
    PERMISSION = "permission"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    VALIDATION = "validation"
    UNKNOWN = "unknown"


@dataclass(slots=True)
class BackendError(Exception):
    message: str
    category: BackendErrorCategory = BackendErrorCategory.UNKNOWN
    status_code: int | None = None
    code: str | None = None
    inner_error: Exception | None = None
    request_method: str | None = None
    request_url: str | None = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.message

    @property
    def recovery_suggestion(self) -> str | None:
        if self.category is BackendErrorCategory.NETWORK:
            return "Check your internet connection and try again."
        if self.category is BackendErrorCategory.AUTHENTICATION:
            return "Sign in again to refresh your session."
        if self.category is BackendErrorCategory.PERMISSION:
            return "Only the group owner can perform this action."
        if self.category is BackendErrorCategory.NOT_FOUND:
            return "The group no longer exists. Refresh to see the latest groups."
        if self.category is BackendErrorCategory.CONFLICT:
            return "The group changed in the meantime. Refresh and try again."
        if self.category is BackendErrorCategory.VALIDATION:
            return "Review the submitted fields and try again."
        return None

    @property
    def is_transient(self) -> bool:
        if self.category is BackendErrorCategory.NETWORK:
            return True
        if self.status_code and 500 <= self.status_code <= 599:
            return True
        return False


class AuthenticationError(BackendError):
    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(
            message=message,
            category=BackendErrorCategory.AUTHENTICATION,
            status_code=401,
        )


class PermissionDeniedError(BackendError):
    def __init__(self, message: str = "Not allowed") -> None:
        super().__init__(
            message=message,
            category=BackendErrorCategory.PERMISSION,
            status_code=403,
        )


class NotFoundError(BackendError):
    def __init__(self, message: str = "Not found") -> None:
        super().__init__(
            message=message,
            category=BackendErrorCategory.NOT_FOUND,
            status_code=404,
        )


class MutationFailedError(Exception):
    """Raised when a remote mutation reports failure without raising."""

    def __init__(self, action: str, backend_id: str | None = None) -> None:
        detail = f"{action} failed"
        if backend_id:
            detail = f"{detail} for group {backend_id}"
        super().__init__(detail)
        self.action = action
        self.backend_id = backend_id


def map_response_to_error(response: httpx.Response) -> BackendError:
    status = response.status_code
    content_type = response.headers.get("Content-Type", "")
    body: object = {}
    try:
        if "json" in content_type:
            body = response.json()
        else:
            body = json.loads(response.text)
    except Exception:  # pragma: no cover - fallback
        body = {}

    code = None
    message = None
    if isinstance(body, dict):
        error_info = body.get("error")
        if isinstance(error_info, dict):
            code = error_info.get("code")
            message = error_info.get("message")
        elif isinstance(error_info, str):
            message = error_info
        message = message or body.get("message")

    message = str(message or response.text or f"Request failed with status {status}")

    if status == 401:
        return AuthenticationError(message=message)
    if status == 403:
        return PermissionDeniedError(message=message)
    if status == 404:
        return NotFoundError(message=message)

    category = BackendErrorCategory.UNKNOWN
    if status == 409:
        category = BackendErrorCategory.CONFLICT
    elif status in {400, 422}:
        category = BackendErrorCategory.VALIDATION

    return BackendError(
        message=message,
        category=category,
        status_code=status,
        code=code if isinstance(code, str) else None,
    )


__all__ = [
    "BackendError",
    "BackendErrorCategory",
    "AuthenticationError",
    "PermissionDeniedError",
    "NotFoundError",
    "MutationFailedError",
    "map_response_to_error",
]
