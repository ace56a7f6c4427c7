from __future__ import annotations

import asyncio
import socket
from dataclasses import dataclass
from enum import Enum

import httpx

from groupsync.backend.errors import (
    BackendError,
    BackendErrorCategory,
    MutationFailedError,
)


class ErrorSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class ErrorKind(str, Enum):
    """Coarse classification used for inline error display."""

    NETWORK = "network"
    GENERIC = "generic"


@dataclass(slots=True)
class ErrorDescriptor:
    headline: str
    detail: str
    severity: ErrorSeverity = ErrorSeverity.ERROR
    transient: bool = False
    suggestion: str | None = None
    kind: ErrorKind = ErrorKind.GENERIC


_NETWORK_ERRNOS = {
    getattr(socket, "EAI_AGAIN", None),
    getattr(socket, "EAI_FAIL", None),
    getattr(socket, "EAI_NONAME", None),
    getattr(socket, "EHOSTUNREACH", None),
    getattr(socket, "ENETDOWN", None),
    getattr(socket, "ENETUNREACH", None),
    getattr(socket, "ECONNREFUSED", None),
    getattr(socket, "ECONNRESET", None),
    getattr(socket, "ETIMEDOUT", None),
}
_NETWORK_ERRNOS.discard(None)


def classify_error(error: BaseException) -> ErrorKind:
    """Return ``NETWORK`` when the failure means the backend is unreachable."""

    backend_error = _locate_backend_error(error)
    if backend_error is not None:
        if backend_error.category is BackendErrorCategory.NETWORK:
            return ErrorKind.NETWORK
        return ErrorKind.GENERIC

    root = _unwrap_error(error)
    if isinstance(root, (httpx.TransportError, asyncio.TimeoutError)):
        return ErrorKind.NETWORK
    if isinstance(root, (socket.gaierror, ConnectionError)):
        return ErrorKind.NETWORK
    if isinstance(root, OSError) and getattr(root, "errno", None) in _NETWORK_ERRNOS:
        return ErrorKind.NETWORK
    return ErrorKind.GENERIC


def describe_exception(error: BaseException) -> ErrorDescriptor:
    descriptor = ErrorDescriptor(
        headline="Operation failed.",
        detail=f"{type(error).__name__}: {error}",
        severity=ErrorSeverity.ERROR,
        transient=False,
    )

    if isinstance(error, MutationFailedError):
        descriptor.headline = "The server rejected the change."
        descriptor.detail = str(error)
        descriptor.suggestion = "Your change was undone. Try again in a moment."
        return descriptor

    backend_error = _locate_backend_error(error)
    if backend_error is not None:
        descriptor.detail = _format_backend_detail(backend_error)
        descriptor.suggestion = backend_error.recovery_suggestion
        descriptor.transient = backend_error.is_transient
        if backend_error.is_transient:
            descriptor.severity = ErrorSeverity.WARNING
        descriptor.headline = _backend_headline(backend_error)
        descriptor.kind = classify_error(backend_error)
        return descriptor

    root = _unwrap_error(error)

    if isinstance(root, httpx.TimeoutException) or isinstance(
        root, asyncio.TimeoutError
    ):
        descriptor.headline = "The server did not respond in time."
        descriptor.detail = f"{type(root).__name__}: {root}"
        descriptor.severity = ErrorSeverity.WARNING
        descriptor.transient = True
        descriptor.suggestion = "Check your network connection and retry shortly."
        descriptor.kind = ErrorKind.NETWORK
        return descriptor

    if classify_error(root) is ErrorKind.NETWORK:
        descriptor.headline = "Network connection issue encountered."
        descriptor.detail = f"{type(root).__name__}: {root}"
        descriptor.severity = ErrorSeverity.WARNING
        descriptor.transient = True
        descriptor.suggestion = "Retry once your connection is stable."
        descriptor.kind = ErrorKind.NETWORK
        return descriptor

    return descriptor


def _locate_backend_error(error: BaseException) -> BackendError | None:
    current: BaseException | None = error
    visited: set[int] = set()
    while current is not None and id(current) not in visited:
        visited.add(id(current))
        if isinstance(current, BackendError):
            return current
        inner = getattr(current, "__cause__", None) or getattr(
            current, "__context__", None
        )
        if inner is None:
            break
        current = inner
    return None


def _unwrap_error(error: BaseException) -> BaseException:
    current = error
    visited: set[int] = set()
    while True:
        visited.add(id(current))
        inner = None
        if isinstance(current, BackendError) and current.inner_error is not None:
            inner = current.inner_error
        elif getattr(current, "__cause__", None) is not None:
            inner = current.__cause__
        elif getattr(current, "__context__", None) is not None:
            inner = current.__context__
        if inner is None or id(inner) in visited:
            return current
        current = inner


def _backend_headline(error: BackendError) -> str:
    match error.category:
        case BackendErrorCategory.NETWORK:
            return "Unable to reach the server."
        case BackendErrorCategory.AUTHENTICATION:
            return "You need to sign in again."
        case BackendErrorCategory.PERMISSION:
            return "You are not allowed to change this group."
        case BackendErrorCategory.NOT_FOUND:
            return "The group could not be found."
        case BackendErrorCategory.CONFLICT:
            return "The requested change conflicts with existing data."
        case BackendErrorCategory.VALIDATION:
            return "The server rejected the request payload."
        case _:
            return "The server request failed."


def _format_backend_detail(error: BackendError) -> str:
    if error.code:
        return f"{error.code}: {error}"
    return str(error)


__all__ = [
    "ErrorDescriptor",
    "ErrorKind",
    "ErrorSeverity",
    "classify_error",
    "describe_exception",
]
