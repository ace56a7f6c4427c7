from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import StrEnum
from typing import Awaitable, Callable, Generic, TypeVar

from groupsync.backend.errors import MutationFailedError
from groupsync.utils import get_logger


logger = get_logger(__name__)

T_co = TypeVar("T_co", covariant=True)
PayloadT = TypeVar("PayloadT")
ReturnT = TypeVar("ReturnT")


class MutationStatus(StrEnum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class EventHook(Generic[T_co]):
    """Simple observer pattern helper for view-layer bridging."""

    def __init__(self) -> None:
        self._subscribers: list[Callable[[T_co], None]] = []

    def subscribe(self, callback: Callable[[T_co], None]) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            try:
                self._subscribers.remove(callback)
            except ValueError:  # pragma: no cover - best effort cleanup
                pass

        return unsubscribe

    def emit(self, payload: T_co) -> None:
        for callback in list(self._subscribers):
            try:
                callback(payload)
            except Exception:  # pragma: no cover - callbacks should not crash services
                logger.exception("Service event callback failed")

    def __len__(self) -> int:
        return len(self._subscribers)


async def run_optimistic_mutation(
    *,
    emitter: "EventHook[PayloadT]",
    event_builder: Callable[[MutationStatus, BaseException | None], PayloadT],
    operation: Callable[[], Awaitable[ReturnT]],
    apply: Callable[[], None] | None = None,
    rollback: Callable[[], None] | None = None,
    on_success: Callable[[ReturnT], Awaitable[None]] | None = None,
    action: str = "mutation",
    require_truthy: bool = True,
) -> ReturnT:
    """Apply a local change, run the remote call, then reconcile or roll back.

    A falsy result counts as failure when ``require_truthy`` is set, so a
    backend that answers ``False`` and one that raises share the rollback path.
    Errors are re-raised after ``rollback`` runs.
    """

    if apply is not None:
        apply()
    emitter.emit(event_builder(MutationStatus.PENDING, None))
    try:
        result = await operation()
        if require_truthy and not result:
            raise MutationFailedError(action)
    except asyncio.CancelledError as exc:
        if rollback is not None:
            rollback()
        emitter.emit(event_builder(MutationStatus.FAILED, exc))
        raise
    except Exception as exc:  # noqa: BLE001
        if rollback is not None:
            rollback()
        emitter.emit(event_builder(MutationStatus.FAILED, exc))
        raise
    emitter.emit(event_builder(MutationStatus.SUCCEEDED, None))
    if on_success is not None:
        await on_success(result)
    return result


@dataclass(slots=True)
class RefreshEvent(Generic[T_co]):
    items: T_co
    demo_mode: bool


@dataclass(slots=True)
class ServiceErrorEvent:
    action: str
    error: BaseException
    local_id: int | None = None
    backend_id: str | None = None


__all__ = [
    "EventHook",
    "RefreshEvent",
    "ServiceErrorEvent",
    "MutationStatus",
    "run_optimistic_mutation",
]
