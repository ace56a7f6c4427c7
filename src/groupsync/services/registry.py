from __future__ import annotations

from dataclasses import dataclass

from groupsync.backend.interface import GroupBackend, SupportsClose
from groupsync.utils import get_logger

from .groups import GroupReconciler
from .invalidation import InvalidationBus
from .members import MemberRosterCache
from .sessions import SessionScheduler


logger = get_logger(__name__)


@dataclass(slots=True)
class ServiceRegistry:
    """Centralised container for the services of one group view."""

    groups: GroupReconciler | None = None
    rosters: MemberRosterCache | None = None
    sessions: SessionScheduler | None = None
    bus: InvalidationBus | None = None
    backend: GroupBackend | None = None

    async def aclose(self) -> None:
        """Close the reconciler, then release the backend's connection pool."""

        if self.groups is not None:
            self.groups.close()
        elif self.bus is not None:
            self.bus.close()
        if isinstance(self.backend, SupportsClose):
            await self.backend.close()
            logger.debug("Group backend closed")


__all__ = ["ServiceRegistry"]
