from __future__ import annotations

from groupsync.backend import BackendClientConfig, GroupBackend, HttpGroupBackend
from groupsync.config import Settings, SettingsManager
from groupsync.services import (
    BroadcastHub,
    GroupReconciler,
    InvalidationBus,
    MemberRosterCache,
    ServiceRegistry,
    SessionScheduler,
    WindowEventTarget,
)
from groupsync.utils import get_logger


logger = get_logger(__name__)

LOCAL_API_BASE_URL = "http://localhost:3000"

_DEFAULT_WINDOW = WindowEventTarget()
_DEFAULT_HUB = BroadcastHub()


def build_backend(settings: Settings) -> HttpGroupBackend:
    """Create the HTTP backend described by ``settings``."""

    base_url = settings.api_base_url
    if not base_url:
        logger.warning(
            "No API base URL configured; using local development server",
            base_url=LOCAL_API_BASE_URL,
        )
        base_url = LOCAL_API_BASE_URL
    return HttpGroupBackend(
        BackendClientConfig(
            base_url=base_url,
            token=settings.api_token,
            timeout=settings.request_timeout,
        )
    )


def build_services(
    settings: Settings | None = None,
    *,
    backend: GroupBackend | None = None,
    window: WindowEventTarget | None = None,
    hub: BroadcastHub | None = None,
) -> ServiceRegistry:
    """Wire backend, invalidation bus and services for one group view.

    Views in the same process share ``window`` and ``hub`` unless explicit
    ones are given, so a signal published by one view reaches the others.
    """

    settings = settings or SettingsManager().load()
    backend = backend or build_backend(settings)
    bus = InvalidationBus(
        window or _DEFAULT_WINDOW,
        hub or _DEFAULT_HUB,
        settings.broadcast_channel,
    )
    rosters = MemberRosterCache(backend)
    groups = GroupReconciler(backend, bus, settings, roster=rosters)
    sessions = SessionScheduler(backend, bus)
    logger.debug(
        "Group services initialised",
        channel=settings.broadcast_channel,
        origin=bus.origin,
        viewer_id=settings.viewer_id or None,
    )
    return ServiceRegistry(
        groups=groups,
        rosters=rosters,
        sessions=sessions,
        bus=bus,
        backend=backend,
    )


__all__ = ["build_backend", "build_services", "LOCAL_API_BASE_URL"]
