"""Reconciliation services: resync, optimistic mutations and invalidation."""

from .base import EventHook, MutationStatus, RefreshEvent, ServiceErrorEvent
from .groups import GroupMutationEvent, GroupReconciler, MutationKind
from .invalidation import (
    GROUP_RESYNC_SIGNALS,
    BroadcastChannel,
    BroadcastHub,
    InvalidationAdapter,
    InvalidationBus,
    InvalidationMessage,
    InvalidationSignal,
    WindowEventTarget,
)
from .members import MemberRosterCache, RosterEntry, RosterEvent, RosterState
from .sessions import SessionScheduler
from .registry import ServiceRegistry

__all__ = [
    "EventHook",
    "MutationStatus",
    "RefreshEvent",
    "ServiceErrorEvent",
    "GroupReconciler",
    "GroupMutationEvent",
    "MutationKind",
    "GROUP_RESYNC_SIGNALS",
    "BroadcastChannel",
    "BroadcastHub",
    "InvalidationAdapter",
    "InvalidationBus",
    "InvalidationMessage",
    "InvalidationSignal",
    "WindowEventTarget",
    "MemberRosterCache",
    "RosterEntry",
    "RosterEvent",
    "RosterState",
    "SessionScheduler",
    "ServiceRegistry",
]
