"""Configuration helpers for the group reconciliation layer."""

from .settings import DEFAULT_BROADCAST_CHANNEL, Settings, SettingsManager

__all__ = [
    "DEFAULT_BROADCAST_CHANNEL",
    "Settings",
    "SettingsManager",
]
