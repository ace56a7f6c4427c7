from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv
from platformdirs import user_cache_dir, user_config_dir

APP_NAME = "GroupSync"
ENV_PREFIX = "GROUPSYNC_"
ENV_FILE_NAME = "settings.env"

DEFAULT_BROADCAST_CHANNEL = "studybuddy-events"
DEFAULT_LOCAL_OPERATION_DELAY = 0.4
DEFAULT_NEW_GROUP_MAX_MEMBERS = 8
FALLBACK_MAX_MEMBERS = 10
DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_SIGNAL_DEDUPE_WINDOW = 256


def _config_dir() -> Path:
    path = Path(user_config_dir(APP_NAME, roaming=True))
    path.mkdir(parents=True, exist_ok=True)
    return path


def _cache_dir() -> Path:
    path = Path(user_cache_dir(APP_NAME))
    path.mkdir(parents=True, exist_ok=True)
    return path


def config_dir() -> Path:
    return _config_dir()


def cache_dir() -> Path:
    return _cache_dir()


def log_dir() -> Path:
    path = cache_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


def _env_file_path(explicit: Path | None) -> Path:
    if explicit is not None:
        return explicit
    return _config_dir() / ENV_FILE_NAME


@dataclass(slots=True)
class Settings:
    """Session configuration for the group reconciliation layer.

    ``viewer_id`` identifies the signed-in user whose ownership and
    membership are derived; an empty value means "unknown viewer" and makes
    every ownership check answer ``False``.
    """

    viewer_id: str = ""
    api_base_url: str | None = None
    api_token: str | None = None
    broadcast_channel: str = DEFAULT_BROADCAST_CHANNEL
    local_operation_delay: float = DEFAULT_LOCAL_OPERATION_DELAY
    default_max_members: int = DEFAULT_NEW_GROUP_MAX_MEMBERS
    fallback_max_members: int = FALLBACK_MAX_MEMBERS
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    signal_dedupe_window: int = DEFAULT_SIGNAL_DEDUPE_WINDOW

    @property
    def is_configured(self) -> bool:
        """True when a backend endpoint is available."""
        return bool(self.api_base_url)


class SettingsManager:
    """Load and persist settings with environment overrides."""

    def __init__(self, env_file: Path | None = None) -> None:
        self._env_file = _env_file_path(env_file)

    @property
    def env_file(self) -> Path:
        return self._env_file

    def load(self) -> Settings:
        """Load settings from environment, falling back to persisted file."""
        load_dotenv(self._env_file, override=False)

        settings = Settings(
            viewer_id=self._get_env("VIEWER_ID") or "",
            api_base_url=self._get_env("API_BASE_URL"),
            api_token=self._get_env("API_TOKEN"),
        )

        channel = self._get_env("BROADCAST_CHANNEL")
        if channel:
            settings.broadcast_channel = channel

        delay = self._get_float("LOCAL_OPERATION_DELAY")
        if delay is not None:
            settings.local_operation_delay = max(delay, 0.0)

        timeout = self._get_float("REQUEST_TIMEOUT")
        if timeout is not None and timeout > 0:
            settings.request_timeout = timeout

        max_members = self._get_int("DEFAULT_MAX_MEMBERS")
        if max_members is not None and max_members > 0:
            settings.default_max_members = max_members

        window = self._get_int("SIGNAL_DEDUPE_WINDOW")
        if window is not None and window > 0:
            settings.signal_dedupe_window = window

        return settings

    def save(self, settings: Settings) -> None:
        """Persist settings to the env file (token excluded)."""
        self._env_file.parent.mkdir(parents=True, exist_ok=True)
        lines = [
            f"{ENV_PREFIX}VIEWER_ID={settings.viewer_id}",
            f"{ENV_PREFIX}BROADCAST_CHANNEL={settings.broadcast_channel}",
            f"{ENV_PREFIX}LOCAL_OPERATION_DELAY={settings.local_operation_delay}",
            f"{ENV_PREFIX}REQUEST_TIMEOUT={settings.request_timeout}",
            f"{ENV_PREFIX}DEFAULT_MAX_MEMBERS={settings.default_max_members}",
            f"{ENV_PREFIX}SIGNAL_DEDUPE_WINDOW={settings.signal_dedupe_window}",
        ]
        if settings.api_base_url:
            lines.append(f"{ENV_PREFIX}API_BASE_URL={settings.api_base_url}")
        self._env_file.write_text("\n".join(lines) + "\n", encoding="utf-8")

    def _get_env(self, key: str) -> str | None:
        value = os.getenv(f"{ENV_PREFIX}{key}")
        if value is None:
            return None
        value = value.strip()
        return value or None

    def _get_float(self, key: str) -> float | None:
        raw = self._get_env(key)
        if raw is None:
            return None
        try:
            return float(raw)
        except ValueError:
            return None

    def _get_int(self, key: str) -> int | None:
        raw = self._get_env(key)
        if raw is None:
            return None
        try:
            return int(raw)
        except ValueError:
            return None


__all__ = [
    "Settings",
    "SettingsManager",
    "config_dir",
    "cache_dir",
    "log_dir",
    "DEFAULT_BROADCAST_CHANNEL",
]
