from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Optional, cast

import structlog
from loguru import logger as loguru_logger
from structlog.exceptions import DropEvent
from structlog.stdlib import BoundLogger
from structlog.typing import EventDict, Processor, WrappedLogger

from groupsync.config.settings import ENV_PREFIX, log_dir


LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <7} | {message} | {extra}"
LOG_FILENAME = "groupsync.log"
REDACTED = "***"
SECRET_KEYS = frozenset({"token", "api_token", "authorization", "password", "secret"})


@dataclass(slots=True)
class LoggingOptions:
    """Sink and verbosity settings for the structlog -> loguru pipeline.

    ``file_sink`` turns the rotating file under the platform cache directory
    on or off; tests switch it off so nothing is written outside tmp dirs.
    """

    level: LogLevel = "INFO"
    debug: bool = False
    rotation: str = "5 MB"
    retention: str = "7 days"
    log_path: Optional[Path] = None
    file_sink: bool = True
    secret_keys: frozenset[str] = field(default_factory=lambda: SECRET_KEYS)

    @classmethod
    def from_env(cls) -> "LoggingOptions":
        """Read ``GROUPSYNC_LOG_LEVEL`` and ``GROUPSYNC_DEBUG``."""

        options = cls()
        level = (os.getenv(f"{ENV_PREFIX}LOG_LEVEL") or "").strip().upper()
        if level in {"DEBUG", "INFO", "WARNING", "ERROR"}:
            options.level = cast(LogLevel, level)
        options.debug = (os.getenv(f"{ENV_PREFIX}DEBUG") or "").strip().lower() in {
            "1",
            "true",
            "yes",
        }
        return options


_log_path: Optional[Path] = None
_configured = False


def configure_logging(options: LoggingOptions | None = None) -> Path:
    """Install the loguru sinks and route every structlog event through them."""

    global _log_path, _configured

    opts = options or LoggingOptions.from_env()
    threshold = "DEBUG" if opts.debug else opts.level
    path = opts.log_path or (log_dir() / LOG_FILENAME)

    loguru_logger.remove()
    loguru_logger.add(
        sys.stderr,
        level=threshold,
        colorize=True,
        backtrace=opts.debug,
        diagnose=opts.debug,
        format=LOG_FORMAT,
    )
    if opts.file_sink:
        loguru_logger.add(
            path,
            level="DEBUG",
            rotation=opts.rotation,
            retention=opts.retention,
            enqueue=True,
            encoding="utf-8",
            format=LOG_FORMAT,
        )

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
        drop_empty_context,
        redact_secrets(opts.secret_keys),
        _forward_to_loguru,
    ]
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if opts.debug else getattr(logging, threshold),
        ),
        cache_logger_on_first_use=False,
    )

    _log_path = path
    _configured = True
    return path


def drop_empty_context(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    """Remove ``None`` context values such as a missing backend id."""

    return {key: value for key, value in event_dict.items() if value is not None}


def redact_secrets(keys: frozenset[str]) -> Processor:
    lowered = frozenset(key.lower() for key in keys)

    def processor(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
        for key in list(event_dict):
            if key.lower() in lowered:
                event_dict[key] = REDACTED
        return event_dict

    return processor


def _forward_to_loguru(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    level = str(event_dict.pop("level", "info")).upper()
    message = event_dict.pop("event", "")
    exception = event_dict.pop("exception", None)
    event_dict.pop("timestamp", None)
    if exception:
        message = f"{message}\n{exception}"
    loguru_logger.bind(**event_dict).opt(depth=6).log(level, message)
    raise DropEvent


def get_logger(*initial_values: object, **initial_kw: object) -> BoundLogger:
    if not _configured:
        configure_logging()
    return cast(BoundLogger, structlog.get_logger(*initial_values, **initial_kw))


def log_file_path() -> Path:
    return _log_path if _log_path is not None else configure_logging()


__all__ = [
    "LoggingOptions",
    "configure_logging",
    "drop_empty_context",
    "get_logger",
    "log_file_path",
    "redact_secrets",
]
