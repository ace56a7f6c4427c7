"""Shared utility helpers for the group reconciliation layer."""

from .logging import LoggingOptions, configure_logging, get_logger, log_file_path
from .errors import (
    ErrorDescriptor,
    ErrorKind,
    ErrorSeverity,
    classify_error,
    describe_exception,
)

__all__ = [
    "LoggingOptions",
    "configure_logging",
    "get_logger",
    "log_file_path",
    "ErrorDescriptor",
    "ErrorKind",
    "ErrorSeverity",
    "classify_error",
    "describe_exception",
]
