"""Data-access boundary for the group service."""

from .errors import (
    AuthenticationError,
    BackendError,
    BackendErrorCategory,
    MutationFailedError,
    NotFoundError,
    PermissionDeniedError,
    map_response_to_error,
)
from .interface import (
    GroupBackend,
    SupportsClose,
    SupportsCurrentUser,
    SupportsInviteResponses,
)
from .client import (
    BackendClientConfig,
    HttpGroupBackend,
    clean_token,
    unwrap_collection,
    unwrap_entity,
)

__all__ = [
    "AuthenticationError",
    "BackendError",
    "BackendErrorCategory",
    "MutationFailedError",
    "NotFoundError",
    "PermissionDeniedError",
    "map_response_to_error",
    "GroupBackend",
    "SupportsClose",
    "SupportsCurrentUser",
    "SupportsInviteResponses",
    "BackendClientConfig",
    "HttpGroupBackend",
    "clean_token",
    "unwrap_collection",
    "unwrap_entity",
]
