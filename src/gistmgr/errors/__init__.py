"""Public error exports for gistmgr."""

from __future__ import annotations

from .exceptions import (
    NETWORK_FAILURE_MESSAGE,
    ApiError,
    AuthError,
    ConsistencyError,
    GistMgrError,
    HttpErrorInfo,
    InvalidArgumentError,
    InvalidStateError,
    NetworkError,
    NotFoundError,
    PermissionError,
    RateLimitError,
    RemoteError,
    StorageError,
    ValidationError,
    map_http_error,
    user_message,
)

__all__ = [
    "GistMgrError",
    "StorageError",
    "ValidationError",
    "ConsistencyError",
    "InvalidStateError",
    "NetworkError",
    "RemoteError",
    "AuthError",
    "PermissionError",
    "InvalidArgumentError",
    "NotFoundError",
    "RateLimitError",
    "ApiError",
    "HttpErrorInfo",
    "map_http_error",
    "user_message",
    "NETWORK_FAILURE_MESSAGE",
]
