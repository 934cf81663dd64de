"""gistmgr public API."""

from __future__ import annotations

from gistmgr.auth import AuthInfo, OAuthClient, authenticate
from gistmgr.config import Config, init_config
from gistmgr.controller import GistController
from gistmgr.errors import (
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
from gistmgr.local import GistSnapshot, LocalStore
from gistmgr.manager import GistManager
from gistmgr.models import (
    Gist,
    GistFile,
    GistStatus,
    PublishResult,
    RefreshResult,
    RemoteFile,
    RemoteGist,
    Visibility,
)
from gistmgr.session import Event, Pane, SessionController, StatusMessage
from gistmgr.sync import DraftManager, SyncEngine

__all__ = [
    # High-level
    "GistManager",
    "SyncEngine",
    "DraftManager",
    "SessionController",
    "Event",
    "Pane",
    "StatusMessage",
    # Storage
    "LocalStore",
    "GistSnapshot",
    # Auth / config
    "AuthInfo",
    "OAuthClient",
    "authenticate",
    "Config",
    "init_config",
    "GistController",
    # Models
    "Gist",
    "GistFile",
    "GistStatus",
    "Visibility",
    "RemoteGist",
    "RemoteFile",
    "RefreshResult",
    "PublishResult",
    # Errors
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
]
