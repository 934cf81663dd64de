"""Public model exports for gistmgr."""

from __future__ import annotations

from .gist import Gist, GistFile, GistStatus, Visibility
from .records import (
    COLLECTION_CONTENT,
    COLLECTION_DRAFTED_GISTS,
    COLLECTIONS,
    ContentRecord,
    DraftGistRecord,
)
from .remote import RemoteFile, RemoteGist
from .results import PublishResult, RefreshResult

__all__ = [
    "Gist",
    "GistFile",
    "GistStatus",
    "Visibility",
    "RemoteGist",
    "RemoteFile",
    "ContentRecord",
    "DraftGistRecord",
    "COLLECTION_CONTENT",
    "COLLECTION_DRAFTED_GISTS",
    "COLLECTIONS",
    "RefreshResult",
    "PublishResult",
]
