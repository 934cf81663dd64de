"""Local store and in-memory gist table."""

from __future__ import annotations

from .snapshot import GistSnapshot
from .store import LocalStore

__all__ = ["GistSnapshot", "LocalStore"]
