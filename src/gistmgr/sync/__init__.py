"""Reconciliation engine and draft lifecycle."""

from __future__ import annotations

from .drafts import PLACEHOLDER_CONTENT, DraftManager
from .engine import SyncEngine

__all__ = ["SyncEngine", "DraftManager", "PLACEHOLDER_CONTENT"]
