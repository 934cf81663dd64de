"""Result models for refresh/publish operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(slots=True)
class RefreshResult:
    """Counters for one reconciliation pass."""

    published: int = 0
    drafted: int = 0
    inserted: int = 0
    stale: int = 0
    pruned: int = 0
    storage_failures: int = 0


@dataclass(slots=True)
class PublishResult:
    """Outcome of uploading a gist (draft -> published, or re-upload)."""

    old_gist_id: str
    gist_id: str
    created: bool
    updated_file_ids: list[str] = field(default_factory=list)
    unmatched_titles: list[str] = field(default_factory=list)
    storage_error: Optional[str] = None

    @property
    def id_changed(self) -> bool:
        return self.old_gist_id != self.gist_id
