"""Remote (GitHub) gist payloads as seen by the controller."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(slots=True)
class RemoteFile:
    filename: str
    raw_url: str = ""
    content: Optional[str] = None


@dataclass(slots=True)
class RemoteGist:
    """A gist as returned by the GitHub API (list/create/edit)."""

    id: str
    description: str
    public: bool
    updated_at: str
    files: list[RemoteFile] = field(default_factory=list)

    def file_by_name(self, filename: str) -> Optional[RemoteFile]:
        for f in self.files:
            if f.filename == filename:
                return f
        return None
