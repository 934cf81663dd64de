"""Data model for gists and their files."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class GistStatus(str, Enum):
    """Gist lifecycle status. DRAFTED -> PUBLISHED only."""

    DRAFTED = "drafted"
    PUBLISHED = "published"


class Visibility(str, Enum):
    PUBLIC = "public"
    SECRET = "secret"

    @classmethod
    def from_public_flag(cls, public: bool) -> Visibility:
        return cls.PUBLIC if public else cls.SECRET

    @property
    def is_public(self) -> bool:
        return self is Visibility.PUBLIC


@dataclass(slots=True)
class Gist:
    """
    A named collection of files.

    Notes:
        - Drafted gists use a locally generated UUID as id.
        - Published gists use GitHub's gist id; it is replaced exactly once,
          when the draft is uploaded for the first time.
    """

    id: str
    name: str
    status: GistStatus
    visibility: Visibility = Visibility.SECRET
    updated_at: str = ""

    @property
    def is_drafted(self) -> bool:
        return self.status is GistStatus.DRAFTED

    @property
    def is_published(self) -> bool:
        return self.status is GistStatus.PUBLISHED


@dataclass(slots=True)
class GistFile:
    """
    A single named content blob belonging to one gist.

    Notes:
        - `id` is local and never changes (not across edits, not on publish).
        - `raw_url` changes on every remote edit; it is empty while drafted.
        - `content` is None until fetched (always set for drafts).
    """

    id: str
    gist_id: str
    title: str
    desc: str = ""
    raw_url: str = ""
    updated_at: str = ""
    content: Optional[str] = None
    draft: bool = False
    stale: bool = False
