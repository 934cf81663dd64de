"""Typed records stored in the local store, with explicit (de)serialization."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Optional

from gistmgr.errors import StorageError

from .gist import Gist, GistFile, GistStatus, Visibility

COLLECTION_CONTENT: str = "gist_content_list"
COLLECTION_DRAFTED_GISTS: str = "drafted_gists"

COLLECTIONS: tuple[str, ...] = (COLLECTION_CONTENT, COLLECTION_DRAFTED_GISTS)


@dataclass(slots=True)
class ContentRecord:
    """One cached (or drafted) gist file."""

    id: str
    gist_id: str = ""
    title: str = ""
    desc: str = ""
    raw_url: str = ""
    updated_at: str = ""
    content: Optional[str] = None
    draft: bool = False

    def to_doc(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_doc(cls, doc: dict[str, Any]) -> ContentRecord:
        return cls(
            id=_str_field(doc, "id"),
            gist_id=_str_field(doc, "gist_id"),
            title=_str_field(doc, "title"),
            desc=_str_field(doc, "desc"),
            raw_url=_str_field(doc, "raw_url"),
            updated_at=_str_field(doc, "updated_at"),
            content=_opt_str_field(doc, "content"),
            draft=_bool_field(doc, "draft"),
        )

    @classmethod
    def from_file(cls, f: GistFile) -> ContentRecord:
        return cls(
            id=f.id,
            gist_id=f.gist_id,
            title=f.title,
            desc=f.desc,
            raw_url=f.raw_url,
            updated_at=f.updated_at,
            content=f.content,
            draft=f.draft,
        )

    def to_file(self, *, stale: bool = False) -> GistFile:
        return GistFile(
            id=self.id,
            gist_id=self.gist_id,
            title=self.title,
            desc=self.desc,
            raw_url=self.raw_url,
            updated_at=self.updated_at,
            content=self.content,
            draft=self.draft,
            stale=stale,
        )


@dataclass(slots=True)
class DraftGistRecord:
    """A gist that only exists locally."""

    id: str
    description: str = ""
    status: str = GistStatus.DRAFTED.value
    visibility: str = Visibility.SECRET.value
    updated_at: str = ""

    def to_doc(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_doc(cls, doc: dict[str, Any]) -> DraftGistRecord:
        return cls(
            id=_str_field(doc, "id"),
            description=_str_field(doc, "description"),
            status=_str_field(doc, "status") or GistStatus.DRAFTED.value,
            visibility=_str_field(doc, "visibility") or Visibility.SECRET.value,
            updated_at=_str_field(doc, "updated_at"),
        )

    @classmethod
    def from_gist(cls, gist: Gist) -> DraftGistRecord:
        return cls(
            id=gist.id,
            description=gist.name,
            status=gist.status.value,
            visibility=gist.visibility.value,
            updated_at=gist.updated_at,
        )

    def to_gist(self) -> Gist:
        try:
            visibility = Visibility(self.visibility)
        except ValueError:
            visibility = Visibility.SECRET
        return Gist(
            id=self.id,
            name=self.description,
            status=GistStatus.DRAFTED,
            visibility=visibility,
            updated_at=self.updated_at,
        )


def _str_field(doc: dict[str, Any], name: str) -> str:
    value = doc.get(name)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise StorageError(
            f"Stored field has the wrong type: {name}",
            details={"field": name, "type": type(value).__name__},
        )
    return value


def _opt_str_field(doc: dict[str, Any], name: str) -> Optional[str]:
    if doc.get(name) is None:
        return None
    return _str_field(doc, name)


def _bool_field(doc: dict[str, Any], name: str) -> bool:
    value = doc.get(name)
    if value is None:
        return False
    # sqlite JSON keeps booleans, but older rows may hold 0/1.
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    raise StorageError(
        f"Stored field has the wrong type: {name}",
        details={"field": name, "type": type(value).__name__},
    )
