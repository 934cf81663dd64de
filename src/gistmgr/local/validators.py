"""Validation helpers run before any storage or network call."""

from __future__ import annotations

from gistmgr.errors import ValidationError

from .snapshot import GistSnapshot


def validate_not_empty(value: str, what: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{what} must not be empty")


def validate_file_title(title: str) -> None:
    validate_not_empty(title, "File name")
    if "/" in title or "\\" in title:
        raise ValidationError(f"File name must not contain path separators: {title}")


def validate_unique_title(
    snapshot: GistSnapshot,
    gist_id: str,
    title: str,
    *,
    ignore_file_id: str | None = None,
) -> None:
    existing = snapshot.find_file_by_title(gist_id, title)
    if existing is not None and existing.id != ignore_file_id:
        raise ValidationError(
            f"A file named {title!r} already exists in this gist",
            details={"gist_id": gist_id, "title": title},
        )


def validate_has_files(snapshot: GistSnapshot, gist_id: str) -> None:
    if not snapshot.files_of(gist_id):
        raise ValidationError(
            "Gist has no files to upload",
            details={"gist_id": gist_id},
        )
