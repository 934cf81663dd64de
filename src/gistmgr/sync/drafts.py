"""DraftManager: local-only gists/files and their one-time publish to GitHub."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

from gistmgr.errors import ConsistencyError, StorageError, ValidationError
from gistmgr.local import GistSnapshot, LocalStore
from gistmgr.local.validators import (
    validate_file_title,
    validate_has_files,
    validate_not_empty,
    validate_unique_title,
)
from gistmgr.models import (
    COLLECTION_CONTENT,
    COLLECTION_DRAFTED_GISTS,
    ContentRecord,
    DraftGistRecord,
    Gist,
    GistFile,
    GistStatus,
    PublishResult,
    RemoteFile,
    RemoteGist,
    Visibility,
)
from gistmgr.util.ids import new_file_id, new_gist_id
from gistmgr.util.time import now_stamp

from .engine import SyncEngine

logger = logging.getLogger(__name__)

# GitHub rejects blank file content (it reads as a file deletion).
PLACEHOLDER_CONTENT: str = "New File"


class DraftManager:
    """
    Create, edit, rename, delete and publish gists and files.

    Ordering rules:
        - Local-only changes persist first, then update the in-memory table,
          so a storage failure abandons the operation.
        - Changes to a published gist call GitHub first; nothing local changes
          unless that call succeeds. The in-memory table then follows GitHub and
          a later storage failure is logged and raised as StorageError.
    """

    def __init__(
        self,
        controller: Any,
        store: LocalStore,
        snapshot: GistSnapshot,
        sync: SyncEngine,
        *,
        lock: Optional[threading.RLock] = None,
    ) -> None:
        self._controller = controller
        self._store = store
        self._snapshot = snapshot
        self._sync = sync
        self._lock = lock if lock is not None else threading.RLock()

    # ----------------------------
    # Create
    # ----------------------------
    def create_gist(self, name: str, *, visibility: Visibility = Visibility.SECRET) -> Gist:
        """Create a drafted gist. No network call."""
        validate_not_empty(name, "Gist name")

        with self._lock:
            gist = Gist(
                id=new_gist_id(),
                name=name,
                status=GistStatus.DRAFTED,
                visibility=visibility,
                updated_at=now_stamp(),
            )
            self._store.insert(COLLECTION_DRAFTED_GISTS, DraftGistRecord.from_gist(gist).to_doc())
            self._snapshot.put_gist(gist)
            logger.info("Created drafted gist %r (%s)", name, gist.id)
            return gist

    def create_file(self, gist_id: str, title: str, content: str = "") -> GistFile:
        """
        Create a file in a gist.

        Published gist: the file is added on GitHub right away.
        Drafted gist: the file is stored as a draft.
        """
        validate_file_title(title)

        with self._lock:
            gist = self._snapshot.get_gist(gist_id)
            validate_unique_title(self._snapshot, gist_id, title)

            f = GistFile(
                id=new_file_id(),
                gist_id=gist.id,
                title=title,
                desc=gist.name,
                raw_url="",
                updated_at=now_stamp(),
                content=content,
                draft=True,
            )

            if gist.is_drafted:
                self._store.insert(COLLECTION_CONTENT, ContentRecord.from_file(f).to_doc())
                self._snapshot.add_file(f)
                return f

            # GitHub refuses empty files.
            body = content if content.strip() else PLACEHOLDER_CONTENT
            f.content = body
            resp = self._controller.edit_gist(gist.id, files={title: {"content": body}})
            rf = _require_remote_file(resp, title)
            f.raw_url = rf.raw_url
            f.updated_at = resp.updated_at
            f.draft = False
            gist.updated_at = resp.updated_at
            self._snapshot.add_file(f)

            self._after_remote(
                "create file",
                lambda: self._store.insert(COLLECTION_CONTENT, ContentRecord.from_file(f).to_doc()),
            )
            self._follow_siblings(gist, resp, skip_id=f.id)
            return f

    # ----------------------------
    # Edit
    # ----------------------------
    def save_file(self, file_id: str, content: str) -> GistFile:
        """Commit edited content. Non-draft files are saved to GitHub."""
        with self._lock:
            f = self._snapshot.get_file(file_id)
            gist = self._snapshot.get_gist(f.gist_id)

            if f.draft:
                stamp = now_stamp()
                self._store.update(
                    COLLECTION_CONTENT,
                    {"id": f.id},
                    {"content": content, "updated_at": stamp},
                )
                f.content = content
                f.updated_at = stamp
                return f

            if not content.strip():
                raise ValidationError(
                    "Published files cannot be emptied; delete the file instead",
                    details={"file_id": f.id},
                )

            resp = self._controller.edit_gist(gist.id, files={f.title: {"content": content}})
            rf = _require_remote_file(resp, f.title)
            f.raw_url = rf.raw_url
            f.updated_at = resp.updated_at
            f.content = content
            f.stale = False
            gist.updated_at = resp.updated_at

            self._after_remote(
                "save file",
                lambda: self._store.update(
                    COLLECTION_CONTENT,
                    {"id": f.id},
                    {"raw_url": f.raw_url, "updated_at": f.updated_at, "content": content},
                ),
            )
            self._follow_siblings(gist, resp, skip_id=f.id)
            return f

    def rename_gist(self, gist_id: str, name: str) -> Gist:
        validate_not_empty(name, "Gist name")

        with self._lock:
            gist = self._snapshot.get_gist(gist_id)

            if gist.is_drafted:
                self._store.update(COLLECTION_DRAFTED_GISTS, {"id": gist.id}, {"description": name})
                self._store.update(COLLECTION_CONTENT, {"gist_id": gist.id}, {"desc": name})
                self._rename_in_memory(gist, name)
                return gist

            resp = self._controller.edit_gist(gist.id, description=name)
            gist.updated_at = resp.updated_at
            self._rename_in_memory(gist, name)

            self._after_remote(
                "rename gist",
                lambda: self._store.update(COLLECTION_CONTENT, {"gist_id": gist.id}, {"desc": name}),
            )
            self._follow_siblings(gist, resp)
            return gist

    def rename_file(self, file_id: str, title: str) -> GistFile:
        validate_file_title(title)

        with self._lock:
            f = self._snapshot.get_file(file_id)
            gist = self._snapshot.get_gist(f.gist_id)
            if title == f.title:
                return f
            validate_unique_title(self._snapshot, gist.id, title, ignore_file_id=f.id)

            if f.draft or gist.is_drafted:
                self._store.update(COLLECTION_CONTENT, {"id": f.id}, {"title": title})
                f.title = title
                return f

            resp = self._controller.edit_gist(gist.id, files={f.title: {"filename": title}})
            rf = _require_remote_file(resp, title)
            f.title = title
            f.raw_url = rf.raw_url
            f.updated_at = resp.updated_at
            gist.updated_at = resp.updated_at

            self._after_remote(
                "rename file",
                lambda: self._store.update(
                    COLLECTION_CONTENT,
                    {"id": f.id},
                    {"title": title, "raw_url": f.raw_url, "updated_at": f.updated_at},
                ),
            )
            self._follow_siblings(gist, resp, skip_id=f.id)
            return f

    # ----------------------------
    # Delete
    # ----------------------------
    def delete_file(self, file_id: str) -> None:
        with self._lock:
            f = self._snapshot.get_file(file_id)
            gist = self._snapshot.get_gist(f.gist_id)

            if f.draft or gist.is_drafted:
                self._store.delete(COLLECTION_CONTENT, {"id": f.id})
                self._snapshot.remove_file(f.id)
                return

            if len(self._snapshot.files_of(gist.id)) <= 1:
                raise ValidationError(
                    "A published gist needs at least one file; delete the gist instead",
                    details={"gist_id": gist.id, "file_id": f.id},
                )

            # GitHub deletes a file when its entry is null.
            resp = self._controller.edit_gist(gist.id, files={f.title: None})
            gist.updated_at = resp.updated_at
            self._snapshot.remove_file(f.id)

            self._after_remote(
                "delete file",
                lambda: self._store.delete(COLLECTION_CONTENT, {"id": f.id}),
            )
            self._follow_siblings(gist, resp)

    def delete_gist(self, gist_id: str) -> None:
        with self._lock:
            gist = self._snapshot.get_gist(gist_id)

            if gist.is_drafted:
                self._store.delete(COLLECTION_DRAFTED_GISTS, {"id": gist.id})
                self._store.delete(COLLECTION_CONTENT, {"gist_id": gist.id})
                self._snapshot.remove_gist(gist.id)
                logger.info("Deleted drafted gist %r", gist.name)
                return

            self._controller.delete_gist(gist.id)
            self._snapshot.remove_gist(gist.id)
            logger.info("Deleted gist %r (%s)", gist.name, gist.id)

            self._after_remote(
                "delete gist",
                lambda: self._store.delete(COLLECTION_CONTENT, {"gist_id": gist.id}),
            )

    # ----------------------------
    # Publish
    # ----------------------------
    def publish(self, gist_id: str) -> PublishResult:
        """
        Upload a whole gist (drafted or published with drafted files).

        Nothing local changes unless the GitHub call succeeds. A drafted gist
        gets GitHub's id; its key in the in-memory table is replaced in one
        step. File ids never change.

        Raises:
            ValidationError: if the gist has no files or a file is blank.
            RemoteError/NetworkError: if GitHub cannot be reached or refuses.
        """
        with self._lock:
            gist = self._snapshot.get_gist(gist_id)
            validate_has_files(self._snapshot, gist_id)
            files = self._snapshot.files_of(gist_id)

            contents: dict[str, str] = {}
            for f in files:
                body = (f.content or "") if f.draft else self._sync.get_content(f.id)
                if not body.strip():
                    raise ValidationError(
                        f"File {f.title!r} is empty",
                        details={"file_id": f.id},
                    )
                contents[f.title] = body

            created = gist.is_drafted
            if created:
                resp = self._controller.create_gist(
                    gist.name,
                    gist.visibility.is_public,
                    contents,
                )
            else:
                resp = self._controller.edit_gist(
                    gist.id,
                    files={title: {"content": body} for title, body in contents.items()},
                )

            # GitHub accepted the upload; local rewrite starts here.
            result = PublishResult(old_gist_id=gist.id, gist_id=resp.id, created=created)
            failures: list[str] = []

            if created:
                try:
                    self._store.delete(COLLECTION_DRAFTED_GISTS, {"id": gist.id})
                except StorageError as exc:
                    failures.append(str(exc))

            for f in files:
                rf = resp.file_by_name(f.title)
                if rf is None:
                    # Kept as a draft of the uploaded gist so it can be published again.
                    result.unmatched_titles.append(f.title)
                    if created:
                        try:
                            self._store.update(COLLECTION_CONTENT, {"id": f.id}, {"gist_id": resp.id})
                        except StorageError as exc:
                            failures.append(str(exc))
                    continue

                f.gist_id = resp.id
                f.raw_url = rf.raw_url
                f.updated_at = resp.updated_at
                f.content = contents[f.title]
                f.draft = False
                f.stale = False
                result.updated_file_ids.append(f.id)

                try:
                    self._write_file_record(f)
                except StorageError as exc:
                    failures.append(str(exc))

            if created:
                published = Gist(
                    id=resp.id,
                    name=gist.name,
                    status=GistStatus.PUBLISHED,
                    visibility=Visibility.from_public_flag(resp.public),
                    updated_at=resp.updated_at,
                )
                self._snapshot.rekey_gist(gist.id, published)
            else:
                gist.updated_at = resp.updated_at

            if result.unmatched_titles:
                logger.error(
                    "GitHub response lacks uploaded files %s for gist %s",
                    result.unmatched_titles,
                    resp.id,
                )
            if failures:
                result.storage_error = "; ".join(failures)
                logger.error("Published %s but the local cache is behind: %s", resp.id, result.storage_error)

            logger.info("Published gist %r as %s (%d files)", gist.name, resp.id, len(result.updated_file_ids))
            return result

    # ----------------------------
    # Internals
    # ----------------------------
    def _write_file_record(self, f: GistFile) -> None:
        fields = {
            "gist_id": f.gist_id,
            "raw_url": f.raw_url,
            "updated_at": f.updated_at,
            "content": f.content,
            "draft": False,
        }
        if self._store.update(COLLECTION_CONTENT, {"id": f.id}, fields) == 0:
            self._store.insert(COLLECTION_CONTENT, ContentRecord.from_file(f).to_doc())

    def _rename_in_memory(self, gist: Gist, name: str) -> None:
        gist.name = name
        for f in self._snapshot.files_of(gist.id):
            f.desc = name

    def _follow_siblings(
        self,
        gist: Gist,
        resp: RemoteGist,
        *,
        skip_id: Optional[str] = None,
    ) -> None:
        """
        Carry a gist-level edit over to the other files of the gist.

        Their content did not change, so the cached rows take the new raw URL
        and timestamp instead of turning stale on the next refresh.
        """
        for f in self._snapshot.files_of(gist.id):
            if f.id == skip_id or f.draft:
                continue
            rf = resp.file_by_name(f.title)
            if rf is None or not rf.raw_url:
                continue
            if f.stale:
                # Content was never re-read since GitHub changed it; keep it stale.
                continue
            f.raw_url = rf.raw_url
            f.updated_at = resp.updated_at
            try:
                self._store.update(
                    COLLECTION_CONTENT,
                    {"id": f.id},
                    {"raw_url": f.raw_url, "updated_at": f.updated_at},
                )
            except StorageError as exc:
                logger.warning("Could not update cached row of %s: %s", f.id, exc)

    def _after_remote(self, action: str, write: Callable[[], Any]) -> None:
        try:
            write()
        except StorageError as exc:
            logger.error("GitHub applied %s but the local store failed: %s", action, exc)
            raise


def _require_remote_file(resp: RemoteGist, title: str) -> RemoteFile:
    rf = resp.file_by_name(title)
    if rf is None:
        raise ConsistencyError(
            "GitHub response does not contain the file",
            details={"gist_id": resp.id, "title": title},
        )
    return rf
