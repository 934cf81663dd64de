"""SyncEngine: reconcile GitHub gists with the local cache and drafts."""

from __future__ import annotations

import logging
import threading
from typing import Any, Optional

from gistmgr.errors import StorageError
from gistmgr.local import GistSnapshot, LocalStore
from gistmgr.models import (
    COLLECTION_CONTENT,
    COLLECTION_DRAFTED_GISTS,
    ContentRecord,
    DraftGistRecord,
    Gist,
    GistFile,
    GistStatus,
    RefreshResult,
    RemoteFile,
    RemoteGist,
    Visibility,
)
from gistmgr.util.ids import new_file_id
from gistmgr.util.time import is_fresh

logger = logging.getLogger(__name__)


class SyncEngine:
    """
    Builds the in-memory Gist -> files mapping and serves file content.

    A refresh runs in a fixed order: remote gists are reconciled and persisted
    first, then orphaned cache rows are pruned (this needs the complete set of
    live raw URLs), then drafts are loaded.

    Content is fetched lazily by get_content(), never during refresh().
    """

    def __init__(
        self,
        controller: Any,
        store: LocalStore,
        snapshot: GistSnapshot,
        *,
        lock: Optional[threading.RLock] = None,
    ) -> None:
        self._controller = controller
        self._store = store
        self._snapshot = snapshot
        self._lock = lock if lock is not None else threading.RLock()

    # ----------------------------
    # Read APIs
    # ----------------------------
    def sorted_gists(self) -> list[Gist]:
        with self._lock:
            return self._snapshot.sorted_gists()

    def files_of(self, gist_id: str) -> list[GistFile]:
        with self._lock:
            return self._snapshot.files_of(gist_id)

    def get_gist(self, gist_id: str) -> Gist:
        with self._lock:
            return self._snapshot.get_gist(gist_id)

    def get_file(self, file_id: str) -> GistFile:
        with self._lock:
            return self._snapshot.get_file(file_id)

    # ----------------------------
    # Reconciliation
    # ----------------------------
    def refresh(self) -> RefreshResult:
        """
        Run one reconciliation pass.

        Raises:
            RemoteError/NetworkError: if listing gists fails (snapshot untouched).
        """
        remote_gists = self._controller.list_gists()

        with self._lock:
            result = RefreshResult()
            fresh = GistSnapshot()
            live_urls: set[str] = set()

            for rg in remote_gists:
                fresh.put_gist(_published_gist(rg))
                for rf in rg.files:
                    f = self._reconcile_file(rg, rf, result)
                    if rf.raw_url:
                        live_urls.add(rf.raw_url)
                    fresh.add_file(f)
                result.published += 1

            result.pruned = self._prune_orphans(live_urls, result)

            for f in self._load_published_drafts(fresh, result):
                fresh.add_file(f)

            for gist, files in self._load_drafts(result):
                fresh.put_gist(gist)
                for f in files:
                    fresh.add_file(f)
                result.drafted += 1

            self._snapshot.replace_with(fresh)

        logger.info(
            "Refresh done: %d published, %d drafted, %d new, %d stale, %d pruned",
            result.published,
            result.drafted,
            result.inserted,
            result.stale,
            result.pruned,
        )
        return result

    def get_content(self, file_id: str) -> str:
        """
        Return file content, fetching the raw URL only when needed.

        Drafts never touch the network. A published file is served from the
        cache when the cached row is present, fresh and holds content.

        Raises:
            ConsistencyError: if the file is not loaded.
            NetworkError/RemoteError: if the raw fetch fails.
        """
        with self._lock:
            f = self._snapshot.get_file(file_id)
            if f.draft:
                return f.content or ""

            record = self._lookup_cached(f)
            if (
                record is not None
                and record.content is not None
                and not f.stale
                and is_fresh(record.updated_at, f.updated_at)
            ):
                f.content = record.content
                return record.content

            logger.debug("Fetching %s (%s)", f.title, f.raw_url)
            content = self._controller.fetch_raw(f.raw_url)

            f.content = content
            f.stale = False
            if record is not None and not is_fresh(f.updated_at, record.updated_at):
                f.updated_at = record.updated_at
            self._store_content(f)
            return content

    # ----------------------------
    # Internals
    # ----------------------------
    def _reconcile_file(
        self,
        rg: RemoteGist,
        rf: RemoteFile,
        result: RefreshResult,
    ) -> GistFile:
        lookup_failed = False
        record: Optional[ContentRecord] = None
        try:
            doc = self._store.find_first(
                COLLECTION_CONTENT,
                {"raw_url": rf.raw_url, "draft": False},
            )
            if doc is not None:
                record = ContentRecord.from_doc(doc)
        except StorageError as exc:
            logger.warning("Cache lookup failed for %s: %s", rf.raw_url, exc)
            result.storage_failures += 1
            lookup_failed = True

        desc = rg.description

        if record is None:
            record = ContentRecord(
                id=new_file_id(),
                gist_id=rg.id,
                title=rf.filename,
                desc=desc,
                raw_url=rf.raw_url,
                updated_at=rg.updated_at,
                content=None,
                draft=False,
            )
            if not lookup_failed:
                try:
                    self._store.insert(COLLECTION_CONTENT, record.to_doc())
                    result.inserted += 1
                except StorageError as exc:
                    logger.warning("Could not cache %s: %s", rf.raw_url, exc)
                    result.storage_failures += 1
            return record.to_file()

        changes: dict[str, Any] = {}
        if record.gist_id != rg.id:
            changes["gist_id"] = rg.id
        if record.title != rf.filename:
            changes["title"] = rf.filename
        if record.desc != desc:
            changes["desc"] = desc
        if changes:
            try:
                self._store.update(COLLECTION_CONTENT, {"id": record.id}, changes)
            except StorageError as exc:
                logger.warning("Could not update cached metadata of %s: %s", record.id, exc)
                result.storage_failures += 1

        f = record.to_file()
        f.gist_id = rg.id
        f.title = rf.filename
        f.desc = desc
        if not is_fresh(record.updated_at, rg.updated_at):
            f.stale = True
            f.updated_at = rg.updated_at
            result.stale += 1
        return f

    def _prune_orphans(self, live_urls: set[str], result: RefreshResult) -> int:
        try:
            docs = self._store.find_all(COLLECTION_CONTENT, {"draft": False})
        except StorageError as exc:
            logger.warning("Skipping orphan pruning: %s", exc)
            result.storage_failures += 1
            return 0

        orphan_urls: set[str] = set()
        for doc in docs:
            raw_url = doc.get("raw_url")
            if not isinstance(raw_url, str):
                raw_url = ""
            if raw_url not in live_urls:
                orphan_urls.add(raw_url)

        pruned = 0
        for raw_url in sorted(orphan_urls):
            try:
                pruned += self._store.delete(
                    COLLECTION_CONTENT,
                    {"raw_url": raw_url, "draft": False},
                )
            except StorageError as exc:
                logger.warning("Could not prune %s: %s", raw_url, exc)
                result.storage_failures += 1
        return pruned

    def _load_published_drafts(
        self,
        fresh: GistSnapshot,
        result: RefreshResult,
    ) -> list[GistFile]:
        """Draft files left in a gist that is already on GitHub."""
        try:
            docs = self._store.find_all(COLLECTION_CONTENT, {"draft": True})
        except StorageError as exc:
            logger.warning("Could not load draft files: %s", exc)
            result.storage_failures += 1
            return []

        files: list[GistFile] = []
        for doc in docs:
            try:
                f = ContentRecord.from_doc(doc).to_file()
            except StorageError as exc:
                logger.warning("Skipping unreadable draft file %s: %s", doc.get("id"), exc)
                result.storage_failures += 1
                continue
            if not fresh.has_gist(f.gist_id):
                continue
            if f.content is None:
                f.content = ""
            files.append(f)
        return files

    def _load_drafts(self, result: RefreshResult) -> list[tuple[Gist, list[GistFile]]]:
        try:
            docs = self._store.find_all(COLLECTION_DRAFTED_GISTS)
        except StorageError as exc:
            logger.warning("Could not load drafted gists: %s", exc)
            result.storage_failures += 1
            return []

        drafts: list[tuple[Gist, list[GistFile]]] = []
        for doc in docs:
            try:
                gist = DraftGistRecord.from_doc(doc).to_gist()
                file_docs = self._store.find_all(
                    COLLECTION_CONTENT,
                    {"gist_id": gist.id, "draft": True},
                )
                files = [ContentRecord.from_doc(d).to_file() for d in file_docs]
            except StorageError as exc:
                logger.warning("Skipping unreadable drafted gist %s: %s", doc.get("id"), exc)
                result.storage_failures += 1
                continue

            for f in files:
                if f.content is None:
                    f.content = ""
            drafts.append((gist, files))
        return drafts

    def _lookup_cached(self, f: GistFile) -> Optional[ContentRecord]:
        try:
            doc = self._store.find_first(
                COLLECTION_CONTENT,
                {"raw_url": f.raw_url, "id": f.id},
            )
            return ContentRecord.from_doc(doc) if doc is not None else None
        except StorageError as exc:
            logger.warning("Cache lookup failed for %s, treating as absent: %s", f.id, exc)
            return None

    def _store_content(self, f: GistFile) -> None:
        fields = {
            "content": f.content,
            "updated_at": f.updated_at,
            "raw_url": f.raw_url,
        }
        try:
            matched = self._store.update(COLLECTION_CONTENT, {"id": f.id}, fields)
            if matched == 0:
                self._store.insert(COLLECTION_CONTENT, ContentRecord.from_file(f).to_doc())
        except StorageError as exc:
            logger.warning("Could not cache content of %s: %s", f.id, exc)


def _published_gist(rg: RemoteGist) -> Gist:
    return Gist(
        id=rg.id,
        name=display_name(rg),
        status=GistStatus.PUBLISHED,
        visibility=Visibility.from_public_flag(rg.public),
        updated_at=rg.updated_at,
    )


def display_name(rg: RemoteGist) -> str:
    """Gist name: its description, or its first file name when undescribed."""
    if rg.description:
        return rg.description
    if rg.files:
        return rg.files[0].filename
    return rg.id
