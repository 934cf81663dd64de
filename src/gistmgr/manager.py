"""GistManager: application context owning the store, the gist table and the engines."""

from __future__ import annotations

import logging
import threading
from typing import Optional

from gistmgr.auth import AuthInfo
from gistmgr.controller import GistController
from gistmgr.errors import InvalidStateError
from gistmgr.local import GistSnapshot, LocalStore
from gistmgr.models import RefreshResult
from gistmgr.sync import DraftManager, SyncEngine

logger = logging.getLogger(__name__)


class GistManager:
    """
    Built once at startup and passed to the session controller.

    The store is opened exactly once by open() and closed exactly once by
    close(). SyncEngine and DraftManager share one lock, so the gist table
    has a single writer at a time.
    """

    def __init__(self, auth_info: AuthInfo) -> None:
        self._controller = GistController(auth_info)
        self._init_state()

    @classmethod
    def from_controller(cls, controller: GistController) -> "GistManager":
        """Create manager with an injected controller (useful for tests)."""
        obj = cls.__new__(cls)
        obj._controller = controller
        obj._init_state()
        return obj

    def _init_state(self) -> None:
        self._lock = threading.RLock()
        self._store: Optional[LocalStore] = None
        self._snapshot = GistSnapshot()
        self._sync: Optional[SyncEngine] = None
        self._drafts: Optional[DraftManager] = None
        self._closed = False

    @property
    def controller(self) -> GistController:
        return self._controller

    @property
    def sync(self) -> SyncEngine:
        """Return the sync engine. Requires open() first."""
        if self._sync is None:
            raise InvalidStateError("Manager is not open. Call open() first.")
        return self._sync

    @property
    def drafts(self) -> DraftManager:
        """Return the draft manager. Requires open() first."""
        if self._drafts is None:
            raise InvalidStateError("Manager is not open. Call open() first.")
        return self._drafts

    @property
    def is_open(self) -> bool:
        return self._store is not None

    def open(self, db_path: str, *, refresh: bool = True) -> Optional[RefreshResult]:
        """
        Open the local store and run the first reconciliation pass.

        Raises:
            InvalidStateError: if already open or already closed.
            StorageError: if the store cannot be opened (fatal at startup).
            RemoteError/NetworkError: if the first refresh fails. The store
                stays open and refresh() may be retried.
        """
        if self._closed:
            raise InvalidStateError("Manager was closed; build a new one.")
        if self._store is not None:
            raise InvalidStateError("Manager is already open.")

        store = LocalStore.open(db_path)
        self._store = store
        self._sync = SyncEngine(self._controller, store, self._snapshot, lock=self._lock)
        self._drafts = DraftManager(
            self._controller,
            store,
            self._snapshot,
            self._sync,
            lock=self._lock,
        )
        logger.info("Opened %s", db_path)

        if not refresh:
            return None
        return self._sync.refresh()

    def refresh(self) -> RefreshResult:
        return self.sync.refresh()

    def close(self) -> None:
        """Close the store. Safe to call more than once; only the first call acts."""
        if self._closed:
            return
        self._closed = True

        store = self._store
        self._store = None
        self._sync = None
        self._drafts = None
        if store is not None:
            with self._lock:
                store.close()
            logger.info("Closed local store")

    def __enter__(self) -> "GistManager":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
