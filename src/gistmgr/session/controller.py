"""SessionController: turns abstract UI events into engine calls."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Iterator, Optional

from gistmgr.errors import GistMgrError, user_message
from gistmgr.models import Gist, GistFile, Visibility
from gistmgr.util.lang import PLAIN_TEXT, guess_language

logger = logging.getLogger(__name__)


class Pane(IntEnum):
    GISTS = 0
    FILES = 1
    EDITOR = 2


class Event(str, Enum):
    UP = "up"
    DOWN = "down"
    NEXT_PANE = "next_pane"
    PREVIOUS_PANE = "previous_pane"
    ENTER = "enter"
    CREATE = "create"
    DELETE = "delete"
    RENAME = "rename"
    UPLOAD = "upload"
    SAVE = "save"
    REFRESH = "refresh"
    QUIT = "quit"


class StatusLevel(str, Enum):
    INFO = "info"
    ERROR = "error"


@dataclass(frozen=True)
class StatusMessage:
    """Transient message for the status line; replaced by the next event."""

    text: str
    level: StatusLevel = StatusLevel.INFO

    @property
    def is_error(self) -> bool:
        return self.level is StatusLevel.ERROR


class SessionController:
    """
    Interactive session state: focused pane, selections and status line.

    `manager` provides `sync` (SyncEngine) and `drafts` (DraftManager).
    `editor` is any object with set_text(str), get_text() -> str and
    set_language(str); it may be None for headless use.

    handle() never raises: engine errors become a StatusMessage.
    """

    def __init__(self, manager: Any, editor: Any = None) -> None:
        self._manager = manager
        self._editor = editor
        self.pane = Pane.GISTS
        self.gist_index = 0
        self.file_index = 0
        self.status: Optional[StatusMessage] = None
        self.should_exit = False
        self._inflight: set[tuple[str, str]] = set()
        self._inflight_lock = threading.Lock()

    # ----------------------------
    # Selection
    # ----------------------------
    @property
    def gists(self) -> list[Gist]:
        return self._manager.sync.sorted_gists()

    @property
    def files(self) -> list[GistFile]:
        gist = self.selected_gist
        if gist is None:
            return []
        return self._manager.sync.files_of(gist.id)

    @property
    def selected_gist(self) -> Optional[Gist]:
        gists = self.gists
        if not gists:
            return None
        self.gist_index = _clamp(self.gist_index, len(gists))
        return gists[self.gist_index]

    @property
    def selected_file(self) -> Optional[GistFile]:
        files = self.files
        if not files:
            return None
        self.file_index = _clamp(self.file_index, len(files))
        return files[self.file_index]

    def start(self) -> None:
        """Select the first gist by name and load its first file."""
        self.gist_index = 0
        self.file_index = 0
        self._guarded(self._load_editor)

    # ----------------------------
    # Event entry point
    # ----------------------------
    def handle(self, event: Event, text: Optional[str] = None, *, public: bool = False) -> bool:
        """
        Process one event to completion. Returns True when a redraw is needed.

        `text` carries the name for create and rename; `public` picks the
        visibility of a gist created from the gist list.
        """
        if self.should_exit:
            return False
        if event is Event.QUIT:
            self.should_exit = True
            return True

        handler = self._handlers(public).get(event)
        if handler is None:
            return False

        self.status = None
        return self._guarded(handler, text)

    def _handlers(self, public: bool = False) -> dict[Event, Any]:
        return {
            Event.UP: lambda text: self._move(-1),
            Event.DOWN: lambda text: self._move(1),
            Event.NEXT_PANE: lambda text: self._next_pane(),
            Event.ENTER: lambda text: self._next_pane(),
            Event.PREVIOUS_PANE: lambda text: self._previous_pane(),
            Event.CREATE: lambda text: self._create(text, public),
            Event.DELETE: lambda text: self._delete(),
            Event.RENAME: self._rename,
            Event.UPLOAD: lambda text: self._upload(),
            Event.SAVE: lambda text: self._save(),
            Event.REFRESH: lambda text: self._refresh(),
        }

    def _guarded(self, func: Any, *args: Any) -> bool:
        try:
            return bool(func(*args))
        except GistMgrError as exc:
            logger.warning("%s: %s", type(exc).__name__, exc)
            self.status = StatusMessage(user_message(exc), StatusLevel.ERROR)
            return True
        except Exception as exc:
            logger.exception("Unexpected error while handling an event")
            self.status = StatusMessage(user_message(exc), StatusLevel.ERROR)
            return True

    @contextmanager
    def _single_flight(self, action: str, target: str) -> Iterator[bool]:
        """Yield False when the same action on the same target is already running."""
        key = (action, target)
        with self._inflight_lock:
            if key in self._inflight:
                acquired = False
            else:
                self._inflight.add(key)
                acquired = True
        try:
            yield acquired
        finally:
            if acquired:
                with self._inflight_lock:
                    self._inflight.discard(key)

    # ----------------------------
    # Navigation
    # ----------------------------
    def _move(self, step: int) -> bool:
        if self.pane is Pane.GISTS:
            count = len(self.gists)
            if count == 0:
                return False
            self.gist_index = _clamp(self.gist_index + step, count)
            self.file_index = 0
        elif self.pane is Pane.FILES:
            count = len(self.files)
            if count == 0:
                return False
            self.file_index = _clamp(self.file_index + step, count)
        else:
            return False
        self._load_editor()
        return True

    def _next_pane(self) -> bool:
        if self.pane is Pane.EDITOR:
            return False
        self.pane = Pane(self.pane + 1)
        return True

    def _previous_pane(self) -> bool:
        if self.pane is Pane.GISTS:
            return False
        self.pane = Pane(self.pane - 1)
        return True

    # ----------------------------
    # Actions
    # ----------------------------
    def _create(self, text: Optional[str], public: bool = False) -> bool:
        name = text or ""
        drafts = self._manager.drafts
        if self.pane is Pane.GISTS:
            visibility = Visibility.PUBLIC if public else Visibility.SECRET
            gist = drafts.create_gist(name, visibility=visibility)
            self._select_gist(gist.id)
            self._load_editor()
            self.status = StatusMessage(f"Created draft gist {gist.name}")
            return True

        gist = self.selected_gist
        if gist is None:
            return False
        f = drafts.create_file(gist.id, name)
        self._select_file(f.id)
        self._load_editor()
        self.status = StatusMessage(f"Created file {f.title}")
        return True

    def _delete(self) -> bool:
        drafts = self._manager.drafts
        if self.pane is Pane.GISTS:
            gist = self.selected_gist
            if gist is None:
                return False
            with self._single_flight("delete", gist.id) as acquired:
                if not acquired:
                    return False
                drafts.delete_gist(gist.id)
            self.file_index = 0
            self.status = StatusMessage(f"Deleted gist {gist.name}")
        else:
            f = self.selected_file
            if f is None:
                return False
            with self._single_flight("delete", f.id) as acquired:
                if not acquired:
                    return False
                drafts.delete_file(f.id)
            self.status = StatusMessage(f"Deleted file {f.title}")

        # The clamped index now points at the adjacent item.
        self._clamp_selection()
        self._load_editor()
        return True

    def _rename(self, text: Optional[str]) -> bool:
        name = text or ""
        drafts = self._manager.drafts
        if self.pane is Pane.GISTS:
            gist = self.selected_gist
            if gist is None:
                return False
            drafts.rename_gist(gist.id, name)
            self._select_gist(gist.id)
            return True

        f = self.selected_file
        if f is None:
            return False
        with self._single_flight("rename", f.id) as acquired:
            if not acquired:
                return False
            drafts.rename_file(f.id, name)
        self._select_file(f.id)
        if self._editor is not None:
            self._editor.set_language(guess_language(f.title, f.content))
        return True

    def _upload(self) -> bool:
        gist = self.selected_gist
        if gist is None:
            return False
        with self._single_flight("publish", gist.id) as acquired:
            if not acquired:
                return False
            result = self._manager.drafts.publish(gist.id)

        self._select_gist(result.gist_id)
        if result.storage_error or result.unmatched_titles:
            self.status = StatusMessage(
                f"Uploaded {gist.name}, but the local cache could not be fully updated",
                StatusLevel.ERROR,
            )
        else:
            self.status = StatusMessage(f"Uploaded {gist.name}")
        return True

    def _save(self) -> bool:
        f = self.selected_file
        if f is None or self._editor is None:
            return False
        with self._single_flight("save", f.id) as acquired:
            if not acquired:
                return False
            self._manager.drafts.save_file(f.id, self._editor.get_text())

        if self.pane is Pane.EDITOR:
            self.pane = Pane.FILES
        self.status = StatusMessage(f"Saved {f.title}")
        return True

    def _refresh(self) -> bool:
        gist = self.selected_gist
        f = self.selected_file
        with self._single_flight("refresh", "") as acquired:
            if not acquired:
                return False
            self._manager.sync.refresh()

        if gist is not None:
            self._select_gist(gist.id)
        if f is not None:
            self._select_file(f.id)
        self._load_editor()
        return True

    # ----------------------------
    # Internals
    # ----------------------------
    def _clamp_selection(self) -> None:
        self.gist_index = _clamp(self.gist_index, len(self.gists))
        self.file_index = _clamp(self.file_index, len(self.files))

    def _select_gist(self, gist_id: str) -> None:
        for i, gist in enumerate(self.gists):
            if gist.id == gist_id:
                self.gist_index = i
                self.file_index = 0
                return

    def _select_file(self, file_id: str) -> None:
        for i, f in enumerate(self.files):
            if f.id == file_id:
                self.file_index = i
                return

    def _load_editor(self) -> bool:
        if self._editor is None:
            return False
        f = self.selected_file
        if f is None:
            self._editor.set_text("")
            self._editor.set_language(PLAIN_TEXT)
            return True

        with self._single_flight("fetch", f.id) as acquired:
            if not acquired:
                return False
            content = self._manager.sync.get_content(f.id)
        self._editor.set_text(content)
        self._editor.set_language(guess_language(f.title, content))
        return True


def _clamp(index: int, count: int) -> int:
    if count <= 0:
        return 0
    return max(0, min(index, count - 1))
