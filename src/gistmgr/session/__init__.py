"""Interactive session state machine (no terminal toolkit dependency)."""

from __future__ import annotations

from .controller import Event, Pane, SessionController, StatusLevel, StatusMessage

__all__ = ["SessionController", "Event", "Pane", "StatusMessage", "StatusLevel"]
