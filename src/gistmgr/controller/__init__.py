"""Controller exports for gistmgr."""

from __future__ import annotations

from .gist_controller import GistController

__all__ = ["GistController"]
