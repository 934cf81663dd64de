"""GitHub API endpoints and request limits."""

from __future__ import annotations

API_BASE: str = "https://api.github.com"

GISTS_PATH: str = "/gists"
USER_PATH: str = "/user"

# GitHub caps gist listing pages at 100 items.
PER_PAGE: int = 100

API_TIMEOUT_SEC: float = 10.0
RAW_TIMEOUT_SEC: float = 5.0


def gist_path(gist_id: str) -> str:
    return f"{GISTS_PATH}/{gist_id}"
