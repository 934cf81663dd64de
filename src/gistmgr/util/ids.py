from __future__ import annotations

import uuid


def new_uuid() -> str:
    """Generate a UUID4 string."""
    return str(uuid.uuid4())


def new_gist_id() -> str:
    """Generate a local id for a drafted gist (replaced by GitHub's id on publish)."""
    return new_uuid()


def new_file_id() -> str:
    """Generate a file id; it stays the same across edits and publish."""
    return new_uuid()
