"""In-memory gist table and file index shared by the sync engine and drafts."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional

from gistmgr.errors import ConsistencyError
from gistmgr.models import Gist, GistFile


@dataclass(slots=True)
class GistSnapshot:
    """
    Authoritative in-memory mapping Gist -> ordered files for one session.

    Indexes:
        - gists_by_id
        - files_by_id
        - file_ids_by_gist_id (insertion order is display order)

    Everything is keyed by identifier only; Gist/GistFile values are mutable.
    """

    gists_by_id: dict[str, Gist] = field(default_factory=dict)
    files_by_id: dict[str, GistFile] = field(default_factory=dict)
    file_ids_by_gist_id: dict[str, list[str]] = field(default_factory=dict)

    def clone(self) -> GistSnapshot:
        """Copy this snapshot (entries are copied, not shared)."""
        return GistSnapshot(
            gists_by_id={k: replace(v) for k, v in self.gists_by_id.items()},
            files_by_id={k: replace(v) for k, v in self.files_by_id.items()},
            file_ids_by_gist_id={k: list(v) for k, v in self.file_ids_by_gist_id.items()},
        )

    def replace_with(self, other: GistSnapshot) -> None:
        """Swap in the content of another snapshot (used at the end of a refresh)."""
        self.gists_by_id = other.gists_by_id
        self.files_by_id = other.files_by_id
        self.file_ids_by_gist_id = other.file_ids_by_gist_id

    # ----------------------------
    # Query helpers
    # ----------------------------
    def has_gist(self, gist_id: str) -> bool:
        return gist_id in self.gists_by_id

    def has_file(self, file_id: str) -> bool:
        return file_id in self.files_by_id

    def get_gist(self, gist_id: str) -> Gist:
        gist = self.gists_by_id.get(gist_id)
        if gist is None:
            raise ConsistencyError("Gist is not loaded", details={"gist_id": gist_id})
        return gist

    def get_file(self, file_id: str) -> GistFile:
        f = self.files_by_id.get(file_id)
        if f is None:
            raise ConsistencyError("File is not loaded", details={"file_id": file_id})
        return f

    def files_of(self, gist_id: str) -> list[GistFile]:
        ids = self.file_ids_by_gist_id.get(gist_id, [])
        return [self.files_by_id[fid] for fid in ids if fid in self.files_by_id]

    def find_file_by_title(self, gist_id: str, title: str) -> Optional[GistFile]:
        for f in self.files_of(gist_id):
            if f.title == title:
                return f
        return None

    def sorted_gists(self) -> list[Gist]:
        """Gists ordered by name (ties broken by id) for deterministic selection."""
        return sorted(self.gists_by_id.values(), key=lambda g: (g.name, g.id))

    # ----------------------------
    # Mutations
    # ----------------------------
    def put_gist(self, gist: Gist) -> None:
        self.gists_by_id[gist.id] = gist
        self.file_ids_by_gist_id.setdefault(gist.id, [])

    def remove_gist(self, gist_id: str) -> list[GistFile]:
        """Remove a gist and all its files. Returns the removed files."""
        self.get_gist(gist_id)
        removed = self.files_of(gist_id)
        for f in removed:
            self.files_by_id.pop(f.id, None)
        self.file_ids_by_gist_id.pop(gist_id, None)
        self.gists_by_id.pop(gist_id, None)
        return removed

    def add_file(self, f: GistFile) -> None:
        self.get_gist(f.gist_id)
        self.files_by_id[f.id] = f
        ids = self.file_ids_by_gist_id.setdefault(f.gist_id, [])
        if f.id not in ids:
            ids.append(f.id)

    def remove_file(self, file_id: str) -> GistFile:
        f = self.get_file(file_id)
        ids = self.file_ids_by_gist_id.get(f.gist_id)
        if ids and file_id in ids:
            ids.remove(file_id)
        del self.files_by_id[file_id]
        return f

    def rekey_gist(self, old_id: str, new_gist: Gist) -> None:
        """
        Replace the key of a gist in one step (draft UUID -> GitHub id).

        The old key is removed and every owned file is re-pointed at the new id.
        """
        self.get_gist(old_id)
        if new_gist.id != old_id and new_gist.id in self.gists_by_id:
            raise ConsistencyError(
                "Target gist id already loaded",
                details={"old_id": old_id, "new_id": new_gist.id},
            )

        file_ids = self.file_ids_by_gist_id.pop(old_id, [])
        del self.gists_by_id[old_id]
        for fid in file_ids:
            f = self.files_by_id.get(fid)
            if f is not None:
                f.gist_id = new_gist.id

        self.gists_by_id[new_gist.id] = new_gist
        self.file_ids_by_gist_id[new_gist.id] = file_ids
