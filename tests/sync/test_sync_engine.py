import os
import tempfile
import unittest

from gist_fakes import FakeController

from gistmgr.errors import NetworkError, NotFoundError
from gistmgr.local import GistSnapshot, LocalStore
from gistmgr.models import (
    COLLECTION_CONTENT,
    COLLECTION_DRAFTED_GISTS,
    ContentRecord,
    DraftGistRecord,
    GistStatus,
    RemoteFile,
    RemoteGist,
    Visibility,
)
from gistmgr.sync import SyncEngine
from gistmgr.sync.engine import display_name


class TestSyncEngine(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.store = LocalStore.open(os.path.join(self._tmp.name, "gistmgr.db"))
        self.snapshot = GistSnapshot()
        self.ctrl = FakeController()
        self.engine = SyncEngine(self.ctrl, self.store, self.snapshot)

    def tearDown(self) -> None:
        self.store.close()
        self._tmp.cleanup()

    def _file(self, gist_id: str, title: str):
        for f in self.engine.files_of(gist_id):
            if f.title == title:
                return f
        self.fail(f"{title} not loaded")

    def _cached_urls(self, gist_id: str) -> set[str]:
        docs = self.store.find_all(COLLECTION_CONTENT, {"gist_id": gist_id, "draft": False})
        return {d["raw_url"] for d in docs}

    def test_refresh_caches_metadata_without_fetching(self) -> None:
        self.ctrl.add_gist("g1", "Notes", {"a.md": "A", "b.py": "B"}, public=True)

        result = self.engine.refresh()

        self.assertEqual(result.published, 1)
        self.assertEqual(result.inserted, 2)
        self.assertEqual(self.ctrl.calls_named("fetch_raw"), [])

        gist = self.engine.get_gist("g1")
        self.assertEqual(gist.name, "Notes")
        self.assertEqual(gist.status, GistStatus.PUBLISHED)
        self.assertEqual(gist.visibility, Visibility.PUBLIC)
        self.assertEqual([f.title for f in self.engine.files_of("g1")], ["a.md", "b.py"])
        for f in self.engine.files_of("g1"):
            self.assertIsNone(f.content)
            self.assertFalse(f.draft)

    def test_second_refresh_reuses_cache_rows(self) -> None:
        self.ctrl.add_gist("g1", "Notes", {"a.md": "A"})
        self.engine.refresh()
        first_id = self._file("g1", "a.md").id

        result = self.engine.refresh()

        self.assertEqual(result.inserted, 0)
        self.assertEqual(self._file("g1", "a.md").id, first_id)
        self.assertEqual(len(self.store.find_all(COLLECTION_CONTENT)), 1)

    def test_orphaned_rows_are_pruned(self) -> None:
        self.ctrl.add_gist("g1", "Notes", {"a.md": "A", "b.md": "B"})
        self.ctrl.add_gist("g2", "Other", {"c.md": "C"})
        self.engine.refresh()

        self.ctrl.touch_file("g1", "a.md", "A2")
        del self.ctrl.gists["g2"]
        result = self.engine.refresh()

        self.assertEqual(result.pruned, 2)
        live = {f.raw_url for f in self.ctrl.gists["g1"].files}
        self.assertEqual(self._cached_urls("g1"), live)
        self.assertEqual(self._cached_urls("g2"), set())
        self.assertFalse(self.snapshot.has_gist("g2"))

    def test_rows_without_draft_flag_are_reused_and_pruned(self) -> None:
        self.ctrl.add_gist("g1", "Notes", {"a.md": "A"})
        url = self.ctrl.gists["g1"].files[0].raw_url
        self.store.insert(
            COLLECTION_CONTENT,
            {"id": "f-old", "gist_id": "g1", "title": "a.md", "raw_url": url},
        )

        result = self.engine.refresh()

        self.assertEqual(result.inserted, 0)
        self.assertEqual(self._file("g1", "a.md").id, "f-old")
        self.assertEqual(len(self.store.find_all(COLLECTION_CONTENT, {"raw_url": url})), 1)

        del self.ctrl.gists["g1"]
        self.engine.refresh()
        self.assertEqual(self.store.find_all(COLLECTION_CONTENT), [])

    def test_pruning_keeps_draft_rows(self) -> None:
        draft = ContentRecord(id="f-draft", gist_id="d1", title="x.md", content="x", draft=True)
        self.store.insert(COLLECTION_CONTENT, draft.to_doc())

        self.engine.refresh()

        self.assertIsNotNone(self.store.find_first(COLLECTION_CONTENT, {"id": "f-draft"}))

    def test_fresh_cache_serves_content_without_network(self) -> None:
        self.ctrl.add_gist("g1", "Notes", {"a.md": "hello"})
        self.engine.refresh()
        file_id = self._file("g1", "a.md").id

        self.assertEqual(self.engine.get_content(file_id), "hello")
        self.assertEqual(len(self.ctrl.calls_named("fetch_raw")), 1)

        self.assertEqual(self.engine.get_content(file_id), "hello")
        self.assertEqual(len(self.ctrl.calls_named("fetch_raw")), 1)

        # A new session on the same store still hits the cache.
        engine2 = SyncEngine(self.ctrl, self.store, GistSnapshot())
        engine2.refresh()
        self.assertEqual(engine2.get_content(file_id), "hello")
        self.assertEqual(len(self.ctrl.calls_named("fetch_raw")), 1)

    def test_older_cache_row_is_stale_and_refetched(self) -> None:
        self.ctrl.add_gist("g1", "Notes", {"a.md": "A", "b.md": "B"})
        self.engine.refresh()
        file_id = self._file("g1", "a.md").id
        self.engine.get_content(file_id)
        old_stamp = self.store.find_first(COLLECTION_CONTENT, {"id": file_id})["updated_at"]

        # b.md changes on GitHub: the gist timestamp moves, a.md keeps its URL.
        self.ctrl.touch_file("g1", "b.md", "B2")
        result = self.engine.refresh()

        self.assertEqual(result.stale, 1)
        f = self._file("g1", "a.md")
        self.assertTrue(f.stale)
        self.assertEqual(f.id, file_id)
        # Refresh alone never moves the stored timestamp forward.
        stored = self.store.find_first(COLLECTION_CONTENT, {"id": file_id})
        self.assertEqual(stored["updated_at"], old_stamp)

        self.engine.get_content(file_id)
        self.assertEqual(len(self.ctrl.calls_named("fetch_raw")), 2)
        self.assertFalse(self._file("g1", "a.md").stale)

        self.engine.refresh()
        self.engine.get_content(file_id)
        self.assertEqual(len(self.ctrl.calls_named("fetch_raw")), 2)

    def test_drafts_are_loaded_after_remote_gists(self) -> None:
        self.ctrl.add_gist("g1", "Notes", {"a.md": "A"})
        draft_gist = DraftGistRecord(id="d1", description="Ideas", visibility="public")
        self.store.insert(COLLECTION_DRAFTED_GISTS, draft_gist.to_doc())
        self.store.insert(
            COLLECTION_CONTENT,
            ContentRecord(id="f1", gist_id="d1", title="todo.md", content="- milk", draft=True).to_doc(),
        )

        result = self.engine.refresh()

        self.assertEqual(result.drafted, 1)
        gist = self.engine.get_gist("d1")
        self.assertEqual(gist.status, GistStatus.DRAFTED)
        self.assertEqual(gist.visibility, Visibility.PUBLIC)
        self.assertEqual(self.engine.get_content("f1"), "- milk")
        self.assertEqual(self.ctrl.calls_named("fetch_raw"), [])
        self.assertEqual([g.name for g in self.engine.sorted_gists()], ["Ideas", "Notes"])

    def test_listing_failure_leaves_snapshot_untouched(self) -> None:
        self.ctrl.add_gist("g1", "Notes", {"a.md": "A"})
        self.engine.refresh()
        self.ctrl.fail["list_gists"] = NetworkError("down")

        with self.assertRaises(NetworkError):
            self.engine.refresh()

        self.assertTrue(self.snapshot.has_gist("g1"))
        self.assertEqual(len(self.engine.files_of("g1")), 1)

    def test_storage_failures_are_tolerated_after_startup(self) -> None:
        self.ctrl.add_gist("g1", "Notes", {"a.md": "A"})
        self.store.close()

        result = self.engine.refresh()

        self.assertGreater(result.storage_failures, 0)
        self.assertEqual(result.published, 1)
        file_id = self.engine.files_of("g1")[0].id
        self.assertEqual(self.engine.get_content(file_id), "A")

    def test_fetch_failure_propagates_and_keeps_file(self) -> None:
        self.ctrl.add_gist("g1", "Notes", {"a.md": "A"})
        self.engine.refresh()
        f = self._file("g1", "a.md")
        self.ctrl.fail["fetch_raw"] = NotFoundError("Not Found")

        with self.assertRaises(NotFoundError):
            self.engine.get_content(f.id)

        self.assertIsNone(self._file("g1", "a.md").content)

    def test_display_name_falls_back_to_first_file(self) -> None:
        rg = RemoteGist(
            id="g1",
            description="",
            public=False,
            updated_at="",
            files=[RemoteFile(filename="main.go")],
        )
        self.assertEqual(display_name(rg), "main.go")
        rg.files = []
        self.assertEqual(display_name(rg), "g1")


if __name__ == "__main__":
    unittest.main()
