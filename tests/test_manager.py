import os
import tempfile
import unittest

from gist_fakes import FakeController

from gistmgr.errors import InvalidStateError, NetworkError, StorageError
from gistmgr.manager import GistManager


class TestGistManager(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self._tmp.name, "gistmgr.db")
        self.ctrl = FakeController()
        self.ctrl.add_gist("g1", "Notes", {"a.md": "A"})

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_open_runs_first_refresh(self) -> None:
        mgr = GistManager.from_controller(self.ctrl)
        try:
            result = mgr.open(self.db_path)
            self.assertEqual(result.published, 1)
            self.assertEqual([g.id for g in mgr.sync.sorted_gists()], ["g1"])
            self.assertTrue(mgr.is_open)
        finally:
            mgr.close()

    def test_engines_require_open(self) -> None:
        mgr = GistManager.from_controller(self.ctrl)
        with self.assertRaises(InvalidStateError):
            _ = mgr.sync
        with self.assertRaises(InvalidStateError):
            _ = mgr.drafts

    def test_engines_share_one_lock(self) -> None:
        with GistManager.from_controller(self.ctrl) as mgr:
            mgr.open(self.db_path, refresh=False)
            self.assertIs(mgr.sync._lock, mgr.drafts._lock)
            self.assertEqual(self.ctrl.calls, [])

    def test_close_is_idempotent_and_final(self) -> None:
        mgr = GistManager.from_controller(self.ctrl)
        mgr.open(self.db_path)
        mgr.close()
        mgr.close()

        self.assertFalse(mgr.is_open)
        with self.assertRaises(InvalidStateError):
            _ = mgr.sync
        with self.assertRaises(InvalidStateError):
            mgr.open(self.db_path)

    def test_open_twice_is_rejected(self) -> None:
        with GistManager.from_controller(self.ctrl) as mgr:
            mgr.open(self.db_path)
            with self.assertRaises(InvalidStateError):
                mgr.open(self.db_path)

    def test_context_manager_closes_store(self) -> None:
        with GistManager.from_controller(self.ctrl) as mgr:
            mgr.open(self.db_path)
        self.assertFalse(mgr.is_open)

    def test_unusable_store_is_fatal(self) -> None:
        blocker = os.path.join(self._tmp.name, "blocker")
        with open(blocker, "w", encoding="utf-8") as fp:
            fp.write("x")

        mgr = GistManager.from_controller(self.ctrl)
        with self.assertRaises(StorageError):
            mgr.open(os.path.join(blocker, "gistmgr.db"))
        self.assertFalse(mgr.is_open)

    def test_failed_first_refresh_keeps_store_open(self) -> None:
        self.ctrl.fail["list_gists"] = NetworkError("down")
        with GistManager.from_controller(self.ctrl) as mgr:
            with self.assertRaises(NetworkError):
                mgr.open(self.db_path)
            self.assertTrue(mgr.is_open)
            self.assertEqual(mgr.refresh().published, 1)

    def test_drafts_survive_a_restart(self) -> None:
        with GistManager.from_controller(self.ctrl) as mgr:
            mgr.open(self.db_path)
            gist = mgr.drafts.create_gist("Ideas")
            f = mgr.drafts.create_file(gist.id, "todo.md", "- milk")

        with GistManager.from_controller(self.ctrl) as mgr:
            result = mgr.open(self.db_path)
            self.assertEqual(result.drafted, 1)
            self.assertEqual(mgr.sync.get_content(f.id), "- milk")


if __name__ == "__main__":
    unittest.main()
