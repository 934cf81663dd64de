import unittest

import gistmgr


class TestPublicApi(unittest.TestCase):
    def test_top_level_exports_exist(self) -> None:
        self.assertTrue(hasattr(gistmgr, "GistManager"))
        self.assertTrue(hasattr(gistmgr, "SyncEngine"))
        self.assertTrue(hasattr(gistmgr, "DraftManager"))
        self.assertTrue(hasattr(gistmgr, "SessionController"))
        self.assertTrue(hasattr(gistmgr, "AuthInfo"))
        self.assertTrue(hasattr(gistmgr, "OAuthClient"))

        self.assertTrue(hasattr(gistmgr, "Gist"))
        self.assertTrue(hasattr(gistmgr, "GistFile"))
        self.assertTrue(hasattr(gistmgr, "PublishResult"))

        self.assertTrue(hasattr(gistmgr, "GistMgrError"))
        self.assertTrue(hasattr(gistmgr, "StorageError"))

    def test___all___is_defined(self) -> None:
        self.assertTrue(hasattr(gistmgr, "__all__"))
        self.assertIn("GistManager", gistmgr.__all__)
        self.assertIn("GistMgrError", gistmgr.__all__)
        for name in gistmgr.__all__:
            self.assertTrue(hasattr(gistmgr, name), name)


if __name__ == "__main__":
    unittest.main()
