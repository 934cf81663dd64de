import json
import logging
import os
import stat
import tempfile
import unittest
from unittest.mock import patch

from gistmgr.config import (
    DEFAULT_THEME,
    Config,
    init_config,
    resolve_theme,
    setup_logging,
    user_config_dir,
)
from gistmgr.errors import StorageError, ValidationError


class TestConfig(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = os.path.join(self._tmp.name, "gistmgr")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _read(self) -> dict:
        with open(os.path.join(self.dir, "config.json"), encoding="utf-8") as fp:
            return json.load(fp)

    def test_first_run_writes_defaults(self) -> None:
        cfg = init_config(self.dir)

        self.assertEqual(cfg.config_path, self.dir)
        self.assertFalse(cfg.has_access_token)
        self.assertEqual(self._read()["theme"], "default")
        self.assertEqual(cfg.db_path, os.path.join(self.dir, "gistmgr.db"))

    @unittest.skipIf(os.name == "nt", "POSIX permissions")
    def test_file_is_private(self) -> None:
        init_config(self.dir)
        mode = stat.S_IMODE(os.stat(os.path.join(self.dir, "config.json")).st_mode)
        self.assertEqual(mode, 0o600)

    def test_set_rewrites_whole_file(self) -> None:
        cfg = init_config(self.dir)

        cfg.set("access_token", "ghp_abc")
        cfg.set("theme", "monokai")

        data = self._read()
        self.assertEqual(data["access_token"], "ghp_abc")
        self.assertEqual(data["theme"], "monokai")
        self.assertEqual(init_config(self.dir).access_token, "ghp_abc")

    def test_set_rejects_unknown_field_and_bad_type(self) -> None:
        cfg = init_config(self.dir)
        with self.assertRaises(ValidationError):
            cfg.set("AccessToken", "x")
        with self.assertRaises(ValidationError):
            cfg.set("theme", 3)

    def test_clear_secrets(self) -> None:
        cfg = init_config(self.dir)
        cfg.set("access_token", "ghp_abc")
        cfg.clear_secrets()
        self.assertEqual(self._read()["access_token"], "")

    def test_unknown_keys_are_ignored(self) -> None:
        os.makedirs(self.dir)
        with open(os.path.join(self.dir, "config.json"), "w", encoding="utf-8") as fp:
            json.dump({"access_token": "t", "legacy": 1, "theme": 5}, fp)

        cfg = init_config(self.dir)

        self.assertEqual(cfg.access_token, "t")
        self.assertEqual(cfg.theme, "default")

    def test_corrupt_file_raises_storage_error(self) -> None:
        os.makedirs(self.dir)
        with open(os.path.join(self.dir, "config.json"), "w", encoding="utf-8") as fp:
            fp.write("{not json")
        with self.assertRaises(StorageError):
            Config.load(self.dir)

    def test_resolve_theme(self) -> None:
        self.assertEqual(resolve_theme(""), DEFAULT_THEME)
        self.assertEqual(resolve_theme("default"), DEFAULT_THEME)
        self.assertEqual(resolve_theme("monokai"), "monokai")
        self.assertEqual(resolve_theme("no-such-theme"), DEFAULT_THEME)

    def test_user_config_dir_honours_xdg(self) -> None:
        with patch("gistmgr.config.sys.platform", "linux"), patch.dict(
            os.environ, {"XDG_CONFIG_HOME": self._tmp.name}
        ):
            self.assertEqual(user_config_dir(), os.path.join(self._tmp.name, "gistmgr"))

    def test_setup_logging_writes_log_file(self) -> None:
        handler = setup_logging(self.dir, logging.DEBUG)
        try:
            logging.getLogger("gistmgr.sync.engine").info("refresh done")
            handler.flush()
            with open(os.path.join(self.dir, "gistmgr.log"), encoding="utf-8") as fp:
                self.assertIn("refresh done", fp.read())

            again = setup_logging(self.dir)
            owned = [h for h in logging.getLogger("gistmgr").handlers if h in (handler, again)]
            self.assertEqual(owned, [again])
            handler = again
        finally:
            logging.getLogger("gistmgr").removeHandler(handler)
            handler.close()


if __name__ == "__main__":
    unittest.main()
