import unittest

from gistmgr.util.lang import PLAIN_TEXT, guess_language


class TestGuessLanguage(unittest.TestCase):
    def test_by_extension(self) -> None:
        self.assertEqual(guess_language("main.py"), "python")
        self.assertEqual(guess_language("tool.pyw"), "python")
        self.assertEqual(guess_language("README.md"), "markdown")
        self.assertEqual(guess_language("config.yml"), "yaml")

    def test_by_file_name(self) -> None:
        self.assertEqual(guess_language("Dockerfile"), "docker")
        self.assertEqual(guess_language("Makefile"), "make")
        self.assertEqual(guess_language("CMakeLists.txt"), "cmake")

    def test_name_wins_over_content(self) -> None:
        self.assertEqual(guess_language("main.py", "#!/bin/bash\necho hi\n"), "python")

    def test_unknown_name_falls_back_to_content(self) -> None:
        self.assertEqual(guess_language("script", "#!/usr/bin/env python3\nprint(1)\n"), "python")

    def test_unknown_is_plain_text(self) -> None:
        self.assertEqual(guess_language("notes"), PLAIN_TEXT)
        self.assertEqual(guess_language("data.qqqz", ""), PLAIN_TEXT)
        self.assertEqual(guess_language(""), PLAIN_TEXT)
