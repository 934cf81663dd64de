import unittest

from gistmgr.errors import StorageError
from gistmgr.models import (
    ContentRecord,
    DraftGistRecord,
    Gist,
    GistFile,
    GistStatus,
    Visibility,
)


class TestContentRecord(unittest.TestCase):
    def test_doc_round_trip_keeps_every_field(self) -> None:
        f = GistFile(
            id="f1",
            gist_id="g1",
            title="a.md",
            desc="Notes",
            raw_url="https://example/raw/a.md",
            updated_at="2025-01-01T00:00:00.000000Z",
            content="hello",
            draft=False,
        )
        record = ContentRecord.from_doc(ContentRecord.from_file(f).to_doc())
        self.assertEqual(record.to_file(), f)

    def test_missing_fields_decode_to_zero_values(self) -> None:
        record = ContentRecord.from_doc({"id": "f1"})
        self.assertEqual(record.title, "")
        self.assertEqual(record.raw_url, "")
        self.assertIsNone(record.content)
        self.assertFalse(record.draft)

    def test_integer_flags_are_accepted(self) -> None:
        self.assertTrue(ContentRecord.from_doc({"id": "f1", "draft": 1}).draft)

    def test_wrong_types_raise_storage_error(self) -> None:
        with self.assertRaises(StorageError):
            ContentRecord.from_doc({"id": "f1", "title": 5})
        with self.assertRaises(StorageError):
            ContentRecord.from_doc({"id": "f1", "draft": "yes"})

    def test_to_file_marks_stale(self) -> None:
        self.assertTrue(ContentRecord(id="f1").to_file(stale=True).stale)


class TestDraftGistRecord(unittest.TestCase):
    def test_from_gist_and_back(self) -> None:
        gist = Gist(
            id="d1",
            name="Ideas",
            status=GistStatus.DRAFTED,
            visibility=Visibility.PUBLIC,
            updated_at="2025-01-01T00:00:00.000000Z",
        )
        doc = DraftGistRecord.from_gist(gist).to_doc()
        self.assertEqual(doc["description"], "Ideas")
        self.assertEqual(doc["status"], "drafted")
        self.assertEqual(doc["visibility"], "public")
        self.assertEqual(DraftGistRecord.from_doc(doc).to_gist(), gist)

    def test_unknown_visibility_falls_back_to_secret(self) -> None:
        gist = DraftGistRecord.from_doc({"id": "d1", "visibility": "internal"}).to_gist()
        self.assertEqual(gist.visibility, Visibility.SECRET)
        self.assertTrue(gist.is_drafted)


if __name__ == "__main__":
    unittest.main()
