import unittest
from datetime import datetime, timezone

from backends.base import ServerTimestamp
from backends.firestore_codec import clean_data, decode_document, decode_value, encode_fields, encode_value
from models.job import ResumePreference


class TestCleanData(unittest.TestCase):
    def test_drops_empties_recursively(self):
        cleaned = clean_data({
            "title": "Dev",
            "salary": None,
            "description": "",
            "applications": [],
            "requirements": {"education": None, "profile": "Proativo"},
            "extra": {"nested": {}},
        })
        self.assertEqual(cleaned, {"title": "Dev", "requirements": {"profile": "Proativo"}})

    def test_keeps_falsy_scalars(self):
        self.assertEqual(clean_data({"count": 0, "active": False}), {"count": 0, "active": False})

    def test_nothing_left(self):
        self.assertIsNone(clean_data({"a": None, "b": ""}))


class TestEncoding(unittest.TestCase):
    def test_scalars(self):
        self.assertEqual(encode_value(True), {"booleanValue": True})
        self.assertEqual(encode_value(3), {"integerValue": "3"})
        self.assertEqual(encode_value(1.5), {"doubleValue": 1.5})
        self.assertEqual(encode_value(ResumePreference.TEXT), {"stringValue": "text"})
        self.assertEqual(encode_value(None), {"nullValue": None})

    def test_timestamps(self):
        moment = datetime(2024, 7, 20, 10, 30, tzinfo=timezone.utc)
        self.assertEqual(encode_value(moment), {"timestampValue": "2024-07-20T10:30:00Z"})
        self.assertIn("timestampValue", encode_value(ServerTimestamp(seconds=1721471400)))

    def test_nested(self):
        fields = encode_fields({"requirements": {"education": "Técnico"}, "tags": ["a"]})
        self.assertEqual(
            fields["requirements"],
            {"mapValue": {"fields": {"education": {"stringValue": "Técnico"}}}},
        )
        self.assertEqual(fields["tags"], {"arrayValue": {"values": [{"stringValue": "a"}]}})

    def test_unsupported_type(self):
        with self.assertRaises(TypeError):
            encode_value(object())


class TestDecoding(unittest.TestCase):
    def test_values(self):
        self.assertEqual(decode_value({"integerValue": "42"}), 42)
        self.assertEqual(decode_value({"arrayValue": {}}), [])
        self.assertEqual(decode_value({"mapValue": {}}), {})
        stamp = decode_value({"timestampValue": "2024-07-20T10:30:00Z"})
        self.assertEqual(stamp, datetime(2024, 7, 20, 10, 30, tzinfo=timezone.utc))

    def test_document_id_wins(self):
        record = decode_document({
            "name": "projects/p/databases/(default)/documents/jobs/job-7",
            "fields": {"id": {"stringValue": "stale"}, "title": {"stringValue": "Dev"}},
        })
        self.assertEqual(record, {"id": "job-7", "title": "Dev"})

    def test_encode_decode_preserves_record(self):
        record = {"title": "Dev", "requirements": {"education": "Técnico"}, "open": True, "slots": 2}
        self.assertEqual(decode_value({"mapValue": {"fields": encode_fields(record)}}), record)


if __name__ == "__main__":
    unittest.main()
