"""
Unit tests for CSV serialization and export.
"""

import csv
import io
import os
import tempfile
import unittest

from metascribe.core.csv_exporter import CsvExporter, filename_from_path, sanitize_field
from metascribe.core.exceptions import ExportCancelled, ExportIOError, MetadataValidationError
from metascribe.core.models import ImageMetadata


def parse(text):
    return list(csv.DictReader(io.StringIO(text)))


class TestSanitize(unittest.TestCase):
    def test_formula_characters_are_replaced(self):
        self.assertEqual(sanitize_field("=SUM(A1)"), " SUM(A1)")
        self.assertEqual(sanitize_field("a+b-c@d"), "a b c d")

    def test_non_strings_are_coerced(self):
        self.assertEqual(sanitize_field(42), "42")
        self.assertEqual(sanitize_field(-1.5), " 1.5")
        self.assertEqual(sanitize_field(None), "None")
        self.assertEqual(sanitize_field(True), "True")

    def test_idempotent(self):
        for value in ("=HYPERLINK(\"x\")", "plain text", "@@--++==", "", "e-mail me @ home"):
            once = sanitize_field(value)
            self.assertEqual(sanitize_field(once), once)

    def test_filename_from_path(self):
        self.assertEqual(filename_from_path("/p/img.jpg"), "img.jpg")
        self.assertEqual(filename_from_path("C:\\photos\\cat.png"), "cat.png")
        self.assertEqual(filename_from_path("mixed/dir\\dog.gif"), "dog.gif")
        self.assertEqual(filename_from_path("bare.webp"), "bare.webp")


class TestCsvExporter(unittest.TestCase):
    def setUp(self):
        self.exporter = CsvExporter()
        self.records = [
            ImageMetadata("/photos/cat.jpg", "Cat", "A cat on a mat", ("cat", "mat")),
            ImageMetadata("C:\\pics\\dog.png", "=Dog", "Dog, running @ park", ("dog", "park", "run")),
            ImageMetadata("/photos/empty.gif", "Nothing", "", ()),
        ]

    def test_header_and_quoting(self):
        text = self.exporter.export_to_csv(self.records)
        lines = text.splitlines()
        self.assertEqual(lines[0], '"filename","title","description","tags","filepath"')
        self.assertTrue(all(line.startswith('"') and line.endswith('"') for line in lines))

    def test_round_trip_recovers_fields_in_order(self):
        rows = parse(self.exporter.export_to_csv(self.records))

        self.assertEqual(len(rows), len(self.records))
        for row, record in zip(rows, self.records):
            self.assertEqual(row["filename"], filename_from_path(record.source_path))
            self.assertEqual(row["title"], sanitize_field(record.title))
            self.assertEqual(row["description"], sanitize_field(record.description))
            self.assertEqual(row["tags"], ", ".join(record.tags))
            self.assertEqual(row["filepath"], record.source_path)

    def test_originals_are_not_modified(self):
        self.exporter.export_to_csv(self.records)
        self.assertEqual(self.records[1].title, "=Dog")

    def test_dict_records_with_thumbnail_key(self):
        record = {
            "title": "=SUM(A1)",
            "description": "@risk",
            "tags": ["x"],
            "thumbnail": "/p/img.jpg",
        }
        rows = parse(self.exporter.export_to_csv([record]))

        self.assertEqual(rows[0]["filename"], "img.jpg")
        self.assertNotIn("=", rows[0]["title"])
        self.assertNotIn("@", rows[0]["description"])
        self.assertEqual(rows[0]["tags"], "x")
        self.assertEqual(rows[0]["filepath"], "/p/img.jpg")

    def test_empty_list_has_header_only(self):
        self.assertEqual(len(self.exporter.export_to_csv([]).splitlines()), 1)

    def test_validate_records_rejects_non_sequence(self):
        for bad in ({"title": "x"}, "records", None, 5):
            with self.assertRaises(MetadataValidationError):
                self.exporter.validate_records(bad)

    def test_validate_records_reports_missing_field(self):
        with self.assertRaises(MetadataValidationError) as ctx:
            self.exporter.validate_records([{"thumbnail": "/a.jpg", "title": "t", "tags": []}])
        self.assertIn("description", str(ctx.exception))

        with self.assertRaises(MetadataValidationError) as ctx:
            self.exporter.validate_records([{"title": "t", "description": "d", "tags": []}])
        self.assertIn("source_path", str(ctx.exception))

    def test_validate_records_rejects_non_list_tags(self):
        for bad in (None, 7, {"a": 1}):
            record = {"thumbnail": "/p/a.jpg", "title": "t", "description": "d", "tags": bad}
            with self.assertRaises(MetadataValidationError) as ctx:
                self.exporter.export_to_csv([record])
            self.assertIn("tags", str(ctx.exception))

    def test_string_tags_pass_through_as_text(self):
        record = {"thumbnail": "/p/a.jpg", "title": "t", "description": "d", "tags": "cat, mat"}
        rows = parse(self.exporter.export_to_csv([record]))
        self.assertEqual(rows[0]["tags"], "cat, mat")

    def test_to_row_rejects_non_list_tags_without_validation(self):
        with self.assertRaises(MetadataValidationError):
            self.exporter.to_row({"thumbnail": "/p/a.jpg", "title": "t", "description": "d", "tags": None})

    def test_validate_records_accepts_models_and_dicts(self):
        self.assertTrue(self.exporter.validate_records(
            self.records + [{"sourcePath": "/a.jpg", "title": "", "description": "", "tags": []}]
        ))


class TestCsvSaving(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.exporter = CsvExporter()
        self.records = [ImageMetadata("/photos/café.jpg", "Café", "Latte art", ("coffee",))]

    def tearDown(self):
        self._tmp.cleanup()

    def test_export_with_dialog_writes_utf8(self):
        target = os.path.join(self._tmp.name, "out.csv")
        offered = []

        def choose(default_name):
            offered.append(default_name)
            return target

        path = self.exporter.export_with_dialog(self.records, choose)

        self.assertEqual(path, target)
        self.assertEqual(offered, ["image-metadata.csv"])
        with open(target, encoding="utf-8", newline="") as f:
            rows = list(csv.DictReader(f))
        self.assertEqual(rows[0]["filename"], "café.jpg")

    def test_cancelled_dialog(self):
        for result in (None, ""):
            with self.assertRaises(ExportCancelled):
                self.exporter.export_with_dialog(self.records, lambda name: result)

    def test_write_failure(self):
        target = os.path.join(self._tmp.name, "no", "such", "dir", "out.csv")
        with self.assertRaises(ExportIOError) as ctx:
            self.exporter.save_csv(self.records, target)
        self.assertIsInstance(ctx.exception.__cause__, OSError)


if __name__ == "__main__":
    unittest.main()
