import unittest
from datetime import datetime, timezone

from r2_browser.ui_utils import compose_key, display_path, format_last_modified, format_size, parent_prefix


class UiUtilsTests(unittest.TestCase):
    def test_format_size_picks_unit(self):
        self.assertEqual("-", format_size(None))
        self.assertEqual("512 B", format_size(512))
        self.assertEqual("2.0 KB", format_size(2048))
        self.assertEqual("1.5 MB", format_size(1536 * 1024))

    def test_format_last_modified(self):
        self.assertEqual("-", format_last_modified(None))
        stamp = datetime(2024, 5, 1, 12, 30, 0, tzinfo=timezone.utc)
        self.assertEqual("2024-05-01 12:30:00 UTC", format_last_modified(stamp))

    def test_compose_key_joins_prefix_and_name(self):
        self.assertEqual("report.pdf", compose_key("", "report.pdf"))
        self.assertEqual("docs/report.pdf", compose_key("docs/", " report.pdf "))
        self.assertEqual("docs/sub", compose_key("/docs", "sub/"))

    def test_compose_key_rejects_empty_names(self):
        with self.assertRaises(ValueError):
            compose_key("docs/", "  ")
        with self.assertRaises(ValueError):
            compose_key("docs/", "/")

    def test_parent_prefix(self):
        self.assertEqual("", parent_prefix(""))
        self.assertEqual("", parent_prefix("docs/"))
        self.assertEqual("docs/", parent_prefix("docs/sub/"))
        self.assertEqual("a/b/", parent_prefix("a/b/c/"))

    def test_display_path(self):
        self.assertEqual("bucket/", display_path("bucket", ""))
        self.assertEqual("bucket/docs/", display_path("bucket", "docs/"))


if __name__ == "__main__":
    unittest.main()
