from __future__ import annotations

import base64
import tempfile
import unittest
from pathlib import Path

from menu_studio.enrichment import assign_images
from menu_studio.images import (
    MATCH_CONTAINS,
    MATCH_FUZZY,
    MATCH_ID,
    MATCH_NAME,
    UNKNOWN_KEY,
    DirectoryImageStore,
    ImageResolver,
    image_key,
    sanitize_file_name,
)
from menu_studio.schema import MenuRecord


class ImageKeyTests(unittest.TestCase):
    def test_image_key_normalizes_names(self):
        self.assertEqual(image_key("Crunchy BBQ-Burger!"), "img_crunchy_bbq_burger")
        self.assertEqual(image_key("  Chicken   Wrap "), "img_chicken_wrap")
        self.assertEqual(image_key("SKU_123"), "img_sku_123")

    def test_image_key_unknown_for_empty_input(self):
        self.assertEqual(image_key(""), UNKNOWN_KEY)
        self.assertEqual(image_key(None), UNKNOWN_KEY)
        self.assertEqual(image_key("برجر"), UNKNOWN_KEY)

    def test_sanitize_file_name_strips_numbering(self):
        self.assertEqual(sanitize_file_name("2._Crunchy_BBQ_Burger"), "Crunchy BBQ Burger")
        self.assertEqual(sanitize_file_name("10-fries"), "fries")
        self.assertEqual(sanitize_file_name(""), "")


class ImageResolverTests(unittest.TestCase):
    def setUp(self):
        self.store = {
            "img_101": "data:image/png;base64,ID",
            "img_chicken_burger": "data:image/png;base64,BURGER",
            "img_french_fries": "data:image/png;base64,FRIES",
        }

    def test_id_match_wins_over_name(self):
        resolver = ImageResolver(self.store)
        self.assertEqual(resolver.lookup("101", "Chicken Burger"), ("img_101", MATCH_ID))

    def test_exact_name_match(self):
        resolver = ImageResolver(self.store)
        self.assertEqual(resolver.lookup("999", "Chicken Burger"), ("img_chicken_burger", MATCH_NAME))

    def test_fuzzy_match_tolerates_typos(self):
        resolver = ImageResolver(self.store)
        self.assertEqual(resolver.lookup("", "Chiken Burger"), ("img_chicken_burger", MATCH_FUZZY))

    def test_containment_when_fuzzy_is_disabled(self):
        resolver = ImageResolver(self.store, fuzzy=False)
        self.assertIsNone(resolver.lookup("", "Chiken Burger"))
        self.assertEqual(resolver.lookup("", "Fries"), ("img_french_fries", MATCH_CONTAINS))

    def test_short_stems_do_not_match_by_containment(self):
        resolver = ImageResolver({"img_tea": "data:image/png;base64,TEA"}, fuzzy=False)
        self.assertIsNone(resolver.lookup("", "Steak Sandwich"))

        resolver = ImageResolver({"img_steak_sandwich": "data:image/png;base64,STEAK"}, fuzzy=False)
        self.assertIsNone(resolver.lookup("", "Tea"))

    def test_no_match_returns_none(self):
        resolver = ImageResolver(self.store)
        self.assertIsNone(resolver.lookup("", "Mango Lassi"))
        self.assertIsNone(resolver.resolve("", ""))

    def test_resolve_returns_payload(self):
        resolver = ImageResolver(self.store)
        self.assertEqual(resolver.resolve("", "chicken burger"), "data:image/png;base64,BURGER")


class DirectoryImageStoreTests(unittest.TestCase):
    def test_files_are_keyed_by_sanitized_stem(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "1._Chicken_Burger.png").write_bytes(b"\x89PNG")
            (root / "fries.jpg").write_bytes(b"\xff\xd8")
            (root / "readme.txt").write_text("not an image", encoding="utf-8")

            store = DirectoryImageStore(root)

            self.assertEqual(sorted(store), ["img_chicken_burger", "img_fries"])
            payload = store["img_chicken_burger"]
            self.assertTrue(payload.startswith("data:image/png;base64,"))
            self.assertEqual(base64.b64decode(payload.split(",", 1)[1]), b"\x89PNG")
            self.assertTrue(store["img_fries"].startswith("data:image/jpeg;base64,"))

    def test_missing_directory_is_rejected(self):
        with self.assertRaises(ValueError):
            DirectoryImageStore("/definitely/not/a/folder")


class AssignImagesTests(unittest.TestCase):
    def test_spreadsheet_url_is_kept_and_store_fills_the_rest(self):
        store = {"img_fries": "data:image/png;base64,AAA"}
        records = [
            MenuRecord(data={"ItemId": "1", "Name": "Burger", "ImageUrl": "https://cdn.example.com/b.jpg"}),
            MenuRecord(data={"ItemId": "2", "Name": "Fries", "ImageUrl": ""}),
            MenuRecord(data={"ItemId": "3", "Name": "Tea"}),
        ]

        report = assign_images(records, ImageResolver(store))

        self.assertEqual(records[0].get("ImageUrl"), "https://cdn.example.com/b.jpg")
        self.assertEqual(records[0].get("ImageSource"), "excel")
        self.assertEqual(records[1].get("ImageUrl"), "data:image/png;base64,AAA")
        self.assertEqual(records[1].get("ImageSource"), "database")
        self.assertEqual(records[2].get("ImageSource"), "none")
        self.assertEqual((report.from_excel, report.from_store, report.pending_generation), (1, 1, 1))
        self.assertEqual(report.strategies, {"name": 1})


if __name__ == "__main__":
    unittest.main()
