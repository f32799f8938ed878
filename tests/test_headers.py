from __future__ import annotations

import unittest

from menu_studio.headers import normalize_header, normalize_headers, normalize_row


class HeaderNormalizerTests(unittest.TestCase):
    def test_identifier_and_name_variants_map_to_canonical_fields(self):
        for header in ["id", "Item ID", "menu item id", "item_id", "  ITEM ID  "]:
            self.assertEqual(normalize_header(header), "ItemId", header)
        for header in ["name", "Item Name", "Menu Item Name", "title"]:
            self.assertEqual(normalize_header(header), "Name", header)

    def test_modifier_status_and_image_variants(self):
        self.assertEqual(normalize_header("Mod Group"), "ModifierGroupName")
        self.assertEqual(normalize_header("Modifier Group Template Id"), "ModifierGroupId")
        self.assertEqual(normalize_header("addon"), "ModifierName")
        self.assertEqual(normalize_header("Sub-Modifier Name"), "SubModifierName")
        self.assertEqual(normalize_header("Status"), "Active")
        self.assertEqual(normalize_header("category"), "Tag")
        for header in ["image", "Images", "Image URL", "photo", "picture", "url", "link", "Drive Link"]:
            self.assertEqual(normalize_header(header), "ImageUrl", header)

    def test_price_and_calorie_variants(self):
        self.assertEqual(normalize_header("Cost"), "Price")
        self.assertEqual(normalize_header("amount"), "Price")
        self.assertEqual(normalize_header("Calories(kcal)"), "Calories")

    def test_arabic_language_suffix_resolves_to_companion(self):
        self.assertEqual(normalize_header("Menu Item Name[ar-ae]"), "NameArabic")
        self.assertEqual(normalize_header("Description (AR)"), "DescriptionArabic")
        self.assertEqual(normalize_header("Brand Name [ar]"), "BrandNameArabic")
        self.assertEqual(normalize_header("Modifier Group Template Name[ar-ae]"), "ModifierGroupNameArabic")

    def test_english_language_suffix_resolves_to_base(self):
        self.assertEqual(normalize_header("Menu Item Name (EN)"), "Name")
        self.assertEqual(normalize_header("Description[en]"), "Description")

    def test_unknown_headers_pass_through_unchanged(self):
        self.assertEqual(normalize_header("Kitchen Station"), "Kitchen Station")
        self.assertEqual(normalize_header("Price[AED]"), "Price[AED]")
        self.assertEqual(normalize_header("Spice Level (AR)"), "Spice LevelArabic")

    def test_normalize_row_last_write_wins(self):
        row = normalize_row({"Item Name": "First", "Title": "Second", "Extra": 1})
        self.assertEqual(row, {"Name": "Second", "Extra": 1})

    def test_normalize_headers_keeps_first_occurrence_order(self):
        self.assertEqual(
            normalize_headers(["Title", "Description", "Item Name", "Description (ar)"]),
            ["Name", "Description", "DescriptionArabic"],
        )


if __name__ == "__main__":
    unittest.main()
