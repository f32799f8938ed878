from __future__ import annotations

import unittest

from menu_studio.headers import normalize_row
from menu_studio.modifiers import flatten_modifiers
from menu_studio.pipeline import transform_modifiers
from menu_studio.schema import TransformOptions

RAW_HEADERS = [
    "Modifier Group Template Id",
    "Modifier Group Template Name",
    "Modifier Id",
    "Modifier Name",
    "Modifier External Id",
    "Modifier Max Limit",
    "Modifier Price",
    "Modifier Price Currency",
]


def raw(*values):
    return dict(zip(RAW_HEADERS, values))


def sample_rows():
    return [
        raw("G1", "Size", "M1", "Small", "EXT-1", "1", "0", "AED"),
        raw("", "[ar-ae]:الحجم", "", "[ar-ae]:صغير", "", "", "", ""),
        raw("", "", "M2", "Large", "EXT-2", "1", "3.5", "aed"),
        raw("", "", "", "[ar-ae]:كبير", "", "", "", ""),
        raw("G2", "Extras", "M3", "Cheese", "", "2", "2", "SAR"),
    ]


class ModifierFlatteningTests(unittest.TestCase):
    def test_one_record_per_modifier_with_translations_merged(self):
        result = flatten_modifiers([normalize_row(row) for row in sample_rows()])
        self.assertEqual(len(result.records), 3)
        first, second, third = result.records

        self.assertEqual(first.get("ModifierGroupId"), "G1")
        self.assertEqual(first.get("ModifierGroupNameArabic"), "الحجم")
        self.assertEqual(first.get("ModifierNameArabic"), "صغير")

        self.assertEqual(second.get("ModifierGroupId"), "")
        self.assertEqual(second.get("ModifierGroupName"), "")
        self.assertEqual(second.get("ModifierId"), "M2")
        self.assertEqual(second.get("ModifierNameArabic"), "كبير")

        self.assertEqual(third.get("ModifierGroupId"), "G2")
        self.assertEqual(result.arabic_translations_found, 2)
        self.assertEqual(result.anomalies, [])

    def test_modifier_prices_become_currency_columns(self):
        result = flatten_modifiers([normalize_row(row) for row in sample_rows()])
        first, second, third = result.records
        self.assertEqual(first.get("Price[AED]"), 0.0)
        self.assertEqual(second.get("Price[AED]"), 3.5)
        self.assertEqual(third.get("Price[SAR]"), 2.0)
        for item in result.records:
            self.assertNotIn("ModifierPrice", item.columns())
            self.assertNotIn("ModifierPriceCurrency", item.columns())
        self.assertEqual(result.currencies, {"AED", "SAR"})

    def test_arabic_names_move_to_companions(self):
        rows = [normalize_row(raw("G1", "الحجم", "M1", "صغير", "", "", "", ""))]
        record = flatten_modifiers(rows).records[0]
        self.assertEqual(record.get("ModifierGroupName"), "")
        self.assertEqual(record.get("ModifierGroupNameArabic"), "الحجم")
        self.assertEqual(record.get("ModifierName"), "")
        self.assertEqual(record.get("ModifierNameArabic"), "صغير")

    def test_group_without_modifiers_keeps_its_metadata_record(self):
        rows = [
            normalize_row(raw("G1", "Sauces", "", "", "", "", "", "")),
            normalize_row(raw("G2", "Size", "M1", "Small", "", "", "", "")),
        ]
        result = flatten_modifiers(rows)
        self.assertEqual(len(result.records), 2)
        empty_group = result.records[0]
        self.assertEqual(empty_group.get("ModifierGroupId"), "G1")
        self.assertEqual(empty_group.get("ModifierGroupName"), "Sauces")
        self.assertEqual(empty_group.get("ModifierId"), "")

    def test_translation_before_any_modifier_is_an_orphan(self):
        rows = [
            normalize_row(raw("", "", "", "[ar-ae]:صغير", "", "", "", "")),
            normalize_row(raw("G1", "Size", "M1", "Small", "", "", "", "")),
        ]
        result = flatten_modifiers(rows)
        self.assertEqual(len(result.records), 1)
        self.assertEqual([a.kind for a in result.anomalies], ["orphan-translation"])
        self.assertEqual(result.anomalies[0].row_number, 2)

    def test_non_arabic_translation_rows_are_ignored(self):
        rows = [
            normalize_row(raw("G1", "Size", "M1", "Small", "", "", "", "")),
            normalize_row(raw("", "", "", "[fr]:Petit", "", "", "", "")),
        ]
        result = flatten_modifiers(rows)
        self.assertEqual(len(result.records), 1)
        self.assertEqual(result.records[0].get("ModifierName"), "Small")
        self.assertNotIn("ModifierNameArabic", result.records[0].columns())
        self.assertEqual(result.arabic_translations_found, 0)

    def test_rows_without_ids_are_skipped(self):
        rows = [
            normalize_row(raw("G1", "Size", "M1", "Small", "", "", "", "")),
            normalize_row(raw("", "", "", "stray note", "", "", "", "")),
        ]
        result = flatten_modifiers(rows)
        self.assertEqual(len(result.records), 1)
        self.assertEqual(result.skipped_rows, 1)

    def test_raw_modifier_price_is_kept_when_splitting_is_disabled(self):
        rows = [normalize_row(raw("G1", "Size", "M1", "Small", "", "", "4", "AED"))]
        record = flatten_modifiers(rows, TransformOptions(split_price=False)).records[0]
        self.assertEqual(record.get("ModifierPrice"), "4")
        self.assertNotIn("Price[AED]", record.columns())


class ModifierPipelineTests(unittest.TestCase):
    def test_output_columns_follow_input_order_with_companions_and_prices_last(self):
        result = transform_modifiers(sample_rows())
        self.assertEqual(
            result.columns,
            [
                "ModifierGroupId",
                "ModifierGroupName",
                "ModifierGroupNameArabic",
                "ModifierId",
                "ModifierName",
                "ModifierNameArabic",
                "ModifierExternalId",
                "ModifierMaxLimit",
                "Price[AED]",
                "Price[SAR]",
            ],
        )
        self.assertEqual(result.records[2].get("Price[AED]"), "")
        self.assertEqual(result.stats.currencies_detected, ["AED", "SAR"])
        self.assertEqual(result.stats.total_items_processed, 3)

    def test_companion_columns_are_omitted_when_never_populated(self):
        rows = [raw("G1", "Size", "M1", "Small", "", "", "", "")]
        result = transform_modifiers(rows)
        self.assertNotIn("ModifierNameArabic", result.columns)
        self.assertNotIn("ModifierGroupNameArabic", result.columns)


if __name__ == "__main__":
    unittest.main()
