from __future__ import annotations

import unittest

from menu_studio.columns import synthesize_columns
from menu_studio.oracle import CalorieEstimator, OracleError, TranslationOracle
from menu_studio.pipeline import transform_menu
from menu_studio.schema import TransformOptions


class RecordingOracle(TranslationOracle, CalorieEstimator):
    def __init__(self, translations=None, calories=None, fail_calories=False):
        self.translations = translations or {}
        self.calories = calories or {}
        self.fail_calories = fail_calories
        self.translate_calls = []
        self.calorie_calls = []

    def translate(self, batch, mode):
        self.translate_calls.append((mode, batch))
        return {
            request.id: {name: self.translations.get(value, "") for name, value in request.fields.items()}
            for request in batch
        }

    def estimate_calories(self, items):
        self.calorie_calls.append(items)
        if self.fail_calories:
            raise OracleError("estimator down")
        return {item["id"]: self.calories[item["name"]] for item in items if item["name"] in self.calories}


class EndToEndTests(unittest.TestCase):
    def test_inline_translation_rows_produce_one_bilingual_record(self):
        result = transform_menu(
            [
                {"Menu Item Name": "Chicken Burger", "Description": "Grilled chicken"},
                {"Menu Item Name": "[ar-ae]: برجر الدجاج", "Description": "[ar-ae]: دجاج مشوي"},
            ]
        )
        self.assertEqual(len(result.records), 1)
        record = result.records[0]
        self.assertEqual(record.get("Name"), "Chicken Burger")
        self.assertEqual(record.get("NameArabic"), "برجر الدجاج")
        self.assertEqual(record.get("Description"), "Grilled chicken")
        self.assertEqual(record.get("DescriptionArabic"), "دجاج مشوي")
        self.assertEqual(result.stats.anomalies, [])
        self.assertEqual(result.stats.arabic_translations_found, 1)
        self.assertEqual(result.columns, ["ItemId", "Name", "NameArabic", "Description", "DescriptionArabic"])
        self.assertEqual(record.get("ItemId"), "auto-gen-0")
        self.assertFalse(result.partial)

    def test_orphan_first_row_yields_anomaly_and_no_record(self):
        result = transform_menu([{"Item ID": "", "Item Name": "[ar-ae]: دجاج"}])
        self.assertEqual(result.records, [])
        kinds = [anomaly.kind for anomaly in result.stats.anomalies]
        self.assertEqual(kinds.count("orphan-translation"), 1)
        self.assertIn("zero-items", kinds)
        self.assertTrue(result.stats.zero_items)

    def test_empty_dataset_is_reported(self):
        result = transform_menu([])
        kinds = [anomaly.kind for anomaly in result.stats.anomalies]
        self.assertEqual(kinds, ["empty-dataset", "zero-items"])
        self.assertTrue(result.stats.zero_items)
        self.assertEqual(result.columns, [])

    def test_currency_split_through_the_pipeline(self):
        result = transform_menu(
            [
                {"ID": "1", "Name": "Wrap", "Price": "AED 25.50"},
                {"ID": "2", "Name": "Juice", "Price": "30"},
            ]
        )
        self.assertNotIn("Price", result.columns)
        self.assertEqual([r.get("Price[AED]") for r in result.records], [25.5, 30.0])
        self.assertEqual(result.stats.currencies_detected, ["AED"])

    def test_auto_ids_are_sequential_per_input_row(self):
        rows = [{"Name": f"Item {i}"} for i in range(5)]
        result = transform_menu(rows)
        self.assertEqual([r.get("ItemId") for r in result.records], [f"auto-gen-{i}" for i in range(5)])

    def test_every_row_has_the_header_column_set(self):
        result = transform_menu(
            [
                {"ID": "1", "Name": "Soup", "Spice": "mild"},
                {"ID": "2", "Name": "Salad", "Allergens": "nuts"},
            ]
        )
        for record in result.records:
            self.assertEqual(record.columns(), result.columns)
            self.assertNotIn(None, record.data.values())

    def test_pipeline_columns_are_stable_under_resynthesis(self):
        result = transform_menu(
            [
                {"ID": "1", "Name": "Soup", "Description (AR)": "شوربة", "Price": "5", "Description": "Hot"},
                {"ID": "", "Name": "[ar-ae]: شوربة"},
            ]
        )
        self.assertEqual(synthesize_columns(result.records), result.columns)
        index = result.columns.index("Description")
        self.assertEqual(result.columns[index + 1], "DescriptionArabic")


class EnrichmentThroughPipelineTests(unittest.TestCase):
    def test_arabic_source_is_not_sent_for_translation(self):
        oracle = RecordingOracle(translations={"Fries": "بطاطس"})
        result = transform_menu(
            [{"ID": "1", "Name": "برجر الدجاج"}, {"ID": "2", "Name": "Fries"}],
            TransformOptions(translate_to_arabic=True),
            oracle=oracle,
        )
        self.assertEqual(result.records[0].get("NameArabic"), "برجر الدجاج")
        self.assertEqual(result.records[1].get("NameArabic"), "بطاطس")
        sent = [value for _, batch in oracle.translate_calls for request in batch for value in request.fields.values()]
        self.assertEqual(sent, ["Fries"])
        self.assertEqual(result.stats.already_arabic_count, 1)
        self.assertEqual(result.stats.auto_translated_count, 1)
        self.assertEqual(result.stats.translation_direction, "to-arabic")

    def test_auto_direction_translates_arabic_menu_to_english(self):
        oracle = RecordingOracle(translations={"بطاطس": "Fries", "كولا": "Cola"})
        result = transform_menu(
            [{"ID": "1", "Name": "بطاطس"}, {"ID": "2", "Name": "كولا"}],
            TransformOptions(auto_translate=True),
            oracle=oracle,
        )
        self.assertEqual(result.stats.translation_direction, "to-english")
        self.assertEqual([r.get("Name") for r in result.records], ["Fries", "Cola"])
        self.assertEqual([r.get("NameArabic") for r in result.records], ["بطاطس", "كولا"])
        self.assertEqual(result.stats.auto_translated_en_count, 2)
        self.assertEqual(result.columns, ["ItemId", "Name", "NameArabic"])

    def test_calorie_estimation_fills_only_missing_values(self):
        oracle = RecordingOracle(calories={"Fries": 365.0})
        result = transform_menu(
            [
                {"ID": "1", "Name": "Fries", "Calories": ""},
                {"ID": "2", "Name": "Cola", "Calories": "140"},
            ],
            TransformOptions(estimate_calories=True),
            estimator=oracle,
        )
        self.assertEqual(result.records[0].get("Calories"), "365")
        self.assertEqual(result.records[1].get("Calories"), "140")
        self.assertEqual(len(oracle.calorie_calls), 1)
        self.assertEqual([item["name"] for item in oracle.calorie_calls[0]], ["Fries"])
        self.assertEqual(result.stats.calories_estimated_count, 1)

    def test_failed_calorie_batch_is_partial_not_fatal(self):
        oracle = RecordingOracle(fail_calories=True)
        result = transform_menu(
            [{"ID": "1", "Name": "Fries"}],
            TransformOptions(estimate_calories=True),
            estimator=oracle,
        )
        self.assertEqual(len(result.records), 1)
        self.assertEqual(result.stats.failed_batches, 1)
        self.assertTrue(result.partial)

    def test_image_sync_sources(self):
        store = {"img_fries": "data:image/png;base64,AAA", "img_2": "data:image/png;base64,BBB"}
        result = transform_menu(
            [
                {"ID": "1", "Name": "Burger", "Image": "https://cdn.example.com/burger.jpg"},
                {"ID": "2", "Name": "Cola", "Image": ""},
                {"ID": "3", "Name": "Fries", "Image": ""},
                {"ID": "4", "Name": "Zaatar Manakish", "Image": ""},
            ],
            TransformOptions(sync_images=True),
            image_store=store,
        )
        sources = [r.get("ImageSource") for r in result.records]
        self.assertEqual(sources, ["excel", "database", "database", "none"])
        self.assertEqual(result.records[1].get("ImageUrl"), "data:image/png;base64,BBB")
        self.assertEqual(result.records[2].get("ImageUrl"), "data:image/png;base64,AAA")
        self.assertEqual(result.stats.images_from_excel, 1)
        self.assertEqual(result.stats.images_from_db, 2)
        self.assertEqual(result.stats.images_pending_generation, 1)
        self.assertEqual(result.columns[-1], "ImageSource")


if __name__ == "__main__":
    unittest.main()
