from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterator

# ── Canonical fields ───────────────────────────────────────────────────────────
ITEM_ID = "ItemId"
NAME = "Name"
BRAND_ID = "BrandId"
BRAND_NAME = "BrandName"
DESCRIPTION = "Description"
PREPARATION_TIME = "PreparationTime"
EXTERNAL_ID = "ExternalId"
BARCODE = "Barcode"
ROUTING_LABEL_ID = "RoutingLabelId"
ROUTING_LABEL = "RoutingLabel"
INGREDIENT = "Ingredient"
PACKAGING = "Packaging"
PRICE = "Price"
MODIFIER_GROUP_ID = "ModifierGroupId"
MODIFIER_GROUP_NAME = "ModifierGroupName"
MODIFIER_ID = "ModifierId"
MODIFIER_NAME = "ModifierName"
MODIFIER_EXTERNAL_ID = "ModifierExternalId"
MODIFIER_MAX_LIMIT = "ModifierMaxLimit"
MODIFIER_PRICE = "ModifierPrice"
MODIFIER_PRICE_CURRENCY = "ModifierPriceCurrency"
SUB_MODIFIER_GROUP_NAME = "SubModifierGroupName"
SUB_MODIFIER_NAME = "SubModifierName"
CLASSIFICATION = "Classification"
ALLERGEN = "Allergen"
TAG = "Tag"
CALORIES = "Calories"
CAFFEINE_CONTENT = "CaffeineContent"
SODIUM_CONTENT = "SodiumContent"
SALT_CONTENT = "SaltContent"
ACTIVE = "Active"
TYPE = "Type"
IMAGE_URL = "ImageUrl"
IMAGE_SOURCE = "ImageSource"

CANONICAL_FIELDS = (
    ITEM_ID,
    NAME,
    BRAND_ID,
    BRAND_NAME,
    DESCRIPTION,
    PREPARATION_TIME,
    EXTERNAL_ID,
    BARCODE,
    ROUTING_LABEL_ID,
    ROUTING_LABEL,
    INGREDIENT,
    PACKAGING,
    PRICE,
    MODIFIER_GROUP_ID,
    MODIFIER_GROUP_NAME,
    MODIFIER_ID,
    MODIFIER_NAME,
    MODIFIER_EXTERNAL_ID,
    MODIFIER_MAX_LIMIT,
    MODIFIER_PRICE,
    MODIFIER_PRICE_CURRENCY,
    SUB_MODIFIER_GROUP_NAME,
    SUB_MODIFIER_NAME,
    CLASSIFICATION,
    ALLERGEN,
    TAG,
    CALORIES,
    CAFFEINE_CONTENT,
    SODIUM_CONTENT,
    SALT_CONTENT,
    ACTIVE,
    TYPE,
    IMAGE_URL,
    IMAGE_SOURCE,
)

BILINGUAL_FIELDS = (
    NAME,
    DESCRIPTION,
    BRAND_NAME,
    MODIFIER_GROUP_NAME,
    MODIFIER_NAME,
    SUB_MODIFIER_GROUP_NAME,
    SUB_MODIFIER_NAME,
    CLASSIFICATION,
    ALLERGEN,
    TAG,
    ROUTING_LABEL,
)

# Name fields in "most specific first" order for continuation-row detection.
NAME_FIELDS = (NAME, MODIFIER_NAME, MODIFIER_GROUP_NAME)

# Fields the AI translator is asked about. The remaining bilingual fields are
# reconciled by script detection only.
TRANSLATABLE_FIELDS = (NAME, DESCRIPTION, BRAND_NAME, MODIFIER_GROUP_NAME, MODIFIER_NAME)
MODIFIER_TRANSLATABLE_FIELDS = (MODIFIER_GROUP_NAME, MODIFIER_NAME)

TITLE_CASE_FIELDS = (
    NAME,
    DESCRIPTION,
    BRAND_NAME,
    TAG,
    CLASSIFICATION,
    ROUTING_LABEL,
    MODIFIER_GROUP_NAME,
    MODIFIER_NAME,
)

ARABIC_SUFFIX = "Arabic"
ARABIC_LANG_CODES = {"ar", "ar-ae"}
TRANSLATION_MARKER = "[ar-ae]:"
AUTO_ID_PREFIX = "auto-gen-"
DEFAULT_CURRENCY = "AED"
INLINE_IMAGE_PLACEHOLDER = "[BASE64_IMAGE_DATA_EXCLUDED_USE_ZIP]"

PRICE_COLUMN_RE = re.compile(r"^Price\[([A-Z]{3})\]$")

IMAGE_SOURCES = ("excel", "database", "generated", "none")

# ── Header alias table ────────────────────────────────────────────────────────
HEADER_ALIASES = {
    "id": ITEM_ID,
    "item id": ITEM_ID,
    "menu item id": ITEM_ID,
    "item_id": ITEM_ID,
    "itemid": ITEM_ID,
    "name": NAME,
    "item name": NAME,
    "menu item name": NAME,
    "item_name": NAME,
    "title": NAME,
    "brand": BRAND_NAME,
    "brand name": BRAND_NAME,
    "brand id": BRAND_ID,
    "description": DESCRIPTION,
    "desc": DESCRIPTION,
    "item description": DESCRIPTION,
    "preparation time": PREPARATION_TIME,
    "prep time": PREPARATION_TIME,
    "external id": EXTERNAL_ID,
    "barcode": BARCODE,
    "routing label id": ROUTING_LABEL_ID,
    "routing label": ROUTING_LABEL,
    "ingredient": INGREDIENT,
    "ingredients": INGREDIENT,
    "packaging": PACKAGING,
    "price": PRICE,
    "cost": PRICE,
    "amount": PRICE,
    "calories": CALORIES,
    "calories(kcal)": CALORIES,
    "calories (kcal)": CALORIES,
    "kcal": CALORIES,
    "caffeine content(g)": CAFFEINE_CONTENT,
    "caffeine content": CAFFEINE_CONTENT,
    "sodium content(g)": SODIUM_CONTENT,
    "sodium content": SODIUM_CONTENT,
    "salt content(g)": SALT_CONTENT,
    "salt content": SALT_CONTENT,
    "tag": TAG,
    "tags": TAG,
    "category": TAG,
    "categories": TAG,
    "classification": CLASSIFICATION,
    "allergen": ALLERGEN,
    "allergens": ALLERGEN,
    "modifier group": MODIFIER_GROUP_NAME,
    "modifier group name": MODIFIER_GROUP_NAME,
    "mod group": MODIFIER_GROUP_NAME,
    "modifier group template name": MODIFIER_GROUP_NAME,
    "modifier group id": MODIFIER_GROUP_ID,
    "modifier group template id": MODIFIER_GROUP_ID,
    "modifier name": MODIFIER_NAME,
    "modifier_name": MODIFIER_NAME,
    "modifier": MODIFIER_NAME,
    "addon": MODIFIER_NAME,
    "add-on": MODIFIER_NAME,
    "modifier id": MODIFIER_ID,
    "modifier external id": MODIFIER_EXTERNAL_ID,
    "modifier max limit": MODIFIER_MAX_LIMIT,
    "modifier price": MODIFIER_PRICE,
    "modifier price currency": MODIFIER_PRICE_CURRENCY,
    "sub modifier group": SUB_MODIFIER_GROUP_NAME,
    "sub-modifier group": SUB_MODIFIER_GROUP_NAME,
    "sub modifier group name": SUB_MODIFIER_GROUP_NAME,
    "sub-modifier group name": SUB_MODIFIER_GROUP_NAME,
    "sub modifier name": SUB_MODIFIER_NAME,
    "sub-modifier name": SUB_MODIFIER_NAME,
    "sub modifier": SUB_MODIFIER_NAME,
    "active": ACTIVE,
    "status": ACTIVE,
    "is active": ACTIVE,
    "enabled": ACTIVE,
    "type": TYPE,
    "image": IMAGE_URL,
    "images": IMAGE_URL,
    "image url": IMAGE_URL,
    "image_url": IMAGE_URL,
    "photo": IMAGE_URL,
    "picture": IMAGE_URL,
    "url": IMAGE_URL,
    "link": IMAGE_URL,
    "drive link": IMAGE_URL,
}


def arabic_companion(field_name: str) -> str:
    return f"{field_name}{ARABIC_SUFFIX}"


def is_arabic_companion(column: str) -> bool:
    return column.endswith(ARABIC_SUFFIX) and len(column) > len(ARABIC_SUFFIX)


def companion_base(column: str) -> str:
    return column[: -len(ARABIC_SUFFIX)]


def price_column(currency: str) -> str:
    return f"Price[{currency}]"


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and value != value:
        return True
    return isinstance(value, str) and not value.strip()


# ── Records ───────────────────────────────────────────────────────────────────

_KNOWN_COLUMNS = set(CANONICAL_FIELDS) | {arabic_companion(f) for f in BILINGUAL_FIELDS}


@dataclass
class MenuRecord:
    """
    One menu item or one flattened modifier.

    ``data`` keeps insertion order, which is the first-seen column order the
    column synthesizer relies on. Columns outside the canonical set (and
    outside the derived ``Price[XXX]`` columns) are unrecognised input columns
    carried through unchanged; ``extras`` exposes them.
    """

    data: dict[str, Any] = field(default_factory=dict)
    row_number: int | None = None

    def get(self, column: str, default: Any = "") -> Any:
        value = self.data.get(column, default)
        return default if value is None else value

    def text(self, column: str) -> str:
        value = self.data.get(column)
        if is_blank(value):
            return ""
        return str(value).strip()

    def set(self, column: str, value: Any) -> None:
        self.data[column] = value

    def has(self, column: str) -> bool:
        return not is_blank(self.data.get(column))

    def pop(self, column: str, default: Any = None) -> Any:
        return self.data.pop(column, default)

    def columns(self) -> list[str]:
        return list(self.data)

    @property
    def extras(self) -> dict[str, Any]:
        return {
            key: value
            for key, value in self.data.items()
            if key not in _KNOWN_COLUMNS and not PRICE_COLUMN_RE.match(key)
        }

    def identity(self) -> str:
        for column in (ITEM_ID, MODIFIER_ID, MODIFIER_GROUP_ID):
            value = self.text(column)
            if value:
                return value
        return ""

    def copy(self) -> "MenuRecord":
        return MenuRecord(data=dict(self.data), row_number=self.row_number)

    def __iter__(self) -> Iterator[str]:
        return iter(self.data)

    def __len__(self) -> int:
        return len(self.data)


@dataclass
class Anomaly:
    kind: str
    message: str
    row_number: int | None = None
    value: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "message": self.message,
            "row_number": self.row_number,
            "value": self.value,
        }


ANOMALY_ORPHAN_TRANSLATION = "orphan-translation"
ANOMALY_EMPTY_DATASET = "empty-dataset"
ANOMALY_ZERO_ITEMS = "zero-items"
ANOMALY_ID_COLLISION = "id-collision"


@dataclass
class TransformStats:
    total_raw_rows: int = 0
    total_items_processed: int = 0
    arabic_translations_found: int = 0
    already_arabic_count: int = 0
    auto_translated_count: int = 0
    auto_translated_en_count: int = 0
    translation_direction: str = "none"
    calories_estimated_count: int = 0
    images_from_excel: int = 0
    images_from_db: int = 0
    images_pending_generation: int = 0
    currencies_detected: list[str] = field(default_factory=list)
    failed_batches: int = 0
    skipped_batches: int = 0
    rate_limited: bool = False
    anomalies: list[Anomaly] = field(default_factory=list)

    @property
    def zero_items(self) -> bool:
        return self.total_items_processed == 0

    def as_dict(self) -> dict[str, Any]:
        return {
            "total_raw_rows": self.total_raw_rows,
            "total_items_processed": self.total_items_processed,
            "arabic_translations_found": self.arabic_translations_found,
            "already_arabic_count": self.already_arabic_count,
            "auto_translated_count": self.auto_translated_count,
            "auto_translated_en_count": self.auto_translated_en_count,
            "translation_direction": self.translation_direction,
            "calories_estimated_count": self.calories_estimated_count,
            "images_from_excel": self.images_from_excel,
            "images_from_db": self.images_from_db,
            "images_pending_generation": self.images_pending_generation,
            "currencies_detected": list(self.currencies_detected),
            "failed_batches": self.failed_batches,
            "skipped_batches": self.skipped_batches,
            "rate_limited": self.rate_limited,
            "zero_items": self.zero_items,
            "anomalies": [anomaly.as_dict() for anomaly in self.anomalies],
        }


@dataclass
class TransformOptions:
    apply_title_case: bool = False
    split_price: bool = True
    default_currency: str = DEFAULT_CURRENCY
    translate_to_english: bool = False
    translate_to_arabic: bool = False
    auto_translate: bool = False
    estimate_calories: bool = False
    sync_images: bool = False
    fuzzy_image_match: bool = True
    fuzzy_threshold: float = 0.75
    batch_size: int = 25
    calorie_batch_size: int = 30
    concurrency: int = 3

    @property
    def needs_oracle(self) -> bool:
        return self.translate_to_english or self.translate_to_arabic or self.auto_translate

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "TransformOptions":
        known = set(cls.__dataclass_fields__)
        unknown = sorted(set(payload) - known)
        if unknown:
            raise ValueError(f"Unknown option(s): {', '.join(unknown)}")
        options = cls(**payload)
        options.validate()
        return options

    def validate(self) -> None:
        if self.batch_size < 1 or self.calorie_batch_size < 1:
            raise ValueError("Batch sizes must be at least 1")
        if self.concurrency < 1:
            raise ValueError("Concurrency must be at least 1")
        if not 0.0 <= self.fuzzy_threshold <= 1.0:
            raise ValueError("fuzzy_threshold must be between 0 and 1")
        if not re.fullmatch(r"[A-Za-z]{3}", self.default_currency or ""):
            raise ValueError("default_currency must be a 3-letter code")
