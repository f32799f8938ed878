from __future__ import annotations

import re
from typing import Any

from menu_studio.schema import (
    ARABIC_LANG_CODES,
    DEFAULT_CURRENCY,
    PRICE,
    TRANSLATION_MARKER,
    MenuRecord,
    is_blank,
    price_column,
)

ARABIC_RE = re.compile(r"[\u0600-\u06FF]")
ENGLISH_RE = re.compile(r"[A-Za-z]")

# ``[ar-ae]:text`` / ``[en]: text``
TRANSLATION_VALUE_RE = re.compile(r"^\[([a-z]{2}(?:-[a-z]{2})?)\]:\s*(.*)$", re.IGNORECASE | re.DOTALL)

CURRENCY_SYMBOL_MAP = {"$": "USD", "€": "EUR", "£": "GBP", "₹": "INR", "¥": "JPY"}
CURRENCY_CODE_RE = re.compile(r"(?<![A-Za-z])([A-Za-z]{3})(?![A-Za-z])")
KNOWN_CURRENCY_CODES = {
    "AED", "AUD", "BHD", "CAD", "CHF", "CNY", "EGP", "EUR", "GBP", "INR",
    "JOD", "JPY", "KWD", "LBP", "OMR", "QAR", "SAR", "USD",
}
PRICE_VALUE_RE = re.compile(r"\d[\d,]*(?:\.\d+)?|\.\d+")

SMALL_WORDS = {"a", "an", "the", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with"}
UNIT_WORDS = {"ml", "l", "pcs"}


def clean_cell_text(value: Any) -> Any:
    """Strip BOM and null bytes from text cells; other scalars pass through."""
    if value is None:
        return ""
    if isinstance(value, float) and value != value:
        return ""
    if not isinstance(value, str):
        return value
    return value.replace("\ufeff", "").replace("\x00", "").strip()


def is_arabic(text: Any) -> bool:
    if is_blank(text):
        return False
    return ARABIC_RE.search(str(text)) is not None


def is_english(text: Any) -> bool:
    if is_blank(text):
        return False
    return ENGLISH_RE.search(str(text)) is not None


def apply_title_case(text: Any) -> str:
    if is_blank(text):
        return ""
    words = str(text).lower().split(" ")
    out = []
    for index, word in enumerate(words):
        if word in UNIT_WORDS:
            out.append(word.upper())
        elif index > 0 and word in SMALL_WORDS:
            out.append(word)
        else:
            out.append(word[:1].upper() + word[1:])
    return " ".join(out)


# ── Translation markers ───────────────────────────────────────────────────────

def has_arabic_marker(value: Any) -> bool:
    if is_blank(value):
        return False
    return str(value).lstrip().startswith(TRANSLATION_MARKER)


def strip_arabic_marker(value: Any) -> str:
    text = str(value).lstrip()
    if text.startswith(TRANSLATION_MARKER):
        text = text[len(TRANSLATION_MARKER):]
    return text.strip()


def parse_translation(value: Any) -> tuple[str, str] | None:
    """``"[ar-ae]:بسكويت"`` -> ``("ar-ae", "بسكويت")``; ``None`` when unmarked."""
    if is_blank(value) or not isinstance(value, str):
        return None
    match = TRANSLATION_VALUE_RE.match(value.strip())
    if not match:
        return None
    return match.group(1).lower(), match.group(2).strip()


def is_arabic_lang(lang_code: str) -> bool:
    return lang_code.lower() in ARABIC_LANG_CODES


# ── Prices ────────────────────────────────────────────────────────────────────

def _whole_or_float(amount: float) -> int | float:
    return int(amount) if amount.is_integer() else amount


def parse_price(value: Any, default_currency: str = DEFAULT_CURRENCY) -> tuple[str, int | float | None]:
    """
    Split a raw price cell into (currency, numeric value).

    The currency is the first standalone three-letter code (upper-case, or a
    known code in any case), else a known
    currency symbol, else ``default_currency``. The value is the first numeric
    run with thousands separators removed, an ``int`` when it is whole;
    ``None`` when there is no number.
    """
    if is_blank(value):
        return default_currency.upper(), None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return default_currency.upper(), _whole_or_float(float(value))

    raw = str(value).strip()
    currency = None
    for token in CURRENCY_CODE_RE.findall(raw):
        # Lower-case words ("per", "pcs") only count when they are known codes.
        if token.isupper() or token.upper() in KNOWN_CURRENCY_CODES:
            currency = token.upper()
            break
    if currency is None:
        symbol = next((s for s in CURRENCY_SYMBOL_MAP if s in raw), None)
        if symbol:
            currency = CURRENCY_SYMBOL_MAP[symbol]
    currency = currency or default_currency.upper()

    value_match = PRICE_VALUE_RE.search(raw)
    if not value_match:
        return currency, None
    try:
        amount = float(value_match.group(0).replace(",", ""))
    except ValueError:
        return currency, None
    return currency, _whole_or_float(amount)


def split_price(record: MenuRecord, default_currency: str = DEFAULT_CURRENCY) -> str | None:
    """Replace ``Price`` on ``record`` with ``Price[<CUR>]``. Returns the currency used."""
    if PRICE not in record.data:
        return None
    raw = record.pop(PRICE)
    currency, amount = parse_price(raw, default_currency)
    if amount is None:
        return None
    record.set(price_column(currency), amount)
    return currency
