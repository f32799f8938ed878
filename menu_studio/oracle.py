"""
AI collaborators: the Translation Oracle and the calorie estimator.

The pipeline only depends on the two small interfaces below. ``GeminiClient``
implements both against the Gemini ``generateContent`` REST endpoint.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import requests

logger = logging.getLogger(__name__)

MODE_TO_ARABIC = "to-arabic"
MODE_TO_ENGLISH = "to-english"
TRANSLATION_MODES = (MODE_TO_ARABIC, MODE_TO_ENGLISH)

DEFAULT_MODEL = "gemini-2.0-flash"
DEFAULT_TIMEOUT = 60.0
API_ROOT = "https://generativelanguage.googleapis.com/v1beta"


class OracleError(Exception):
    """A single batch call failed: transport, HTTP status, or malformed reply."""


class RateLimitError(OracleError):
    """The service asked us to slow down; no further batches should start."""


@dataclass
class TranslationRequest:
    id: str
    fields: dict[str, str]

    def as_payload(self) -> dict[str, str]:
        return {"id": self.id, **self.fields}


class TranslationOracle:
    def translate(self, batch: list[TranslationRequest], mode: str) -> dict[str, dict[str, str]]:
        """Return ``{request id: {field: translated text}}`` for ``batch``."""
        raise NotImplementedError


class CalorieEstimator:
    def estimate_calories(self, items: list[dict[str, Any]]) -> dict[str, float]:
        """Return ``{item id: kcal}`` for the items it could estimate."""
        raise NotImplementedError


# ── Prompts ───────────────────────────────────────────────────────────────────

TO_ARABIC_PROMPT = """You are an expert Arabic Menu Translator for the GCC/UAE market.
Translate the following menu items, descriptions, and MODIFIERS into high-quality Arabic.

CRITICAL RULES:
- ONLY translate fields that have content. If a field is empty, return an empty string for that field.
- DO NOT create or invent content. Only translate what exists.

MODIFIER RULES:
1. SIZES: Small -> صغير, Medium -> متوسط, Large -> كبير, X-Large -> كبير جداً.
2. VOLUMES: Convert 'ML' to 'مل' and 'L' to 'لتر'. Use Arabic numerals.
3. QUANTITIES: 'Pcs' or 'Pieces' -> 'قطع'.
4. CONSISTENCY: Identical terms across the list must use the same Arabic translation.
5. TYPO FIXING: Correct source typos (e.g. "Meduim" -> "Medium") before translating.

STRICT CULTURAL & DIETARY COMPLIANCE:
- ABSOLUTELY NO mention of Pork, Pig, or Alcohol.
- "Bacon" -> "Beef Bacon" (لحم بقري مقدد).
- "Pepperoni/Salami" -> "Beef Pepperoni" (بيبروني بقري).
- "Ham" -> "Turkey Ham" (حبش) or "Beef Ham" (لحم بقري مدخن).
- For alcohol-based sauces, translate based on flavour (e.g. "Rich Sauce").
"""

TO_ENGLISH_PROMPT = """You are an expert Menu Translator.
Translate the following Arabic menu items and modifiers into professional English.

CRITICAL RULES:
- ONLY translate fields that have content. If a field is empty, return an empty string for that field.
- DO NOT create or invent content. Only translate what exists.
- Never mention pork or alcohol; name sauces by flavour.
"""

RESPONSE_FORMAT = """
Return a JSON array with one object per item, using exactly the same keys as the input:
[{{"id": "original_id", {keys}}}]

Items:
{items}
"""

CALORIE_PROMPT = """Estimate typical calorie counts for these menu items based on standard GCC market ingredients.
Return JSON: [{{"id": "original_id", "calories": number}}]

Items:
{items}
"""


def build_translation_prompt(batch: list[TranslationRequest], mode: str) -> str:
    if mode not in TRANSLATION_MODES:
        raise ValueError(f"Unknown translation mode: {mode}")
    keys: dict[str, None] = {}
    for request in batch:
        for name in request.fields:
            keys.setdefault(name, None)
    key_hint = ", ".join(f'"{name}": "translated text or empty"' for name in keys)
    header = TO_ARABIC_PROMPT if mode == MODE_TO_ARABIC else TO_ENGLISH_PROMPT
    items = json.dumps([request.as_payload() for request in batch], ensure_ascii=False)
    return header + RESPONSE_FORMAT.format(keys=key_hint, items=items)


def parse_translation_response(payload: Any, batch: list[TranslationRequest]) -> dict[str, dict[str, str]]:
    """
    Keep only answers for ids and fields that were actually submitted.

    A field submitted empty always comes back empty, whatever the model said.
    """
    if not isinstance(payload, list):
        raise OracleError(f"Expected a JSON array, got {type(payload).__name__}")
    submitted = {request.id: request.fields for request in batch}
    results: dict[str, dict[str, str]] = {}
    for entry in payload:
        if not isinstance(entry, dict):
            continue
        request_id = str(entry.get("id", ""))
        fields = submitted.get(request_id)
        if fields is None:
            continue
        translated: dict[str, str] = {}
        for name, source in fields.items():
            value = entry.get(name)
            if not source or not isinstance(value, str):
                translated[name] = ""
            else:
                translated[name] = value.strip()
        results[request_id] = translated
    return results


def parse_calorie_response(payload: Any, ids: set[str]) -> dict[str, float]:
    if not isinstance(payload, list):
        raise OracleError(f"Expected a JSON array, got {type(payload).__name__}")
    results: dict[str, float] = {}
    for entry in payload:
        if not isinstance(entry, dict):
            continue
        item_id = str(entry.get("id", ""))
        calories = entry.get("calories")
        if item_id not in ids or isinstance(calories, bool):
            continue
        try:
            results[item_id] = float(calories)
        except (TypeError, ValueError):
            continue
    return results


# ── Gemini REST client ────────────────────────────────────────────────────────

class GeminiClient(TranslationOracle, CalorieEstimator):
    def __init__(self, api_key: str, model: str = DEFAULT_MODEL, timeout: float = DEFAULT_TIMEOUT) -> None:
        if not api_key:
            raise ValueError("A Gemini API key is required")
        self.api_key = api_key
        self.model = model
        self.timeout = timeout

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "GeminiClient":
        env = os.environ if environ is None else environ
        api_key = env.get("MENU_STUDIO_API_KEY") or env.get("GEMINI_API_KEY")
        if not api_key:
            raise ValueError("Set MENU_STUDIO_API_KEY (or GEMINI_API_KEY) to use AI translation or estimation")
        model = env.get("MENU_STUDIO_MODEL") or DEFAULT_MODEL
        try:
            timeout = float(env.get("MENU_STUDIO_TIMEOUT") or DEFAULT_TIMEOUT)
        except ValueError as exc:
            raise ValueError("MENU_STUDIO_TIMEOUT must be a number of seconds") from exc
        return cls(api_key, model=model, timeout=timeout)

    @property
    def endpoint(self) -> str:
        return f"{API_ROOT}/models/{self.model}:generateContent"

    def generate_json(self, prompt: str) -> Any:
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"responseMimeType": "application/json"},
        }
        try:
            response = requests.post(
                self.endpoint,
                params={"key": self.api_key},
                json=body,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise OracleError(f"Gemini request failed: {exc}") from exc

        if response.status_code == 429 or "RESOURCE_EXHAUSTED" in (response.text or "")[:2000]:
            raise RateLimitError(f"Gemini rate limit (HTTP {response.status_code})")
        if response.status_code >= 400:
            raise OracleError(f"Gemini returned HTTP {response.status_code}: {response.text[:200]}")

        try:
            data = response.json()
            parts = data["candidates"][0]["content"]["parts"]
            text = "".join(part.get("text", "") for part in parts)
            return json.loads(text or "[]")
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise OracleError(f"Malformed Gemini response: {exc}") from exc

    def translate(self, batch: list[TranslationRequest], mode: str) -> dict[str, dict[str, str]]:
        prompt = build_translation_prompt(batch, mode)
        return parse_translation_response(self.generate_json(prompt), batch)

    def estimate_calories(self, items: list[dict[str, Any]]) -> dict[str, float]:
        prompt = CALORIE_PROMPT.format(items=json.dumps(items, ensure_ascii=False))
        return parse_calorie_response(self.generate_json(prompt), {str(item["id"]) for item in items})
