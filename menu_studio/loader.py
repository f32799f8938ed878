"""
loader.py: spreadsheet and delimited-text loading for menu-studio

Supports: .csv .tsv .txt .xlsx .xlsm .xls .json

Public API:
    result = load_rows("path/to/menu.xlsx")
    rows   = result["rows"]

Result dict keys:
    rows                list of {header: cleaned cell value}, one per data row
    headers             header row as read (strings, input order)
    dataframe           the pandas DataFrame the rows came from
    detected_format     "csv", "xlsx", "json", ...
    detected_encoding   encoding name for text files; None for workbooks
    delimiter           delimiter char for text files; None otherwise
    sheet_name          sheet that was read for workbooks; None otherwise
    sheet_names         all sheet names for workbooks; None otherwise
    skipped_lines       malformed text rows left out of rows: {line_number, fields, raw}
    warnings            list of warning strings

Anything that cannot be read as a table with a header row raises
UnreadableInputError before a single record exists.
"""

from __future__ import annotations

import csv
import io
import json
import re
from collections import Counter
from pathlib import Path
from typing import Optional

import chardet
import pandas as pd

from menu_studio.normalization import clean_cell_text

TEXT_FORMATS  = {".csv", ".tsv", ".txt"}
EXCEL_FORMATS = {".xlsx", ".xlsm", ".xls"}
JSON_FORMATS  = {".json"}
ALL_FORMATS   = TEXT_FORMATS | EXCEL_FORMATS | JSON_FORMATS

UNNAMED_COLUMN_RE = re.compile(r"^Unnamed: \d+$")


class UnreadableInputError(ValueError):
    """The input file has no readable table: fatal for the whole run."""


# ══════════════════════════════════════════════════════════════════════════════
# TEXT DECODING
# ══════════════════════════════════════════════════════════════════════════════

def _detect_encoding(raw: bytes) -> str:
    if raw.startswith(b"\xef\xbb\xbf"):
        return "utf-8-sig"
    result   = chardet.detect(raw[:200_000])
    detected = result.get("encoding") or "utf-8"
    if detected.upper().replace("-", "") in ("UTF8", "ASCII"):
        return "utf-8"
    return detected


def _decode(raw: bytes, encoding: str) -> str:
    """
    Decode with the detected encoding, falling back to UTF-8 with replacement.

    Null bytes and the BOM are stripped so the header row matches cleanly.
    """
    try:
        text = raw.decode(encoding)
    except (LookupError, UnicodeDecodeError):
        text = raw.decode("utf-8", errors="replace")
    return text.replace("\x00", "").lstrip("\ufeff")


def _detect_delimiter(text: str) -> str:
    """csv.Sniffer first, then the candidate with the most consistent column count."""
    sample_lines = [line for line in text.splitlines() if line.strip()][:50]
    sample = "\n".join(sample_lines[:25])

    if sample:
        try:
            return csv.Sniffer().sniff(sample, delimiters=",;\t|").delimiter
        except csv.Error:
            pass

    best_delim = ","
    best_score = float("-inf")
    for delim in (",", ";", "\t", "|"):
        widths = [len(row) for row in csv.reader(io.StringIO(sample), delimiter=delim) if row]
        if not widths:
            continue
        mode_width, mode_count = Counter(widths).most_common(1)[0]
        score = mode_width * 2.0 + (mode_count / len(widths)) * mode_width
        if mode_width == 1:
            score -= 10.0
        if score > best_score:
            best_score = score
            best_delim = delim
    return best_delim


# ══════════════════════════════════════════════════════════════════════════════
# FORMAT LOADERS
# ══════════════════════════════════════════════════════════════════════════════

def _load_text(path: Path, suffix: str) -> dict:
    raw = path.read_bytes()
    if not raw.strip():
        raise UnreadableInputError(f"{path.name} is empty: a header row is required")

    encoding  = _detect_encoding(raw)
    text      = _decode(raw, encoding)
    delimiter = "\t" if suffix == ".tsv" else _detect_delimiter(text)

    lines   = text.splitlines()
    skipped: list[dict] = []

    def record_bad_line(fields: list[str]) -> None:
        """Keep a trace of rows with too many fields; returning None drops them from the frame."""
        raw_line = delimiter.join(fields)
        start    = (skipped[-1]["line_number"] or 1) if skipped else 1
        line_number = next(
            (i + 1 for i in range(start, len(lines)) if lines[i].strip() == raw_line.strip()),
            None,
        )
        skipped.append({"line_number": line_number, "fields": list(fields), "raw": raw_line})
        return None

    sep = r"\|" if delimiter == "|" else delimiter
    try:
        df = pd.read_csv(
            io.StringIO(text),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=False,
            on_bad_lines=record_bad_line,
            sep=sep,
            engine="python",
        )
    except Exception as exc:
        raise UnreadableInputError(f"Could not parse {suffix} file: {exc}") from exc

    warnings = []
    for bad in skipped:
        where = f"line {bad['line_number']}" if bad["line_number"] else "a line"
        warnings.append(
            f"Skipped malformed row at {where}: {len(bad['fields'])} fields "
            f"(expected {len(df.columns)}): {bad['raw']!r}"
        )

    return {
        "dataframe":         df,
        "detected_format":   suffix.lstrip("."),
        "detected_encoding": encoding,
        "delimiter":         delimiter,
        "sheet_name":        None,
        "sheet_names":       None,
        "skipped_lines":     skipped,
        "warnings":          warnings,
    }


def _load_excel(path: Path, suffix: str, sheet_name: Optional[str] = None) -> dict:
    """Read one sheet: ``sheet_name`` when given, otherwise the first one."""
    if suffix == ".xls":
        try:
            import xlrd  # noqa: F401
        except ImportError:
            raise ImportError(".xls files require xlrd; run: pip install 'menu-studio[excel-legacy]'")

    warnings: list[str] = []
    try:
        with pd.ExcelFile(path) as xf:
            all_sheets = list(xf.sheet_names)
    except Exception as exc:
        raise UnreadableInputError(f"Could not open workbook: {exc}") from exc

    if not all_sheets:
        raise UnreadableInputError("Workbook has no sheets")
    if sheet_name is not None and sheet_name not in all_sheets:
        raise UnreadableInputError(f"Sheet '{sheet_name}' not found. Available: {all_sheets}")
    chosen = sheet_name if sheet_name is not None else all_sheets[0]

    try:
        df = pd.read_excel(path, sheet_name=chosen, dtype=str, keep_default_na=False)
    except Exception as exc:
        raise UnreadableInputError(f"Could not load sheet '{chosen}': {exc}") from exc

    if len(all_sheets) > 1:
        others = [name for name in all_sheets if name != chosen]
        warnings.append(f"Multiple sheets found ({len(all_sheets)} total); used '{chosen}'. Ignored: {others}")

    return {
        "dataframe":         df,
        "detected_format":   suffix.lstrip("."),
        "detected_encoding": None,
        "delimiter":         None,
        "sheet_name":        chosen,
        "sheet_names":       all_sheets,
        "warnings":          warnings,
    }


def _load_json(path: Path) -> dict:
    """
    Load an array of row objects, or an object holding one under any key.

    Nested values are flattened with ``pd.json_normalize``.
    """
    raw      = path.read_bytes()
    encoding = _detect_encoding(raw)
    try:
        data = json.loads(_decode(raw, encoding))
    except json.JSONDecodeError as exc:
        raise UnreadableInputError(f"Invalid JSON: {exc}") from exc

    warnings: list[str] = []
    if isinstance(data, dict):
        list_keys = [key for key, value in data.items() if isinstance(value, list)]
        if not list_keys:
            raise UnreadableInputError("JSON object holds no array of rows")
        warnings.append(f"Nested JSON: used array at top-level key '{list_keys[0]}'")
        data = data[list_keys[0]]
    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise UnreadableInputError("JSON root must be an array of objects")

    df = pd.json_normalize(data) if data else pd.DataFrame()
    return {
        "dataframe":         df.astype(object).where(df.notna(), ""),
        "detected_format":   "json",
        "detected_encoding": encoding,
        "delimiter":         None,
        "sheet_name":        None,
        "sheet_names":       None,
        "warnings":          warnings,
    }


# ══════════════════════════════════════════════════════════════════════════════
# ROW EXTRACTION
# ══════════════════════════════════════════════════════════════════════════════

def _drop_unnamed_empty_columns(df: pd.DataFrame, warnings: list[str]) -> pd.DataFrame:
    dropped = []
    for column in df.columns:
        if not UNNAMED_COLUMN_RE.match(str(column)):
            continue
        values = df[column].map(clean_cell_text)
        if (values.astype(str).str.strip() == "").all():
            dropped.append(str(column))
    if dropped:
        warnings.append(f"Dropped {len(dropped)} empty unnamed column(s): {dropped}")
        df = df.drop(columns=dropped)
    return df


def dataframe_to_rows(df: pd.DataFrame) -> list[dict]:
    headers = [str(column) for column in df.columns]
    rows = []
    for values in df.itertuples(index=False, name=None):
        rows.append({header: clean_cell_text(value) for header, value in zip(headers, values)})
    return rows


def load_rows(path: "str | Path", sheet_name: Optional[str] = None) -> dict:
    """
    Load a menu export into plain row dicts.

    Raises:
        FileNotFoundError     if the file does not exist.
        UnreadableInputError  if the format is unsupported or the table unreadable.
        ImportError           if .xls support (xlrd) is not installed.
    """
    path   = Path(path)
    suffix = path.suffix.lower()

    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    if suffix not in ALL_FORMATS:
        supported = ", ".join(sorted(ALL_FORMATS))
        raise UnreadableInputError(f"Unsupported format '{suffix}'. Supported: {supported}")

    if suffix in TEXT_FORMATS:
        result = _load_text(path, suffix)
    elif suffix in EXCEL_FORMATS:
        result = _load_excel(path, suffix, sheet_name)
    else:
        result = _load_json(path)

    df = result["dataframe"]
    if len(df.columns) == 0:
        raise UnreadableInputError(f"{path.name} has no header row")

    result.setdefault("skipped_lines", [])
    df = _drop_unnamed_empty_columns(df, result["warnings"])
    result["dataframe"] = df
    result["headers"]   = [str(column) for column in df.columns]
    result["rows"]      = dataframe_to_rows(df)
    return result
