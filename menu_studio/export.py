from __future__ import annotations

from pathlib import Path
from typing import Any, Sequence

import openpyxl
import pandas as pd
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from menu_studio.pipeline import MODE_MODIFIERS, TransformResult
from menu_studio.schema import IMAGE_URL, INLINE_IMAGE_PLACEHOLDER

MENU_SHEET = "Transformed Menu"
MODIFIER_SHEET = "MODIFIER_GROUP_TEMPLATE_REPORT"
HEADER_COLOR = "1565C0"
EXCEL_CELL_LIMIT = 32767


def is_inline_image(value: Any) -> bool:
    return isinstance(value, str) and value.strip().lower().startswith("data:")


def redact_inline_images(rows: Sequence[dict[str, Any]]) -> list[dict[str, Any]]:
    """Copies of ``rows`` with inline ``data:`` image payloads replaced by a placeholder."""
    redacted = []
    for row in rows:
        row = dict(row)
        if is_inline_image(row.get(IMAGE_URL)):
            row[IMAGE_URL] = INLINE_IMAGE_PLACEHOLDER
        redacted.append(row)
    return redacted


def export_frame(result: TransformResult) -> pd.DataFrame:
    return pd.DataFrame(redact_inline_images(result.rows()), columns=result.columns, dtype=object)


def _header_font() -> Font:
    return Font(bold=True, color="FFFFFF")


def _header_fill(hex_color: str) -> PatternFill:
    return PatternFill("solid", fgColor=hex_color)


def _style_sheet(ws, col_widths: list[int], header_color: str):
    fill = _header_fill(header_color)
    font = _header_font()
    for cell in ws[1]:
        cell.font = font
        cell.fill = fill
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=False)
    ws.freeze_panes = "A2"
    for i, width in enumerate(col_widths, start=1):
        ws.column_dimensions[get_column_letter(i)].width = width


def _infer_col_widths(rows: list[list], min_width: int = 10, max_width: int = 60, sample: int = 300) -> list[int]:
    if not rows:
        return []
    widths = [max(min_width, min(max_width, len(str(v)) + 2)) for v in rows[0]]
    for row in rows[1 : sample + 1]:
        for i, val in enumerate(row):
            widths[i] = max(widths[i], min(max_width, len(str(val)) + 2))
    return widths


def modifier_col_widths(columns: Sequence[str]) -> list[int]:
    return [28 if "Id" in column else 25 if "Name" in column else 15 for column in columns]


def _cell_value(value: Any) -> Any:
    if isinstance(value, str):
        value = ILLEGAL_CHARACTERS_RE.sub("", value)
        if len(value) > EXCEL_CELL_LIMIT:
            value = value[:EXCEL_CELL_LIMIT]
    return value


def _ensure_new(path: Path) -> Path:
    path = Path(path)
    if path.exists():
        raise FileExistsError(f"Refusing to overwrite existing file: {path}")
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def write_xlsx(result: TransformResult, path: Path | str) -> Path:
    path = _ensure_new(Path(path))
    rows = redact_inline_images(result.rows())

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = MODIFIER_SHEET if result.mode == MODE_MODIFIERS else MENU_SHEET
    ws.append(list(result.columns))
    table = [list(result.columns)]
    for row in rows:
        values = [_cell_value(row.get(column, "")) for column in result.columns]
        ws.append(values)
        table.append(values)

    if result.mode == MODE_MODIFIERS:
        widths = modifier_col_widths(result.columns)
    else:
        widths = _infer_col_widths(table)
    _style_sheet(ws, widths, HEADER_COLOR)

    wb.save(path)
    return path


def write_csv(result: TransformResult, path: Path | str) -> Path:
    """UTF-8 with BOM so spreadsheet apps open Arabic text correctly."""
    path = _ensure_new(Path(path))
    export_frame(result).to_csv(path, index=False, encoding="utf-8-sig")
    return path


WRITERS = {"xlsx": write_xlsx, "csv": write_csv}


def write_output(result: TransformResult, path: Path | str, fmt: str = "xlsx") -> Path:
    try:
        writer = WRITERS[fmt]
    except KeyError:
        raise ValueError(f"Unsupported output format: {fmt}") from None
    return writer(result, path)
