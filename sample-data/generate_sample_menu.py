#!/usr/bin/env python3
"""
Generates sample-data/sample_menu.xlsx and sample-data/sample_modifiers.xlsx,
two restaurant exports in the shape menu-studio normalizes.

Run from the repo root:
    python sample-data/generate_sample_menu.py

Baked in:
  sample_menu.xlsx, sheet "Menu"
    - Free-form headers ("Menu Item ID", "Item Name", "Description (AR)", "Cost")
    - [ar-ae]: translation rows under three items
    - A blank separator row followed by an orphan translation row
    - Prices with and without currency codes (AED, SAR, bare numbers)
    - One item whose name is already Arabic
    - One item without an id (gets auto-gen-<row>)
    - An unrecognised "Spice Level" column carried through
  sample_menu.xlsx, sheet "Notes"
    - A second sheet that is reported and ignored
  sample_modifiers.xlsx, sheet "Modifiers"
    - Two groups, one translation row per modifier, explicit currency column
    - A group with no modifiers
"""

from pathlib import Path
import openpyxl

HERE = Path(__file__).parent

# ── Menu export ──────────────────────────────────────────────────────────────
wb = openpyxl.Workbook()
ws = wb.active
ws.title = "Menu"

ws.append(["Menu Item ID", "Item Name", "Description", "Description (AR)", "Cost", "Calories", "Spice Level", "Image"])

rows = [
    ["101", "Chicken Burger", "Grilled chicken, brioche bun", None, "AED 32.00", "650", "Mild", "https://cdn.example.com/101.jpg"],
    [None, "[ar-ae]: برجر الدجاج", "[ar-ae]: دجاج مشوي، خبز بريوش", None, None, None, None, None],
    ["102", "Beef Bacon Fries", "Loaded fries", None, "28", None, "Medium", None],
    [None, "[ar-ae]: بطاطس باللحم المقدد", None, None, None, None, None, None],
    ["103", "فلافل", None, "فلافل مقرمشة", "SAR 15", None, None, None],
    [None, "Iced Karak", "Spiced milk tea", None, "12.5", "180", None, None],
    [None, None, None, None, None, None, None, None],                                    # blank
    [None, "[ar-ae]: شاي كرك مثلج", None, None, None, None, None, None],                 # orphan
    ["105", "Mango Lassi", "Fresh mango, yoghurt", None, "1,250 AED", None, None, None],
]
for row in rows:
    ws.append(row)

notes = wb.create_sheet("Notes")
notes.append(["Comment"])
notes.append(["Prices reviewed by the ops team"])

wb.save(HERE / "sample_menu.xlsx")

# ── Modifier export ──────────────────────────────────────────────────────────
wb = openpyxl.Workbook()
ws = wb.active
ws.title = "Modifiers"

ws.append([
    "Modifier Group Template Id",
    "Modifier Group Template Name",
    "Modifier Id",
    "Modifier Name",
    "Modifier External Id",
    "Modifier Max Limit",
    "Modifier Price",
    "Modifier Price Currency",
])

rows = [
    ["G-SIZE", "Size", "M-1", "Small", "EXT-S", 1, 0, "AED"],
    [None, "[ar-ae]:الحجم", None, "[ar-ae]:صغير", None, None, None, None],
    [None, None, "M-2", "Large", "EXT-L", 1, 4, "AED"],
    [None, None, None, "[ar-ae]:كبير", None, None, None, None],
    ["G-SAUCE", "Sauces", None, None, None, None, None, None],                        # empty group
    ["G-EXTRA", "Extras", "M-3", "Cheese", "EXT-C", 3, 2.5, "SAR"],
    [None, "[ar-ae]:إضافات", None, "[ar-ae]:جبن", None, None, None, None],
]
for row in rows:
    ws.append(row)

wb.save(HERE / "sample_modifiers.xlsx")
print(f"Written: {HERE / 'sample_menu.xlsx'}")
print(f"Written: {HERE / 'sample_modifiers.xlsx'}")
