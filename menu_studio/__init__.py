"""Menu Studio: spreadsheet menu normalization and bilingual reconciliation."""

__version__ = "0.3.0"
