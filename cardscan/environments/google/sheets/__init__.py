"""
Google Sheets Module - per-user card spreadsheet.

This module provides:
- GoogleSheetsClient: Drive lookup + Sheets create/append/read
- Row layout helpers: HEADER_ROW, card_to_row, row_to_card
"""

from cardscan.environments.google.sheets.client import GoogleSheetsClient
from cardscan.environments.google.sheets.schemas import (
    DEFAULT_SHEET_TITLE,
    HEADER_ROW,
    LAST_COLUMN,
    DriveFile,
    a1_range,
    card_to_row,
    row_to_card,
    utc_timestamp,
)

__all__ = [
    "GoogleSheetsClient",
    "DEFAULT_SHEET_TITLE",
    "HEADER_ROW",
    "LAST_COLUMN",
    "DriveFile",
    "a1_range",
    "card_to_row",
    "row_to_card",
    "utc_timestamp",
]
