"""
Google Sheets / Drive Schemas - row layout and API response shapes.

Row Layout (fixed, 9 columns, header row required):
====================================================
A Name | B Company | C Job Title | D Email | E Phone | F Website |
G Address | H Social Links | I Timestamp

Social links are stored as one cell joined with ", " and split back on
", " when read. No escaping beyond what the Sheets API does itself.

Reference:
- Drive files.list: https://developers.google.com/drive/api/reference/rest/v3/files/list
- values.append: https://developers.google.com/sheets/api/reference/rest/v4/spreadsheets.values/append
"""

from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from cardscan.schemas.card import CardData, CardRecord


SPREADSHEET_MIME_TYPE = "application/vnd.google-apps.spreadsheet"

HEADER_ROW = [
    "Name",
    "Company",
    "Job Title",
    "Email",
    "Phone",
    "Website",
    "Address",
    "Social Links",
    "Timestamp",
]

COLUMN_COUNT = len(HEADER_ROW)
LAST_COLUMN = chr(ord("A") + COLUMN_COUNT - 1)  # "I"

SOCIAL_LINKS_SEPARATOR = ", "

# Tab created in every per-user spreadsheet
DEFAULT_SHEET_TITLE = "Sheet1"


def utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with a Z suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def a1_range(sheet_title: str, cells: str) -> str:
    """
    Build an A1 range, quoting the sheet title when it needs it.

    >>> a1_range("Sheet1", "A:I")
    'Sheet1!A:I'
    >>> a1_range("My Cards", "A2:I")
    "'My Cards'!A2:I"
    """
    if sheet_title.replace("_", "").isalnum():
        return f"{sheet_title}!{cells}"
    escaped = sheet_title.replace("'", "''")
    return f"'{escaped}'!{cells}"


def card_to_row(record: CardRecord, default_timestamp: Optional[str] = None) -> List[str]:
    """Map one card onto the 9-column row. Empty timestamps get filled in."""
    data = record.data
    return [
        data.name,
        data.company,
        data.job_title,
        data.email,
        data.phone,
        data.website,
        data.address,
        SOCIAL_LINKS_SEPARATOR.join(data.social_links),
        record.timestamp or default_timestamp or utc_timestamp(),
    ]


def row_to_card(row: List[Any], index: int) -> CardRecord:
    """Map a row read from the sheet back onto a card; missing cells are ""."""
    cells = [str(cell) if cell is not None else "" for cell in row]
    cells += [""] * (COLUMN_COUNT - len(cells))

    links = [link for link in cells[7].split(SOCIAL_LINKS_SEPARATOR) if link.strip()] if cells[7] else []

    return CardRecord(
        id=f"sheet-{index}",
        data=CardData(
            name=cells[0],
            company=cells[1],
            job_title=cells[2],
            email=cells[3],
            phone=cells[4],
            website=cells[5],
            address=cells[6],
            social_links=links,
        ),
        timestamp=cells[8],
    )


# ---------------------------------------------------------------------------
# API RESPONSES
# ---------------------------------------------------------------------------

class DriveFile(BaseModel):
    """A file entry from Drive files.list."""
    id: str
    name: str = ""
    created_time: Optional[str] = Field(None, alias="createdTime")

    class Config:
        populate_by_name = True


class DriveFileList(BaseModel):
    """Response from Drive files.list."""
    files: List[DriveFile] = Field(default_factory=list)


class ValueRange(BaseModel):
    """Response from spreadsheets.values.get."""
    range: Optional[str] = None
    major_dimension: Optional[str] = Field(None, alias="majorDimension")
    values: List[List[Any]] = Field(default_factory=list)

    class Config:
        populate_by_name = True
