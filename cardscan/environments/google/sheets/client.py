"""
Google Sheets API Client - locate, create, append to and read spreadsheets.

Drive and Sheets are two REST APIs but they work on the same file, so one
client covers both: Drive finds the spreadsheet by name, Sheets creates it
and moves rows in and out.

API Reference:
==============
- Drive v3 files: https://developers.google.com/drive/api/reference/rest/v3/files
- Sheets v4 spreadsheets: https://developers.google.com/sheets/api/reference/rest/v4/spreadsheets

Usage Example:
==============
    client = GoogleSheetsClient(access_token="ya29.xxx")
    files = await client.find_spreadsheets_by_name("cards_details")
    spreadsheet_id = files[0].id if files else await client.create_spreadsheet("cards_details")
    await client.append_values(spreadsheet_id, "Sheet1!A:I", rows)
"""

import logging
from typing import Any, List
from urllib.parse import quote

from cardscan.environments.base import EnvironmentService, SyncFailed
from cardscan.environments.google.sheets.schemas import (
    DEFAULT_SHEET_TITLE,
    DriveFile,
    DriveFileList,
    HEADER_ROW,
    LAST_COLUMN,
    SPREADSHEET_MIME_TYPE,
    ValueRange,
    a1_range,
)


logger = logging.getLogger("cardscan.environments.google.sheets")


class GoogleSheetsClient(EnvironmentService):
    """
    Google Sheets + Drive API client.

    Requires an access token with the spreadsheets scope, plus drive for
    lookups by name. Every failure surfaces as SyncFailed.
    """

    service_name = "sheets"
    required_scopes = [
        "https://www.googleapis.com/auth/spreadsheets",
        "https://www.googleapis.com/auth/drive",
    ]
    error_class = SyncFailed

    BASE_URL = "https://sheets.googleapis.com/v4"
    DRIVE_URL = "https://www.googleapis.com/drive/v3"

    # -------------------------------------------------------------------------
    # DRIVE LOOKUP
    # -------------------------------------------------------------------------

    async def find_spreadsheets_by_name(self, name: str) -> List[DriveFile]:
        """
        List non-trashed spreadsheets with exactly this name, oldest first.

        Args:
            name: Spreadsheet title to match

        Returns:
            Matching files ordered by createdTime (may be empty)
        """
        escaped = name.replace("\\", "\\\\").replace("'", "\\'")
        query = (
            f"name='{escaped}' and mimeType='{SPREADSHEET_MIME_TYPE}' and trashed=false"
        )

        response_data = await self._make_request(
            method="GET",
            endpoint="/files",
            params={
                "q": query,
                "fields": "files(id, name, createdTime)",
                "orderBy": "createdTime",
                "spaces": "drive",
            },
            base_url=self.DRIVE_URL,
        )

        files = DriveFileList(**response_data).files
        logger.info(f"Found {len(files)} spreadsheet(s) named '{name}'")
        return files

    # -------------------------------------------------------------------------
    # SPREADSHEET CREATION
    # -------------------------------------------------------------------------

    async def create_spreadsheet(self, name: str, sheet_title: str = DEFAULT_SHEET_TITLE) -> str:
        """
        Create a spreadsheet with one sheet and write the header row.

        Returns:
            The new spreadsheet id
        """
        response_data = await self._make_request(
            method="POST",
            endpoint="/spreadsheets",
            json={
                "properties": {"title": name},
                "sheets": [{"properties": {"title": sheet_title}}],
            },
        )

        spreadsheet_id = response_data.get("spreadsheetId")
        if not spreadsheet_id:
            raise SyncFailed("Spreadsheet creation returned no id")

        await self.write_header(spreadsheet_id, sheet_title)

        logger.info(f"Created spreadsheet '{name}'", extra={"spreadsheet_id": spreadsheet_id})
        return spreadsheet_id

    async def write_header(self, spreadsheet_id: str, sheet_title: str = DEFAULT_SHEET_TITLE) -> None:
        """Write the fixed header into row 1."""
        header_range = a1_range(sheet_title, f"A1:{LAST_COLUMN}1")
        await self._make_request(
            method="PUT",
            endpoint=f"/spreadsheets/{spreadsheet_id}/values/{quote(header_range, safe='!:')}",
            params={"valueInputOption": "RAW"},
            json={"values": [HEADER_ROW]},
        )

    # -------------------------------------------------------------------------
    # VALUES
    # -------------------------------------------------------------------------

    async def append_values(
        self,
        spreadsheet_id: str,
        range_a1: str,
        rows: List[List[Any]],
        value_input_option: str = "RAW",
    ) -> int:
        """
        Append rows in one batched call. Row order is preserved.

        Returns:
            Number of rows the API reports as written
        """
        response_data = await self._make_request(
            method="POST",
            endpoint=f"/spreadsheets/{spreadsheet_id}/values/{quote(range_a1, safe='!:')}:append",
            params={
                "valueInputOption": value_input_option,
                "insertDataOption": "INSERT_ROWS",
            },
            json={"majorDimension": "ROWS", "values": rows},
        )

        updated = response_data.get("updates", {}).get("updatedRows", len(rows))
        logger.info(f"Appended {updated} row(s)", extra={"spreadsheet_id": spreadsheet_id})
        return updated

    async def get_values(self, spreadsheet_id: str, range_a1: str) -> List[List[Any]]:
        """Read a range; trailing empty cells are omitted by the API."""
        response_data = await self._make_request(
            method="GET",
            endpoint=f"/spreadsheets/{spreadsheet_id}/values/{quote(range_a1, safe='!:')}",
        )
        return ValueRange(**response_data).values
