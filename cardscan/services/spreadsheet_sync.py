"""
Spreadsheet sync service - one spreadsheet per user, one row per card.

Two ways of reaching a spreadsheet:

1. Per-user OAuth (SHEETS_AUTH_MODE=user, default)
   The user's own Drive is searched for a spreadsheet called
   SPREADSHEET_NAME ("cards_details"). If there is none, it is created with
   a single "Sheet1" tab and the header row. Rows go to Sheet1!A:I.

2. Service account (SHEETS_AUTH_MODE=service_account)
   Every card lands in the fixed spreadsheet GOOGLE_SHEET_ID, tab
   SERVICE_ACCOUNT_SHEET_TAB, written with USER_ENTERED so Sheets
   interprets dates and numbers.

Find-or-create is not atomic at the Google level. Within one process the
first-use path is serialized per user with an asyncio.Lock; across
processes the service lists again after creating and keeps the oldest
spreadsheet, so every caller converges on the same id. The duplicate file
itself is left in place.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Dict, List, Optional

from cardscan.core.config import settings
from cardscan.environments.base import NoRecords, NoSpreadsheet
from cardscan.environments.google.auth.service_account import (
    ServiceAccountCredentials,
    ServiceAccountKey,
)
from cardscan.environments.google.sheets import (
    DEFAULT_SHEET_TITLE,
    LAST_COLUMN,
    GoogleSheetsClient,
    a1_range,
    card_to_row,
    row_to_card,
    utc_timestamp,
)
from cardscan.schemas.card import CardRecord


logger = logging.getLogger("cardscan.sheets")


class SpreadsheetSyncService:
    """
    Per-user spreadsheet operations.

    Every method takes the user's delegated access token; the service keeps
    no credentials of its own.

    Usage:
        spreadsheet_id = await spreadsheet_sync.find_or_create_spreadsheet(token, user_id=uid)
        await spreadsheet_sync.append_rows(token, spreadsheet_id, records)
    """

    def __init__(
        self,
        spreadsheet_name: Optional[str] = None,
        sheet_title: str = DEFAULT_SHEET_TITLE,
        client_factory: Callable[[str], GoogleSheetsClient] = GoogleSheetsClient,
    ):
        self.spreadsheet_name = spreadsheet_name or settings.SPREADSHEET_NAME
        self.sheet_title = sheet_title
        self._client_factory = client_factory
        # user id -> lock guarding that user's first-use creation, and how
        # many callers hold or wait on it
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    @asynccontextmanager
    async def _creation_lock(self, key: str) -> AsyncIterator[None]:
        """Serialize first use per user; the lock is dropped with its last user."""
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._locks[key]

    # -------------------------------------------------------------------------
    # FIND OR CREATE
    # -------------------------------------------------------------------------

    async def find_or_create_spreadsheet(
        self,
        access_token: str,
        name: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> str:
        """
        Return the id of the user's spreadsheet, creating it on first use.

        Args:
            access_token: Delegated token with spreadsheets + drive scopes
            name: Spreadsheet title (defaults to SPREADSHEET_NAME)
            user_id: Key for the creation lock (defaults to the token)

        Returns:
            Spreadsheet id

        Raises:
            SyncFailed: If Drive or Sheets rejects a call
        """
        name = name or self.spreadsheet_name
        client = self._client_factory(access_token)

        async with self._creation_lock(user_id or access_token):
            existing = await client.find_spreadsheets_by_name(name)
            if existing:
                return existing[0].id

            created_id = await client.create_spreadsheet(name, sheet_title=self.sheet_title)
            logger.info(
                f"Created spreadsheet '{name}' for user",
                extra={"user_id": user_id, "spreadsheet_id": created_id},
            )

            # Another process may have created one in the same window
            after = await client.find_spreadsheets_by_name(name)
            if after and after[0].id != created_id:
                logger.warning(
                    f"Found {len(after)} spreadsheets named '{name}', keeping the oldest",
                    extra={"user_id": user_id, "spreadsheet_id": after[0].id},
                )
                return after[0].id
            return created_id

    # -------------------------------------------------------------------------
    # ROWS
    # -------------------------------------------------------------------------

    async def append_rows(
        self,
        access_token: str,
        spreadsheet_id: Optional[str],
        records: List[CardRecord],
    ) -> int:
        """
        Append one row per record in a single batched call.

        Raises:
            NoRecords: If records is empty
            NoSpreadsheet: If spreadsheet_id is empty
            SyncFailed: If the Sheets API rejects the append
        """
        if not records:
            raise NoRecords("No cards provided")
        if not spreadsheet_id:
            raise NoSpreadsheet("User spreadsheet not found")

        # one timestamp for the whole batch
        now = utc_timestamp()
        rows = [card_to_row(record, default_timestamp=now) for record in records]

        client = self._client_factory(access_token)
        await client.append_values(
            spreadsheet_id,
            a1_range(self.sheet_title, f"A:{LAST_COLUMN}"),
            rows,
        )
        return len(rows)

    async def read_all_rows(self, access_token: str, spreadsheet_id: Optional[str]) -> List[CardRecord]:
        """
        Read every card below the header row.

        Raises:
            NoSpreadsheet: If spreadsheet_id is empty
            SyncFailed: If the Sheets API rejects the read
        """
        if not spreadsheet_id:
            raise NoSpreadsheet("User spreadsheet not found")

        client = self._client_factory(access_token)
        rows = await client.get_values(spreadsheet_id, a1_range(self.sheet_title, f"A2:{LAST_COLUMN}"))
        return [row_to_card(row, index) for index, row in enumerate(rows)]


class ServiceAccountSheetSync:
    """
    Writes to the single shared spreadsheet through a service account.

    Credentials are resolved lazily so the app starts without them; the
    first sync then fails with "Google Sheets credentials not configured".
    """

    VALUE_INPUT_OPTION = "USER_ENTERED"

    def __init__(
        self,
        spreadsheet_id: Optional[str] = None,
        sheet_title: Optional[str] = None,
        credentials: Optional[ServiceAccountCredentials] = None,
        client_factory: Callable[[str], GoogleSheetsClient] = GoogleSheetsClient,
    ):
        self.spreadsheet_id = spreadsheet_id if spreadsheet_id is not None else settings.GOOGLE_SHEET_ID
        self.sheet_title = sheet_title or settings.SERVICE_ACCOUNT_SHEET_TAB
        self._credentials = credentials
        self._client_factory = client_factory

    @property
    def credentials(self) -> ServiceAccountCredentials:
        if self._credentials is None:
            self._credentials = ServiceAccountCredentials(ServiceAccountKey.from_settings(settings))
        return self._credentials

    async def _client(self) -> GoogleSheetsClient:
        return self._client_factory(await self.credentials.get_access_token())

    async def append_rows(self, records: List[CardRecord]) -> int:
        """
        Append one row per record to the shared spreadsheet.

        Raises:
            NoRecords: If records is empty
            NoSpreadsheet: If GOOGLE_SHEET_ID is not set
            AuthenticationError: If the service account cannot get a token
            SyncFailed: If the Sheets API rejects the append
        """
        if not records:
            raise NoRecords("No cards provided")
        if not self.spreadsheet_id:
            raise NoSpreadsheet("Google Sheets credentials not configured")

        now = utc_timestamp()
        rows = [card_to_row(record, default_timestamp=now) for record in records]

        client = await self._client()
        await client.append_values(
            self.spreadsheet_id,
            a1_range(self.sheet_title, "A1"),
            rows,
            value_input_option=self.VALUE_INPUT_OPTION,
        )
        return len(rows)

    async def read_all_rows(self) -> List[CardRecord]:
        """Read every card below the header row of the shared tab."""
        if not self.spreadsheet_id:
            raise NoSpreadsheet("Google Sheets credentials not configured")

        client = await self._client()
        rows = await client.get_values(
            self.spreadsheet_id, a1_range(self.sheet_title, f"A2:{LAST_COLUMN}")
        )
        return [row_to_card(row, index) for index, row in enumerate(rows)]


# ---------------------------------------------------------------------------
# SINGLETON INSTANCES
# ---------------------------------------------------------------------------
# Shared so the per-user creation locks are process-wide.
#
# Usage: from cardscan.services.spreadsheet_sync import spreadsheet_sync
spreadsheet_sync = SpreadsheetSyncService()
service_account_sync = ServiceAccountSheetSync()
