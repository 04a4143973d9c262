"""
Google Environment Module - Google Workspace Integration

Architecture:
=============
google/
├── __init__.py           # Module exports
├── auth/                 # Shared OAuth + service account authentication
│   ├── client.py         # Google OAuth implementation
│   ├── service_account.py# JWT-bearer grant for a shared spreadsheet
│   └── schemas.py        # Auth data structures and scopes
├── sheets/               # Drive lookup + Sheets API
│   ├── client.py
│   └── schemas.py        # 9-column row layout
└── contacts/             # People API
    ├── client.py
    └── schemas.py        # card -> person mapping

Key Design Decisions:
=====================
1. Shared Auth: Sheets, Drive and People all use the same user tokens
2. One consent screen: the sign-in asks for every scope up front
3. Plain REST over httpx: each client is a thin EnvironmentService

Usage:
======
    from cardscan.environments.google import GoogleAuthClient, GoogleSheetsClient

    auth_client = GoogleAuthClient()
    tokens = await auth_client.exchange_code_for_tokens(code)

    sheets = GoogleSheetsClient(access_token=tokens.access_token)
    rows = await sheets.get_values(spreadsheet_id, "Sheet1!A2:I")
"""

from cardscan.environments.google.auth import (
    GoogleAuthClient,
    ServiceAccountCredentials,
    ServiceAccountKey,
    CARD_SCANNER_SCOPES,
)
from cardscan.environments.google.contacts import GooglePeopleClient
from cardscan.environments.google.sheets import GoogleSheetsClient

__all__ = [
    "GoogleAuthClient",
    "GooglePeopleClient",
    "GoogleSheetsClient",
    "ServiceAccountCredentials",
    "ServiceAccountKey",
    "CARD_SCANNER_SCOPES",
]
