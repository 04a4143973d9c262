"""
Google Auth Module - OAuth 2.0 Authentication for Google Services

Two ways to obtain a Google access token:

1. Delegated (per user): the authorization-code flow in GoogleAuthClient.
   The tokens act on the signed-in user's Drive, Sheets and Contacts.
2. Service account: ServiceAccountCredentials signs a JWT assertion and
   trades it for a token that acts on one shared spreadsheet.

OAuth 2.0 Flow Overview:
========================
1. Browser opens /api/auth/google in a popup
2. Backend redirects to Google's consent screen
3. User grants permissions
4. Google redirects back with an authorization code
5. Backend exchanges code for access + refresh tokens
6. Tokens are stored in the session
"""

from cardscan.environments.google.auth.client import GoogleAuthClient
from cardscan.environments.google.auth.service_account import (
    ServiceAccountCredentials,
    ServiceAccountKey,
)
from cardscan.environments.google.auth.schemas import (
    GoogleTokenResponse,
    GoogleUserInfo,
    CARD_SCANNER_SCOPES,
    CONTACTS_SCOPES,
    DRIVE_SCOPES,
    PROFILE_SCOPES,
    SHEETS_SCOPES,
)

__all__ = [
    "GoogleAuthClient",
    "ServiceAccountCredentials",
    "ServiceAccountKey",
    "GoogleTokenResponse",
    "GoogleUserInfo",
    "CARD_SCANNER_SCOPES",
    "CONTACTS_SCOPES",
    "DRIVE_SCOPES",
    "PROFILE_SCOPES",
    "SHEETS_SCOPES",
]
