"""
Google OAuth Schemas - Data structures for Google authentication.

This module defines the data structures used in the Google OAuth flow.
Using Pydantic models ensures type safety and validation.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, List
from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# OAUTH SCOPE CONSTANTS
# ---------------------------------------------------------------------------
# Reference: https://developers.google.com/identity/protocols/oauth2/scopes

# Profile scopes - basic user information
PROFILE_SCOPES = [
    "openid",                                            # OpenID Connect (user ID)
    "https://www.googleapis.com/auth/userinfo.email",    # User's email
    "https://www.googleapis.com/auth/userinfo.profile",  # Name, picture
]

# Sheets scope - read and append rows in the user's card spreadsheet
SHEETS_SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
]

# Drive scope - locate the spreadsheet by name (and create it)
DRIVE_SCOPES = [
    "https://www.googleapis.com/auth/drive",
]

# People scope - create contacts from scanned cards
CONTACTS_SCOPES = [
    "https://www.googleapis.com/auth/contacts",
]

# Everything the sign-in flow asks for in one consent screen
CARD_SCANNER_SCOPES = SHEETS_SCOPES + DRIVE_SCOPES + CONTACTS_SCOPES


# ---------------------------------------------------------------------------
# TOKEN RESPONSES
# ---------------------------------------------------------------------------

class GoogleTokenResponse(BaseModel):
    """
    Response from Google's token endpoint.

    Returned for the authorization-code exchange, refresh-token grants and
    the service-account JWT-bearer grant.

    Example response from Google:
    {
        "access_token": "ya29.a0AfB_byC...",
        "expires_in": 3599,
        "refresh_token": "1//0eXyz...",
        "scope": "openid https://www.googleapis.com/auth/spreadsheets",
        "token_type": "Bearer",
        "id_token": "eyJhbGciOiJSUzI1NiIs..."
    }
    """
    access_token: str = Field(..., description="OAuth access token")
    token_type: str = Field(default="Bearer", description="Token type (usually Bearer)")
    expires_in: Optional[int] = Field(None, description="Seconds until expiration")
    refresh_token: Optional[str] = Field(None, description="Refresh token for renewal")
    scope: Optional[str] = Field(None, description="Space-separated scopes granted")
    id_token: Optional[str] = Field(None, description="JWT with user info (OpenID)")

    def get_scopes_list(self) -> List[str]:
        """Convert space-separated scope string to list."""
        if self.scope:
            return self.scope.split()
        return []

    def get_expires_at(self) -> Optional[datetime]:
        """Calculate expiration datetime from expires_in seconds."""
        if self.expires_in:
            return datetime.now(timezone.utc) + timedelta(seconds=self.expires_in)
        return None


# ---------------------------------------------------------------------------
# USER INFO
# ---------------------------------------------------------------------------

class GoogleUserInfo(BaseModel):
    """
    User information from Google's userinfo endpoint.

    Example:
    {
        "sub": "123456789",
        "email": "user@gmail.com",
        "email_verified": true,
        "name": "Jane Doe",
        "picture": "https://lh3.googleusercontent.com/a/..."
    }
    """
    sub: str = Field(..., description="Unique Google user ID")
    email: Optional[str] = Field(None, description="User's email address")
    email_verified: Optional[bool] = Field(None, description="Is email verified?")
    name: Optional[str] = Field(None, description="User's display name")
    given_name: Optional[str] = Field(None, description="First name")
    family_name: Optional[str] = Field(None, description="Last name")
    picture: Optional[str] = Field(None, description="Profile picture URL")
    locale: Optional[str] = Field(None, description="User's locale (e.g., 'en')")
