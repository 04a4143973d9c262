"""
Session schemas - what the server remembers about a signed-in user.

A Session ties the Google profile to the delegated OAuth tokens and the
user's spreadsheet id. It is owned by the session store; the browser only
ever holds an opaque reference in a cookie (or, in cookie mode, a signed
copy).
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional

from pydantic import BaseModel, Field

from cardscan.environments.base import OAuthTokens


class SessionTokens(BaseModel):
    """Delegated Google tokens."""
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "Bearer"
    expiry: Optional[datetime] = None
    scopes: List[str] = Field(default_factory=list)

    @classmethod
    def from_oauth(cls, tokens: OAuthTokens) -> "SessionTokens":
        return cls(
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            token_type=tokens.token_type,
            expiry=tokens.expires_at,
            scopes=tokens.scopes or [],
        )

    def is_expired(self, buffer_seconds: int = 300) -> bool:
        """
        True if the access token has expired or is about to.

        Tokens without a known expiry are treated as valid; Google will
        answer 401 if they are not.
        """
        if self.expiry is None:
            return False
        expiry = self.expiry
        if expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=timezone.utc)
        return datetime.now(timezone.utc) >= expiry - timedelta(seconds=buffer_seconds)


class Session(BaseModel):
    """
    A signed-in user.

    Example:
    {
        "user_id": "1098...",
        "email": "jane@acme.com",
        "name": "Jane Doe",
        "picture": "https://lh3.googleusercontent.com/a/...",
        "tokens": {"access_token": "ya29...", "refresh_token": "1//0e..."},
        "spreadsheet_id": "1AbC..."
    }
    """
    user_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    picture: Optional[str] = None
    tokens: SessionTokens
    spreadsheet_id: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    expires_at: Optional[datetime] = None

    def is_expired(self) -> bool:
        """Server-side session expiry (independent of the cookie max-age)."""
        if self.expires_at is None:
            return False
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return datetime.now(timezone.utc) > expires_at


class UserOut(BaseModel):
    """
    Public view of the session for GET /api/user.

    Example response:
    {
        "userId": "1098...",
        "email": "jane@acme.com",
        "name": "Jane Doe",
        "picture": "https://...",
        "spreadsheetId": "1AbC..."
    }
    """
    userId: str
    email: Optional[str] = None
    name: Optional[str] = None
    picture: Optional[str] = None
    spreadsheetId: Optional[str] = None

    @classmethod
    def from_session(cls, session: Session) -> "UserOut":
        return cls(
            userId=session.user_id,
            email=session.email,
            name=session.name,
            picture=session.picture,
            spreadsheetId=session.spreadsheet_id,
        )
