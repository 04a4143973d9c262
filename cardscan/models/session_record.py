"""
Session record model - server-side storage for signed-in sessions.

Used by the database session backend. The cookie carries only the opaque
id; the profile, OAuth tokens and spreadsheet id stay in this table.

Example Usage:
    record = SessionRecord(
        id=secrets.token_urlsafe(32),
        user_id="1098...",
        data=session.model_dump(mode="json"),
        expires_at=datetime.now(timezone.utc) + timedelta(days=30),
    )
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column

from cardscan.db.base import Base


class SessionRecord(Base):
    """
    SQLAlchemy ORM model for the 'card_sessions' table.

    - id is the opaque reference handed to the browser
    - data holds the serialized Session (JSON)
    - expires_at is enforced on every read, regardless of what the
      browser's cookie max-age says
    """

    __tablename__ = "card_sessions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    # Google account id, indexed so all sessions of a user can be found
    user_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)

    data: Mapped[dict] = mapped_column(JSON, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )

    def is_expired(self) -> bool:
        """True once expires_at has passed."""
        if self.expires_at is None:
            return False
        expires_at = self.expires_at
        # SQLite hands back naive datetimes
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return datetime.now(timezone.utc) > expires_at

    def __repr__(self) -> str:
        return f"<SessionRecord(user_id='{self.user_id}')>"
