"""
Session store - maps the opaque browser reference to a signed-in Session.

Three interchangeable backends, picked by SESSION_BACKEND:

- memory (default): process-local dict with a server-side TTL. Sessions do
  not survive a restart and are not shared between workers.
- database: one row per session in the card_sessions table.
- cookie: stateless. The whole Session is signed into an HS256 JWT and the
  token itself is the cookie value. OAuth tokens travel to the browser in
  this mode (signed, not encrypted).

Every backend enforces the server-side expiry on read, whatever max-age the
browser kept the cookie for.
"""

import logging
import secrets
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from jose import JWTError, jwt
from pydantic import ValidationError

from cardscan.core.config import settings
from cardscan.db.session import get_session_factory
from cardscan.models.session_record import SessionRecord
from cardscan.schemas.session import Session


logger = logging.getLogger("cardscan.sessions")


class SessionStore(ABC):
    """Contract shared by every backend."""

    backend_name: str = ""
    # True when calls do I/O and must stay off the event loop
    blocking: bool = False

    def __init__(self, ttl_seconds: Optional[int] = None):
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.SESSION_TTL_SECONDS

    def _stamp(self, session: Session) -> Session:
        """Set expires_at from the TTL if the session has none yet."""
        if session.expires_at is None:
            session = session.model_copy(
                update={"expires_at": datetime.now(timezone.utc) + timedelta(seconds=self.ttl_seconds)}
            )
        return session

    @staticmethod
    def _new_ref() -> str:
        return secrets.token_urlsafe(32)

    @abstractmethod
    def create(self, session: Session) -> str:
        """Store a new session and return the reference for the cookie."""
        pass

    @abstractmethod
    def get(self, ref: Optional[str]) -> Optional[Session]:
        """Return the live session for a reference, or None."""
        pass

    @abstractmethod
    def update(self, ref: str, session: Session) -> str:
        """
        Replace the stored session (refreshed tokens, spreadsheet id).

        Returns the reference to keep using. Only the cookie backend hands
        back a different one.
        """
        pass

    @abstractmethod
    def delete(self, ref: Optional[str]) -> None:
        """Forget a session. Unknown references are ignored."""
        pass


# ---------------------------------------------------------------------------
# MEMORY BACKEND
# ---------------------------------------------------------------------------


class InMemorySessionStore(SessionStore):
    """
    Process-local store.

    Expired entries are purged on every create and whenever one is read.
    """

    backend_name = "memory"

    def __init__(self, ttl_seconds: Optional[int] = None):
        super().__init__(ttl_seconds)
        # ref -> Session
        self._sessions: Dict[str, Session] = {}

    def create(self, session: Session) -> str:
        self.cleanup_expired()
        ref = self._new_ref()
        self._sessions[ref] = self._stamp(session)
        logger.info(f"Session created for user {session.user_id}", extra={"backend": self.backend_name})
        return ref

    def get(self, ref: Optional[str]) -> Optional[Session]:
        if not ref:
            return None
        session = self._sessions.get(ref)
        if session is None:
            return None
        if session.is_expired():
            del self._sessions[ref]
            return None
        return session

    def update(self, ref: str, session: Session) -> str:
        self._sessions[ref] = self._stamp(session)
        return ref

    def delete(self, ref: Optional[str]) -> None:
        if ref:
            self._sessions.pop(ref, None)

    def cleanup_expired(self) -> int:
        """
        Remove all expired sessions.

        Returns:
            Number of sessions removed
        """
        expired = [ref for ref, session in self._sessions.items() if session.is_expired()]
        for ref in expired:
            del self._sessions[ref]
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)


# ---------------------------------------------------------------------------
# DATABASE BACKEND
# ---------------------------------------------------------------------------


class DatabaseSessionStore(SessionStore):
    """
    SQLAlchemy-backed store.

    Each call opens its own short-lived ORM session from session_factory,
    so the store can be shared across requests.
    """

    backend_name = "database"
    blocking = True

    def __init__(self, session_factory: Optional[Callable] = None, ttl_seconds: Optional[int] = None):
        super().__init__(ttl_seconds)
        if session_factory is None:
            session_factory = get_session_factory()
        self._session_factory = session_factory

    def create(self, session: Session) -> str:
        session = self._stamp(session)
        ref = self._new_ref()
        with self._session_factory() as db:
            db.add(
                SessionRecord(
                    id=ref,
                    user_id=session.user_id,
                    data=session.model_dump(mode="json"),
                    created_at=session.created_at,
                    expires_at=session.expires_at,
                )
            )
            db.commit()
        logger.info(f"Session created for user {session.user_id}", extra={"backend": self.backend_name})
        return ref

    def get(self, ref: Optional[str]) -> Optional[Session]:
        if not ref:
            return None
        with self._session_factory() as db:
            record = db.get(SessionRecord, ref)
            if record is None:
                return None
            if record.is_expired():
                db.delete(record)
                db.commit()
                return None
            return Session.model_validate(record.data)

    def update(self, ref: str, session: Session) -> str:
        session = self._stamp(session)
        with self._session_factory() as db:
            record = db.get(SessionRecord, ref)
            if record is None:
                record = SessionRecord(id=ref, user_id=session.user_id, data={})
                db.add(record)
            record.data = session.model_dump(mode="json")
            record.expires_at = session.expires_at
            db.commit()
        return ref

    def delete(self, ref: Optional[str]) -> None:
        if not ref:
            return
        with self._session_factory() as db:
            record = db.get(SessionRecord, ref)
            if record is not None:
                db.delete(record)
                db.commit()


# ---------------------------------------------------------------------------
# COOKIE BACKEND
# ---------------------------------------------------------------------------


class CookieSessionStore(SessionStore):
    """
    Stateless store: the reference *is* the signed session.

    The JWT carries the serialized Session under "session" and an "exp"
    claim, which jose checks on decode.
    """

    backend_name = "cookie"

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        ttl_seconds: Optional[int] = None,
    ):
        super().__init__(ttl_seconds)
        self.secret_key = secret_key or settings.SECRET_KEY
        self.algorithm = algorithm or settings.ALGORITHM

    def _encode(self, session: Session) -> str:
        session = self._stamp(session)
        claims = {
            "sub": session.user_id,
            "exp": session.expires_at,
            "session": session.model_dump(mode="json"),
        }
        return jwt.encode(claims, self.secret_key, algorithm=self.algorithm)

    def create(self, session: Session) -> str:
        logger.info(f"Session created for user {session.user_id}", extra={"backend": self.backend_name})
        return self._encode(session)

    def get(self, ref: Optional[str]) -> Optional[Session]:
        if not ref:
            return None
        try:
            payload = jwt.decode(ref, self.secret_key, algorithms=[self.algorithm])
            session = Session.model_validate(payload.get("session") or {})
        except (JWTError, ValidationError) as e:
            logger.debug(f"Rejected session cookie: {e}")
            return None
        if session.is_expired():
            return None
        return session

    def update(self, ref: str, session: Session) -> str:
        return self._encode(session)

    def delete(self, ref: Optional[str]) -> None:
        # nothing server-side; the router clears the cookie
        return None


# ---------------------------------------------------------------------------
# FACTORY
# ---------------------------------------------------------------------------

SESSION_BACKENDS = {
    "memory": InMemorySessionStore,
    "database": DatabaseSessionStore,
    "cookie": CookieSessionStore,
}


def build_session_store(backend: Optional[str] = None) -> SessionStore:
    """
    Instantiate the store named by SESSION_BACKEND.

    Raises:
        ValueError: For an unknown backend name
    """
    name = (backend or settings.SESSION_BACKEND).lower()
    store_class = SESSION_BACKENDS.get(name)
    if store_class is None:
        raise ValueError(
            f"Unknown SESSION_BACKEND '{name}' (expected one of: {', '.join(SESSION_BACKENDS)})"
        )
    if name == "cookie":
        logger.warning(
            "SESSION_BACKEND=cookie: OAuth tokens are stored in a signed cookie on the client"
        )
    return store_class()


# ---------------------------------------------------------------------------
# SINGLETON INSTANCE
# ---------------------------------------------------------------------------
# Created on first use so that importing this module never opens a database.
#
# Usage: from cardscan.services.session_store import get_session_store
_session_store: Optional[SessionStore] = None


def get_session_store() -> SessionStore:
    """Return the process-wide store, building it on first call."""
    global _session_store
    if _session_store is None:
        _session_store = build_session_store()
    return _session_store
