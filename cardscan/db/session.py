"""
Database session management - SQLAlchemy engine and session factory.

Only the database session backend (SESSION_BACKEND=database) touches the
database; the engine is created lazily so the memory and cookie backends
never open a connection.
"""

from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from cardscan.core.config import settings
from cardscan.db.base import Base, import_models


_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def get_engine() -> Engine:
    """
    Create (once) and return the engine for DATABASE_URL.

    - pool_pre_ping=True: check pooled connections before use, so a
      restarted database does not surface as a request error
    - SQLite needs check_same_thread=False because FastAPI runs sync
      dependencies in a threadpool
    """
    global _engine
    if _engine is None:
        connect_args = {}
        if settings.DATABASE_URL.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        _engine = create_engine(
            settings.DATABASE_URL,
            pool_pre_ping=True,
            connect_args=connect_args,
        )
    return _engine


def get_session_factory() -> sessionmaker:
    """Return the sessionmaker bound to the engine."""
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(autocommit=False, autoflush=False, bind=get_engine())
    return _session_factory


def init_db() -> None:
    """Create tables that do not exist yet."""
    import_models()
    Base.metadata.create_all(bind=get_engine())

