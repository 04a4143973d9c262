"""
Declarative base - every ORM model inherits from Base.

Importing the models here registers their tables on Base.metadata so that
create_all() sees them.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """SQLAlchemy 2.0 declarative base class."""
    pass


def import_models() -> None:
    """Import model modules so their tables are registered."""
    from cardscan.models import session_record  # noqa: F401
