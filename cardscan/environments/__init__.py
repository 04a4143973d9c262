"""
Environments Module - External Service Integrations

Everything that talks to Google lives here. Services and routers depend on
these clients and on the exception hierarchy in base.py, never on raw HTTP.

Architecture Overview:
======================
environments/
├── __init__.py           # Module exports
├── base.py               # Base classes, shared request helper, exceptions
└── google/               # Google Workspace integration
    ├── auth/             # OAuth (per user) + service account
    ├── sheets/           # Drive + Sheets
    └── contacts/         # People
"""

from cardscan.environments.base import (
    EnvironmentProvider,
    EnvironmentService,
    EnvironmentError,
    APIError,
    AuthenticationError,
    BadRequestError,
    ContactCreateFailed,
    MissingCode,
    NoRecords,
    NoSpreadsheet,
    ProfileFetchFailed,
    SyncFailed,
    TokenExchangeFailed,
    TokenExpiredError,
    Unauthenticated,
)

__all__ = [
    "EnvironmentProvider",
    "EnvironmentService",
    "EnvironmentError",
    "APIError",
    "AuthenticationError",
    "BadRequestError",
    "ContactCreateFailed",
    "MissingCode",
    "NoRecords",
    "NoSpreadsheet",
    "ProfileFetchFailed",
    "SyncFailed",
    "TokenExchangeFailed",
    "TokenExpiredError",
    "Unauthenticated",
]
