"""
Dependencies module - reusable FastAPI dependencies for route handlers.

The main dependency here is get_current_session, which resolves the session
cookie to a signed-in Session with usable Google tokens. The service
providers below exist so tests can swap them through
app.dependency_overrides.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request, Response  # FastAPI components

from cardscan.core.config import settings  # Cookie name and flags
from cardscan.environments.base import Unauthenticated
from cardscan.schemas.session import Session
from cardscan.services.auth_flow import OAuthFlowController, auth_flow
from cardscan.services.card_extraction import CardExtractionService, card_extraction
from cardscan.services.contact_export import ContactExportService, contact_export
from cardscan.services.spreadsheet_sync import (
    ServiceAccountSheetSync,
    SpreadsheetSyncService,
    service_account_sync,
    spreadsheet_sync,
)


# ---------------------------------------------------------------------------
# SERVICE PROVIDERS
# ---------------------------------------------------------------------------

def get_auth_flow() -> OAuthFlowController:
    return auth_flow


def get_spreadsheet_sync() -> SpreadsheetSyncService:
    return spreadsheet_sync


def get_service_account_sync() -> ServiceAccountSheetSync:
    return service_account_sync


def get_contact_export() -> ContactExportService:
    return contact_export


def get_card_extraction() -> CardExtractionService:
    return card_extraction


# ---------------------------------------------------------------------------
# SESSION COOKIE
# ---------------------------------------------------------------------------

def set_session_cookie(response: Response, ref: str) -> None:
    """Attach the session reference as an HttpOnly cookie."""
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=ref,
        max_age=settings.SESSION_TTL_SECONDS,
        path="/",
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite=settings.COOKIE_SAMESITE,
    )


def clear_session_cookie(response: Response) -> None:
    """Expire the session cookie in the browser."""
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite=settings.COOKIE_SAMESITE,
    )


def get_session_ref(request: Request) -> Optional[str]:
    """The raw cookie value, or None."""
    return request.cookies.get(settings.SESSION_COOKIE_NAME)


@dataclass
class AuthenticatedSession:
    """A live session plus the reference it is stored under."""
    ref: str
    session: Session


async def get_current_session(
    response: Response,
    ref: Optional[str] = Depends(get_session_ref),
    flow: OAuthFlowController = Depends(get_auth_flow),
) -> AuthenticatedSession:
    """
    Resolve the session cookie and make sure its access token is fresh.

    Any route that includes
    `current: AuthenticatedSession = Depends(get_current_session)`
    requires a signed-in user.

    Raises:
        Unauthenticated (401): If the cookie is missing, unknown, expired,
                               or its tokens can no longer be refreshed

    Flow:
        1. Read the session cookie
        2. Look the reference up in the session store
        3. Refresh the access token if it is about to expire
        4. Re-issue the cookie when the reference changed (cookie backend)
    """
    session = await flow.store_call(flow.session_store.get, ref) if ref else None
    if session is None:
        raise Unauthenticated("Not authenticated. Please sign in.")

    new_ref, session = await flow.ensure_fresh_tokens(ref, session)
    if new_ref != ref:
        set_session_cookie(response, new_ref)

    return AuthenticatedSession(ref=new_ref, session=session)
