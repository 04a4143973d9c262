"""
Auth Router - Google sign-in, current user and logout.

Endpoints:
==========
- GET  /api/auth/google     → Redirect to Google OAuth consent screen
- GET  /api/oauth2callback  → Handle OAuth callback, start the session
- GET  /api/user            → Current user's profile + spreadsheet id
- POST /api/logout          → End the session

OAuth Flow:
===========
1. Front end opens /api/auth/google in a popup
2. Backend redirects to Google's consent screen
3. User grants permissions
4. Google redirects to /api/oauth2callback with code + state
5. Backend exchanges the code, finds or creates the user's spreadsheet
   and stores the session
6. The popup posts "auth_success" to its opener and closes itself

Security:
=========
- CSRF protection via state parameter (single use, 10 minute TTL)
- Session cookie is HttpOnly; Secure and SameSite come from settings
"""

import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.responses import HTMLResponse, RedirectResponse

from cardscan.core.config import settings
from cardscan.deps import (
    AuthenticatedSession,
    clear_session_cookie,
    get_auth_flow,
    get_current_session,
    get_session_ref,
    set_session_cookie,
)
from cardscan.environments.base import BadRequestError
from cardscan.schemas.api import LogoutResponse
from cardscan.schemas.session import UserOut
from cardscan.services.auth_flow import OAuthFlowController


logger = logging.getLogger("cardscan.routers.auth")


# ---------------------------------------------------------------------------
# ROUTER SETUP
# ---------------------------------------------------------------------------
router = APIRouter(prefix="/api", tags=["auth"])


# ---------------------------------------------------------------------------
# POPUP PAGE
# ---------------------------------------------------------------------------

def render_popup_page(target_origin: str, fallback_url: str) -> str:
    """
    HTML returned to the OAuth popup.

    With an opener it posts "auth_success" and closes; opened directly
    (no opener) it navigates to the front end instead.
    """
    return f"""<!DOCTYPE html>
<html>
  <head>
    <title>Authentication Complete</title>
  </head>
  <body>
    <p>Authentication complete. You can close this window.</p>
    <script>
      if (window.opener) {{
        window.opener.postMessage('auth_success', {json.dumps(target_origin)});
        window.close();
      }} else {{
        window.location.replace({json.dumps(fallback_url)});
      }}
    </script>
  </body>
</html>
"""


# ---------------------------------------------------------------------------
# ENDPOINTS
# ---------------------------------------------------------------------------


@router.get("/auth/google")
async def google_login(flow: OAuthFlowController = Depends(get_auth_flow)):
    """
    Initiate Google OAuth login flow.

    Redirects the browser to Google's consent screen asking for profile,
    Sheets, Drive and Contacts access.

    Returns:
        302 RedirectResponse to Google's OAuth consent screen
    """
    if not flow.auth_client.is_configured:
        logger.error("Google OAuth not configured - missing GOOGLE_CLIENT_ID")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Google OAuth is not configured. Please set GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET.",
        )

    auth_url, _state = flow.begin_auth()
    return RedirectResponse(url=auth_url, status_code=status.HTTP_302_FOUND)


@router.get("/oauth2callback", response_class=HTMLResponse)
async def google_callback(
    code: Optional[str] = Query(None, description="Authorization code from Google"),
    state: Optional[str] = Query(None, description="CSRF state token"),
    error: Optional[str] = Query(None, description="Error from Google"),
    flow: OAuthFlowController = Depends(get_auth_flow),
):
    """
    Handle Google OAuth callback.

    Flow:
        1. Reject errors reported by Google
        2. Validate the state token issued by /auth/google (CSRF protection)
        3. Exchange code, fetch profile, resolve spreadsheet, store session
        4. Set the session cookie and return the self-closing popup page
    """
    if error:
        logger.warning(f"Google OAuth error: {error}")
        raise BadRequestError(f"Google authorization failed: {error}")

    if not flow.consume_state(state):
        logger.warning("Invalid or expired OAuth state")
        raise BadRequestError("Invalid or expired state. Please try again.")

    ref, session = await flow.complete_auth(code)

    response = HTMLResponse(
        content=render_popup_page(settings.FRONTEND_ORIGIN, settings.FRONTEND_URL)
    )
    set_session_cookie(response, ref)

    logger.info(f"OAuth callback complete for user {session.user_id}")
    return response


@router.get("/user", response_model=UserOut)
async def get_user(current: AuthenticatedSession = Depends(get_current_session)):
    """
    Return the signed-in user.

    Returns:
        {userId, email, name, picture, spreadsheetId}
    """
    return UserOut.from_session(current.session)


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    response: Response,
    ref: Optional[str] = Depends(get_session_ref),
    flow: OAuthFlowController = Depends(get_auth_flow),
):
    """
    End the session (if any) and clear the cookie.

    Always succeeds; revoking the Google token is best effort.
    """
    await flow.logout(ref)
    clear_session_cookie(response)
    return LogoutResponse()
