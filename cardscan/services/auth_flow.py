"""
OAuth flow controller - turns a Google consent into a stored Session.

States:
=======
Unauthenticated -> AuthorizationRequested (begin_auth)
                -> CodeReceived (callback hit)
                -> TokenExchanged (exchange_code_for_tokens)
                -> SessionEstablished (profile + spreadsheet + store)

Any failure after CodeReceived ends the flow (AuthFailed); nothing is
stored and the browser keeps no cookie.

Once signed in, ensure_fresh_tokens() is called before every Google call:
an access token within five minutes of expiry is refreshed with the stored
refresh token and written back into the session store.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from cardscan.core.config import settings
from cardscan.environments.base import (
    MissingCode,
    TokenExpiredError,
    Unauthenticated,
)
from cardscan.environments.google.auth import CARD_SCANNER_SCOPES, GoogleAuthClient
from cardscan.schemas.session import Session, SessionTokens
from cardscan.services.session_store import SessionStore, get_session_store
from cardscan.services.spreadsheet_sync import SpreadsheetSyncService, spreadsheet_sync


logger = logging.getLogger("cardscan.auth")


class OAuthFlowController:
    """
    Drives the Google sign-in flow and keeps delegated tokens usable.

    CSRF states are remembered in process memory for STATE_TTL_MINUTES and
    are single use.
    """

    STATE_TTL_MINUTES = 10

    def __init__(
        self,
        auth_client: Optional[GoogleAuthClient] = None,
        sync_service: Optional[SpreadsheetSyncService] = None,
        session_store: Optional[SessionStore] = None,
        scopes: Optional[List[str]] = None,
    ):
        self._auth_client = auth_client
        self.sync_service = sync_service or spreadsheet_sync
        self._session_store = session_store
        self.scopes = scopes or CARD_SCANNER_SCOPES
        # state -> expires_at
        self._states: Dict[str, datetime] = {}

    @property
    def auth_client(self) -> GoogleAuthClient:
        if self._auth_client is None:
            self._auth_client = GoogleAuthClient()
        return self._auth_client

    @property
    def session_store(self) -> SessionStore:
        if self._session_store is None:
            self._session_store = get_session_store()
        return self._session_store

    async def store_call(self, method: Callable[..., Any], *args: Any) -> Any:
        """Call a session store method, in a worker thread for blocking backends."""
        if self.session_store.blocking:
            return await asyncio.to_thread(method, *args)
        return method(*args)

    # -------------------------------------------------------------------------
    # CSRF STATE
    # -------------------------------------------------------------------------

    def _store_state(self, state: str) -> None:
        self.cleanup_expired_states()
        self._states[state] = datetime.now(timezone.utc) + timedelta(minutes=self.STATE_TTL_MINUTES)

    def consume_state(self, state: Optional[str]) -> bool:
        """Validate and forget a state (one-time use)."""
        if not state:
            return False
        expires_at = self._states.pop(state, None)
        if expires_at is None:
            return False
        return datetime.now(timezone.utc) <= expires_at

    def cleanup_expired_states(self) -> int:
        """Remove expired states. Returns how many were removed."""
        now = datetime.now(timezone.utc)
        expired = [state for state, expires_at in self._states.items() if now > expires_at]
        for state in expired:
            del self._states[state]
        return len(expired)

    # -------------------------------------------------------------------------
    # FLOW
    # -------------------------------------------------------------------------

    def begin_auth(self) -> Tuple[str, str]:
        """
        Build the consent URL.

        Offline access with forced consent, so Google issues a refresh
        token on every sign-in.

        Returns:
            Tuple of (redirect_url, state)
        """
        state = self.auth_client.generate_state()
        self._store_state(state)
        url = self.auth_client.get_authorization_url(
            scopes=self.scopes,
            state=state,
            access_type="offline",
            prompt="consent",
        )
        logger.info("Initiating Google OAuth", extra={"scopes": self.scopes})
        return url, state

    async def complete_auth(self, code: Optional[str]) -> Tuple[str, Session]:
        """
        Exchange the code, load the profile, resolve the spreadsheet and
        store the new session.

        Args:
            code: One-time authorization code from the callback

        Returns:
            Tuple of (session reference for the cookie, Session)

        Raises:
            MissingCode: If code is empty
            TokenExchangeFailed: If Google rejects the code
            ProfileFetchFailed: If the profile cannot be read
            SyncFailed: If the spreadsheet cannot be found or created
        """
        if not code:
            raise MissingCode("Missing authorization code")

        tokens = await self.auth_client.exchange_code_for_tokens(code=code)
        profile = await self.auth_client.get_user_info(tokens.access_token)

        if settings.SHEETS_AUTH_MODE == "service_account":
            spreadsheet_id = settings.GOOGLE_SHEET_ID or None
        else:
            spreadsheet_id = await self.sync_service.find_or_create_spreadsheet(
                tokens.access_token,
                user_id=profile.provider_user_id,
            )

        session = Session(
            user_id=profile.provider_user_id,
            email=profile.email,
            name=profile.name,
            picture=profile.picture_url,
            tokens=SessionTokens.from_oauth(tokens),
            spreadsheet_id=spreadsheet_id,
        )
        ref = await self.store_call(self.session_store.create, session)

        logger.info(
            f"User {profile.provider_user_id} signed in",
            extra={"spreadsheet_id": spreadsheet_id},
        )
        stored = await self.store_call(self.session_store.get, ref)
        return ref, stored or session

    # -------------------------------------------------------------------------
    # TOKENS
    # -------------------------------------------------------------------------

    async def ensure_fresh_tokens(self, ref: str, session: Session) -> Tuple[str, Session]:
        """
        Refresh the access token if it is expired or about to be.

        Returns:
            Tuple of (possibly new session reference, current Session)

        Raises:
            Unauthenticated: If the token expired and cannot be refreshed
        """
        if not session.tokens.is_expired():
            return ref, session

        refresh_token = session.tokens.refresh_token
        if not refresh_token:
            raise Unauthenticated("Session expired. Please sign in again.")

        try:
            refreshed = await self.auth_client.refresh_access_token(refresh_token)
        except TokenExpiredError as e:
            logger.warning(f"Token refresh failed for user {session.user_id}: {e}")
            raise Unauthenticated("Session expired. Please sign in again.")

        tokens = SessionTokens.from_oauth(refreshed)
        if not tokens.scopes:
            tokens.scopes = session.tokens.scopes
        session = session.model_copy(update={"tokens": tokens})
        new_ref = await self.store_call(self.session_store.update, ref, session)

        logger.info(f"Refreshed access token for user {session.user_id}")
        return new_ref, session

    async def logout(self, ref: Optional[str]) -> None:
        """
        Drop the session and revoke its token at Google.

        Revocation is best effort; a failure is logged and ignored.
        """
        session = await self.store_call(self.session_store.get, ref)
        await self.store_call(self.session_store.delete, ref)
        if session is None:
            return

        revoked = await self.auth_client.revoke_token(session.tokens.access_token)
        if not revoked:
            logger.warning(f"Could not revoke Google token for user {session.user_id}")
        logger.info(f"User {session.user_id} signed out")


# ---------------------------------------------------------------------------
# SINGLETON INSTANCE
# ---------------------------------------------------------------------------
# Usage: from cardscan.services.auth_flow import auth_flow
auth_flow = OAuthFlowController()
