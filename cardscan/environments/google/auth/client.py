"""
Google OAuth Client - Handles OAuth 2.0 flow with Google APIs.

Key Features:
=============
1. Authorization URL generation with offline access and forced consent
2. Code-to-token exchange
3. Token refresh for seamless access
4. User info from the userinfo endpoint
5. Token revocation for logout

OAuth 2.0 Flow Implementation:
==============================
1. get_authorization_url() → User redirected to Google (in a popup)
2. exchange_code_for_tokens() → Called in callback, gets tokens
3. get_user_info() → Fetch Google account details
4. refresh_access_token() → Renew expired access tokens

References:
===========
- OAuth 2.0: https://developers.google.com/identity/protocols/oauth2
- Token endpoint: https://oauth2.googleapis.com/token
- Userinfo: https://www.googleapis.com/oauth2/v3/userinfo
"""

import asyncio
import logging
import secrets
from typing import List, Optional
from urllib.parse import urlencode

import httpx

from cardscan.core.config import settings
from cardscan.environments.base import (
    EnvironmentProvider,
    OAuthTokens,
    UserInfo,
    ProfileFetchFailed,
    TokenExchangeFailed,
    TokenExpiredError,
)
from cardscan.environments.google.auth.schemas import (
    GoogleTokenResponse,
    GoogleUserInfo,
    PROFILE_SCOPES,
)


logger = logging.getLogger("cardscan.environments.google.auth")


class GoogleAuthClient(EnvironmentProvider):
    """
    Google OAuth 2.0 Client implementation.

    Tokens obtained here are used for Sheets, Drive and People calls.

    Example Usage:
        client = GoogleAuthClient()
        auth_url = client.get_authorization_url(scopes=CARD_SCANNER_SCOPES, state=state)
        tokens = await client.exchange_code_for_tokens(code="abc123")
        user_info = await client.get_user_info(tokens.access_token)
    """

    provider_name = "google"

    # Google OAuth endpoints
    AUTHORIZATION_URL = "https://accounts.google.com/o/oauth2/v2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"
    USERINFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"
    REVOKE_URL = "https://oauth2.googleapis.com/revoke"

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        redirect_uri: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        """
        Initialize the Google OAuth client.

        Args:
            client_id: Google OAuth Client ID (defaults to settings)
            client_secret: Google OAuth Client Secret (defaults to settings)
            redirect_uri: OAuth callback URL (defaults to settings)
            timeout: Per-request timeout in seconds (defaults to settings)
        """
        self.client_id = client_id or settings.GOOGLE_CLIENT_ID
        self.client_secret = client_secret or settings.GOOGLE_CLIENT_SECRET
        self.redirect_uri = redirect_uri or settings.GOOGLE_REDIRECT_URI
        self.timeout = timeout if timeout is not None else settings.GOOGLE_API_TIMEOUT

        if not self.client_id or not self.client_secret:
            logger.warning(
                "Google OAuth not configured. Set GOOGLE_CLIENT_ID and "
                "GOOGLE_CLIENT_SECRET in environment variables."
            )

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    # -------------------------------------------------------------------------
    # AUTHORIZATION URL
    # -------------------------------------------------------------------------

    def get_authorization_url(
        self,
        scopes: List[str],
        state: str,
        redirect_uri: Optional[str] = None,
        include_profile: bool = True,
        access_type: str = "offline",
        prompt: str = "consent",
    ) -> str:
        """
        Generate the Google OAuth authorization URL.

        Args:
            scopes: List of OAuth scopes to request
            state: CSRF protection token
            redirect_uri: Override default callback URL
            include_profile: Add profile scopes for user info (default: True)
            access_type: "offline" for refresh token, "online" for access only
            prompt: "consent" forces the consent screen so Google issues a
                    refresh token on every sign-in

        Returns:
            Full authorization URL to redirect the user to
        """
        all_scopes = list(scopes)
        if include_profile:
            for scope in PROFILE_SCOPES:
                if scope not in all_scopes:
                    all_scopes.append(scope)

        params = {
            "client_id": self.client_id,
            "redirect_uri": redirect_uri or self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(all_scopes),
            "state": state,
            "access_type": access_type,
            "prompt": prompt,
        }

        auth_url = f"{self.AUTHORIZATION_URL}?{urlencode(params)}"

        logger.info(
            f"Generated Google auth URL with {len(all_scopes)} scopes",
            extra={"scopes": all_scopes}
        )

        return auth_url

    # -------------------------------------------------------------------------
    # TOKEN EXCHANGE
    # -------------------------------------------------------------------------

    async def exchange_code_for_tokens(
        self,
        code: str,
        redirect_uri: Optional[str] = None,
    ) -> OAuthTokens:
        """
        Exchange authorization code for access and refresh tokens.

        Args:
            code: Authorization code from Google callback
            redirect_uri: Must match the redirect_uri used in authorization

        Returns:
            OAuthTokens with access_token, refresh_token, expiration, etc.

        Raises:
            TokenExchangeFailed: If Google rejects the code or is unreachable
        """
        token_data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": redirect_uri or self.redirect_uri,
        }

        logger.info("Exchanging authorization code for tokens")

        async with httpx.AsyncClient() as client:
            try:
                response = await client.post(
                    self.TOKEN_URL,
                    data=token_data,
                    timeout=self.timeout,
                )
            except httpx.RequestError as e:
                logger.error(f"Network error during token exchange: {e}")
                raise TokenExchangeFailed(f"Network error: {e}")

        if response.status_code != 200:
            error_msg = self._token_error(response)
            logger.error(f"Token exchange failed: {error_msg}")
            raise TokenExchangeFailed(f"Token exchange failed: {error_msg}")

        token_response = GoogleTokenResponse(**response.json())

        logger.info(
            "Successfully obtained Google tokens",
            extra={
                "has_refresh_token": token_response.refresh_token is not None,
                "expires_in": token_response.expires_in,
                "scopes": token_response.get_scopes_list(),
            }
        )

        return OAuthTokens(
            access_token=token_response.access_token,
            token_type=token_response.token_type,
            refresh_token=token_response.refresh_token,
            expires_at=token_response.get_expires_at(),
            scopes=token_response.get_scopes_list(),
            extra_data={"id_token": token_response.id_token} if token_response.id_token else None,
        )

    # -------------------------------------------------------------------------
    # TOKEN REFRESH
    # -------------------------------------------------------------------------

    async def refresh_access_token(self, refresh_token: str) -> OAuthTokens:
        """
        Use refresh token to get a new access token.

        Args:
            refresh_token: The refresh token from initial authorization

        Returns:
            OAuthTokens with new access_token (refresh_token usually unchanged)

        Raises:
            TokenExpiredError: If refresh token is invalid or revoked
        """
        refresh_data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        }

        logger.info("Refreshing access token")

        async with httpx.AsyncClient() as client:
            try:
                response = await client.post(
                    self.TOKEN_URL,
                    data=refresh_data,
                    timeout=self.timeout,
                )
            except httpx.RequestError as e:
                logger.error(f"Network error during token refresh: {e}")
                raise TokenExpiredError(f"Network error: {e}")

        if response.status_code != 200:
            error_msg = self._token_error(response)
            logger.error(f"Token refresh failed: {error_msg}")
            raise TokenExpiredError(f"Token refresh failed: {error_msg}")

        token_response = GoogleTokenResponse(**response.json())

        logger.info(
            "Successfully refreshed access token",
            extra={"expires_in": token_response.expires_in}
        )

        # Google may or may not return a new refresh_token
        return OAuthTokens(
            access_token=token_response.access_token,
            token_type=token_response.token_type,
            refresh_token=token_response.refresh_token or refresh_token,
            expires_at=token_response.get_expires_at(),
            scopes=token_response.get_scopes_list(),
        )

    # -------------------------------------------------------------------------
    # USER INFO
    # -------------------------------------------------------------------------

    async def get_user_info(self, access_token: str, retries: Optional[int] = None) -> UserInfo:
        """
        Get user information from Google.

        The userinfo read is idempotent, so transport errors are retried
        `retries` times before giving up.

        Args:
            access_token: Valid access token
            retries: Extra attempts on network errors (defaults to
                     GOOGLE_API_RETRIES)

        Returns:
            UserInfo with Google account details

        Raises:
            ProfileFetchFailed: If the profile cannot be read
        """
        if retries is None:
            retries = settings.GOOGLE_API_RETRIES
        logger.info("Fetching user info from Google")

        response = None
        for attempt in range(retries + 1):
            try:
                async with httpx.AsyncClient() as client:
                    response = await client.get(
                        self.USERINFO_URL,
                        headers={"Authorization": f"Bearer {access_token}"},
                        timeout=self.timeout,
                    )
                break
            except httpx.RequestError as e:
                if attempt < retries:
                    logger.warning(f"Network error fetching user info, retrying: {e}")
                    await asyncio.sleep(0.5 * (attempt + 1))
                    continue
                logger.error(f"Network error fetching user info: {e}")
                raise ProfileFetchFailed(f"Network error: {e}")

        if response.status_code != 200:
            logger.error(f"Failed to fetch user info: {response.status_code}")
            raise ProfileFetchFailed(f"Failed to fetch user info: {response.text}")

        google_user = GoogleUserInfo(**response.json())

        logger.info(
            "Successfully fetched Google user info",
            extra={"email": google_user.email}
        )

        return UserInfo(
            provider_user_id=google_user.sub,
            email=google_user.email,
            name=google_user.name,
            picture_url=google_user.picture,
            extra_data={
                "given_name": google_user.given_name,
                "family_name": google_user.family_name,
                "email_verified": google_user.email_verified,
                "locale": google_user.locale,
            },
        )

    # -------------------------------------------------------------------------
    # TOKEN REVOCATION
    # -------------------------------------------------------------------------

    async def revoke_token(self, token: str) -> bool:
        """
        Revoke an access or refresh token.

        Called on logout. Never raises: a failed revocation is logged and
        reported as False.
        """
        logger.info("Revoking Google token")

        async with httpx.AsyncClient() as client:
            try:
                response = await client.post(
                    self.REVOKE_URL,
                    params={"token": token},
                    timeout=self.timeout,
                )
            except httpx.RequestError as e:
                logger.error(f"Network error during token revocation: {e}")
                return False

        success = response.status_code == 200
        if success:
            logger.info("Successfully revoked Google token")
        else:
            logger.warning(f"Token revocation returned status {response.status_code}")
        return success

    # -------------------------------------------------------------------------
    # UTILITY METHODS
    # -------------------------------------------------------------------------

    @staticmethod
    def generate_state() -> str:
        """Generate a cryptographically secure state parameter (CSRF)."""
        return secrets.token_urlsafe(32)

    @staticmethod
    def _token_error(response: httpx.Response) -> str:
        try:
            error_data = response.json() if response.content else {}
        except ValueError:
            return response.text
        return error_data.get("error_description") or error_data.get("error") or response.text
