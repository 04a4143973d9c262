"""
Service Account Credentials - server-to-server access tokens for Sheets.

Used when SHEETS_AUTH_MODE=service_account: every card is appended to one
shared spreadsheet owned by (or shared with) a Google service account,
instead of each user's own spreadsheet.

Flow (OAuth 2.0 JWT-bearer grant):
==================================
1. Build a claim set {iss, scope, aud, iat, exp} for the service account
2. Sign it with the account's RSA private key (RS256)
3. POST the assertion to the token endpoint
4. Cache the access token until shortly before it expires

Reference: https://developers.google.com/identity/protocols/oauth2/service-account
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Optional, List

import httpx
from jose import jwt
from jose.exceptions import JOSEError

from cardscan.core.config import Settings, settings as default_settings
from cardscan.environments.base import AuthenticationError
from cardscan.environments.google.auth.schemas import GoogleTokenResponse, SHEETS_SCOPES


logger = logging.getLogger("cardscan.environments.google.service_account")


JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"


@dataclass
class ServiceAccountKey:
    """The two fields of a service-account key that signing needs."""
    client_email: str
    private_key: str
    token_uri: str = "https://oauth2.googleapis.com/token"

    @classmethod
    def from_settings(cls, config: Settings) -> "ServiceAccountKey":
        """
        Resolve the key from configuration.

        GOOGLE_SERVICE_ACCOUNT_JSON wins when set; otherwise the decomposed
        GOOGLE_SERVICE_ACCOUNT_EMAIL / GOOGLE_PRIVATE_KEY pair is used.
        Literal "\\n" sequences in the private key are turned back into
        newlines (env files usually flatten the PEM onto one line).

        Raises:
            AuthenticationError: If neither form is configured
        """
        if config.GOOGLE_SERVICE_ACCOUNT_JSON:
            try:
                info = json.loads(config.GOOGLE_SERVICE_ACCOUNT_JSON)
            except ValueError as e:
                raise AuthenticationError(f"Invalid GOOGLE_SERVICE_ACCOUNT_JSON: {e}")
            email = info.get("client_email", "")
            private_key = info.get("private_key", "")
            token_uri = info.get("token_uri") or cls.token_uri
        else:
            email = config.GOOGLE_SERVICE_ACCOUNT_EMAIL
            private_key = config.GOOGLE_PRIVATE_KEY
            token_uri = cls.token_uri

        if not email or not private_key:
            raise AuthenticationError("Google Sheets credentials not configured")

        return cls(
            client_email=email,
            private_key=private_key.replace("\\n", "\n"),
            token_uri=token_uri,
        )


class ServiceAccountCredentials:
    """
    Mints and caches access tokens for a service account.

    Example:
        creds = ServiceAccountCredentials(ServiceAccountKey.from_settings(settings))
        token = await creds.get_access_token()
    """

    TOKEN_LIFETIME_SECONDS = 3600
    # refresh this many seconds before Google's expiry
    EXPIRY_MARGIN_SECONDS = 60

    def __init__(
        self,
        key: ServiceAccountKey,
        scopes: Optional[List[str]] = None,
        timeout: Optional[float] = None,
    ):
        self.key = key
        self.scopes = scopes or SHEETS_SCOPES
        self.timeout = timeout if timeout is not None else default_settings.GOOGLE_API_TIMEOUT
        self._access_token: Optional[str] = None
        self._expires_at: float = 0.0

    def build_assertion(self, now: Optional[int] = None) -> str:
        """
        Build the signed RS256 JWT assertion.

        Raises:
            AuthenticationError: If the private key cannot sign
        """
        issued_at = int(now if now is not None else time.time())
        claims = {
            "iss": self.key.client_email,
            "scope": " ".join(self.scopes),
            "aud": self.key.token_uri,
            "iat": issued_at,
            "exp": issued_at + self.TOKEN_LIFETIME_SECONDS,
        }
        try:
            return jwt.encode(claims, self.key.private_key, algorithm="RS256")
        except (JOSEError, ValueError) as e:
            logger.error(f"Failed to sign service account assertion: {e}")
            raise AuthenticationError(f"Invalid service account private key: {e}")

    async def get_access_token(self) -> str:
        """Return a cached token, minting a new one when close to expiry."""
        if self._access_token and time.time() < self._expires_at - self.EXPIRY_MARGIN_SECONDS:
            return self._access_token

        assertion = self.build_assertion()
        logger.info("Requesting service account access token")

        async with httpx.AsyncClient() as client:
            try:
                response = await client.post(
                    self.key.token_uri,
                    data={"grant_type": JWT_BEARER_GRANT, "assertion": assertion},
                    timeout=self.timeout,
                )
            except httpx.RequestError as e:
                logger.error(f"Network error during service account auth: {e}")
                raise AuthenticationError(f"Network error: {e}")

        if response.status_code != 200:
            logger.error(f"Service account token error: {response.text}")
            raise AuthenticationError("Failed to authenticate with Google")

        token_response = GoogleTokenResponse(**response.json())
        self._access_token = token_response.access_token
        self._expires_at = time.time() + (token_response.expires_in or self.TOKEN_LIFETIME_SECONDS)
        return self._access_token
