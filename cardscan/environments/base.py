"""
Base classes and interfaces for Environment integrations.

This module defines the contracts shared by the Google integrations
(OAuth, Sheets/Drive, People) and the exception hierarchy that the HTTP
layer maps onto status codes.

Design Pattern: Template Method + Strategy Pattern
==================================================
- EnvironmentProvider: Abstract base for OAuth providers (strategy for auth)
- EnvironmentService: Base for REST API services, owns the authenticated
  request helper every Google service uses

Error Taxonomy:
===============
EnvironmentError
├── BadRequestError          -> 400
│   ├── MissingCode
│   └── NoRecords
├── Unauthenticated          -> 401
├── AuthenticationError      -> 500 (upstream)
│   ├── TokenExchangeFailed
│   ├── ProfileFetchFailed
│   └── TokenExpiredError
└── APIError                 -> 500 (upstream)
    ├── NoSpreadsheet
    ├── SyncFailed
    └── ContactCreateFailed
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, List, Dict, Any

import httpx

from cardscan.core.config import settings


logger = logging.getLogger("cardscan.environments")


# ---------------------------------------------------------------------------
# CUSTOM EXCEPTIONS
# ---------------------------------------------------------------------------


class EnvironmentError(Exception):
    """Base exception for all environment-related errors."""

    status_code: int = 500


class BadRequestError(EnvironmentError):
    """The caller left out something the operation requires."""

    status_code = 400


class MissingCode(BadRequestError):
    """OAuth callback reached without an authorization code."""


class NoRecords(BadRequestError):
    """A sync was requested with an empty list of cards."""


class Unauthenticated(EnvironmentError):
    """No valid session or delegated tokens for the request."""

    status_code = 401


class AuthenticationError(EnvironmentError):
    """Raised when authentication with a provider fails."""
    pass


class TokenExchangeFailed(AuthenticationError):
    """The identity provider rejected the authorization code."""


class ProfileFetchFailed(AuthenticationError):
    """The userinfo endpoint could not be read with the new tokens."""


class TokenExpiredError(AuthenticationError):
    """Raised when an OAuth token has expired and refresh failed."""
    pass


class APIError(EnvironmentError):
    """Raised when an API call to the provider fails."""

    def __init__(self, message: str, status_code: Optional[int] = None, response: Any = None):
        super().__init__(message)
        # upstream HTTP status, kept for logging; the client always sees 500
        self.upstream_status = status_code
        self.response = response


class NoSpreadsheet(APIError):
    """No spreadsheet id could be resolved for the user."""


class SyncFailed(APIError):
    """The Sheets API rejected a read or append."""


class ContactCreateFailed(APIError):
    """The People API rejected a contact creation."""


# ---------------------------------------------------------------------------
# DATA STRUCTURES
# ---------------------------------------------------------------------------


@dataclass
class OAuthTokens:
    """
    Standardized token data from the OAuth provider.

    Used to transfer token data between the OAuth flow and the session store.
    """
    access_token: str
    token_type: str = "Bearer"
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None
    scopes: Optional[List[str]] = None
    extra_data: Optional[Dict[str, Any]] = None


@dataclass
class UserInfo:
    """
    Basic user information from the OAuth provider.

    Extracted from the userinfo endpoint.
    """
    provider_user_id: str  # Google's 'sub'
    email: Optional[str] = None
    name: Optional[str] = None
    picture_url: Optional[str] = None
    extra_data: Optional[Dict[str, Any]] = None


# ---------------------------------------------------------------------------
# ABSTRACT BASE CLASSES
# ---------------------------------------------------------------------------


class EnvironmentProvider(ABC):
    """
    Abstract base class for OAuth providers.

    The provider is responsible for:
    - Generating authorization URLs
    - Exchanging authorization codes for tokens
    - Refreshing expired tokens
    - Extracting user information from tokens
    - Revoking tokens on logout
    """

    provider_name: str = ""

    @abstractmethod
    def get_authorization_url(
        self,
        scopes: List[str],
        state: str,
        redirect_uri: Optional[str] = None,
    ) -> str:
        """Generate the OAuth authorization URL."""
        pass

    @abstractmethod
    async def exchange_code_for_tokens(
        self,
        code: str,
        redirect_uri: Optional[str] = None,
    ) -> OAuthTokens:
        """
        Exchange authorization code for access/refresh tokens.

        Raises:
            TokenExchangeFailed: If code exchange fails
        """
        pass

    @abstractmethod
    async def refresh_access_token(self, refresh_token: str) -> OAuthTokens:
        """
        Use refresh token to get a new access token.

        Raises:
            TokenExpiredError: If refresh token is invalid/expired
        """
        pass

    @abstractmethod
    async def get_user_info(self, access_token: str) -> UserInfo:
        """
        Get user information from the provider.

        Raises:
            ProfileFetchFailed: If the profile cannot be read
        """
        pass

    @abstractmethod
    async def revoke_token(self, token: str) -> bool:
        """Revoke an access or refresh token. Returns True on success."""
        pass


class EnvironmentService:
    """
    Base class for REST API services within a provider.

    Each service (Sheets, Drive, People) sets its base URL and the scopes it
    needs, and calls _make_request() for every HTTP exchange. GET requests
    are idempotent and are retried on transport errors, 429 and 5xx;
    everything else is attempted exactly once.

    Subclasses raise their own APIError subclass through error_class.
    """

    service_name: str = ""
    required_scopes: List[str] = []
    BASE_URL: str = ""
    error_class = APIError

    RETRYABLE_STATUS = {429, 500, 502, 503, 504}
    RETRY_DELAY_SECONDS = 0.5

    def __init__(
        self,
        access_token: str,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
    ):
        self.access_token = access_token
        self.timeout = timeout if timeout is not None else settings.GOOGLE_API_TIMEOUT
        self.max_retries = max_retries if max_retries is not None else settings.GOOGLE_API_RETRIES

    def has_required_scopes(self, granted: Optional[List[str]]) -> bool:
        """Check a granted scope list against this service's requirements."""
        if not granted:
            return False
        return all(scope in granted for scope in self.required_scopes)

    def _get_headers(self) -> dict:
        """Get authorization headers for API requests."""
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Accept": "application/json",
        }

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        params: Optional[dict] = None,
        json: Optional[dict] = None,
        base_url: Optional[str] = None,
    ) -> dict:
        """
        Make an authenticated request to the API.

        Args:
            method: HTTP method (GET, POST, PUT)
            endpoint: Path appended to the base URL
            params: Query parameters
            json: JSON body
            base_url: Override BASE_URL (Drive and Sheets share a client)

        Returns:
            Parsed JSON response ({} for empty bodies)

        Raises:
            error_class: If the request fails
        """
        url = f"{base_url or self.BASE_URL}{endpoint}"
        attempts = 1 + (self.max_retries if method.upper() == "GET" else 0)

        for attempt in range(1, attempts + 1):
            try:
                async with httpx.AsyncClient() as client:
                    response = await client.request(
                        method=method,
                        url=url,
                        headers=self._get_headers(),
                        params=params,
                        json=json,
                        timeout=self.timeout,
                    )
            except httpx.RequestError as e:
                if attempt < attempts:
                    logger.warning(
                        f"{self.service_name} API network error, retrying ({attempt}/{attempts}): {e}"
                    )
                    await asyncio.sleep(self.RETRY_DELAY_SECONDS * attempt)
                    continue
                logger.error(f"Network error in {self.service_name} API: {e}")
                raise self.error_class(f"Network error: {e}")

            if response.status_code in self.RETRYABLE_STATUS and attempt < attempts:
                logger.warning(
                    f"{self.service_name} API returned {response.status_code}, "
                    f"retrying ({attempt}/{attempts})"
                )
                await asyncio.sleep(self.RETRY_DELAY_SECONDS * attempt)
                continue

            if response.status_code >= 400:
                message = self._error_message(response)
                logger.error(
                    f"{self.service_name} API error: {response.status_code} - {message}"
                )
                raise self.error_class(
                    message,
                    status_code=response.status_code,
                    response=response.text,
                )

            return response.json() if response.content else {}

        # the loop either returns or raises
        raise self.error_class(f"{self.service_name} API request failed")

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Pull Google's error.message out of a failed response."""
        try:
            payload = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        error = payload.get("error") if isinstance(payload, dict) else None
        if isinstance(error, dict) and error.get("message"):
            return error["message"]
        if isinstance(error, str):
            return payload.get("error_description") or error
        return response.text
