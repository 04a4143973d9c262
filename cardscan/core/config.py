"""
Configuration module - centralized settings for the card scanner backend.
Uses pydantic-settings to load values from environment variables and .env file.

Nothing secret lives in source. Every credential (OAuth client, Gemini key,
service-account key) is resolved once at process start and injected into the
components that need it.
"""

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Pydantic-settings automatically:
    1. Reads from environment variables (highest priority)
    2. Falls back to .env file values
    3. Uses default values if neither exists

    To override in production, set environment variables:
        export SECRET_KEY=your-super-secret-random-string
        export GOOGLE_CLIENT_ID=xxx.apps.googleusercontent.com
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ---------------------------------------------------------------------------
    # APPLICATION SETTINGS
    # ---------------------------------------------------------------------------
    APP_NAME: str = "Card Scanner API"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # FRONTEND_URL: Where the browser lands when the OAuth popup has no opener
    FRONTEND_URL: str = "http://localhost:5173"

    # FRONTEND_ORIGIN: Target origin for the popup's postMessage ("*" = any)
    FRONTEND_ORIGIN: str = "*"

    # CORS_ORIGINS: Comma-separated list of allowed origins ("*" = any)
    CORS_ORIGINS: str = "*"

    # ---------------------------------------------------------------------------
    # SIGNING SETTINGS
    # ---------------------------------------------------------------------------
    # SECRET_KEY: Signs stateless session cookies (SESSION_BACKEND=cookie)
    # - Generate with: openssl rand -hex 32
    SECRET_KEY: str = "change-me-in-production"
    ALGORITHM: str = "HS256"

    # ---------------------------------------------------------------------------
    # SESSION SETTINGS
    # ---------------------------------------------------------------------------
    # SESSION_BACKEND: "memory", "database" or "cookie"
    # - memory: opaque id in the cookie, session kept in process memory
    # - database: opaque id in the cookie, session kept in DATABASE_URL
    # - cookie: whole session signed into the cookie (tokens reach the client)
    SESSION_BACKEND: str = "memory"
    SESSION_COOKIE_NAME: str = "sessionId"
    SESSION_TTL_SECONDS: int = 30 * 24 * 60 * 60  # 30 days
    COOKIE_SECURE: bool = True
    COOKIE_SAMESITE: str = "none"

    # DATABASE_URL: Only used by the database session backend
    DATABASE_URL: str = "sqlite:///./cardscan.db"

    # ---------------------------------------------------------------------------
    # GOOGLE OAUTH SETTINGS
    # ---------------------------------------------------------------------------
    # Google Cloud Console: https://console.cloud.google.com/apis/credentials
    #
    # Setup Instructions:
    # 1. Enable the Google Sheets, Google Drive and People APIs
    # 2. Configure OAuth consent screen (External, add test users)
    # 3. Create OAuth 2.0 Client ID (Web application)
    # 4. Add authorized redirect URI: http://localhost:8000/api/oauth2callback
    GOOGLE_CLIENT_ID: str = ""
    GOOGLE_CLIENT_SECRET: str = ""
    GOOGLE_REDIRECT_URI: str = "http://localhost:8000/api/oauth2callback"

    # Outbound Google REST calls
    GOOGLE_API_TIMEOUT: float = 30.0
    GOOGLE_API_RETRIES: int = 2

    # ---------------------------------------------------------------------------
    # SPREADSHEET SETTINGS
    # ---------------------------------------------------------------------------
    # SPREADSHEET_NAME: Per-user spreadsheet looked up by exact name in Drive
    SPREADSHEET_NAME: str = "cards_details"

    # SHEETS_AUTH_MODE: "user" (delegated OAuth tokens from the session) or
    # "service_account" (one shared spreadsheet written by a service account)
    SHEETS_AUTH_MODE: str = "user"

    # Service account key, either the whole JSON document...
    GOOGLE_SERVICE_ACCOUNT_JSON: str = ""
    # ...or its decomposed fields (private key may carry literal "\n" escapes)
    GOOGLE_SERVICE_ACCOUNT_EMAIL: str = ""
    GOOGLE_PRIVATE_KEY: str = ""
    GOOGLE_SHEET_ID: str = ""
    SERVICE_ACCOUNT_SHEET_TAB: str = "cards_details"

    # ---------------------------------------------------------------------------
    # AI/LLM PROVIDER SETTINGS
    # ---------------------------------------------------------------------------
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.0-flash"
    AI_REQUEST_TIMEOUT: int = 30

    def get_cors_origins(self) -> List[str]:
        """Split CORS_ORIGINS into a list."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


# ---------------------------------------------------------------------------
# GLOBAL SETTINGS INSTANCE
# ---------------------------------------------------------------------------
# Usage: from cardscan.core.config import settings
settings = Settings()
