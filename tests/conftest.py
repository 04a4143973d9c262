"""
Test configuration and fixtures for pytest.

This module provides shared fixtures used across all tests:
- FakeGoogle: an in-process stand-in for the Google REST endpoints
  (token, userinfo, Drive, Sheets, People) behind httpx.MockTransport
- Test database (SQLite in-memory) for the database session backend
- Test client (FastAPI TestClient) with services wired to the fakes
- Signed-in session helpers
"""

import json
import re
from datetime import datetime, timedelta, timezone
from typing import Dict, Generator, List, Optional
from urllib.parse import parse_qs

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from cardscan.ai.providers.base import AIProvider, AIResponse, ProviderType
from cardscan.db.base import Base, import_models
from cardscan.deps import (
    get_auth_flow,
    get_card_extraction,
    get_contact_export,
    get_service_account_sync,
    get_spreadsheet_sync,
)
from cardscan.environments.base import EnvironmentService
from cardscan.environments.google.auth import CARD_SCANNER_SCOPES, GoogleAuthClient
from cardscan.environments.google.sheets import HEADER_ROW
from cardscan.main import app
from cardscan.schemas.session import Session, SessionTokens
from cardscan.services.auth_flow import OAuthFlowController
from cardscan.services.card_extraction import CardExtractionService
from cardscan.services.contact_export import ContactExportService
from cardscan.services.session_store import InMemorySessionStore
from cardscan.services.spreadsheet_sync import ServiceAccountSheetSync, SpreadsheetSyncService


# Captured before any test patches httpx.AsyncClient
REAL_ASYNC_CLIENT = httpx.AsyncClient


# ---------------------------------------------------------------------------
# FAKE GOOGLE
# ---------------------------------------------------------------------------

class FakeGoogle:
    """
    Minimal, stateful imitation of the Google endpoints the app calls.

    Spreadsheets are kept as {id: {"name", "createdTime", "rows"}}; rows is
    the full grid including the header. Reads trim trailing empty cells the
    way the real Sheets API does.
    """

    def __init__(self):
        self.spreadsheets: Dict[str, dict] = {}
        self.contacts: List[dict] = []
        self.requests: List[httpx.Request] = []
        self.revoked: List[str] = []
        # (method, path fragment) -> list of canned failures, consumed in order
        self._failures: Dict[tuple, List[object]] = {}
        self._counter = 0
        self.userinfo = {
            "sub": "1098",
            "email": "jane@acme.com",
            "name": "Jane Doe",
            "picture": "https://example.com/jane.png",
        }
        self.valid_codes = {"good-code"}
        self.access_token = "ya29.fresh"

    # -- helpers used by tests ------------------------------------------------

    def add_spreadsheet(self, name: str = "cards_details", rows: Optional[List[list]] = None) -> str:
        self._counter += 1
        spreadsheet_id = f"ss-{self._counter}"
        self.spreadsheets[spreadsheet_id] = {
            "name": name,
            "createdTime": f"2024-01-01T00:00:{self._counter:02d}.000Z",
            "rows": [list(HEADER_ROW)] + [list(r) for r in (rows or [])],
        }
        return spreadsheet_id

    def rows(self, spreadsheet_id: str) -> List[list]:
        return self.spreadsheets[spreadsheet_id]["rows"]

    def fail(self, method: str, fragment: str, status: int = 500, times: int = 1, message: str = "Backend Error"):
        """Make the next `times` matching requests fail with an HTTP error."""
        self._failures.setdefault((method, fragment), []).extend([(status, message)] * times)

    def disconnect(self, method: str, fragment: str, times: int = 1):
        """Make the next `times` matching requests fail at the transport level."""
        self._failures.setdefault((method, fragment), []).extend(["disconnect"] * times)

    def count(self, method: str, fragment: str) -> int:
        return sum(1 for r in self.requests if r.method == method and fragment in r.url.path)

    # -- transport ------------------------------------------------------------

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        for (method, fragment), queue in self._failures.items():
            if queue and request.method == method and fragment in request.url.path:
                failure = queue.pop(0)
                if failure == "disconnect":
                    raise httpx.ConnectError("connection reset", request=request)
                status, message = failure
                return httpx.Response(status, json={"error": {"code": status, "message": message}})

        host, path = request.url.host, request.url.path
        if host == "oauth2.googleapis.com":
            return self._oauth(request, path)
        if host == "www.googleapis.com" and path.startswith("/oauth2/"):
            return httpx.Response(200, json=self.userinfo)
        if host == "www.googleapis.com" and path.startswith("/drive/v3/files"):
            return self._drive_list(request)
        if host == "sheets.googleapis.com":
            return self._sheets(request, path)
        if host == "people.googleapis.com":
            return self._people(request)
        return httpx.Response(404, json={"error": {"message": f"No fake for {host}{path}"}})

    def _oauth(self, request: httpx.Request, path: str) -> httpx.Response:
        if path == "/revoke":
            self.revoked.append(request.url.params.get("token"))
            return httpx.Response(200)

        form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
        grant = form.get("grant_type")
        if grant == "authorization_code" and form.get("code") not in self.valid_codes:
            return httpx.Response(400, json={"error": "invalid_grant", "error_description": "Bad Request"})
        if grant == "refresh_token" and form.get("refresh_token") == "revoked":
            return httpx.Response(400, json={"error": "invalid_grant", "error_description": "Token has been expired or revoked."})

        payload = {
            "access_token": self.access_token,
            "expires_in": 3599,
            "token_type": "Bearer",
            "scope": " ".join(CARD_SCANNER_SCOPES),
        }
        if grant == "authorization_code":
            payload["refresh_token"] = "1//refresh"
        return httpx.Response(200, json=payload)

    def _drive_list(self, request: httpx.Request) -> httpx.Response:
        query = request.url.params.get("q", "")
        match = re.search(r"name='((?:[^'\\]|\\.)*)'", query)
        name = match.group(1).replace("\\'", "'").replace("\\\\", "\\") if match else None
        files = [
            {"id": sid, "name": s["name"], "createdTime": s["createdTime"]}
            for sid, s in self.spreadsheets.items()
            if name is None or s["name"] == name
        ]
        files.sort(key=lambda f: f["createdTime"])
        return httpx.Response(200, json={"files": files})

    def _sheets(self, request: httpx.Request, path: str) -> httpx.Response:
        if request.method == "POST" and path == "/v4/spreadsheets":
            body = json.loads(request.content)
            self._counter += 1
            spreadsheet_id = f"ss-{self._counter}"
            self.spreadsheets[spreadsheet_id] = {
                "name": body["properties"]["title"],
                "createdTime": f"2024-01-01T00:00:{self._counter:02d}.000Z",
                "rows": [],
            }
            return httpx.Response(200, json={"spreadsheetId": spreadsheet_id})

        match = re.match(r"^/v4/spreadsheets/([^/]+)/values/(.+)$", path)
        if not match or match.group(1) not in self.spreadsheets:
            return httpx.Response(404, json={"error": {"message": "Requested entity was not found."}})

        sheet = self.spreadsheets[match.group(1)]
        range_a1 = match.group(2)

        if request.method == "PUT":
            values = json.loads(request.content)["values"]
            sheet["rows"][: len(values)] = [list(v) for v in values]
            return httpx.Response(200, json={"updatedRows": len(values)})

        if request.method == "POST" and range_a1.endswith(":append"):
            values = json.loads(request.content)["values"]
            sheet["rows"].extend(list(v) for v in values)
            return httpx.Response(200, json={"updates": {"updatedRows": len(values)}})

        if request.method == "GET":
            start = 1 if "A2" in range_a1 else 0
            values = []
            for row in sheet["rows"][start:]:
                trimmed = list(row)
                while trimmed and trimmed[-1] in ("", None):
                    trimmed.pop()
                values.append(trimmed)
            payload = {"range": range_a1, "majorDimension": "ROWS"}
            if values:
                payload["values"] = values
            return httpx.Response(200, json=payload)

        return httpx.Response(405)

    def _people(self, request: httpx.Request) -> httpx.Response:
        person = json.loads(request.content)
        self.contacts.append(person)
        return httpx.Response(200, json={"resourceName": f"people/c{len(self.contacts)}", **person})


@pytest.fixture
def fake_google(monkeypatch) -> FakeGoogle:
    """Route every httpx.AsyncClient in the app to FakeGoogle."""
    fake = FakeGoogle()
    transport = httpx.MockTransport(fake.handler)

    def client_factory(*args, **kwargs):
        kwargs["transport"] = transport
        return REAL_ASYNC_CLIENT(*args, **kwargs)

    monkeypatch.setattr(httpx, "AsyncClient", client_factory)
    monkeypatch.setattr(EnvironmentService, "RETRY_DELAY_SECONDS", 0)
    return fake


# ---------------------------------------------------------------------------
# FAKE VISION PROVIDER
# ---------------------------------------------------------------------------

class FakeVisionProvider(AIProvider):
    """Returns a canned answer instead of calling Gemini."""

    provider_type = ProviderType.GEMINI

    def __init__(self, content: str = "", success: bool = True, error: Optional[str] = None, configured: bool = True):
        self.content = content
        self.success = success
        self.error = error
        self.configured = configured
        self.calls: List[dict] = []

    @property
    def is_configured(self) -> bool:
        return self.configured

    async def generate_from_image(self, image_bytes, mime_type, prompt, temperature=0.1, max_tokens=2048, **kwargs):
        self.calls.append({"image_bytes": image_bytes, "mime_type": mime_type, "prompt": prompt})
        return AIResponse(
            content=self.content if self.success else "",
            provider=self.provider_type,
            model="gemini-test",
            success=self.success,
            error=self.error,
        )


@pytest.fixture
def make_vision_provider():
    """The FakeVisionProvider class, for tests that need a custom answer."""
    return FakeVisionProvider


@pytest.fixture
def vision_provider() -> FakeVisionProvider:
    return FakeVisionProvider(
        content='```json\n{"name": "Jane Doe", "company": "Acme", "job_title": "CTO", '
                '"email": "jane@acme.com", "social_links": ["linkedin.com/in/jane"]}\n```'
    )


# ---------------------------------------------------------------------------
# DATABASE FIXTURES
# ---------------------------------------------------------------------------
# SQLite in-memory; StaticPool keeps the same connection across operations

@pytest.fixture(scope="function")
def db_session_factory() -> Generator[sessionmaker, None, None]:
    """Fresh card_sessions table for each test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},  # Required for SQLite
        poolclass=StaticPool,
    )
    import_models()
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


# ---------------------------------------------------------------------------
# SERVICE + APP FIXTURES
# ---------------------------------------------------------------------------

@pytest.fixture
def session_store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def sync_service() -> SpreadsheetSyncService:
    return SpreadsheetSyncService(spreadsheet_name="cards_details")


@pytest.fixture
def auth_flow(session_store, sync_service) -> OAuthFlowController:
    return OAuthFlowController(
        auth_client=GoogleAuthClient(
            client_id="test-client-id",
            client_secret="test-client-secret",
            redirect_uri="http://testserver/api/oauth2callback",
        ),
        sync_service=sync_service,
        session_store=session_store,
    )


@pytest.fixture
def client(fake_google, auth_flow, sync_service, vision_provider) -> Generator[TestClient, None, None]:
    """
    Create a test client with every Google call routed to FakeGoogle.

    Overrides the service dependencies so each test gets fresh state.
    """
    app.dependency_overrides[get_auth_flow] = lambda: auth_flow
    app.dependency_overrides[get_spreadsheet_sync] = lambda: sync_service
    app.dependency_overrides[get_service_account_sync] = lambda: ServiceAccountSheetSync(spreadsheet_id="")
    app.dependency_overrides[get_contact_export] = lambda: ContactExportService()
    app.dependency_overrides[get_card_extraction] = lambda: CardExtractionService(provider=vision_provider)

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# SESSION FIXTURES
# ---------------------------------------------------------------------------

def make_session(
    spreadsheet_id: Optional[str] = None,
    access_token: str = "ya29.current",
    refresh_token: Optional[str] = "1//refresh",
    expires_in: int = 3600,
) -> Session:
    return Session(
        user_id="1098",
        email="jane@acme.com",
        name="Jane Doe",
        picture="https://example.com/jane.png",
        tokens=SessionTokens(
            access_token=access_token,
            refresh_token=refresh_token,
            expiry=datetime.now(timezone.utc) + timedelta(seconds=expires_in),
            scopes=list(CARD_SCANNER_SCOPES),
        ),
        spreadsheet_id=spreadsheet_id,
    )


@pytest.fixture
def build_session():
    """Factory for signed-in sessions: build_session(spreadsheet_id=..., expires_in=...)."""
    return make_session


@pytest.fixture
def spreadsheet_id(fake_google) -> str:
    """An existing, empty cards_details spreadsheet."""
    return fake_google.add_spreadsheet("cards_details")


@pytest.fixture
def signed_in(client, session_store, spreadsheet_id) -> str:
    """
    Store a live session and attach its cookie to the client.

    Returns:
        The session reference
    """
    ref = session_store.create(make_session(spreadsheet_id=spreadsheet_id))
    client.cookies.set("sessionId", ref)
    return ref
