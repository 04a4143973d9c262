"""
Tests for the HTTP API.

These tests verify:
- Health check
- Sign-in redirect and OAuth callback (cookie + popup page)
- Authenticated endpoints reject requests without a session
- save-to-sheets / list-cards / add-to-contacts / extract-card-info
- Error bodies are always {"error": "..."}
"""

import base64

import pytest

from cardscan.core.config import settings
from cardscan.deps import get_card_extraction
from cardscan.main import app
from cardscan.services.card_extraction import CardExtractionService


JANE = {"name": "Jane Doe", "company": "Acme", "email": "jane@acme.com"}
IMAGE_B64 = base64.b64encode(b"\xff\xd8\xff\xe0fake-jpeg").decode()


class TestHealth:

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestAuthEndpoints:
    """Tests for /api/auth/google, /api/oauth2callback, /api/user, /api/logout."""

    def test_login_redirects_to_google(self, client):
        response = client.get("/api/auth/google", follow_redirects=False)

        assert response.status_code == 302
        assert response.headers["location"].startswith("https://accounts.google.com/o/oauth2/v2/auth?")
        assert "access_type=offline" in response.headers["location"]

    def test_login_not_configured(self, client, auth_flow):
        auth_flow.auth_client.client_id = ""

        response = client.get("/api/auth/google", follow_redirects=False)

        assert response.status_code == 503
        assert "not configured" in response.json()["error"]

    def test_callback_sets_cookie_and_returns_popup(self, client, auth_flow, session_store, fake_google):
        _, state = auth_flow.begin_auth()

        response = client.get("/api/oauth2callback", params={"code": "good-code", "state": state})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "postMessage('auth_success'" in response.text
        cookie = response.headers["set-cookie"]
        assert cookie.startswith("sessionId=")
        assert "HttpOnly" in cookie
        assert len(session_store) == 1
        assert len(fake_google.spreadsheets) == 1

    def test_callback_without_state(self, client, session_store, fake_google):
        """Dropping the state does not bypass the CSRF check."""
        client.get("/api/auth/google", follow_redirects=False)

        response = client.get("/api/oauth2callback", params={"code": "good-code"})

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid or expired state. Please try again."}
        assert "set-cookie" not in response.headers
        assert fake_google.requests == []
        assert len(session_store) == 0

    def test_callback_state_single_use(self, client, auth_flow, session_store, fake_google):
        """A replayed callback URL is rejected."""
        _, state = auth_flow.begin_auth()
        client.get("/api/oauth2callback", params={"code": "good-code", "state": state})

        response = client.get("/api/oauth2callback", params={"code": "good-code", "state": state})

        assert response.status_code == 400
        assert len(session_store) == 1

    def test_callback_bad_state(self, client, session_store, fake_google):
        response = client.get("/api/oauth2callback", params={"code": "good-code", "state": "forged"})

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid or expired state. Please try again."}
        assert fake_google.requests == []
        assert len(session_store) == 0

    def test_callback_missing_code(self, client, auth_flow, session_store):
        _, state = auth_flow.begin_auth()

        response = client.get("/api/oauth2callback", params={"state": state})

        assert response.status_code == 400
        assert response.json() == {"error": "Missing authorization code"}
        assert "set-cookie" not in response.headers

    def test_callback_bad_code(self, client, auth_flow, session_store):
        _, state = auth_flow.begin_auth()

        response = client.get("/api/oauth2callback", params={"code": "stale-code", "state": state})

        assert response.status_code == 500
        assert "Token exchange failed" in response.json()["error"]
        assert len(session_store) == 0

    def test_callback_google_error(self, client):
        """The user pressed "Cancel" on the consent screen."""
        response = client.get("/api/oauth2callback", params={"error": "access_denied"})

        assert response.status_code == 400
        assert "access_denied" in response.json()["error"]

    def test_user(self, client, signed_in, spreadsheet_id):
        response = client.get("/api/user")

        assert response.status_code == 200
        assert response.json() == {
            "userId": "1098",
            "email": "jane@acme.com",
            "name": "Jane Doe",
            "picture": "https://example.com/jane.png",
            "spreadsheetId": spreadsheet_id,
        }

    def test_user_unauthenticated(self, client):
        response = client.get("/api/user")

        assert response.status_code == 401
        assert response.json() == {"error": "Not authenticated. Please sign in."}

    def test_logout(self, client, signed_in, session_store, fake_google):
        response = client.post("/api/logout")

        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert 'sessionId=""' in response.headers["set-cookie"]
        assert session_store.get(signed_in) is None
        assert fake_google.revoked == ["ya29.current"]

    def test_logout_without_session(self, client):
        response = client.post("/api/logout")

        assert response.status_code == 200

    def test_expired_token_refreshed_transparently(self, client, session_store, spreadsheet_id, fake_google, build_session):
        """A request with an expired access token refreshes it first."""
        ref = session_store.create(build_session(spreadsheet_id=spreadsheet_id, expires_in=-60))
        client.cookies.set("sessionId", ref)

        response = client.get("/api/list-cards")

        assert response.status_code == 200
        assert session_store.get(ref).tokens.access_token == "ya29.fresh"
        assert fake_google.requests[-1].headers["Authorization"] == "Bearer ya29.fresh"

    def test_refresh_failure_is_401(self, client, session_store, spreadsheet_id, build_session):
        ref = session_store.create(
            build_session(spreadsheet_id=spreadsheet_id, refresh_token="revoked", expires_in=-60)
        )
        client.cookies.set("sessionId", ref)

        response = client.get("/api/list-cards")

        assert response.status_code == 401
        assert response.json() == {"error": "Session expired. Please sign in again."}


class TestUnauthenticated:
    """Card endpoints that need a session never reach Google without one."""

    @pytest.mark.parametrize("method, path, body", [
        ("post", "/api/save-to-sheets", {"cards": [{"data": JANE}]}),
        ("get", "/api/list-cards", None),
        ("post", "/api/add-to-contacts", {"cardData": JANE}),
    ])
    def test_requires_session(self, client, fake_google, method, path, body):
        kwargs = {"json": body} if body is not None else {}

        response = getattr(client, method)(path, **kwargs)

        assert response.status_code == 401
        assert response.json() == {"error": "Not authenticated. Please sign in."}
        assert fake_google.requests == []

    def test_unknown_cookie(self, client, fake_google):
        client.cookies.set("sessionId", "forged")

        response = client.get("/api/list-cards")

        assert response.status_code == 401


class TestSaveToSheets:
    """Tests for POST /api/save-to-sheets."""

    def test_saves_one_card(self, client, signed_in, spreadsheet_id, fake_google):
        response = client.post(
            "/api/save-to-sheets",
            json={"cards": [{"data": JANE, "timestamp": "2024-01-01T00:00:00Z"}]},
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Saved 1 card to Google Sheets",
            "spreadsheetId": spreadsheet_id,
        }
        assert fake_google.rows(spreadsheet_id)[1] == [
            "Jane Doe", "Acme", "", "jane@acme.com", "", "", "", "", "2024-01-01T00:00:00Z",
        ]

    def test_saves_several_in_order(self, client, signed_in, spreadsheet_id, fake_google):
        cards = [{"data": {"name": name}} for name in ("A", "B", "C")]

        response = client.post("/api/save-to-sheets", json={"cards": cards})

        assert response.json()["message"] == "Saved 3 cards to Google Sheets"
        assert [row[0] for row in fake_google.rows(spreadsheet_id)[1:]] == ["A", "B", "C"]

    @pytest.mark.parametrize("links", [5, True])
    def test_scalar_social_links_saved_blank(self, client, signed_in, spreadsheet_id, fake_google, links):
        response = client.post(
            "/api/save-to-sheets",
            json={"cards": [{"data": {"name": "Jane Doe", "social_links": links}}]},
        )

        assert response.status_code == 200
        row = fake_google.rows(spreadsheet_id)[1]
        assert row[0] == "Jane Doe"
        assert row[7] == ""

    def test_no_cards(self, client, signed_in, fake_google):
        response = client.post("/api/save-to-sheets", json={"cards": []})

        assert response.status_code == 400
        assert response.json() == {"error": "No cards provided"}

    def test_session_without_spreadsheet(self, client, session_store, fake_google, build_session):
        ref = session_store.create(build_session(spreadsheet_id=None))
        client.cookies.set("sessionId", ref)

        response = client.post("/api/save-to-sheets", json={"cards": [{"data": JANE}]})

        assert response.status_code == 500
        assert response.json() == {"error": "User spreadsheet not found"}

    def test_sheets_error(self, client, signed_in, fake_google):
        fake_google.fail("POST", ":append", status=403, message="The caller does not have permission")

        response = client.post("/api/save-to-sheets", json={"cards": [{"data": JANE}]})

        assert response.status_code == 500
        assert response.json() == {"error": "The caller does not have permission"}

    def test_service_account_not_configured(self, client, signed_in, monkeypatch):
        """Shared-sheet mode without GOOGLE_SHEET_ID fails cleanly."""
        monkeypatch.setattr(settings, "SHEETS_AUTH_MODE", "service_account")

        response = client.post("/api/save-to-sheets", json={"cards": [{"data": JANE}]})

        assert response.status_code == 500
        assert response.json() == {"error": "Google Sheets credentials not configured"}


class TestListCards:
    """Tests for GET /api/list-cards."""

    def test_empty_sheet(self, client, signed_in):
        response = client.get("/api/list-cards")

        assert response.status_code == 200
        assert response.json() == {"success": True, "cards": [], "total": 0}

    def test_lists_saved_cards(self, client, signed_in):
        client.post(
            "/api/save-to-sheets",
            json={"cards": [{"data": JANE, "timestamp": "2024-01-01T00:00:00Z"}]},
        )

        body = client.get("/api/list-cards").json()

        assert body["total"] == 1
        [card] = body["cards"]
        assert card["id"] == "sheet-0"
        assert card["data"]["name"] == "Jane Doe"
        assert card["data"]["job_title"] == ""
        assert card["data"]["social_links"] == []
        assert card["timestamp"] == "2024-01-01T00:00:00Z"


class TestAddToContacts:
    """Tests for POST /api/add-to-contacts."""

    def test_adds_contact(self, client, signed_in, fake_google):
        response = client.post("/api/add-to-contacts", json={"cardData": JANE})

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Contact added to Google Contacts",
            "contactId": "people/c1",
        }
        assert fake_google.contacts[0]["names"][0]["familyName"] == "Acme"

    def test_people_error(self, client, signed_in, fake_google):
        fake_google.fail("POST", "people:createContact", status=403, message="Contacts scope missing")

        response = client.post("/api/add-to-contacts", json={"cardData": JANE})

        assert response.status_code == 500
        assert response.json() == {"error": "Contacts scope missing"}


class TestExtractCardInfo:
    """Tests for POST /api/extract-card-info."""

    def test_extracts(self, client, vision_provider):
        response = client.post("/api/extract-card-info", json={"imageBase64": IMAGE_B64, "mimeType": "image/png"})

        assert response.status_code == 200
        body = response.json()
        assert body["parsed"] is True
        assert body["data"]["name"] == "Jane Doe"
        assert body["data"]["job_title"] == "CTO"
        assert vision_provider.calls[0]["mime_type"] == "image/png"

    def test_no_session_needed(self, client):
        """Scanning works before sign-in."""
        response = client.post("/api/extract-card-info", json={"imageBase64": IMAGE_B64})

        assert response.status_code == 200

    def test_unparsable_answer(self, client, make_vision_provider):
        provider = make_vision_provider(content="Sorry, I cannot read this card.")
        app.dependency_overrides[get_card_extraction] = lambda: CardExtractionService(provider=provider)

        response = client.post("/api/extract-card-info", json={"imageBase64": IMAGE_B64})

        assert response.status_code == 200
        assert response.json()["parsed"] is False
        assert response.json()["data"]["name"] == ""

    @pytest.mark.parametrize("links", ["5", "false"])
    def test_scalar_social_links_answer(self, client, make_vision_provider, links):
        """A malformed social_links value still returns the rest of the card."""
        provider = make_vision_provider(content='{"name": "Jane Doe", "social_links": %s}' % links)
        app.dependency_overrides[get_card_extraction] = lambda: CardExtractionService(provider=provider)

        response = client.post("/api/extract-card-info", json={"imageBase64": IMAGE_B64})

        assert response.status_code == 200
        assert response.json()["parsed"] is True
        assert response.json()["data"]["name"] == "Jane Doe"
        assert response.json()["data"]["social_links"] == []

    def test_missing_image(self, client):
        response = client.post("/api/extract-card-info", json={})

        assert response.status_code == 400
        assert response.json() == {"error": "Image data is required"}

    def test_bad_base64(self, client):
        response = client.post("/api/extract-card-info", json={"imageBase64": "%%%"})

        assert response.status_code == 400
        assert response.json() == {"error": "Image data is not valid base64"}

    def test_provider_failure(self, client, make_vision_provider):
        provider = make_vision_provider(success=False, error="Failed to process image with Gemini")
        app.dependency_overrides[get_card_extraction] = lambda: CardExtractionService(provider=provider)

        response = client.post("/api/extract-card-info", json={"imageBase64": IMAGE_B64})

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to process image with Gemini"}

    def test_not_configured(self, client, make_vision_provider):
        provider = make_vision_provider(configured=False)
        app.dependency_overrides[get_card_extraction] = lambda: CardExtractionService(provider=provider)

        response = client.post("/api/extract-card-info", json={"imageBase64": IMAGE_B64})

        assert response.status_code == 503
        assert response.json() == {"error": "Gemini API key not configured"}
