"""
Cards Router - scan, save, list and export business cards.

Endpoints:
==========
- POST /api/extract-card-info → Read a card photo with Gemini
- POST /api/save-to-sheets    → Append cards to the user's spreadsheet
- GET  /api/list-cards        → Read every saved card back
- POST /api/add-to-contacts   → Save one card as a Google contact

Everything except extract-card-info needs a signed-in session. Errors are
raised as domain exceptions and rendered by the handlers in main.py.
"""

import logging

from fastapi import APIRouter, Depends

from cardscan.core.config import settings
from cardscan.deps import (
    AuthenticatedSession,
    get_card_extraction,
    get_contact_export,
    get_current_session,
    get_service_account_sync,
    get_spreadsheet_sync,
)
from cardscan.schemas.api import (
    AddToContactsRequest,
    AddToContactsResponse,
    ExtractCardRequest,
    ExtractCardResponse,
    ListCardsResponse,
    SaveToSheetsRequest,
    SaveToSheetsResponse,
)
from cardscan.services.card_extraction import CardExtractionService, decode_image
from cardscan.services.contact_export import ContactExportService
from cardscan.services.spreadsheet_sync import ServiceAccountSheetSync, SpreadsheetSyncService


logger = logging.getLogger("cardscan.routers.cards")


router = APIRouter(prefix="/api", tags=["cards"])


def saved_cards_message(count: int) -> str:
    """'Saved 1 card to Google Sheets' / 'Saved 3 cards to Google Sheets'."""
    return f"Saved {count} card{'' if count == 1 else 's'} to Google Sheets"


def _uses_service_account() -> bool:
    return settings.SHEETS_AUTH_MODE == "service_account"


@router.post("/extract-card-info", response_model=ExtractCardResponse)
async def extract_card_info(
    body: ExtractCardRequest,
    extraction: CardExtractionService = Depends(get_card_extraction),
):
    """
    Extract card fields from a base64 image.

    A reply the model wrote but that holds no parsable card is not an
    error: data comes back blank and parsed is false.
    """
    image_bytes, mime_type = decode_image(body.image_base64, body.mime_type)
    result = await extraction.extract(image_bytes, mime_type)
    return ExtractCardResponse(data=result.card, parsed=result.parsed)


@router.post("/save-to-sheets", response_model=SaveToSheetsResponse)
async def save_to_sheets(
    body: SaveToSheetsRequest,
    current: AuthenticatedSession = Depends(get_current_session),
    sync: SpreadsheetSyncService = Depends(get_spreadsheet_sync),
    shared_sync: ServiceAccountSheetSync = Depends(get_service_account_sync),
):
    """
    Append the cards as rows, in the order given.

    Returns:
        {success, message, spreadsheetId}
    """
    session = current.session

    if _uses_service_account():
        count = await shared_sync.append_rows(body.cards)
        spreadsheet_id = shared_sync.spreadsheet_id
    else:
        spreadsheet_id = session.spreadsheet_id
        count = await sync.append_rows(session.tokens.access_token, spreadsheet_id, body.cards)

    logger.info(
        f"Saved {count} card(s) for user {session.user_id}",
        extra={"spreadsheet_id": spreadsheet_id},
    )
    return SaveToSheetsResponse(
        message=saved_cards_message(count),
        spreadsheetId=spreadsheet_id,
    )


@router.get("/list-cards", response_model=ListCardsResponse)
async def list_cards(
    current: AuthenticatedSession = Depends(get_current_session),
    sync: SpreadsheetSyncService = Depends(get_spreadsheet_sync),
    shared_sync: ServiceAccountSheetSync = Depends(get_service_account_sync),
):
    """
    Read every saved card (header row excluded).

    Returns:
        {success, cards, total}
    """
    if _uses_service_account():
        cards = await shared_sync.read_all_rows()
    else:
        session = current.session
        cards = await sync.read_all_rows(session.tokens.access_token, session.spreadsheet_id)

    return ListCardsResponse(cards=cards, total=len(cards))


@router.post("/add-to-contacts", response_model=AddToContactsResponse)
async def add_to_contacts(
    body: AddToContactsRequest,
    current: AuthenticatedSession = Depends(get_current_session),
    contacts: ContactExportService = Depends(get_contact_export),
):
    """
    Create a Google contact from one card.

    Returns:
        {success, message, contactId}
    """
    resource_name = await contacts.add_contact(current.session, body.card_data)
    return AddToContactsResponse(contactId=resource_name)
