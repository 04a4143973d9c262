"""
API schemas - request bodies and responses of the /api endpoints.

Key names follow the browser front end (camelCase at the top level,
snake_case inside card data).
"""

from typing import List, Optional

from pydantic import AliasChoices, BaseModel, Field

from cardscan.schemas.card import CardData, CardRecord


# ---------------------------------------------------------------------------
# REQUESTS
# ---------------------------------------------------------------------------

class SaveToSheetsRequest(BaseModel):
    """
    Body of POST /api/save-to-sheets.

    Example:
    {"cards": [{"data": {"name": "Jane Doe", "company": "Acme"}, "timestamp": ""}]}
    """
    cards: List[CardRecord] = Field(default_factory=list)


class AddToContactsRequest(BaseModel):
    """Body of POST /api/add-to-contacts."""
    card_data: CardData = Field(validation_alias=AliasChoices("cardData", "card_data"))


class ExtractCardRequest(BaseModel):
    """
    Body of POST /api/extract-card-info.

    imageBase64 may be bare base64 or a data URL.
    """
    image_base64: Optional[str] = Field(None, validation_alias=AliasChoices("imageBase64", "image_base64"))
    mime_type: Optional[str] = Field(None, validation_alias=AliasChoices("mimeType", "mime_type"))


# ---------------------------------------------------------------------------
# RESPONSES
# ---------------------------------------------------------------------------

class SaveToSheetsResponse(BaseModel):
    success: bool = True
    message: str
    spreadsheetId: Optional[str] = None


class ListCardsResponse(BaseModel):
    success: bool = True
    cards: List[CardRecord]
    total: int


class AddToContactsResponse(BaseModel):
    success: bool = True
    message: str = "Contact added to Google Contacts"
    contactId: str


class ExtractCardResponse(BaseModel):
    """data is always a full card; parsed tells the UI whether it is blank on purpose."""
    data: CardData
    parsed: bool


class LogoutResponse(BaseModel):
    success: bool = True


class HealthResponse(BaseModel):
    status: str = "ok"
