"""
Card schemas - the structured fields extracted from one business card.

CardData is what the model extracts and what the user edits in the UI.
CardRecord wraps it with the capture timestamp (and, for rows read back from
the spreadsheet, a synthetic id). One CardRecord is one spreadsheet row.

Wire format (shared with the browser front end):
{
    "id": "sheet-0",
    "data": {
        "name": "Jane Doe",
        "company": "Acme",
        "job_title": "CTO",
        "email": "jane@acme.com",
        "phone": "+1 555 0100",
        "website": "acme.com",
        "address": "1 Main St",
        "social_links": ["linkedin.com/in/jane"]
    },
    "timestamp": "2024-01-01T00:00:00Z"
}
"""

from typing import List, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator


# Scalar text fields in column order (social_links and timestamp follow)
TEXT_FIELDS = ("name", "company", "job_title", "email", "phone", "website", "address")


class CardData(BaseModel):
    """
    Fields extracted from a business card.

    Every text field defaults to "" and None is coerced to "", so a card
    always has the full shape even when the model left fields out.
    `jobTitle` / `socialLinks` are accepted as input spellings.
    """
    name: str = ""
    company: str = ""
    job_title: str = Field(default="", validation_alias=AliasChoices("job_title", "jobTitle"))
    email: str = ""
    phone: str = ""
    website: str = ""
    address: str = ""
    social_links: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("social_links", "socialLinks"),
    )

    @field_validator(*TEXT_FIELDS, mode="before")
    @classmethod
    def _coerce_text(cls, value):
        if value is None:
            return ""
        if isinstance(value, (list, tuple)):
            return ", ".join(str(item) for item in value if item)
        return str(value)

    @field_validator("social_links", mode="before")
    @classmethod
    def _coerce_links(cls, value):
        if value is None or value == "":
            return []
        if isinstance(value, str):
            return [link.strip() for link in value.split(",") if link.strip()]
        # {"linkedin": "linkedin.com/in/jane"} keeps the urls
        if isinstance(value, dict):
            value = list(value.values())
        if isinstance(value, (list, tuple)):
            return [str(link) for link in value if link]
        return []

    def is_empty(self) -> bool:
        """True when extraction produced nothing the user could keep."""
        return not any(getattr(self, name) for name in TEXT_FIELDS) and not self.social_links


class CardRecord(BaseModel):
    """One scanned card as stored in (or read from) the spreadsheet."""
    id: Optional[str] = None
    data: CardData = Field(default_factory=CardData)
    timestamp: str = ""

    @field_validator("timestamp", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value):
        return "" if value is None else str(value)
