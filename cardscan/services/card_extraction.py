"""
Card extraction service - business card photo in, CardData out.

The model's answer is free text that usually contains a JSON object.
Parsing is deliberately forgiving:

1. Strip a ```json ... ``` fence if present
2. Take the first "{" through the last "}"
3. json.loads, then validate into CardData

If any step fails the result is "unparsed": the caller still gets an
all-blank card for the user to fill in, plus the raw text for logging.
Only a failed provider call (network, quota, timeout) raises.
"""

import base64
import binascii
import json
import logging
import re
from dataclasses import dataclass
from typing import Optional, Tuple

from pydantic import ValidationError

from cardscan.ai.prompts import (
    CARD_EXTRACTION_MAX_TOKENS,
    CARD_EXTRACTION_PROMPT,
    CARD_EXTRACTION_TEMPERATURE,
)
from cardscan.ai.providers import AIProvider, gemini_provider
from cardscan.environments.base import APIError, BadRequestError, EnvironmentError
from cardscan.schemas.card import CardData


logger = logging.getLogger("cardscan.extraction")


DEFAULT_MIME_TYPE = "image/jpeg"

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,", re.IGNORECASE)


# ---------------------------------------------------------------------------
# EXCEPTIONS
# ---------------------------------------------------------------------------


class ExtractionFailed(APIError):
    """The vision model call itself failed."""


class ExtractionNotConfigured(EnvironmentError):
    """No model API key is configured."""

    status_code = 503


# ---------------------------------------------------------------------------
# RESULT
# ---------------------------------------------------------------------------


@dataclass
class ExtractionResult:
    """
    Either a parsed card or the raw text the model returned.

    `card` is always usable: an unparsed result yields an all-blank CardData.
    """
    data: Optional[CardData] = None
    raw_text: str = ""

    @property
    def parsed(self) -> bool:
        return self.data is not None

    @property
    def card(self) -> CardData:
        return self.data if self.data is not None else CardData()

    @classmethod
    def unparsed(cls, raw_text: str) -> "ExtractionResult":
        return cls(data=None, raw_text=raw_text)


def parse_card_response(text: Optional[str]) -> ExtractionResult:
    """
    Parse a model answer into CardData. Never raises.

    >>> parse_card_response('```json\\n{"name": "Jane"}\\n```').card.name
    'Jane'
    >>> parse_card_response("no card here").parsed
    False
    """
    raw_text = text or ""
    candidate = raw_text

    fenced = _FENCE_RE.search(candidate)
    if fenced:
        candidate = fenced.group(1)

    match = _OBJECT_RE.search(candidate)
    if not match:
        return ExtractionResult.unparsed(raw_text)

    try:
        payload = json.loads(match.group(0))
    except ValueError:
        return ExtractionResult.unparsed(raw_text)

    if not isinstance(payload, dict):
        return ExtractionResult.unparsed(raw_text)

    try:
        return ExtractionResult(data=CardData.model_validate(payload), raw_text=raw_text)
    except (ValidationError, TypeError):
        return ExtractionResult.unparsed(raw_text)


def decode_image(image_base64: Optional[str], mime_type: Optional[str] = None) -> Tuple[bytes, str]:
    """
    Decode the browser's base64 image.

    A "data:<mime>;base64," prefix is accepted and its mime type wins over
    a missing mime_type.

    Raises:
        BadRequestError: If the image is missing or not valid base64
    """
    if not image_base64:
        raise BadRequestError("Image data is required")

    data = image_base64.strip()
    prefix = _DATA_URL_RE.match(data)
    if prefix:
        mime_type = mime_type or prefix.group("mime")
        data = data[prefix.end():]

    try:
        image_bytes = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError):
        raise BadRequestError("Image data is not valid base64")

    if not image_bytes:
        raise BadRequestError("Image data is required")

    return image_bytes, mime_type or DEFAULT_MIME_TYPE


class CardExtractionService:
    """Runs the extraction prompt against a vision provider."""

    def __init__(self, provider: Optional[AIProvider] = None):
        self.provider = provider or gemini_provider

    @property
    def is_configured(self) -> bool:
        return self.provider.is_configured

    async def extract(self, image_bytes: bytes, mime_type: str = DEFAULT_MIME_TYPE) -> ExtractionResult:
        """
        Extract card fields from one image.

        Raises:
            ExtractionNotConfigured: If the provider has no API key
            ExtractionFailed: If the provider call fails
        """
        if not self.is_configured:
            raise ExtractionNotConfigured("Gemini API key not configured")

        response = await self.provider.generate_from_image(
            image_bytes,
            mime_type,
            CARD_EXTRACTION_PROMPT,
            temperature=CARD_EXTRACTION_TEMPERATURE,
            max_tokens=CARD_EXTRACTION_MAX_TOKENS,
        )

        if not response.success:
            raise ExtractionFailed(response.error or "Failed to process image with Gemini")

        result = parse_card_response(response.content)
        if result.parsed:
            logger.info("Card extracted", extra=response.to_dict())
        else:
            logger.warning(
                "Model answer contained no parsable card",
                extra={"raw_text": result.raw_text[:200], "latency_ms": response.latency_ms},
            )
        return result


# Usage: from cardscan.services.card_extraction import card_extraction
card_extraction = CardExtractionService()
