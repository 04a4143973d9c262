"""
Prompts Module - Centralized prompt templates for AI interactions.

Keeping prompts centralized makes them easy to update and keeps the
extraction service free of prompt text.
"""

from cardscan.ai.prompts.card_prompts import (
    CARD_EXTRACTION_PROMPT,
    CARD_EXTRACTION_TEMPERATURE,
    CARD_EXTRACTION_MAX_TOKENS,
)

__all__ = [
    "CARD_EXTRACTION_PROMPT",
    "CARD_EXTRACTION_TEMPERATURE",
    "CARD_EXTRACTION_MAX_TOKENS",
]
