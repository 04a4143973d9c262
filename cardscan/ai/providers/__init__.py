"""
AI Providers Module - vision model clients.

Each provider has the same interface:
    response = await provider.generate_from_image(image_bytes, mime_type, prompt)

Only Gemini is wired up; the card extraction service depends on AIProvider,
not on the Gemini SDK.
"""

from cardscan.ai.providers.base import AIProvider, AIResponse, ProviderType, TokenUsage
from cardscan.ai.providers.gemini import GeminiProvider, gemini_provider

__all__ = [
    "AIProvider",
    "AIResponse",
    "ProviderType",
    "TokenUsage",
    "GeminiProvider",
    "gemini_provider",
]
