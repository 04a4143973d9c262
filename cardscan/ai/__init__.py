"""
AI Module - card reading with a vision model.

Module Structure:
================
- providers/: AI provider clients (Gemini)
- prompts/: Prompt templates for card extraction

Flow:
=====
1. Browser sends a base64 card photo to /api/extract-card-info
2. Card extraction service sends photo + prompt to the provider
3. The text answer is parsed into CardData (or left blank for the user)
"""

from cardscan.ai.providers import AIProvider, AIResponse, GeminiProvider, gemini_provider

__all__ = [
    "AIProvider",
    "AIResponse",
    "GeminiProvider",
    "gemini_provider",
]
