"""
Gemini Provider - Google's GenAI SDK.

Sends a card photo plus the extraction instruction to a Gemini vision
model and returns the raw text answer.
"""

import asyncio
import time
import logging
from typing import Optional

from google import genai
from google.genai import types

from cardscan.core.config import settings
from cardscan.ai.providers.base import (
    AIProvider,
    AIResponse,
    ProviderType,
    TokenUsage
)

logger = logging.getLogger("cardscan.ai.gemini")


class GeminiProvider(AIProvider):
    provider_type = ProviderType.GEMINI

    def __init__(self, model: str = None, api_key: str = None, timeout: float = None):
        self.model = model or settings.GEMINI_MODEL
        self.api_key = api_key or settings.GEMINI_API_KEY
        self.timeout = timeout if timeout is not None else settings.AI_REQUEST_TIMEOUT

        if self.api_key:
            self._client = genai.Client(api_key=self.api_key)
            logger.info(f"Gemini provider initialized with model: {self.model}")
        else:
            self._client = None
            logger.warning("Gemini API key not configured")

    @property
    def is_configured(self) -> bool:
        return self._client is not None

    async def generate_from_image(
        self,
        image_bytes: bytes,
        mime_type: str,
        prompt: str,
        temperature: float = 0.1,
        max_tokens: int = 2048,
        **kwargs
    ) -> AIResponse:
        start_time = time.time()

        if not self._client:
            return self._error("API key missing", start_time)

        try:
            config = types.GenerateContentConfig(
                temperature=temperature,
                max_output_tokens=max_tokens,
                top_k=kwargs.get("top_k", 32),
                top_p=kwargs.get("top_p", 1.0),
            )

            # Instruction first, then the image
            contents = [
                prompt,
                types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
            ]

            response = await asyncio.wait_for(
                self._client.aio.models.generate_content(
                    model=self.model,
                    contents=contents,
                    config=config,
                ),
                timeout=self.timeout,
            )

            latency_ms = self._measure_latency(start_time)
            usage = self._extract_usage(response)

            return AIResponse(
                content=response.text or "",
                provider=self.provider_type,
                model=self.model,
                usage=usage,
                latency_ms=latency_ms,
                success=True,
                raw_response=response,
            )

        except asyncio.TimeoutError:
            return self._error(f"Gemini request timed out after {self.timeout}s", start_time)
        except Exception as e:
            logger.error(f"Gemini generation failed: {e}")
            return self._error(str(e), start_time)

    def _extract_usage(self, response):
        # usage_metadata can be None when nothing is reported
        prompt_t = response.usage_metadata.prompt_token_count if response.usage_metadata else 0
        comp_t = response.usage_metadata.candidates_token_count if response.usage_metadata else 0
        return TokenUsage(prompt_tokens=prompt_t or 0, completion_tokens=comp_t or 0)

    def _error(self, msg, start_time):
        return self._create_error_response(
            error=msg, model=self.model, latency_ms=self._measure_latency(start_time)
        )


# Singleton instance
gemini_provider = GeminiProvider()
