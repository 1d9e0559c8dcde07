"""
Gemini Provider - fallback caption provider.

Direct Gemini SDK, used when the gateway is unavailable or failing.
Cycles through GEMINI_API_KEYS when a key runs out of quota.
"""

import os
import logging
from typing import List, Optional

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

from .base import LLMProvider, GenerationConfig, LLMResponse

logger = logging.getLogger(__name__)

DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"


def keys_from_env() -> List[str]:
    """GEMINI_API_KEYS (comma-separated) wins over a single GEMINI_API_KEY."""
    many = os.getenv("GEMINI_API_KEYS", "")
    if many:
        return [k.strip() for k in many.split(",") if k.strip()]
    one = os.getenv("GEMINI_API_KEY", "").strip()
    return [one] if one else []


class GeminiProvider(LLMProvider):
    """Caption provider on the Gemini SDK with per-key quota failover."""

    def __init__(self, api_keys: Optional[List[str]] = None, model: Optional[str] = None):
        """
        Args:
            api_keys: Gemini API keys (default from env)
            model: Model name (default GEMINI_MODEL or gemini-2.5-flash)
        """
        self.api_keys = keys_from_env() if api_keys is None else list(api_keys)
        self.model = model or os.getenv("GEMINI_MODEL", DEFAULT_GEMINI_MODEL)
        self._key_idx = 0

        logger.info(f"GeminiProvider ready with {len(self.api_keys)} key(s), model={self.model}")

    @property
    def name(self) -> str:
        return "gemini"

    @property
    def default_model(self) -> str:
        return self.model

    def is_available(self) -> bool:
        return bool(self.api_keys)

    def _next_key(self):
        self._key_idx = (self._key_idx + 1) % len(self.api_keys)
        logger.info(f"Switched to Gemini key #{self._key_idx}")

    def _failure(self, model_name: str, error: str) -> LLMResponse:
        return LLMResponse(text="", model_used=model_name, provider=self.name, error=error)

    async def generate_text(
        self,
        prompt: str,
        model: Optional[str] = None,
        config: Optional[GenerationConfig] = None
    ) -> LLMResponse:
        config = config or GenerationConfig()
        model_name = model or self.default_model
        last_error = "no_api_keys_available"

        # Each key gets one attempt per call
        for _ in self.api_keys:
            key = self.api_keys[self._key_idx]
            logger.info(f"Gemini generate_text: model={model_name}, key=...{key[-6:]}")

            try:
                genai.configure(api_key=key)
                reply = await genai.GenerativeModel(model_name).generate_content_async(
                    prompt,
                    generation_config={
                        "temperature": config.temperature,
                        "top_p": config.top_p,
                        "max_output_tokens": config.max_tokens,
                    }
                )
                text = (reply.text or "").strip()

            except google_exceptions.ResourceExhausted as e:
                logger.warning(f"Gemini quota exhausted on key #{self._key_idx}: {e}")
                last_error = f"rate_limit: {e}"
                self._next_key()
                continue

            except google_exceptions.GoogleAPIError as e:
                logger.error(f"Gemini API error: {e}")
                return self._failure(model_name, f"gemini_error: {e}")

            except ValueError as e:
                # reply.text raises when the candidate was blocked
                logger.warning(f"Gemini reply has no text: {e}")
                return self._failure(model_name, f"blocked: {e}")

            if not text:
                logger.warning("Gemini returned an empty reply")
                last_error = "empty_response"
                self._next_key()
                continue

            logger.info(f"Gemini success: {len(text)} chars")
            return LLMResponse(text=text, model_used=model_name, provider=self.name)

        return self._failure(model_name, last_error)
