"""
Gateway Provider - primary caption provider.

Talks to any OpenAI-compatible chat-completions gateway configured through
CAPTION_GATEWAY_BASE_URL / CAPTION_GATEWAY_API_KEY.
"""

import os
import logging
from typing import Optional

from openai import AsyncOpenAI
from openai import APIError, APIConnectionError, RateLimitError

from .base import LLMProvider, GenerationConfig, LLMResponse

logger = logging.getLogger(__name__)

DEFAULT_GATEWAY_MODEL = "gemini-2.5-flash"


class GatewayProvider(LLMProvider):
    """Primary provider using an OpenAI-compatible gateway."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None
    ):
        """
        Initialize gateway provider.

        Args:
            base_url: Gateway base URL (default from env)
            api_key: API key (default from env)
            model: Chat model (default from env)
            client: Pre-built client, mainly for tests
        """
        self.base_url = base_url or os.getenv("CAPTION_GATEWAY_BASE_URL", "")
        self.api_key = api_key or os.getenv("CAPTION_GATEWAY_API_KEY", "")
        self.model = model or os.getenv("CAPTION_GATEWAY_MODEL", DEFAULT_GATEWAY_MODEL)
        self._client = client

        logger.info(f"GatewayProvider initialized with base_url={self.base_url or '<unset>'}")

    @property
    def name(self) -> str:
        return "gateway"

    @property
    def default_model(self) -> str:
        return self.model

    @property
    def client(self) -> AsyncOpenAI:
        """Lazy initialization of OpenAI client."""
        if self._client is None:
            self._client = AsyncOpenAI(
                base_url=self.base_url,
                api_key=self.api_key
            )
        return self._client

    def is_available(self) -> bool:
        return bool(self.base_url and self.api_key)

    def _failure(self, model_name: str, error: str) -> LLMResponse:
        return LLMResponse(text="", model_used=model_name, provider=self.name, error=error)

    async def generate_text(
        self,
        prompt: str,
        model: Optional[str] = None,
        config: Optional[GenerationConfig] = None
    ) -> LLMResponse:
        if config is None:
            config = GenerationConfig()

        model_name = model or self.default_model

        try:
            logger.info(f"Gateway generate_text: model={model_name}")

            response = await self.client.chat.completions.create(
                model=model_name,
                messages=[{"role": "user", "content": prompt}],
                temperature=config.temperature,
                top_p=config.top_p,
                max_tokens=config.max_tokens,
            )

            text = (response.choices[0].message.content or "").strip()
            tokens = response.usage.total_tokens if response.usage else None

            if not text:
                return self._failure(model_name, "empty_response")

            logger.info(f"Gateway success: {len(text)} chars, {tokens} tokens")
            return LLMResponse(
                text=text,
                model_used=model_name,
                provider=self.name,
                tokens_used=tokens
            )

        except RateLimitError as e:
            logger.warning(f"Gateway rate limit: {e}")
            return self._failure(model_name, f"rate_limit: {e}")

        except APIConnectionError as e:
            logger.error(f"Gateway connection error: {e}")
            return self._failure(model_name, f"connection_error: {e}")

        except APIError as e:
            logger.error(f"Gateway API error: {e}")
            return self._failure(model_name, f"api_error: {e}")
