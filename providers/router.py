"""
Provider Router - Automatic Failover Between Caption Providers

Routes requests to the gateway (primary) with automatic fallback to Gemini.
"""

import logging
from typing import Optional

from .base import LLMProvider, GenerationConfig, LLMResponse
from .gateway_provider import GatewayProvider
from .gemini_provider import GeminiProvider

logger = logging.getLogger(__name__)


class ProviderRouter:
    """
    Routes text requests with automatic failover.

    Primary: OpenAI-compatible gateway
    Fallback: Direct Gemini SDK

    After `failure_threshold` consecutive primary failures the primary is
    skipped until `reset_primary()` is called.
    """

    def __init__(
        self,
        primary: Optional[LLMProvider] = None,
        fallback: Optional[LLMProvider] = None,
        failure_threshold: int = 3
    ):
        self.primary = primary or GatewayProvider()
        self.fallback = fallback or GeminiProvider()

        self._primary_failures = 0
        self._primary_failure_threshold = failure_threshold
        self._primary_disabled = False

        logger.info(f"ProviderRouter initialized: primary={self.primary.name}, fallback={self.fallback.name}")

    def reset_primary(self):
        self._primary_failures = 0
        self._primary_disabled = False
        logger.info("Primary provider reset")

    def _record_primary_failure(self):
        self._primary_failures += 1
        if self._primary_failures >= self._primary_failure_threshold:
            self._primary_disabled = True
            logger.warning(f"Primary provider disabled after {self._primary_failures} failures")

    def is_available(self) -> bool:
        """True if at least one provider has credentials."""
        return self.primary.is_available() or self.fallback.is_available()

    async def generate_text(
        self,
        prompt: str,
        config: Optional[GenerationConfig] = None
    ) -> LLMResponse:
        """
        Generate text with automatic failover.

        Returns:
            LLMResponse from whichever provider succeeds, or the last error
        """
        response: Optional[LLMResponse] = None

        if not self._primary_disabled and self.primary.is_available():
            logger.info(f"Trying primary ({self.primary.name})")
            response = await self.primary.generate_text(prompt, config=config)

            if not response.error:
                self._primary_failures = 0
                return response

            logger.warning(f"Primary failed: {response.error}")
            self._record_primary_failure()

        if self.fallback.is_available():
            logger.info(f"Falling back to {self.fallback.name}")
            return await self.fallback.generate_text(prompt, config=config)

        if response is not None:
            return response

        return LLMResponse(
            text="",
            model_used="none",
            provider="none",
            error="all_providers_unavailable"
        )


# Global router instance (lazy initialization)
_router: Optional[ProviderRouter] = None


def get_router() -> ProviderRouter:
    """Get or create the global provider router."""
    global _router
    if _router is None:
        _router = ProviderRouter()
    return _router
