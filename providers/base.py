"""
Base text-generation provider interface.

Abstract base class for the providers behind caption rewriting
(OpenAI-compatible gateway, Gemini SDK).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class GenerationConfig:
    """Configuration for text generation."""
    temperature: float = 0.8
    top_p: float = 0.95
    max_tokens: int = 1024


@dataclass
class LLMResponse:
    """Unified response from providers."""
    text: str
    model_used: str
    provider: str
    tokens_used: Optional[int] = None
    error: Optional[str] = None


class LLMProvider(ABC):
    """
    Abstract base class for text providers.

    Providers never raise for upstream failures; they return an
    LLMResponse with `error` set so the router can fail over.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name for logging."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if provider is configured (credentials present)."""

    @property
    @abstractmethod
    def default_model(self) -> str:
        """Model used when the caller does not pick one."""

    @abstractmethod
    async def generate_text(
        self,
        prompt: str,
        model: Optional[str] = None,
        config: Optional[GenerationConfig] = None
    ) -> LLMResponse:
        """
        Generate text response from prompt.

        Args:
            prompt: Text prompt
            model: Optional model override
            config: Generation configuration

        Returns:
            LLMResponse with generated text
        """
