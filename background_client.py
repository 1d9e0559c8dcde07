"""
BackgroundClient - photo backgrounds from a hosted text-to-image model.

Sends the user's prompt to the Hugging Face inference API (FLUX.1-schnell)
with a fixed realism suffix and negative prompt, and returns the image as a
PNG data URL ready to be used as the composer background.
"""

import os
import base64
import logging
import random
from dataclasses import dataclass
from typing import Optional

import httpx

from errors import ConfigurationError, InvalidRequestError, UpstreamServiceError

logger = logging.getLogger(__name__)

HF_MODEL = "black-forest-labs/FLUX.1-schnell"
HF_API_URL = "https://api-inference.huggingface.co/models/{model}"

DEFAULT_WIDTH = 960
DEFAULT_HEIGHT = 1200
MAX_SEED = 1_000_000

REALISM_SUFFIX = "hyperrealistic photo, realistic vision, ultra detailed, sharp focus, cinematic lighting"

NEGATIVE_PROMPT = ", ".join([
    "text, watermark, logo, caption, subtitles",
    "cartoon, illustration, anime, painting, cgi",
    "distorted hands or fingers, extra limbs, blurry, lowres, low quality",
])

NUM_INFERENCE_STEPS = 28
GUIDANCE_SCALE = 3.5


@dataclass
class GeneratedBackground:
    """A generated background image."""
    data_url: str
    seed: int
    width: int
    height: int


def build_prompt(prompt: str, width: int, height: int) -> str:
    return ", ".join([prompt, REALISM_SUFFIX, f"{width}x{height}"])


def _error_detail(response: httpx.Response) -> Optional[str]:
    try:
        detail = response.json()
    except ValueError:
        return None
    if isinstance(detail, dict):
        error = detail.get("error")
        if isinstance(error, list):
            return "; ".join(str(e) for e in error)
        return str(error) if error else None
    return None


class BackgroundClient:
    """
    Client for the hosted text-to-image model.

    The token comes from HF_TOKEN (or HUGGINGFACE_TOKEN); without it every
    call fails with ConfigurationError before any request is sent.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        model: str = HF_MODEL,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 120.0,
        rng: Optional[random.Random] = None
    ):
        """
        Initialize background client.

        Args:
            token: Hugging Face token (default from env)
            model: Model id on the inference API
            client: Pre-built httpx client, mainly for tests
            timeout: Request timeout in seconds
            rng: Random source for seeds
        """
        self.token = token or os.getenv("HF_TOKEN") or os.getenv("HUGGINGFACE_TOKEN") or ""
        self.model = model
        self.timeout = timeout
        self._client = client
        self._rng = rng or random.Random()

    @property
    def url(self) -> str:
        return HF_API_URL.format(model=self.model)

    def is_available(self) -> bool:
        return bool(self.token)

    async def generate(
        self,
        prompt: str,
        width: int = DEFAULT_WIDTH,
        height: int = DEFAULT_HEIGHT,
        seed: Optional[int] = None
    ) -> GeneratedBackground:
        """
        Generate a background image.

        Args:
            prompt: Scene description
            width: Output width in pixels
            height: Output height in pixels
            seed: Fixed seed; random in [0, 1e6) when omitted

        Returns:
            GeneratedBackground with a PNG data URL

        Raises:
            ConfigurationError: No token configured
            InvalidRequestError: Empty prompt
            UpstreamServiceError: The inference API failed
        """
        if not self.token:
            raise ConfigurationError("HF_TOKEN is not set")

        prompt = (prompt or "").strip()
        if not prompt:
            raise InvalidRequestError("prompt is required")

        if seed is None:
            seed = self._rng.randrange(MAX_SEED)

        payload = {
            "inputs": build_prompt(prompt, width, height),
            "parameters": {
                "negative_prompt": NEGATIVE_PROMPT,
                "width": width,
                "height": height,
                "num_inference_steps": NUM_INFERENCE_STEPS,
                "guidance_scale": GUIDANCE_SCALE,
                "seed": seed,
            },
        }
        headers = {
            "Authorization": f"Bearer {self.token}",
            "Accept": "image/png",
        }

        logger.info(f"Generating background: {width}x{height}, seed={seed}")

        try:
            if self._client is not None:
                response = await self._client.post(self.url, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Background request failed: {e}")
            raise UpstreamServiceError(f"HF request failed: {e}")

        if response.status_code >= 400:
            message = _error_detail(response) or f"HF error {response.status_code}"
            logger.error(f"Background generation failed: {message}")
            raise UpstreamServiceError(message)

        encoded = base64.b64encode(response.content).decode("ascii")
        logger.info(f"Background generated: {len(response.content)} bytes")

        return GeneratedBackground(
            data_url=f"data:image/png;base64,{encoded}",
            seed=seed,
            width=width,
            height=height
        )
