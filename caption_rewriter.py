"""
CaptionRewriter - post caption text for the composed image.

Two ways to get a caption:
1. draft_caption(): offline template (hook, snippet, bullets, call to
   action, hashtags) built from the image text
2. CaptionRewriter.rewrite(): remote text-generation service via the
   provider router (gateway first, Gemini fallback)

Neither touches image state; failures are raised as ServiceErrors for the
API layer to report.
"""

import logging
import random
import re
from typing import List, Optional, TypeVar

from composer.session import DEFAULT_TEXT
from errors import ConfigurationError, UpstreamServiceError
from providers.base import GenerationConfig
from providers.router import ProviderRouter, get_router

logger = logging.getLogger(__name__)

DEFAULT_CAPTION = "แคปชั่นโพสต์ใหม่...."

SNIPPET_LIMIT = 180
MAX_BULLETS = 3
TAG_COUNT = 3

HOOK_THEMES = [
    "มุมมองใหม่",
    "บทเรียนสั้นๆ",
    "ทริกเล็กๆ แต่ทรงพลัง",
    "สรุปเข้าใจง่าย",
    "ไอเดียสร้างแรงบันดาลใจ",
    "ข้อคิดที่ใช้ได้จริง",
    "ประเด็นที่ไม่อยากให้พลาด",
    "สรุปมุมคิดแบบย่อยง่าย",
]

HOOK_TEMPLATES = [
    "✨ {theme} ที่อยากชวนอ่าน",
    "🔥 {theme} ต้องเล่าต่อ",
    "💡 {theme} อ่านแป๊บเดียว",
    "📌 {theme} เก็บไว้เป็นแรงบันดาลใจ",
    "⭐ {theme} สำหรับวันนี้",
    "🧭 {theme} สำหรับคนรีบอ่าน",
]

CTA_ACTIONS = [
    "ถ้าอินเหมือนกัน กดเซฟ/แชร์ไว้เลย",
    "เม้นคุยกัน บทเรียนนี้ใช้ได้ทุกวัน",
    "ส่งต่อให้คนที่ควรเห็นโพสต์นี้",
    "ใครมีมุมมอง ลองเม้นต่อยอดกัน",
    "เก็บไว้ก่อนโพสต์ ลองหยิบไปใช้ดู",
    "แปะไว้ในสตอรี่ ชวนเพื่อนอ่าน",
]

CTA_PROMPTS = [
    "อยากฟังประสบการณ์ของคุณ",
    "บอกหน่อยว่าเคยลองวิธีนี้ไหม",
    "แชร์ต่อช่วยกันขยายพลังดีๆ",
    "ใครชอบแนวนี้กดเซฟไว้",
    "เม้นสั้นๆ สิ่งที่ได้จากโพสต์นี้",
]

TAGS_POOL = [
    "#แชร์มุมคิด",
    "#แรงบันดาลใจ",
    "#เขียนให้อ่านง่าย",
    "#ชวนคุย",
    "#กำลังใจดีดี",
    "#บทเรียนชีวิต",
    "#สรุปสั้นๆ",
    "#มุมมองใหม่",
    "#คิดแล้วเล่า",
    "#เขียนสั้นอ่านง่าย",
    "#สายคอนเทนต์",
]

REWRITE_PROMPT = """You write Facebook post captions in Thai.

Rewrite the text below into an engaging caption for an image post:
- Open with a short hook line (one emoji allowed)
- Keep the original meaning; do not invent facts
- 2-4 short paragraphs, easy to read on a phone
- End with a soft call to action and 2-3 relevant Thai hashtags
- Reply with the caption only, no explanations or quotes

Text:
{text}
"""

T = TypeVar("T")


def _shuffled(items: List[T], rng: random.Random) -> List[T]:
    copy = list(items)
    rng.shuffle(copy)
    return copy


def draft_caption(raw: str, rng: Optional[random.Random] = None) -> str:
    """
    Build a caption from the image text without any remote service.

    Args:
        raw: Text shown on the image
        rng: Random source for hook/CTA/hashtag picks

    Returns:
        Caption with hook, snippet, bullets, call to action and hashtags
    """
    rng = rng or random.Random()
    normalized = raw.replace("\r", "").strip()
    if not normalized:
        return DEFAULT_CAPTION

    one_line = re.sub(r"\s+", " ", normalized)
    if len(one_line) > SNIPPET_LIMIT:
        snippet = f"{one_line[:SNIPPET_LIMIT].strip()}..."
    else:
        snippet = one_line

    lines = [ln.strip() for ln in normalized.split("\n") if ln.strip()]
    bullet_count = min(MAX_BULLETS, max(1, len(lines)))
    bullets = "\n".join(f"• {ln}" for ln in _shuffled(lines, rng)[:bullet_count])

    hook = rng.choice(HOOK_TEMPLATES).replace("{theme}", rng.choice(HOOK_THEMES))
    cta = f"{rng.choice(CTA_ACTIONS)} | {rng.choice(CTA_PROMPTS)}"
    tags = " ".join(_shuffled(TAGS_POOL, rng)[:TAG_COUNT])

    parts = [hook, snippet, bullets, f"👉 {cta}", tags]
    return "\n\n".join(p for p in parts if p)


def _clean_caption(text: str) -> str:
    """Strip markdown fences and wrapping quotes some models add."""
    text = text.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        text = "\n".join(lines[1:-1]).strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "\"'":
        text = text[1:-1].strip()
    return text


class CaptionRewriter:
    """Rewrites image text into a post caption with a remote model."""

    def __init__(self, router: Optional[ProviderRouter] = None):
        self._router = router

    @property
    def router(self) -> ProviderRouter:
        if self._router is None:
            self._router = get_router()
        return self._router

    async def rewrite(self, text: str) -> str:
        """
        Rewrite text into a caption.

        Raises:
            ConfigurationError: No provider has credentials (checked before any call)
            UpstreamServiceError: Every provider failed or returned nothing
        """
        payload = (text or "").strip() or DEFAULT_TEXT

        if not self.router.is_available():
            raise ConfigurationError(
                "No caption provider configured: set CAPTION_GATEWAY_BASE_URL/CAPTION_GATEWAY_API_KEY "
                "or GEMINI_API_KEY"
            )

        logger.info(f"Rewriting caption, text length: {len(payload)}")
        response = await self.router.generate_text(
            REWRITE_PROMPT.format(text=payload),
            config=GenerationConfig(temperature=0.9, max_tokens=1024),
        )

        caption = _clean_caption(response.text) if not response.error else ""
        if not caption:
            message = response.error or "rewrite failed"
            logger.error(f"Caption rewrite failed via {response.provider}: {message}")
            raise UpstreamServiceError(message)

        logger.info(f"Caption rewritten by {response.provider}/{response.model_used}: {len(caption)} chars")
        return caption
