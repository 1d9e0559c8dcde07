"""
Text styling: the live TextStyle record and the StylePicker that derives
adaptive styles from an ImageTone.
"""

import logging
import random
from dataclasses import dataclass, field, replace
from typing import Optional, Tuple

from .tone import ImageTone

logger = logging.getLogger(__name__)

MIN_FONT_SIZE = 34
MAX_FONT_SIZE = 120

# Thai-capable display families offered by the adaptive preset
FONT_CHOICES = (
    "Sarabun",
    "Kanit",
    "Pridi",
    "Athiti",
    "Prompt",
    "Maitree",
    "Bai Jamjuree",
    "Anuphan",
)

THAI_FONT_FALLBACK = (
    "Sarabun",
    "Noto Sans Thai",
    "Kanit",
    "Sukhumvit Set",
    "Prompt",
    "Maitree",
    "Pridi",
    "Tahoma",
    "Arial",
    "sans-serif",
)

FontStack = Tuple[str, ...]


def build_font_stack(primary: Optional[str] = None) -> FontStack:
    """Put primary in front of the shared fallback stack."""
    if not primary:
        return THAI_FONT_FALLBACK
    return (primary,) + tuple(f for f in THAI_FONT_FALLBACK if f != primary)


def clamp_font_size(size: float) -> int:
    return int(min(MAX_FONT_SIZE, max(MIN_FONT_SIZE, round(size))))


@dataclass
class TextStyle:
    """Text styling configuration, editable by the user between renders."""
    size: int = 54
    line_height: float = 1.22
    padding_x: int = 80
    padding_y: int = 90
    font_weight: int = 700
    fill: str = "#F5F7FF"
    stroke: str = "#7A0D1B"
    stroke_width: float = 3.0
    shadow_color: str = "rgba(0,0,0,0.55)"
    shadow_blur: float = 14
    shadow_offset_y: float = 6
    font_family: FontStack = field(default_factory=lambda: build_font_stack("Sarabun"))
    font_family_pinned: bool = False

    def __post_init__(self):
        self.size = clamp_font_size(self.size)
        self.stroke_width = max(0.0, float(self.stroke_width))
        self.font_family = tuple(self.font_family)


@dataclass(frozen=True)
class DerivedStyle:
    """Fields the adaptive preset computes from an image tone."""
    fill: str
    stroke: str
    shadow_color: str
    stroke_width: float
    size: int
    padding_y: int
    line_height: float
    font_family: FontStack


# Order matters only for readability; every listed field is copied.
ADAPTIVE_FIELDS = (
    "fill",
    "stroke",
    "shadow_color",
    "stroke_width",
    "size",
    "padding_y",
    "line_height",
    "font_family",
)


def merge_style(current: TextStyle, derived: DerivedStyle) -> TextStyle:
    """
    Overlay derived fields onto the live style.

    font_weight is never touched and font_family is kept when the user
    pinned one.
    """
    changes = {}
    for name in ADAPTIVE_FIELDS:
        if name == "font_family" and current.font_family_pinned:
            continue
        changes[name] = getattr(derived, name)
    return replace(current, **changes)


def _round_half_up(value: float) -> int:
    return int(value + 0.5)


class StylePicker:
    """
    Derives a concrete style from an ImageTone.

    Randomness (font pick, size and spacing jitter) comes from the
    injected `random.Random`, so a fixed seed reproduces the same style.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def pick_font_stack(self) -> FontStack:
        idx = int(self.rng.random() * len(FONT_CHOICES))
        return build_font_stack(FONT_CHOICES[idx])

    def derive(self, tone: ImageTone) -> DerivedStyle:
        if tone.is_dark:
            fill = tone.average.adjust(65)
            stroke = tone.accent.adjust(-40)
        else:
            fill = tone.average.adjust(-80)
            stroke = tone.accent.adjust(50)

        size = _round_half_up(50 + self.rng.random() * 10)
        padding_y = 78 + _round_half_up(self.rng.random() * 18)

        derived = DerivedStyle(
            fill=fill.to_hex(),
            stroke=stroke.to_hex(),
            shadow_color="rgba(0,0,0,0.55)" if tone.is_dark else "rgba(0,0,0,0.38)",
            stroke_width=3.6 if tone.is_dark else 3.2,
            font_family=self.pick_font_stack(),
            line_height=1.18 + self.rng.random() * 0.07,
            size=clamp_font_size(size),
            padding_y=padding_y,
        )
        logger.info(
            f"Adaptive style: fill={derived.fill} stroke={derived.stroke} "
            f"size={derived.size} font={derived.font_family[0]}"
        )
        return derived
