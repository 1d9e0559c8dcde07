"""
TextLayoutEngine - Line wrapping and font-size fitting for the caption text.

Handles:
1. Paragraph splitting (blank separator line between paragraphs)
2. Word wrapping when a paragraph has spaces, glyph wrapping when it
   does not (Thai and other scripts without word spacing)
3. Shrinking the font size until the longest line fits
4. Vertical placement of the text block above the bottom padding
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, List

from .style import MIN_FONT_SIZE, clamp_font_size

logger = logging.getLogger(__name__)

# measure(text, font_size) -> rendered width in px
MeasureFn = Callable[[str, int], float]

SIZE_STEP = 2


@dataclass
class LayoutResult:
    """Fitted text block for one render pass."""
    lines: List[str]
    font_size: int
    line_height_px: float
    total_height: float
    top: float                  # Top edge of the text block
    max_width: float
    longest_width: float = 0.0
    overflow: bool = False      # Still too wide at the minimum font size
    attempts: int = 1           # Wrap/measure rounds used by fitting

    @property
    def line_centers(self) -> List[float]:
        """Vertical center of every line, top to bottom."""
        return [self.top + (i + 0.5) * self.line_height_px for i in range(len(self.lines))]


@dataclass
class _Paragraph:
    tokens: List[str] = field(default_factory=list)
    joiner: str = " "


def tokenize(paragraph: str) -> _Paragraph:
    """Split on spaces if there are any, otherwise into single characters."""
    if " " in paragraph:
        return _Paragraph([t for t in paragraph.split(" ") if t], " ")
    return _Paragraph([c for c in paragraph], "")


def wrap_text(text: str, max_width: float, measure: Callable[[str], float]) -> List[str]:
    """
    Greedily wrap text into lines no wider than max_width.

    A single token wider than max_width is kept whole on its own line.

    Args:
        text: Raw text, may contain newlines
        max_width: Line width budget in px
        measure: Width of a string at the current font

    Returns:
        Lines, with "" between paragraphs
    """
    lines: List[str] = []
    paragraphs = text.replace("\r", "").split("\n")

    for idx, paragraph in enumerate(paragraphs):
        para = tokenize(paragraph)

        line = ""
        for piece in para.tokens:
            candidate = f"{line}{para.joiner}{piece}" if line else piece
            if measure(candidate) > max_width and line:
                lines.append(line)
                line = piece
            else:
                line = candidate
        if line:
            lines.append(line)

        if idx < len(paragraphs) - 1:
            lines.append("")

    return lines


class TextLayoutEngine:
    """
    Fits text into the canvas width, shrinking the font when needed.

    The fitting loop is bounded: sizes step down by 2 from the starting
    size and stop at MIN_FONT_SIZE, so it runs at most
    ceil((start - 34) / 2) + 1 rounds. Text still too wide at the floor
    is laid out anyway and flagged as overflow.
    """

    def __init__(
        self,
        canvas_width: int = 960,
        canvas_height: int = 1200,
        min_font_size: int = MIN_FONT_SIZE,
        size_step: int = SIZE_STEP,
    ):
        self.canvas_width = canvas_width
        self.canvas_height = canvas_height
        self.min_font_size = min_font_size
        self.size_step = size_step

    def max_text_width(self, padding_x: float) -> float:
        return self.canvas_width - padding_x * 2

    def fit(
        self,
        text: str,
        font_size: int,
        max_width: float,
        measure: MeasureFn,
    ):
        """
        Find the largest size (stepping down) at which every line fits.

        Returns:
            Tuple of (lines, font_size, longest_width, attempts)
        """
        size = max(self.min_font_size, clamp_font_size(font_size))
        attempts = 0

        while True:
            attempts += 1
            current = size
            lines = wrap_text(text, max_width, lambda s: measure(s, current))
            longest = max((measure(ln, current) for ln in lines), default=0.0)

            if longest <= max_width or size <= self.min_font_size:
                return lines, size, longest, attempts

            size = max(self.min_font_size, size - self.size_step)

    def layout(
        self,
        text: str,
        font_size: int,
        line_height: float,
        padding_x: float,
        padding_y: float,
        measure: MeasureFn,
    ) -> LayoutResult:
        """
        Wrap, fit and place text.

        The block is centered at canvas_height - padding_y - total / 2,
        so it grows upward from the bottom padding.
        """
        max_width = self.max_text_width(padding_x)
        lines, size, longest, attempts = self.fit(text, font_size, max_width, measure)

        line_height_px = size * line_height
        total_height = len(lines) * line_height_px
        top = self.canvas_height - padding_y - total_height

        overflow = longest > max_width
        if overflow:
            logger.warning(
                f"Text overflows at minimum size {size}px: "
                f"longest line {longest:.0f}px > {max_width:.0f}px"
            )

        return LayoutResult(
            lines=lines,
            font_size=size,
            line_height_px=line_height_px,
            total_height=total_height,
            top=top,
            max_width=max_width,
            longest_width=longest,
            overflow=overflow,
            attempts=attempts,
        )
