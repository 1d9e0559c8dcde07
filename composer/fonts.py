"""
Font lookup for text rendering.

Maps a CSS-like font stack ("Kanit", "Noto Sans Thai", ..., sans-serif)
plus a numeric weight onto a TrueType file found in the configured font
directories. Font files themselves are not bundled; unavailable families
degrade to the next entry in the stack and finally to Pillow's built-in
font.
"""

import asyncio
import logging
import os
import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from PIL import ImageFont

logger = logging.getLogger(__name__)

FONT_EXTENSIONS = {".ttf", ".otf", ".ttc"}

DEFAULT_FONT_DIRS = [
    "/usr/share/fonts",                 # Linux
    "/usr/local/share/fonts",
    "~/.fonts",
    "~/.local/share/fonts",
    "/System/Library/Fonts",            # macOS
    "/Library/Fonts",
    "C:\\Windows\\Fonts",               # Windows
]

WEIGHT_NAMES = {
    100: ["thin"],
    200: ["extralight", "ultralight"],
    300: ["light"],
    400: ["regular", "book", ""],
    500: ["medium"],
    600: ["semibold", "demibold"],
    700: ["bold"],
    800: ["extrabold", "ultrabold"],
    900: ["black", "heavy"],
}

GENERIC_FAMILIES = {
    "sans-serif": ["DejaVu Sans", "Liberation Sans", "Noto Sans", "Helvetica", "Arial"],
    "serif": ["DejaVu Serif", "Liberation Serif", "Noto Serif", "Times New Roman"],
    "system-ui": ["DejaVu Sans", "Noto Sans", "Helvetica"],
}


def _normalize(name: str) -> str:
    return re.sub(r'[^a-z0-9]', '', name.lower())


def _weight_candidates(weight: int) -> List[str]:
    """Weight names to try, nearest weight first."""
    ordered = sorted(WEIGHT_NAMES, key=lambda w: (abs(w - weight), -w))
    names: List[str] = []
    for w in ordered:
        names.extend(WEIGHT_NAMES[w])
    return names


class FontResolver:
    """
    Resolves font stacks to Pillow fonts.

    The directory index is built once, before the first paint, so text is
    never measured with a fallback font that is swapped later.
    """

    def __init__(self, font_dirs: Optional[Iterable[str]] = None):
        if font_dirs is None:
            env_dirs = os.getenv('COMPOSER_FONT_DIRS', '')
            font_dirs = [d for d in env_dirs.split(os.pathsep) if d] + DEFAULT_FONT_DIRS
        self.font_dirs = [Path(d).expanduser() for d in font_dirs]
        self._index: Optional[Dict[str, str]] = None
        self._fonts: Dict[Tuple[Tuple[str, ...], int, int], ImageFont.FreeTypeFont] = {}
        self._warned_default = False

    @property
    def is_ready(self) -> bool:
        return self._index is not None

    def build_index(self) -> Dict[str, str]:
        """Scan font directories: normalized file stem -> path."""
        index: Dict[str, str] = {}
        for directory in self.font_dirs:
            if not directory.is_dir():
                continue
            for path in directory.rglob("*"):
                if path.suffix.lower() in FONT_EXTENSIONS:
                    index.setdefault(_normalize(path.stem), str(path))

        self._index = index
        logger.info(f"Indexed {len(index)} font files from {len(self.font_dirs)} directories")
        return index

    async def ready(self) -> None:
        """Wait until font files are indexed."""
        if self._index is None:
            await asyncio.to_thread(self.build_index)

    def find_font_file(self, family: str, weight: int = 400) -> Optional[str]:
        """Best matching file for one family, or None."""
        index = self._index if self._index is not None else self.build_index()

        families = GENERIC_FAMILIES.get(family.lower(), [family])
        for fam in families:
            base = _normalize(fam)
            for suffix in _weight_candidates(weight):
                path = index.get(base + suffix)
                if path:
                    return path
        return None

    def get_font(self, stack: Iterable[str], weight: int, size: int) -> ImageFont.FreeTypeFont:
        """
        Get a font for the first available family in the stack.

        Args:
            stack: Font families in preference order
            weight: CSS numeric weight (600, 700, ...)
            size: Size in px

        Returns:
            Loaded font (Pillow's default font if nothing matches)
        """
        stack = tuple(stack)
        key = (stack, weight, size)
        if key in self._fonts:
            return self._fonts[key]

        font = None
        for family in stack:
            path = self.find_font_file(family, weight)
            if not path:
                continue
            try:
                font = ImageFont.truetype(path, size)
                break
            except OSError as e:
                logger.warning(f"Failed to load font {path}: {e}")

        if font is None:
            if not self._warned_default:
                logger.warning(f"No font file found for {stack[:2]}, using Pillow default font")
                self._warned_default = True
            font = ImageFont.load_default(size=size)

        self._fonts[key] = font
        return font

    def measure_fn(self, stack: Iterable[str], weight: int):
        """Measurement capability for the layout engine: (text, size) -> width."""
        stack = tuple(stack)

        def measure(text: str, size: int) -> float:
            return self.get_font(stack, weight, size).getlength(text)

        return measure
