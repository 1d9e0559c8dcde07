"""
Color helpers shared by the tone analysis and the renderer.

Colors travel through the pipeline either as `Color` triples (analysis
output) or as CSS-style strings (style fields, preset recipes), because
styles are user-editable and hex/rgba strings are what the control
surface sends.
"""

import re
from dataclasses import dataclass
from typing import Tuple

from PIL import ImageColor

RGBA = Tuple[int, int, int, int]

_RGBA_PATTERN = re.compile(
    r'^rgba?\(\s*([\d.]+)\s*,\s*([\d.]+)\s*,\s*([\d.]+)\s*(?:,\s*([\d.]+)\s*)?\)$',
    re.IGNORECASE
)


def clamp(value: float, low: float = 0, high: float = 255) -> float:
    """Clamp value into [low, high]."""
    return min(high, max(low, value))


@dataclass(frozen=True)
class Color:
    """RGB triple. Channels may be fractional (averages) but stay in [0, 255]."""
    r: float
    g: float
    b: float

    @property
    def luminance(self) -> float:
        return luminance(self.r, self.g, self.b)

    def adjust(self, delta: float) -> "Color":
        """Shift every channel by delta, clamped to [0, 255]."""
        return Color(
            r=clamp(self.r + delta),
            g=clamp(self.g + delta),
            b=clamp(self.b + delta),
        )

    def to_hex(self) -> str:
        def to_byte(n: float) -> int:
            return int(clamp(int(n + 0.5)))
        return f"#{to_byte(self.r):02x}{to_byte(self.g):02x}{to_byte(self.b):02x}"

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.r, self.g, self.b)


def luminance(r: float, g: float, b: float) -> float:
    """Perceived brightness (ITU-R BT.601 weights)."""
    return 0.299 * r + 0.587 * g + 0.114 * b


def parse_color(value: str) -> RGBA:
    """
    Parse a CSS color string into an RGBA tuple.

    Handles `rgba(r, g, b, a)` with a fractional alpha (which Pillow's
    ImageColor does not) and delegates everything else - hex, named
    colors, hsl - to ImageColor.

    Raises:
        ValueError: If the string is not a recognised color.
    """
    text = value.strip()
    match = _RGBA_PATTERN.match(text)
    if match:
        r, g, b = (int(clamp(round(float(match.group(i))))) for i in (1, 2, 3))
        alpha = match.group(4)
        a = 255 if alpha is None else int(clamp(round(float(alpha) * 255)))
        return (r, g, b, a)

    rgb = ImageColor.getrgb(text)
    if len(rgb) == 4:
        return rgb
    return (rgb[0], rgb[1], rgb[2], 255)


def interpolate(stops, t: float) -> RGBA:
    """
    Color at position t along a list of (offset, css_color) stops.

    Positions before the first stop or after the last one take the
    edge color, as canvas gradients do.
    """
    parsed = [(offset, parse_color(color)) for offset, color in stops]
    if t <= parsed[0][0]:
        return parsed[0][1]
    if t >= parsed[-1][0]:
        return parsed[-1][1]

    for (o1, c1), (o2, c2) in zip(parsed, parsed[1:]):
        if o1 <= t <= o2:
            span = o2 - o1
            ratio = 0.0 if span == 0 else (t - o1) / span
            return tuple(int(round(a + (b - a) * ratio)) for a, b in zip(c1, c2))

    return parsed[-1][1]
