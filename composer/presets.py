"""
Text rendering presets.

Four fixed recipes for shadow, stroke and fill:
- Adaptive: everything comes from the (image-derived) TextStyle
- Gold: metallic vertical gold gradient
- Strike: white-to-red vertical gradient
- Banner: horizontal white/gold split
"""

from enum import Enum
from typing import Optional, Tuple, Union
from dataclasses import dataclass

from .style import TextStyle


class PresetMode(Enum):
    """Available text presets."""
    ADAPTIVE = "adaptive"   # Tone-driven restyle from the background
    GOLD = "gold"
    STRIKE = "strike"
    BANNER = "banner"


class GradientDirection(Enum):
    VERTICAL = "vertical"
    HORIZONTAL = "horizontal"


@dataclass(frozen=True)
class GradientFill:
    """Multi-stop linear gradient paint."""
    direction: GradientDirection
    stops: Tuple[Tuple[float, str], ...]


Paint = Union[str, GradientFill]


@dataclass(frozen=True)
class PresetEntry:
    """Static entry of the catalog. Stroke width is max(ratio * size, minimum)."""
    label: str
    shadow_color: str
    shadow_blur: float
    shadow_offset_y: float
    stroke_ratio: float
    stroke_min: float
    stroke_color: str
    fill: GradientFill


@dataclass(frozen=True)
class PresetRecipe:
    """Concrete drawing parameters for one render."""
    shadow_color: str
    shadow_blur: float
    shadow_offset_y: float
    stroke_color: str
    stroke_width: float
    fill: Paint


PRESET_CATALOG = {
    PresetMode.GOLD: PresetEntry(
        label="Gold",
        shadow_color="rgba(0,0,0,0.48)",
        shadow_blur=18,
        shadow_offset_y=8,
        stroke_ratio=0.08,
        stroke_min=4.8,
        stroke_color="#3b2500",
        fill=GradientFill(
            direction=GradientDirection.VERTICAL,
            stops=((0, "#f4e4b2"), (0.45, "#f6d57a"), (0.55, "#d6a73a"), (1.0, "#9a6b1b")),
        ),
    ),
    PresetMode.STRIKE: PresetEntry(
        label="White / Red",
        shadow_color="rgba(0,0,0,0.8)",
        shadow_blur=22,
        shadow_offset_y=10,
        stroke_ratio=0.06,
        stroke_min=4.5,
        stroke_color="#0c0f1a",
        fill=GradientFill(
            direction=GradientDirection.VERTICAL,
            stops=((0, "#f7f8fc"), (0.35, "#e6e8f1"), (0.65, "#d32f2f"), (1.0, "#8c0f0f")),
        ),
    ),
    PresetMode.BANNER: PresetEntry(
        label="Banner black / yellow",
        shadow_color="rgba(0,0,0,0.75)",
        shadow_blur=20,
        shadow_offset_y=12,
        stroke_ratio=0.05,
        stroke_min=4.2,
        stroke_color="#0a0a0a",
        fill=GradientFill(
            direction=GradientDirection.HORIZONTAL,
            stops=((0, "#ffffff"), (0.45, "#ffffff"), (0.55, "#f2c23a"), (1.0, "#f2c23a")),
        ),
    ),
}


def parse_preset(value: Optional[Union[str, PresetMode]]) -> PresetMode:
    """
    Resolve a preset name, case-insensitively.

    Raises:
        ValueError: If the name is not a known preset.
    """
    if isinstance(value, PresetMode):
        return value
    if not value:
        return PresetMode.ADAPTIVE
    return PresetMode(value.strip().lower())


def resolve_recipe(preset: PresetMode, style: TextStyle, font_size: float) -> PresetRecipe:
    """
    Build the drawing recipe for a preset at the fitted font size.

    Args:
        preset: Active preset
        style: Live text style (source of every adaptive field)
        font_size: Font size after layout fitting

    Returns:
        PresetRecipe with shadow, stroke and fill paint
    """
    entry = PRESET_CATALOG.get(preset)
    if entry is None:
        return PresetRecipe(
            shadow_color=style.shadow_color,
            shadow_blur=style.shadow_blur,
            shadow_offset_y=style.shadow_offset_y,
            stroke_color=style.stroke,
            stroke_width=style.stroke_width,
            fill=style.fill,
        )

    return PresetRecipe(
        shadow_color=entry.shadow_color,
        shadow_blur=entry.shadow_blur,
        shadow_offset_y=entry.shadow_offset_y,
        stroke_color=entry.stroke_color,
        stroke_width=max(font_size * entry.stroke_ratio, entry.stroke_min),
        fill=entry.fill,
    )


def get_preset_options() -> list:
    """Get list of available presets for user selection."""
    options = [{"id": PresetMode.ADAPTIVE.value, "name": "Adaptive (from background)"}]
    options.extend(
        {"id": mode.value, "name": entry.label}
        for mode, entry in PRESET_CATALOG.items()
    )
    return options
