# Post Composer Module
# Background photo + readability plate + blurred logo + auto-styled text -> 960x1200 PNG

from .session import ComposerSession, suggest_filename
from .presets import PresetMode, get_preset_options, parse_preset
from .tone import ColorSampler, ToneClassifier, ImageTone, analyze_image_tone
from .style import StylePicker, TextStyle, merge_style
from .layout import TextLayoutEngine, LayoutResult
from .renderer import CompositionRenderer, LogoSettings, RenderResult
from .fonts import FontResolver
from .loader import ImageLoader

__all__ = [
    "ComposerSession",
    "suggest_filename",
    "PresetMode",
    "get_preset_options",
    "parse_preset",
    "ColorSampler",
    "ToneClassifier",
    "ImageTone",
    "analyze_image_tone",
    "StylePicker",
    "TextStyle",
    "merge_style",
    "TextLayoutEngine",
    "LayoutResult",
    "CompositionRenderer",
    "LogoSettings",
    "RenderResult",
    "FontResolver",
    "ImageLoader",
]
