"""
ComposerSession - Main orchestrator for post composition.

Holds the live inputs (background, logo, text, style, preset) and turns
them into render passes:
1. Load background and logo (asynchronous, load-or-none)
2. Restyle text from the background tone (Adaptive preset only, once per image)
3. Render the composition (CompositionRenderer)
4. Keep the output of the newest pass

Image replacements race with slow decodes, so both the tone analysis and
the render passes carry a generation number; results computed for an
outdated generation are dropped instead of committed.
"""

import logging
import random
from dataclasses import replace
from pathlib import Path
from typing import Optional

from PIL import Image

from .fonts import FontResolver
from .loader import ImageLoader, ImageSource
from .presets import PresetMode, parse_preset
from .renderer import CANVAS_HEIGHT, CANVAS_WIDTH, CompositionRenderer, LogoSettings, RenderResult, SurfaceUnavailableError
from .style import StylePicker, TextStyle, merge_style
from .tone import ColorSampler, ToneClassifier

logger = logging.getLogger(__name__)

DEFAULT_TEXT = "พิมพ์ข้อความตรงนี้…"
DEFAULT_FILENAME = f"fb-post-{CANVAS_WIDTH}x{CANVAS_HEIGHT}.png"


def suggest_filename(source_name: Optional[str] = None) -> str:
    """Output filename derived from the source image's base name."""
    if not source_name:
        return DEFAULT_FILENAME
    stem = Path(source_name).stem
    if not stem:
        return DEFAULT_FILENAME
    return f"{stem}-{CANVAS_WIDTH}x{CANVAS_HEIGHT}.png"


class ComposerSession:
    """
    Live composition state plus the render workflow.

    Every setter is an input change; call `render()` afterwards to get a
    fresh pass. Setting a new background while the Adaptive preset is
    active also runs the tone analysis and merges the derived style.
    """

    def __init__(
        self,
        renderer: Optional[CompositionRenderer] = None,
        loader: Optional[ImageLoader] = None,
        picker: Optional[StylePicker] = None,
        sampler: Optional[ColorSampler] = None,
        classifier: Optional[ToneClassifier] = None,
        fonts: Optional[FontResolver] = None,
        style: Optional[TextStyle] = None,
        preset: PresetMode = PresetMode.ADAPTIVE,
        text: str = DEFAULT_TEXT,
        seed: Optional[int] = None,
    ):
        """Initialize session with all components."""
        self.fonts = fonts or (renderer.fonts if renderer else FontResolver())
        self.renderer = renderer or CompositionRenderer(fonts=self.fonts)
        self.loader = loader or ImageLoader()
        self.picker = picker or StylePicker(random.Random(seed))
        self.sampler = sampler or ColorSampler()
        self.classifier = classifier or ToneClassifier()

        self.style = style or TextStyle()
        self.preset = parse_preset(preset)
        self.text = text
        self.logo_settings = LogoSettings()

        self.image_source: Optional[ImageSource] = None
        self.logo_source: Optional[ImageSource] = None
        self.filename = DEFAULT_FILENAME

        self._image_generation = 0
        self._analyzed_generation = 0
        self._render_generation = 0
        self.output: Optional[RenderResult] = None

    @property
    def image_generation(self) -> int:
        return self._image_generation

    async def set_image(self, source: Optional[ImageSource], name: Optional[str] = None) -> bool:
        """
        Replace the background image.

        Args:
            source: New background source (None clears it)
            name: Original file name, used for the download name

        Returns:
            True if an adaptive restyle was applied
        """
        self._image_generation += 1
        self.image_source = source
        if name:
            self.filename = suggest_filename(name)
        return await self.refresh_adaptive_style()

    async def set_preset(self, preset) -> bool:
        """Switch preset; re-selecting Adaptive restyles an image not yet analysed."""
        self.preset = parse_preset(preset)
        return await self.refresh_adaptive_style()

    def set_text(self, text: str) -> None:
        self.text = text or ""

    def update_style(self, **changes) -> TextStyle:
        """
        Apply user edits to the style.

        Choosing a font family pins it, so later adaptive restyles keep it.
        """
        if "font_family" in changes and "font_family_pinned" not in changes:
            changes["font_family_pinned"] = True
        self.style = replace(self.style, **changes)
        return self.style

    def set_logo(self, source: Optional[ImageSource], settings: Optional[LogoSettings] = None) -> None:
        self.logo_source = source
        if settings is not None:
            self.logo_settings = settings

    async def refresh_adaptive_style(self) -> bool:
        """
        Derive and merge a style from the current background.

        Runs only for the Adaptive preset, only once per image generation,
        and drops its result if the image changed while it was loading.
        """
        if self.preset != PresetMode.ADAPTIVE or self.image_source is None:
            return False

        generation = self._image_generation
        if generation == self._analyzed_generation:
            return False

        image = await self.loader.load(self.image_source)
        if generation != self._image_generation:
            logger.debug(f"Discarding stale tone analysis for generation {generation}")
            return False
        if image is None:
            return False

        sample = self.sampler.sample(image)
        if sample is None:
            return False

        tone = self.classifier.classify(sample)
        derived = self.picker.derive(tone)

        self.style = merge_style(self.style, derived)
        self._analyzed_generation = generation
        logger.info(f"Applied adaptive style for image generation {generation}")
        return True

    async def render(self) -> Optional[RenderResult]:
        """
        Run one render pass with the current inputs.

        Returns:
            RenderResult, or None if the pass was aborted (no surface) or
            superseded by a newer pass before it finished
        """
        self._render_generation += 1
        generation = self._render_generation

        await self.fonts.ready()

        background: Optional[Image.Image] = await self.loader.load(self.image_source)
        logo: Optional[Image.Image] = None
        if self.logo_source is not None:
            logo = await self.loader.load(self.logo_source)

        if generation != self._render_generation:
            logger.debug(f"Render pass {generation} superseded")
            return None

        try:
            result = self.renderer.render(
                background=background,
                text=self.text,
                style=self.style,
                preset=self.preset,
                logo=logo,
                logo_settings=self.logo_settings,
            )
        except SurfaceUnavailableError as e:
            logger.error(f"Render pass {generation} aborted: {e}")
            return None

        self.output = result
        return result

    def export(self, output_path: Optional[str] = None):
        """Export the latest committed output as PNG (bytes, or the written path)."""
        if self.output is None:
            return None
        return self.renderer.export(self.output.image, output_path)
