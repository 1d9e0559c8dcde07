"""
CompositionRenderer - Pillow-based composition of the final post image.

Draw order (fixed):
1. Background photo, cover-fitted to the canvas (or fallback gradient)
2. Readability plate: dark gradient band along the bottom edge
3. Optional logo, blurred and faded, inset from the top-right corner
4. Text: stroke pass for every line, then fill pass for every line,
   each pass with its own drop shadow
5. Export to PNG
"""

import io
import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from PIL import Image, ImageChops, ImageDraw, ImageFilter

from .colors import interpolate, parse_color
from .fonts import FontResolver
from .layout import LayoutResult, TextLayoutEngine
from .presets import GradientDirection, GradientFill, Paint, PresetMode, PresetRecipe, resolve_recipe
from .style import TextStyle

logger = logging.getLogger(__name__)

CANVAS_WIDTH = 960
CANVAS_HEIGHT = 1200

FALLBACK_TOP = "#0c1224"
FALLBACK_BOTTOM = "#05070f"

PLATE_HEIGHT = 320
PLATE_STOPS = (
    (0, "rgba(0,0,0,0.00)"),
    (0.35, "rgba(0,0,0,0.25)"),
    (1, "rgba(0,0,0,0.78)"),
)


class SurfaceUnavailableError(RuntimeError):
    """The drawing surface could not be created; the render pass is aborted."""


@dataclass
class LogoSettings:
    """Logo overlay configuration."""
    size: float = 120         # Target width in px
    opacity: float = 0.35
    blur: float = 1           # Gaussian blur radius in px
    padding: float = 40       # Inset from the top and right edges


@dataclass
class CropBox:
    """Source region used for the cover-fitted background."""
    x: int
    y: int
    width: int
    height: int

    @property
    def coords(self) -> Tuple[int, int, int, int]:
        """Return (left, top, right, bottom) for PIL."""
        return (self.x, self.y, self.x + self.width, self.y + self.height)


@dataclass
class RenderResult:
    """Output of one render pass."""
    image: Image.Image
    layout: Optional[LayoutResult] = None

    @property
    def overflow(self) -> bool:
        return bool(self.layout and self.layout.overflow)


def cover_crop(src_width: int, src_height: int, target_width: int, target_height: int) -> CropBox:
    """
    Center crop of the source with the target's aspect ratio.

    The axis with excess is cropped; the other axis is kept whole.
    """
    src_ar = src_width / src_height
    target_ar = target_width / target_height

    if src_ar > target_ar:
        height = src_height
        width = max(1, math.floor(height * target_ar))
        x = math.floor((src_width - width) / 2)
        y = 0
    else:
        width = src_width
        height = max(1, math.floor(width / target_ar))
        x = 0
        y = math.floor((src_height - height) / 2)

    return CropBox(x=x, y=y, width=width, height=height)


def linear_gradient(
    size: Tuple[int, int],
    stops,
    direction: GradientDirection,
    start: float,
    end: float,
) -> Image.Image:
    """
    RGBA image filled with a linear gradient.

    Args:
        size: Output (width, height)
        stops: (offset, css_color) pairs, offsets in [0, 1]
        direction: Axis the colors change along
        start: Pixel coordinate of offset 0 along that axis
        end: Pixel coordinate of offset 1
    """
    width, height = size
    vertical = direction == GradientDirection.VERTICAL
    length = height if vertical else width
    span = end - start

    strip = Image.new('RGBA', (1, length) if vertical else (length, 1))
    for i in range(length):
        t = 0.0 if span == 0 else (i + 0.5 - start) / span
        strip.putpixel((0, i) if vertical else (i, 0), interpolate(stops, t))

    return strip.resize((width, height), Image.Resampling.NEAREST)


class CompositionRenderer:
    """
    Renders the post image using Pillow.

    Stateless between calls: every render builds a fresh surface, so the
    output never carries anything over from a previous pass.
    """

    def __init__(
        self,
        fonts: Optional[FontResolver] = None,
        width: int = CANVAS_WIDTH,
        height: int = CANVAS_HEIGHT,
    ):
        self.fonts = fonts or FontResolver()
        self.width = width
        self.height = height
        self.layout_engine = TextLayoutEngine(canvas_width=width, canvas_height=height)

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    def create_surface(self) -> Image.Image:
        if self.width <= 0 or self.height <= 0:
            raise SurfaceUnavailableError(f"Invalid canvas size {self.width}x{self.height}")
        try:
            return Image.new('RGBA', self.size, (0, 0, 0, 255))
        except (MemoryError, ValueError) as e:
            raise SurfaceUnavailableError(f"Cannot allocate canvas: {e}") from e

    def draw_background(self, canvas: Image.Image, image: Image.Image) -> Image.Image:
        """Cover-fit the photo over the whole canvas."""
        crop = cover_crop(image.width, image.height, self.width, self.height)
        logger.debug(f"Background crop {crop.coords} from {image.width}x{image.height}")

        bg = image.convert('RGBA').resize(self.size, Image.Resampling.LANCZOS, box=crop.coords)
        canvas.paste(bg, (0, 0))
        return canvas

    def draw_fallback_background(self, canvas: Image.Image) -> Image.Image:
        """Near-black to near-black-blue vertical gradient."""
        gradient = linear_gradient(
            self.size,
            ((0, FALLBACK_TOP), (1, FALLBACK_BOTTOM)),
            GradientDirection.VERTICAL,
            0,
            self.height,
        )
        canvas.paste(gradient, (0, 0))
        return canvas

    def draw_readability_plate(self, canvas: Image.Image) -> Image.Image:
        band_height = min(PLATE_HEIGHT, self.height)
        band = linear_gradient(
            (self.width, band_height),
            PLATE_STOPS,
            GradientDirection.VERTICAL,
            0,
            band_height,
        )
        canvas.alpha_composite(band, dest=(0, self.height - band_height))
        return canvas

    def draw_logo(
        self,
        canvas: Image.Image,
        logo: Image.Image,
        settings: LogoSettings,
    ) -> Image.Image:
        """
        Blurred, faded logo in the top-right corner.

        Drawn on its own layer, so opacity and blur affect nothing else.
        """
        target_w = settings.size
        aspect = (logo.width / logo.height) if logo.height else 1
        aspect = aspect or 1
        target_h = target_w / aspect

        x = self.width - target_w - settings.padding
        y = settings.padding

        resized = logo.convert('RGBA').resize(
            (max(1, round(target_w)), max(1, round(target_h))),
            Image.Resampling.LANCZOS,
        )

        layer = Image.new('RGBA', canvas.size, (0, 0, 0, 0))
        layer.paste(resized, (round(x), round(y)))

        if settings.blur > 0:
            # Blur premultiplied so transparent surroundings don't darken the edges
            layer = layer.convert('RGBa').filter(ImageFilter.GaussianBlur(settings.blur)).convert('RGBA')

        opacity = max(0.0, min(1.0, settings.opacity))
        layer.putalpha(layer.getchannel('A').point(lambda a: int(a * opacity + 0.5)))

        return Image.alpha_composite(canvas, layer)

    def _text_mask(self, layout: LayoutResult, font, stroke_px: int) -> Image.Image:
        mask = Image.new('L', self.size, 0)
        draw = ImageDraw.Draw(mask)
        cx = self.width / 2

        for line, cy in zip(layout.lines, layout.line_centers):
            if not line:
                continue
            draw.text(
                (cx, cy), line, font=font, fill=255, anchor="mm",
                stroke_width=stroke_px, stroke_fill=255,
            )
        return mask

    def _draw_shadow(self, canvas: Image.Image, mask: Image.Image, recipe: PresetRecipe) -> Image.Image:
        r, g, b, a = parse_color(recipe.shadow_color)
        if a == 0:
            return canvas

        shadow_alpha = mask.point(lambda v: v * a // 255)
        shifted = Image.new('L', canvas.size, 0)
        shifted.paste(shadow_alpha, (0, int(round(recipe.shadow_offset_y))))

        if recipe.shadow_blur > 0:
            # Canvas-style blur values are twice the Gaussian sigma
            shifted = shifted.filter(ImageFilter.GaussianBlur(recipe.shadow_blur / 2))

        layer = Image.new('RGBA', canvas.size, (r, g, b, 0))
        layer.putalpha(shifted)
        return Image.alpha_composite(canvas, layer)

    def _paint_layer(self, paint: Paint, layout: LayoutResult) -> Image.Image:
        if isinstance(paint, GradientFill):
            if paint.direction == GradientDirection.VERTICAL:
                first_center = layout.line_centers[0] if layout.lines else layout.top
                start = first_center - layout.font_size
                end = first_center + layout.total_height + layout.font_size
            else:
                start, end = 0, self.width
            return linear_gradient(self.size, paint.stops, paint.direction, start, end)

        return Image.new('RGBA', self.size, parse_color(paint))

    def _draw_paint(
        self,
        canvas: Image.Image,
        mask: Image.Image,
        paint: Paint,
        layout: LayoutResult,
    ) -> Image.Image:
        layer = self._paint_layer(paint, layout)
        layer.putalpha(ImageChops.multiply(layer.getchannel('A'), mask))
        return Image.alpha_composite(canvas, layer)

    def draw_text(
        self,
        canvas: Image.Image,
        text: str,
        style: TextStyle,
        preset: PresetMode,
    ) -> Tuple[Image.Image, LayoutResult]:
        """
        Fit and draw text with the preset's recipe.

        All strokes go down before any fill, so fills never get covered
        by a neighbouring line's outline.
        """
        measure = self.fonts.measure_fn(style.font_family, style.font_weight)
        layout = self.layout_engine.layout(
            text,
            font_size=style.size,
            line_height=style.line_height,
            padding_x=style.padding_x,
            padding_y=style.padding_y,
            measure=measure,
        )
        font = self.fonts.get_font(style.font_family, style.font_weight, layout.font_size)
        recipe = resolve_recipe(preset, style, layout.font_size)

        logger.info(
            f"Drawing {len(layout.lines)} lines at {layout.font_size}px, preset={preset.value}"
        )

        # A canvas line width straddles the outline, so half of it lands outside the glyph
        stroke_px = int(round(recipe.stroke_width / 2))
        if stroke_px > 0:
            stroke_mask = self._text_mask(layout, font, stroke_px)
            canvas = self._draw_shadow(canvas, stroke_mask, recipe)
            canvas = self._draw_paint(canvas, stroke_mask, recipe.stroke_color, layout)

        fill_mask = self._text_mask(layout, font, 0)
        canvas = self._draw_shadow(canvas, fill_mask, recipe)
        canvas = self._draw_paint(canvas, fill_mask, recipe.fill, layout)

        return canvas, layout

    def render(
        self,
        background: Optional[Image.Image],
        text: str,
        style: TextStyle,
        preset: PresetMode = PresetMode.ADAPTIVE,
        logo: Optional[Image.Image] = None,
        logo_settings: Optional[LogoSettings] = None,
    ) -> RenderResult:
        """
        Render the complete post.

        Args:
            background: Decoded background photo, or None for the fallback gradient
            text: Text to draw (skipped when blank)
            style: Live text style
            preset: Active preset
            logo: Decoded logo, or None
            logo_settings: Logo size/opacity/blur/padding

        Returns:
            RenderResult with the canvas and the text layout (if any)

        Raises:
            SurfaceUnavailableError: If the canvas cannot be created
        """
        canvas = self.create_surface()

        if background is not None and background.width > 0 and background.height > 0:
            canvas = self.draw_background(canvas, background)
        else:
            canvas = self.draw_fallback_background(canvas)

        canvas = self.draw_readability_plate(canvas)

        if logo is not None and logo.width > 0 and logo.height > 0:
            canvas = self.draw_logo(canvas, logo, logo_settings or LogoSettings())

        layout = None
        safe_text = (text or "").strip()
        if safe_text:
            canvas, layout = self.draw_text(canvas, safe_text, style, preset)

        return RenderResult(image=canvas, layout=layout)

    def export(
        self,
        image: Image.Image,
        output_path: Optional[str] = None,
        format: str = "PNG",
    ) -> Union[bytes, str]:
        """
        Export the image to a file or bytes.

        Args:
            image: Rendered canvas
            output_path: Optional file path. If None, returns bytes.
            format: Image format

        Returns:
            File path if output_path given, else bytes
        """
        if output_path:
            image.save(output_path, format=format)
            logger.info(f"Exported image to {output_path}")
            return output_path

        buffer = io.BytesIO()
        image.save(buffer, format=format)
        return buffer.getvalue()
