"""
ToneAnalyzer - color-tone analysis of the background photo.

Code-based (no AI):
1. Downsample the photo to a fixed 64x64 grid
2. Average every sampled pixel
3. Pick the most salient pixel as accent (saturation + distance from mid-grey)
4. Classify the photo as dark or light from the average's luminance
"""

import logging
from dataclasses import dataclass
from typing import Optional

from PIL import Image

from .colors import Color, luminance

logger = logging.getLogger(__name__)

SAMPLE_SIZE = 64
DARK_LUMINANCE_THRESHOLD = 115

SATURATION_WEIGHT = 0.6
CONTRAST_WEIGHT = 0.4


@dataclass(frozen=True)
class ColorSample:
    """Raw statistics from the analysis grid."""
    average: Color
    accent: Color
    pixel_count: int


@dataclass(frozen=True)
class ImageTone:
    """Aggregate tone of a photo, consumed by the StylePicker."""
    average: Color
    accent: Color
    is_dark: bool


def accent_score(r: int, g: int, b: int) -> float:
    """Salience of a pixel: saturated colors far from mid-grey score highest."""
    high = max(r, g, b)
    low = min(r, g, b)
    saturation = 0.0 if high == 0 else (high - low) / high
    contrast_to_mid = abs(luminance(r, g, b) - 128) / 128
    return saturation * SATURATION_WEIGHT + contrast_to_mid * CONTRAST_WEIGHT


class ColorSampler:
    """
    Samples a decoded image into average and accent colors.

    Returns None instead of raising when the image cannot be sampled,
    so callers can simply skip the adaptive restyle.
    """

    def __init__(self, sample_size: int = SAMPLE_SIZE):
        self.sample_size = sample_size

    def sample(self, image: Image.Image) -> Optional[ColorSample]:
        if image is None or image.width <= 0 or image.height <= 0:
            logger.warning("Cannot sample an empty image")
            return None

        try:
            small = image.convert('RGB').resize((self.sample_size, self.sample_size))
            data = small.tobytes()
        except (OSError, ValueError) as e:
            logger.warning(f"Color sampling failed: {e}")
            return None

        sum_r = sum_g = sum_b = 0
        max_score = -1.0
        accent = (255, 255, 255)

        for i in range(0, len(data), 3):
            r, g, b = data[i], data[i + 1], data[i + 2]
            sum_r += r
            sum_g += g
            sum_b += b

            score = accent_score(r, g, b)
            # Strict comparison: the first pixel in scan order wins ties
            if score > max_score:
                max_score = score
                accent = (r, g, b)

        pixels = len(data) // 3
        return ColorSample(
            average=Color(sum_r / pixels, sum_g / pixels, sum_b / pixels),
            accent=Color(*accent),
            pixel_count=pixels,
        )


class ToneClassifier:
    """Turns sampler statistics into an ImageTone."""

    def __init__(self, threshold: float = DARK_LUMINANCE_THRESHOLD):
        self.threshold = threshold

    def classify(self, sample: ColorSample) -> ImageTone:
        return ImageTone(
            average=sample.average,
            accent=sample.accent,
            is_dark=sample.average.luminance < self.threshold,
        )


def analyze_image_tone(
    image: Image.Image,
    sampler: Optional[ColorSampler] = None,
    classifier: Optional[ToneClassifier] = None,
) -> Optional[ImageTone]:
    """Sample and classify in one step. None if the image cannot be sampled."""
    sample = (sampler or ColorSampler()).sample(image)
    if sample is None:
        return None

    tone = (classifier or ToneClassifier()).classify(sample)
    logger.info(
        f"Image tone: average={tone.average.to_hex()} accent={tone.accent.to_hex()} "
        f"dark={tone.is_dark}"
    )
    return tone
