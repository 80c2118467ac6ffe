"""
Artwork Palette Module

Derives the two-color background gradient for the full screen player from
album art: a vibrant swatch at the bottom, a dark muted swatch at the top.
"""

from __future__ import annotations

import colorsys
import io
import logging
import random
from dataclasses import dataclass
from typing import Callable, List, Optional

from PIL import Image

from models.metadata import RGB, Gradient, hex_to_rgb

logger = logging.getLogger(__name__)

ORIENTATION_TR_BL = "TrBl"
ORIENTATION_TL_BR = "TlBr"

_SAMPLE_SIZE = (112, 112)
_MAX_COLORS = 16


@dataclass(frozen=True)
class Swatch:
    rgb: RGB
    population: int

    @property
    def lightness(self) -> float:
        return colorsys.rgb_to_hls(*(c / 255.0 for c in self.rgb))[1]

    @property
    def saturation(self) -> float:
        return colorsys.rgb_to_hls(*(c / 255.0 for c in self.rgb))[2]


def extract_swatches(image_bytes: bytes, max_colors: int = _MAX_COLORS) -> List[Swatch]:
    """
    Quantize an image and return its colors, most populous first.

    Raises:
        OSError: The bytes are not a readable image
    """
    with Image.open(io.BytesIO(image_bytes)) as img:
        img = img.convert("RGB")
        img.thumbnail(_SAMPLE_SIZE)
        quantized = img.quantize(colors=max_colors)

    palette = quantized.getpalette() or []
    colors = quantized.getcolors(maxcolors=256) or []

    swatches = []
    for count, index in colors:
        r, g, b = palette[index * 3:index * 3 + 3]
        swatches.append(Swatch(rgb=(r, g, b), population=count))
    swatches.sort(key=lambda s: s.population, reverse=True)
    return swatches


def vibrant_swatch(swatches: List[Swatch]) -> Optional[Swatch]:
    candidates = [s for s in swatches if s.saturation >= 0.35 and 0.3 <= s.lightness <= 0.7]
    return max(candidates, key=lambda s: s.population, default=None)


def dark_muted_swatch(swatches: List[Swatch]) -> Optional[Swatch]:
    candidates = [s for s in swatches if s.saturation <= 0.4 and s.lightness <= 0.45]
    return max(candidates, key=lambda s: s.population, default=None)


def pick_orientation(rand: Callable[[], float] = random.random) -> str:
    return ORIENTATION_TR_BL if rand() <= 0.5 else ORIENTATION_TL_BR


def derive_gradient(
    image_bytes: bytes,
    fallback_color: str,
    rand: Callable[[], float] = random.random,
) -> Gradient:
    """
    Build the artwork gradient.

    Bottom: vibrant swatch, else the most populous color.
    Top: dark muted swatch, else the second most populous color.
    Any extraction failure uses fallback_color for both.
    """
    try:
        swatches = extract_swatches(image_bytes)
        vibrant = vibrant_swatch(swatches)
        dark_muted = dark_muted_swatch(swatches)
        bottom = vibrant.rgb if vibrant is not None else swatches[0].rgb
        top = dark_muted.rgb if dark_muted is not None else swatches[1].rgb
    except (OSError, ValueError, IndexError) as e:
        logger.debug("Swatch extraction failed, using theme color: %s", e)
        bottom = top = hex_to_rgb(fallback_color)

    return Gradient(bottom=bottom, top=top, orientation=pick_orientation(rand))
