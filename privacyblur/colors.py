"""
Color helpers and the border-sampling heuristic.

The heuristic picks a background color that blends with the pixels around
a region and a text color that stays readable on it. It must only ever be
fed the pristine base raster of a page: sampling a composited frame would
pick up earlier overlays and darken with every edit.
"""

import math
from dataclasses import dataclass

import numpy as np
from PIL import Image, ImageColor

from .models import Rect

BRIGHTNESS_THRESHOLD = 128
DEFAULT_RING = 1


@dataclass(frozen=True)
class ColorPair:
    """Background color plus a text color that contrasts with it."""
    background: str
    text: str


DEFAULT_PAIR = ColorPair("rgb(0, 0, 0)", "#ffffff")


def parse_color(value: str) -> tuple[int, int, int]:
    """Parse ``#rgb``, ``#rrggbb``, ``rgb(r, g, b)`` or a color name into an RGB tuple."""
    try:
        rgb = ImageColor.getrgb(value.strip())
    except (AttributeError, ValueError) as e:
        raise ValueError(f"Unrecognised color: {value!r}") from e
    return rgb[0], rgb[1], rgb[2]


def rgb_string(rgb: tuple[int, int, int]) -> str:
    return f"rgb({rgb[0]}, {rgb[1]}, {rgb[2]})"


def brightness(rgb: tuple[int, int, int]) -> float:
    """Perceived brightness (ITU-R BT.601 luma), 0-255, in exact integer weights."""
    r, g, b = rgb
    return (r * 299 + g * 587 + b * 114) / 1000


def contrast_text_color(rgb: tuple[int, int, int]) -> str:
    return "#000000" if brightness(rgb) > BRIGHTNESS_THRESHOLD else "#ffffff"


def pair_for_background(color: str) -> ColorPair:
    """Color pair for a manually chosen background; no pixels are sampled."""
    return ColorPair(color, contrast_text_color(parse_color(color)))


def _border_strips(rect: Rect, ring: int, inside: bool) -> list[tuple[float, float, float, float]]:
    """Top, bottom, left and right strips as (x, y, w, h)."""
    x, y, w, h = rect.x, rect.y, rect.w, rect.h
    if inside:
        return [
            (x, y, w, ring),
            (x, y + h - ring, w, ring),
            (x, y, ring, h),
            (x + w - ring, y, ring, h),
        ]
    return [
        (x, y - ring, w, ring),
        (x, y + h, w, ring),
        (x - ring, y, ring, h),
        (x + w, y, ring, h),
    ]


def sample_border(base: Image.Image, rect: Rect, ring: int = DEFAULT_RING,
                  inside: bool = False) -> ColorPair:
    """
    Average the pixels in a thin ring around ``rect`` on the base raster.

    Args:
        base: The page's original, never-composited raster
        rect: Target region in base-raster pixels
        ring: Strip width in pixels
        inside: Sample just inside the rect edges instead of just outside

    Returns:
        ColorPair with ``rgb(R, G, B)`` background and a contrasting text color
    """
    pixels = np.asarray(base.convert("RGB"))
    height, width = pixels.shape[:2]
    ring = max(1, int(ring))

    total = np.zeros(3, dtype=np.float64)
    count = 0
    for sx, sy, sw, sh in _border_strips(rect, ring, inside):
        if sw <= 0 or sh <= 0:
            continue
        left, top, right, bottom = Rect(sx, sy, sw, sh).to_box(width, height)
        if right <= left or bottom <= top:
            continue
        strip = pixels[top:bottom, left:right].reshape(-1, 3)
        total += strip.sum(axis=0, dtype=np.float64)
        count += strip.shape[0]

    if count == 0:
        return DEFAULT_PAIR

    mean = tuple(int(math.floor(v / count + 0.5)) for v in total)
    return ColorPair(rgb_string(mean), contrast_text_color(mean))
