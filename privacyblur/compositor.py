"""
Compositing engine.

Layers a page's actions over its base raster, back to front in list order.
Blur and pixelate always read their source pixels from the base raster, so
overlapping actions never compound each other's artifacts.
"""

import logging
import math
from functools import lru_cache
from typing import Optional, Sequence

from PIL import Image, ImageDraw, ImageFilter, ImageFont

from .colors import parse_color
from .models import Action, Blur, Pixelate, Block, Text, Rect

logger = logging.getLogger(__name__)

TEXT_PADDING = 8
SELECTION_COLOR = "#3b82f6"
SELECTION_WIDTH = 2
MARKER_SIZE = 6
PREVIEW_COLOR = "#22c55e"
PREVIEW_DASH = 6

FONT_CANDIDATES = (
    "DejaVuSans-Bold.ttf",
    "LiberationSans-Bold.ttf",
    "Arial Bold.ttf",
    "arialbd.ttf",
)


@lru_cache(maxsize=32)
def load_font(size: int) -> ImageFont.ImageFont:
    """Bold TrueType font at ``size`` px, falling back to Pillow's bundled font."""
    for name in FONT_CANDIDATES:
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue
    logger.debug("No TrueType font found, using Pillow default at %spx", size)
    return ImageFont.load_default(size=size)


def mosaic_grid(rect: Rect, cell_size: int) -> tuple[int, int]:
    """Number of (columns, rows) in the pixelation mosaic for ``rect``."""
    cell = max(1, int(cell_size))
    return max(1, math.floor(rect.w / cell)), max(1, math.floor(rect.h / cell))


def _render_blur(canvas: Image.Image, base: Image.Image, action: Blur):
    box = action.rect.to_box(*base.size)
    left, top, right, bottom = box
    if right <= left or bottom <= top:
        return
    radius = max(0.0, float(action.radius))
    pad = int(math.ceil(radius * 3))
    outer = (max(0, left - pad), max(0, top - pad),
             min(base.width, right + pad), min(base.height, bottom + pad))
    blurred = base.crop(outer).filter(ImageFilter.GaussianBlur(radius))
    inner = (left - outer[0], top - outer[1], right - outer[0], bottom - outer[1])
    canvas.paste(blurred.crop(inner), (left, top))


def _render_pixelate(canvas: Image.Image, base: Image.Image, action: Pixelate):
    left, top, right, bottom = action.rect.to_box(*base.size)
    if right <= left or bottom <= top:
        return
    cols, rows = mosaic_grid(action.rect, action.cell_size)
    region = base.crop((left, top, right, bottom))
    small = region.resize((cols, rows), Image.Resampling.BOX)
    mosaic = small.resize(region.size, Image.Resampling.NEAREST)
    canvas.paste(mosaic, (left, top))


def _render_block(canvas: Image.Image, base: Image.Image, action: Block):
    left, top, right, bottom = action.rect.to_box(*canvas.size)
    if right <= left or bottom <= top:
        return
    canvas.paste(parse_color(action.fill_color), (left, top, right, bottom))


def _render_text(canvas: Image.Image, base: Image.Image, action: Text):
    left, top, right, bottom = action.rect.to_box(*canvas.size)
    if right > left and bottom > top:
        canvas.paste(parse_color(action.fill_color), (left, top, right, bottom))

    max_width = int(action.rect.w) - TEXT_PADDING
    if not action.text or max_width <= 0:
        return

    font = load_font(int(action.font_size))
    x0, y0, x1, y1 = font.getbbox(action.text)
    text_w, text_h = x1 - x0, y1 - y0
    if text_w <= 0 or text_h <= 0:
        return

    # Glyph coverage mask, squeezed horizontally when it overflows the rect
    mask = Image.new("L", (text_w, text_h), 0)
    ImageDraw.Draw(mask).text((-x0, -y0), action.text, font=font, fill=255)
    if text_w > max_width:
        mask = mask.resize((max_width, text_h), Image.Resampling.LANCZOS)
        text_w = max_width

    cx, cy = action.rect.center
    origin = (int(math.floor(cx - text_w / 2 + 0.5)), int(math.floor(cy - text_h / 2 + 0.5)))
    ink = Image.new("RGB", mask.size, parse_color(action.text_color))
    canvas.paste(ink, origin, mask)


_RENDERERS = {
    Blur: _render_blur,
    Pixelate: _render_pixelate,
    Block: _render_block,
    Text: _render_text,
}


def apply_action(canvas: Image.Image, base: Image.Image, action: Action):
    """Draw one action onto ``canvas`` in place, sourcing pixels from ``base``."""
    renderer = _RENDERERS.get(type(action))
    if renderer is None:
        raise TypeError(f"Cannot render {type(action).__name__}")
    renderer(canvas, base, action)


def _dashed_rectangle(draw: ImageDraw.ImageDraw, rect: Rect, color: str, dash: int = PREVIEW_DASH):
    x0, y0, x1, y1 = rect.x, rect.y, rect.right, rect.bottom
    edges = [((x0, y0), (x1, y0)), ((x1, y0), (x1, y1)), ((x1, y1), (x0, y1)), ((x0, y1), (x0, y0))]
    for (ax, ay), (bx, by) in edges:
        length = math.hypot(bx - ax, by - ay)
        if length == 0:
            continue
        ux, uy = (bx - ax) / length, (by - ay) / length
        pos = 0.0
        while pos < length:
            end = min(pos + dash, length)
            draw.line([(ax + ux * pos, ay + uy * pos), (ax + ux * end, ay + uy * end)], fill=color, width=2)
            pos += dash * 2


def draw_selection(canvas: Image.Image, rect: Rect):
    """Selection stroke plus corner markers at top-left and bottom-right."""
    draw = ImageDraw.Draw(canvas)
    draw.rectangle([rect.x, rect.y, rect.right, rect.bottom], outline=SELECTION_COLOR, width=SELECTION_WIDTH)
    half = MARKER_SIZE / 2
    for mx, my in ((rect.x, rect.y), (rect.right, rect.bottom)):
        draw.rectangle([mx - half, my - half, mx + half, my + half], fill=SELECTION_COLOR)


def render(base: Image.Image, actions: Sequence[Action], preview: Optional[Action] = None,
           selection: Optional[Rect] = None, preview_outline: Optional[Rect] = None) -> Image.Image:
    """
    Composite ``actions`` over ``base`` and return a new RGB image.

    Args:
        base: Pristine page raster; never modified
        actions: Ordered actions; later entries draw on top
        preview: Uncommitted action being drawn, composited last
        selection: Rect to highlight (cosmetic, leave out for exports)
        preview_outline: Rect to outline with a dashed stroke while drawing

    Returns:
        The composited frame
    """
    base = base if base.mode == "RGB" else base.convert("RGB")
    canvas = base.copy()
    for action in actions:
        apply_action(canvas, base, action)
    if preview is not None:
        apply_action(canvas, base, preview)
    if preview_outline is not None:
        _dashed_rectangle(ImageDraw.Draw(canvas), preview_outline, PREVIEW_COLOR)
    if selection is not None:
        draw_selection(canvas, selection)
    return canvas
