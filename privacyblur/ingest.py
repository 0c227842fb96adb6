"""
Load images and PDFs into page rasters.

Images become a single RGB raster. PDFs are rendered page by page through
PyMuPDF at 2x so text stays crisp when zoomed. Anything that cannot be
decoded yields an empty list; the caller keeps its current document.
"""

import io
import logging
from pathlib import Path
from typing import Union

import fitz  # PyMuPDF
from PIL import Image, ImageGrab, UnidentifiedImageError

logger = logging.getLogger(__name__)

PDF_RENDER_SCALE = 2.0
PDF_MAGIC = b"%PDF"


def render_pdf_page(page: fitz.Page, scale: float = PDF_RENDER_SCALE) -> Image.Image:
    """Rasterise one PDF page to an RGB image."""
    pix = page.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
    return Image.frombytes("RGB", (pix.width, pix.height), pix.samples)


def load_pdf(data: bytes, scale: float = PDF_RENDER_SCALE) -> list[Image.Image]:
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except (RuntimeError, ValueError) as e:  # FileDataError is a RuntimeError
        logger.warning("Could not open PDF: %s", e)
        return []
    try:
        return [render_pdf_page(page, scale) for page in doc]
    except RuntimeError as e:
        logger.warning("Could not render PDF: %s", e)
        return []
    finally:
        doc.close()


def load_image(data: bytes) -> list[Image.Image]:
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            return [_to_rgb(img)]
    except (UnidentifiedImageError, OSError, ValueError) as e:
        logger.warning("Could not decode image: %s", e)
        return []


def _to_rgb(img: Image.Image) -> Image.Image:
    """Flatten onto white so transparent areas don't turn black."""
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        flat = Image.new("RGB", rgba.size, (255, 255, 255))
        flat.paste(rgba, mask=rgba.getchannel("A"))
        return flat
    return img.convert("RGB")


def load_bytes(data: bytes) -> list[Image.Image]:
    """Decode raw file contents, sniffing PDFs by their header."""
    if not data:
        return []
    if data.lstrip()[:4] == PDF_MAGIC:
        return load_pdf(data)
    return load_image(data)


def load_path(path: Union[str, Path]) -> list[Image.Image]:
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        logger.warning("Could not read %s: %s", path, e)
        return []
    pages = load_bytes(data)
    if pages:
        logger.info("Loaded %s (%d page(s))", path.name, len(pages))
    return pages


def grab_clipboard() -> list[Image.Image]:
    """Image currently on the system clipboard, or the first loadable file copied."""
    try:
        content = ImageGrab.grabclipboard()
    except (OSError, NotImplementedError) as e:
        logger.warning("Clipboard not available: %s", e)
        return []
    if isinstance(content, Image.Image):
        return [_to_rgb(content)]
    if isinstance(content, list):
        for name in content:
            pages = load_path(name)
            if pages:
                return pages
    return []
