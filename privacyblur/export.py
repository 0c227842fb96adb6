"""
Export composited pages as PNG, JPEG, a multi-page PDF, or to the clipboard.

Exports never include selection or preview overlays.
"""

import io
import logging
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Iterable, Optional, Union

import fitz  # PyMuPDF
from PIL import Image

from . import compositor
from .store import DocumentStore, Page

logger = logging.getLogger(__name__)

JPEG_QUALITY = 92
FORMATS = {
    ".png": "png",
    ".jpg": "jpg",
    ".jpeg": "jpg",
    ".pdf": "pdf",
}


def render_page(page: Page) -> Image.Image:
    return compositor.render(page.base, page.actions)


def encode_png(image: Image.Image) -> bytes:
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


def encode_jpeg(image: Image.Image, quality: int = JPEG_QUALITY) -> bytes:
    buf = io.BytesIO()
    image.convert("RGB").save(buf, format="JPEG", quality=quality)
    return buf.getvalue()


def build_pdf(images: Iterable[Image.Image], quality: int = JPEG_QUALITY) -> bytes:
    """One page per raster, each page sized to its raster in pixels."""
    doc = fitz.open()
    try:
        for image in images:
            page = doc.new_page(width=image.width, height=image.height)
            page.insert_image(page.rect, stream=encode_jpeg(image, quality))
        if doc.page_count == 0:
            raise ValueError("Cannot build a PDF without pages")
        return doc.tobytes(garbage=4, deflate=True)
    finally:
        doc.close()


def format_for(path: Union[str, Path], fmt: Optional[str] = None) -> str:
    if fmt:
        fmt = fmt.lower().lstrip(".")
        fmt = "jpg" if fmt == "jpeg" else fmt
        if fmt not in FORMATS.values():
            raise ValueError(f"Unsupported export format: {fmt}")
        return fmt
    suffix = Path(path).suffix.lower()
    if suffix not in FORMATS:
        raise ValueError(f"Cannot infer export format from {Path(path).name!r}")
    return FORMATS[suffix]


def export_document(store: DocumentStore, path: Union[str, Path], fmt: Optional[str] = None) -> Path:
    """
    Write the redacted document to ``path``.

    PNG and JPEG export the current page; PDF exports every page.
    """
    if store.is_empty:
        raise ValueError("Nothing to export")
    path = Path(path)
    fmt = format_for(path, fmt)
    if fmt == "pdf":
        data = build_pdf(render_page(p) for p in store.pages)
    elif fmt == "png":
        data = encode_png(render_page(store.current_page))
    else:
        data = encode_jpeg(render_page(store.current_page))
    path.write_bytes(data)
    logger.info("Exported %s (%s)", path, fmt)
    return path


def _clipboard_commands() -> list[list[str]]:
    if sys.platform == "darwin":
        script = ('set the clipboard to '
                  '(read (POSIX file "/dev/stdin") as «class PNGf»)')
        return [["osascript", "-e", script]]
    if sys.platform.startswith("win"):
        ps = ("Add-Type -AssemblyName System.Windows.Forms,System.Drawing;"
              "$s=[Console]::OpenStandardInput();$m=New-Object IO.MemoryStream;$s.CopyTo($m);"
              "[Windows.Forms.Clipboard]::SetImage([Drawing.Image]::FromStream($m))")
        return [["powershell", "-NoProfile", "-STA", "-Command", ps]]
    return [
        ["wl-copy", "--type", "image/png"],
        ["xclip", "-selection", "clipboard", "-t", "image/png", "-i"],
    ]


def copy_to_clipboard(image: Image.Image) -> bool:
    """Put ``image`` on the system clipboard as PNG. Returns False on failure."""
    data = encode_png(image)
    for cmd in _clipboard_commands():
        if shutil.which(cmd[0]) is None:
            continue
        try:
            subprocess.run(cmd, input=data, check=True, capture_output=True, timeout=10)
        except (subprocess.SubprocessError, OSError) as e:
            logger.warning("Clipboard copy via %s failed: %s", cmd[0], e)
            continue
        return True
    logger.warning("No clipboard tool available")
    return False
