"""
OCR-based detection of emails and phone numbers.

Text spans come from Tesseract (via pytesseract) on an OpenCV-cleaned copy
of the page; spans that look like an email address or a phone number get a
Blur action over their bounding box.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np
import pytesseract
from PIL import Image

from .models import Blur, Rect, DEFAULT_BLUR_RADIUS
from .store import DocumentStore

logger = logging.getLogger(__name__)

SENSITIVE_PATTERNS = [
    re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"),  # Email
    re.compile(r"(?:\+?\d{1,3}[\s.-]?)?\(?\d{3}\)?[\s.-]?\d{3}[\s.-]?\d{4}\b"),  # Phone numbers
    re.compile(r"\b1[3-9]\d{9}\b"),  # Mainland China mobile
]


@dataclass(frozen=True)
class TextSpan:
    text: str
    box: Rect
    line: tuple = ()  # (block, paragraph, line) from Tesseract


class OCRProcessor:
    """Run Tesseract over page rasters."""

    def __init__(self, lang: str = "eng", preprocess: bool = True):
        self.lang = lang
        self.preprocess = preprocess

    def preprocess_image(self, img: Image.Image) -> Image.Image:
        """Grayscale + Otsu threshold for cleaner OCR."""
        gray = cv2.cvtColor(np.array(img.convert("RGB")), cv2.COLOR_RGB2GRAY)
        _, thresh = cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
        return Image.fromarray(thresh)

    def recognize(self, img: Image.Image) -> list[TextSpan]:
        """Word-level text spans with bounding boxes in ``img`` pixels."""
        source = self.preprocess_image(img) if self.preprocess else img
        data = pytesseract.image_to_data(source, lang=self.lang, output_type=pytesseract.Output.DICT)
        has_lines = all(k in data for k in ("block_num", "par_num", "line_num"))

        spans = []
        for i, raw in enumerate(data.get("text", [])):
            text = (raw or "").strip()
            if not text:
                continue
            w, h = int(data["width"][i]), int(data["height"][i])
            if w <= 0 or h <= 0:
                continue
            if has_lines:
                line = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
            else:
                line = (i,)
            spans.append(TextSpan(text, Rect(int(data["left"][i]), int(data["top"][i]), w, h), line))
        return spans


def is_sensitive(text: str) -> bool:
    return any(p.search(text) for p in SENSITIVE_PATTERNS)


def _union(boxes: list[Rect]) -> Rect:
    left = min(b.x for b in boxes)
    top = min(b.y for b in boxes)
    return Rect(left, top, max(b.right for b in boxes) - left, max(b.bottom for b in boxes) - top)


def sensitive_regions(spans: list[TextSpan]) -> list[Rect]:
    """
    Boxes covering every email or phone number in ``spans``.

    Words are joined per Tesseract line before matching, since a number
    like ``(555) 123-4567`` comes back as several words. Each match yields
    the union of the boxes of the words it touches.
    """
    lines: dict[tuple, list[TextSpan]] = {}
    for span in spans:
        lines.setdefault(span.line, []).append(span)

    regions = []
    for words in lines.values():
        offsets = []
        pos = 0
        for word in words:
            offsets.append((pos, pos + len(word.text)))
            pos += len(word.text) + 1
        text = " ".join(w.text for w in words)

        hits: list[list[TextSpan]] = []
        for pattern in SENSITIVE_PATTERNS:
            for m in pattern.finditer(text):
                touched = [w for w, (start, end) in zip(words, offsets) if start < m.end() and m.start() < end]
                if touched and touched not in hits:
                    hits.append(touched)
        regions.extend(_union([w.box for w in touched]) for touched in hits)
    return regions


def blur_actions(spans: list[TextSpan], radius: float = DEFAULT_BLUR_RADIUS) -> list[Blur]:
    return [Blur(rect, radius=radius) for rect in sensitive_regions(spans)]


def scan_page(store: DocumentStore, processor: Optional[OCRProcessor] = None,
              radius: float = DEFAULT_BLUR_RADIUS) -> int:
    """
    Blur every email or phone number found on the current page.

    Returns the number of actions added; 0 when a scan is already running,
    the document is empty, or OCR fails. The scan is always released.
    """
    ticket = store.begin_scan()
    if ticket is None:
        return 0
    processor = processor or OCRProcessor()
    try:
        actions = blur_actions(processor.recognize(store.current_page.base), radius)
    except Exception as e:
        logger.error("OCR failed: %s", e)
        store.abort_scan(ticket)
        return 0
    added = store.finish_scan(ticket, actions)
    logger.info("Auto-detect added %d blur region(s)", added)
    return added
