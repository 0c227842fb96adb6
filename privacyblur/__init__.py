"""
privacyblur - redact regions of images and PDFs.

Draw rectangles over a page and obscure them with a blur, a pixel mosaic,
an opaque block or a text label, then export the composited result as
PNG, JPEG or a multi-page PDF.
"""

__version__ = "0.3.0"
