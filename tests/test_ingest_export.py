import io
import subprocess
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import fitz  # PyMuPDF
from PIL import Image

from privacyblur import export, ingest
from privacyblur.models import Block, Rect
from privacyblur.store import DocumentStore


def make_pdf(pages=2):
    doc = fitz.open()
    for i in range(pages):
        page = doc.new_page(width=595, height=842)
        page.insert_text((72, 72), f"Page {i + 1}")
    data = doc.tobytes()
    doc.close()
    return data


def png_bytes(img):
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


class IngestTest(unittest.TestCase):
    def test_pdf_rendered_at_double_scale(self):
        pages = ingest.load_bytes(make_pdf(2))
        self.assertEqual(len(pages), 2)
        self.assertEqual(pages[0].size, (1190, 1684))
        self.assertEqual(pages[0].mode, "RGB")

    def test_image_single_page(self):
        pages = ingest.load_bytes(png_bytes(Image.new("RGB", (30, 20), "red")))
        self.assertEqual([p.size for p in pages], [(30, 20)])

    def test_transparency_flattened_on_white(self):
        pages = ingest.load_bytes(png_bytes(Image.new("RGBA", (10, 10), (0, 0, 0, 0))))
        self.assertEqual(pages[0].getpixel((5, 5)), (255, 255, 255))

    def test_garbage_gives_no_pages(self):
        self.assertEqual(ingest.load_bytes(b"not an image"), [])
        self.assertEqual(ingest.load_bytes(b"%PDF-1.7 truncated"), [])
        self.assertEqual(ingest.load_bytes(b""), [])

    def test_missing_path(self):
        self.assertEqual(ingest.load_path("/nonexistent/file.png"), [])

    def test_clipboard_image(self):
        with mock.patch.object(ingest.ImageGrab, "grabclipboard", return_value=Image.new("RGB", (8, 8))):
            self.assertEqual(len(ingest.grab_clipboard()), 1)
        with mock.patch.object(ingest.ImageGrab, "grabclipboard", return_value=None):
            self.assertEqual(ingest.grab_clipboard(), [])


class ExportTest(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self.tmp.name)
        self.store = DocumentStore()
        self.store.load_pages([Image.new("RGB", (120, 80), "white"), Image.new("RGB", (60, 60), "white")])
        self.store.add_action(0, Block(Rect(0, 0, 40, 40), fill_color="#0000ff"))

    def tearDown(self):
        self.tmp.cleanup()

    def test_png_is_current_page(self):
        path = export.export_document(self.store, self.dir / "out.png")
        with Image.open(path) as img:
            self.assertEqual(img.size, (120, 80))
            self.assertEqual(img.convert("RGB").getpixel((10, 10)), (0, 0, 255))

    def test_jpeg_format_override(self):
        path = export.export_document(self.store, self.dir / "out.bin", "jpeg")
        with Image.open(path) as img:
            self.assertEqual(img.format, "JPEG")

    def test_pdf_has_every_page(self):
        path = export.export_document(self.store, self.dir / "out.pdf")
        with fitz.open(path) as doc:
            self.assertEqual(doc.page_count, 2)
            self.assertEqual((doc[0].rect.width, doc[0].rect.height), (120, 80))

    def test_unknown_format(self):
        with self.assertRaises(ValueError):
            export.export_document(self.store, self.dir / "out.gif")

    def test_empty_store(self):
        with self.assertRaises(ValueError):
            export.export_document(DocumentStore(), self.dir / "out.png")


class ClipboardTest(unittest.TestCase):
    def setUp(self):
        patcher = mock.patch.object(export, "_clipboard_commands", return_value=[["xclip", "-i"]])
        patcher.start()
        self.addCleanup(patcher.stop)
        self.image = Image.new("RGB", (4, 4))

    def test_copy_pipes_png(self):
        with mock.patch.object(export.shutil, "which", return_value="/usr/bin/xclip"), \
                mock.patch.object(export.subprocess, "run") as run:
            self.assertTrue(export.copy_to_clipboard(self.image))
        self.assertTrue(run.call_args.kwargs["input"].startswith(b"\x89PNG"))

    def test_no_tool(self):
        with mock.patch.object(export.shutil, "which", return_value=None):
            self.assertFalse(export.copy_to_clipboard(self.image))

    def test_tool_failure(self):
        error = subprocess.CalledProcessError(1, "xclip")
        with mock.patch.object(export.shutil, "which", return_value="/usr/bin/xclip"), \
                mock.patch.object(export.subprocess, "run", side_effect=error):
            self.assertFalse(export.copy_to_clipboard(self.image))


if __name__ == '__main__':
    unittest.main()
