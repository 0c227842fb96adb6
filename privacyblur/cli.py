"""Command line entry point: launch the editor or redact a file headlessly."""

import argparse
import json
import logging
import sys
from pathlib import Path

from . import export, ingest, ocr
from .config import Settings
from .models import action_from_dict
from .store import DocumentStore

logger = logging.getLogger(__name__)


def load_actions_file(path) -> dict[int, list]:
    """
    Parse an actions file into ``{page_index: [Action, ...]}``.

    Accepts ``{"pages": {"0": [...], "1": [...]}}`` or a bare list for page 0.
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, list):
        data = {"pages": {"0": data}}
    if not isinstance(data, dict) or not isinstance(data.get("pages"), dict):
        raise ValueError("actions file must be a list or an object with a 'pages' mapping")
    result = {}
    for key, items in data["pages"].items():
        if not isinstance(items, list):
            raise ValueError(f"page {key}: expected a list of actions")
        result[int(key)] = [action_from_dict(item) for item in items]
    return result


def apply_actions(store: DocumentStore, per_page: dict[int, list]) -> int:
    applied = 0
    for page_index, actions in sorted(per_page.items()):
        if store.page(page_index) is None:
            logger.warning("Skipping actions for missing page %d", page_index)
            continue
        for action in actions:
            applied += store.add_action(page_index, action)
    return applied


def auto_detect_all(store: DocumentStore, radius: float) -> int:
    processor = ocr.OCRProcessor()
    total = 0
    for i in range(store.page_count):
        store.set_current_page(i)
        total += ocr.scan_page(store, processor, radius=radius)
    store.set_current_page(0)
    return total


def main(argv=None):
    parser = argparse.ArgumentParser(description='Blur, pixelate or cover sensitive parts of images and PDFs')
    parser.add_argument('--gui', action='store_true', help='Launch GUI')
    parser.add_argument('input', nargs='?', help='Input image or PDF')
    parser.add_argument('output', nargs='?', help='Output file (.png, .jpg or .pdf)')
    parser.add_argument('--actions', help='Path to JSON actions file')
    parser.add_argument('--auto-detect', action='store_true', help='Blur emails and phone numbers found by OCR')
    parser.add_argument('--blur-radius', type=float, help='Blur radius for auto-detected regions')
    parser.add_argument('--format', choices=['png', 'jpg', 'pdf'], help='Output format (default: from extension)')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if args.gui or not args.input:
        from .gui import run_gui
        run_gui(args.input)
        return 0

    if not args.output:
        parser.error('output file required in CLI mode')

    settings = Settings.load()
    store = DocumentStore()
    if not store.load_pages(ingest.load_path(args.input)):
        print(f"Error: could not load {args.input}", file=sys.stderr)
        return 1

    if args.actions:
        try:
            per_page = load_actions_file(args.actions)
        except (OSError, ValueError) as e:
            print(f"Error: bad actions file {args.actions}: {e}", file=sys.stderr)
            return 1
        print(f"Applied {apply_actions(store, per_page)} action(s)")

    if args.auto_detect:
        radius = args.blur_radius if args.blur_radius is not None else settings.blur_radius
        print(f"Auto-detect blurred {auto_detect_all(store, radius)} region(s)")

    try:
        path = export.export_document(store, args.output, args.format)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(f"Saved to {Path(path)}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
