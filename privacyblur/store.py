"""
Per-page action lists, undo, navigation and selection.

Every mutation builds a new action tuple and a new Page value, so a reader
holding the previous page (a render in flight, an OCR job) never sees a
half-edited list. Index-based operations on a bad index are no-ops that
return False.
"""

import logging
import uuid
from dataclasses import dataclass, field, replace
from typing import Iterable, Optional

from PIL import Image

from .models import Action

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Page:
    id: str
    base: Image.Image = field(compare=False, repr=False)
    actions: tuple = ()

    @property
    def size(self) -> tuple[int, int]:
        return self.base.size


@dataclass(frozen=True)
class ScanTicket:
    """Identity of the page an OCR scan was started for."""
    generation: int
    page_id: str


class DocumentStore:
    """Ordered pages plus the current page index and selection."""

    def __init__(self):
        self.pages: list[Page] = []
        self.current_index = 0
        self.generation = 0
        self.selection: Optional[int] = None
        self._active_scan: Optional[ScanTicket] = None

    # ---------- document ----------
    def load_pages(self, rasters: Iterable[Image.Image]) -> bool:
        """Replace the page set. An empty input leaves the document untouched."""
        pages = [Page(uuid.uuid4().hex, img.convert("RGB")) for img in rasters]
        if not pages:
            logger.warning("No pages to load; keeping current document")
            return False
        self.pages = pages
        self.current_index = 0
        self.generation += 1
        self.selection = None
        self._active_scan = None
        logger.info("Loaded %d page(s)", len(pages))
        return True

    @property
    def is_empty(self) -> bool:
        return not self.pages

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def current_page(self) -> Optional[Page]:
        if not self.pages:
            return None
        return self.pages[self.current_index]

    def page(self, page_index: int) -> Optional[Page]:
        if 0 <= page_index < len(self.pages):
            return self.pages[page_index]
        return None

    def actions(self, page_index: Optional[int] = None) -> tuple:
        page = self.page(self.current_index if page_index is None else page_index)
        return page.actions if page else ()

    def set_current_page(self, index: int) -> bool:
        if not 0 <= index < len(self.pages) or index == self.current_index:
            return False
        self.current_index = index
        self.selection = None
        return True

    # ---------- selection ----------
    def select(self, index: Optional[int]) -> bool:
        if index is None or 0 <= index < len(self.actions()):
            self.selection = index
            return True
        return False

    @property
    def selected_action(self) -> Optional[Action]:
        acts = self.actions()
        if self.selection is not None and 0 <= self.selection < len(acts):
            return acts[self.selection]
        return None

    # ---------- mutation API ----------
    def _set_actions(self, page_index: int, actions: tuple):
        self.pages[page_index] = replace(self.pages[page_index], actions=actions)

    def add_action(self, page_index: int, action: Action) -> bool:
        page = self.page(page_index)
        if page is None:
            return False
        self._set_actions(page_index, page.actions + (action,))
        self.selection = None
        return True

    def undo(self, page_index: int) -> bool:
        page = self.page(page_index)
        self.selection = None
        if page is None or not page.actions:
            return False
        self._set_actions(page_index, page.actions[:-1])
        return True

    def delete_at(self, page_index: int, index: int) -> bool:
        page = self.page(page_index)
        if page is None or not 0 <= index < len(page.actions):
            return False
        self._set_actions(page_index, page.actions[:index] + page.actions[index + 1:])
        self.selection = None
        return True

    def replace_at(self, page_index: int, index: int, action: Action) -> bool:
        """Swap the action at ``index`` in place; z-order and selection are kept."""
        page = self.page(page_index)
        if page is None or not 0 <= index < len(page.actions):
            return False
        acts = list(page.actions)
        acts[index] = action
        self._set_actions(page_index, tuple(acts))
        return True

    def clear_all(self, page_index: int) -> bool:
        page = self.page(page_index)
        if page is None:
            return False
        self._set_actions(page_index, ())
        self.selection = None
        return True

    # ---------- OCR scans ----------
    @property
    def scanning(self) -> bool:
        return self._active_scan is not None

    def begin_scan(self) -> Optional[ScanTicket]:
        """Start a scan of the current page, or return None if one is already running."""
        page = self.current_page
        if page is None or self._active_scan is not None:
            return None
        self._active_scan = ScanTicket(self.generation, page.id)
        return self._active_scan

    def _page_index_for(self, ticket: ScanTicket) -> Optional[int]:
        if ticket.generation != self.generation:
            return None
        for i, page in enumerate(self.pages):
            if page.id == ticket.page_id:
                return i
        return None

    def abort_scan(self, ticket: ScanTicket):
        if self._active_scan == ticket:
            self._active_scan = None

    def finish_scan(self, ticket: ScanTicket, actions: Iterable[Action]) -> int:
        """Merge scan results into the page they were computed for.

        Results for a page that no longer exists in the current document
        are dropped. Returns the number of actions added.
        """
        self.abort_scan(ticket)
        page_index = self._page_index_for(ticket)
        if page_index is None:
            logger.info("Discarding stale scan results for page %s", ticket.page_id)
            return 0
        new = tuple(actions)
        if new:
            self._set_actions(page_index, self.pages[page_index].actions + new)
            self.selection = None
        return len(new)
