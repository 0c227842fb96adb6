"""
Pointer-driven interaction state machine.

Turns pointer, wheel and double-click events into store mutations and
viewport changes. Every event arrives in display (client) coordinates and
is mapped to base-raster pixels before any hit test or rect math.
"""

import logging
import math
from dataclasses import dataclass, replace
from typing import Callable, Optional

from PIL import Image

from . import compositor
from .colors import ColorPair, pair_for_background, sample_border
from .config import Settings
from .models import Action, Blur, Pixelate, Block, Text, Rect, Tool, with_rect
from .store import DocumentStore

logger = logging.getLogger(__name__)

MIN_SCALE = 0.2
MAX_SCALE = 5.0
WHEEL_IN = 1.1
WHEEL_OUT = 0.9


def clamp_scale(scale: float) -> float:
    return min(MAX_SCALE, max(MIN_SCALE, scale))


@dataclass
class Viewport:
    """Stage transform: display = raster / ratio * scale + offset."""
    scale: float = 1.0
    offset_x: float = 0.0
    offset_y: float = 0.0
    ratio_x: float = 1.0  # backing (raster) pixels per display pixel
    ratio_y: float = 1.0

    def to_raster(self, x: float, y: float) -> tuple[float, float]:
        return ((x - self.offset_x) / self.scale * self.ratio_x,
                (y - self.offset_y) / self.scale * self.ratio_y)

    def to_display(self, x: float, y: float) -> tuple[float, float]:
        return (x / self.ratio_x * self.scale + self.offset_x,
                y / self.ratio_y * self.scale + self.offset_y)

    def zoom(self, factor: float):
        self.scale = clamp_scale(self.scale * factor)

    def pan(self, dx: float, dy: float):
        self.offset_x += dx
        self.offset_y += dy


@dataclass(frozen=True)
class PointerEvent:
    pointer_id: int
    x: float
    y: float
    primary: bool = True


@dataclass(frozen=True)
class TextRequest:
    """Ask the front end for text to place in ``rect``.

    ``index`` and ``original`` identify the action being edited; both are
    None for a new label. ``page_id`` and ``generation`` pin the request to
    the page it was made on.
    """
    rect: Rect
    colors: ColorPair
    index: Optional[int] = None
    text: str = ""
    font_size: int = 16
    original: Optional[Action] = None
    page_id: str = ""
    generation: int = 0


@dataclass
class _Pinch:
    start_distance: float
    start_scale: float
    midpoint: tuple[float, float]


def _distance_and_mid(a: tuple[float, float], b: tuple[float, float]):
    dist = math.hypot(a[0] - b[0], a[1] - b[1])
    return dist, ((a[0] + b[0]) / 2, (a[1] + b[1]) / 2)


class InteractionController:
    def __init__(self, store: DocumentStore, settings: Optional[Settings] = None,
                 on_render: Optional[Callable[[Image.Image], None]] = None,
                 on_text_request: Optional[Callable[[TextRequest], None]] = None):
        self.store = store
        self.settings = settings or Settings()
        self.on_render = on_render
        self.on_text_request = on_text_request

        self.tool = Tool.MOVE
        self.viewport = Viewport()
        self.pending_text: Optional[TextRequest] = None

        self._pointers: dict[int, tuple[float, float]] = {}
        self._pinch: Optional[_Pinch] = None
        # draw state
        self._anchor: Optional[tuple[float, float]] = None
        self._draft: Optional[Rect] = None
        # move state
        self._drag_offset: Optional[tuple[float, float]] = None
        self._drag_start: Optional[tuple[float, float]] = None

    # ---------- rendering ----------
    def render(self, overlays: bool = True) -> Optional[Image.Image]:
        page = self.store.current_page
        if page is None:
            return None
        if not overlays:
            return compositor.render(page.base, page.actions)
        preview = self._build_action(self._draft) if self._draft is not None else None
        selection = None
        if self.tool is Tool.MOVE and self.store.selected_action is not None:
            selection = self.store.selected_action.rect
        return compositor.render(page.base, page.actions, preview=preview,
                                 selection=selection, preview_outline=self._draft)

    def refresh(self):
        if self.on_render is not None:
            frame = self.render()
            if frame is not None:
                self.on_render(frame)

    # ---------- tool & settings ----------
    def set_tool(self, tool: Tool):
        if tool is self.tool:
            return
        self.tool = tool
        self._reset_gesture_state()
        if tool is not Tool.MOVE:
            self.store.select(None)
        self.refresh()

    def _build_action(self, rect: Rect) -> Action:
        s = self.settings
        if self.tool is Tool.BLUR:
            return Blur(rect, radius=s.blur_radius)
        if self.tool is Tool.PIXELATE:
            return Pixelate(rect, cell_size=s.pixel_size)
        if self.tool is Tool.BLOCK:
            return Block(rect, fill_color=s.block_color)
        if self.tool is Tool.TEXT:
            return Text(rect, font_size=s.font_size)
        raise ValueError(f"{self.tool.name} does not draw actions")

    def _reset_gesture_state(self):
        self._anchor = None
        self._draft = None
        self._drag_offset = None
        self._drag_start = None

    # ---------- pointer events ----------
    def pointer_down(self, event: PointerEvent):
        if self.store.is_empty:
            return
        self._pointers[event.pointer_id] = (event.x, event.y)
        if len(self._pointers) == 2:
            self._start_pinch()
            return
        if len(self._pointers) > 2 or not event.primary:
            return

        x, y = self.viewport.to_raster(event.x, event.y)
        if self.tool is Tool.MOVE:
            self._select_at(x, y)
        else:
            self.store.select(None)
            self._anchor = (x, y)
            self._draft = Rect(x, y, 0, 0)
        self.refresh()

    def pointer_move(self, event: PointerEvent):
        if event.pointer_id in self._pointers:
            self._pointers[event.pointer_id] = (event.x, event.y)
        if self._pinch is not None and len(self._pointers) == 2:
            self._update_pinch()
            self.refresh()
            return

        x, y = self.viewport.to_raster(event.x, event.y)
        if self.tool is Tool.MOVE:
            if self._drag_offset is None or self.store.selection is None:
                return
            action = self.store.selected_action
            moved = action.rect.moved_to(x - self._drag_offset[0], y - self._drag_offset[1])
            self.store.replace_at(self.store.current_index, self.store.selection, with_rect(action, moved))
            self.refresh()
            return

        if self._anchor is None:
            return
        self._draft = Rect.from_points(self._anchor[0], self._anchor[1], x, y)
        self.refresh()

    def pointer_up(self, event: PointerEvent):
        self._pointers.pop(event.pointer_id, None)
        if self._pinch is not None:
            if len(self._pointers) < 2:
                self._pinch = None
            return

        x, y = self.viewport.to_raster(event.x, event.y)
        if self.tool is Tool.MOVE:
            self._finish_move(x, y)
        else:
            self._finish_draw(x, y)
        self.refresh()

    def _select_at(self, x: float, y: float):
        index = self.hit_test(x, y)
        self.store.select(index)
        if index is None:
            self._drag_offset = self._drag_start = None
            return
        rect = self.store.actions()[index].rect
        self._drag_offset = (x - rect.x, y - rect.y)
        self._drag_start = (x, y)

    def hit_test(self, x: float, y: float) -> Optional[int]:
        """Index of the topmost action containing the raster point, if any."""
        actions = self.store.actions()
        for i in range(len(actions) - 1, -1, -1):
            if actions[i].rect.contains(x, y):
                return i
        return None

    def _finish_move(self, x: float, y: float):
        start = self._drag_start
        self._drag_offset = self._drag_start = None
        action = self.store.selected_action
        if start is None or action is None:
            return
        if math.hypot(x - start[0], y - start[1]) < self.settings.move_threshold:
            return
        if isinstance(action, Text):
            colors = sample_border(self.store.current_page.base, action.rect, ring=self.settings.sample_ring)
            updated = replace(action, fill_color=colors.background, text_color=colors.text)
            self.store.replace_at(self.store.current_index, self.store.selection, updated)

    def _finish_draw(self, x: float, y: float):
        if self._anchor is None:
            return
        rect = Rect.from_points(self._anchor[0], self._anchor[1], x, y)
        self._anchor = self._draft = None
        if not rect.is_committable(self.settings.min_commit_size):
            logger.debug("Discarding %.1fx%.1f rect below commit size", rect.w, rect.h)
            return
        if self.tool is Tool.TEXT:
            colors = sample_border(self.store.current_page.base, rect, ring=self.settings.sample_ring)
            self._request_text(TextRequest(rect, colors, font_size=self.settings.font_size,
                                           page_id=self.store.current_page.id,
                                           generation=self.store.generation))
            return
        self.store.add_action(self.store.current_index, self._build_action(rect))

    # ---------- gestures ----------
    def _start_pinch(self):
        self._reset_gesture_state()
        a, b = list(self._pointers.values())[:2]
        dist, mid = _distance_and_mid(a, b)
        self._pinch = _Pinch(dist, self.viewport.scale, mid)

    def _update_pinch(self):
        a, b = list(self._pointers.values())[:2]
        dist, mid = _distance_and_mid(a, b)
        pinch = self._pinch
        self.viewport.scale = clamp_scale(pinch.start_scale * dist / max(1.0, pinch.start_distance))
        self.viewport.pan(mid[0] - pinch.midpoint[0], mid[1] - pinch.midpoint[1])
        pinch.midpoint = mid

    def wheel(self, delta_y: float):
        self.viewport.zoom(WHEEL_IN if delta_y < 0 else WHEEL_OUT)
        self.refresh()

    def pan_by(self, dx: float, dy: float):
        self.viewport.pan(dx, dy)
        self.refresh()

    # ---------- text labels ----------
    def _request_text(self, request: TextRequest):
        self.pending_text = request
        if self.on_text_request is not None:
            self.on_text_request(request)

    def double_click(self, x: float, y: float):
        if self.tool is not Tool.MOVE or self.store.is_empty:
            return
        rx, ry = self.viewport.to_raster(x, y)
        index = self.hit_test(rx, ry)
        if index is not None:
            self._edit_text_at(index)

    def edit_selected(self):
        if self.store.selection is not None:
            self._edit_text_at(self.store.selection)

    def _edit_text_at(self, index: int):
        action = self.store.actions()[index]
        if not isinstance(action, Text):
            return
        colors = ColorPair(action.fill_color, action.text_color)
        self._request_text(TextRequest(action.rect, colors, index=index,
                                       text=action.text, font_size=action.font_size,
                                       original=action, page_id=self.store.current_page.id,
                                       generation=self.store.generation))

    def _edit_target(self, request: TextRequest) -> Optional[int]:
        """Current index of the action ``request`` edits, if it still exists."""
        actions = self.store.actions()
        if request.index < len(actions) and actions[request.index] is request.original:
            return request.index
        for i, action in enumerate(actions):
            if action is request.original:
                return i
        return None

    def confirm_text(self, text: str, font_size: Optional[int] = None,
                     background: Optional[str] = None) -> bool:
        request = self.pending_text
        self.pending_text = None
        if request is None:
            return False
        page = self.store.current_page
        if page is None or page.id != request.page_id or self.store.generation != request.generation:
            logger.info("Dropping text for a page that is no longer shown")
            return False
        colors = pair_for_background(background) if background else request.colors
        action = Text(request.rect, fill_color=colors.background, text_color=colors.text,
                      text=text, font_size=font_size or request.font_size)
        page_index = self.store.current_index
        if request.index is not None:
            target = self._edit_target(request)
            if target is None:
                logger.info("Dropping edit of a label that was removed")
                return False
            action = with_rect(action, self.store.actions()[target].rect)
            done = self.store.replace_at(page_index, target, action)
            self.store.select(None)
        else:
            done = self.store.add_action(page_index, action)
        self.refresh()
        return done

    def cancel_text(self):
        self.pending_text = None

    def set_selected_font_size(self, size: int) -> bool:
        action = self.store.selected_action
        if not isinstance(action, Text):
            return False
        self.store.replace_at(self.store.current_index, self.store.selection, replace(action, font_size=int(size)))
        self.refresh()
        return True

    def set_selected_background(self, color: str) -> bool:
        action = self.store.selected_action
        if not isinstance(action, Text):
            return False
        colors = pair_for_background(color)
        updated = replace(action, fill_color=colors.background, text_color=colors.text)
        self.store.replace_at(self.store.current_index, self.store.selection, updated)
        self.refresh()
        return True

    # ---------- store commands ----------
    def delete_selected(self) -> bool:
        if self.store.selection is None:
            return False
        done = self.store.delete_at(self.store.current_index, self.store.selection)
        self.refresh()
        return done

    def undo(self) -> bool:
        done = self.store.undo(self.store.current_index)
        self.refresh()
        return done

    def clear_all(self) -> bool:
        done = self.store.clear_all(self.store.current_index)
        self.refresh()
        return done

    def go_to_page(self, index: int) -> bool:
        self._reset_gesture_state()
        self.pending_text = None
        done = self.store.set_current_page(index)
        if done:
            self.refresh()
        return done

    def next_page(self) -> bool:
        return self.go_to_page(self.store.current_index + 1)

    def prev_page(self) -> bool:
        return self.go_to_page(self.store.current_index - 1)
