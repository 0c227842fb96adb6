"""
Data models for redaction actions.

All geometry is expressed in base-raster pixels, never display pixels.
Actions are immutable; edits build a new action and replace the old one
at its index.
"""

import math
from dataclasses import dataclass, replace, asdict
from enum import Enum, auto
from typing import ClassVar, Union

MIN_COMMIT_SIZE = 5.0

DEFAULT_BLUR_RADIUS = 12
DEFAULT_CELL_SIZE = 12
DEFAULT_FONT_SIZE = 16


class Tool(Enum):
    """Active tool; MOVE selects and drags, the rest draw new actions."""
    MOVE = auto()
    BLUR = auto()
    PIXELATE = auto()
    BLOCK = auto()
    TEXT = auto()


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle in base-raster pixel coordinates."""
    x: float
    y: float
    w: float
    h: float

    def __post_init__(self):
        if self.w < 0 or self.h < 0:
            raise ValueError(f"Rect size must be non-negative, got {self.w}x{self.h}")

    @classmethod
    def from_points(cls, x0: float, y0: float, x1: float, y1: float) -> "Rect":
        return cls(min(x0, x1), min(y0, y1), abs(x1 - x0), abs(y1 - y0))

    @property
    def right(self) -> float:
        return self.x + self.w

    @property
    def bottom(self) -> float:
        return self.y + self.h

    @property
    def center(self) -> tuple[float, float]:
        return self.x + self.w / 2, self.y + self.h / 2

    def contains(self, px: float, py: float) -> bool:
        return self.x <= px <= self.right and self.y <= py <= self.bottom

    def moved_to(self, x: float, y: float) -> "Rect":
        return replace(self, x=x, y=y)

    def translated(self, dx: float, dy: float) -> "Rect":
        return replace(self, x=self.x + dx, y=self.y + dy)

    def is_committable(self, min_size: float = MIN_COMMIT_SIZE) -> bool:
        return self.w >= min_size and self.h >= min_size

    def to_box(self, width: int, height: int) -> tuple[int, int, int, int]:
        """Integer (left, top, right, bottom) box clipped to an image of the given size.

        The box may be empty (right <= left) when the rect lies outside the image.
        """
        left = min(max(_round_half_up(self.x), 0), width)
        top = min(max(_round_half_up(self.y), 0), height)
        right = min(max(_round_half_up(self.right), 0), width)
        bottom = min(max(_round_half_up(self.bottom), 0), height)
        return left, top, right, bottom


@dataclass(frozen=True)
class Blur:
    rect: Rect
    radius: float = DEFAULT_BLUR_RADIUS

    kind: ClassVar[str] = "blur"


@dataclass(frozen=True)
class Pixelate:
    rect: Rect
    cell_size: int = DEFAULT_CELL_SIZE

    kind: ClassVar[str] = "pixelate"


@dataclass(frozen=True)
class Block:
    rect: Rect
    fill_color: str = "#000000"

    kind: ClassVar[str] = "block"


@dataclass(frozen=True)
class Text:
    rect: Rect
    fill_color: str = "#000000"
    text_color: str = "#ffffff"
    text: str = ""
    font_size: int = DEFAULT_FONT_SIZE

    kind: ClassVar[str] = "text"


Action = Union[Blur, Pixelate, Block, Text]

ACTION_TYPES: dict[str, type] = {cls.kind: cls for cls in (Blur, Pixelate, Block, Text)}


def with_rect(action: Action, rect: Rect) -> Action:
    """Return a copy of ``action`` placed at ``rect``."""
    return replace(action, rect=rect)


def action_to_dict(action: Action) -> dict:
    """Convert an action to a JSON-friendly dict tagged with its ``type``."""
    data = asdict(action)
    data["type"] = action.kind
    return data


def action_from_dict(data: dict) -> Action:
    """Build an action from the dict form produced by :func:`action_to_dict`."""
    if not isinstance(data, dict):
        raise ValueError(f"Action must be an object, got {data!r}")
    kind = data.get("type")
    cls = ACTION_TYPES.get(kind)
    if cls is None:
        raise ValueError(f"Unknown action type: {kind!r}")
    r = data.get("rect") or {}
    try:
        rect = Rect(float(r["x"]), float(r["y"]), float(r["w"]), float(r["h"]))
    except (KeyError, TypeError) as e:
        raise ValueError(f"Invalid rect for {kind} action: {r!r}") from e
    params = {k: v for k, v in data.items() if k not in ("type", "rect")}
    try:
        return cls(rect=rect, **params)
    except TypeError as e:
        raise ValueError(f"Invalid parameters for {kind} action: {params!r}") from e
