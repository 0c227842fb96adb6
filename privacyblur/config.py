"""Preferences storage: atomic JSON files under the data directory."""

import json
import logging
import os
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Optional

from .colors import parse_color

logger = logging.getLogger(__name__)

LANGUAGES = ("en", "zh")


class JSONStore:
    """Filesystem helper for the data directory and atomic JSON writes."""

    ENV_VAR = "PRIVACYBLUR_HOME"
    PREFS_NAME = "prefs.json"

    @staticmethod
    def data_dir() -> Path:
        return Path(os.environ.get(JSONStore.ENV_VAR) or Path.home() / ".privacyblur")

    @staticmethod
    def prefs_file() -> Path:
        return JSONStore.data_dir() / JSONStore.PREFS_NAME

    @staticmethod
    def write_atomic(path: Path, obj):
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + ".tmp")
        try:
            tmp.write_text(json.dumps(obj, indent=2))
            os.replace(tmp, path)
        finally:
            if tmp.exists():
                tmp.unlink(missing_ok=True)

    @staticmethod
    def read(path: Path) -> Optional[dict]:
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text())
        except (OSError, ValueError) as e:
            logger.warning("Could not read %s: %s", path, e)
            return None
        return data if isinstance(data, dict) else None


@dataclass
class Settings:
    language: str = "en"
    blur_radius: int = 12
    pixel_size: int = 12
    block_color: str = "#000000"
    font_size: int = 16
    sample_ring: int = 1
    move_threshold: float = 5.0
    min_commit_size: float = 5.0
    last_file: str = ""
    window_geometry: str = ""

    def __post_init__(self):
        # Each field keeps its default's type
        for f in fields(self):
            value = getattr(self, f.name)
            kind = type(f.default)
            if isinstance(value, kind) and not isinstance(value, bool):
                continue
            try:
                if kind is str or isinstance(value, bool):
                    raise TypeError(f"expected {kind.__name__}")
                coerced = kind(value)
            except (TypeError, ValueError):
                logger.warning("Invalid preference %s=%r, using %r", f.name, value, f.default)
                coerced = f.default
            setattr(self, f.name, coerced)
        if self.language not in LANGUAGES:
            self.language = "en"
        try:
            parse_color(self.block_color)
        except ValueError:
            logger.warning("Invalid preference block_color=%r, using #000000", self.block_color)
            self.block_color = "#000000"

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Settings":
        """Load saved preferences; missing or corrupt files give defaults."""
        data = JSONStore.read(path or JSONStore.prefs_file()) or {}
        known = {f.name for f in fields(cls)}
        try:
            return cls(**{k: v for k, v in data.items() if k in known})
        except TypeError as e:
            logger.warning("Ignoring invalid preferences: %s", e)
            return cls()

    def save(self, path: Optional[Path] = None):
        JSONStore.write_atomic(path or JSONStore.prefs_file(), asdict(self))
