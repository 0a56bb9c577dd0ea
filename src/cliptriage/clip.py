from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field, replace
from pathlib import Path

SUPPORTED_EXTENSIONS = {".mov", ".mp4", ".m4v", ".avi", ".mkv", ".mts", ".webm"}
MAX_RATING = 5

_DIGITS_RE = re.compile(r"(\d+)")


@dataclass
class Clip:
    id: str
    path: Path
    filename: str
    duration: float = 0.0
    width: int = 0
    height: int = 0
    file_size: int = 0
    rating: int = 0
    tags: list[str] = field(default_factory=list)

    @classmethod
    def from_path(cls, path: Path, clip_id: str | None = None) -> Clip:
        try:
            size = path.stat().st_size
        except OSError:
            size = 0
        return cls(
            id=clip_id or uuid.uuid4().hex,
            path=path,
            filename=path.name,
            file_size=size,
        )

    @property
    def is_untouched(self) -> bool:
        return self.rating == 0 and not self.tags

    @property
    def primary_tag(self) -> str | None:
        return self.tags[0] if self.tags else None

    @property
    def resolution(self) -> str | None:
        if self.width > 0 and self.height > 0:
            return f"{self.width}x{self.height}"
        return None

    def copy(self) -> Clip:
        return replace(self, tags=list(self.tags))


def is_supported_media(path: Path) -> bool:
    return path.suffix.lower() in SUPPORTED_EXTENSIONS


def natural_sort_key(name: str) -> list[tuple[int, int, str]]:
    """Sort key that orders embedded numbers numerically ("clip2" < "clip10")."""
    parts: list[tuple[int, int, str]] = []
    for chunk in _DIGITS_RE.split(name.casefold()):
        if not chunk:
            continue
        parts.append((0, int(chunk), "") if chunk.isdigit() else (1, 0, chunk))
    return parts


def format_total_duration(seconds: float) -> str:
    total_minutes = int(seconds) // 60
    secs = int(seconds) % 60
    if total_minutes > 60:
        return f"{total_minutes // 60}h {total_minutes % 60}m"
    return f"{total_minutes}m {secs}s"
