from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from .clip import MAX_RATING, Clip
from .registry import ClipRegistry

SESSION_VERSION = 1


def save_session(registry: ClipRegistry, path: Path) -> str | None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        return f"Failed to create session directory: {path.parent} ({exc})"
    payload = {
        "version": SESSION_VERSION,
        "availableTags": list(registry.available_tags),
        "clips": [_clip_to_dict(clip) for clip in registry],
    }
    try:
        path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
    except OSError as exc:
        return f"Failed to write session: {path} ({exc})"
    return None


def load_session(
    path: Path, default_tags: list[str] | None = None
) -> tuple[ClipRegistry, str | None]:
    if not path.exists():
        return ClipRegistry(available_tags=default_tags), None
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        return ClipRegistry(available_tags=default_tags), f"Failed to read session: {path} ({exc})"
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return ClipRegistry(available_tags=default_tags), f"Session file is not valid JSON: {path}"
    if not isinstance(data, dict):
        return (
            ClipRegistry(available_tags=default_tags),
            f"Session file must be a JSON object: {path}",
        )

    tags = data.get("availableTags")
    available = (
        [tag for tag in tags if isinstance(tag, str) and tag]
        if isinstance(tags, list)
        else default_tags
    )
    clips: list[Clip] = []
    skipped = 0
    raw_clips = data.get("clips")
    for item in raw_clips if isinstance(raw_clips, list) else []:
        clip = _clip_from_dict(item)
        if clip is None:
            skipped += 1
        else:
            clips.append(clip)
    registry = ClipRegistry(clips, available_tags=available)
    if skipped:
        return registry, f"Skipped {skipped} malformed clip entries in {path}"
    return registry, None


def _clip_to_dict(clip: Clip) -> dict[str, Any]:
    return {
        "id": clip.id,
        "path": str(clip.path),
        "filename": clip.filename,
        "duration": clip.duration,
        "width": clip.width,
        "height": clip.height,
        "fileSize": clip.file_size,
        "rating": clip.rating,
        "tags": list(clip.tags),
    }


def _clip_from_dict(data: Any) -> Clip | None:
    if not isinstance(data, dict):
        return None
    clip_id = data.get("id")
    path = data.get("path")
    if not isinstance(clip_id, str) or not clip_id or not isinstance(path, str) or not path:
        return None
    source = Path(path)
    filename = data.get("filename")
    rating = _as_int(data.get("rating"))
    tags: list[str] = []
    raw_tags = data.get("tags")
    for tag in raw_tags if isinstance(raw_tags, list) else []:
        if isinstance(tag, str) and tag and tag not in tags:
            tags.append(tag)
    return Clip(
        id=clip_id,
        path=source,
        filename=filename if isinstance(filename, str) and filename else source.name,
        duration=_as_float(data.get("duration")),
        width=_as_int(data.get("width")),
        height=_as_int(data.get("height")),
        file_size=_as_int(data.get("fileSize")),
        rating=rating if 0 <= rating <= MAX_RATING else 0,
        tags=tags,
    )


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(0, value)
    if isinstance(value, float) and value.is_integer():
        return max(0, int(value))
    return 0


def _as_float(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return max(0.0, float(value))
