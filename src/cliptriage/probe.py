from __future__ import annotations

import json
import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from .registry import ClipRegistry

logger = logging.getLogger(__name__)

Runner = Callable[[list[str]], subprocess.CompletedProcess[str]]


@dataclass(frozen=True)
class MediaInfo:
    duration: float
    width: int
    height: int


def build_probe_command(path: Path) -> list[str]:
    return [
        "ffprobe",
        "-v",
        "error",
        "-print_format",
        "json",
        "-show_format",
        "-show_streams",
        str(path),
    ]


def probe_media(path: Path, runner: Runner | None = None) -> MediaInfo:
    runner = runner or _run_subprocess
    try:
        completed = runner(build_probe_command(path))
    except OSError as exc:
        raise RuntimeError(f"Failed to run ffprobe: {exc}") from exc
    if completed.returncode != 0:
        raise RuntimeError(_summarize_error(completed))
    try:
        data = json.loads(completed.stdout or "")
    except json.JSONDecodeError as exc:
        raise RuntimeError("Failed to parse ffprobe JSON") from exc
    if not isinstance(data, dict):
        raise RuntimeError("ffprobe returned no media information")
    return parse_probe_output(data)


def parse_probe_output(data: dict[str, Any]) -> MediaInfo:
    streams = data.get("streams")
    video = None
    if isinstance(streams, list):
        for stream in streams:
            if isinstance(stream, dict) and stream.get("codec_type") == "video":
                video = stream
                break

    fmt = data.get("format")
    duration = _as_float(fmt.get("duration")) if isinstance(fmt, dict) else None
    if duration is None and video is not None:
        duration = _as_float(video.get("duration"))

    width = height = 0
    if video is not None:
        width = _as_int(video.get("width"))
        height = _as_int(video.get("height"))
        if _rotation(video) in {90, 270}:
            width, height = height, width

    return MediaInfo(duration=duration or 0.0, width=width, height=height)


def probe_registry(registry: ClipRegistry, runner: Runner | None = None) -> list[str]:
    """Probe clips without a known duration; returns error lines."""
    errors: list[str] = []
    for clip in registry.clips:
        if clip.duration > 0:
            continue
        try:
            info = probe_media(clip.path, runner)
        except RuntimeError as exc:
            logger.warning("Probe failed for %s: %s", clip.path, exc)
            errors.append(f"{clip.filename}: {exc}")
            continue
        registry.attach_media_info(
            clip.id, duration=info.duration, width=info.width, height=info.height
        )
    return errors


def _rotation(stream: dict[str, Any]) -> int:
    tags = stream.get("tags")
    if isinstance(tags, dict):
        value = _as_float(tags.get("rotate"))
        if value is not None:
            return int(abs(value)) % 360
    side_data = stream.get("side_data_list")
    if isinstance(side_data, list):
        for item in side_data:
            if isinstance(item, dict):
                value = _as_float(item.get("rotation"))
                if value is not None:
                    return int(abs(value)) % 360
    return 0


def _run_subprocess(command: list[str]) -> subprocess.CompletedProcess[str]:
    return subprocess.run(command, check=False, capture_output=True, text=True)


def _summarize_error(completed: subprocess.CompletedProcess[str]) -> str:
    stderr = completed.stderr or ""
    stdout = completed.stdout or ""
    message = stderr.strip() or stdout.strip()
    if not message:
        return f"ffprobe failed with exit code {completed.returncode}"
    return message.splitlines()[-1]


def _as_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return max(0, value)
    return 0
