from __future__ import annotations

import shutil
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path

from .clip import Clip
from .destination import Organization, folder_for, safe_component
from .manifest import EntryStatus, ManifestEntry

MoveFunc = Callable[[Path, Path], None]


@dataclass(frozen=True)
class MoveOutcome:
    status: EntryStatus
    message: str | None = None
    actual_size: int | None = None

    @property
    def ok(self) -> bool:
        return self.status == EntryStatus.VERIFIED


def plan_entries(
    clips: Iterable[Clip], root: Path, organization: Organization
) -> list[ManifestEntry]:
    """Resolve every destination of the batch before anything is moved."""
    taken: set[str] = set()
    entries: list[ManifestEntry] = []
    for clip in clips:
        folder = folder_for(clip, organization)
        filename = safe_component(clip.filename) or clip.path.name
        destination = unique_destination(root / folder, filename, taken)
        taken.add(_path_key(destination))
        entries.append(
            ManifestEntry(
                source=clip.path,
                destination=destination,
                folder=folder,
                expected_size=clip.file_size,
            )
        )
    return entries


def unique_destination(folder: Path, filename: str, taken: set[str]) -> Path:
    candidate = folder / filename
    if not _is_taken(candidate, taken):
        return candidate
    stem = Path(filename).stem
    suffix = Path(filename).suffix
    counter = 1
    while True:
        candidate = folder / f"{stem}_{counter}{suffix}"
        if not _is_taken(candidate, taken):
            return candidate
        counter += 1


def move_file(source: Path, target: Path) -> None:
    if target.exists():
        raise FileExistsError(f"Destination already exists: {target}")
    try:
        source.rename(target)
    except OSError:
        shutil.move(str(source), str(target))


def move_and_verify(entry: ManifestEntry, move: MoveFunc | None = None) -> MoveOutcome:
    move = move or move_file
    try:
        move(entry.source, entry.destination)
    except OSError as exc:
        return MoveOutcome(EntryStatus.FAILED, _describe_error(exc))

    if not entry.destination.exists():
        return MoveOutcome(EntryStatus.FAILED, "File not found at destination after move")

    if entry.expected_size > 0:
        try:
            actual = entry.destination.stat().st_size
        except OSError as exc:
            return MoveOutcome(
                EntryStatus.FAILED, f"Could not read size after move: {_describe_error(exc)}"
            )
        if actual != entry.expected_size:
            return MoveOutcome(
                EntryStatus.FAILED,
                f"Size mismatch: expected {entry.expected_size}, got {actual}",
                actual_size=actual,
            )
        return MoveOutcome(EntryStatus.VERIFIED, actual_size=actual)
    return MoveOutcome(EntryStatus.VERIFIED)


def _is_taken(candidate: Path, taken: set[str]) -> bool:
    return _path_key(candidate) in taken or candidate.exists()


def _describe_error(exc: OSError) -> str:
    return str(exc) or type(exc).__name__


def _path_key(path: Path) -> str:
    return str(path).casefold()
