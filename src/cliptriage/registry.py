from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterable, Mapping
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any

from .clip import MAX_RATING, Clip, is_supported_media, natural_sort_key
from .edit_log import (
    AddClips,
    BatchTagApply,
    EditAction,
    EditLog,
    RemoveClip,
    RenameClip,
    SetRating,
    ToggleTag,
)

logger = logging.getLogger(__name__)

DEFAULT_TAGS = [
    "Action",
    "Three",
    "Dunk",
    "Huddle",
    "Warmup",
    "Establishment",
    "Interview",
    "Celebration",
    "Defense",
    "Fast Break",
]

Listener = Callable[[], None]


class SortOrder(Enum):
    NAME = "name"
    DURATION = "duration"
    RATING = "rating"


class ClipRegistry:
    """Authoritative set of clips and their triage attributes.

    All mutators are expected to run on a single owner (the UI thread or the
    event loop driving it). Every user-facing mutation is recorded on the
    edit log; ``insert_at`` and ``discard`` are the unrecorded primitives the
    log and the commit cleanup use.
    """

    def __init__(
        self,
        clips: Iterable[Clip] = (),
        *,
        available_tags: Iterable[str] | None = None,
        log: EditLog | None = None,
    ) -> None:
        self._clips: list[Clip] = []
        self._loaded_paths: set[str] = set()
        self._listeners: list[Listener] = []
        self._metrics: dict[str, Any] = {}
        self.log = log or EditLog()
        self.available_tags: list[str] = list(
            DEFAULT_TAGS if available_tags is None else available_tags
        )
        for clip in clips:
            self.insert_at(clip, len(self._clips))

    def __len__(self) -> int:
        return len(self._clips)

    def __iter__(self):
        return iter(self._clips)

    def __contains__(self, clip_id: object) -> bool:
        return any(clip.id == clip_id for clip in self._clips)

    @property
    def clips(self) -> list[Clip]:
        return list(self._clips)

    def get(self, clip_id: str) -> Clip | None:
        for clip in self._clips:
            if clip.id == clip_id:
                return clip
        return None

    def index_of(self, clip_id: str) -> int | None:
        for index, clip in enumerate(self._clips):
            if clip.id == clip_id:
                return index
        return None

    def find_by_filename(self, filename: str) -> Clip | None:
        for clip in self._clips:
            if clip.filename == filename:
                return clip
        return None

    def snapshot(self) -> list[Clip]:
        return [clip.copy() for clip in self._clips]

    def is_loaded(self, path: Path) -> bool:
        return _path_key(path) in self._loaded_paths

    # Change notification

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    # Unrecorded primitives

    def insert_at(self, clip: Clip, index: int) -> None:
        index = max(0, min(index, len(self._clips)))
        self._clips.insert(index, clip)
        self._loaded_paths.add(_path_key(clip.path))

    def discard(self, clip_ids: Iterable[str]) -> list[Clip]:
        ids = set(clip_ids)
        removed = [clip for clip in self._clips if clip.id in ids]
        if not removed:
            return []
        self._clips = [clip for clip in self._clips if clip.id not in ids]
        for clip in removed:
            self._loaded_paths.discard(_path_key(clip.path))
            self._metrics.pop(clip.id, None)
        return removed

    def drop_committed(self, clip_ids: Iterable[str], *, drop_untouched: bool = False) -> int:
        removed = self.discard(clip_ids)
        count = len(removed)
        if drop_untouched:
            count += len(self.discard([clip.id for clip in self._clips if clip.is_untouched]))
        if count:
            self._notify()
        return count

    def attach_media_info(
        self,
        clip_id: str,
        *,
        duration: float | None = None,
        width: int | None = None,
        height: int | None = None,
        file_size: int | None = None,
    ) -> bool:
        clip = self.get(clip_id)
        if clip is None:
            return False
        if duration is not None:
            clip.duration = duration
        if width is not None:
            clip.width = width
        if height is not None:
            clip.height = height
        if file_size is not None:
            clip.file_size = file_size
        self._notify()
        return True

    # Recorded mutations

    def add(self, clip: Clip) -> bool:
        return bool(self.add_clips([clip]))

    def add_clips(self, clips: Iterable[Clip]) -> list[Clip]:
        added: list[Clip] = []
        for clip in clips:
            if self.is_loaded(clip.path) or self.get(clip.id) is not None:
                continue
            self.insert_at(clip, len(self._clips))
            added.append(clip)
        if added:
            self._record(AddClips(tuple(clip.id for clip in added)))
        return added

    def add_paths(self, paths: Iterable[Path]) -> list[Clip]:
        candidates = [
            Clip.from_path(path)
            for path in paths
            if is_supported_media(path) and not self.is_loaded(path)
        ]
        return self.add_clips(candidates)

    def add_folder(self, folder: Path) -> list[Clip]:
        return self.add_paths(discover_media(folder))

    def remove(self, clip_id: str) -> Clip | None:
        index = self.index_of(clip_id)
        if index is None:
            return None
        clip = self._clips.pop(index)
        self._loaded_paths.discard(_path_key(clip.path))
        self._metrics.pop(clip.id, None)
        self._record(RemoveClip(clip.copy(), index))
        return clip

    def set_rating(self, clip_id: str, value: int) -> SetRating | None:
        if value < 0 or value > MAX_RATING:
            raise ValueError(f"Rating must be between 0 and {MAX_RATING}: {value}")
        clip = self.get(clip_id)
        if clip is None:
            return None
        old = clip.rating
        new = 0 if old == value else value
        clip.rating = new
        action = SetRating(clip_id, old, new)
        self._record(action)
        return action

    def toggle_tag(self, clip_id: str, tag: str) -> ToggleTag | None:
        clip = self.get(clip_id)
        if clip is None or not tag:
            return None
        if tag in clip.tags:
            index = clip.tags.index(tag)
            del clip.tags[index]
            action = ToggleTag(clip_id, tag, was_added=False, index=index)
        else:
            clip.tags.append(tag)
            action = ToggleTag(clip_id, tag, was_added=True)
        self._record(action)
        return action

    def remove_tag(self, clip_id: str, tag: str) -> ToggleTag | None:
        clip = self.get(clip_id)
        if clip is None or tag not in clip.tags:
            return None
        index = clip.tags.index(tag)
        del clip.tags[index]
        action = ToggleTag(clip_id, tag, was_added=False, index=index)
        self._record(action)
        return action

    def rename(self, clip_id: str, new_name: str) -> RenameClip | None:
        clip = self.get(clip_id)
        if clip is None:
            return None
        old_name = clip.filename
        if not new_name or new_name == old_name:
            return None
        old_ext = _extension(old_name)
        final_name = new_name
        if old_ext and not _extension(new_name):
            final_name = f"{new_name}.{old_ext}"
        clip.filename = final_name
        action = RenameClip(clip_id, old_name, final_name)
        self._record(action)
        return action

    def apply_tag_batch(self, pairs: Iterable[tuple[str, str]]) -> BatchTagApply | None:
        applied: list[tuple[str, str]] = []
        for clip_id, tag in pairs:
            clip = self.get(clip_id)
            if clip is None or not tag or tag in clip.tags:
                continue
            clip.tags.append(tag)
            applied.append((clip_id, tag))
        if not applied:
            return None
        for tag in dict.fromkeys(tag for _, tag in applied):
            self.register_tag(tag)
        action = BatchTagApply(tuple(applied))
        self._record(action)
        return action

    def register_tag(self, tag: str) -> None:
        tag = tag.strip()
        if tag and tag not in self.available_tags:
            self.available_tags.append(tag)

    # Undo / redo

    @property
    def can_undo(self) -> bool:
        return self.log.can_undo

    @property
    def can_redo(self) -> bool:
        return self.log.can_redo

    @property
    def undo_description(self) -> str | None:
        return self.log.undo_description

    @property
    def redo_description(self) -> str | None:
        return self.log.redo_description

    def undo(self) -> EditAction | None:
        action = self.log.undo(self)
        if action is not None:
            self._notify()
        return action

    def redo(self) -> EditAction | None:
        action = self.log.redo(self)
        if action is not None:
            self._notify()
        return action

    def _record(self, action: EditAction) -> None:
        self.log.push(action)
        self._notify()

    # Analyzer side map

    @property
    def metrics(self) -> Mapping[str, Any]:
        return MappingProxyType(self._metrics)

    def set_metric(self, clip_id: str, value: Any) -> None:
        self._metrics[clip_id] = value
        self._notify()

    def metric(self, clip_id: str) -> Any | None:
        return self._metrics.get(clip_id)

    def unanalyzed_clips(self) -> list[Clip]:
        return [clip for clip in self._clips if clip.id not in self._metrics]

    # Derived views

    @property
    def used_tags(self) -> list[str]:
        in_use = {tag for clip in self._clips for tag in clip.tags}
        return [tag for tag in self.available_tags if tag in in_use]

    def visible_clips(
        self,
        sort_order: SortOrder = SortOrder.NAME,
        *,
        filter_rating: int = 0,
        filter_tag: str | None = None,
        hide_untouched: bool = False,
    ) -> list[Clip]:
        result = list(self._clips)
        if hide_untouched:
            result = [
                clip
                for clip in result
                if not clip.is_untouched or clip.filename != clip.path.name
            ]
        if filter_rating > 0:
            result = [clip for clip in result if clip.rating == filter_rating]
        if filter_tag is not None:
            result = [clip for clip in result if filter_tag in clip.tags]
        if sort_order == SortOrder.NAME:
            result.sort(key=lambda clip: natural_sort_key(clip.filename))
        elif sort_order == SortOrder.DURATION:
            result.sort(key=lambda clip: clip.duration, reverse=True)
        elif sort_order == SortOrder.RATING:
            result.sort(key=lambda clip: clip.rating, reverse=True)
        return result

    @property
    def total_clips(self) -> int:
        return len(self._clips)

    @property
    def rated_clips(self) -> int:
        return sum(1 for clip in self._clips if clip.rating > 0)

    @property
    def tagged_clips(self) -> int:
        return sum(1 for clip in self._clips if clip.tags)

    @property
    def untouched_count(self) -> int:
        return sum(1 for clip in self._clips if clip.is_untouched)

    @property
    def total_duration(self) -> float:
        return sum(clip.duration for clip in self._clips)

    @property
    def shortlisted_duration(self) -> float:
        return sum(clip.duration for clip in self._clips if not clip.is_untouched)

    @property
    def has_shortlisted_clips(self) -> bool:
        return any(not clip.is_untouched for clip in self._clips)


def discover_media(folder: Path) -> list[Path]:
    found: list[Path] = []
    for current, dirnames, filenames in os.walk(folder, onerror=_log_walk_error):
        dirnames[:] = [name for name in dirnames if not name.startswith(".")]
        for name in filenames:
            if name.startswith("."):
                continue
            path = Path(current) / name
            if is_supported_media(path):
                found.append(path)
    found.sort(key=lambda path: natural_sort_key(path.name))
    return found


def _log_walk_error(exc: OSError) -> None:
    logger.warning("Skipping unreadable folder during scan: %s", exc)


def _extension(name: str) -> str:
    suffix = Path(name).suffix
    return suffix[1:] if suffix else ""


def _path_key(path: Path) -> str:
    return str(path).casefold()
