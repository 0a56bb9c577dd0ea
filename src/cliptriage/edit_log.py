from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Union

from .clip import Clip

if TYPE_CHECKING:
    from .registry import ClipRegistry

UNDO_LIMIT = 100


@dataclass(frozen=True)
class SetRating:
    clip_id: str
    old: int
    new: int


@dataclass(frozen=True)
class ToggleTag:
    clip_id: str
    tag: str
    was_added: bool
    index: int | None = None


@dataclass(frozen=True)
class RemoveClip:
    clip: Clip
    index: int


@dataclass(frozen=True)
class AddClips:
    clip_ids: tuple[str, ...]
    clips: tuple[Clip, ...] = ()


@dataclass(frozen=True)
class RenameClip:
    clip_id: str
    old_name: str
    new_name: str


@dataclass(frozen=True)
class BatchTagApply:
    applied: tuple[tuple[str, str], ...]


EditAction = Union[SetRating, ToggleTag, RemoveClip, AddClips, RenameClip, BatchTagApply]


def describe_action(action: EditAction) -> str:
    if isinstance(action, SetRating):
        if action.new == 0:
            return "Clear Rating"
        return f"Rate {action.old}→{action.new}★"
    if isinstance(action, ToggleTag):
        return f"Add '{action.tag}'" if action.was_added else f"Remove '{action.tag}'"
    if isinstance(action, RemoveClip):
        return f"Remove '{action.clip.filename}'"
    if isinstance(action, AddClips):
        count = len(action.clip_ids)
        return f"Add {count} clip{'' if count == 1 else 's'}"
    if isinstance(action, RenameClip):
        return f"Rename to '{action.new_name}'"
    if isinstance(action, BatchTagApply):
        return f"Tag Suggestions ({len(action.applied)} clips)"
    raise TypeError(f"Unknown edit action: {action!r}")


class EditLog:
    """Bounded undo stack plus a redo stack that every new edit clears."""

    def __init__(self, limit: int = UNDO_LIMIT) -> None:
        self._limit = limit
        self._undo: list[EditAction] = []
        self._redo: list[EditAction] = []

    @property
    def undo_actions(self) -> list[EditAction]:
        return list(self._undo)

    @property
    def redo_actions(self) -> list[EditAction]:
        return list(self._redo)

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def undo_description(self) -> str | None:
        if not self._undo:
            return None
        return f"Undo {describe_action(self._undo[-1])}"

    @property
    def redo_description(self) -> str | None:
        if not self._redo:
            return None
        return f"Redo {describe_action(self._redo[-1])}"

    def push(self, action: EditAction) -> None:
        self._undo.append(action)
        self._redo.clear()
        if len(self._undo) > self._limit:
            del self._undo[: len(self._undo) - self._limit]

    def undo(self, registry: ClipRegistry) -> EditAction | None:
        if not self._undo:
            return None
        action = self._undo.pop()
        action = revert_action(registry, action)
        self._redo.append(action)
        return action

    def redo(self, registry: ClipRegistry) -> EditAction | None:
        if not self._redo:
            return None
        action = self._redo.pop()
        reapply_action(registry, action)
        self._undo.append(action)
        return action

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()


def revert_action(registry: ClipRegistry, action: EditAction) -> EditAction:
    """Apply the inverse of ``action`` and return the action to keep for redo."""
    if isinstance(action, SetRating):
        clip = registry.get(action.clip_id)
        if clip is not None:
            clip.rating = action.old
        return action
    if isinstance(action, ToggleTag):
        clip = registry.get(action.clip_id)
        if clip is not None:
            if action.was_added:
                _drop_tag(clip, action.tag)
            else:
                _insert_tag(clip, action.tag, action.index)
        return action
    if isinstance(action, RemoveClip):
        registry.insert_at(action.clip.copy(), min(action.index, len(registry)))
        return action
    if isinstance(action, AddClips):
        removed = registry.discard(action.clip_ids)
        return replace(action, clips=tuple(clip.copy() for clip in removed))
    if isinstance(action, RenameClip):
        clip = registry.get(action.clip_id)
        if clip is not None:
            clip.filename = action.old_name
        return action
    if isinstance(action, BatchTagApply):
        for clip_id, tag in action.applied:
            clip = registry.get(clip_id)
            if clip is not None:
                _drop_tag(clip, tag)
        return action
    raise TypeError(f"Unknown edit action: {action!r}")


def reapply_action(registry: ClipRegistry, action: EditAction) -> None:
    if isinstance(action, SetRating):
        clip = registry.get(action.clip_id)
        if clip is not None:
            clip.rating = action.new
        return
    if isinstance(action, ToggleTag):
        clip = registry.get(action.clip_id)
        if clip is not None:
            if action.was_added:
                _insert_tag(clip, action.tag, None)
            else:
                _drop_tag(clip, action.tag)
        return
    if isinstance(action, RemoveClip):
        registry.discard([action.clip.id])
        return
    if isinstance(action, AddClips):
        for clip in action.clips:
            if registry.get(clip.id) is None:
                registry.insert_at(clip.copy(), len(registry))
        return
    if isinstance(action, RenameClip):
        clip = registry.get(action.clip_id)
        if clip is not None:
            clip.filename = action.new_name
        return
    if isinstance(action, BatchTagApply):
        for clip_id, tag in action.applied:
            clip = registry.get(clip_id)
            if clip is not None:
                _insert_tag(clip, tag, None)
        return
    raise TypeError(f"Unknown edit action: {action!r}")


def _drop_tag(clip: Clip, tag: str) -> None:
    clip.tags[:] = [existing for existing in clip.tags if existing != tag]


def _insert_tag(clip: Clip, tag: str, index: int | None) -> None:
    if tag in clip.tags:
        return
    if index is None:
        clip.tags.append(tag)
    else:
        clip.tags.insert(min(index, len(clip.tags)), tag)
