from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from .clip import Clip, natural_sort_key


class Organization(Enum):
    BY_TAG = "By Tag"
    BY_RATING = "By Rating"


RATING_FOLDERS = {
    5: "5-star",
    4: "4-star",
    3: "3-star",
    2: "2-star",
    1: "1-star",
    0: "Unrated",
}
UNRATED_FOLDER = "Unrated"

_ORGANIZATION_ALIASES = {
    "by tag": Organization.BY_TAG,
    "tag": Organization.BY_TAG,
    "tags": Organization.BY_TAG,
    "by rating": Organization.BY_RATING,
    "rating": Organization.BY_RATING,
    "ratings": Organization.BY_RATING,
}


@dataclass(frozen=True)
class PreviewFile:
    filename: str
    annotation: str | None = None


@dataclass(frozen=True)
class PreviewFolder:
    name: str
    files: list[PreviewFile]


def parse_organization(value: str) -> Organization:
    key = value.strip().casefold().replace("-", " ").replace("_", " ")
    key = " ".join(key.split())
    try:
        return _ORGANIZATION_ALIASES[key]
    except KeyError:
        raise ValueError(f"Unknown folder organization: {value}") from None


def rating_folder(rating: int) -> str:
    return RATING_FOLDERS.get(rating, UNRATED_FOLDER)


def safe_component(name: str) -> str | None:
    """Single path component for ``name``, or ``None`` if nothing usable is left."""
    text = name.replace("/", "-").replace("\\", "-").strip()
    if not text or text in {".", ".."}:
        return None
    return text


def tag_folder(clip: Clip) -> str | None:
    if not clip.tags:
        return None
    return safe_component(clip.tags[0])


def folder_for(clip: Clip, organization: Organization) -> str:
    if organization == Organization.BY_TAG:
        folder = tag_folder(clip)
        if folder is not None:
            return folder
    return rating_folder(clip.rating)


def also_annotation(clip: Clip) -> str | None:
    others = clip.tags[1:]
    if not others:
        return None
    return f"also: {', '.join(others)}"


def needed_folders(clips: Iterable[Clip], organization: Organization) -> list[str]:
    return list(dict.fromkeys(folder_for(clip, organization) for clip in clips))


def preview_tree(
    clips: Iterable[Clip],
    organization: Organization,
    *,
    include_untouched: bool = False,
) -> list[PreviewFolder] | None:
    """Folder layout a commit would produce, or ``None`` if nothing would move."""
    exportable = [clip for clip in clips if include_untouched or not clip.is_untouched]
    if not exportable:
        return None
    if organization == Organization.BY_RATING:
        return _rating_folders(exportable)

    tag_groups: dict[str, list[PreviewFile]] = {}
    untagged: list[Clip] = []
    for clip in exportable:
        folder = tag_folder(clip)
        if folder is None:
            untagged.append(clip)
            continue
        tag_groups.setdefault(folder, []).append(
            PreviewFile(clip.filename, also_annotation(clip))
        )
    folders = [
        PreviewFolder(tag, _sorted_files(files)) for tag, files in tag_groups.items()
    ]
    folders.extend(_rating_folders(untagged))
    return folders


def _rating_folders(clips: list[Clip]) -> list[PreviewFolder]:
    grouped: dict[int, list[PreviewFile]] = {}
    for clip in clips:
        grouped.setdefault(clip.rating, []).append(PreviewFile(clip.filename))
    folders: list[PreviewFolder] = []
    for rating in range(5, -1, -1):
        files = grouped.get(rating)
        if files:
            folders.append(PreviewFolder(rating_folder(rating), _sorted_files(files)))
    return folders


def _sorted_files(files: list[PreviewFile]) -> list[PreviewFile]:
    return sorted(files, key=lambda item: natural_sort_key(item.filename))
