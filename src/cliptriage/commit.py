from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from .clip import Clip
from .destination import Organization, needed_folders
from .manifest import MANIFEST_NAME, ManifestStatus, write_manifest
from .mover import MoveFunc, move_and_verify, plan_entries
from .registry import ClipRegistry
from .summary import build_summary_records, write_summary

logger = logging.getLogger(__name__)

DEFAULT_ROOT_NAME = "ClipTriage"

Clock = Callable[[], datetime]


class CommitState(Enum):
    IDLE = "idle"
    FOLDER_CREATED = "folder_created"
    MANIFEST_WRITTEN = "manifest_written"
    MOVING = "moving"
    FINALIZING = "finalizing"
    DONE = "done"


StateCallback = Callable[[CommitState, int | None], None]


@dataclass(frozen=True)
class CommitResult:
    moved_count: int
    skipped_count: int
    errors: list[str]
    export_folder: Path | None

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class CommitOutcome:
    result: CommitResult
    verified_ids: frozenset[str] = field(default_factory=frozenset)
    skip_untouched: bool = False


def unique_root(parent: Path, name: str) -> Path:
    candidate = parent / name
    counter = 1
    while candidate.exists():
        candidate = parent / f"{name} {counter}"
        counter += 1
    return candidate


def execute_commit(
    clips: list[Clip],
    parent: Path,
    *,
    organization: Organization = Organization.BY_TAG,
    skip_untouched: bool = True,
    root_name: str = DEFAULT_ROOT_NAME,
    move: MoveFunc | None = None,
    clock: Clock | None = None,
    on_state: StateCallback | None = None,
) -> CommitOutcome:
    """Run the filesystem side of a commit over a snapshot of clips.

    Never touches the registry; ``apply_commit_cleanup`` does that with the
    returned outcome.
    """
    clock = clock or _utc_now
    notify = on_state or _ignore_state
    started_at = _iso_timestamp(clock())
    notify(CommitState.IDLE, None)

    root = unique_root(parent, root_name)
    try:
        root.mkdir(parents=True)
    except OSError as exc:
        logger.error("Failed to create export folder %s: %s", root, exc)
        notify(CommitState.DONE, None)
        return CommitOutcome(
            CommitResult(0, 0, [f"Failed to create export folder: {exc}"], None),
            skip_untouched=False,
        )

    if skip_untouched:
        selected = [clip for clip in clips if not clip.is_untouched]
        skipped = len(clips) - len(selected)
    else:
        selected = list(clips)
        skipped = 0

    for folder in needed_folders(selected, organization):
        try:
            (root / folder).mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.warning("Failed to create folder %s: %s", root / folder, exc)
    notify(CommitState.FOLDER_CREATED, None)

    entries = plan_entries(selected, root, organization)
    manifest_path = root / MANIFEST_NAME

    def save_manifest(status: ManifestStatus) -> None:
        write_manifest(
            manifest_path,
            entries,
            status=status,
            started_at=started_at,
            organization=organization.value,
        )

    save_manifest(ManifestStatus.IN_PROGRESS)
    notify(CommitState.MANIFEST_WRITTEN, None)
    logger.info("Committing %d clips into %s", len(entries), root)

    errors: list[str] = []
    verified: set[str] = set()
    for index, (clip, entry) in enumerate(zip(selected, entries, strict=True)):
        notify(CommitState.MOVING, index)
        outcome = move_and_verify(entry, move)
        entry.status = outcome.status
        entry.error = outcome.message
        if outcome.ok:
            verified.add(clip.id)
        else:
            errors.append(f"{clip.filename}: {outcome.message}")
            logger.warning("Move failed for %s: %s", entry.source, outcome.message)
        save_manifest(ManifestStatus.IN_PROGRESS)

    notify(CommitState.FINALIZING, None)
    save_manifest(
        ManifestStatus.COMPLETE_WITH_ERRORS if errors else ManifestStatus.COMPLETE
    )
    records = build_summary_records(zip(selected, entries), organization)
    write_summary(
        root,
        records,
        export_date=started_at,
        skipped_untouched=skipped,
        organization=organization,
    )
    logger.info(
        "Commit finished: %d moved, %d skipped, %d failed",
        len(verified),
        skipped,
        len(errors),
    )
    notify(CommitState.DONE, None)
    return CommitOutcome(
        CommitResult(len(verified), skipped, errors, root),
        verified_ids=frozenset(verified),
        skip_untouched=skip_untouched,
    )


def apply_commit_cleanup(registry: ClipRegistry, outcome: CommitOutcome) -> int:
    if outcome.result.export_folder is None:
        return 0
    return registry.drop_committed(
        outcome.verified_ids, drop_untouched=outcome.skip_untouched
    )


def commit_clips(
    registry: ClipRegistry,
    parent: Path,
    *,
    organization: Organization = Organization.BY_TAG,
    skip_untouched: bool = True,
    root_name: str = DEFAULT_ROOT_NAME,
    move: MoveFunc | None = None,
    clock: Clock | None = None,
    on_state: StateCallback | None = None,
) -> CommitResult:
    outcome = execute_commit(
        registry.snapshot(),
        parent,
        organization=organization,
        skip_untouched=skip_untouched,
        root_name=root_name,
        move=move,
        clock=clock,
        on_state=on_state,
    )
    apply_commit_cleanup(registry, outcome)
    return outcome.result


async def commit_clips_async(
    registry: ClipRegistry,
    parent: Path,
    *,
    organization: Organization = Organization.BY_TAG,
    skip_untouched: bool = True,
    root_name: str = DEFAULT_ROOT_NAME,
    move: MoveFunc | None = None,
    clock: Clock | None = None,
    on_state: StateCallback | None = None,
) -> CommitResult:
    """Commit from an event loop; filesystem work runs in a worker thread and
    the registry is only touched back on the calling loop."""
    snapshot = registry.snapshot()
    outcome = await asyncio.to_thread(
        execute_commit,
        snapshot,
        parent,
        organization=organization,
        skip_untouched=skip_untouched,
        root_name=root_name,
        move=move,
        clock=clock,
        on_state=on_state,
    )
    apply_commit_cleanup(registry, outcome)
    return outcome.result


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _iso_timestamp(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _ignore_state(state: CommitState, index: int | None) -> None:
    return None
