from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

MANIFEST_NAME = "cliptriage-manifest.json"


class EntryStatus(Enum):
    PENDING = "pending"
    MOVED = "moved"
    VERIFIED = "verified"
    FAILED = "failed"


class ManifestStatus(Enum):
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"
    COMPLETE_WITH_ERRORS = "complete_with_errors"


class RecoveryState(Enum):
    DONE = "done"
    NOT_STARTED = "not_started"
    UNVERIFIED = "unverified"
    FAILED_IN_PLACE = "failed_in_place"
    CONFLICT = "conflict"
    MISSING = "missing"


@dataclass
class ManifestEntry:
    source: Path
    destination: Path
    folder: str
    expected_size: int
    status: EntryStatus = EntryStatus.PENDING
    error: str | None = None

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {
            "from": str(self.source),
            "to": str(self.destination),
            "folder": self.folder,
            "expectedSize": self.expected_size,
            "status": self.status.value,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class Manifest:
    path: Path
    status: str
    started_at: str
    organization: str
    entries: list[ManifestEntry]


@dataclass(frozen=True)
class Reconciliation:
    entry: ManifestEntry
    state: RecoveryState
    source_exists: bool
    destination_exists: bool


def manifest_counts(entries: Iterable[ManifestEntry]) -> dict[str, int]:
    counts = {status: 0 for status in EntryStatus}
    total = 0
    for entry in entries:
        counts[entry.status] += 1
        total += 1
    return {
        "totalPlanned": total,
        "moved": counts[EntryStatus.MOVED] + counts[EntryStatus.VERIFIED],
        "verified": counts[EntryStatus.VERIFIED],
        "failed": counts[EntryStatus.FAILED],
        "pending": counts[EntryStatus.PENDING],
    }


def manifest_to_json(
    entries: Iterable[ManifestEntry],
    *,
    status: ManifestStatus,
    started_at: str,
    organization: str,
) -> str:
    entries_list = list(entries)
    payload: dict[str, Any] = {
        "status": status.value,
        "startedAt": started_at,
        "organization": organization,
        "files": [entry.to_dict() for entry in entries_list],
    }
    payload.update(manifest_counts(entries_list))
    return json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True)


def write_manifest(
    path: Path,
    entries: Iterable[ManifestEntry],
    *,
    status: ManifestStatus,
    started_at: str,
    organization: str,
) -> bool:
    """Persist the manifest; failures are logged and reported, never raised.

    The payload goes to a sibling temp file that is then swapped in, so the
    file on disk is always the last complete write.
    """
    text = manifest_to_json(
        entries, status=status, started_at=started_at, organization=organization
    )
    temp = path.with_name(f".{path.name}.tmp")
    try:
        temp.write_text(text + "\n", encoding="utf-8")
        os.replace(temp, path)
    except OSError as exc:
        logger.warning("Failed to write manifest %s: %s", path, exc)
        return False
    return True


def read_manifest(path: Path) -> tuple[Manifest | None, str | None]:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        return None, f"Failed to read manifest: {path} ({exc})"
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return None, f"Manifest is not valid JSON: {path}"
    if not isinstance(data, dict) or not isinstance(data.get("files"), list):
        return None, f"Manifest has no file list: {path}"
    entries: list[ManifestEntry] = []
    for index, item in enumerate(data["files"], start=1):
        entry = _parse_entry(item)
        if entry is None:
            return None, f"Manifest entry {index} is malformed: {path}"
        entries.append(entry)
    return (
        Manifest(
            path=path,
            status=str(data.get("status") or ""),
            started_at=str(data.get("startedAt") or ""),
            organization=str(data.get("organization") or ""),
            entries=entries,
        ),
        None,
    )


def reconcile_manifest(manifest: Manifest) -> list[Reconciliation]:
    """Compare every planned move with what is actually on disk."""
    results: list[Reconciliation] = []
    for entry in manifest.entries:
        source_exists = entry.source.exists()
        destination_exists = entry.destination.exists()
        results.append(
            Reconciliation(
                entry=entry,
                state=_recovery_state(entry, source_exists, destination_exists),
                source_exists=source_exists,
                destination_exists=destination_exists,
            )
        )
    return results


def _recovery_state(
    entry: ManifestEntry, source_exists: bool, destination_exists: bool
) -> RecoveryState:
    if source_exists and destination_exists:
        return RecoveryState.CONFLICT
    if destination_exists:
        if entry.status == EntryStatus.VERIFIED:
            return RecoveryState.DONE
        return RecoveryState.UNVERIFIED
    if source_exists:
        if entry.status == EntryStatus.FAILED:
            return RecoveryState.FAILED_IN_PLACE
        return RecoveryState.NOT_STARTED
    return RecoveryState.MISSING


def _parse_entry(item: Any) -> ManifestEntry | None:
    if not isinstance(item, dict):
        return None
    source = item.get("from")
    destination = item.get("to")
    if not isinstance(source, str) or not isinstance(destination, str):
        return None
    try:
        status = EntryStatus(item.get("status"))
    except ValueError:
        return None
    size = item.get("expectedSize")
    error = item.get("error")
    return ManifestEntry(
        source=Path(source),
        destination=Path(destination),
        folder=str(item.get("folder") or ""),
        expected_size=size if isinstance(size, int) and not isinstance(size, bool) else 0,
        status=status,
        error=error if isinstance(error, str) else None,
    )
