from __future__ import annotations

import csv
import io
import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from pathlib import Path

from .clip import Clip
from .destination import Organization, rating_folder, tag_folder
from .manifest import EntryStatus, ManifestEntry

logger = logging.getLogger(__name__)

APP_VERSION = "1.0"
SUMMARY_JSON_NAME = "cliptriage.json"
SUMMARY_CSV_NAME = "cliptriage.csv"
CSV_FIELDS = [
    "Filename",
    "Rating",
    "Tags",
    "Duration",
    "Resolution",
    "Folder",
    "Rating Folder",
    "Original Path",
]


@dataclass(frozen=True)
class SummaryRecord:
    filename: str
    rating: int
    tags: list[str]
    duration: float
    original_path: str
    folder: str
    rating_folder: str
    primary_tag: str | None = None
    tag_folder: str | None = None
    resolution: str | None = None
    file_size: int | None = None

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {
            "filename": self.filename,
            "rating": self.rating,
            "tags": list(self.tags),
            "duration": self.duration,
            "originalPath": self.original_path,
            "folder": self.folder,
            "ratingFolder": self.rating_folder,
        }
        if self.primary_tag is not None:
            data["primaryTag"] = self.primary_tag
        if self.tag_folder is not None:
            data["tagFolder"] = self.tag_folder
        if self.resolution is not None:
            data["resolution"] = self.resolution
        if self.file_size is not None:
            data["fileSize"] = self.file_size
        return data


def build_summary_records(
    pairs: Iterable[tuple[Clip, ManifestEntry]],
    organization: Organization,
) -> list[SummaryRecord]:
    records: list[SummaryRecord] = []
    for clip, entry in pairs:
        if entry.status != EntryStatus.VERIFIED:
            continue
        by_tag = organization == Organization.BY_TAG
        records.append(
            SummaryRecord(
                filename=entry.destination.name,
                rating=clip.rating,
                tags=sorted(clip.tags),
                duration=_round_tenths(clip.duration),
                original_path=str(clip.path),
                folder=entry.folder,
                rating_folder=rating_folder(clip.rating),
                primary_tag=clip.primary_tag if by_tag else None,
                tag_folder=entry.folder if by_tag and tag_folder(clip) else None,
                resolution=clip.resolution,
                file_size=clip.file_size if clip.file_size > 0 else None,
            )
        )
    return records


def rating_summary(records: Iterable[SummaryRecord]) -> dict[str, int]:
    """Clips per rating folder; unrated clips are not counted."""
    summary: dict[str, int] = {}
    for record in records:
        if record.rating <= 0:
            continue
        summary[record.rating_folder] = summary.get(record.rating_folder, 0) + 1
    return summary


def tag_summary(records: Iterable[SummaryRecord]) -> dict[str, int]:
    summary: dict[str, int] = {}
    for record in records:
        for tag in record.tags:
            summary[tag] = summary.get(tag, 0) + 1
    return summary


def summary_to_json(
    records: Iterable[SummaryRecord],
    *,
    export_date: str,
    skipped_untouched: int,
    organization: Organization,
) -> str:
    records_list = list(records)
    payload = {
        "exportDate": export_date,
        "appVersion": APP_VERSION,
        "totalClips": len(records_list),
        "skippedUntouched": skipped_untouched,
        "organization": organization.value,
        "ratingSummary": rating_summary(records_list),
        "tagSummary": tag_summary(records_list),
        "clips": [record.to_dict() for record in records_list],
    }
    return json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True)


def summary_to_csv(records: Iterable[SummaryRecord]) -> str:
    buffer = io.StringIO(newline="")
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(CSV_FIELDS)
    for record in records:
        writer.writerow(
            [
                record.filename,
                str(record.rating),
                "; ".join(record.tags),
                str(record.duration),
                record.resolution or "",
                record.folder,
                record.rating_folder,
                record.original_path,
            ]
        )
    return buffer.getvalue()


def write_summary(
    root: Path,
    records: list[SummaryRecord],
    *,
    export_date: str,
    skipped_untouched: int,
    organization: Organization,
) -> list[str]:
    """Write the JSON and CSV summaries; returns the failures it logged."""
    failures: list[str] = []
    json_text = summary_to_json(
        records,
        export_date=export_date,
        skipped_untouched=skipped_untouched,
        organization=organization,
    )
    outputs = [
        (root / SUMMARY_JSON_NAME, json_text + "\n"),
        (root / SUMMARY_CSV_NAME, summary_to_csv(records)),
    ]
    for path, text in outputs:
        try:
            path.write_text(text, encoding="utf-8")
        except OSError as exc:
            logger.warning("Failed to write summary %s: %s", path, exc)
            failures.append(f"{path.name}: {exc}")
    return failures


def _round_tenths(value: float) -> float:
    try:
        rounded = Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return 0.0
    return float(rounded)
