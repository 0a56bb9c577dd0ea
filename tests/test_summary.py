from __future__ import annotations

import csv
import json
from pathlib import Path

from cliptriage.clip import Clip
from cliptriage.destination import Organization
from cliptriage.manifest import EntryStatus, ManifestEntry
from cliptriage.summary import (
    CSV_FIELDS,
    SUMMARY_CSV_NAME,
    SUMMARY_JSON_NAME,
    build_summary_records,
    summary_to_csv,
    summary_to_json,
    write_summary,
)


def _pair(
    name: str,
    folder: str,
    status: EntryStatus = EntryStatus.VERIFIED,
    **kwargs,
) -> tuple[Clip, ManifestEntry]:
    clip = Clip(id=name, path=Path("/src") / name, filename=name, **kwargs)
    entry = ManifestEntry(clip.path, Path("/out") / folder / name, folder, clip.file_size, status)
    return clip, entry


def test_records_only_include_verified_entries() -> None:
    pairs = [
        _pair("a.mov", "Dunk", tags=["Dunk", "Action"], rating=3, duration=12.345),
        _pair("b.mov", "5-star", EntryStatus.FAILED, rating=5),
    ]

    records = build_summary_records(pairs, Organization.BY_TAG)

    assert len(records) == 1
    record = records[0]
    assert record.tags == ["Action", "Dunk"]
    assert record.duration == 12.3
    assert record.primary_tag == "Dunk"
    assert record.tag_folder == "Dunk"
    assert record.rating_folder == "3-star"
    assert record.resolution is None
    assert record.file_size is None


def test_record_optional_fields() -> None:
    pairs = [_pair("a.mov", "4-star", rating=4, width=1920, height=1080, file_size=42)]

    record = build_summary_records(pairs, Organization.BY_RATING)[0].to_dict()

    assert record["resolution"] == "1920x1080"
    assert record["fileSize"] == 42
    assert "primaryTag" not in record
    assert "tagFolder" not in record
    assert record["originalPath"] == str(Path("/src/a.mov"))


def test_summary_json_histograms() -> None:
    pairs = [
        _pair("a.mov", "5-star", rating=5),
        _pair("b.mov", "Dunk", tags=["Dunk"]),
        _pair("c.mov", "Dunk", tags=["Dunk", "Three"], rating=5),
    ]
    records = build_summary_records(pairs, Organization.BY_TAG)

    data = json.loads(
        summary_to_json(
            records,
            export_date="2026-01-01T00:00:00Z",
            skipped_untouched=2,
            organization=Organization.BY_TAG,
        )
    )

    assert data["totalClips"] == 3
    assert data["skippedUntouched"] == 2
    assert data["organization"] == "By Tag"
    assert data["appVersion"] == "1.0"
    assert data["ratingSummary"] == {"5-star": 2}
    assert data["tagSummary"] == {"Dunk": 2, "Three": 1}
    assert [clip["filename"] for clip in data["clips"]] == ["a.mov", "b.mov", "c.mov"]


def test_summary_csv_escapes_quotes_and_delimiters() -> None:
    pairs = [
        _pair(
            'say "hi", ok.mov',
            "Dunk",
            tags=["Dunk", "Fast Break"],
            rating=2,
            duration=3.0,
            width=640,
            height=480,
        )
    ]
    records = build_summary_records(pairs, Organization.BY_TAG)

    text = summary_to_csv(records)
    lines = text.splitlines()

    assert lines[0] == "Filename,Rating,Tags,Duration,Resolution,Folder,Rating Folder,Original Path"
    assert lines[1].startswith('"say ""hi"", ok.mov",2,Dunk; Fast Break,3.0,640x480,Dunk,2-star,')
    rows = list(csv.DictReader(lines))
    assert rows[0]["Filename"] == 'say "hi", ok.mov'
    assert rows[0]["Tags"] == "Dunk; Fast Break"
    assert list(rows[0]) == CSV_FIELDS


def test_write_summary_writes_both_files(tmp_path: Path) -> None:
    records = build_summary_records([_pair("a.mov", "1-star", rating=1)], Organization.BY_RATING)

    failures = write_summary(
        tmp_path,
        records,
        export_date="t0",
        skipped_untouched=0,
        organization=Organization.BY_RATING,
    )

    assert failures == []
    assert json.loads((tmp_path / SUMMARY_JSON_NAME).read_text())["totalClips"] == 1
    assert (tmp_path / SUMMARY_CSV_NAME).read_text().count("\n") == 2


def test_write_summary_failure_is_non_fatal(tmp_path: Path) -> None:
    failures = write_summary(
        tmp_path / "missing",
        [],
        export_date="t0",
        skipped_untouched=0,
        organization=Organization.BY_TAG,
    )
    assert len(failures) == 2


def test_duration_rounds_half_away_from_zero() -> None:
    pairs = [
        _pair("a.mov", "1-star", rating=1, duration=0.25),
        _pair("b.mov", "1-star", rating=1, duration=2.45),
        _pair("c.mov", "1-star", rating=1, duration=7.04),
    ]

    records = build_summary_records(pairs, Organization.BY_RATING)

    assert [record.duration for record in records] == [0.3, 2.5, 7.0]


def test_rating_summary_leaves_out_unrated_clips() -> None:
    pairs = [_pair("a.mov", "Dunk", tags=["Dunk"]), _pair("b.mov", "Three", tags=["Three"])]
    records = build_summary_records(pairs, Organization.BY_TAG)

    data = json.loads(
        summary_to_json(
            records, export_date="t0", skipped_untouched=0, organization=Organization.BY_TAG
        )
    )

    assert data["ratingSummary"] == {}
    assert data["clips"][0]["ratingFolder"] == "Unrated"
