from __future__ import annotations

from pathlib import Path

import pytest

from cliptriage.clip import Clip
from cliptriage.registry import ClipRegistry, SortOrder, discover_media


def _clip(clip_id: str, name: str, **kwargs) -> Clip:
    return Clip(id=clip_id, path=Path("/media") / name, filename=name, **kwargs)


def _registry(*clips: Clip) -> ClipRegistry:
    return ClipRegistry(clips)


def test_set_rating_toggles_to_zero_on_repeat() -> None:
    registry = _registry(_clip("a", "a.mov"))

    first = registry.set_rating("a", 4)
    second = registry.set_rating("a", 4)

    assert first is not None and (first.old, first.new) == (0, 4)
    assert second is not None and (second.old, second.new) == (4, 0)
    assert registry.get("a").rating == 0


def test_set_rating_rejects_out_of_range() -> None:
    registry = _registry(_clip("a", "a.mov"))
    with pytest.raises(ValueError):
        registry.set_rating("a", 6)


def test_unknown_ids_are_ignored() -> None:
    registry = _registry(_clip("a", "a.mov"))

    assert registry.set_rating("missing", 3) is None
    assert registry.toggle_tag("missing", "Dunk") is None
    assert registry.remove_tag("missing", "Dunk") is None
    assert registry.rename("missing", "b") is None
    assert registry.remove("missing") is None
    assert not registry.can_undo


def test_toggle_tag_keeps_insertion_order() -> None:
    registry = _registry(_clip("a", "a.mov"))

    registry.toggle_tag("a", "Action")
    registry.toggle_tag("a", "Defense")
    registry.toggle_tag("a", "Action")
    registry.toggle_tag("a", "Action")

    assert registry.get("a").tags == ["Defense", "Action"]


def test_remove_tag_only_records_when_present() -> None:
    registry = _registry(_clip("a", "a.mov", tags=["Dunk"]))

    assert registry.remove_tag("a", "Action") is None
    action = registry.remove_tag("a", "Dunk")

    assert action is not None and not action.was_added
    assert registry.get("a").tags == []
    assert len(registry.log.undo_actions) == 1


def test_rename_preserves_extension() -> None:
    registry = _registry(_clip("a", "game.mov"))

    action = registry.rename("a", "buzzer beater")

    assert action is not None
    assert registry.get("a").filename == "buzzer beater.mov"
    assert registry.get("a").path == Path("/media/game.mov")


def test_rename_ignores_empty_and_unchanged_names() -> None:
    registry = _registry(_clip("a", "game.mov"))

    assert registry.rename("a", "") is None
    assert registry.rename("a", "game.mov") is None
    assert not registry.can_undo


def test_rename_keeps_explicit_extension() -> None:
    registry = _registry(_clip("a", "game.mov"))
    registry.rename("a", "final.mp4")
    assert registry.get("a").filename == "final.mp4"


def test_apply_tag_batch_skips_existing_tags() -> None:
    registry = _registry(
        _clip("a", "a.mov", tags=["Loud Peaks"]),
        _clip("b", "b.mov"),
    )

    action = registry.apply_tag_batch(
        [("a", "Loud Peaks"), ("b", "Loud Peaks"), ("missing", "Quiet")]
    )

    assert action is not None
    assert action.applied == (("b", "Loud Peaks"),)
    assert "Loud Peaks" in registry.available_tags


def test_apply_tag_batch_with_nothing_applied_records_nothing() -> None:
    registry = _registry(_clip("a", "a.mov", tags=["Quiet"]))
    assert registry.apply_tag_batch([("a", "Quiet")]) is None
    assert not registry.can_undo


def test_add_clips_deduplicates_by_path() -> None:
    registry = ClipRegistry()
    first = _clip("a", "a.mov")
    duplicate = _clip("b", "a.mov")

    added = registry.add_clips([first, duplicate])

    assert [clip.id for clip in added] == ["a"]
    assert registry.add(duplicate) is False
    assert len(registry) == 1


def test_subscribers_are_notified_and_can_unsubscribe() -> None:
    registry = _registry(_clip("a", "a.mov"))
    calls: list[int] = []
    unsubscribe = registry.subscribe(lambda: calls.append(1))

    registry.set_rating("a", 2)
    registry.undo()
    unsubscribe()
    registry.redo()

    assert len(calls) == 2


def test_metrics_side_map_is_opaque() -> None:
    registry = _registry(_clip("a", "a.mov"), _clip("b", "b.mov"))
    value = {"maxRMS": 0.4}

    registry.set_metric("a", value)

    assert registry.metric("a") is value
    assert registry.metric("b") is None
    assert [clip.id for clip in registry.unanalyzed_clips()] == ["b"]
    assert dict(registry.metrics) == {"a": value}


def test_attach_media_info() -> None:
    registry = _registry(_clip("a", "a.mov"))

    assert registry.attach_media_info("a", duration=12.5, width=1920, height=1080)
    assert not registry.attach_media_info("missing", duration=1.0)

    clip = registry.get("a")
    assert clip.duration == 12.5
    assert clip.resolution == "1920x1080"
    assert not registry.can_undo


def test_visible_clips_sort_and_filter() -> None:
    registry = _registry(
        _clip("a", "clip10.mov", rating=3, duration=5.0),
        _clip("b", "clip2.mov", rating=5, duration=20.0, tags=["Dunk"]),
        _clip("c", "clip1.mov", duration=1.0),
    )

    by_name = [clip.filename for clip in registry.visible_clips(SortOrder.NAME)]
    by_duration = [clip.id for clip in registry.visible_clips(SortOrder.DURATION)]
    by_rating = [clip.id for clip in registry.visible_clips(SortOrder.RATING)]

    assert by_name == ["clip1.mov", "clip2.mov", "clip10.mov"]
    assert by_duration == ["b", "a", "c"]
    assert by_rating == ["b", "a", "c"]
    assert [c.id for c in registry.visible_clips(filter_rating=3)] == ["a"]
    assert [c.id for c in registry.visible_clips(filter_tag="Dunk")] == ["b"]
    assert {c.id for c in registry.visible_clips(hide_untouched=True)} == {"a", "b"}


def test_stats() -> None:
    registry = _registry(
        _clip("a", "a.mov", rating=3, duration=10.0),
        _clip("b", "b.mov", tags=["Dunk"], duration=20.0),
        _clip("c", "c.mov", duration=30.0),
    )

    assert registry.total_clips == 3
    assert registry.rated_clips == 1
    assert registry.tagged_clips == 1
    assert registry.untouched_count == 1
    assert registry.total_duration == 60.0
    assert registry.shortlisted_duration == 30.0
    assert registry.has_shortlisted_clips
    assert registry.used_tags == ["Dunk"]


def test_add_folder_discovers_supported_media(tmp_path: Path) -> None:
    (tmp_path / "sub").mkdir()
    (tmp_path / ".hidden").mkdir()
    (tmp_path / "clip10.MOV").write_bytes(b"1234")
    (tmp_path / "clip2.mp4").write_bytes(b"12")
    (tmp_path / "sub" / "clip3.mkv").write_bytes(b"1")
    (tmp_path / "notes.txt").write_text("skip")
    (tmp_path / ".hidden" / "secret.mov").write_bytes(b"1")

    registry = ClipRegistry()
    added = registry.add_folder(tmp_path)

    assert [clip.filename for clip in added] == ["clip2.mp4", "clip3.mkv", "clip10.MOV"]
    assert added[2].file_size == 4
    assert registry.add_folder(tmp_path) == []
    assert len(registry.log.undo_actions) == 1


def test_discover_media_on_missing_folder(tmp_path: Path) -> None:
    assert discover_media(tmp_path / "missing") == []


def test_drop_committed_removes_untouched_when_requested() -> None:
    registry = _registry(
        _clip("a", "a.mov", rating=5),
        _clip("b", "b.mov", tags=["Dunk"]),
        _clip("c", "c.mov"),
    )

    removed = registry.drop_committed(["a"], drop_untouched=True)

    assert removed == 2
    assert [clip.id for clip in registry] == ["b"]
    assert not registry.is_loaded(Path("/media/a.mov"))


def test_removed_and_committed_clips_drop_their_metrics() -> None:
    registry = _registry(
        _clip("a", "a.mov", rating=5),
        _clip("b", "b.mov"),
        _clip("c", "c.mov", rating=1),
    )
    for clip_id in ("a", "b", "c"):
        registry.set_metric(clip_id, {"maxRMS": 0.1})

    registry.remove("b")
    registry.drop_committed(["a"])

    assert dict(registry.metrics) == {"c": {"maxRMS": 0.1}}
