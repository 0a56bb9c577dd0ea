from __future__ import annotations

from pathlib import Path

from rich.text import Text
from rich.tree import Tree

from .clip import format_total_duration
from .commit import CommitResult
from .destination import PreviewFolder
from .manifest import Manifest, Reconciliation, RecoveryState
from .registry import ClipRegistry

_STATE_STYLES = {
    RecoveryState.DONE: "green",
    RecoveryState.NOT_STARTED: "cyan",
    RecoveryState.UNVERIFIED: "yellow",
    RecoveryState.FAILED_IN_PLACE: "red",
    RecoveryState.CONFLICT: "magenta",
    RecoveryState.MISSING: "bold red",
}


def format_preview(folders: list[PreviewFolder] | None, root_name: str) -> Tree | Text:
    if not folders:
        return Text("Nothing to commit: no clip is rated or tagged.")
    tree = Tree(Text(f"{root_name}/", style="bold"))
    for folder in folders:
        count = len(folder.files)
        branch = tree.add(
            Text.assemble((f"{folder.name}/", "bold yellow"), f" ({_plural(count, 'clip')})")
        )
        for item in folder.files:
            label = Text(item.filename)
            if item.annotation:
                label.append(f"  {item.annotation}", style="dim")
            branch.add(label)
    return tree


def format_session_stats(registry: ClipRegistry) -> Text:
    text = Text(_plural(registry.total_clips, "clip"), style="bold")
    text.append(
        f" | {registry.rated_clips} rated | {registry.tagged_clips} tagged"
        f" | {registry.untouched_count} untouched"
    )
    if registry.total_duration > 0:
        text.append(f" | {format_total_duration(registry.total_duration)} total")
        if registry.has_shortlisted_clips:
            text.append(
                f" ({format_total_duration(registry.shortlisted_duration)} shortlisted)",
                style="dim",
            )
    return text


def format_commit_result(result: CommitResult) -> Text:
    text = Text()
    if result.export_folder is None:
        text.append("Commit failed", style="bold red")
    elif result.errors:
        text.append("Commit finished with issues", style="bold yellow")
    else:
        text.append("Commit complete", style="bold green")
    text.append(f"\n{_plural(result.moved_count, 'clip')} moved")
    if result.skipped_count:
        text.append(f"\n{result.skipped_count} untouched clips left in place")
    if result.export_folder is not None:
        text.append(f"\nFolder: {result.export_folder}")
    if result.errors:
        text.append(f"\n{len(result.errors)} errors:", style="red")
        for error in result.errors:
            text.append(f"\n  {error}")
    return text


def format_reconciliation(manifest: Manifest, results: list[Reconciliation]) -> Text:
    text = Text()
    text.append(f"Manifest: {manifest.path}\n", style="bold")
    text.append(f"Status: {manifest.status}  Started: {manifest.started_at}")
    if manifest.organization:
        text.append(f"  Organization: {manifest.organization}")
    if not results:
        text.append("\nNo planned moves.")
        return text
    root = manifest.path.parent
    for item in results:
        text.append("\n")
        text.append(f"{item.state.value.upper():16}", style=_STATE_STYLES[item.state])
        text.append(f"{_rel(root, item.entry.source)} -> {_rel(root, item.entry.destination)}")
        if item.entry.error:
            text.append(f" | {item.entry.error}", style="dim")
    return text


def _rel(root: Path, path: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return str(path)


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'' if count == 1 else 's'}"
