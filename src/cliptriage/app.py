from __future__ import annotations

import argparse
import sys
from pathlib import Path

from rich.console import Console

from .clip import MAX_RATING
from .commit import DEFAULT_ROOT_NAME, commit_clips
from .config import AppConfig, load_config, resolve_organization
from .destination import preview_tree
from .edit_log import describe_action
from .log_setup import configure_logging
from .manifest import read_manifest, reconcile_manifest
from .paths import config_path, log_dir
from .probe import probe_registry
from .registry import ClipRegistry
from .report import (
    format_commit_result,
    format_preview,
    format_reconciliation,
    format_session_stats,
)
from .session import load_session, save_session


def _cli_help_text() -> str:
    return "\n".join(
        [
            "cliptriage - commit rated and tagged clips into an organized folder tree",
            "",
            "Usage:",
            "  cliptriage scan SESSION PATH... [--no-probe]",
            "  cliptriage preview SESSION [--by-tag | --by-rating] [--include-untouched]",
            "  cliptriage commit SESSION [PARENT] [--by-tag | --by-rating]",
            "                    [--include-untouched] [--name NAME]",
            "  cliptriage rate SESSION CLIP RATING",
            "  cliptriage tag SESSION CLIP TAG [--remove]",
            "  cliptriage rename SESSION CLIP NAME",
            "  cliptriage status MANIFEST",
            "",
            "SESSION is a JSON file holding clips with their ratings and tags.",
            "A commit moves every rated or tagged clip into PARENT/ClipTriage,",
            "writing cliptriage-manifest.json before the first file is touched.",
            "CLIP is a clip filename or id; rating the same value twice clears it.",
            "",
            f"Config: {config_path()}",
        ]
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cliptriage", description=_cli_help_text().splitlines()[0]
    )
    parser.add_argument("--verbose", action="store_true", help="Log debug output")
    commands = parser.add_subparsers(dest="command", required=True)

    scan = commands.add_parser("scan", help="Add folders or video files to a session")
    scan.add_argument("session", help="Session file")
    scan.add_argument("paths", nargs="+", help="Folders or video files")
    scan.add_argument("--no-probe", action="store_true", help="Skip ffprobe media probing")

    preview = commands.add_parser("preview", help="Show the folder tree a commit would build")
    preview.add_argument("session", help="Session file")
    _add_organization_flags(preview)
    preview.add_argument("--include-untouched", action="store_true")

    commit = commands.add_parser("commit", help="Move triaged clips into the folder tree")
    commit.add_argument("session", help="Session file")
    commit.add_argument("parent", nargs="?", help="Folder that receives the commit folder")
    _add_organization_flags(commit)
    commit.add_argument(
        "--include-untouched",
        action="store_true",
        help="Also move clips without rating or tags",
    )
    commit.add_argument("--name", help=f"Commit folder name (default {DEFAULT_ROOT_NAME})")

    rate = commands.add_parser("rate", help="Set or clear a clip rating")
    rate.add_argument("session", help="Session file")
    rate.add_argument("clip", help="Clip filename or id")
    rate.add_argument("rating", type=int, choices=range(0, MAX_RATING + 1))

    tag = commands.add_parser("tag", help="Toggle a tag on a clip")
    tag.add_argument("session", help="Session file")
    tag.add_argument("clip", help="Clip filename or id")
    tag.add_argument("tag", help="Tag name")
    tag.add_argument("--remove", action="store_true", help="Only remove the tag")

    rename = commands.add_parser("rename", help="Change the filename a clip is committed under")
    rename.add_argument("session", help="Session file")
    rename.add_argument("clip", help="Clip filename or id")
    rename.add_argument("name", help="New filename; the extension is kept if omitted")

    status = commands.add_parser("status", help="Compare a commit manifest with the disk")
    status.add_argument("manifest", help="Path to cliptriage-manifest.json")
    return parser


def _add_organization_flags(parser: argparse.ArgumentParser) -> None:
    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "--by-tag", dest="organization", action="store_const", const="by-tag"
    )
    group.add_argument(
        "--by-rating", dest="organization", action="store_const", const="by-rating"
    )


def main(argv: list[str] | None = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    console = Console()
    if argv in (["-help"], ["help"]):
        console.print(_cli_help_text(), markup=False, highlight=False)
        return 0

    parser = _build_parser()
    args = parser.parse_args(argv)
    config, config_error = load_config()
    level = "DEBUG" if args.verbose else (config.log_level or "WARNING")
    configure_logging(level, log_dir())
    if config_error:
        console.print(config_error, style="yellow", markup=False)

    if args.command == "status":
        return _run_status(console, Path(args.manifest).expanduser())

    session_path = Path(args.session).expanduser()
    registry, error = load_session(session_path, config.default_tags)
    if error:
        console.print(error, style="yellow", markup=False)

    if args.command == "scan":
        return _run_scan(console, registry, session_path, args)
    if args.command == "preview":
        return _run_preview(console, registry, config, args)
    if args.command in {"rate", "tag", "rename"}:
        return _run_edit(console, registry, session_path, args)
    return _run_commit(console, parser, registry, session_path, config, args)


def _run_scan(
    console: Console, registry: ClipRegistry, session_path: Path, args: argparse.Namespace
) -> int:
    added = 0
    for raw in args.paths:
        path = Path(raw).expanduser()
        if path.is_dir():
            added += len(registry.add_folder(path))
        elif path.is_file():
            added += len(registry.add_paths([path]))
        else:
            console.print(f"Not found: {path}", style="yellow", markup=False)
    if not args.no_probe:
        for line in probe_registry(registry):
            console.print(line, style="yellow", markup=False)
    error = save_session(registry, session_path)
    if error:
        console.print(error, style="red", markup=False)
        return 1
    console.print(f"Added {added} clips.")
    console.print(format_session_stats(registry))
    return 0


def _run_preview(
    console: Console, registry: ClipRegistry, config: AppConfig, args: argparse.Namespace
) -> int:
    organization = resolve_organization(config, args.organization)
    folders = preview_tree(
        registry, organization, include_untouched=args.include_untouched
    )
    console.print(format_session_stats(registry))
    console.print(format_preview(folders, config.root_folder_name or DEFAULT_ROOT_NAME))
    if not args.include_untouched and registry.untouched_count:
        console.print(f"{registry.untouched_count} untouched clips will stay in place.")
    return 0


def _run_edit(
    console: Console, registry: ClipRegistry, session_path: Path, args: argparse.Namespace
) -> int:
    clip = registry.find_by_filename(args.clip) or registry.get(args.clip)
    if clip is None:
        console.print(f"No clip named {args.clip} in {session_path}", style="red", markup=False)
        return 1
    if args.command == "rate":
        action = registry.set_rating(clip.id, args.rating)
    elif args.command == "tag":
        tag = args.tag.strip()
        if args.remove:
            action = registry.remove_tag(clip.id, tag)
        else:
            registry.register_tag(tag)
            action = registry.toggle_tag(clip.id, tag)
    else:
        action = registry.rename(clip.id, args.name)
    if action is None:
        console.print("Nothing changed.")
        return 0
    error = save_session(registry, session_path)
    if error:
        console.print(error, style="red", markup=False)
        return 1
    console.print(f"{clip.filename}: {describe_action(action)}", markup=False)
    return 0


def _run_commit(
    console: Console,
    parser: argparse.ArgumentParser,
    registry: ClipRegistry,
    session_path: Path,
    config: AppConfig,
    args: argparse.Namespace,
) -> int:
    parent_value = args.parent or config.commit_parent
    if not parent_value:
        parser.error("commit needs a PARENT folder (or commit_parent in the config)")
    skip_untouched = not args.include_untouched and config.skip_untouched is not False
    result = commit_clips(
        registry,
        Path(parent_value).expanduser(),
        organization=resolve_organization(config, args.organization),
        skip_untouched=skip_untouched,
        root_name=args.name or config.root_folder_name or DEFAULT_ROOT_NAME,
    )
    console.print(format_commit_result(result))
    error = save_session(registry, session_path)
    if error:
        console.print(error, style="red", markup=False)
        return 1
    return 0 if result.ok else 1


def _run_status(console: Console, manifest_path: Path) -> int:
    manifest, error = read_manifest(manifest_path)
    if manifest is None:
        console.print(error or "Failed to read manifest", style="red", markup=False)
        return 1
    console.print(format_reconciliation(manifest, reconcile_manifest(manifest)))
    return 0
