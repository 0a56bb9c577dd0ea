from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .destination import Organization, parse_organization
from .paths import config_path

CONFIG_VERSION = 1

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass
class AppConfig:
    version: int = CONFIG_VERSION
    organization: str | None = None
    skip_untouched: bool | None = None
    root_folder_name: str | None = None
    commit_parent: str | None = None
    default_tags: list[str] | None = None
    log_level: str | None = None


def load_config(path: Path | None = None) -> tuple[AppConfig, str | None]:
    path = path or config_path()
    if not path.exists():
        return AppConfig(), None
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        return AppConfig(), f"Failed to read config: {path} ({exc})"
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return AppConfig(), f"Config file is not valid JSON: {path}"
    if not isinstance(data, dict):
        return AppConfig(), f"Config file must be a JSON object: {path}"
    return _parse_config_data(data), None


def save_config(config: AppConfig, path: Path | None = None) -> str | None:
    path = path or config_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        return f"Failed to create config directory: {path.parent} ({exc})"
    payload = _config_to_dict(config)
    try:
        path.write_text(
            json.dumps(payload, ensure_ascii=True, indent=2),
            encoding="utf-8",
        )
    except OSError as exc:
        return f"Failed to write config: {path} ({exc})"
    return None


def resolve_organization(config: AppConfig, override: str | None = None) -> Organization:
    for value in (override, config.organization):
        if value:
            try:
                return parse_organization(value)
            except ValueError:
                continue
    return Organization.BY_TAG


def _parse_config_data(data: dict[str, Any]) -> AppConfig:
    return AppConfig(
        version=_as_int(data.get("version")) or CONFIG_VERSION,
        organization=_as_organization(data.get("organization")),
        skip_untouched=_as_bool(data.get("skip_untouched")),
        root_folder_name=_as_folder_name(data.get("root_folder_name")),
        commit_parent=_as_str(data.get("commit_parent")),
        default_tags=_as_tag_list(data.get("default_tags")),
        log_level=_as_log_level(data.get("log_level")),
    )


def _config_to_dict(config: AppConfig) -> dict[str, Any]:
    data: dict[str, Any] = {"version": config.version}
    _set_if(data, "organization", config.organization)
    _set_if(data, "skip_untouched", config.skip_untouched)
    _set_if(data, "root_folder_name", config.root_folder_name)
    _set_if(data, "commit_parent", config.commit_parent)
    _set_if(data, "default_tags", config.default_tags)
    _set_if(data, "log_level", config.log_level)
    return data


def _set_if(data: dict[str, Any], key: str, value: Any) -> None:
    if value is not None:
        data[key] = value


def _as_str(value: Any) -> str | None:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return None


def _as_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    return None


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _as_organization(value: Any) -> str | None:
    text = _as_str(value)
    if text is None:
        return None
    try:
        parse_organization(text)
    except ValueError:
        return None
    return text


def _as_folder_name(value: Any) -> str | None:
    text = _as_str(value)
    if text is None or text in {".", ".."} or "/" in text or "\\" in text:
        return None
    return text


def _as_tag_list(value: Any) -> list[str] | None:
    if not isinstance(value, list):
        return None
    tags: list[str] = []
    for item in value:
        tag = _as_str(item)
        if tag and tag not in tags:
            tags.append(tag)
    return tags or None


def _as_log_level(value: Any) -> str | None:
    text = _as_str(value)
    if text is None or text.upper() not in _LOG_LEVELS:
        return None
    return text.upper()
