from __future__ import annotations

from pathlib import Path

from platformdirs import user_config_path, user_log_path

APP_NAME = "cliptriage"


def config_root() -> Path:
    root = user_config_path(APP_NAME)
    root.mkdir(parents=True, exist_ok=True)
    return root


def config_path() -> Path:
    return config_root() / "config.json"


def log_dir() -> Path:
    path = user_log_path(APP_NAME)
    path.mkdir(parents=True, exist_ok=True)
    return path
