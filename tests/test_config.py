from __future__ import annotations

import json

from cliptriage.config import AppConfig, load_config, resolve_organization, save_config
from cliptriage.destination import Organization


def test_load_config_missing_file(tmp_path) -> None:
    path = tmp_path / "config.json"
    config, error = load_config(path)
    assert error is None
    assert config == AppConfig()


def test_save_and_load_config_roundtrip(tmp_path) -> None:
    path = tmp_path / "nested" / "config.json"
    config = AppConfig(
        organization="by-rating",
        skip_untouched=False,
        root_folder_name="Highlights",
        commit_parent="/media/exports",
        default_tags=["Dunk", "Block"],
        log_level="DEBUG",
    )
    error = save_config(config, path)
    assert error is None
    loaded, error = load_config(path)
    assert error is None
    assert loaded == config


def test_load_config_invalid_json(tmp_path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{not-json", encoding="utf-8")
    config, error = load_config(path)
    assert config == AppConfig()
    assert error is not None


def test_load_config_drops_invalid_values(tmp_path) -> None:
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "organization": "by-date",
                "skip_untouched": "yes",
                "root_folder_name": "../escape",
                "default_tags": ["Dunk", " ", "Dunk", 3, "Steal"],
                "log_level": "loud",
            }
        ),
        encoding="utf-8",
    )
    config, error = load_config(path)
    assert error is None
    assert config.organization is None
    assert config.skip_untouched is None
    assert config.root_folder_name is None
    assert config.default_tags == ["Dunk", "Steal"]
    assert config.log_level is None


def test_resolve_organization_prefers_override() -> None:
    config = AppConfig(organization="By Rating")
    assert resolve_organization(config) == Organization.BY_RATING
    assert resolve_organization(config, "by-tag") == Organization.BY_TAG
    assert resolve_organization(AppConfig()) == Organization.BY_TAG
