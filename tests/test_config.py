"""Tests for YAML configuration loading and validation helpers."""

from __future__ import annotations

from pathlib import Path

import pytest

from site_publisher.config import (
    MappingConfigSource,
    load_site_config,
    merge_deep,
    save_site_config,
)
from site_publisher.config_validation import (
    is_blank,
    require_positive_float,
    require_positive_int,
    validate_target_id,
)


def test_defaults_are_applied_and_overridden() -> None:
    source = MappingConfigSource({"deployment": {"git": {"branch": "release"}}})

    assert source.get("deployment.method") == "git"
    assert source.get("deployment.git.branch") == "release"
    assert source.get("deployment.git.auto_commit") is False
    assert source.get("build.public_dir") == "public"
    assert source.get("deployment.netlify.site_id", "none") == "none"


def test_set_creates_intermediate_mappings() -> None:
    source = MappingConfigSource(with_defaults=False)
    source.set("deployment.rsync.host", "example.com")

    assert source.as_dict() == {"deployment": {"rsync": {"host": "example.com"}}}


def test_merge_deep_replaces_scalars_and_merges_mappings() -> None:
    merged = merge_deep({"a": {"b": 1, "c": 2}, "d": 1}, {"a": {"b": 5}, "d": {"e": 1}})

    assert merged == {"a": {"b": 5, "c": 2}, "d": {"e": 1}}


def test_load_and_save_roundtrip_through_yaml(tmp_path: Path) -> None:
    config_path = tmp_path / "site.yaml"
    config_path.write_text(
        "deployment:\n  method: netlify\n  netlify:\n    deploy_hook: https://hooks.example\n",
        encoding="utf-8",
    )

    source = load_site_config(config_path)
    assert source.get("deployment.method") == "netlify"

    source.set("deployment.method", "rsync")
    save_site_config(source, config_path)

    assert load_site_config(config_path).get("deployment.method") == "rsync"
    assert load_site_config(config_path).get("deployment.netlify.deploy_hook") == (
        "https://hooks.example"
    )


def test_missing_file_yields_defaults(tmp_path: Path) -> None:
    source = load_site_config(tmp_path / "absent.yaml")

    assert source.get("deployment.method") == "git"


def test_non_mapping_file_is_rejected(tmp_path: Path) -> None:
    config_path = tmp_path / "site.yaml"
    config_path.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ValueError, match="mapping"):
        load_site_config(config_path)


def test_validation_helpers() -> None:
    assert validate_target_id(" netlify ") == "netlify"
    with pytest.raises(ValueError):
        validate_target_id("Not A Target")
    assert require_positive_int(3, "workers") == 3
    with pytest.raises(ValueError, match="workers must be greater than zero"):
        require_positive_int(0, "workers")
    with pytest.raises(ValueError):
        require_positive_float(0, "timeout")
    assert is_blank("  ") and is_blank(None) and is_blank([])
    assert not is_blank(0)


def test_load_without_defaults_keeps_only_file_values(tmp_path: Path) -> None:
    config_path = tmp_path / "site.yaml"
    config_path.write_text("deployment:\n  method: s3\n", encoding="utf-8")

    source = load_site_config(config_path, with_defaults=False)

    assert source.as_dict() == {"deployment": {"method": "s3"}}
    assert load_site_config(tmp_path / "absent.yaml", with_defaults=False).as_dict() == {}
