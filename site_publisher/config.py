"""Configuration sources for the deployment layer.

Site settings live in a YAML file (``site.yaml`` by default) and are read
through a small protocol so the orchestrator never reaches for a global
instance. Values are addressed with dot paths such as
``deployment.netlify.site_id``.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Protocol

import yaml

from site_publisher.logging_utils import get_logger

LOGGER = get_logger()

DEFAULT_CONFIG_FILENAME = "site.yaml"
DEFAULT_DEPLOYMENT_METHOD = "git"

_DEFAULTS: dict[str, Any] = {
    "deployment": {
        "method": DEFAULT_DEPLOYMENT_METHOD,
        "git": {
            "branch": "main",
            "auto_commit": False,
        },
    },
    "build": {
        "command": ["hugo", "--minify"],
        "search_index": True,
        "public_dir": "public",
    },
}

_MISSING = object()


class ConfigurationSource(Protocol):
    """Read-only access to site configuration by dot path."""

    def get(self, path: str, default: Any = None) -> Any: ...


class MappingConfigSource:
    """Configuration source backed by an in-memory nested mapping."""

    def __init__(
        self, data: Mapping[str, Any] | None = None, *, with_defaults: bool = True
    ) -> None:
        base = copy.deepcopy(_DEFAULTS) if with_defaults else {}
        self._data: dict[str, Any] = merge_deep(base, dict(data or {}))

    def get(self, path: str, default: Any = None) -> Any:
        """Return the value at ``path`` or ``default`` when any segment is missing."""
        value: Any = self._data
        for key in path.split("."):
            if not isinstance(value, Mapping) or key not in value:
                return default
            value = value[key]
        return value

    def set(self, path: str, value: Any) -> None:
        """Set a value at ``path``, creating intermediate mappings."""
        keys = path.split(".")
        node = self._data
        for key in keys[:-1]:
            child = node.get(key)
            if not isinstance(child, dict):
                child = {}
                node[key] = child
            node = child
        node[keys[-1]] = value

    def as_dict(self) -> dict[str, Any]:
        """Return a deep copy of the underlying mapping."""
        return copy.deepcopy(self._data)


def merge_deep(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base`` and return ``base``."""
    for key, value in override.items():
        current = base.get(key, _MISSING)
        if isinstance(current, dict) and isinstance(value, Mapping):
            merge_deep(current, value)
        else:
            base[key] = copy.deepcopy(value)
    return base


def load_site_config(path: Path, *, with_defaults: bool = True) -> MappingConfigSource:
    """Load site configuration from a YAML file.

    A missing file yields defaults only. A file whose top level is not a
    mapping is rejected. Pass ``with_defaults=False`` to get only what the
    file holds, e.g. before writing it back.
    """
    config_path = path.expanduser().resolve()
    if not config_path.exists():
        LOGGER.info("Config file not found; using defaults", extra={"path": str(config_path)})
        return MappingConfigSource(with_defaults=with_defaults)
    raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    if raw is None:
        return MappingConfigSource(with_defaults=with_defaults)
    if not isinstance(raw, dict):
        raise ValueError(f"Configuration file must contain a mapping: {config_path}")
    LOGGER.debug("Loaded site configuration", extra={"path": str(config_path)})
    return MappingConfigSource(raw, with_defaults=with_defaults)


def save_site_config(source: MappingConfigSource, path: Path) -> None:
    """Persist a mapping source back to YAML."""
    config_path = path.expanduser().resolve()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(
        yaml.safe_dump(source.as_dict(), sort_keys=False, allow_unicode=True),
        encoding="utf-8",
    )
