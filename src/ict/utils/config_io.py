from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Callable

import yaml

from ict.errors import SchemaError

if sys.version_info >= (3, 11):
    import tomllib
else:  # pragma: no cover
    import tomli as tomllib


def _parse_yaml(raw: str) -> Any:
    return yaml.safe_load(raw) or {}


_PARSERS: dict[str, Callable[[str], Any]] = {
    ".json": json.loads,
    ".toml": tomllib.loads,
    ".yaml": _parse_yaml,
    ".yml": _parse_yaml,
}


def load_config_file(path: str | Path | None) -> dict[str, Any]:
    """Parse a JSON, TOML or YAML settings file into a plain dict."""
    if path is None:
        return {}
    config_path = Path(path)
    if not config_path.is_file():
        raise FileNotFoundError(f"Config not found: {config_path}")
    parser = _PARSERS.get(config_path.suffix.lower())
    if parser is None:
        raise SchemaError(f"Unsupported config file type: {config_path.name}")
    loaded = parser(config_path.read_text(encoding="utf-8"))
    if not isinstance(loaded, dict):
        raise SchemaError(f"Config file must contain a table of sections: {config_path}")
    return loaded


def deep_merge(base: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
    """Merge ``patch`` into ``base`` in place, section by section."""
    for key, value in patch.items():
        current = base.get(key)
        base[key] = deep_merge(current, value) if isinstance(current, dict) and isinstance(value, dict) else value
    return base


def prune_none(payload: dict[str, Any]) -> dict[str, Any]:
    """Drop ``None`` leaves and the sections they leave empty."""
    cleaned: dict[str, Any] = {}
    for key, value in payload.items():
        if isinstance(value, dict):
            value = prune_none(value) or None
        if value is not None:
            cleaned[key] = value
    return cleaned


def write_json(path: Path, payload: dict[str, Any]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, sort_keys=True) + "\n", encoding="utf-8")
    return path
