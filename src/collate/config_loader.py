"""Load CollateConfig from collate.yaml / collate.toml if present.

Merges file config with keyword overrides. Overrides take precedence.
"""

from __future__ import annotations

import tomllib
from pathlib import Path

import yaml

from collate._errors import ConfigError
from collate.config import CollateConfig

CONFIG_FILE_NAMES: tuple[str, ...] = ("collate.yaml", "collate.yml", "collate.toml")

_KNOWN_KEYS: frozenset[str] = frozenset({
    "pages_dir",
    "extensions",
    "ignore",
    "debounce_ms",
    "step_ms",
    "retry_initial_s",
    "retry_max_s",
    "preserve_slashes",
    "record_types",
    "data_file",
})

# Keys whose values are stored as tuples on the frozen config
_TUPLE_KEYS: frozenset[str] = frozenset({"extensions", "ignore", "record_types"})


def load_config(root: Path, **overrides: object) -> CollateConfig:
    """Load CollateConfig from root, optionally merging a config file.

    Looks for collate.yaml, collate.yml, or collate.toml in root. If found,
    loads and merges with overrides. Overrides take precedence.

    Raises:
        ConfigError: If the config file cannot be parsed or names unknown keys.

    """
    file_config = _read_collate_config(root)
    merged = {**file_config, **overrides}
    for key in _TUPLE_KEYS & merged.keys():
        value = merged[key]
        if isinstance(value, str):
            merged[key] = (value,)
        elif isinstance(value, (list, tuple)):
            merged[key] = tuple(str(v) for v in value)
    try:
        return CollateConfig(root=root, **merged)  # type: ignore[arg-type]
    except TypeError as exc:
        msg = f"Invalid collate configuration: {exc}"
        raise ConfigError(msg) from exc


def find_config_file(root: Path) -> Path | None:
    """Return the first config file present in *root*, or None."""
    for name in CONFIG_FILE_NAMES:
        path = root / name
        if path.is_file():
            return path
    return None


def _read_collate_config(root: Path) -> dict[str, object]:
    """Read collate config from yaml/toml if present. Returns empty dict otherwise."""
    path = find_config_file(root)
    if path is None:
        return {}
    if path.suffix == ".toml":
        return _parse_toml(path)
    return _parse_yaml(path)


def _parse_yaml(path: Path) -> dict[str, object]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        msg = f"Cannot read {path}: {exc}"
        raise ConfigError(msg) from exc
    return _flatten_collate_section(data, path)


def _parse_toml(path: Path) -> dict[str, object]:
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as exc:
        msg = f"Cannot read {path}: {exc}"
        raise ConfigError(msg) from exc
    return _flatten_collate_section(data, path)


def _flatten_collate_section(data: object, path: Path) -> dict[str, object]:
    """Extract collate.* keys (or top-level known keys) into a flat dict."""
    if not isinstance(data, dict):
        msg = f"{path}: expected a mapping at the top level"
        raise ConfigError(msg)

    result: dict[str, object] = {}
    section = data.get("collate")
    if isinstance(section, dict):
        result.update(section)
    for k, v in data.items():
        if k != "collate" and k in _KNOWN_KEYS:
            result[k] = v

    unknown = sorted(set(result) - _KNOWN_KEYS)
    if unknown:
        msg = f"{path}: unknown config key(s): {', '.join(unknown)}"
        raise ConfigError(msg)
    return result
