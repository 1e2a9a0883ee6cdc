"""Data-file loader — seed a MemoryStore from YAML or JSON.

Expected shape::

    Post:
      - id: 1
        slug: my-first-post
      - id: 2
        slug: another-post
    Author:
      - id: ada
        name: Ada Lovelace

Every entry must carry an ``id``; all other keys become record fields.
"""

from __future__ import annotations

import json
from pathlib import Path

import yaml

from collate._errors import ConfigError
from collate.data.memory import MemoryStore
from collate.data.records import Record


def load_records(path: Path) -> list[Record]:
    """Read *path* and return its records in file order.

    Raises:
        ConfigError: If the file cannot be read or does not match the
            expected shape.

    """
    try:
        text = path.read_text(encoding="utf-8")
        if path.suffix == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text) or {}
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as exc:
        msg = f"Cannot read data file {path}: {exc}"
        raise ConfigError(msg) from exc

    if not isinstance(data, dict):
        msg = f"{path}: expected a mapping of record type -> list of records"
        raise ConfigError(msg)

    records: list[Record] = []
    for type_name, entries in data.items():
        if not isinstance(entries, list):
            msg = f"{path}: records of type {type_name!r} must be a list"
            raise ConfigError(msg)
        for index, entry in enumerate(entries):
            if not isinstance(entry, dict) or entry.get("id") is None:
                msg = f"{path}: {type_name}[{index}] must be a mapping with an 'id'"
                raise ConfigError(msg)
            fields = {k: v for k, v in entry.items() if k != "id"}
            records.append(Record(type=str(type_name), id=str(entry["id"]), fields=fields))
    return records


def load_store(path: Path) -> MemoryStore:
    """Build a MemoryStore holding every record in *path*."""
    return MemoryStore(load_records(path))
