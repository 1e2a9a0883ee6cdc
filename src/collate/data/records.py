"""Record model — the data layer's entities as seen by collate."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from collate._types import RecordChangeKind


@dataclass(frozen=True, slots=True)
class Record:
    """An external data entity.

    Attributes:
        type: Record type name (e.g. ``Post``).
        id: Identity of the record, unique within its type.
        fields: Field name -> value; values may be nested mappings.

    """

    type: str
    id: str
    fields: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "id", str(self.id))
        if not isinstance(self.fields, MappingProxyType):
            object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))


@dataclass(frozen=True, slots=True)
class RecordChange:
    """A notification from the data layer about a single record."""

    kind: RecordChangeKind
    record: Record
