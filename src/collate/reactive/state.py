"""Reconciliation state — the authoritative map of published pages.

Maps ``(template, record_id)`` to the :class:`PageDescriptor` last sent to
the page sink, with a reverse index from output path to key. Only the
reconciler writes to it; readers take a consistent snapshot.

Thread Safety:
    All methods are protected by a ``threading.Lock``.

"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING

from collate._errors import RouteCollisionError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from collate._types import OutputPath, PageKey, TemplatePath
    from collate.routes.resolver import PageDescriptor


@dataclass(frozen=True, slots=True)
class StateSnapshot:
    """Read-only copy of the state at one instant."""

    pages: Mapping[PageKey, PageDescriptor]
    paths: Mapping[OutputPath, PageKey]

    def __len__(self) -> int:
        return len(self.pages)

    def templates(self) -> frozenset[TemplatePath]:
        return frozenset(template for template, _ in self.pages)


class ReconciliationState:
    """Published pages keyed by ``(template, record_id)``.

    Invariant: every output path is owned by at most one key.

    """

    __slots__ = ("_by_path", "_lock", "_pages")

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pages: dict[PageKey, PageDescriptor] = {}
        self._by_path: dict[OutputPath, PageKey] = {}

    def get(self, key: PageKey) -> PageDescriptor | None:
        with self._lock:
            return self._pages.get(key)

    def owner_of(self, path: OutputPath) -> PageKey | None:
        """Return the key currently publishing *path*, if any."""
        with self._lock:
            return self._by_path.get(path)

    def pages_for(self, template: TemplatePath) -> dict[PageKey, PageDescriptor]:
        """All published pages owned by *template*."""
        with self._lock:
            return {k: d for k, d in self._pages.items() if k[0] == template}

    def templates(self) -> frozenset[TemplatePath]:
        """Templates that own at least one published page."""
        with self._lock:
            return frozenset(template for template, _ in self._pages)

    def put(self, descriptor: PageDescriptor) -> None:
        """Insert or replace the page for ``descriptor.key``.

        Raises:
            RouteCollisionError: If another key already owns the output path.

        """
        key = descriptor.key
        with self._lock:
            owner = self._by_path.get(descriptor.path)
            if owner is not None and owner != key:
                raise RouteCollisionError(descriptor.path, owner, key)
            previous = self._pages.get(key)
            if previous is not None:
                self._by_path.pop(previous.path, None)
            self._pages[key] = descriptor
            self._by_path[descriptor.path] = key

    def remove(self, key: PageKey) -> PageDescriptor | None:
        with self._lock:
            descriptor = self._pages.pop(key, None)
            if descriptor is not None:
                self._by_path.pop(descriptor.path, None)
            return descriptor

    def clear(self) -> int:
        """Drop every entry and return how many there were."""
        with self._lock:
            count = len(self._pages)
            self._pages.clear()
            self._by_path.clear()
            return count

    def snapshot(self) -> StateSnapshot:
        with self._lock:
            return StateSnapshot(
                pages=MappingProxyType(dict(self._pages)),
                paths=MappingProxyType(dict(self._by_path)),
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._pages)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._pages
