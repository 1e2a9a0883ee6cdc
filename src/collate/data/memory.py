"""In-memory data store and page sink.

``MemoryStore`` is a thread-safe ``DataQuery`` suitable for tests and for
seeding from a data file. ``MemorySink`` records the pages it is asked to
create so callers can inspect the published set.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from typing import Any

from collate._types import ChangeCallback, OutputPath, PageContext, TemplatePath, Unsubscribe
from collate.data.records import Record, RecordChange


class MemoryStore:
    """Records kept in process memory, keyed by type and id.

    Subscribers are notified synchronously on the thread that mutates the
    store, after the lock is released.

    """

    def __init__(self, records: Iterable[Record] = ()) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, dict[str, Record]] = {}
        self._subscribers: dict[str, list[ChangeCallback]] = {}
        for record in records:
            self._records.setdefault(record.type, {})[record.id] = record

    def all_of_type(self, type_name: str) -> list[Record]:
        with self._lock:
            return list(self._records.get(type_name, {}).values())

    def get(self, type_name: str, record_id: str) -> Record | None:
        with self._lock:
            return self._records.get(type_name, {}).get(str(record_id))

    def type_names(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(sorted(self._records))

    def subscribe(
        self,
        type_name: str,
        on_change: ChangeCallback,
    ) -> Unsubscribe:
        with self._lock:
            self._subscribers.setdefault(type_name, []).append(on_change)

        def unsubscribe() -> None:
            with self._lock:
                callbacks = self._subscribers.get(type_name, [])
                if on_change in callbacks:
                    callbacks.remove(on_change)

        return unsubscribe

    def put(self, record: Record) -> RecordChange:
        """Insert or replace *record* and notify subscribers."""
        with self._lock:
            bucket = self._records.setdefault(record.type, {})
            kind = "updated" if record.id in bucket else "added"
            bucket[record.id] = record
        change = RecordChange(kind=kind, record=record)
        self._notify(change)
        return change

    def remove(self, type_name: str, record_id: str) -> RecordChange | None:
        """Remove a record and notify subscribers. Returns None if it was absent."""
        with self._lock:
            record = self._records.get(type_name, {}).pop(str(record_id), None)
        if record is None:
            return None
        change = RecordChange(kind="removed", record=record)
        self._notify(change)
        return change

    def _notify(self, change: RecordChange) -> None:
        with self._lock:
            callbacks = list(self._subscribers.get(change.record.type, ()))
        for callback in callbacks:
            callback(change)


class MemorySink:
    """Page sink that keeps published pages in a dict.

    Attributes:
        pages: Output path -> ``(template, context)`` of every live page.
        history: Every call received, in order, as ``(action, path)``.

    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.pages: dict[OutputPath, tuple[TemplatePath, dict[str, Any]]] = {}
        self.history: list[tuple[str, OutputPath]] = []

    def create_page(
        self,
        path: OutputPath,
        template: TemplatePath,
        context: PageContext,
    ) -> None:
        with self._lock:
            self.pages[path] = (template, dict(context))
            self.history.append(("create", path))

    def delete_page(self, path: OutputPath) -> None:
        with self._lock:
            self.pages.pop(path, None)
            self.history.append(("delete", path))
