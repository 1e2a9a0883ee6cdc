"""Event log — the engine's recent history.

A bounded ring buffer written by the watcher thread and the reconciliation
loop, read by status reporting. All access goes through one lock.
"""

import threading
from collections import Counter, deque
from typing import Any

from collate.observability.events import StackEvent


def _touches(event: StackEvent, path: str) -> bool:
    """Whether *event* concerns the template or output page at *path*."""
    return path in (
        getattr(event, "path", None),
        getattr(event, "template", None),
        getattr(event, "trigger_path", None),
    )


class EventLog:
    """Bounded event store, oldest events dropped first.

    Args:
        max_events: Maximum number of events to retain.

    """

    __slots__ = ("_events", "_lock", "_max_events")

    def __init__(self, max_events: int = 10_000) -> None:
        self._max_events = max_events
        self._events: deque[StackEvent] = deque(maxlen=max_events)
        self._lock = threading.Lock()

    def append(self, event: StackEvent) -> None:
        with self._lock:
            self._events.append(event)

    def query(
        self,
        *,
        event_type: type | None = None,
        path: str | None = None,
        limit: int = 100,
    ) -> list[StackEvent]:
        """Events matching every given filter, most recent first.

        Args:
            event_type: Only events of this type.
            path: Only events about this template or output path
                (a template's reconcile passes included).
            limit: Maximum number of events to return.

        """
        with self._lock:
            events = list(self._events)

        results: list[StackEvent] = []
        for event in reversed(events):
            if len(results) >= limit:
                break
            if event_type is not None and not isinstance(event, event_type):
                continue
            if path is not None and not _touches(event, path):
                continue
            results.append(event)
        return results

    def last(self, event_type: type) -> StackEvent | None:
        """The most recent event of *event_type*, if any."""
        found = self.query(event_type=event_type, limit=1)
        return found[0] if found else None

    def recent(self, n: int = 20) -> list[StackEvent]:
        """The *n* most recent events, oldest first."""
        with self._lock:
            items = list(self._events)
        return items[-n:]

    def clear(self) -> int:
        """Drop every event; returns how many there were."""
        with self._lock:
            count = len(self._events)
            self._events.clear()
            return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def stats(self) -> dict[str, Any]:
        """Event counts by type."""
        with self._lock:
            by_type = Counter(type(event).__name__ for event in self._events)
            total = len(self._events)
        return {"total": total, "max_events": self._max_events, "by_type": dict(by_type)}
