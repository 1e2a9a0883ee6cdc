"""Observability — a unified event log for the route engine.

Aggregates events from:
- **Parser**: template registration and rejection
- **Resolver**: skipped records
- **Reconciler**: page side effects, collisions, pass summaries
- **Watcher**: degraded status and retries

All events are frozen dataclasses with nanosecond timestamps, safe for
concurrent production from the watcher thread and the reconciliation loop.

Quick Start:
    >>> from collate.observability import StackCollector, EventLog
    >>> log = EventLog()
    >>> collector = StackCollector(log)
    >>> # Pass collector to PageReconciler / TemplateWatcher

"""

from collate.observability.collector import StackCollector
from collate.observability.events import (
    CollisionDetected,
    PageEmitted,
    ReconcileCompleted,
    RecordSkipped,
    StackEvent,
    TemplateRegistered,
    TemplateRejected,
    WatcherDegraded,
    now_ns,
)
from collate.observability.log import EventLog

__all__ = [
    "CollisionDetected",
    "EventLog",
    "PageEmitted",
    "ReconcileCompleted",
    "RecordSkipped",
    "StackCollector",
    "StackEvent",
    "TemplateRegistered",
    "TemplateRejected",
    "WatcherDegraded",
    "now_ns",
]
