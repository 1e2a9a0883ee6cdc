"""Stack collector — one place to record engine events.

Provides typed ``record_*`` methods for the parser, resolver, reconciler
and watcher so callers never build event objects by hand.

Thread Safety:
    The collector delegates to ``EventLog`` which is internally locked.
    Safe for concurrent use from the watcher thread and the reconciler.

"""

from __future__ import annotations

from typing import Literal

from collate.observability.events import (
    CollisionDetected,
    PageEmitted,
    ReconcileCompleted,
    RecordSkipped,
    TemplateRegistered,
    TemplateRejected,
    WatcherDegraded,
    now_ns,
)
from collate.observability.log import EventLog


class StackCollector:
    """Event collector for the route engine.

    Args:
        log: The EventLog to store events in.

    """

    __slots__ = ("_log",)

    def __init__(self, log: EventLog | None = None) -> None:
        self._log = log if log is not None else EventLog()

    @property
    def log(self) -> EventLog:
        """The underlying event log."""
        return self._log

    # ----- Template events -----

    def record_template(self, path: str, record_type: str) -> None:
        """Record a template registration."""
        self._log.append(
            TemplateRegistered(path=path, record_type=record_type, timestamp_ns=now_ns())
        )

    def record_rejected(self, path: str, *, segment: str, reason: str) -> None:
        """Record a template excluded for a malformed name."""
        self._log.append(
            TemplateRejected(path=path, segment=segment, reason=reason, timestamp_ns=now_ns())
        )

    # ----- Resolution events -----

    def record_skip(self, path: str, record_id: str, reason: str) -> None:
        """Record a record skipped during resolution."""
        self._log.append(
            RecordSkipped(path=path, record_id=record_id, reason=reason, timestamp_ns=now_ns())
        )

    def record_page(
        self,
        kind: Literal["created", "updated", "deleted"],
        path: str,
        *,
        template: str,
        record_id: str,
    ) -> None:
        """Record a page side effect sent to the sink."""
        self._log.append(
            PageEmitted(
                kind=kind,
                path=path,
                template=template,
                record_id=record_id,
                timestamp_ns=now_ns(),
            )
        )

    def record_collision(self, path: str, first: tuple[str, str], second: tuple[str, str]) -> None:
        """Record a route collision."""
        self._log.append(
            CollisionDetected(
                path=path,
                first=f"{first[0]}#{first[1]}",
                second=f"{second[0]}#{second[1]}",
                timestamp_ns=now_ns(),
            )
        )

    def record_reconcile(
        self,
        trigger_path: str,
        *,
        created: int = 0,
        updated: int = 0,
        deleted: int = 0,
        skipped: int = 0,
        errors: int = 0,
        duration_ms: float = 0.0,
    ) -> None:
        """Record the completion of a reconciliation pass."""
        self._log.append(
            ReconcileCompleted(
                trigger_path=trigger_path,
                created=created,
                updated=updated,
                deleted=deleted,
                skipped=skipped,
                errors=errors,
                duration_ms=duration_ms,
                timestamp_ns=now_ns(),
            )
        )

    # ----- Watcher events -----

    def record_degraded(self, path: str, reason: str, *, retry_in_s: float) -> None:
        """Record a watcher failure and the scheduled retry."""
        self._log.append(
            WatcherDegraded(
                path=path, reason=reason, retry_in_s=retry_in_s, timestamp_ns=now_ns()
            )
        )
