"""Event model for route-engine observability.

Defines event types for template registration, record resolution, page
lifecycle, collisions and watcher health.

All events are frozen dataclasses with:
- ``timestamp_ns``: Monotonic nanosecond timestamp
- Descriptive fields for the specific event type

Thread Safety:
    All events are frozen (immutable) and safe to share across threads.

"""

import time
from dataclasses import dataclass
from typing import Literal


# ---------------------------------------------------------------------------
# Template events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TemplateRegistered:
    """A template file parsed as a collection route.

    Attributes:
        path: Template identity (relative path).
        record_type: Record type bound by the pattern.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    path: str
    record_type: str
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class TemplateRejected:
    """A template file was excluded because its name is malformed.

    Attributes:
        path: Template identity (relative path).
        segment: The offending segment.
        reason: Parser diagnostic.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    path: str
    segment: str
    reason: str
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Resolution events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RecordSkipped:
    """A record produced no page for a template.

    Attributes:
        path: Template identity.
        record_id: Id of the skipped record.
        reason: Error message.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    path: str
    record_id: str
    reason: str
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class PageEmitted:
    """A page lifecycle side effect was sent to the page sink.

    Attributes:
        kind: Which side effect.
        path: Output path of the page.
        template: Owning template identity.
        record_id: Bound record id.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    kind: Literal["created", "updated", "deleted"]
    path: str
    template: str
    record_id: str
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class CollisionDetected:
    """Two (template, record) pairs claimed one output path.

    Attributes:
        path: The contested output path.
        first: ``template#record_id`` of the first claim.
        second: ``template#record_id`` of the second claim.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    path: str
    first: str
    second: str
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class ReconcileCompleted:
    """A reconciliation pass finished.

    Attributes:
        trigger_path: What triggered the pass (template path, ``type:Post``,
            or ``full``).
        created: Number of pages created.
        updated: Number of pages updated.
        deleted: Number of pages deleted.
        skipped: Number of records skipped.
        errors: Number of template-level errors.
        duration_ms: Wall time of the pass in milliseconds.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    trigger_path: str
    created: int
    updated: int
    deleted: int
    skipped: int
    errors: int
    duration_ms: float
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Watcher events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class WatcherDegraded:
    """The filesystem watcher failed and is retrying.

    Attributes:
        path: The watched directory.
        reason: Error message.
        retry_in_s: Backoff delay before the next attempt.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    path: str
    reason: str
    retry_in_s: float
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Union type
# ---------------------------------------------------------------------------

type StackEvent = (
    TemplateRegistered
    | TemplateRejected
    | RecordSkipped
    | PageEmitted
    | CollisionDetected
    | ReconcileCompleted
    | WatcherDegraded
)


def now_ns() -> int:
    """Return the current monotonic clock value in nanoseconds."""
    return time.monotonic_ns()
