"""Collate error hierarchy.

All collate-specific errors inherit from CollateError for easy catching.
Per-record errors (RecordError) are isolated and reported alongside the
pages that did resolve; route errors are terminal for the template they
belong to.
"""

from __future__ import annotations


class CollateError(Exception):
    """Base error for all collate operations."""


class ConfigError(CollateError):
    """Invalid or missing configuration."""


# ---------------------------------------------------------------------------
# Template-level errors
# ---------------------------------------------------------------------------


class RouteError(CollateError):
    """A template cannot publish its pages."""


class InvalidPatternError(RouteError):
    """A template file name carries malformed binding syntax.

    Attributes:
        source: The template path as given to the parser.
        segment: The offending path segment.
        reason: Short description of what is wrong with it.

    """

    def __init__(self, source: str, segment: str, reason: str) -> None:
        self.source = source
        self.segment = segment
        self.reason = reason
        super().__init__(f"Invalid route pattern {source!r}: segment {segment!r} {reason}")


class RouteCollisionError(RouteError):
    """Two distinct (template, record) pairs resolve to the same output path.

    Attributes:
        path: The contested output path.
        first: ``(template, record_id)`` of the first claim.
        second: ``(template, record_id)`` of the second claim.

    """

    def __init__(
        self,
        path: str,
        first: tuple[str, str],
        second: tuple[str, str],
    ) -> None:
        self.path = path
        self.first = first
        self.second = second
        super().__init__(
            f"Route collision on {path!r}: record {first[1]!r} ({first[0]}) "
            f"and record {second[1]!r} ({second[0]})"
        )

    @property
    def record_ids(self) -> tuple[str, str]:
        """Ids of both colliding records."""
        return (self.first[1], self.second[1])

    @property
    def templates(self) -> frozenset[str]:
        """Templates involved in the collision."""
        return frozenset({self.first[0], self.second[0]})


# ---------------------------------------------------------------------------
# Per-record errors
# ---------------------------------------------------------------------------


class RecordError(CollateError):
    """A single record cannot produce a page; the rest of the batch continues."""


class MissingFieldError(RecordError):
    """The bound field is absent (or unusable) on a record."""

    def __init__(self, record_id: str, field: str, detail: str = "is missing") -> None:
        self.record_id = record_id
        self.field = field
        super().__init__(f"Record {record_id!r}: field {field!r} {detail}")


class EmptySlugError(RecordError):
    """A value slugifies to the empty string."""

    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"Value {value!r} produces an empty slug")


# ---------------------------------------------------------------------------
# Filesystem errors
# ---------------------------------------------------------------------------


class WatcherIOError(CollateError):
    """The watched directory could not be read or observed."""

    def __init__(self, path: object, cause: BaseException | None = None) -> None:
        self.path = path
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Cannot watch {path}{detail}")
