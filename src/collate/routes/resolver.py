"""Collection resolver — route patterns plus records into page descriptors.

For a template bound to record type ``T``, every record of ``T`` yields one
:class:`PageDescriptor` whose output path interpolates the record's bound
field values. A record whose field is missing (or slugifies to nothing) is
skipped and reported; the rest of the collection still resolves.
"""

from __future__ import annotations

import sys
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from collate._errors import MissingFieldError, RecordError
from collate.routes.pattern import Binding, RoutePattern
from collate.routes.slug import slugify, slugify_path

if TYPE_CHECKING:
    from collate._types import OutputPath, RecordId, TemplatePath
    from collate.data.protocols import DataQuery
    from collate.data.records import Record

# Field values that can be turned into a path segment
_SCALAR_TYPES: tuple[type, ...] = (str, int, float)


@dataclass(frozen=True, slots=True)
class TemplateFile:
    """A template whose name parsed as a collection route.

    Attributes:
        path: Normalized POSIX path relative to the pages directory (identity).
        pattern: The parsed route pattern.

    """

    path: TemplatePath
    pattern: RoutePattern


@dataclass(frozen=True, slots=True)
class PageDescriptor:
    """A page that must exist.

    Attributes:
        path: Output path, unique across all live descriptors.
        template: Identity of the owning template file.
        record_id: Id of the bound record.
        record_type: Type of the bound record.
        context: Passed opaquely to the page sink. Holds ``id`` and the raw
            value of every bound field, keyed by field path (``author__name``).

    """

    path: OutputPath
    template: TemplatePath
    record_id: RecordId
    record_type: str
    context: Mapping[str, Any] = field(default_factory=dict, hash=False)

    @property
    def key(self) -> tuple[TemplatePath, RecordId]:
        """Reconciliation key ``(template, record_id)``."""
        return (self.template, self.record_id)


@dataclass(frozen=True, slots=True)
class SkippedRecord:
    """A record that produced no page, and why."""

    template: TemplatePath
    record_id: RecordId
    error: RecordError


@dataclass(frozen=True, slots=True)
class ResolutionReport:
    """Outcome of one resolution pass."""

    pages: tuple[PageDescriptor, ...]
    skipped: tuple[SkippedRecord, ...]


def read_field(record: Record, field_path: tuple[str, ...]) -> Any:
    """Navigate *field_path* through the record's (possibly nested) fields.

    Raises:
        MissingFieldError: If any step is absent, the value is None, or the
            final value is not a scalar.

    """
    dotted = ".".join(field_path)
    value: Any = record.fields
    for step in field_path:
        if not isinstance(value, Mapping) or step not in value:
            if field_path == ("id",):
                return record.id
            raise MissingFieldError(record.id, dotted)
        value = value[step]

    if value is None:
        raise MissingFieldError(record.id, dotted, "is null")
    if isinstance(value, bool) or not isinstance(value, _SCALAR_TYPES):
        raise MissingFieldError(
            record.id, dotted, f"is not a scalar value ({type(value).__name__})"
        )
    return value


def _render_binding(binding: Binding, value: Any, *, preserve_slashes: bool) -> str:
    text = str(value)
    slug = slugify_path(text) if preserve_slashes else slugify(text)
    return f"{binding.prefix}{slug}{binding.suffix}"


def resolve_record(
    template: TemplateFile,
    record: Record,
    *,
    preserve_slashes: bool = False,
) -> PageDescriptor:
    """Resolve a single record against a template's pattern.

    Raises:
        MissingFieldError: If a bound field is unusable on *record*.
        EmptySlugError: If a bound value slugifies to nothing.

    """
    parts: list[str] = []
    context: dict[str, Any] = {"id": record.id}
    for segment in template.pattern.output_segments:
        if isinstance(segment, Binding):
            value = read_field(record, segment.field_path)
            context[segment.field_name] = value
            parts.append(_render_binding(segment, value, preserve_slashes=preserve_slashes))
        else:
            parts.append(segment.text)

    return PageDescriptor(
        path="/".join(parts),
        template=template.path,
        record_id=record.id,
        record_type=record.type,
        context=context,
    )


class Resolution:
    """Lazy, restartable sequence of page descriptors for one template.

    Each iteration queries the data layer afresh, so a Resolution can be
    re-run after every data change without carrying state between runs.
    Iterating directly yields only the pages that resolved; use
    :meth:`collect` to also see the skipped records.

    """

    __slots__ = ("_preserve_slashes", "_query", "_template")

    def __init__(
        self,
        template: TemplateFile,
        query: DataQuery,
        *,
        preserve_slashes: bool = False,
    ) -> None:
        self._template = template
        self._query = query
        self._preserve_slashes = preserve_slashes

    @property
    def template(self) -> TemplateFile:
        return self._template

    def outcomes(self) -> Iterator[PageDescriptor | SkippedRecord]:
        """Yield a descriptor or a skip report for every record, in query order."""
        template = self._template
        for record in self._query.all_of_type(template.pattern.record_type):
            try:
                yield resolve_record(
                    template, record, preserve_slashes=self._preserve_slashes
                )
            except RecordError as exc:
                print(f"  Skipped record {record.id!r} for {template.path}: {exc}", file=sys.stderr)
                yield SkippedRecord(template=template.path, record_id=record.id, error=exc)

    def __iter__(self) -> Iterator[PageDescriptor]:
        for outcome in self.outcomes():
            if isinstance(outcome, PageDescriptor):
                yield outcome

    def collect(self) -> ResolutionReport:
        """Run one full pass and split the outcomes into pages and skips."""
        pages: list[PageDescriptor] = []
        skipped: list[SkippedRecord] = []
        for outcome in self.outcomes():
            if isinstance(outcome, PageDescriptor):
                pages.append(outcome)
            else:
                skipped.append(outcome)
        return ResolutionReport(pages=tuple(pages), skipped=tuple(skipped))


def resolve(
    template: TemplateFile,
    query: DataQuery,
    *,
    preserve_slashes: bool = False,
) -> Resolution:
    """Enumerate the pages *template* produces from the records in *query*."""
    return Resolution(template, query, preserve_slashes=preserve_slashes)
