"""Pattern parser — template file names into structured route patterns.

A template path is split on ``/``. A segment holding a ``{Type.field}``
group becomes a :class:`Binding`; every other segment is a :class:`Literal`::

    blog/{Post.slug}.tsx          -> Literal("blog"), Binding("Post", ("slug",))
    {Post.author__name}/index.js  -> Binding("Post", ("author", "name")), Literal("index")
    post-{Post.id}.html           -> Binding("Post", ("id",), prefix="post-")

Names without any brace are not collection routes and are left to the
static-page collaborator. Parsing is pure and never touches the filesystem.
"""

from __future__ import annotations

import re
from collections.abc import Collection
from dataclasses import dataclass
from typing import Final, final

from collate._errors import InvalidPatternError

_IDENTIFIER_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_FIELD_SEPARATOR_RE = re.compile(r"\.|__")

INDEX_SEGMENT = "index"


@dataclass(frozen=True, slots=True)
class Literal:
    """A path segment copied verbatim into the output path."""

    text: str


@dataclass(frozen=True, slots=True)
class Binding:
    """A path segment interpolated from a record field.

    Attributes:
        record_type: Name of the bound record type (case-sensitive).
        field_path: Field names navigated from the record's top-level mapping.
        prefix: Literal text before the ``{...}`` group in the same segment.
        suffix: Literal text after the ``{...}`` group in the same segment.

    """

    record_type: str
    field_path: tuple[str, ...]
    prefix: str = ""
    suffix: str = ""

    @property
    def field_name(self) -> str:
        """The field path as written in context keys (``author__name``)."""
        return "__".join(self.field_path)


type Segment = Literal | Binding


@dataclass(frozen=True, slots=True)
class RoutePattern:
    """A parsed collection route.

    Attributes:
        source: The template path the pattern was parsed from.
        segments: Ordered literal and binding segments (extension stripped).

    """

    source: str
    segments: tuple[Segment, ...]

    @property
    def bindings(self) -> tuple[Binding, ...]:
        return tuple(s for s in self.segments if isinstance(s, Binding))

    @property
    def record_type(self) -> str:
        """The single record type every binding in this pattern refers to."""
        return self.bindings[0].record_type

    @property
    def output_segments(self) -> tuple[Segment, ...]:
        """Segments that contribute to the output path (trailing ``index`` dropped)."""
        segments = self.segments
        last = segments[-1]
        if len(segments) > 1 and isinstance(last, Literal) and last.text == INDEX_SEGMENT:
            return segments[:-1]
        return segments


@final
class _NotACollectionRoute:
    """Sentinel for template names without binding syntax."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "NotACollectionRoute"

    def __bool__(self) -> bool:
        return False


NotACollectionRoute: Final = _NotACollectionRoute()


def _strip_extension(name: str) -> str:
    stem, dot, ext = name.rpartition(".")
    if not dot or not stem or "{" in ext or "}" in ext:
        return name
    return stem


def _parse_binding(source: str, segment: str, inner: str) -> tuple[str, tuple[str, ...]]:
    record_type, dot, field = inner.partition(".")
    if not record_type:
        raise InvalidPatternError(source, segment, "is missing a record type")
    if not dot or not field:
        raise InvalidPatternError(source, segment, "is missing a field name")
    if not _IDENTIFIER_RE.fullmatch(record_type):
        raise InvalidPatternError(
            source, segment, f"has reserved characters in type name {record_type!r}"
        )

    field_path = tuple(_FIELD_SEPARATOR_RE.split(field))
    for part in field_path:
        if not part:
            raise InvalidPatternError(source, segment, "has an empty field name")
        if not _IDENTIFIER_RE.fullmatch(part):
            raise InvalidPatternError(
                source, segment, f"has reserved characters in field name {field!r}"
            )
    return record_type, field_path


def _parse_segment(source: str, segment: str) -> Segment:
    opens = [i for i, ch in enumerate(segment) if ch == "{"]
    closes = [i for i, ch in enumerate(segment) if ch == "}"]
    if not opens and not closes:
        return Literal(segment)
    if len(opens) != len(closes):
        raise InvalidPatternError(source, segment, "has unbalanced braces")
    if len(opens) > 1:
        if opens[1] < closes[0]:
            raise InvalidPatternError(source, segment, "has nested braces")
        raise InvalidPatternError(source, segment, "holds more than one binding")

    start, end = opens[0], closes[0]
    if end < start:
        raise InvalidPatternError(source, segment, "has unbalanced braces")

    record_type, field_path = _parse_binding(source, segment, segment[start + 1:end])
    return Binding(
        record_type=record_type,
        field_path=field_path,
        prefix=segment[:start],
        suffix=segment[end + 1:],
    )


def parse(
    file_name: str,
    *,
    known_types: Collection[str] | None = None,
) -> RoutePattern | _NotACollectionRoute:
    """Parse a template path into a :class:`RoutePattern`.

    Args:
        file_name: Template path relative to the pages directory. Backslashes
            are treated as separators.
        known_types: When given, bindings must name one of these record types.

    Returns:
        The parsed pattern, or ``NotACollectionRoute`` when the name holds
        no braces at all.

    Raises:
        InvalidPatternError: On malformed binding syntax, on bindings over
            more than one record type, or on an unknown record type.

    """
    normalized = file_name.replace("\\", "/").strip("/")
    if "{" not in normalized and "}" not in normalized:
        return NotACollectionRoute

    raw_segments = normalized.split("/")
    raw_segments[-1] = _strip_extension(raw_segments[-1])

    segments: list[Segment] = []
    for raw in raw_segments:
        if not raw:
            raise InvalidPatternError(file_name, raw, "is empty")
        segments.append(_parse_segment(file_name, raw))

    bindings = [s for s in segments if isinstance(s, Binding)]
    types = {b.record_type for b in bindings}
    if len(types) > 1:
        offending = next(b for b in bindings if b.record_type != bindings[0].record_type)
        raise InvalidPatternError(
            file_name,
            f"{{{offending.record_type}.{offending.field_name}}}",
            f"binds a second record type (pattern already binds {bindings[0].record_type!r})",
        )
    if known_types is not None:
        for binding in bindings:
            if binding.record_type not in known_types:
                raise InvalidPatternError(
                    file_name,
                    f"{{{binding.record_type}.{binding.field_name}}}",
                    f"names unknown record type {binding.record_type!r}",
                )

    return RoutePattern(source=file_name, segments=tuple(segments))
