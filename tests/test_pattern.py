"""Tests for collate.routes.pattern — template name grammar."""

from __future__ import annotations

import pytest

from collate._errors import InvalidPatternError
from collate.routes.pattern import (
    Binding,
    Literal,
    NotACollectionRoute,
    RoutePattern,
    parse,
)


class TestParseValid:
    """parse() on well-formed collection routes."""

    def test_single_binding(self) -> None:
        pattern = parse("{Post.slug}.ext")
        assert isinstance(pattern, RoutePattern)
        assert pattern.segments == (Binding("Post", ("slug",)),)
        assert pattern.record_type == "Post"

    def test_literal_directory(self) -> None:
        pattern = parse("blog/{Post.slug}.tsx")
        assert isinstance(pattern, RoutePattern)
        assert pattern.segments == (Literal("blog"), Binding("Post", ("slug",)))

    def test_source_preserved(self) -> None:
        pattern = parse("blog/{Post.slug}.tsx")
        assert pattern.source == "blog/{Post.slug}.tsx"  # type: ignore[union-attr]

    def test_dotted_nested_field(self) -> None:
        pattern = parse("{Post.author.name}.js")
        assert pattern.segments == (Binding("Post", ("author", "name")),)  # type: ignore[union-attr]

    def test_double_underscore_nested_field(self) -> None:
        pattern = parse("{Post.author__name}.js")
        binding = pattern.segments[0]  # type: ignore[union-attr]
        assert binding.field_path == ("author", "name")
        assert binding.field_name == "author__name"

    def test_prefix_and_suffix(self) -> None:
        pattern = parse("post-{Post.id}-info.html")
        assert pattern.segments == (  # type: ignore[union-attr]
            Binding("Post", ("id",), prefix="post-", suffix="-info"),
        )

    def test_binding_directory_with_index(self) -> None:
        pattern = parse("{Post.slug}/index.js")
        assert pattern.segments == (  # type: ignore[union-attr]
            Binding("Post", ("slug",)),
            Literal("index"),
        )
        assert pattern.output_segments == (Binding("Post", ("slug",)),)  # type: ignore[union-attr]

    def test_multiple_bindings_same_type(self) -> None:
        pattern = parse("{Post.category}/{Post.slug}.tsx")
        assert isinstance(pattern, RoutePattern)
        assert len(pattern.bindings) == 2
        assert pattern.record_type == "Post"

    def test_without_extension(self) -> None:
        pattern = parse("blog/{Post.slug}")
        assert pattern.segments[-1] == Binding("Post", ("slug",))  # type: ignore[union-attr]

    def test_backslashes_normalized(self) -> None:
        pattern = parse("blog\\{Post.slug}.tsx")
        assert pattern.segments[0] == Literal("blog")  # type: ignore[union-attr]

    def test_case_sensitive_type(self) -> None:
        pattern = parse("{post.slug}.js")
        assert pattern.record_type == "post"  # type: ignore[union-attr]

    def test_known_types_accepted(self) -> None:
        pattern = parse("{Post.slug}.js", known_types={"Post", "Author"})
        assert isinstance(pattern, RoutePattern)

    def test_pattern_is_frozen(self) -> None:
        pattern = parse("{Post.slug}.js")
        with pytest.raises(AttributeError):
            pattern.source = "other"  # type: ignore[misc, union-attr]


class TestParseStatic:
    """Names without braces are not collection routes."""

    @pytest.mark.parametrize("name", ["index.ext", "about.tsx", "blog/index.js", "404.html"])
    def test_not_a_collection_route(self, name: str) -> None:
        assert parse(name) is NotACollectionRoute

    def test_sentinel_is_falsy(self) -> None:
        assert not NotACollectionRoute
        assert repr(NotACollectionRoute) == "NotACollectionRoute"


class TestParseInvalid:
    """Malformed bindings raise InvalidPatternError naming the segment."""

    @pytest.mark.parametrize(
        ("name", "segment"),
        [
            ("{Post.slug.tsx", "{Post.slug"),
            ("Post.slug}.tsx", "Post.slug}"),
            ("}Post.slug{.tsx", "}Post.slug{"),
            ("{Post}.tsx", "{Post}"),
            ("{Post.}.tsx", "{Post.}"),
            ("{.slug}.tsx", "{.slug}"),
            ("{Po st.slug}.tsx", "{Po st.slug}"),
            ("{Post.sl-ug}.tsx", "{Post.sl-ug}"),
            ("{Post.a..b}.tsx", "{Post.a..b}"),
            ("{Post.slug}{Post.id}.tsx", "{Post.slug}{Post.id}"),
            ("{{Post.slug}}.tsx", "{{Post.slug}}"),
        ],
    )
    def test_malformed(self, name: str, segment: str) -> None:
        with pytest.raises(InvalidPatternError) as excinfo:
            parse(name)
        assert excinfo.value.segment == segment
        assert excinfo.value.source == name
        assert segment in str(excinfo.value)

    def test_mixed_record_types(self) -> None:
        with pytest.raises(InvalidPatternError, match="second record type"):
            parse("{Author.name}/{Post.slug}.tsx")

    def test_unknown_type(self) -> None:
        with pytest.raises(InvalidPatternError, match="unknown record type"):
            parse("{Comment.id}.tsx", known_types={"Post"})

    def test_empty_segment(self) -> None:
        with pytest.raises(InvalidPatternError):
            parse("blog//{Post.slug}.tsx")
