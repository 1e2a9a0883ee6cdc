"""Tests for collate.routes.resolver — records into page descriptors."""

from __future__ import annotations

import pytest

from collate._errors import EmptySlugError, MissingFieldError
from collate.data.memory import MemoryStore
from collate.data.records import Record
from collate.routes.resolver import (
    PageDescriptor,
    Resolution,
    SkippedRecord,
    read_field,
    resolve,
    resolve_record,
)

from .conftest import make_template


class TestResolve:
    """resolve() — one descriptor per record of the bound type."""

    def test_blog_example(self, store: MemoryStore) -> None:
        template = make_template("blog/{Post.slug}.ext")
        pages = list(resolve(template, store))

        assert [p.path for p in pages] == ["blog/my-first-post", "blog/another-post"]
        assert [p.context["id"] for p in pages] == ["1", "2"]
        assert pages[0].context["slug"] == "my-first-post"
        assert all(p.template == "blog/{Post.slug}.ext" for p in pages)
        assert all(p.record_type == "Post" for p in pages)

    def test_slugifies_bound_value(self) -> None:
        store = MemoryStore([Record("Post", "1", {"title": "Hello World!"})])
        (page,) = resolve(make_template("{Post.title}.js"), store)
        assert page.path == "hello-world"
        assert page.context["title"] == "Hello World!"

    def test_prefix_and_suffix_kept(self, store: MemoryStore) -> None:
        pages = list(resolve(make_template("post-{Post.slug}-info.js"), store))
        assert pages[0].path == "post-my-first-post-info"

    def test_index_dropped(self, store: MemoryStore) -> None:
        pages = list(resolve(make_template("{Post.slug}/index.js"), store))
        assert pages[0].path == "my-first-post"

    def test_multiple_bindings(self) -> None:
        store = MemoryStore([Record("Post", "1", {"category": "Dev Notes", "slug": "intro"})])
        (page,) = resolve(make_template("{Post.category}/{Post.slug}.tsx"), store)
        assert page.path == "dev-notes/intro"
        assert page.context == {"id": "1", "category": "Dev Notes", "slug": "intro"}

    def test_nested_field(self) -> None:
        store = MemoryStore([Record("Post", "1", {"author": {"name": "Ada Lovelace"}})])
        (page,) = resolve(make_template("authors/{Post.author__name}.js"), store)
        assert page.path == "authors/ada-lovelace"
        assert page.context["author__name"] == "Ada Lovelace"

    def test_preserve_slashes(self) -> None:
        store = MemoryStore([Record("Doc", "1", {"path": "Guides/Getting Started"})])
        (page,) = resolve(make_template("{Doc.path}.js"), store, preserve_slashes=True)
        assert page.path == "guides/getting-started"

    def test_slashes_slugified_by_default(self) -> None:
        store = MemoryStore([Record("Doc", "1", {"path": "Guides/Getting Started"})])
        (page,) = resolve(make_template("{Doc.path}.js"), store)
        assert page.path == "guides-getting-started"

    def test_only_bound_type_queried(self, store: MemoryStore) -> None:
        store.put(Record("Author", "ada", {"slug": "ada"}))
        pages = list(resolve(make_template("{Post.slug}.js"), store))
        assert len(pages) == 2

    def test_no_records(self) -> None:
        assert list(resolve(make_template("{Post.slug}.js"), MemoryStore())) == []


class TestResolutionSequence:
    """Resolution is lazy and restartable."""

    def test_restartable(self, store: MemoryStore) -> None:
        resolution = resolve(make_template("{Post.slug}.js"), store)
        assert [p.path for p in resolution] == [p.path for p in resolution]

    def test_reflects_data_between_runs(self, store: MemoryStore) -> None:
        resolution = resolve(make_template("{Post.slug}.js"), store)
        assert len(list(resolution)) == 2
        store.put(Record("Post", "3", {"slug": "third"}))
        assert len(list(resolution)) == 3

    def test_lazy(self) -> None:
        calls: list[str] = []

        class CountingStore(MemoryStore):
            def all_of_type(self, type_name: str) -> list[Record]:
                calls.append(type_name)
                return super().all_of_type(type_name)

        resolution = resolve(make_template("{Post.slug}.js"), CountingStore())
        assert isinstance(resolution, Resolution)
        assert calls == []
        list(resolution)
        assert calls == ["Post"]


class TestPerRecordErrors:
    """A bad record is skipped and reported; the rest still resolve."""

    def test_missing_field_skipped(self, store: MemoryStore) -> None:
        store.put(Record("Post", "3", {"title": "No slug"}))
        report = resolve(make_template("{Post.slug}.js"), store).collect()

        assert [p.record_id for p in report.pages] == ["1", "2"]
        assert len(report.skipped) == 1
        skipped = report.skipped[0]
        assert isinstance(skipped, SkippedRecord)
        assert skipped.record_id == "3"
        assert isinstance(skipped.error, MissingFieldError)

    def test_empty_slug_skipped(self, store: MemoryStore) -> None:
        store.put(Record("Post", "3", {"slug": "!!!"}))
        report = resolve(make_template("{Post.slug}.js"), store).collect()
        assert len(report.pages) == 2
        assert isinstance(report.skipped[0].error, EmptySlugError)

    def test_iteration_yields_only_pages(self, store: MemoryStore) -> None:
        store.put(Record("Post", "3", {}))
        pages = list(resolve(make_template("{Post.slug}.js"), store))
        assert all(isinstance(p, PageDescriptor) for p in pages)
        assert len(pages) == 2

    def test_skip_is_logged(self, store: MemoryStore, capsys: pytest.CaptureFixture[str]) -> None:
        store.put(Record("Post", "3", {}))
        list(resolve(make_template("{Post.slug}.js"), store))
        assert "Skipped record '3'" in capsys.readouterr().err


class TestReadField:
    """read_field() — nested navigation and scalar checks."""

    def test_top_level(self) -> None:
        assert read_field(Record("Post", "1", {"slug": "a"}), ("slug",)) == "a"

    def test_nested(self) -> None:
        record = Record("Post", "1", {"meta": {"seo": {"slug": "deep"}}})
        assert read_field(record, ("meta", "seo", "slug")) == "deep"

    def test_id_falls_back_to_record_id(self) -> None:
        assert read_field(Record("Post", "42", {}), ("id",)) == "42"

    def test_missing(self) -> None:
        with pytest.raises(MissingFieldError, match="'slug' is missing"):
            read_field(Record("Post", "1", {}), ("slug",))

    def test_missing_nested(self) -> None:
        with pytest.raises(MissingFieldError, match="author.name"):
            read_field(Record("Post", "1", {"author": "ada"}), ("author", "name"))

    def test_null(self) -> None:
        with pytest.raises(MissingFieldError, match="null"):
            read_field(Record("Post", "1", {"slug": None}), ("slug",))

    @pytest.mark.parametrize("value", [["a"], {"a": 1}, True])
    def test_non_scalar(self, value: object) -> None:
        with pytest.raises(MissingFieldError, match="not a scalar"):
            read_field(Record("Post", "1", {"slug": value}), ("slug",))

    def test_numeric_value(self) -> None:
        page = resolve_record(make_template("{Post.year}.js"), Record("Post", "1", {"year": 2024}))
        assert page.path == "2024"
        assert page.context["year"] == 2024


class TestPageDescriptor:
    """PageDescriptor is frozen and keyed by (template, record_id)."""

    def test_key(self) -> None:
        d = PageDescriptor(path="a", template="{Post.slug}.js", record_id="1", record_type="Post")
        assert d.key == ("{Post.slug}.js", "1")

    def test_frozen(self) -> None:
        d = PageDescriptor(path="a", template="t", record_id="1", record_type="Post")
        with pytest.raises(AttributeError):
            d.path = "b"  # type: ignore[misc]

    def test_hashable_despite_context(self) -> None:
        d = PageDescriptor(path="a", template="t", record_id="1", record_type="Post", context={"id": "1"})
        assert isinstance(hash(d), int)

    def test_context_participates_in_equality(self) -> None:
        a = PageDescriptor(path="a", template="t", record_id="1", record_type="Post", context={"x": 1})
        b = PageDescriptor(path="a", template="t", record_id="1", record_type="Post", context={"x": 2})
        assert a != b
