"""Tests for collate.reactive.state — the published-page map."""

from __future__ import annotations

import pytest

from collate._errors import RouteCollisionError
from collate.reactive.state import ReconciliationState
from collate.routes.resolver import PageDescriptor


def _page(path: str, template: str = "{Post.slug}.js", record_id: str = "1") -> PageDescriptor:
    return PageDescriptor(
        path=path, template=template, record_id=record_id, record_type="Post",
        context={"id": record_id},
    )


class TestReconciliationState:
    def test_put_and_get(self) -> None:
        state = ReconciliationState()
        page = _page("a")
        state.put(page)
        assert state.get(page.key) == page
        assert state.owner_of("a") == page.key
        assert page.key in state
        assert len(state) == 1

    def test_put_replaces_path_index(self) -> None:
        state = ReconciliationState()
        state.put(_page("old"))
        state.put(_page("new"))
        assert state.owner_of("old") is None
        assert state.owner_of("new") == ("{Post.slug}.js", "1")
        assert len(state) == 1

    def test_put_rejects_path_owned_by_other_key(self) -> None:
        state = ReconciliationState()
        state.put(_page("dogs", record_id="1"))
        with pytest.raises(RouteCollisionError) as excinfo:
            state.put(_page("dogs", record_id="2"))
        assert excinfo.value.record_ids == ("1", "2")

    def test_remove(self) -> None:
        state = ReconciliationState()
        page = _page("a")
        state.put(page)
        assert state.remove(page.key) == page
        assert state.owner_of("a") is None
        assert state.remove(page.key) is None

    def test_pages_for_template(self) -> None:
        state = ReconciliationState()
        state.put(_page("a", template="x/{Post.slug}.js", record_id="1"))
        state.put(_page("b", template="y/{Post.slug}.js", record_id="1"))
        assert list(state.pages_for("x/{Post.slug}.js")) == [("x/{Post.slug}.js", "1")]
        assert state.templates() == {"x/{Post.slug}.js", "y/{Post.slug}.js"}

    def test_snapshot_is_isolated(self) -> None:
        state = ReconciliationState()
        state.put(_page("a"))
        snapshot = state.snapshot()
        state.put(_page("b", record_id="2"))
        assert len(snapshot) == 1
        assert len(state) == 2
        with pytest.raises(TypeError):
            snapshot.pages[("t", "9")] = _page("z")  # type: ignore[index]

    def test_clear(self) -> None:
        state = ReconciliationState()
        state.put(_page("a"))
        state.put(_page("b", record_id="2"))
        assert state.clear() == 2
        assert len(state) == 0
        assert state.owner_of("a") is None
