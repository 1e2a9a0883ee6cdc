"""Shared test fixtures for collate."""

from __future__ import annotations

from pathlib import Path

import pytest

from collate.config import CollateConfig
from collate.data.memory import MemorySink, MemoryStore
from collate.data.records import Record
from collate.routes.pattern import parse
from collate.routes.resolver import TemplateFile


@pytest.fixture
def site(tmp_path: Path) -> Path:
    """Create a minimal project with an empty pages/ directory.

    Returns the project root.
    """
    (tmp_path / "pages").mkdir()
    return tmp_path


@pytest.fixture
def config(site: Path) -> CollateConfig:
    """A CollateConfig rooted at the temp project."""
    return CollateConfig(root=site)


@pytest.fixture
def store() -> MemoryStore:
    """Two posts, as in the blog example."""
    return MemoryStore([
        Record("Post", "1", {"slug": "my-first-post", "title": "My First Post"}),
        Record("Post", "2", {"slug": "another-post", "title": "Another Post"}),
    ])


@pytest.fixture
def sink() -> MemorySink:
    return MemorySink()


def write_template(pages: Path, rel: str, content: str = "export default () => null\n") -> Path:
    """Write a template file under *pages* and return its path."""
    path = pages / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


def make_template(path: str) -> TemplateFile:
    """Parse *path* into a TemplateFile (must be a collection route)."""
    pattern = parse(path)
    assert pattern, f"{path!r} is not a collection route"
    return TemplateFile(path=path, pattern=pattern)  # type: ignore[arg-type]
