"""Collate — collection route resolution for filesystem-driven sites.

Watches a directory of templates whose names bind record fields
(``blog/{Post.slug}.tsx``), resolves them against a data layer, and keeps
the set of generated pages in sync as templates and records change.

Quick start::

    import collate
    from collate.data import MemorySink, MemoryStore, Record

    store = MemoryStore([Record("Post", "1", {"slug": "my-first-post"})])
    sink = MemorySink()
    collate.build("my-site/", store, sink)      # one-shot
    collate.watch("my-site/", store, sink)      # keep in sync

"""

# PEP 703: Declare this module as free-threading safe
_Py_mod_gil = 0

__version__ = "0.1.0-dev"
__all__ = [
    "CollateConfig",
    "RouteEngine",
    "__version__",
    "build",
    "parse",
    "slugify",
    "watch",
]


def __getattr__(name: str) -> object:
    """Lazy imports for the public API.

    Keeps ``import collate`` fast; watchfiles is only loaded when the
    engine is actually used.
    """
    if name == "CollateConfig":
        from collate.config import CollateConfig

        return CollateConfig

    if name == "RouteEngine":
        from collate.app import RouteEngine

        return RouteEngine

    if name == "build":
        from collate.app import build

        return build

    if name == "watch":
        from collate.app import watch

        return watch

    if name == "parse":
        from collate.routes.pattern import parse

        return parse

    if name == "slugify":
        from collate.routes.slug import slugify

        return slugify

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
