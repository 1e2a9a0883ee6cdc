"""Route layer — slugs, pattern grammar, and collection resolution.

Public API::

    from collate.routes import parse, resolve, TemplateFile

    pattern = parse("blog/{Post.slug}.tsx")
    pages = list(resolve(TemplateFile("blog/{Post.slug}.tsx", pattern), store))
"""

from collate.routes.pattern import (
    Binding,
    Literal,
    NotACollectionRoute,
    RoutePattern,
    Segment,
    parse,
)
from collate.routes.resolver import (
    PageDescriptor,
    Resolution,
    ResolutionReport,
    SkippedRecord,
    TemplateFile,
    resolve,
)
from collate.routes.slug import slugify, slugify_path

__all__ = [
    "Binding",
    "Literal",
    "NotACollectionRoute",
    "PageDescriptor",
    "Resolution",
    "ResolutionReport",
    "RoutePattern",
    "Segment",
    "SkippedRecord",
    "TemplateFile",
    "parse",
    "resolve",
    "slugify",
    "slugify_path",
]
