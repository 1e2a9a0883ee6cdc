"""Slugifier — arbitrary field values to URL-safe path segments.

Output is restricted to ``[a-z0-9-]`` with no leading, trailing or doubled
dashes, so ``slugify(slugify(x)) == slugify(x)`` for every accepted input.
"""

from __future__ import annotations

import re
import unicodedata

from collate._errors import EmptySlugError

# Symbols spelled out as words before anything else is stripped.
SYMBOL_REPLACEMENTS: dict[str, str] = {
    "&": " and ",
    "♥": " love ",
    "❤": " love ",
    "🦄": " unicorn ",
}

# Letters that have no NFKD decomposition into ASCII.
_TRANSLITERATIONS: dict[str, str] = {
    "ß": "ss",
    "æ": "ae",
    "œ": "oe",
    "ø": "o",
    "ł": "l",
    "đ": "d",
    "ð": "d",
    "þ": "th",
    "ı": "i",
}

_APOSTROPHES_RE = re.compile(r"(?<=[a-z0-9])['’](?=[a-z0-9])")
_DISALLOWED_RE = re.compile(r"[^a-z0-9]+")


def _transliterate(text: str) -> str:
    text = "".join(_TRANSLITERATIONS.get(ch, ch) for ch in text)
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def slugify(value: str) -> str:
    """Convert *value* into a URL-safe slug.

    ``"My First Post!"`` -> ``"my-first-post"``,
    ``"I ♥ Dogs"`` -> ``"i-love-dogs"``,
    ``"Crème Brûlée"`` -> ``"creme-brulee"``.

    Raises:
        EmptySlugError: If *value* is empty or contains nothing sluggable.

    """
    text = str(value)
    for symbol, word in SYMBOL_REPLACEMENTS.items():
        text = text.replace(symbol, word)
    text = _transliterate(text.lower())
    text = _APOSTROPHES_RE.sub("", text)
    slug = _DISALLOWED_RE.sub("-", text).strip("-")
    if not slug:
        raise EmptySlugError(value)
    return slug


def slugify_path(value: str) -> str:
    """Slugify each ``/``-separated part of *value*, keeping the separators.

    Empty parts (leading, trailing or doubled slashes) are dropped.

    Raises:
        EmptySlugError: If no part produces a slug, or any non-empty part
            slugifies to nothing.

    """
    parts = [part for part in str(value).split("/") if part.strip()]
    if not parts:
        raise EmptySlugError(value)
    return "/".join(slugify(part) for part in parts)
