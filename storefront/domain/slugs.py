"""Slug derivation for category names."""

import re

_WHITESPACE = re.compile(r"\s+")
_NON_SLUG = re.compile(r"[^\w\-]+")


def slugify(name: str) -> str:
    """Derive a URL slug from a category name.

    Lowercases, turns each whitespace run into a hyphen and strips every
    character that is neither a word character nor a hyphen. Applying it
    to its own output returns the output unchanged.

    Args:
        name: Category name.

    Returns:
        Slug string (may be empty for names with no word characters).
    """
    slug = _WHITESPACE.sub("-", name.lower())
    return _NON_SLUG.sub("", slug)
