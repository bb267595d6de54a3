from __future__ import annotations

import re

_DISALLOWED = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE = re.compile(r"\s+")
_HYPHENS = re.compile(r"-+")


def slugify(value: str) -> str:
    """
    Derive a URL-safe slug from a title.

    "Privacy Policy v1" -> "privacy-policy-v1". Applying it to its own output
    returns the same string.
    """
    slug = _DISALLOWED.sub("", value.lower())
    slug = _WHITESPACE.sub("-", slug.strip())
    slug = _HYPHENS.sub("-", slug)
    return slug.strip("-")
