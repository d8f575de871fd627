from __future__ import annotations

import re
from functools import lru_cache

_STRIP_RE = re.compile(r"[^\w\s-]")
_COLLAPSE_RE = re.compile(r"[\s_-]+")


@lru_cache(maxsize=None)
def slugify(text: str) -> str:
    """Convert heading text to the anchor slug markdown renderers generate.

    ``"## Getting Started"`` -> ``"getting-started"``. Idempotent:
    ``slugify(slugify(x)) == slugify(x)``.
    """
    slug = text.lower().strip()
    slug = _STRIP_RE.sub("", slug)
    slug = _COLLAPSE_RE.sub("-", slug)
    return slug.strip("-")


def unique_slugs(headings: list[str]) -> list[str]:
    """Slugs for a file's headings, numbering repeats like ``setup``, ``setup-1``."""
    seen: dict[str, int] = {}
    slugs: list[str] = []
    for text in headings:
        base = slugify(text)
        count = seen.get(base, 0)
        slugs.append(base if count == 0 else f"{base}-{count}")
        seen[base] = count + 1
    return slugs
