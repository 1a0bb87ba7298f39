"""Helpers for blog posts: tag parsing and the read-time estimate."""

import re

from lms_portal.services.notifications import html_to_text
from lms_portal.services.scoring import round_half_up

WORDS_PER_MINUTE = 200

_SLUG_INVALID = re.compile(r"[^a-z0-9]+")


def split_tags(raw: str | list[str] | None) -> list[str]:
    """Accept "a, b, ,c" or a list; trim, drop blanks, keep first spelling of duplicates."""
    if raw is None:
        return []
    parts = raw.split(",") if isinstance(raw, str) else raw

    seen: set[str] = set()
    tags: list[str] = []
    for part in parts:
        tag = part.strip()
        if tag and tag.lower() not in seen:
            seen.add(tag.lower())
            tags.append(tag)
    return tags


def estimate_read_time(content: str) -> int:
    """Minutes to read ``content`` (HTML allowed), never less than one."""
    words = len(html_to_text(content).split())
    return max(1, round_half_up(words / WORDS_PER_MINUTE))


def slugify(title: str) -> str:
    return _SLUG_INVALID.sub("-", title.lower()).strip("-")
