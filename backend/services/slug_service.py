"""Slug generation for blog post page ids."""

from __future__ import annotations

import re
import secrets
import unicodedata

MAX_SLUG_LENGTH = 60
PAGE_ID_PATTERN = re.compile(r"[a-zA-Z0-9_-]+")


def slugify(title: str) -> str:
    """Turn a title into lowercase ASCII words joined by hyphens.

    Returns an empty string when nothing usable is left.
    """
    text = unicodedata.normalize("NFKD", title).encode("ascii", "ignore").decode("ascii")
    text = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    if len(text) > MAX_SLUG_LENGTH:
        cut = text[:MAX_SLUG_LENGTH]
        last_hyphen = cut.rfind("-")
        # Avoid ending mid-word when a word boundary exists
        text = (cut[:last_hyphen] if last_hyphen > 0 else cut).rstrip("-")
    return text


def generate_post_slug(title: str) -> str:
    """Return a unique page id for a new post, e.g. ``post-mon-voyage-3fa2c1``."""
    suffix = secrets.token_hex(3)
    base = slugify(title)
    return f"post-{base}-{suffix}" if base else f"post-{suffix}"


def is_valid_page_id(page_id: str) -> bool:
    return bool(PAGE_ID_PATTERN.fullmatch(page_id)) and len(page_id) <= 200
