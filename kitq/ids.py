"""Id generation for specs, log entries and work items."""

from __future__ import annotations

import re
import secrets
import string

from .models import WorkItem

_SLUG_MAX = 30
_HASH_CHARS = string.ascii_lowercase + string.digits


def slugify(name: str) -> str:
    """Kebab-case slug, max 30 characters."""
    slug = name.lower().replace("_", " ")
    slug = re.sub(r"[^a-z0-9]+", "-", slug).strip("-")
    return slug[:_SLUG_MAX].rstrip("-")


def generate_id(name: str, taken: set[str] | None = None) -> str:
    """`<slug>-<4 random chars>`, retried until it does not collide with `taken`."""
    slug = slugify(name) or "entry"
    taken = taken or set()
    while True:
        suffix = "".join(secrets.choice(_HASH_CHARS) for _ in range(4))
        candidate = f"{slug}-{suffix}"
        if candidate not in taken:
            return candidate


def next_item_id(items: list[WorkItem]) -> str:
    """Next sequential numeric id (max numeric id + 1)."""
    numeric = [int(i.id) for i in items if i.id.isdigit()]
    return str(max(numeric, default=0) + 1)
