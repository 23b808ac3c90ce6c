"""Data access managers for the lab.

Each module provides async functions that encapsulate CRUD operations on
lab records.  Managers accept a ``LabStore`` as a parameter and raise domain
exceptions (``LookupError``, ``ValueError``); translating them for a user
is the caller's responsibility.
"""

from __future__ import annotations

import re

_NON_SLUG = re.compile(r"[^a-z0-9]+")


def generate_slug(name: str, existing_ids: list[str] | set[str]) -> str:
    """URL-safe id derived from ``name``, suffixed ``-1``, ``-2``... on collision."""
    base = _NON_SLUG.sub("-", name.lower()).strip("-") or "untitled"
    taken = set(existing_ids)
    if base not in taken:
        return base
    counter = 1
    while f"{base}-{counter}" in taken:
        counter += 1
    return f"{base}-{counter}"
