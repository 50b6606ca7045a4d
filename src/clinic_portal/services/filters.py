"""
clinic_portal.services.filters

Client-side search used by the list views.
"""

from __future__ import annotations


def matches(query: str | None, *fields: str | None) -> bool:
    """
    Case-insensitive substring match of `query` against any of `fields`.

    A blank query matches everything; missing (None) fields never match.
    """

    needle = (query or "").strip().lower()
    if not needle:
        return True
    return any(field is not None and needle in field.lower() for field in fields)


def full_name(first_name: str | None, last_name: str | None) -> str:
    return " ".join(p for p in (first_name, last_name) if p)
