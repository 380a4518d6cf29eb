"""
vpkg.query - Package Discovery
==============================

Filters registry entries by type and tags.

Tag filters use AND semantics: an entry matches only if it carries *every*
requested tag. Results keep the registry's original order, and an empty
result is simply an empty list.

>>> list_entries(index, tag_filter={"cache", "redis"})
[RegistryEntry(identifier='vandor/redis-cache', ...)]
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from vpkg.models import PackageType


if TYPE_CHECKING:
    from collections.abc import Iterable

    from vpkg.models import RegistryEntry


def list_entries(
    entries: Iterable[RegistryEntry],
    type_filter: PackageType | str | None = None,
    tag_filter: Iterable[str] | None = None,
) -> list[RegistryEntry]:
    """
    Filter entries by type and tags.

    Parameters
    ----------
    entries : Iterable[RegistryEntry]
        Entries in registry order (a RegistryIndex works too).

    type_filter : PackageType | str | None
        Keep only entries of exactly this type.

    tag_filter : Iterable[str] | None
        Keep only entries whose tags include all of these.

    Returns
    -------
    list[RegistryEntry]
        Matching entries in their original order.

    Raises
    ------
    ValueError
        If ``type_filter`` is not a known package type.
    """
    wanted_type = PackageType(type_filter) if type_filter is not None else None
    wanted_tags = frozenset(tag_filter) if tag_filter is not None else frozenset()

    return [
        entry
        for entry in entries
        if (wanted_type is None or entry.type is wanted_type)
        and wanted_tags <= entry.tags
    ]


def search_entries(entries: Iterable[RegistryEntry], term: str) -> list[RegistryEntry]:
    """Case-insensitive substring match on identifiers and tags."""
    needle = term.strip().lower()
    if not needle:
        return list(entries)
    return [
        entry
        for entry in entries
        if needle in entry.identifier.lower()
        or any(needle in tag.lower() for tag in entry.tags)
    ]


def all_tags(entries: Iterable[RegistryEntry]) -> list[str]:
    """Sorted union of all tags."""
    tags: set[str] = set()
    for entry in entries:
        tags.update(entry.tags)
    return sorted(tags)
