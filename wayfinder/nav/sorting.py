from __future__ import annotations

import locale
from typing import Any, Iterable

from wayfinder.models import Entry, SortKey


def name_key(name: str) -> str:
    return locale.strxfrm(name.casefold())


def _key_for(entry: Entry, key: SortKey) -> Any:
    if key is SortKey.SIZE:
        return 0 if entry.is_dir else entry.size
    if key is SortKey.MODIFIED:
        return entry.modified
    if key is SortKey.TYPE:
        return name_key(entry.extension)
    return name_key(entry.name)


def sort_entries(entries: Iterable[Entry], key: SortKey = SortKey.NAME, ascending: bool = True) -> list[Entry]:
    """Return ``entries`` ordered by ``key`` with directories always first.

    Both passes are stable, so entries comparing equal keep their input order
    in either direction.
    """
    ordered = sorted(entries, key=lambda entry: _key_for(entry, key), reverse=not ascending)
    ordered.sort(key=lambda entry: not entry.is_dir)
    return ordered
