from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
import itertools
from pathlib import Path

_TOKENS = itertools.count(1)


def next_token() -> int:
    return next(_TOKENS)


@dataclass(frozen=True)
class Entry:
    """One file-system node as read at a point in time."""

    token: int
    name: str
    path: Path
    is_dir: bool
    size: int
    modified: datetime
    created: datetime
    hidden: bool = False

    @property
    def extension(self) -> str:
        if self.is_dir or "." not in self.name.lstrip("."):
            return ""
        return self.name.rsplit(".", 1)[-1]

    @property
    def stem(self) -> str:
        ext = self.extension
        if not ext:
            return self.name
        return self.name[: -(len(ext) + 1)]


class SortKey(str, Enum):
    NAME = "name"
    SIZE = "size"
    MODIFIED = "modified"
    TYPE = "type"


class SearchScope(str, Enum):
    CURRENT_FOLDER = "current"
    CURRENT_FOLDER_RECURSIVE = "recursive"
    SYSTEM = "system"


class MatchType(int, Enum):
    FUZZY = 0
    EXTENSION = 1
    CONTAINS = 2
    PREFIX = 3
    EXACT = 4


class LoadState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    ERRORED = "errored"


class ViewMode(str, Enum):
    BROWSE = "browse"
    SEARCH = "search"


_SIZE_UNITS = {
    "B": 1,
    "KB": 1024,
    "MB": 1024**2,
    "GB": 1024**3,
    "TB": 1024**4,
}


@dataclass(frozen=True)
class SizeFilter:
    op: str
    value: float
    unit: str = "B"

    @property
    def bytes(self) -> int:
        return int(self.value * _SIZE_UNITS.get(self.unit.upper(), 1))


@dataclass(frozen=True)
class SearchQuery:
    text: str
    scope: SearchScope = SearchScope.CURRENT_FOLDER_RECURSIVE
    extension: str = ""
    size: SizeFilter | None = None
    modified_after: datetime | None = None
    modified_before: datetime | None = None
    regex: bool = False
    content: bool = False
    include_hidden: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()


@dataclass(frozen=True)
class SearchResult:
    entry: Entry
    score: float
    match_type: MatchType


@dataclass(frozen=True)
class NavigationState:
    location: Path
    can_go_back: bool = False
    can_go_forward: bool = False

    @property
    def can_go_up(self) -> bool:
        return self.location.parent != self.location

    @property
    def breadcrumbs(self) -> list[Path]:
        return list(reversed([self.location, *self.location.parents]))


@dataclass(frozen=True)
class SessionSnapshot:
    navigation: NavigationState
    load_state: LoadState
    entries: tuple[Entry, ...] = ()
    selection: frozenset[int] = frozenset()
    cursor: int | None = None
    sort_key: SortKey = SortKey.NAME
    ascending: bool = True
    show_hidden: bool = False
    view_mode: ViewMode = ViewMode.BROWSE
    search_query: SearchQuery | None = None
    search_results: tuple[SearchResult, ...] = ()
    searching: bool = False
    error_message: str | None = None
    can_paste: bool = False

    @property
    def displayed_entries(self) -> tuple[Entry, ...]:
        if self.view_mode is ViewMode.SEARCH:
            return tuple(result.entry for result in self.search_results)
        return self.entries
