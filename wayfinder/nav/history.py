from __future__ import annotations

from pathlib import Path


class PathHistory:
    """Back/forward stack of visited locations with browser semantics."""

    def __init__(self, limit: int = 500) -> None:
        self._limit = max(limit, 1)
        self._items: list[Path] = []
        self._index = -1

    @property
    def current(self) -> Path | None:
        if self._index < 0:
            return None
        return self._items[self._index]

    @property
    def index(self) -> int:
        return self._index

    @property
    def can_go_back(self) -> bool:
        return self._index > 0

    @property
    def can_go_forward(self) -> bool:
        return 0 <= self._index < len(self._items) - 1

    def push(self, location: Path) -> None:
        if self.current == location:
            return
        if self._index < len(self._items) - 1:
            self._items = self._items[: self._index + 1]
        self._items.append(location)
        self._index = len(self._items) - 1
        overflow = len(self._items) - self._limit
        if overflow > 0:
            del self._items[:overflow]
            self._index -= overflow

    def back(self) -> Path | None:
        if not self.can_go_back:
            return None
        self._index -= 1
        return self._items[self._index]

    def forward(self) -> Path | None:
        if not self.can_go_forward:
            return None
        self._index += 1
        return self._items[self._index]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(list(self._items))
