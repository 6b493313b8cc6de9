from __future__ import annotations

from enum import Flag, auto
from typing import Iterable, Mapping, Sequence

from PySide6.QtCore import QPointF, QRectF

from wayfinder.models import Entry


class Modifiers(Flag):
    NONE = 0
    TOGGLE = auto()
    RANGE = auto()
    UNION = auto()


class SelectionModel:
    """Selected entry tokens plus a lookup set kept in sync on every change.

    Modifier state is always passed in by the caller; nothing here reads
    global input state.
    """

    def __init__(self) -> None:
        self._selected: list[int] = []
        self._lookup: set[int] = set()
        self._cursor: int | None = None
        self._anchor: int | None = None
        self._marquee_snapshot: list[int] | None = None

    @property
    def cursor(self) -> int | None:
        return self._cursor

    @property
    def tokens(self) -> frozenset[int]:
        return frozenset(self._lookup)

    @property
    def ordered_tokens(self) -> list[int]:
        return list(self._selected)

    @property
    def marquee_active(self) -> bool:
        return self._marquee_snapshot is not None

    def __len__(self) -> int:
        return len(self._selected)

    def is_selected(self, entry: Entry | int) -> bool:
        token = entry if isinstance(entry, int) else entry.token
        return token in self._lookup

    def selected_entries(self, entries: Iterable[Entry]) -> list[Entry]:
        return [entry for entry in entries if entry.token in self._lookup]

    def select(
        self,
        entry: Entry,
        modifiers: Modifiers = Modifiers.NONE,
        entries: Sequence[Entry] | None = None,
    ) -> None:
        index = _index_of(entry, entries)
        if Modifiers.RANGE in modifiers and entries is not None and index is not None:
            start = self._cursor
            if start is None or start >= len(entries):
                start = index
            self.select_range(start, index, entries, extend=True)
            self._cursor = index
            return
        if Modifiers.TOGGLE in modifiers:
            if entry.token in self._lookup:
                self._remove(entry.token)
            else:
                self._add(entry.token)
        else:
            self._replace([entry.token])
        self._cursor = index
        self._anchor = index

    def select_range(self, start: int, end: int, entries: Sequence[Entry], extend: bool = False) -> None:
        if not entries:
            return
        low, high = sorted((start, end))
        low = max(low, 0)
        high = min(high, len(entries) - 1)
        tokens = [entries[i].token for i in range(low, high + 1)]
        if extend:
            for token in tokens:
                self._add(token)
        else:
            self._replace(tokens)

    def select_all(self, entries: Iterable[Entry]) -> None:
        self._replace([entry.token for entry in entries])

    def deselect_all(self) -> None:
        self._replace([])
        self._cursor = None
        self._anchor = None
        self._marquee_snapshot = None

    def retain(self, entries: Iterable[Entry]) -> None:
        visible = {entry.token for entry in entries}
        self._replace([token for token in self._selected if token in visible])

    def move_cursor(self, delta: int, entries: Sequence[Entry], extend: bool = False) -> Entry | None:
        if not entries:
            return None
        if self._cursor is None:
            target = 0 if delta >= 0 else len(entries) - 1
        else:
            target = min(max(self._cursor + delta, 0), len(entries) - 1)
        if extend:
            anchor = self._anchor if self._anchor is not None else target
            self.select_range(anchor, target, entries)
            self._anchor = anchor
        else:
            self._replace([entries[target].token])
            self._anchor = target
        self._cursor = target
        return entries[target]

    def begin_marquee(self) -> None:
        self._marquee_snapshot = list(self._selected)

    def update_marquee(
        self,
        start: QPointF,
        current: QPointF,
        frames: Mapping[int, QRectF],
        modifiers: Modifiers = Modifiers.NONE,
    ) -> None:
        if self._marquee_snapshot is None:
            self.begin_marquee()
        rect = QRectF(start, current).normalized()
        hits = [token for token, frame in frames.items() if frame.intersects(rect)]
        if Modifiers.UNION in modifiers:
            base = list(self._marquee_snapshot or [])
            seen = set(base)
            self._replace(base + [token for token in hits if token not in seen])
        else:
            self._replace(hits)

    def end_marquee(self) -> None:
        self._marquee_snapshot = None

    def _add(self, token: int) -> None:
        if token in self._lookup:
            return
        self._selected.append(token)
        self._lookup.add(token)

    def _remove(self, token: int) -> None:
        if token not in self._lookup:
            return
        self._selected.remove(token)
        self._lookup.discard(token)

    def _replace(self, tokens: list[int]) -> None:
        self._selected = list(dict.fromkeys(tokens))
        self._lookup = set(self._selected)


def _index_of(entry: Entry, entries: Sequence[Entry] | None) -> int | None:
    if entries is None:
        return None
    for index, candidate in enumerate(entries):
        if candidate.token == entry.token:
            return index
    return None
