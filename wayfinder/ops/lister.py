from __future__ import annotations

import logging
from pathlib import Path

from PySide6.QtCore import QObject, QRunnable, Signal

from wayfinder.errors import NotFoundError, PermissionDeniedError, WayfinderError, classify_os_error
from wayfinder.models import Entry, next_token
from wayfinder.ops.fs_access import FileSystemAccess

logger = logging.getLogger(__name__)


def make_entry(fs: FileSystemAccess, location: Path) -> Entry:
    meta = fs.read_metadata(location)
    return Entry(
        token=next_token(),
        name=location.name or str(location),
        path=location,
        is_dir=meta.is_dir,
        size=0 if meta.is_dir else meta.size,
        modified=meta.modified,
        created=meta.created,
        hidden=meta.hidden,
    )


class DirectoryLister:
    def __init__(self, fs: FileSystemAccess) -> None:
        self._fs = fs

    def list(self, location: Path, include_hidden: bool = False) -> list[Entry]:
        """Read one directory into fresh, unordered entries.

        Raises ``NotFoundError``, ``PermissionDeniedError`` or ``OperationError``
        when the directory itself cannot be read. Children whose metadata
        cannot be read are skipped.
        """
        if not self._fs.file_exists(location):
            raise NotFoundError(location)
        if not self._fs.is_readable(location):
            raise PermissionDeniedError(location)
        try:
            children = self._fs.list_children(location, include_hidden=include_hidden)
        except OSError as exc:
            raise classify_os_error(exc, location) from exc

        entries: list[Entry] = []
        for child in children:
            try:
                entry = make_entry(self._fs, child)
            except OSError as exc:
                logger.debug("Skipping unreadable entry %s: %s", child, exc)
                continue
            if entry.hidden and not include_hidden:
                continue
            entries.append(entry)
        return entries


class ListingSignals(QObject):
    loaded = Signal(int, object, object)
    failed = Signal(int, object, object)


class ListingWorker(QRunnable):
    def __init__(self, lister: DirectoryLister, ticket: int, location: Path, include_hidden: bool) -> None:
        super().__init__()
        self.signals = ListingSignals()
        self._lister = lister
        self._ticket = ticket
        self._location = location
        self._include_hidden = include_hidden

    def run(self) -> None:
        try:
            entries = self._lister.list(self._location, self._include_hidden)
        except WayfinderError as exc:
            self.signals.failed.emit(self._ticket, self._location, exc)
            return
        self.signals.loaded.emit(self._ticket, self._location, entries)
