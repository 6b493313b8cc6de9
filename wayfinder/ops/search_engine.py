from __future__ import annotations

import logging
from pathlib import Path
import sys

from PySide6.QtCore import QObject, QThreadPool, QTimer, Signal

from wayfinder.models import SearchQuery, SearchResult, SearchScope
from wayfinder.ops.fs_access import FileSystemAccess
from wayfinder.ops.matching import Candidate, rank
from wayfinder.ops.search_worker import ContentReader, ScanLimits, SearchWorker, scan_root

logger = logging.getLogger(__name__)


def default_app_dirs() -> list[Path]:
    if sys.platform == "darwin":
        return [Path("/Applications"), Path("/System/Applications")]
    return [
        Path.home() / ".local/share/applications",
        Path("/usr/share/applications"),
    ]


class SearchEngine(QObject):
    """Runs one search at a time, one worker per root, merged on the owner's thread.

    Every submit bumps the generation; results tagged with an older generation
    are dropped, so a superseded query can never publish.
    """

    started = Signal(int, object)
    resultsReady = Signal(int, object)

    def __init__(
        self,
        fs: FileSystemAccess,
        pool: QThreadPool | None = None,
        limits: ScanLimits | None = None,
        result_limit: int = 200,
        debounce_ms: int = 150,
        reader: ContentReader | None = None,
        home: Path | None = None,
        app_dirs: list[Path] | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._fs = fs
        self._pool = pool or QThreadPool.globalInstance()
        self._limits = limits or ScanLimits()
        self._result_limit = result_limit
        self._reader = reader
        self._home = home or Path.home()
        self._app_dirs = app_dirs if app_dirs is not None else default_app_dirs()
        self._generation = 0
        self._workers: list[SearchWorker] = []
        self._partials: dict[Path, list[Candidate]] = {}
        self._roots: list[Path] = []
        self._query: SearchQuery | None = None
        self._pending: tuple[SearchQuery, Path] | None = None
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.setInterval(max(debounce_ms, 0))
        self._timer.timeout.connect(self._start_pending)

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_running(self) -> bool:
        return bool(self._workers) or self._timer.isActive()

    def resolve_roots(self, scope: SearchScope, current: Path) -> list[tuple[Path, bool]]:
        if scope is SearchScope.CURRENT_FOLDER:
            return [(current, False)]
        if scope is SearchScope.CURRENT_FOLDER_RECURSIVE:
            return [(current, True)]
        roots = [self._home, *self._app_dirs]
        return [(root, True) for root in dict.fromkeys(roots) if self._fs.file_exists(root)]

    def submit(self, query: SearchQuery, current: Path) -> int:
        """Queue ``query`` behind the debounce delay, superseding anything in flight."""
        self.cancel()
        if query.is_empty:
            self.resultsReady.emit(self._generation, [])
            return self._generation
        self._pending = (query, current)
        if self._timer.interval() <= 0:
            self._start_pending()
        else:
            self._timer.start()
        return self._generation

    def start(self, query: SearchQuery, current: Path) -> int:
        """Start ``query`` immediately, superseding anything in flight."""
        self.cancel()
        if query.is_empty:
            self.resultsReady.emit(self._generation, [])
            return self._generation
        self._launch(query, current)
        return self._generation

    def cancel(self) -> None:
        self._timer.stop()
        self._pending = None
        if self._workers:
            logger.debug("Cancelling search generation %s", self._generation)
        for worker in self._workers:
            worker.cancel()
        self._workers = []
        self._partials = {}
        self._roots = []
        self._query = None
        self._generation += 1

    def run(self, query: SearchQuery, current: Path) -> list[SearchResult]:
        """Blocking single-threaded search over the same roots, for callers without an event loop."""
        if query.is_empty:
            return []
        candidates: list[Candidate] = []
        for root, recursive in self.resolve_roots(query.scope, current):
            candidates.extend(scan_root(self._fs, root, query, recursive, self._limits, reader=self._reader))
        return rank(candidates, query, self._result_limit)

    def _start_pending(self) -> None:
        if self._pending is None:
            return
        query, current = self._pending
        self._pending = None
        self._launch(query, current)

    def _launch(self, query: SearchQuery, current: Path) -> None:
        generation = self._generation
        roots = self.resolve_roots(query.scope, current)
        self._query = query
        self._roots = [root for root, _ in roots]
        self._partials = {}
        logger.debug("Search %r over %d root(s), generation %s", query.text, len(roots), generation)
        self.started.emit(generation, query)
        if not roots:
            self._publish(generation)
            return
        for root, recursive in roots:
            worker = SearchWorker(
                self._fs,
                generation,
                root,
                query,
                recursive,
                self._limits,
                reader=self._reader if query.content else None,
            )
            worker.signals.rootFinished.connect(self._on_root_finished)
            self._workers.append(worker)
        for worker in list(self._workers):
            self._pool.start(worker)

    def _on_root_finished(self, generation: int, root: Path, candidates: list[Candidate]) -> None:
        if generation != self._generation or self._query is None:
            return
        self._partials[root] = candidates
        if len(self._partials) < len(self._roots):
            return
        self._publish(generation)

    def _publish(self, generation: int) -> None:
        query = self._query
        merged: list[Candidate] = []
        for root in self._roots:
            merged.extend(self._partials.get(root, []))
        self._workers = []
        self._partials = {}
        self._query = None
        results = rank(merged, query, self._result_limit) if query is not None else []
        self.resultsReady.emit(generation, results)
