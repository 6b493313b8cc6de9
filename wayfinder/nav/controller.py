from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, Iterable, Mapping

from PySide6.QtCore import QObject, QPointF, QRectF, QThreadPool, Signal

from wayfinder.errors import (
    OperationError,
    PartialFailureError,
    PermissionDeniedError,
    WayfinderError,
    classify_os_error,
)
from wayfinder.models import (
    Entry,
    LoadState,
    NavigationState,
    SearchQuery,
    SearchResult,
    SessionSnapshot,
    SortKey,
    ViewMode,
)
from wayfinder.nav.history import PathHistory
from wayfinder.nav.selection import Modifiers, SelectionModel
from wayfinder.nav.sorting import sort_entries
from wayfinder.ops.clipboard import ClipboardCoordinator, ClipboardState
from wayfinder.ops.fs_access import FileSystemAccess, LocalFileSystem
from wayfinder.ops.lister import DirectoryLister, ListingWorker
from wayfinder.ops.search_engine import SearchEngine
from wayfinder.ops.search_worker import ContentReader, ScanLimits
from wayfinder.ops.transfer_worker import TransferItem, TransferReport, TransferWorker, run_transfer
from wayfinder.utils.config import Settings
from wayfinder.utils.lru import LRUCache
from wayfinder.utils.operation_log import OperationLog

logger = logging.getLogger(__name__)


def normalize_location(location: Path | str) -> Path:
    return Path(os.path.abspath(os.path.expanduser(str(location))))


class NavigationController(QObject):
    """One browsing session: location, listing, selection, search and clipboard.

    All observable state is written here, on the thread that owns the
    controller. Background listings, searches and transfers report back through
    queued signals, and each apply step ends with a single ``stateChanged``
    emission carrying an immutable ``SessionSnapshot``.
    """

    stateChanged = Signal(object)
    operationFailed = Signal(object)

    def __init__(
        self,
        fs: FileSystemAccess | None = None,
        settings: Settings | None = None,
        pool: QThreadPool | None = None,
        op_log: OperationLog | None = None,
        home: Path | None = None,
        app_dirs: list[Path] | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._settings = settings or Settings()
        self._fs = fs or LocalFileSystem(self._settings.trash_dir, self._settings.open_backend)
        self._pool = pool or QThreadPool.globalInstance()
        self._op_log = op_log
        self._history = PathHistory(self._settings.history_limit)
        self._lister = DirectoryLister(self._fs)
        self._selection = SelectionModel()
        self._clipboard = ClipboardCoordinator(self._fs, op_log)
        self._content_cache: LRUCache = LRUCache(self._settings.content_cache_size)
        self._search = SearchEngine(
            self._fs,
            pool=self._pool,
            limits=ScanLimits(
                max_processed=self._settings.search_max_processed,
                max_matches=self._settings.search_max_matches_per_root,
            ),
            result_limit=self._settings.search_result_limit,
            debounce_ms=self._settings.search_debounce_ms,
            reader=ContentReader(self._fs, self._content_cache, self._settings.content_read_limit),
            home=home,
            app_dirs=app_dirs,
            parent=self,
        )
        self._search.resultsReady.connect(self._apply_search_results)

        self._location: Path | None = None
        self._load_state = LoadState.IDLE
        self._entries: list[Entry] = []
        self._sort_key = self._settings.default_sort
        self._ascending = True
        self._show_hidden = self._settings.show_hidden
        self._view_mode = ViewMode.BROWSE
        self._search_query: SearchQuery | None = None
        self._search_results: list[SearchResult] = []
        self._searching = False
        self._error_message: str | None = None
        self._last_error: WayfinderError | None = None

        self._listing_ticket = 0
        self._listings: dict[int, ListingWorker] = {}
        self._transfer_ticket = 0
        self._transfers: dict[int, tuple[TransferWorker, Callable[[TransferReport], None]]] = {}
        self._last_trashed: list[Path] = []

    @property
    def location(self) -> Path | None:
        return self._location

    @property
    def load_state(self) -> LoadState:
        return self._load_state

    @property
    def entries(self) -> list[Entry]:
        return list(self._entries)

    @property
    def displayed_entries(self) -> list[Entry]:
        if self._view_mode is ViewMode.SEARCH:
            return [result.entry for result in self._search_results]
        return list(self._entries)

    @property
    def search_results(self) -> list[SearchResult]:
        return list(self._search_results)

    @property
    def view_mode(self) -> ViewMode:
        return self._view_mode

    @property
    def sort_key(self) -> SortKey:
        return self._sort_key

    @property
    def ascending(self) -> bool:
        return self._ascending

    @property
    def show_hidden(self) -> bool:
        return self._show_hidden

    @property
    def history(self) -> PathHistory:
        return self._history

    @property
    def selection(self) -> SelectionModel:
        return self._selection

    @property
    def clipboard(self) -> ClipboardCoordinator:
        return self._clipboard

    @property
    def search_engine(self) -> SearchEngine:
        return self._search

    @property
    def content_cache(self) -> LRUCache:
        return self._content_cache

    @property
    def error_message(self) -> str | None:
        return self._error_message

    @property
    def last_error(self) -> WayfinderError | None:
        return self._last_error

    @property
    def can_paste(self) -> bool:
        return self._clipboard.can_paste

    @property
    def last_trashed(self) -> list[Path]:
        return list(self._last_trashed)

    @property
    def busy(self) -> bool:
        return bool(self._listings or self._transfers) or self._search.is_running

    @property
    def navigation_state(self) -> NavigationState:
        return NavigationState(
            location=self._location or Path("/"),
            can_go_back=self._history.can_go_back,
            can_go_forward=self._history.can_go_forward,
        )

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            navigation=self.navigation_state,
            load_state=self._load_state,
            entries=tuple(self._entries),
            selection=self._selection.tokens,
            cursor=self._selection.cursor,
            sort_key=self._sort_key,
            ascending=self._ascending,
            show_hidden=self._show_hidden,
            view_mode=self._view_mode,
            search_query=self._search_query,
            search_results=tuple(self._search_results),
            searching=self._searching,
            error_message=self._error_message,
            can_paste=self._clipboard.can_paste,
        )

    def _notify(self) -> None:
        self.stateChanged.emit(self.snapshot())

    def navigate(self, location: Path | str) -> None:
        target = normalize_location(location)
        if target == self._location and self._load_state is not LoadState.IDLE:
            return
        self._history.push(target)
        self._enter(target)

    def back(self) -> None:
        target = self._history.back()
        if target is not None:
            self._enter(target)

    def forward(self) -> None:
        target = self._history.forward()
        if target is not None:
            self._enter(target)

    def up(self) -> None:
        if self._location is None or self._location.parent == self._location:
            return
        self.navigate(self._location.parent)

    def refresh(self) -> None:
        if self._location is None:
            return
        self._load()

    def retry(self) -> None:
        self.refresh()

    def open_item(self, entry: Entry) -> bool:
        if entry.is_dir:
            if not self._fs.is_readable(entry.path):
                self._fail(PermissionDeniedError(entry.path))
                return False
            self.navigate(entry.path)
            return True
        if not self._fs.is_readable(entry.path):
            self._fail(PermissionDeniedError(entry.path))
            return False
        if self._fs.open_external(entry.path):
            return True
        self._fail(OperationError(f"No application available to open '{entry.name}'"))
        return False

    def set_sort_option(self, key: SortKey) -> None:
        if key is self._sort_key:
            self._ascending = not self._ascending
        else:
            self._sort_key = key
            self._ascending = True
        self._entries = sort_entries(self._entries, self._sort_key, self._ascending)
        self._notify()

    def set_show_hidden(self, show: bool) -> None:
        if show == self._show_hidden:
            return
        self._show_hidden = show
        self.refresh()

    def _enter(self, location: Path) -> None:
        logger.debug("Entering %s", location)
        self._location = location
        self._selection.deselect_all()
        if self._view_mode is ViewMode.SEARCH:
            self._leave_search()
        self._load()

    def _load(self) -> None:
        self._listing_ticket += 1
        ticket = self._listing_ticket
        self._load_state = LoadState.LOADING
        self._error_message = None
        worker = ListingWorker(self._lister, ticket, self._location, self._show_hidden)
        worker.signals.loaded.connect(self._apply_listing)
        worker.signals.failed.connect(self._apply_listing_error)
        self._listings[ticket] = worker
        self._notify()
        self._pool.start(worker)

    def _apply_listing(self, ticket: int, location: Path, entries: list[Entry]) -> None:
        self._listings.pop(ticket, None)
        if ticket != self._listing_ticket or location != self._location:
            logger.debug("Discarding stale listing of %s", location)
            return
        selected_paths = {entry.path for entry in self._selection.selected_entries(self._entries)}
        self._entries = sort_entries(entries, self._sort_key, self._ascending)
        self._load_state = LoadState.LOADED
        self._error_message = None
        self._last_error = None
        if self._view_mode is ViewMode.BROWSE:
            if selected_paths:
                self._selection.select_all(entry for entry in self._entries if entry.path in selected_paths)
            else:
                self._selection.retain(self._entries)
        self._notify()

    def _apply_listing_error(self, ticket: int, location: Path, error: WayfinderError) -> None:
        self._listings.pop(ticket, None)
        if ticket != self._listing_ticket or location != self._location:
            return
        logger.warning("Could not list %s: %s", location, error)
        self._entries = []
        self._load_state = LoadState.ERRORED
        self._error_message = str(error)
        self._last_error = error
        self._notify()

    def search(self, query: SearchQuery) -> None:
        """Enter search mode and submit ``query``; an empty query clears the results."""
        if self._location is None:
            return
        if self._view_mode is not ViewMode.SEARCH:
            self._selection.deselect_all()
        self._view_mode = ViewMode.SEARCH
        self._search_query = query
        self._searching = not query.is_empty
        self._search.submit(query, self._location)
        self._notify()

    def clear_search(self) -> None:
        if self._view_mode is not ViewMode.SEARCH:
            return
        self._leave_search()
        self._notify()

    def _leave_search(self) -> None:
        self._search.cancel()
        self._view_mode = ViewMode.BROWSE
        self._search_query = None
        self._search_results = []
        self._searching = False
        self._selection.deselect_all()

    def _apply_search_results(self, generation: int, results: list[SearchResult]) -> None:
        if generation != self._search.generation or self._view_mode is not ViewMode.SEARCH:
            return
        self._search_results = list(results)
        self._searching = False
        self._selection.retain(self.displayed_entries)
        self._notify()

    def select(self, entry: Entry, modifiers: Modifiers = Modifiers.NONE) -> None:
        self._selection.select(entry, modifiers, self.displayed_entries)
        self._notify()

    def select_all(self) -> None:
        self._selection.select_all(self.displayed_entries)
        self._notify()

    def deselect_all(self) -> None:
        self._selection.deselect_all()
        self._notify()

    def is_selected(self, entry: Entry) -> bool:
        return self._selection.is_selected(entry)

    def selected_entries(self) -> list[Entry]:
        return self._selection.selected_entries(self.displayed_entries)

    def move_cursor(self, delta: int, extend: bool = False) -> Entry | None:
        entry = self._selection.move_cursor(delta, self.displayed_entries, extend=extend)
        self._notify()
        return entry

    def begin_marquee(self) -> None:
        self._selection.begin_marquee()

    def update_marquee(
        self,
        start: QPointF,
        current: QPointF,
        frames: Mapping[int, QRectF],
        modifiers: Modifiers = Modifiers.NONE,
    ) -> None:
        self._selection.update_marquee(start, current, frames, modifiers)
        self._notify()

    def end_marquee(self) -> None:
        self._selection.end_marquee()

    def copy(self, entries: Iterable[Entry]) -> None:
        self._clipboard.copy(entries)
        self._notify()

    def cut(self, entries: Iterable[Entry]) -> None:
        self._clipboard.cut(entries)
        self._notify()

    def copy_selection(self) -> None:
        self.copy(self.selected_entries())

    def cut_selection(self) -> None:
        self.cut(self.selected_entries())

    def paste(self, destination: Path | str | None = None) -> int:
        """Start pasting the clipboard off-thread; raises ``EmptyClipboardError`` if nothing is held."""
        state = self._clipboard.snapshot()
        target = normalize_location(destination) if destination is not None else self._location
        if target is None:
            raise ValueError("No destination to paste into")

        def job(is_cancelled: Callable[[], bool]) -> TransferReport:
            return self._clipboard.execute(state, target, is_cancelled)

        return self._start_transfer(job, lambda report: self._finish_paste(state, target, report))

    def trash(self, entries: Iterable[Entry]) -> int | None:
        items = [TransferItem(entry.path, None, "trash") for entry in entries]
        if not items:
            return None

        def job(is_cancelled: Callable[[], bool]) -> TransferReport:
            return run_transfer(self._fs, items, self._op_log, is_cancelled)

        return self._start_transfer(job, self._finish_trash)

    def trash_selection(self) -> int | None:
        return self.trash(self.selected_entries())

    def restore(self, trashed: Iterable[Path | str]) -> int | None:
        """Move trashed items back to the locations recorded in their trash metadata."""
        items = [TransferItem(Path(path), None, "restore") for path in trashed]
        if not items:
            return None

        def job(is_cancelled: Callable[[], bool]) -> TransferReport:
            return run_transfer(self._fs, items, self._op_log, is_cancelled)

        return self._start_transfer(job, self._finish_restore)

    def undo_trash(self) -> int | None:
        trashed, self._last_trashed = self._last_trashed, []
        return self.restore(trashed)

    def create_folder(self, name: str = "New Folder") -> Path:
        if self._location is None:
            raise ValueError("No current location")
        candidate = self._location / name
        counter = 1
        while self._fs.file_exists(candidate):
            candidate = self._location / f"{name} {counter}"
            counter += 1
        try:
            self._fs.create_directory(candidate)
        except OSError as exc:
            self._log("create_folder", [str(candidate)], success=False, error=str(exc))
            raise classify_os_error(exc, candidate) from exc
        self._log("create_folder", [str(candidate)], success=True)
        self.refresh()
        return candidate

    def cancel_operations(self) -> None:
        for worker, _ in self._transfers.values():
            worker.cancel()
        self._search.cancel()

    def _start_transfer(
        self,
        job: Callable[[Callable[[], bool]], TransferReport],
        on_done: Callable[[TransferReport], None],
    ) -> int:
        self._transfer_ticket += 1
        ticket = self._transfer_ticket
        worker = TransferWorker(ticket, job)
        worker.signals.finished.connect(self._on_transfer_finished)
        self._transfers[ticket] = (worker, on_done)
        self._pool.start(worker)
        return ticket

    def _on_transfer_finished(self, ticket: int, report: TransferReport) -> None:
        pending = self._transfers.pop(ticket, None)
        if pending is None:
            return
        _, on_done = pending
        on_done(report)

    def _finish_paste(self, state: ClipboardState, target: Path, report: TransferReport) -> None:
        self._clipboard.finish(state, report)
        if report.failures:
            self._fail(PartialFailureError(report.failures), notify=False)
        logger.info("Pasted %d item(s) into %s", len(report.completed), target)
        if self._location is None:
            self._notify()
        else:
            self.refresh()

    def _finish_trash(self, report: TransferReport) -> None:
        self._last_trashed = [item.destination for item in report.completed]
        self._finish_restore(report)

    def _finish_restore(self, report: TransferReport) -> None:
        if report.failures:
            self._fail(PartialFailureError(report.failures), notify=False)
        if self._location is None:
            self._notify()
        else:
            self.refresh()

    def _fail(self, error: WayfinderError, notify: bool = True) -> None:
        logger.warning("%s", error)
        self._last_error = error
        self.operationFailed.emit(error)
        if notify:
            self._notify()

    def _log(self, action: str, sources: list[str], success: bool, error: str = "") -> None:
        if self._op_log is not None:
            self._op_log.append(action, sources, success=success, error=error)
