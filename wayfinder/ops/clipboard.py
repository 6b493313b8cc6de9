from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from pathlib import Path
from typing import Callable, Iterable

from wayfinder.errors import EmptyClipboardError, PartialFailureError
from wayfinder.models import Entry
from wayfinder.ops.fs_access import FileSystemAccess
from wayfinder.ops.transfer_worker import TransferItem, TransferReport, run_transfer, transfer_lock
from wayfinder.utils.operation_log import OperationLog

logger = logging.getLogger(__name__)


class ClipboardKind(str, Enum):
    COPY = "copy"
    CUT = "cut"


@dataclass(frozen=True)
class ClipboardState:
    kind: ClipboardKind
    entries: tuple[Entry, ...]


class ClipboardCoordinator:
    """Pending copy/cut set for one session, pasted with collision-free names."""

    def __init__(self, fs: FileSystemAccess, op_log: OperationLog | None = None) -> None:
        self._fs = fs
        self._op_log = op_log
        self._state: ClipboardState | None = None

    @property
    def state(self) -> ClipboardState | None:
        return self._state

    @property
    def can_paste(self) -> bool:
        return self._state is not None and bool(self._state.entries)

    def copy(self, entries: Iterable[Entry]) -> None:
        self._hold(ClipboardKind.COPY, entries)

    def cut(self, entries: Iterable[Entry]) -> None:
        self._hold(ClipboardKind.CUT, entries)

    def clear(self) -> None:
        self._state = None

    def snapshot(self) -> ClipboardState:
        if not self.can_paste:
            raise EmptyClipboardError()
        return self._state

    def paste(self, destination: Path) -> TransferReport:
        state = self.snapshot()
        report = self.execute(state, destination)
        self.finish(state, report)
        if report.failures:
            raise PartialFailureError(report.failures)
        return report

    def execute(
        self,
        state: ClipboardState,
        destination: Path,
        is_cancelled: Callable[[], bool] = lambda: False,
    ) -> TransferReport:
        """Do the I/O for one paste of ``state``; safe to call off the owning thread."""
        mode = "copy" if state.kind is ClipboardKind.COPY else "move"
        report = TransferReport()
        reserved: set[Path] = set()
        for entry in state.entries:
            if is_cancelled():
                report.cancelled.append(entry.path)
                continue
            source = entry.path
            if entry.is_dir and (destination == source or source in destination.parents):
                report.failures.append((source, "Cannot paste a folder into itself"))
                continue
            target = destination / entry.name
            if state.kind is ClipboardKind.CUT and target == source:
                report.skipped.append(source)
                continue
            with transfer_lock:
                target = self.resolve_name(entry, destination, state.kind, reserved)
                reserved.add(target)
                item = TransferItem(source, target, mode)
                run_transfer(self._fs, [item], self._op_log, is_cancelled, report)
        logger.debug(
            "Pasted %d of %d item(s) into %s", len(report.completed), len(state.entries), destination
        )
        return report

    def finish(self, state: ClipboardState, report: TransferReport) -> None:
        if state.kind is not ClipboardKind.CUT or self._state is not state:
            return
        unmoved = {source for source, _ in report.failures}.union(report.cancelled)
        remaining = tuple(entry for entry in state.entries if entry.path in unmoved)
        self._state = ClipboardState(ClipboardKind.CUT, remaining) if remaining else None

    def resolve_name(
        self,
        entry: Entry,
        destination: Path,
        kind: ClipboardKind,
        reserved: set[Path] | None = None,
    ) -> Path:
        if reserved is None:
            reserved = set()
        candidate = destination / entry.name
        stem = entry.stem
        suffix = f".{entry.extension}" if entry.extension else ""
        counter = 1
        while candidate in reserved or self._fs.file_exists(candidate):
            if kind is ClipboardKind.COPY:
                name = f"{stem} (copy {counter}){suffix}"
            else:
                name = f"{stem} {counter}{suffix}"
            candidate = destination / name
            counter += 1
        return candidate

    def _hold(self, kind: ClipboardKind, entries: Iterable[Entry]) -> None:
        held = tuple(entries)
        self._state = ClipboardState(kind, held) if held else None
        logger.debug("%s %d item(s) to clipboard", kind.value.capitalize(), len(held))
