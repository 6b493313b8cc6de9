from __future__ import annotations

from dataclasses import dataclass, field
import logging
from pathlib import Path
import threading
from typing import Callable

from PySide6.QtCore import QObject, QRunnable, Signal

from wayfinder.ops.fs_access import FileSystemAccess
from wayfinder.utils.operation_log import OperationLog

logger = logging.getLogger(__name__)

# Held from choosing a destination name until the item has landed there.
transfer_lock = threading.RLock()


@dataclass
class TransferItem:
    source: Path
    destination: Path | None
    mode: str


@dataclass
class TransferReport:
    completed: list[TransferItem] = field(default_factory=list)
    failures: list[tuple[Path, str]] = field(default_factory=list)
    skipped: list[Path] = field(default_factory=list)
    cancelled: list[Path] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def run_transfer(
    fs: FileSystemAccess,
    items: list[TransferItem],
    op_log: OperationLog | None = None,
    is_cancelled: Callable[[], bool] = lambda: False,
    report: TransferReport | None = None,
) -> TransferReport:
    """Apply ``items`` one by one, collecting failures instead of stopping at the first."""
    report = report or TransferReport()
    for item in items:
        if is_cancelled():
            report.cancelled.append(item.source)
            continue
        try:
            with transfer_lock:
                _apply(fs, item)
        except OSError as exc:
            message = exc.strerror or str(exc)
            logger.warning("%s of %s failed: %s", item.mode, item.source, message)
            report.failures.append((item.source, message))
            _log(op_log, item, success=False, error=message)
            continue
        report.completed.append(item)
        _log(op_log, item, success=True)
    return report


def _apply(fs: FileSystemAccess, item: TransferItem) -> None:
    if item.mode == "copy":
        fs.copy(item.source, item.destination)
    elif item.mode == "move":
        fs.move(item.source, item.destination)
    elif item.mode == "trash":
        item.destination = fs.trash(item.source)
    elif item.mode == "restore":
        item.destination = fs.restore(item.source)
    else:
        raise ValueError(f"Unknown transfer mode: {item.mode}")


def _log(op_log: OperationLog | None, item: TransferItem, success: bool, error: str = "") -> None:
    if op_log is None:
        return
    destinations = [str(item.destination)] if item.destination is not None else []
    op_log.append(item.mode, [str(item.source)], destinations, success=success, error=error)


class TransferSignals(QObject):
    finished = Signal(int, object)


class TransferWorker(QRunnable):
    def __init__(self, ticket: int, job: Callable[[Callable[[], bool]], TransferReport]) -> None:
        super().__init__()
        self.signals = TransferSignals()
        self._ticket = ticket
        self._job = job
        self._cancel = threading.Event()

    def cancel(self) -> None:
        self._cancel.set()

    def run(self) -> None:
        report = self._job(self._cancel.is_set)
        self.signals.finished.emit(self._ticket, report)
