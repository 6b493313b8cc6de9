from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
import json
import logging
from pathlib import Path
import threading
from typing import Iterable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OperationRecord:
    action: str
    sources: tuple[str, ...]
    destinations: tuple[str, ...] = ()
    success: bool = True
    error: str = ""
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, line: str) -> OperationRecord | None:
        try:
            data = json.loads(line)
            return cls(
                action=data["action"],
                sources=tuple(data.get("sources", ())),
                destinations=tuple(data.get("destinations", ())),
                success=bool(data.get("success", True)),
                error=data.get("error", ""),
                timestamp=data.get("timestamp", ""),
            )
        except (json.JSONDecodeError, KeyError, TypeError):
            return None


class OperationLog:
    """JSON-lines journal of file operations, one record per item.

    Appends may come from pool threads. Once the file grows past ``max_mb``
    the older half of its lines is dropped.
    """

    def __init__(self, log_path: Path, max_mb: int = 5) -> None:
        self._log_path = log_path
        self._max_bytes = max_mb * 1024 * 1024
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._log_path

    def append(
        self,
        action: str,
        sources: Iterable[str],
        destinations: Iterable[str] | None = None,
        success: bool = True,
        error: str = "",
    ) -> OperationRecord:
        record = OperationRecord(
            action=action,
            sources=tuple(str(item) for item in sources),
            destinations=tuple(str(item) for item in destinations or ()),
            success=success,
            error=error,
        )
        with self._lock:
            try:
                self._log_path.parent.mkdir(parents=True, exist_ok=True)
                with self._log_path.open("a", encoding="utf-8") as handle:
                    handle.write(record.to_json() + "\n")
                self._trim()
            except OSError as exc:
                logger.warning("Could not write operation log %s: %s", self._log_path, exc)
        return record

    def records(self, limit: int | None = None) -> list[OperationRecord]:
        try:
            lines = self._log_path.read_text(encoding="utf-8").splitlines()
        except FileNotFoundError:
            return []
        parsed = (OperationRecord.from_json(line) for line in lines if line.strip())
        records = [record for record in parsed if record is not None]
        return records[-limit:] if limit else records

    def clear(self) -> None:
        with self._lock:
            self._log_path.unlink(missing_ok=True)

    def _trim(self) -> None:
        if self._max_bytes <= 0 or self._log_path.stat().st_size <= self._max_bytes:
            return
        lines = self._log_path.read_text(encoding="utf-8").splitlines(keepends=True)
        self._log_path.write_text("".join(lines[len(lines) // 2 :]), encoding="utf-8")
