from __future__ import annotations

from enum import Enum
from pathlib import Path


class ErrorKind(str, Enum):
    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    EMPTY_CLIPBOARD = "empty_clipboard"
    PARTIAL_FAILURE = "partial_failure"
    OTHER = "other"


class WayfinderError(Exception):
    kind = ErrorKind.OTHER


class PermissionDeniedError(WayfinderError):
    kind = ErrorKind.PERMISSION_DENIED

    def __init__(self, location: Path | str) -> None:
        self.location = Path(location)
        super().__init__(f"Permission denied. Cannot read contents of '{self.location.name or self.location}'")


class NotFoundError(WayfinderError):
    kind = ErrorKind.NOT_FOUND

    def __init__(self, location: Path | str) -> None:
        self.location = Path(location)
        super().__init__("Folder not found or has been moved.")


class EmptyClipboardError(WayfinderError):
    kind = ErrorKind.EMPTY_CLIPBOARD

    def __init__(self) -> None:
        super().__init__("No items in clipboard")


class PartialFailureError(WayfinderError):
    kind = ErrorKind.PARTIAL_FAILURE

    def __init__(self, failures: list[tuple[Path, str]]) -> None:
        self.failures = list(failures)
        noun = "item" if self.count == 1 else "items"
        super().__init__(f"{self.count} {noun} failed")

    @property
    def count(self) -> int:
        return len(self.failures)


class OperationError(WayfinderError):
    kind = ErrorKind.OTHER

    def __init__(self, message: str) -> None:
        self.detail = message
        super().__init__(f"Error: {message}")


def classify_os_error(exc: OSError, location: Path | str) -> WayfinderError:
    if isinstance(exc, PermissionError):
        return PermissionDeniedError(location)
    if isinstance(exc, (FileNotFoundError, NotADirectoryError)):
        return NotFoundError(location)
    return OperationError(exc.strerror or str(exc))
