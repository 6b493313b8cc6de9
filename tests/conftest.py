from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest
from PySide6.QtCore import QCoreApplication, QThreadPool

from wayfinder.models import Entry, next_token
from wayfinder.ops.fs_access import FileSystemAccess, Metadata


@pytest.fixture(scope="session")
def qapp():
    """Create a QCoreApplication so queued signals can be delivered."""
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    yield app


@pytest.fixture
def pool(qapp):
    thread_pool = QThreadPool()
    thread_pool.setMaxThreadCount(4)
    yield thread_pool
    thread_pool.waitForDone()


@pytest.fixture
def drain(qapp, pool):
    """Wait for background work and deliver its queued results, repeatedly."""

    def _drain(rounds: int = 6) -> None:
        for _ in range(rounds):
            pool.waitForDone()
            QCoreApplication.sendPostedEvents()
            QCoreApplication.processEvents()

    return _drain


def make_entry(
    name: str,
    is_dir: bool = False,
    size: int = 0,
    modified: datetime | None = None,
    parent: Path = Path("/data"),
) -> Entry:
    stamp = modified or datetime(2024, 1, 1, 12, 0)
    return Entry(
        token=next_token(),
        name=name,
        path=parent / name,
        is_dir=is_dir,
        size=0 if is_dir else size,
        modified=stamp,
        created=stamp,
        hidden=name.startswith("."),
    )


@pytest.fixture
def entry_factory():
    return make_entry


class FakeFileSystem(FileSystemAccess):
    """In-memory file system with switches for the failure modes the core handles."""

    def __init__(self) -> None:
        self.nodes: dict[Path, dict] = {}
        self.unreadable: set[Path] = set()
        self.broken_metadata: set[Path] = set()
        self.failing: set[Path] = set()
        self.list_calls = 0
        self.opened: list[Path] = []
        self.trashed: dict[Path, tuple[Path, dict]] = {}

    def add_dir(self, path: str | Path) -> Path:
        location = Path(path)
        for parent in reversed(location.parents):
            self.nodes.setdefault(parent, {"is_dir": True, "size": 0, "content": b""})
        self.nodes[location] = {"is_dir": True, "size": 0, "content": b"", "modified": datetime(2024, 1, 1)}
        return location

    def add_file(
        self,
        path: str | Path,
        content: bytes = b"",
        size: int | None = None,
        modified: datetime | None = None,
    ) -> Path:
        location = Path(path)
        self.add_dir(location.parent)
        self.nodes[location] = {
            "is_dir": False,
            "size": len(content) if size is None else size,
            "content": content,
            "modified": modified or datetime(2024, 1, 1),
        }
        return location

    def is_readable(self, location: Path) -> bool:
        return location not in self.unreadable

    def list_children(self, location: Path, include_hidden: bool = True) -> list[Path]:
        self.list_calls += 1
        if location not in self.nodes:
            raise FileNotFoundError(2, "No such file or directory", str(location))
        if location in self.unreadable:
            raise PermissionError(13, "Permission denied", str(location))
        children = [
            path
            for path in self.nodes
            if path.parent == location and path != location
            and (include_hidden or not path.name.startswith("."))
        ]
        return sorted(children)

    def read_metadata(self, location: Path) -> Metadata:
        if location in self.broken_metadata or location not in self.nodes:
            raise PermissionError(13, "Permission denied", str(location))
        node = self.nodes[location]
        stamp = node.get("modified", datetime(2024, 1, 1))
        return Metadata(
            is_dir=node["is_dir"],
            size=node["size"],
            modified=stamp,
            created=stamp,
            hidden=location.name.startswith("."),
        )

    def copy(self, source: Path, destination: Path) -> None:
        self._check(source)
        self.nodes[destination] = dict(self.nodes[source])

    def move(self, source: Path, destination: Path) -> None:
        self._check(source)
        self.nodes[destination] = self.nodes.pop(source)

    def create_directory(self, location: Path) -> None:
        self._check(location)
        self.add_dir(location)

    def trash(self, location: Path) -> Path:
        self._check(location)
        node = self.nodes.pop(location)
        trashed = Path("/trash") / location.name
        self.trashed[trashed] = (location, node)
        return trashed

    def restore(self, trashed: Path) -> Path:
        self._check(trashed)
        if trashed not in self.trashed:
            raise FileNotFoundError(2, "No trash metadata", str(trashed))
        original, node = self.trashed.pop(trashed)
        self.nodes[original] = node
        return original

    def file_exists(self, location: Path) -> bool:
        return location in self.nodes

    def read_prefix(self, location: Path, limit: int) -> bytes:
        if location in self.unreadable:
            raise PermissionError(13, "Permission denied", str(location))
        return self.nodes[location]["content"][:limit]

    def open_external(self, location: Path) -> bool:
        self.opened.append(location)
        return True

    def _check(self, location: Path) -> None:
        if location in self.failing:
            raise OSError(5, "Input/output error", str(location))


@pytest.fixture
def fake_fs() -> FakeFileSystem:
    return FakeFileSystem()
