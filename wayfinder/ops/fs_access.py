from __future__ import annotations

from abc import ABC, abstractmethod
import contextlib
from dataclasses import dataclass
from datetime import datetime
import logging
import os
from pathlib import Path
import shutil
import stat
import sys

from PySide6.QtCore import QProcess

from wayfinder.ops.trash_utils import parse_trash_info, reserve_trash_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Metadata:
    is_dir: bool
    size: int
    modified: datetime
    created: datetime
    hidden: bool = False


class FileSystemAccess(ABC):
    """Operations the core needs from the host file system."""

    @abstractmethod
    def is_readable(self, location: Path) -> bool:
        raise NotImplementedError

    @abstractmethod
    def list_children(self, location: Path, include_hidden: bool = True) -> list[Path]:
        raise NotImplementedError

    @abstractmethod
    def read_metadata(self, location: Path) -> Metadata:
        raise NotImplementedError

    @abstractmethod
    def copy(self, source: Path, destination: Path) -> None:
        raise NotImplementedError

    @abstractmethod
    def move(self, source: Path, destination: Path) -> None:
        raise NotImplementedError

    @abstractmethod
    def create_directory(self, location: Path) -> None:
        raise NotImplementedError

    @abstractmethod
    def trash(self, location: Path) -> Path:
        raise NotImplementedError

    @abstractmethod
    def restore(self, trashed: Path) -> Path:
        raise NotImplementedError

    @abstractmethod
    def file_exists(self, location: Path) -> bool:
        raise NotImplementedError

    def read_prefix(self, location: Path, limit: int) -> bytes:
        with location.open("rb") as handle:
            return handle.read(limit)

    def open_external(self, location: Path) -> bool:
        return False


class LocalFileSystem(FileSystemAccess):
    def __init__(self, trash_dir: Path | None = None, open_backend: str = "auto") -> None:
        self._trash_dir = trash_dir or Path.home() / ".local/share/Trash"
        self._open_backend = open_backend

    @property
    def trash_dir(self) -> Path:
        return self._trash_dir

    def is_readable(self, location: Path) -> bool:
        return os.access(location, os.R_OK)

    def list_children(self, location: Path, include_hidden: bool = True) -> list[Path]:
        children: list[Path] = []
        with os.scandir(location) as scanner:
            for item in scanner:
                if not include_hidden and item.name.startswith("."):
                    continue
                children.append(Path(item.path))
        return children

    def read_metadata(self, location: Path) -> Metadata:
        info = location.stat()
        flags = getattr(info, "st_flags", 0)
        hidden = location.name.startswith(".") or bool(flags & getattr(stat, "UF_HIDDEN", 0))
        created = getattr(info, "st_birthtime", info.st_ctime)
        is_dir = stat.S_ISDIR(info.st_mode)
        return Metadata(
            is_dir=is_dir,
            size=0 if is_dir else info.st_size,
            modified=datetime.fromtimestamp(info.st_mtime),
            created=datetime.fromtimestamp(created),
            hidden=hidden,
        )

    def copy(self, source: Path, destination: Path) -> None:
        if source.is_symlink():
            shutil.copy2(source, destination, follow_symlinks=False)
        elif source.is_dir():
            self._copy_dir(source, destination)
        else:
            self._copy_file(source, destination)

    def move(self, source: Path, destination: Path) -> None:
        """Move ``source`` to ``destination``; raises ``FileExistsError`` instead of replacing it."""
        if not self._same_filesystem(source, destination):
            self.copy(source, destination)
            self._remove(source)
            return
        if source.is_dir() and not source.is_symlink():
            destination.mkdir()
            try:
                source.rename(destination)
            except OSError:
                with contextlib.suppress(OSError):
                    destination.rmdir()
                raise
            return
        if source.is_symlink():
            self.copy(source, destination)
        else:
            try:
                os.link(source, destination)
            except FileExistsError:
                raise
            except OSError:
                # volume without hard links
                self._copy_file(source, destination)
        source.unlink()

    def create_directory(self, location: Path) -> None:
        location.mkdir()

    def trash(self, location: Path) -> Path:
        info_dir = self._trash_dir / "info"
        (self._trash_dir / "files").mkdir(parents=True, exist_ok=True)
        info_dir.mkdir(parents=True, exist_ok=True)
        name = reserve_trash_name(self._trash_dir, location.absolute())
        target = self._trash_dir / "files" / name
        try:
            self.move(location, target)
        except OSError:
            (info_dir / f"{name}.trashinfo").unlink(missing_ok=True)
            raise
        return target

    def restore(self, trashed: Path) -> Path:
        info_path = self._trash_dir / "info" / f"{trashed.name}.trashinfo"
        info = parse_trash_info(info_path)
        if info is None:
            raise FileNotFoundError(2, "No trash metadata", str(trashed))
        if os.path.lexists(info.original_path):
            raise FileExistsError(17, "File exists", str(info.original_path))
        info.original_path.parent.mkdir(parents=True, exist_ok=True)
        self.move(trashed, info.original_path)
        info_path.unlink(missing_ok=True)
        return info.original_path

    def file_exists(self, location: Path) -> bool:
        return os.path.lexists(location)

    def open_external(self, location: Path) -> bool:
        for command, args in self._open_candidates(str(location)):
            if shutil.which(command) and QProcess.startDetached(command, args):
                return True
        logger.warning("No opener available for %s", location)
        return False

    def _open_candidates(self, path: str) -> list[tuple[str, list[str]]]:
        if sys.platform == "darwin":
            return [("open", [path])]
        kde = [("kioclient6", ["exec", path]), ("kde-open5", [path])]
        gio = [("gio", ["open", path])]
        xdg = [("xdg-open", [path])]
        if self._open_backend == "kde":
            return kde + gio + xdg
        if self._open_backend == "gio":
            return gio + kde + xdg
        return xdg + gio + kde

    def _copy_dir(self, source: Path, destination: Path) -> None:
        destination.mkdir(parents=True)
        for root, dirnames, filenames in os.walk(source):
            rel = Path(root).relative_to(source)
            dest_root = destination / rel
            for name in dirnames:
                src_dir = Path(root) / name
                if src_dir.is_symlink():
                    shutil.copy2(src_dir, dest_root / name, follow_symlinks=False)
                else:
                    (dest_root / name).mkdir(exist_ok=True)
            for name in filenames:
                self._copy_file(Path(root) / name, dest_root / name)
        shutil.copystat(source, destination, follow_symlinks=False)

    @staticmethod
    def _copy_file(source: Path, destination: Path) -> None:
        if source.is_symlink():
            shutil.copy2(source, destination, follow_symlinks=False)
            return
        buffer_size = 1024 * 1024
        with source.open("rb") as src, destination.open("xb") as dst:
            while True:
                chunk = src.read(buffer_size)
                if not chunk:
                    break
                dst.write(chunk)
        shutil.copystat(source, destination, follow_symlinks=False)

    @staticmethod
    def _same_filesystem(source: Path, destination: Path) -> bool:
        try:
            return source.stat().st_dev == destination.parent.stat().st_dev
        except OSError:
            return False

    @staticmethod
    def _remove(path: Path) -> None:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()
