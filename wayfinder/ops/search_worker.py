from __future__ import annotations

from dataclasses import dataclass
import logging
import mimetypes
from pathlib import Path
import threading
from typing import Callable

from PySide6.QtCore import QObject, QRunnable, Signal

from wayfinder.models import Entry, SearchQuery
from wayfinder.ops.fs_access import FileSystemAccess
from wayfinder.ops.lister import make_entry
from wayfinder.ops.matching import Candidate, compile_pattern, content_matches, name_matches
from wayfinder.utils.lru import LRUCache

logger = logging.getLogger(__name__)

BINARY_EXTENSIONS = {
    "exe", "dll", "so", "dylib", "pyc", "o", "obj", "bin", "dat", "db", "sqlite",
    "jpg", "jpeg", "png", "gif", "bmp", "ico", "tiff", "webp", "heic",
    "mp3", "wav", "aac", "flac", "ogg", "mp4", "mov", "avi", "mkv",
    "zip", "rar", "7z", "tar", "gz", "bz2", "xz", "dmg", "iso",
    "pdf", "doc", "docx", "xls", "xlsx", "ppt", "pptx",
}

TEXT_EXTENSIONS = {
    "txt", "md", "rst", "py", "js", "ts", "html", "css", "json", "xml", "yml", "yaml",
    "toml", "ini", "cfg", "conf", "log", "csv", "c", "h", "cpp", "hpp", "java", "go",
    "rs", "swift", "rb", "php", "pl", "sh", "bat", "ps1", "sql",
}


@dataclass(frozen=True)
class ScanLimits:
    max_processed: int = 10_000
    max_matches: int = 500


class SearchSignals(QObject):
    rootFinished = Signal(int, object, object)


class ContentReader:
    def __init__(self, fs: FileSystemAccess, cache: LRUCache | None = None, limit: int = 1024 * 1024) -> None:
        self._fs = fs
        self._cache = cache
        self._limit = limit

    def read(self, entry: Entry) -> str | None:
        if entry.is_dir or not is_text_like(entry):
            return None
        key = (entry.path, entry.size, entry.modified)
        if self._cache is not None:
            cached = self._cache.get(key)
            if cached is not None:
                return cached
        try:
            raw = self._fs.read_prefix(entry.path, self._limit)
        except OSError as exc:
            logger.debug("Skipping unreadable content %s: %s", entry.path, exc)
            return None
        if b"\x00" in raw[:1024]:
            return None
        text = raw.decode("utf-8", errors="ignore")
        if self._cache is not None:
            self._cache.put(key, text)
        return text


def is_text_like(entry: Entry) -> bool:
    ext = entry.extension.lower()
    if ext in BINARY_EXTENSIONS:
        return False
    if not ext or ext in TEXT_EXTENSIONS:
        return True
    mime_type, _ = mimetypes.guess_type(entry.name)
    return mime_type is None or mime_type.startswith("text/")


def scan_root(
    fs: FileSystemAccess,
    root: Path,
    query: SearchQuery,
    recursive: bool,
    limits: ScanLimits,
    is_cancelled: Callable[[], bool] = lambda: False,
    reader: ContentReader | None = None,
) -> list[Candidate]:
    """Walk ``root`` collecting candidates until a cap is hit or the scan is cancelled."""
    pattern = compile_pattern(query)
    candidates: list[Candidate] = []
    processed = 0
    pending = [root]
    while pending:
        if is_cancelled():
            break
        directory = pending.pop()
        try:
            children = fs.list_children(directory, include_hidden=query.include_hidden)
        except OSError as exc:
            logger.debug("Skipping unreadable directory %s: %s", directory, exc)
            continue
        for child in children:
            if is_cancelled() or processed >= limits.max_processed:
                return candidates
            processed += 1
            try:
                entry = make_entry(fs, child)
            except OSError as exc:
                logger.debug("Skipping unreadable entry %s: %s", child, exc)
                continue
            if entry.hidden and not query.include_hidden:
                continue
            if recursive and entry.is_dir and not _is_link(child):
                pending.append(child)
            matched = name_matches(entry, query.text)
            content_hit = False
            if query.content and reader is not None:
                content = reader.read(entry)
                if content is not None:
                    content_hit = content_matches(content, query.text, pattern)
            if not (matched or content_hit):
                continue
            candidates.append(Candidate(entry=entry, content_matched=content_hit))
            if len(candidates) >= limits.max_matches:
                return candidates
    return candidates


def _is_link(path: Path) -> bool:
    try:
        return path.is_symlink()
    except OSError:
        return False


class SearchWorker(QRunnable):
    def __init__(
        self,
        fs: FileSystemAccess,
        generation: int,
        root: Path,
        query: SearchQuery,
        recursive: bool,
        limits: ScanLimits,
        reader: ContentReader | None = None,
    ) -> None:
        super().__init__()
        self.signals = SearchSignals()
        self._fs = fs
        self._generation = generation
        self._root = root
        self._query = query
        self._recursive = recursive
        self._limits = limits
        self._reader = reader
        self._cancel = threading.Event()

    @property
    def root(self) -> Path:
        return self._root

    def cancel(self) -> None:
        self._cancel.set()

    def is_cancelled(self) -> bool:
        return self._cancel.is_set()

    def run(self) -> None:
        candidates = scan_root(
            self._fs,
            self._root,
            self._query,
            self._recursive,
            self._limits,
            is_cancelled=self.is_cancelled,
            reader=self._reader,
        )
        if self.is_cancelled():
            logger.debug("Search of %s cancelled", self._root)
        self.signals.rootFinished.emit(self._generation, self._root, candidates)
