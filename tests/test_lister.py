from pathlib import Path

import pytest

pytest.importorskip("PySide6")

from wayfinder.errors import ErrorKind, NotFoundError, OperationError, PermissionDeniedError  # noqa: E402
from wayfinder.ops.fs_access import LocalFileSystem  # noqa: E402
from wayfinder.ops.lister import DirectoryLister, ListingWorker  # noqa: E402


@pytest.fixture
def folder(tmp_path):
    (tmp_path / "docs").mkdir()
    (tmp_path / "notes.txt").write_text("hello", encoding="utf-8")
    (tmp_path / ".profile").write_text("x", encoding="utf-8")
    return tmp_path


def _names(entries):
    return sorted(entry.name for entry in entries)


class TestLocalListing:
    def test_lists_visible_children(self, folder):
        entries = DirectoryLister(LocalFileSystem()).list(folder)

        assert _names(entries) == ["docs", "notes.txt"]
        by_name = {entry.name: entry for entry in entries}
        assert by_name["docs"].is_dir
        assert by_name["docs"].size == 0
        assert by_name["notes.txt"].size == 5
        assert by_name["notes.txt"].extension == "txt"

    def test_hidden_children_on_request(self, folder):
        entries = DirectoryLister(LocalFileSystem()).list(folder, include_hidden=True)

        assert _names(entries) == [".profile", "docs", "notes.txt"]
        assert [e.hidden for e in entries if e.name == ".profile"] == [True]

    def test_missing_folder(self, tmp_path):
        with pytest.raises(NotFoundError) as excinfo:
            DirectoryLister(LocalFileSystem()).list(tmp_path / "gone")

        assert str(excinfo.value) == "Folder not found or has been moved."
        assert excinfo.value.kind is ErrorKind.NOT_FOUND

    def test_every_listing_mints_new_tokens(self, folder):
        lister = DirectoryLister(LocalFileSystem())

        first = {entry.token for entry in lister.list(folder)}
        second = {entry.token for entry in lister.list(folder)}

        assert first.isdisjoint(second)


class TestListingFailures:
    def test_unreadable_folder(self, fake_fs):
        location = fake_fs.add_dir("/private")
        fake_fs.unreadable.add(location)

        with pytest.raises(PermissionDeniedError) as excinfo:
            DirectoryLister(fake_fs).list(location)

        assert str(excinfo.value) == "Permission denied. Cannot read contents of 'private'"

    def test_children_with_unreadable_metadata_are_skipped(self, fake_fs):
        fake_fs.add_file("/data/ok.txt")
        broken = fake_fs.add_file("/data/broken.txt")
        fake_fs.broken_metadata.add(broken)

        entries = DirectoryLister(fake_fs).list(Path("/data"))

        assert _names(entries) == ["ok.txt"]

    def test_other_os_errors_become_operation_errors(self, fake_fs):
        location = fake_fs.add_dir("/flaky")

        def explode(path, include_hidden=True):
            raise OSError(5, "Input/output error")

        fake_fs.list_children = explode

        with pytest.raises(OperationError) as excinfo:
            DirectoryLister(fake_fs).list(location)

        assert str(excinfo.value) == "Error: Input/output error"


class TestListingWorker:
    def test_worker_reports_entries(self, fake_fs):
        fake_fs.add_file("/data/a.txt")
        worker = ListingWorker(DirectoryLister(fake_fs), 7, Path("/data"), False)
        loaded = []
        worker.signals.loaded.connect(lambda ticket, location, entries: loaded.append((ticket, location, entries)))

        worker.run()

        assert len(loaded) == 1
        ticket, location, entries = loaded[0]
        assert (ticket, location) == (7, Path("/data"))
        assert _names(entries) == ["a.txt"]

    def test_worker_reports_failures(self, fake_fs):
        worker = ListingWorker(DirectoryLister(fake_fs), 3, Path("/nowhere"), False)
        failed = []
        worker.signals.failed.connect(lambda ticket, location, error: failed.append(error))

        worker.run()

        assert len(failed) == 1
        assert isinstance(failed[0], NotFoundError)
