from datetime import datetime

import pytest

from wayfinder.models import SortKey
from wayfinder.nav.sorting import sort_entries


@pytest.fixture
def mixed(entry_factory):
    return [
        entry_factory("b.txt", size=10, modified=datetime(2024, 3, 1)),
        entry_factory("zeta", is_dir=True, modified=datetime(2024, 1, 1)),
        entry_factory("README.md", size=300, modified=datetime(2024, 2, 1)),
        entry_factory("a.log", size=100, modified=datetime(2024, 4, 1)),
        entry_factory("Alpha", is_dir=True, modified=datetime(2024, 5, 1)),
    ]


def _names(entries):
    return [entry.name for entry in entries]


def test_name_sort_is_case_insensitive_with_directories_first(mixed):
    ordered = sort_entries(mixed, SortKey.NAME, ascending=True)

    assert _names(ordered) == ["Alpha", "zeta", "a.log", "b.txt", "README.md"]


def test_descending_keeps_directories_first(mixed):
    ordered = sort_entries(mixed, SortKey.NAME, ascending=False)

    assert _names(ordered) == ["zeta", "Alpha", "README.md", "b.txt", "a.log"]


@pytest.mark.parametrize("key", list(SortKey))
@pytest.mark.parametrize("ascending", [True, False])
def test_every_ordering_puts_directories_first(mixed, key, ascending):
    ordered = sort_entries(mixed, key, ascending)
    flags = [entry.is_dir for entry in ordered]

    assert flags == sorted(flags, reverse=True)


def test_size_sort(mixed):
    ordered = sort_entries(mixed, SortKey.SIZE, ascending=True)

    assert _names(ordered)[2:] == ["b.txt", "a.log", "README.md"]


def test_modified_sort_descending(mixed):
    ordered = sort_entries(mixed, SortKey.MODIFIED, ascending=False)

    assert _names(ordered) == ["Alpha", "zeta", "a.log", "b.txt", "README.md"]


def test_sort_is_idempotent(mixed):
    once = sort_entries(mixed, SortKey.SIZE, ascending=False)
    twice = sort_entries(once, SortKey.SIZE, ascending=False)

    assert once == twice


def test_equal_keys_keep_input_order_in_both_directions(entry_factory):
    entries = [entry_factory(name, size=5) for name in ("c.txt", "a.txt", "b.txt")]

    assert _names(sort_entries(entries, SortKey.SIZE, True)) == ["c.txt", "a.txt", "b.txt"]
    assert _names(sort_entries(entries, SortKey.SIZE, False)) == ["c.txt", "a.txt", "b.txt"]


def test_type_sort_groups_by_extension(entry_factory):
    entries = [entry_factory(name) for name in ("x.txt", "y.md", "z.txt", "Makefile")]

    ordered = sort_entries(entries, SortKey.TYPE, ascending=True)

    assert _names(ordered) == ["Makefile", "y.md", "x.txt", "z.txt"]
