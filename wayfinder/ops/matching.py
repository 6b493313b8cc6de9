from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Iterable

from wayfinder.models import Entry, MatchType, SearchQuery, SearchResult, SizeFilter
from wayfinder.nav.sorting import name_key

SIZE_EQ_TOLERANCE = 1024
MIN_SCORE = 0.1
CONTENT_SCORE = 0.5
FUZZY_MAX_QUERY = 8
FUZZY_MAX_NAME = 50


@dataclass(frozen=True)
class Candidate:
    entry: Entry
    content_matched: bool = False


def compile_pattern(query: SearchQuery) -> re.Pattern[str] | None:
    if not query.regex:
        return None
    try:
        return re.compile(query.text, re.IGNORECASE)
    except re.error:
        return None


def is_subsequence(needle: str, haystack: str) -> bool:
    it = iter(haystack)
    return all(char in it for char in needle)


def name_matches(entry: Entry, text: str) -> bool:
    needle = text.lower()
    name = entry.name.lower()
    if needle in name or needle in entry.stem.lower() or needle in entry.extension.lower():
        return True
    return len(needle) > 2 and is_subsequence(needle, name)


def content_matches(content: str, text: str, pattern: re.Pattern[str] | None) -> bool:
    if pattern is not None:
        return pattern.search(content) is not None
    return text.lower() in content.lower()


def score_name(entry: Entry, text: str) -> tuple[float, MatchType]:
    query = text.lower()
    name = entry.name.lower()
    stem = entry.stem.lower()
    ext = entry.extension.lower()
    if name == query:
        return 1.0, MatchType.EXACT
    if stem == query:
        return 0.95, MatchType.EXACT
    if stem.startswith(query):
        return 0.85, MatchType.PREFIX
    if name.startswith(query):
        return 0.9, MatchType.PREFIX
    position = name.find(query)
    if position >= 0:
        scale = max(0.3, 1.0 - position / len(name))
        return 0.8 * scale, MatchType.CONTAINS
    if query in stem:
        return 0.75, MatchType.CONTAINS
    if ext and ext == query:
        return 0.7, MatchType.EXTENSION
    if len(query) <= FUZZY_MAX_QUERY and len(name) <= FUZZY_MAX_NAME and is_subsequence(query, name):
        return 0.4 * (len(query) / len(name)), MatchType.FUZZY
    return 0.0, MatchType.FUZZY


def score_candidate(candidate: Candidate, text: str) -> tuple[float, MatchType]:
    name_score, match_type = score_name(candidate.entry, text)
    content_score = CONTENT_SCORE if candidate.content_matched else 0.0
    if content_score > name_score:
        return content_score, MatchType.FUZZY
    return name_score, match_type


def _compare(left: float, op: str, right: float) -> bool:
    if op in {"eq", "="}:
        return abs(left - right) <= SIZE_EQ_TOLERANCE
    if op in {">", "gt"}:
        return left > right
    if op in {">=", "gte"}:
        return left >= right
    if op in {"<", "lt"}:
        return left < right
    if op in {"<=", "lte"}:
        return left <= right
    return False


def passes_filters(entry: Entry, query: SearchQuery) -> bool:
    if query.extension:
        wanted = query.extension.lower().lstrip(".")
        if entry.extension.lower() != wanted:
            return False
    if query.size is not None and not _passes_size(entry, query.size):
        return False
    if query.modified_after is not None and entry.modified < query.modified_after:
        return False
    if query.modified_before is not None and entry.modified > query.modified_before:
        return False
    return True


def _passes_size(entry: Entry, size: SizeFilter) -> bool:
    return _compare(entry.size, size.op, size.bytes)


def rank(candidates: Iterable[Candidate], query: SearchQuery, limit: int = 200) -> list[SearchResult]:
    """Deduplicate, score, filter and order candidates, then truncate to ``limit``."""
    seen: set = set()
    results: list[SearchResult] = []
    for candidate in candidates:
        location = candidate.entry.path
        if location in seen:
            continue
        seen.add(location)
        score, match_type = score_candidate(candidate, query.text)
        if score <= MIN_SCORE:
            continue
        if not passes_filters(candidate.entry, query):
            continue
        results.append(SearchResult(entry=candidate.entry, score=score, match_type=match_type))
    results.sort(key=lambda result: (-result.match_type.value, -result.score, name_key(result.entry.name)))
    return results[:limit]
