from __future__ import annotations

import datetime as dt
import logging
import time
from typing import Protocol

from .analysis_paths import PathFilter, normalize_path
from .identity import AuthorResolver
from .models import Author, CommitRecord, FileChange

logger = logging.getLogger(__name__)


class CommitSource(Protocol):
    def resolve_ref(self, ref: str) -> str: ...

    def list_commits(self, ref: str, since: dt.date | None = None, until: dt.date | None = None) -> list[CommitRecord]: ...

    def diff_stats(self, commit: CommitRecord) -> list[FileChange]: ...

    def blame(self, path: str, ref: str) -> list[tuple[Author, int]]: ...

    def tree_files(self, ref: str, paths: list[str] | None = None) -> dict[str, bool]: ...


def commit_participates(commit: CommitRecord, path_filter: PathFilter) -> bool:
    if path_filter.is_unrestricted:
        return True
    return any(path_filter.allows(p) for p in commit.paths)


def extract_changes(
    source: CommitSource,
    commit: CommitRecord,
    path_filter: PathFilter,
    *,
    line_stats: bool,
) -> list[FileChange]:
    """
    FileChanges for one commit, restricted to paths the filter allows.

    Line counts need one `diff_stats` call; without them the touched paths on
    the record are enough.
    """
    if not line_stats:
        return [FileChange(path=p) for p in path_filter.filter_paths(list(commit.paths))]

    t0 = time.monotonic()
    changes: list[FileChange] = []
    for ch in source.diff_stats(commit):
        p = normalize_path(ch.path)
        if not path_filter.allows(p):
            continue
        if ch.binary:
            changes.append(FileChange(path=p, binary=True))
        else:
            changes.append(FileChange(path=p, lines_added=ch.lines_added, lines_removed=ch.lines_removed))
    logger.debug("diff_stats %s: %d files in %.3fs", commit.sha[:12], len(changes), time.monotonic() - t0)
    return changes


def extract_ownership(source: CommitSource, path: str, ref: str, resolver: AuthorResolver) -> dict[str, int]:
    t0 = time.monotonic()
    ownership: dict[str, int] = {}
    for author, lines in source.blame(path, ref):
        if lines <= 0:
            continue
        key = resolver.key(author)
        ownership[key] = ownership.get(key, 0) + int(lines)
    logger.debug("blame %s: %d authors in %.3fs", path, len(ownership), time.monotonic() - t0)
    return ownership
