from __future__ import annotations

import datetime as dt

from .models import AuthorStats, CommitRecord, FamePartial, FileChange, FileEffort

DateCounts = dict[dt.date, int]
FileDateCounts = dict[str, dict[dt.date, int]]
EffortPartial = dict[str, FileEffort]


# Single-writer merges. Only the coordinating thread calls these, always on
# an accumulator it owns; `src` is never modified.


def merge_author_stats_into(dst: AuthorStats, src: AuthorStats) -> None:
    dst.files |= src.files
    dst.commits += src.commits
    dst.loc += src.loc
    dst.lines_added += src.lines_added
    dst.lines_removed += src.lines_removed


def merge_authors_into(dst: dict[str, AuthorStats], src: dict[str, AuthorStats]) -> None:
    for key, st in src.items():
        cur = dst.get(key)
        if cur is None:
            dst[key] = st.copy()
            continue
        merge_author_stats_into(cur, st)


def merge_fame_into(dst: FamePartial, src: FamePartial) -> None:
    merge_authors_into(dst.authors, src.authors)
    dst.files |= src.files
    dst.commits += src.commits


def merge_date_counts_into(dst: DateCounts, src: DateCounts) -> None:
    for day, n in src.items():
        dst[day] = dst.get(day, 0) + int(n)


def merge_file_date_counts_into(dst: FileDateCounts, src: FileDateCounts) -> None:
    for path, days in src.items():
        cur = dst.get(path)
        if cur is None:
            dst[path] = dict(days)
            continue
        merge_date_counts_into(cur, days)


def merge_effort_into(dst: EffortPartial, src: EffortPartial) -> None:
    for path, eff in src.items():
        cur = dst.get(path)
        if cur is None:
            dst[path] = FileEffort(commits=eff.commits, dates=set(eff.dates))
            continue
        cur.commits += eff.commits
        cur.dates |= eff.dates


# Pure combines: new objects, inputs untouched.


def combine_author_stats(a: AuthorStats, b: AuthorStats) -> AuthorStats:
    out = a.copy()
    merge_author_stats_into(out, b)
    return out


def combine_fame(a: FamePartial, b: FamePartial) -> FamePartial:
    out = FamePartial()
    merge_fame_into(out, a)
    merge_fame_into(out, b)
    return out


def combine_date_counts(a: DateCounts, b: DateCounts) -> DateCounts:
    out: DateCounts = {}
    merge_date_counts_into(out, a)
    merge_date_counts_into(out, b)
    return out


def combine_file_date_counts(a: FileDateCounts, b: FileDateCounts) -> FileDateCounts:
    out: FileDateCounts = {}
    merge_file_date_counts_into(out, a)
    merge_file_date_counts_into(out, b)
    return out


def combine_effort(a: EffortPartial, b: EffortPartial) -> EffortPartial:
    out: EffortPartial = {}
    merge_effort_into(out, a)
    merge_effort_into(out, b)
    return out


# Partial builders: one unit's extraction -> one partial.


def fame_partial_for_commit(commit: CommitRecord, changes: list[FileChange]) -> FamePartial:
    paths = {c.path for c in changes}
    st = AuthorStats(
        files=set(paths),
        commits=1,
        lines_added=sum(c.lines_added for c in changes if not c.binary),
        lines_removed=sum(c.lines_removed for c in changes if not c.binary),
    )
    return FamePartial(authors={commit.author_key: st}, files=set(paths), commits=1)


def ownership_partial(ownership: dict[str, int]) -> FamePartial:
    authors = {key: AuthorStats(loc=int(lines)) for key, lines in ownership.items() if lines > 0}
    return FamePartial(authors=authors)


def date_partial_for_commit(commit: CommitRecord) -> DateCounts:
    return {commit.day: 1}


def file_date_partial_for_commit(commit: CommitRecord, changes: list[FileChange]) -> FileDateCounts:
    day = commit.day
    return {path: {day: 1} for path in sorted({c.path for c in changes})}


def effort_partial_for_commit(commit: CommitRecord, changes: list[FileChange]) -> EffortPartial:
    day = commit.day
    return {path: FileEffort(commits=1, dates={day}) for path in sorted({c.path for c in changes})}


def fame_totals_loc(partial: FamePartial) -> int:
    return sum(st.loc for st in partial.authors.values())
