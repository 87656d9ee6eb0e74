from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import TypeVar

from .analysis_aggregate import (
    DateCounts,
    EffortPartial,
    FileDateCounts,
    date_partial_for_commit,
    effort_partial_for_commit,
    fame_partial_for_commit,
    fame_totals_loc,
    file_date_partial_for_commit,
    merge_date_counts_into,
    merge_effort_into,
    merge_fame_into,
    merge_file_date_counts_into,
    ownership_partial,
)
from .analysis_paths import PathFilter, normalize_path
from .analysis_periods import bucket_days, bucket_file_days, check_bounds, resolve_range
from .analysis_rank import rank_authors, validate_sort
from .analysis_repo import CommitSource, commit_participates, extract_changes, extract_ownership
from .config import RunConfig
from .errors import ImageRequiresFile, InvalidThreadCount
from .identity import AuthorResolver
from .models import CommitRecord, DatePoint, EffortRow, FamePartial, FameReport, FameTotals, FileChange, FileDatePoint

logger = logging.getLogger(__name__)

PROGRESS_EVERY = 100

U = TypeVar("U")
P = TypeVar("P")
A = TypeVar("A")


def check_threads(threads: int) -> int:
    if int(threads) < 1:
        raise InvalidThreadCount(f"thread count must be >= 1, got {threads}")
    return int(threads)


def run_units(
    units: Iterable[U],
    extract: Callable[[U], P],
    merge: Callable[[A, P], None],
    initial: A,
    *,
    threads: int,
    label: str = "units",
) -> A:
    """
    Run `extract` over every unit on a pool of `threads` workers and fold each
    partial into `initial` on the calling thread as it completes.

    The first failing unit cancels everything not yet started; units already
    running finish before the error is re-raised.
    """
    workers = check_threads(threads)
    items = list(units)
    total = len(items)
    if not items:
        return initial

    t0 = time.monotonic()
    with ThreadPoolExecutor(max_workers=workers) as ex:
        futs = [ex.submit(extract, u) for u in items]
        try:
            for i, fut in enumerate(as_completed(futs), start=1):
                merge(initial, fut.result())
                if i % PROGRESS_EVERY == 0 or i == total:
                    logger.info("%s: processed %d/%d", label, i, total)
        except Exception:
            ex.shutdown(wait=True, cancel_futures=True)
            raise
    logger.debug("%s: %d units on %d threads in %.3fs", label, total, workers, time.monotonic() - t0)
    return initial


def check_image_target(config: RunConfig) -> None:
    if not config.image and not config.html:
        return
    if not config.image:
        raise ImageRequiresFile("--html needs --image")
    if config.output_file is None:
        raise ImageRequiresFile("--image needs --file to name the .svg output")
    if config.output_file.suffix.lower() != ".svg":
        raise ImageRequiresFile("--image output file must end with .svg", {"file": str(config.output_file)})


def prepare(config: RunConfig) -> PathFilter:
    """Validate everything that can be checked before touching the repository."""
    check_threads(config.threads)
    validate_sort(config.sort)
    path_filter = PathFilter.parse(config.include, config.exclude)
    check_bounds(config.start_date, config.end_date)
    check_image_target(config)
    return path_filter


def select_commits(
    source: CommitSource,
    ref: str,
    config: RunConfig,
    path_filter: PathFilter,
    *,
    in_file: str | None = None,
    authors: frozenset[str] = frozenset(),
) -> list[CommitRecord]:
    commits = source.list_commits(ref, config.start_date, config.end_date)
    selected: list[CommitRecord] = []
    for c in commits:
        if not commit_participates(c, path_filter):
            continue
        if in_file is not None and in_file not in {normalize_path(p) for p in c.paths}:
            continue
        if authors and c.author_key not in authors:
            continue
        selected.append(c)
    logger.info("%d of %d commits pass the filters", len(selected), len(commits))
    return selected


def _resolver(config: RunConfig) -> AuthorResolver:
    return AuthorResolver.from_aliases(config.aliases)


def run_fame(source: CommitSource, config: RunConfig) -> FameReport:
    path_filter = prepare(config)
    sort = validate_sort(config.sort)
    resolver = _resolver(config)
    ref = source.resolve_ref(config.ref)
    commits = select_commits(source, ref, config, path_filter)

    acc = FamePartial()

    def commit_unit(c: CommitRecord) -> FamePartial:
        return fame_partial_for_commit(c, extract_changes(source, c, path_filter, line_stats=True))

    run_units(commits, commit_unit, merge_fame_into, acc, threads=config.threads, label="fame commits")

    # Current ownership: blame each touched text file that still exists at the ref.
    tree = source.tree_files(ref, sorted(acc.files)) if acc.files else {}
    blame_paths = sorted(p for p in acc.files if p in tree and not tree[p])

    def blame_unit(path: str) -> FamePartial:
        return ownership_partial(extract_ownership(source, path, ref, resolver))

    run_units(blame_paths, blame_unit, merge_fame_into, acc, threads=config.threads, label="fame blame")

    totals = FameTotals(files=len(acc.files), commits=acc.commits, loc=fame_totals_loc(acc))
    return rank_authors(acc.authors, totals, sort)


def run_bydate(source: CommitSource, config: RunConfig) -> tuple[DatePoint, ...]:
    path_filter = prepare(config)
    ref = source.resolve_ref(config.ref)
    commits = select_commits(source, ref, config, path_filter)

    counts: DateCounts = {}
    run_units(commits, date_partial_for_commit, merge_date_counts_into, counts, threads=config.threads, label="bydate")

    date_range = resolve_range(config.start_date, config.end_date, counts.keys())
    return tuple(bucket_days(counts, date_range, gap_fill=config.gap_fill, ignore_weekends=config.ignore_weekends))


def run_byfile(source: CommitSource, config: RunConfig) -> tuple[FileDatePoint, ...]:
    path_filter = prepare(config)
    in_file = normalize_path(config.in_file) if config.in_file else None
    authors = frozenset(config.restrict_authors)
    ref = source.resolve_ref(config.ref)
    commits = select_commits(source, ref, config, path_filter, in_file=in_file, authors=authors)

    def unit(c: CommitRecord) -> FileDateCounts:
        changes: list[FileChange] = extract_changes(source, c, path_filter, line_stats=False)
        if in_file is not None:
            changes = [ch for ch in changes if ch.path == in_file]
        return file_date_partial_for_commit(c, changes)

    counts: FileDateCounts = {}
    run_units(commits, unit, merge_file_date_counts_into, counts, threads=config.threads, label="byfile")

    days_present = {day for days in counts.values() for day in days}
    date_range = resolve_range(config.start_date, config.end_date, days_present)
    return tuple(bucket_file_days(counts, date_range, gap_fill=config.gap_fill, ignore_weekends=config.ignore_weekends))


def run_effort(source: CommitSource, config: RunConfig) -> tuple[EffortRow, ...]:
    path_filter = prepare(config)
    ref = source.resolve_ref(config.ref)
    commits = select_commits(source, ref, config, path_filter)

    def unit(c: CommitRecord) -> EffortPartial:
        return effort_partial_for_commit(c, extract_changes(source, c, path_filter, line_stats=False))

    acc: EffortPartial = {}
    run_units(commits, unit, merge_effort_into, acc, threads=config.threads, label="effort")

    return tuple(EffortRow(path=path, commits=acc[path].commits, active_days=acc[path].active_days) for path in sorted(acc))
