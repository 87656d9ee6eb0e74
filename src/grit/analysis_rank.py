from __future__ import annotations

from .errors import InvalidSortField
from .models import AuthorStats, FameReport, FameRow, FameTotals

SORT_FIELDS = ("commit", "loc", "files")
DEFAULT_SORT = "commit"


def validate_sort(sort: str | None) -> str:
    s = (sort or DEFAULT_SORT).strip().lower()
    if s not in SORT_FIELDS:
        raise InvalidSortField(f"sort field must be one of {', '.join(SORT_FIELDS)}, got {sort!r}")
    return s


def pct(value: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return round(100.0 * value / total, 1)


def _sort_key(sort: str):
    if sort == "loc":
        return lambda r: (-r.loc, r.author)
    if sort == "files":
        return lambda r: (-r.files, r.author)
    return lambda r: (-r.commits, r.author)


def rank_authors(authors: dict[str, AuthorStats], totals: FameTotals, sort: str | None = DEFAULT_SORT) -> FameReport:
    field = validate_sort(sort)
    rows = [
        FameRow(
            author=key,
            files=len(st.files),
            commits=st.commits,
            loc=st.loc,
            lines_added=st.lines_added,
            lines_removed=st.lines_removed,
            files_pct=pct(len(st.files), totals.files),
            commits_pct=pct(st.commits, totals.commits),
            loc_pct=pct(st.loc, totals.loc),
        )
        for key, st in authors.items()
    ]
    rows.sort(key=_sort_key(field))
    return FameReport(rows=tuple(rows), totals=totals)
