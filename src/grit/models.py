from __future__ import annotations

import dataclasses
import datetime as dt


def utc_day(timestamp: dt.datetime) -> dt.date:
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=dt.timezone.utc)
    return timestamp.astimezone(dt.timezone.utc).date()


@dataclasses.dataclass(frozen=True)
class Author:
    name: str = ""
    email: str = ""


@dataclasses.dataclass(frozen=True)
class CommitRecord:
    sha: str
    author: Author
    author_key: str
    timestamp: dt.datetime
    paths: tuple[str, ...] = ()

    @property
    def day(self) -> dt.date:
        return utc_day(self.timestamp)


@dataclasses.dataclass(frozen=True)
class FileChange:
    path: str
    lines_added: int = 0
    lines_removed: int = 0
    binary: bool = False


@dataclasses.dataclass
class AuthorStats:
    files: set[str] = dataclasses.field(default_factory=set)
    commits: int = 0
    loc: int = 0
    lines_added: int = 0
    lines_removed: int = 0

    def copy(self) -> AuthorStats:
        return AuthorStats(
            files=set(self.files),
            commits=self.commits,
            loc=self.loc,
            lines_added=self.lines_added,
            lines_removed=self.lines_removed,
        )


@dataclasses.dataclass
class FamePartial:
    authors: dict[str, AuthorStats] = dataclasses.field(default_factory=dict)
    files: set[str] = dataclasses.field(default_factory=set)
    commits: int = 0


@dataclasses.dataclass
class FileEffort:
    commits: int = 0
    dates: set[dt.date] = dataclasses.field(default_factory=set)

    @property
    def active_days(self) -> int:
        return len(self.dates)


@dataclasses.dataclass(frozen=True)
class FameRow:
    author: str
    files: int
    commits: int
    loc: int
    lines_added: int
    lines_removed: int
    files_pct: float
    commits_pct: float
    loc_pct: float


@dataclasses.dataclass(frozen=True)
class FameTotals:
    files: int = 0
    commits: int = 0
    loc: int = 0


@dataclasses.dataclass(frozen=True)
class FameReport:
    rows: tuple[FameRow, ...]
    totals: FameTotals


@dataclasses.dataclass(frozen=True)
class DatePoint:
    date: dt.date
    count: int

    @property
    def date_iso(self) -> str:
        return self.date.isoformat()


@dataclasses.dataclass(frozen=True)
class FileDatePoint:
    path: str
    date: dt.date
    count: int

    @property
    def date_iso(self) -> str:
        return self.date.isoformat()


@dataclasses.dataclass(frozen=True)
class EffortRow:
    path: str
    commits: int
    active_days: int
