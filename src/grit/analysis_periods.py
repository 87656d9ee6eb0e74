from __future__ import annotations

import dataclasses
import datetime as dt
from collections.abc import Iterable, Iterator, Mapping

from .errors import InvalidDate, InvalidDateRange
from .models import DatePoint, FileDatePoint

SATURDAY = 5
SUNDAY = 6


@dataclasses.dataclass(frozen=True)
class DateRange:
    start: dt.date  # inclusive
    end: dt.date  # inclusive

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise InvalidDateRange(
                "start date is after end date",
                {"start": self.start.isoformat(), "end": self.end.isoformat()},
            )

    @property
    def start_iso(self) -> str:
        return self.start.isoformat()

    @property
    def end_iso(self) -> str:
        return self.end.isoformat()

    def contains(self, day: dt.date) -> bool:
        return self.start <= day <= self.end

    def days(self) -> Iterator[dt.date]:
        return iter_days(self.start, self.end)


def parse_date(value: str) -> dt.date:
    s = (value or "").strip()
    try:
        if len(s) != 10:
            raise ValueError(s)
        return dt.date.fromisoformat(s)
    except ValueError:
        raise InvalidDate(f"dates must be in the 'YYYY-MM-DD' format, got {value!r}") from None


def days_back(n: int, today: dt.date | None = None) -> dt.date:
    if n < 0:
        raise InvalidDate(f"days back must be >= 0, got {n}")
    if today is None:
        today = dt.date.today()
    return today - dt.timedelta(days=n)


def is_weekend(day: dt.date) -> bool:
    return day.weekday() in (SATURDAY, SUNDAY)


def iter_days(start: dt.date, end: dt.date) -> Iterator[dt.date]:
    cur = start
    one = dt.timedelta(days=1)
    while cur <= end:
        yield cur
        cur += one


def check_bounds(start: dt.date | None, end: dt.date | None) -> None:
    if start is not None and end is not None and start > end:
        raise InvalidDateRange(
            "start date is after end date",
            {"start": start.isoformat(), "end": end.isoformat()},
        )


def resolve_range(
    start: dt.date | None,
    end: dt.date | None,
    days_present: Iterable[dt.date],
) -> DateRange | None:
    """
    Fill missing bounds from the earliest / latest day that has a commit.
    Returns None when a bound cannot be resolved because there are no commits.
    """
    check_bounds(start, end)
    present = sorted(set(days_present))
    if start is None:
        if not present:
            return None
        start = present[0]
    if end is None:
        if not present:
            return None
        end = present[-1]
    if start > end:
        # only one bound was explicit and every commit lies on the other side
        return None
    return DateRange(start=start, end=end)


def bucket_days(
    counts: Mapping[dt.date, int],
    date_range: DateRange | None,
    *,
    gap_fill: bool = True,
    ignore_weekends: bool = False,
) -> list[DatePoint]:
    if date_range is None:
        return []
    out: list[DatePoint] = []
    for day in date_range.days():
        if ignore_weekends and is_weekend(day):
            continue
        n = int(counts.get(day, 0))
        if n > 0:
            out.append(DatePoint(date=day, count=n))
        elif gap_fill:
            out.append(DatePoint(date=day, count=0))
    return out


def bucket_file_days(
    counts: Mapping[str, Mapping[dt.date, int]],
    date_range: DateRange | None,
    *,
    gap_fill: bool = True,
    ignore_weekends: bool = False,
) -> list[FileDatePoint]:
    out: list[FileDatePoint] = []
    for path in sorted(counts):
        for p in bucket_days(counts[path], date_range, gap_fill=gap_fill, ignore_weekends=ignore_weekends):
            out.append(FileDatePoint(path=path, date=p.date, count=p.count))
    return out
