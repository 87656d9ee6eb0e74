from __future__ import annotations

import dataclasses
import fnmatch
from functools import lru_cache

from .errors import InvalidGlob


def normalize_path(path: str) -> str:
    p = path.replace("\\", "/").strip()
    while p.startswith("./"):
        p = p[2:]
    return p


def split_csv(value: str | list[str] | tuple[str, ...] | None) -> list[str]:
    if value is None:
        return []
    values = [value] if isinstance(value, str) else list(value)
    out: list[str] = []
    for v in values:
        for part in str(v).split(","):
            part = part.strip()
            if part:
                out.append(part)
    return out


def validate_glob(pattern: str) -> None:
    if not pattern or not pattern.strip():
        raise InvalidGlob("empty glob pattern")
    for seg in pattern.split("/"):
        if "**" in seg and seg != "**":
            raise InvalidGlob(
                f"invalid glob {pattern!r}: '**' must be a whole path segment",
                {"segment": seg},
            )
        i = 0
        while i < len(seg):
            if seg[i] == "[":
                j = i + 1
                if j < len(seg) and seg[j] == "!":
                    j += 1
                # a leading ']' is part of the set
                if j < len(seg) and seg[j] == "]":
                    j += 1
                close = seg.find("]", j)
                if close < 0:
                    raise InvalidGlob(f"invalid glob {pattern!r}: unclosed '['", {"segment": seg})
                i = close
            i += 1


@lru_cache(maxsize=4096)
def _segments(pattern: str) -> tuple[str, ...]:
    return tuple(s for s in normalize_path(pattern).split("/") if s)


def _match_segments(pat: tuple[str, ...], parts: tuple[str, ...]) -> bool:
    if not pat:
        return not parts
    head = pat[0]
    if head == "**":
        # zero or more whole segments
        for i in range(len(parts) + 1):
            if _match_segments(pat[1:], parts[i:]):
                return True
        return False
    if not parts:
        return False
    if not fnmatch.fnmatchcase(parts[0], head):
        return False
    return _match_segments(pat[1:], parts[1:])


def glob_match(path: str, pattern: str) -> bool:
    parts = tuple(s for s in normalize_path(path).split("/") if s)
    return _match_segments(_segments(pattern), parts)


@dataclasses.dataclass(frozen=True)
class PathFilter:
    include: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        for pat in (*self.include, *self.exclude):
            validate_glob(pat)

    @classmethod
    def parse(
        cls,
        include: str | list[str] | tuple[str, ...] | None = None,
        exclude: str | list[str] | tuple[str, ...] | None = None,
    ) -> PathFilter:
        return cls(include=tuple(split_csv(include)), exclude=tuple(split_csv(exclude)))

    @property
    def is_unrestricted(self) -> bool:
        return not self.include and not self.exclude

    def allows(self, path: str) -> bool:
        p = normalize_path(path)
        if not p:
            return False
        if self.include and not any(glob_match(p, pat) for pat in self.include):
            return False
        for pat in self.exclude:
            if glob_match(p, pat):
                return False
        return True

    def filter_paths(self, paths: list[str] | tuple[str, ...]) -> list[str]:
        return [normalize_path(p) for p in paths if self.allows(p)]
