from __future__ import annotations

import argparse
import dataclasses
import datetime as dt
import json
from pathlib import Path

from .analysis_paths import split_csv
from .analysis_periods import days_back, parse_date
from .analysis_rank import DEFAULT_SORT
from .errors import GritError, InvalidThreadCount

DEFAULT_THREADS = 10
DEFAULT_CONFIG_NAME = ".grit.json"


def load_config(config_path: Path) -> dict:
    if not config_path.exists():
        return {}
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise GritError(f"invalid config file: {e}", {"path": str(config_path)}) from e
    if not isinstance(data, dict):
        raise GritError("config file must contain a JSON object", {"path": str(config_path)})
    return data


def save_config(config_path: Path, config: dict) -> None:
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(config, indent=2, sort_keys=True) + "\n", encoding="utf-8")


@dataclasses.dataclass(frozen=True)
class RunConfig:
    repo: Path = Path(".")
    ref: str = "HEAD"
    threads: int = DEFAULT_THREADS
    include: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()
    sort: str = DEFAULT_SORT
    start_date: dt.date | None = None
    end_date: dt.date | None = None
    gap_fill: bool = True
    ignore_weekends: bool = False
    include_merges: bool = False
    author_aliases: tuple[tuple[str, str], ...] = ()
    in_file: str | None = None
    restrict_authors: tuple[str, ...] = ()
    output_file: Path | None = None
    image: bool = False
    html: bool = False
    table: bool = False
    csv: bool = False

    @property
    def aliases(self) -> dict[str, str]:
        return dict(self.author_aliases)


def _pick(cli_value, config: dict, key: str, default):
    if cli_value is not None:
        return cli_value
    if key in config and config[key] is not None:
        return config[key]
    return default


def _flag(args: argparse.Namespace, config: dict, key: str) -> bool:
    if bool(getattr(args, key, False)):
        return True
    return bool(config.get(key, False))


def _threads(value) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        raise InvalidThreadCount(f"thread count must be an integer, got {value!r}") from None
    if n < 1:
        raise InvalidThreadCount(f"thread count must be >= 1, got {n}")
    return n


def _date_bound(explicit: str | None, back: int | None, today: dt.date | None) -> dt.date | None:
    if explicit:
        return parse_date(explicit)
    if back is not None:
        return days_back(int(back), today)
    return None


def resolve_run_config(args: argparse.Namespace, config: dict, *, today: dt.date | None = None) -> RunConfig:
    """Explicit CLI values win over config file values, which win over defaults."""
    aliases = config.get("author_aliases") or {}
    if not isinstance(aliases, dict):
        raise GritError("config key 'author_aliases' must be an object")
    out_file = getattr(args, "file", None)
    return RunConfig(
        repo=Path(getattr(args, "repo", None) or "."),
        ref=str(_pick(getattr(args, "ref", None), config, "ref", "HEAD")),
        threads=_threads(_pick(getattr(args, "threads", None), config, "threads", DEFAULT_THREADS)),
        include=tuple(split_csv(_pick(getattr(args, "include", None), config, "include", None))),
        exclude=tuple(split_csv(_pick(getattr(args, "exclude", None), config, "exclude", None))),
        sort=str(_pick(getattr(args, "sort", None), config, "sort", DEFAULT_SORT)),
        start_date=_date_bound(getattr(args, "start_date", None), getattr(args, "start_days_back", None), today),
        end_date=_date_bound(getattr(args, "end_date", None), getattr(args, "end_days_back", None), today),
        gap_fill=not _flag(args, config, "ignore_gap_fill"),
        ignore_weekends=_flag(args, config, "ignore_weekends"),
        include_merges=_flag(args, config, "include_merges"),
        author_aliases=tuple(sorted((str(k), str(v)) for k, v in aliases.items())),
        in_file=getattr(args, "in_file", None) or None,
        restrict_authors=tuple(split_csv(getattr(args, "restrict_author", None))),
        output_file=Path(out_file) if out_file else None,
        image=bool(getattr(args, "image", False)),
        html=bool(getattr(args, "html", False)),
        table=bool(getattr(args, "table", False)),
        csv=bool(getattr(args, "csv", False)),
    )
