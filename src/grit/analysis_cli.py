from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .analysis_rank import SORT_FIELDS
from .analysis_render import render_effort_table, render_fame_table
from .analysis_run import run_bydate, run_byfile, run_effort, run_fame
from .analysis_write import bydate_csv, bydate_svg, byfile_csv, byfile_svg, effort_csv, emit, emit_svg, fame_csv
from .config import DEFAULT_CONFIG_NAME, DEFAULT_THREADS, RunConfig, load_config, resolve_run_config
from .git import GitDataSource
from .identity import AuthorResolver
from .logs import LOG_LEVELS

logger = logging.getLogger(__name__)

COMMANDS = ("fame", "bydate", "byfile", "effort")


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("--repo", type=Path, default=Path("."), help="Path to the git repository.")
    p.add_argument("--ref", type=str, default=None, help="Ref to analyze (default: HEAD).")
    p.add_argument("--config", type=Path, default=None, help=f"JSON config file (default: <repo>/{DEFAULT_CONFIG_NAME}).")
    p.add_argument("--threads", type=int, default=None, help=f"Worker threads (default: {DEFAULT_THREADS}).")
    p.add_argument("--include-merges", action="store_true", help="Include merge commits (diffed against their first parent).")
    p.add_argument("--log-level", choices=LOG_LEVELS, default="warning", help="Log level for stderr diagnostics.")
    p.add_argument("--file", type=str, default=None, help="Output file. Sends to stdout by default.")
    p.add_argument("--start-date", type=str, default=None, help="First day to include, YYYY-MM-DD (commit days are in UTC).")
    p.add_argument("--end-date", type=str, default=None, help="Last day to include, YYYY-MM-DD (commit days are in UTC).")
    p.add_argument("--start-days-back", type=int, default=None, help="First day to include, as days before today.")
    p.add_argument("--end-days-back", type=int, default=None, help="Last day to include, as days before today.")


def _add_globs(p: argparse.ArgumentParser) -> None:
    p.add_argument("--include", type=str, default=None, help="Comma-separated path globs to include (e.g. 'src/**/*.py').")
    p.add_argument("--exclude", type=str, default=None, help="Comma-separated path globs to exclude.")


def _add_buckets(p: argparse.ArgumentParser) -> None:
    p.add_argument("--ignore-weekends", action="store_true", help="Leave Saturdays and Sundays out of the output.")
    p.add_argument("--ignore-gap-fill", action="store_true", help="Omit days with no commits instead of writing 0.")
    p.add_argument("--image", action="store_true", help="Write an SVG chart instead of CSV; --file must end with .svg.")
    p.add_argument("--html", action="store_true", help="With --image, also write an .html page embedding the chart.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="grit", description="Aggregate git history into author, date and file statistics.")
    sub = parser.add_subparsers(dest="command", metavar="command")
    sub.required = True

    fame = sub.add_parser("fame", help="Per-author files, commits and lines currently owned.")
    _add_common(fame)
    _add_globs(fame)
    fame.add_argument("--sort", type=str, default=None, help=f"Sort field: {', '.join(SORT_FIELDS)} (default: commit).")
    fame.add_argument("--csv", action="store_true", help="Write CSV instead of a table.")

    bydate = sub.add_parser("bydate", help="Commit counts per day.")
    _add_common(bydate)
    _add_globs(bydate)
    _add_buckets(bydate)

    byfile = sub.add_parser("byfile", help="Commit counts per file per day.")
    _add_common(byfile)
    _add_globs(byfile)
    _add_buckets(byfile)
    byfile.add_argument("--in-file", type=str, default=None, help="Only report this path.")
    byfile.add_argument("--restrict-author", type=str, default=None, help="Comma-separated author keys to keep.")

    effort = sub.add_parser("effort", help="Per-path commit count and active days.")
    _add_common(effort)
    _add_globs(effort)
    effort.add_argument("--table", action="store_true", help="Write an ASCII table instead of CSV.")
    return parser


def load_run_config(args: argparse.Namespace) -> RunConfig:
    config_path = args.config if args.config is not None else Path(args.repo) / DEFAULT_CONFIG_NAME
    config = load_config(config_path)
    if config:
        logger.info("loaded config from %s", config_path)
    return resolve_run_config(args, config)


def _report_written(paths: list[Path]) -> None:
    for p in paths:
        print(f"Wrote {p}", file=sys.stderr)


def run_command(args: argparse.Namespace) -> int:
    config = load_run_config(args)
    source = GitDataSource(
        config.repo,
        resolver=AuthorResolver.from_aliases(config.aliases),
        include_merges=config.include_merges,
    )

    if args.command == "fame":
        report = run_fame(source, config)
        text = fame_csv(report) if config.csv else render_fame_table(report)
        written = emit(text, config.output_file)
    elif args.command == "bydate":
        points = run_bydate(source, config)
        if config.image:
            _report_written(emit_svg(bydate_svg(points), config.output_file, with_html=config.html))
            return 0
        written = emit(bydate_csv(points), config.output_file)
    elif args.command == "byfile":
        file_points = run_byfile(source, config)
        if config.image:
            _report_written(emit_svg(byfile_svg(file_points), config.output_file, with_html=config.html))
            return 0
        written = emit(byfile_csv(file_points), config.output_file)
    elif args.command == "effort":
        rows = run_effort(source, config)
        written = emit(render_effort_table(rows) if config.table else effort_csv(rows), config.output_file)
    else:
        raise SystemExit(f"unknown command: {args.command!r}")

    if written is not None:
        _report_written([written])
    return 0
