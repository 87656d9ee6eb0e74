from __future__ import annotations

import logging
import sys

from .analysis_cli import build_parser, run_command
from .errors import GritError
from .logs import setup_logging

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    try:
        return run_command(args)
    except GritError as e:
        logger.debug("%s failed: %s %r", args.command, type(e).__name__, e.details)
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
