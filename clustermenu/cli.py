"""Command-line front door for clustermenu.

Parses options, loads settings, configures file logging, and hands the
terminal over to the console runtime.
"""

from __future__ import annotations

import argparse
import logging
import sys

from . import __version__
from .config import load_settings
from .logs import setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clustermenu",
        description="Full-screen console for a two-node replicated cluster.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: list[str] | None = None) -> None:
    """Parse arguments and run the console; exit non-zero on failure.

    The console needs a terminal on both stdin and stdout.
    """
    build_parser().parse_args(argv)
    if not (sys.stdin.isatty() and sys.stdout.isatty()):
        raise SystemExit("clustermenu must be run on a terminal.")

    settings = load_settings()
    setup_logging(settings.logging_level)

    from .runtime import run_console

    try:
        run_console(settings)
    except Exception:
        logger.exception("console terminated by an unexpected error")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
