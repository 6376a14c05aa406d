#!/usr/bin/env python3
"""
check-auto-updatable - Check whether packages can be auto-updated.

For every package directory, looks for a way to detect new upstream
versions: GitHub tags, GitLab tags, then Repology. Packages that already
declare TERMUX_PKG_AUTO_UPDATE are left alone.

Usage:
    check_auto_updatable.py packages/foo               # Report only
    check_auto_updatable.py --enable packages/foo      # Record the result in build.sh
    check_auto_updatable.py -s packages/foo packages/bar

Exit status:
    0  every package can be (or already is) classified as auto-updatable
    1  at least one package cannot be auto-updated or is invalid
    2  usage error
    3  fatal environment error (network, credentials, configuration)
"""

from __future__ import annotations

import argparse
import sys
from enum import IntEnum

from auto_updatable import __version__
from auto_updatable.checker import check_packages
from auto_updatable.common import FatalError
from auto_updatable.config import load_config, validate_config
from auto_updatable.logging_config import setup_logging
from auto_updatable.render import print_fatal, print_result, print_summary
from auto_updatable.resolver import build_resolver


class ExitCode(IntEnum):
    SUCCESS = 0
    NOT_UPDATABLE = 1
    USAGE = 2
    FATAL = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="check-auto-updatable",
        description=(
            "Check if packages can be auto-updated and optionally enable "
            "auto-update in their build.sh."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "GITHUB_TOKEN must be set for packages hosted on GitHub.\n"
            "Auto-update for packages pinned to a commit hash is not reliable."
        ),
    )

    parser.add_argument(
        "packages",
        nargs="+",
        metavar="PACKAGE_DIR",
        help="Package directories, e.g. packages/hello",
    )
    parser.add_argument(
        "--enable",
        action="store_true",
        help="Write TERMUX_PKG_AUTO_UPDATE=true (and related settings) into build.sh",
    )
    parser.add_argument(
        "--silent", "-s",
        action="store_true",
        help="Only print the result line of each package",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output",
    )
    parser.add_argument(
        "--config",
        dest="config",
        help="Path to a YAML configuration file",
    )
    parser.add_argument(
        "--log-file",
        dest="log_file",
        help="Also write log output to this file",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    logger = setup_logging(verbose=args.verbose, quiet=args.silent, log_file=args.log_file)

    try:
        config = load_config(args.config, verbose=args.verbose)
    except ValueError as e:
        print_fatal(str(e))
        return ExitCode.FATAL

    for warning in validate_config(config):
        logger.warning(f"Config: {warning}")

    resolver = build_resolver(config)

    try:
        batch = check_packages(args.packages, resolver, enable=args.enable, on_result=print_result)
    except FatalError as e:
        print_fatal(e.message)
        return e.exit_code
    except OSError as e:
        print_fatal(f"Failed to update build.sh: {e}")
        return ExitCode.FATAL

    if len(batch.results) > 1 and not args.silent:
        print_summary(batch)

    return ExitCode.SUCCESS if batch.success else ExitCode.NOT_UPDATABLE


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(130)
