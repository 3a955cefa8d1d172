"""Command-line entry point.

Usage:
    submodule-sync [--dry-run] [--no-commit] [--force-remote] [--parallel]
                   [--concurrency N] [--verbose] [--config PATH] [--repo PATH]
                   [--log-format {text,json}]

Exit codes: 0 on success, 1 on any failure, 130 when interrupted.
"""

import argparse
import sys

from submodule_sync import __version__
from submodule_sync.cli.sync_cmds import cmd_sync

EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="submodule-sync",
        description=(
            "Pull the superproject and move every submodule to the right commit, "
            "preferring unpushed work in adjacent local checkouts"
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-d", "--dry-run", action="store_true",
        help="Show what would happen without changing anything",
    )
    parser.add_argument(
        "-n", "--no-commit", action="store_true",
        help="Update submodules but do not commit the new pointers",
    )
    parser.add_argument(
        "-r", "--force-remote", action="store_true",
        help="Always use the remote branch tip, ignoring local sibling checkouts",
    )
    parser.add_argument(
        "-p", "--parallel", action="store_true",
        help="Process submodules concurrently",
    )
    parser.add_argument(
        "--concurrency", type=int, default=None,
        help="Maximum submodules processed at once with --parallel (default: 4)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--config", default=None, help="Path to a .submodule-sync.yaml file")
    parser.add_argument(
        "--repo", default=None,
        help="Superproject directory (default: $SUBMODULE_SYNC_REPO or the current directory)",
    )
    parser.add_argument(
        "--log-format", choices=["text", "json"], default="text",
        help="Log output format",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        return cmd_sync(args)
    except KeyboardInterrupt:
        print("\n  Interrupted.", file=sys.stderr)
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
