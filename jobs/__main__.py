"""Command-line entrypoint for batch jobs."""

from __future__ import annotations

import argparse
import os

from jobs.config import SOURCES, SourceConfig
from jobs.convert_all import main as run_convert_all


def _format_source(source: SourceConfig) -> str:
    fallback = source.fallback_filename or "(none)"
    return (
        f"{source.key}: input='{source.filename}' artifact={source.artifact} "
        f"fallback='{fallback}' - {source.description}"
    )


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Civic metrics data conversion")
    subparsers = parser.add_subparsers(dest="command", required=True)

    convert_parser = subparsers.add_parser(
        "convert-all", help="Convert every raw source present into its JSON artifact"
    )
    convert_parser.add_argument(
        "--log-level",
        help="Override LOG_LEVEL for this invocation (e.g. DEBUG, INFO)",
    )

    subparsers.add_parser("list-sources", help="Show configured raw sources and artifacts")

    args = parser.parse_args(argv)

    if args.command == "list-sources":
        for source in SOURCES:
            print(_format_source(source))
        return 0

    if args.command == "convert-all":
        if args.log_level:
            os.environ["LOG_LEVEL"] = args.log_level
        return run_convert_all()

    parser.error("Unknown command")
    return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
