#!/usr/bin/env python3
import argparse
import sys
from pathlib import Path

from prdoc import __version__
from prdoc.lib.config import Config
from prdoc.lib.errors import NoRecordsFound
from prdoc.lib.logger import Logger
from prdoc.lib.reporter import DIMENSIONS, FORMATS, RunSummary, build_report, collect, render


def _build_parser() -> argparse.ArgumentParser:
    """Build the top-level argparse parser with subcommands."""

    parser = argparse.ArgumentParser(prog="prdoc", description="prdoc changelog record aggregator")
    parser.add_argument("--config", help="Path to a prdoc.cfg file")
    sub = parser.add_subparsers(dest="command", required=True)

    p_version = sub.add_parser("version", help="Print the package version")
    p_version.set_defaults(handler=cmd_version)

    p_check = sub.add_parser("check", help="Validate prdoc files and list failures")
    p_check.add_argument("paths", nargs="+", help="Files or directories to scan")
    p_check.add_argument("--strict", action="store_true", default=None, help="Treat warnings as failures")
    p_check.add_argument("--workers", type=int, help="Number of parallel file readers")
    p_check.set_defaults(handler=cmd_check)

    p_report = sub.add_parser("report", help="Print a grouped release report")
    p_report.add_argument("paths", nargs="+", help="Files or directories to scan")
    p_report.add_argument("--by", choices=DIMENSIONS, help="Grouping dimension")
    p_report.add_argument("--format", choices=FORMATS, help="Output format")
    p_report.add_argument("-o", "--output", help="Write the report to a file instead of stdout")
    p_report.add_argument("--workers", type=int, help="Number of parallel file readers")
    p_report.set_defaults(handler=cmd_report)

    return parser


def _collect(ns: argparse.Namespace) -> RunSummary:
    workers = ns.workers if ns.workers is not None else Config.get("report", "workers", 1)
    return collect(
        ns.paths,
        marker=Config.get("parser", "marker", "---"),
        extension=Config.get("parser", "extension", "prdoc"),
        workers=max(1, workers),
    )


def _log_problems(summary: RunSummary) -> None:
    for failure in summary.failures:
        Logger.error(failure.describe())
    for warning in summary.warnings:
        Logger.warning(str(warning))


def cmd_version(_: argparse.Namespace) -> int:
    """
    Print the package version.

    Args:
        _ (argparse.Namespace): Unused argparse namespace.

    Returns:
        int: Process exit code (0 on success).
    """

    print(__version__)
    return 0


def cmd_check(ns: argparse.Namespace) -> int:
    """
    Validate every record and report failures.

    Returns:
        int: 0 when all records are valid, 1 otherwise.
    """

    strict = ns.strict if ns.strict is not None else Config.get("report", "strict", False)

    try:
        summary = _collect(ns)
    except NoRecordsFound as e:
        Logger.error(str(e))
        return 1
    except Exception as e:
        if Config.get("dev", "stack_trace_errors", False):
            raise

        Logger.error(f"Check failed: {e}")
        return 1

    _log_problems(summary)

    failed = len(summary.failures) + (len(summary.warnings) if strict else 0)
    message = (
        f"{len(summary.entries)} valid record(s), {len(summary.failures)} failure(s), "
        f"{len(summary.warnings)} warning(s) in {len(summary.files)} file(s)."
    )
    if failed:
        Logger.error(message)
        return 1

    Logger.success(message)
    return 0


def cmd_report(ns: argparse.Namespace) -> int:
    """
    Build and emit a grouped release report.

    Returns:
        int: 0 when a report was written, 1 on a fatal error.
    """

    dimension = ns.by or Config.get("report", "group_by", "crate")
    fmt = ns.format or Config.get("report", "format", "text")

    try:
        summary = _collect(ns)
        _log_problems(summary)

        output = render(build_report(summary, dimension), fmt)

        if ns.output:
            Path(ns.output).write_text(output, encoding="utf-8")
            Logger.info(f"Report written to {ns.output}")
        else:
            sys.stdout.write(output)

        Logger.success(f"Reported {len(summary.entries)} record(s) grouped by {dimension}.")
        return 0

    except NoRecordsFound as e:
        Logger.error(str(e))
        return 1
    except Exception as e:
        if Config.get("dev", "stack_trace_errors", False):
            raise

        Logger.error(f"Failed to build report: {e}")
        return 1


def main(argv: list[str] | None = None) -> int:
    """
    Entry point for the `prdoc` CLI.

    Initializes logging, loads configuration, and dispatches subcommands.

    Args:
        argv (list[str] | None): Arguments excluding the executable; if None, uses sys.argv[1:].

    Returns:
        int: Process exit code.
    """

    Logger.setup(Logger.INFO)

    parser = _build_parser()
    ns = parser.parse_args(argv)

    Config.load(ns.config)
    Logger.set_level(Config.get("dev", "log_level", Logger.INFO))

    if Config.get("dev", "log_level", Logger.INFO) == Logger.DEBUG:
        Logger.debug("Developer logging enabled.")

    return ns.handler(ns)


if __name__ == "__main__":
    try:
        sys.exit(main())
    except Exception as e:
        if Config.get("dev", "stack_trace_errors", False):
            raise
        Logger.error(f"Error: {e}")
        sys.exit(1)
