"""
Command-line interface for juice.

    juice [-v]                       show every battery
    juice daemon [--interval N]      record readings until SIGINT/SIGTERM
    juice status                     summarize the history database
    juice export [--output PATH] [--from DATE] [--to DATE]
"""

from __future__ import annotations

import argparse
import asyncio
import functools
import signal
import sys
from datetime import date
from typing import Any

import yaml
from pydantic import ValidationError

from juice import __version__
from juice.battery import find_batteries, read_battery
from juice.config import AppConfig, load_config
from juice.display import render_normal, render_verbose
from juice.errors import JuiceError, NoBatteriesFoundError, WriteError
from juice.formatting import (
    format_duration,
    format_size,
    format_timestamp,
    parse_date,
)
from juice.history import HistoryStore, export_csv, run_sampler
from juice.logging import get_logger, setup_logging

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all sub-commands."""
    parser = argparse.ArgumentParser(
        prog="juice",
        description="Battery status and history for Linux",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show detailed information",
    )
    parser.add_argument("--config", "-c", type=str, help="Path to configuration file")
    parser.add_argument("--db", type=str, help="Path to the history database")
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["debug", "info", "warning", "error"],
        help="Override log level",
    )

    subparsers = parser.add_subparsers(dest="command")

    daemon = subparsers.add_parser(
        "daemon", help="Start daemon for recording battery info periodically"
    )
    daemon.add_argument("-i", "--interval", type=int, help="Interval in seconds")

    subparsers.add_parser("status", help="Show status about stored data")

    export = subparsers.add_parser("export", help="Export stored readings as CSV")
    export.add_argument("-o", "--output", type=str, help="Output file (default: stdout)")
    export.add_argument(
        "--from", dest="from_date", type=str, help="Start date (YYYY-MM-DD)"
    )
    export.add_argument("--to", dest="to_date", type=str, help="End date (YYYY-MM-DD)")

    return parser


def _overrides(args: argparse.Namespace) -> dict[str, Any]:
    result: dict[str, Any] = {}
    if args.db:
        result["storage"] = {"db_path": args.db}
    if args.log_level:
        result["logging"] = {"level": args.log_level}
    if getattr(args, "interval", None) is not None:
        result["daemon"] = {"interval_seconds": args.interval}
    return result


# =============================================================================
# Commands
# =============================================================================


def show_batteries(config: AppConfig, *, verbose: bool = False) -> int:
    """Print a snapshot of every battery."""
    path = config.daemon.power_supply_path
    batteries = find_batteries(path)
    if not batteries:
        print("No battery found")
        return 0

    color = sys.stdout.isatty()
    for name in batteries:
        info = read_battery(name, path)
        print(render_verbose(info, color=color) if verbose else render_normal(info, color=color))
    return 0


async def run_daemon(config: AppConfig, cancel: asyncio.Event | None = None) -> None:
    """
    Record readings until SIGINT/SIGTERM (or ``cancel``) is received.

    Raises:
        NoBatteriesFoundError: If no battery is present; the database is not
            touched in that case.
        JuiceError: On any storage failure.
    """
    path = config.daemon.power_supply_path
    batteries = find_batteries(path)
    if not batteries:
        raise NoBatteriesFoundError(
            "No battery found", details={"power_supply_path": path}
        )

    if cancel is None:
        cancel = asyncio.Event()

    loop = asyncio.get_event_loop()

    def signal_handler() -> None:
        logger.info("Received shutdown signal")
        cancel.set()

    installed: list[int] = []
    try:
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, signal_handler)
            installed.append(sig)
    except (ValueError, NotImplementedError, RuntimeError):
        # Signal handling not supported on this platform or thread
        pass

    store = HistoryStore(config.storage.db_path)
    interval = config.daemon.interval_seconds
    print(f"Daemon started (interval: {interval}s)")
    try:
        await run_sampler(
            store,
            batteries,
            interval,
            cancel,
            reader=functools.partial(read_battery, power_supply_path=path),
        )
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)
        await store.close()
    print("Shutting down juice daemon...")


async def show_status(config: AppConfig) -> int:
    """Print database location, size, row count and covered time span."""
    store = HistoryStore(config.storage.db_path)
    print(f"Database: {store.db_path}")

    await store.initialize()
    size = store.size_bytes()
    count = await store.count()
    first = await store.first_timestamp()
    last = await store.last_timestamp()
    await store.close()

    print(f"Size: {format_size(size or 0)}")
    print(f"Total readings: {count}")
    if first is not None and last is not None:
        print(f"First reading: {format_timestamp(first)}")
        print(f"Last reading: {format_timestamp(last)}")
        print(f"Time span: {format_duration(first, last)}")
    return 0


def _parse_bound(text: str | None, flag: str) -> date | None:
    if text is None:
        return None
    value = parse_date(text)
    if value is None:
        logger.warning("Ignoring unparseable date", extra={"flag": flag, "value": text})
        print(f"Ignoring invalid {flag} date: {text!r} (expected YYYY-MM-DD)", file=sys.stderr)
    return value


async def export_history(
    config: AppConfig,
    output: str | None,
    from_date: str | None,
    to_date: str | None,
) -> int:
    """Export stored readings as CSV to ``output`` or stdout."""
    start = _parse_bound(from_date, "--from")
    end = _parse_bound(to_date, "--to")

    store = HistoryStore(config.storage.db_path)
    await store.initialize()
    try:
        if output is None:
            await export_csv(store, sys.stdout, start, end)
            return 0

        try:
            sink = open(output, "w", encoding="utf-8", newline="")
        except OSError as e:
            raise WriteError(
                f"Cannot open export file: {e}", details={"output": output}
            ) from e
        with sink:
            rows = await export_csv(store, sink, start, end)
        print(f"Exported {rows} readings to {output}", file=sys.stderr)
        return 0
    finally:
        await store.close()


# =============================================================================
# Entry point
# =============================================================================


def main(argv: list[str] | None = None) -> int:
    """Run the juice CLI and return the process exit code."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config, overrides=_overrides(args))
    except (FileNotFoundError, yaml.YAMLError, ValidationError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    setup_logging(config.logging)

    try:
        if args.command == "daemon":
            asyncio.run(run_daemon(config))
            return 0
        if args.command == "status":
            return asyncio.run(show_status(config))
        if args.command == "export":
            return asyncio.run(
                export_history(config, args.output, args.from_date, args.to_date)
            )
        return show_batteries(config, verbose=args.verbose)
    except JuiceError as e:
        logger.error(e.message, extra={"error_code": e.error_code, "details": e.details})
        print(f"Error: {e.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
