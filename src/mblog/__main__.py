"""
mblog CLI entry point.

Show and record the Aura block-production schedule of the validator whose key
lives in a node's keystore.

Usage::

    python -m mblog --keystore-path /data/chains/main/keystore
    python -m mblog --keystore-path ./keystore --watch --api-port 9615
    python -m mblog --keystore-path ./keystore --next
    python -m mblog --log --limit 20 --tz Asia/Dubai

Options:
    --ws              Node WebSocket endpoint (default: ws://127.0.0.1:9944)
    --keystore-path   Node keystore directory; the Aura key is detected from it
    --epoch-size      Slots per epoch (default: 1200)
    --epoch           Show a specific epoch instead of the current one
    --db              SQLite database path (default: aura_schedule.sqlite)
    --no-store        Do not write to the database
    --watch           Keep following the chain and record block outcomes
    --current/--next  Print the current or next epoch's schedule as JSON
    --log             Print recorded history (read-only, no node needed)
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import tzinfo
from pathlib import Path

from mblog.api import ApiServer, ApiServerConfig
from mblog.authority import resolve_authority_set
from mblog.chain import DEFAULT_EPOCH_SIZE
from mblog.coordinator import EpochCoordinator
from mblog.display import (
    ColorMode,
    Colors,
    parse_output_tz,
    render_author,
    render_epoch_header,
    render_history,
    render_schedule,
)
from mblog.identity import resolve_identity
from mblog.registry import fetch_registration
from mblog.rpc import DEFAULT_WS_URL, NodeClient
from mblog.schedule import SnapshotKind, compute_schedule, snapshot
from mblog.storage import Database, SQLiteDatabase
from mblog.types import MblogError
from mblog.watcher import ChainWatcher

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "aura_schedule.sqlite"
"""Default SQLite database file."""

DEFAULT_LOG_LIMIT = 50
"""Default number of history rows printed by --log."""


class ColoredFormatter(logging.Formatter):
    """Logging formatter with ANSI colors for better readability."""

    # ANSI color codes
    GREY = "\x1b[38;5;244m"
    BLUE = "\x1b[38;5;39m"
    GREEN = "\x1b[38;5;40m"
    YELLOW = "\x1b[38;5;220m"
    RED = "\x1b[38;5;196m"
    BOLD_RED = "\x1b[38;5;196;1m"
    CYAN = "\x1b[38;5;51m"
    RESET = "\x1b[0m"

    LEVEL_COLORS = {
        logging.DEBUG: GREY,
        logging.INFO: GREEN,
        logging.WARNING: YELLOW,
        logging.ERROR: RED,
        logging.CRITICAL: BOLD_RED,
    }

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with colors."""
        color = self.LEVEL_COLORS.get(record.levelno, self.RESET)
        timestamp = f"{self.CYAN}{self.formatTime(record, self.datefmt)}{self.RESET}"
        levelname = f"{color}{record.levelname:8}{self.RESET}"
        name = f"{self.BLUE}{record.name}{self.RESET}"
        return f"{timestamp} {levelname} {name}: {record.getMessage()}"


def setup_logging(verbose: bool = False, no_color: bool = False) -> None:
    """Configure logging on stderr with optional colors."""
    level = logging.DEBUG if verbose else logging.INFO

    handler = logging.StreamHandler()
    handler.setLevel(level)

    if no_color:
        formatter = logging.Formatter(
            "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        formatter = ColoredFormatter(datefmt="%Y-%m-%d %H:%M:%S")

    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)


def build_parser() -> argparse.ArgumentParser:
    """Command-line interface definition."""
    parser = argparse.ArgumentParser(
        prog="mblog",
        description="Aura slot schedule and block-production log",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--ws",
        default=DEFAULT_WS_URL,
        help=f"Node WebSocket endpoint (default: {DEFAULT_WS_URL})",
    )
    parser.add_argument(
        "--keystore-path",
        type=Path,
        default=None,
        help="Path to the node's keystore directory. The Aura key is detected from it.",
    )
    parser.add_argument(
        "--epoch-size",
        type=int,
        default=DEFAULT_EPOCH_SIZE,
        help=f"Slots per epoch (default: {DEFAULT_EPOCH_SIZE})",
    )
    parser.add_argument(
        "--epoch",
        type=int,
        default=None,
        help="Show this epoch instead of the current one",
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=Path(DEFAULT_DB_PATH),
        help=f"SQLite database path (default: {DEFAULT_DB_PATH})",
    )
    parser.add_argument(
        "--no-store",
        action="store_true",
        help="Do not write to the database",
    )

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--watch",
        action="store_true",
        help="Follow the chain and record minted and finalized blocks",
    )
    mode.add_argument(
        "--current",
        action="store_true",
        help="Print the current epoch's schedule as JSON",
    )
    mode.add_argument(
        "--next",
        action="store_true",
        help="Print the next epoch's predicted schedule as JSON",
    )
    mode.add_argument(
        "--log",
        action="store_true",
        help="Print recorded slot history from the database (read-only)",
    )

    parser.add_argument(
        "--limit",
        type=int,
        default=DEFAULT_LOG_LIMIT,
        help=f"Rows printed by --log (default: {DEFAULT_LOG_LIMIT})",
    )
    parser.add_argument(
        "--tz",
        default="UTC",
        help='Output timezone: "UTC", "local", "+09:00"/"-05:00" or an IANA name',
    )
    parser.add_argument(
        "--color",
        type=ColorMode,
        choices=list(ColorMode),
        default=ColorMode.AUTO,
        help="Colorize output: auto|always|never (default: auto)",
    )
    parser.add_argument(
        "--registry-url",
        default=None,
        help="Registry service queried for the identity's registration status",
    )
    parser.add_argument(
        "--api-port",
        type=int,
        default=None,
        help="Serve health, metrics and history on this port in watch mode",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def print_log(db_path: Path, limit: int, tz: tzinfo, colors: Colors) -> None:
    """Print recorded history without a node and without writing."""
    with SQLiteDatabase.open_readonly(db_path) as database:
        records = database.read_blocks(limit=limit)

    if not records:
        print("no recorded slots")
        return
    for line in render_history(records, tz, colors):
        print(line)


async def print_snapshot(args: argparse.Namespace, node: NodeClient) -> None:
    """Print the current or next epoch's schedule as JSON."""
    identity = await resolve_identity(args.keystore_path, node)
    view = await resolve_authority_set(node, args.epoch_size, epoch=args.epoch)
    kind = SnapshotKind.NEXT if args.next else SnapshotKind.CURRENT
    print(snapshot(view, identity, kind).to_json())


async def show_schedule(
    args: argparse.Namespace,
    node: NodeClient,
    database: Database | None,
    tz: tzinfo,
    colors: Colors,
) -> None:
    """One-shot mode: establish (and record) this epoch, print it, exit."""
    identity = await resolve_identity(args.keystore_path, node)
    coordinator = EpochCoordinator(
        node=node,
        identity=identity,
        epoch_size=args.epoch_size,
        database=database,
        epoch_override=args.epoch,
    )
    state = await coordinator.bootstrap_or_resume()
    view = coordinator.view
    assert view is not None

    print(render_epoch_header(state.authority_set, colors))
    print(render_author(identity, colors))
    if args.registry_url:
        registration = await fetch_registration(args.registry_url, identity)
        stake = f" stake={registration.stake:g}" if registration.stake is not None else ""
        print(f"registry={registration.status.value}{stake}")
    print()

    if state.authority_set.index_of(identity) is None:
        print(
            f"epoch={state.epoch}, authorities={state.authority_set.authority_set_len}; "
            "author not in current authorities; skip."
        )
        return

    planned = compute_schedule(state.authority_set, identity, view.clock)
    for line in render_schedule(planned, tz, colors):
        print(line)


async def watch(args: argparse.Namespace, node: NodeClient, database: Database | None) -> None:
    """Watch mode: follow the chain until interrupted."""
    identity = await resolve_identity(args.keystore_path, node)
    coordinator = EpochCoordinator(
        node=node,
        identity=identity,
        epoch_size=args.epoch_size,
        database=database,
    )
    watcher = ChainWatcher(node=node, coordinator=coordinator, database=database)

    api_server: ApiServer | None = None
    if args.api_port is not None:
        api_server = ApiServer(
            config=ApiServerConfig(port=args.api_port),
            database_getter=lambda: database,
            state_getter=lambda: watcher.state,
            phase_getter=lambda: watcher.phase,
        )
        await api_server.start()

    try:
        await watcher.run()
    finally:
        if api_server is not None:
            await api_server.stop()


async def run(args: argparse.Namespace, tz: tzinfo, colors: Colors) -> None:
    """Dispatch to the selected mode."""
    if args.log:
        print_log(args.db, args.limit, tz, colors)
        return

    async with NodeClient(url=args.ws) as node:
        if args.current or args.next:
            await print_snapshot(args, node)
            return

        database: Database | None = None if args.no_store else SQLiteDatabase(args.db)
        try:
            if args.watch:
                await watch(args, node, database)
            else:
                await show_schedule(args, node, database, tz, colors)
        finally:
            if database is not None:
                database.close()


def main() -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.log and args.keystore_path is None:
        parser.error("--keystore-path is required unless --log is given")
    if args.watch and args.epoch is not None:
        parser.error("--epoch cannot be combined with --watch")
    if args.epoch_size <= 0:
        parser.error("--epoch-size must be positive")

    try:
        tz = parse_output_tz(args.tz)
    except ValueError as exc:
        parser.error(str(exc))

    setup_logging(args.verbose, no_color=not args.color.enabled_for(sys.stderr))
    colors = Colors.for_mode(args.color)

    try:
        asyncio.run(run(args, tz, colors))
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except MblogError as exc:
        logger.error("%s", exc.message)
        sys.exit(1)


if __name__ == "__main__":
    main()
