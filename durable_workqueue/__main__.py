"""Command line tools for inspecting durable work queues.

The commands open the store configured by Settings (WORKQUEUE_* environment
variables or .env), so they must not run while an application process owns
the same queue.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import TYPE_CHECKING, NoReturn

from pydantic import ValidationError

if TYPE_CHECKING:
    from durable_workqueue.factory import BackingStore

logger = logging.getLogger(__name__)


def _open_store(name: str) -> BackingStore:
    from durable_workqueue.config import get_settings
    from durable_workqueue.core.errors import ConfigurationError
    from durable_workqueue.factory import QueueFactory

    settings = get_settings()
    if settings.store_backend == "memory":
        raise ConfigurationError("The memory backend has no persistent queues to inspect")
    return QueueFactory(settings).create_backing_store(name)


def _configure_cli_logging(verbose: bool) -> None:
    from durable_workqueue.config import get_settings
    from durable_workqueue.core.logging import configure_logging

    settings = get_settings()
    configure_logging(
        level="DEBUG" if verbose else settings.log_level,
        json_format=settings.log_json,
    )


def _describe_entry(raw: str) -> str:
    from durable_workqueue.core.envelope import ItemEnvelope

    try:
        envelope = ItemEnvelope.model_validate_json(raw)
    except ValidationError:
        return f"<corrupt> {raw[:80]}"
    return (
        f"id={envelope.id:<10} submitted={envelope.submitted_at.isoformat()} "
        f"type={envelope.type_tag} payload={envelope.payload[:80]}"
    )


def run_stats(args: argparse.Namespace) -> int:
    """Print backlog statistics for a queue.

    Args:
        args: Parsed command line arguments.

    Returns:
        Exit code (0 for success, 1 for error).
    """
    from durable_workqueue.core.envelope import ItemEnvelope
    from durable_workqueue.core.utils import format_duration

    _configure_cli_logging(args.verbose)

    try:
        store = _open_store(args.name)
        try:
            size = store.size()
            print(f"Queue: {args.name}")
            print(f"Items: {size}")
            values = store.iter_values()
        finally:
            store.close()

        envelopes = []
        corrupt = 0
        for raw in values:
            try:
                envelopes.append(ItemEnvelope.model_validate_json(raw))
            except ValidationError:
                corrupt += 1

        if envelopes:
            oldest = envelopes[0]
            newest = envelopes[-1]
            print(f"Oldest:  {oldest.submitted_at.isoformat()} ({format_duration(oldest.age_seconds())} ago)")
            print(f"Newest:  {newest.submitted_at.isoformat()} ({format_duration(newest.age_seconds())} ago)")
            types = sorted({e.type_tag for e in envelopes})
            print(f"Types:   {', '.join(types)}")
        if corrupt:
            print(f"Corrupt: {corrupt}")
        return 0

    except Exception as e:
        logger.error(f"Failed to read queue stats: {e}", exc_info=args.verbose)
        print(f"\nError: {e}")
        return 1


def run_peek(args: argparse.Namespace) -> int:
    """Print the entries at the head of a queue.

    Args:
        args: Parsed command line arguments.

    Returns:
        Exit code (0 for success, 1 for error).
    """
    _configure_cli_logging(args.verbose)

    try:
        store = _open_store(args.name)
        try:
            values = store.iter_values(limit=args.limit)
            total = store.size()
        finally:
            store.close()

        if not values:
            print("Queue is empty.")
            return 0

        for position, raw in enumerate(values):
            print(f"{position:>5}  {_describe_entry(raw)}")
        if total > len(values):
            print(f"... {total - len(values)} more")
        return 0

    except Exception as e:
        logger.error(f"Failed to peek queue: {e}", exc_info=args.verbose)
        print(f"\nError: {e}")
        return 1


def run_purge(args: argparse.Namespace) -> int:
    """Delete every entry of a queue.

    Args:
        args: Parsed command line arguments.

    Returns:
        Exit code (0 for success, 1 for error).
    """
    _configure_cli_logging(args.verbose)

    try:
        store = _open_store(args.name)
        try:
            size = store.size()
            if not args.yes:
                print(f"Queue '{args.name}' holds {size} items. Re-run with --yes to delete them.")
                return 1
            removed = store.clear()
        finally:
            store.close()

        print(f"Purged {removed} items from queue '{args.name}'.")
        return 0

    except Exception as e:
        logger.error(f"Failed to purge queue: {e}", exc_info=args.verbose)
        print(f"\nError: {e}")
        return 1


def run_version() -> None:
    """Print version information."""
    from durable_workqueue import __version__

    print(f"durable-workqueue {__version__}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="durable-workqueue",
        description="Inspect and maintain durable work queues",
    )
    parser.add_argument(
        "--version",
        "-V",
        action="store_true",
        help="Show version and exit",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        description="Available commands",
    )

    # Stats command
    stats_parser = subparsers.add_parser(
        "stats",
        help="Show backlog size and age of a queue",
    )
    stats_parser.add_argument("name", help="Queue name")
    stats_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )

    # Peek command
    peek_parser = subparsers.add_parser(
        "peek",
        help="List the entries at the head of a queue",
    )
    peek_parser.add_argument("name", help="Queue name")
    peek_parser.add_argument(
        "--limit",
        type=int,
        default=10,
        help="Maximum entries to show (default: 10)",
    )
    peek_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )

    # Purge command
    purge_parser = subparsers.add_parser(
        "purge",
        help="Delete every entry of a queue",
    )
    purge_parser.add_argument("name", help="Queue name")
    purge_parser.add_argument(
        "--yes",
        action="store_true",
        help="Confirm deletion",
    )
    purge_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )

    return parser


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point with subcommand support."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        run_version()
        sys.exit(0)

    if args.command == "stats":
        sys.exit(run_stats(args))
    elif args.command == "peek":
        sys.exit(run_peek(args))
    elif args.command == "purge":
        sys.exit(run_purge(args))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
