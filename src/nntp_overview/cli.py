"""Command-line interface for the NNTP overview client.

This module provides the main entry point for the CLI application.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import datetime, timezone

import structlog

from nntp_overview.client import NNTPClient
from nntp_overview.config import get_settings
from nntp_overview.exceptions import ConfigurationError, NNTPError
from nntp_overview.models import Header

logger = structlog.get_logger()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="nntp-overview", description="NNTP overview client")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("help", help="Print the server's help text")
    subparsers.add_parser("date", help="Print the server's current time")
    subparsers.add_parser("format", help="Print the server's overview format")

    group_parser = subparsers.add_parser("group", help="Select a newsgroup and print its range")
    group_parser.add_argument("name", help="Newsgroup name")

    newgroups_parser = subparsers.add_parser("newgroups", help="List newsgroups created since a date")
    newgroups_parser.add_argument(
        "since",
        type=datetime.fromisoformat,
        help="ISO 8601 date or datetime; naive values are taken as UTC",
    )

    xover_parser = subparsers.add_parser("xover", help="Print overview data for an article range")
    xover_parser.add_argument("group", help="Newsgroup name")
    xover_parser.add_argument("range", help="Article range, e.g. 100-200 or 100-")
    xover_parser.add_argument(
        "--stream",
        action="store_true",
        help="Decode lines as they arrive and report bad lines instead of failing",
    )

    return parser


def _format_header(h: Header) -> str:
    date_part = h.date.isoformat() if h.date else "(no date)"
    return f"{h.message_number}\t{date_part}\t{h.author}\t{h.subject}"


async def _cmd_xover(client: NNTPClient, args: argparse.Namespace) -> int:
    await client.group(args.group)

    if not args.stream:
        for h in await client.xover(args.range):
            print(_format_header(h))
        return 0

    stream = await client.xover_stream(args.range)

    async def print_headers() -> None:
        async for h in stream.headers:
            print(_format_header(h))

    async def print_errors() -> int:
        failed = 0
        async for error in stream.errors:
            failed += 1
            print(f"error: {error}", file=sys.stderr)
        return failed

    _, failed = await asyncio.gather(print_headers(), print_errors())
    await stream.wait_closed()
    return 1 if failed else 0


async def _run(args: argparse.Namespace) -> int:
    settings = get_settings()
    client = await NNTPClient.connect(settings)

    try:
        if settings.username:
            await client.authenticate(settings.username, settings.password or "")

        if args.command == "help":
            print(await client.help(), end="")
            return 0
        if args.command == "date":
            print((await client.date()).isoformat())
            return 0
        if args.command == "format":
            for label in (await client.list_overview_format()).labels:
                print(label)
            return 0
        if args.command == "group":
            g = await client.group(args.name)
            print(f"{g.name}\t{g.number}\t{g.low}\t{g.high}")
            return 0
        if args.command == "newgroups":
            since: datetime = args.since
            if since.tzinfo is None:
                since = since.replace(tzinfo=timezone.utc)
            for n in await client.newgroups(since):
                print(f"{n.name}\t{n.low}\t{n.high}\t{n.status.value}")
            return 0
        if args.command == "xover":
            return await _cmd_xover(client, args)
    finally:
        await client.quit()

    logger.error("unknown_command", command=args.command)
    return 2


def main(args: list[str] | None = None) -> int:
    """Main entry point for the NNTP overview CLI.

    Args:
        args: Command-line arguments. If None, uses sys.argv.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    if args is None:
        args = sys.argv[1:]

    try:
        settings = get_settings()
    except ConfigurationError as exc:
        logger.error("nntp_configuration_invalid", error=str(exc))
        return 1

    # Configure logging
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level.upper(), logging.INFO)
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )

    logger.info("nntp_overview_started", version="0.1.0", debug=settings.debug)

    parser = _build_parser()
    parsed = parser.parse_args(args)

    try:
        return asyncio.run(_run(parsed))
    except NNTPError as exc:
        logger.error("nntp_command_failed", command=parsed.command, error=str(exc))
        return 1


if __name__ == "__main__":
    sys.exit(main())
