"""NNTP client for overview retrieval.

This module provides the command layer: greeting, authentication, simple
informational commands, newsgroup selection and listing, overview format
negotiation, and XOVER in bulk or streaming form.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import structlog

from nntp_overview.config import Settings
from nntp_overview.exceptions import InvalidGreetingError, ResponseFormatError
from nntp_overview.models import Header, NewsgroupDetail, NewsgroupOverview, NewsgroupStatus
from nntp_overview.overview.decoder import decode_block
from nntp_overview.overview.fields import parse_unsigned
from nntp_overview.overview.schema import FieldSchema, build_schema
from nntp_overview.overview.stream import OverviewStream
from nntp_overview.transport import NNTPConnection

logger = structlog.get_logger()

DATE_RESPONSE_FORMAT = "%Y%m%d%H%M%S"
NEWGROUPS_FORMAT = "%y%m%d %H%M%S GMT"


def parse_newsgroup_overview(line: str) -> NewsgroupOverview:
    """Parse a ``name high low status`` listing line.

    Raises:
        ResponseFormatError: If the line does not have four parts or the status
            is not one of y, n, m.
        NumericParseError: If high or low is not a number.
    """
    parts = line.split(" ")
    if len(parts) != 4:
        raise ResponseFormatError(
            f"invalid newsgroup overview line {line!r}: expected 4 parts, got {len(parts)}"
        )

    name, high, low, status = parts
    try:
        group_status = NewsgroupStatus(status.lower())
    except ValueError as exc:
        raise ResponseFormatError(
            f"invalid newsgroup status {status!r}: allowed y, n, m"
        ) from exc

    return NewsgroupOverview(
        name=name,
        high=parse_unsigned(high, "high"),
        low=parse_unsigned(low, "low"),
        status=group_status,
    )


def parse_group_response(text: str) -> NewsgroupDetail:
    """Parse the ``number low high name`` text of a 211 reply."""
    parts = text.split(" ")
    if len(parts) != 4:
        raise ResponseFormatError(
            f"invalid group line {text!r}: expected 4 parts, got {len(parts)}"
        )

    number, low, high, name = parts
    return NewsgroupDetail(
        name=name,
        number=parse_unsigned(number, "number"),
        low=parse_unsigned(low, "low"),
        high=parse_unsigned(high, "high"),
    )


class NNTPClient:
    """Client for a single news server connection.

    All methods may be called from concurrent tasks; the underlying
    connection serves their exchanges in the order they were started.
    """

    def __init__(self, connection: NNTPConnection, settings: Settings | None = None) -> None:
        """Wrap an open connection whose greeting has not been read yet.

        Use :meth:`from_connection` or :meth:`connect` rather than calling this
        directly.
        """
        from nntp_overview.config import get_settings

        self.settings = settings or get_settings()
        self._connection = connection
        self._host_zone = self.settings.host_zone
        self._overview_format: FieldSchema | None = None

    @classmethod
    async def from_connection(
        cls,
        connection: NNTPConnection,
        settings: Settings | None = None,
    ) -> NNTPClient:
        """Read the server greeting on an open connection.

        Raises:
            InvalidGreetingError: If the greeting code is not 200 or 201.
        """
        client = cls(connection, settings)
        code, text = await connection.read_code_line()
        if code not in (200, 201):
            raise InvalidGreetingError(code, text, (200, 201))
        logger.info("nntp_connected", code=code, greeting=text)
        return client

    @classmethod
    async def connect(cls, settings: Settings | None = None) -> NNTPClient:
        """Open a connection using settings and read the greeting."""
        from nntp_overview.config import get_settings

        settings = settings or get_settings()
        connection = await NNTPConnection.open(
            settings.host,
            settings.port,
            use_ssl=settings.use_ssl,
            timeout=settings.connect_timeout,
            encoding=settings.encoding,
        )
        return await cls.from_connection(connection, settings)

    @property
    def connection(self) -> NNTPConnection:
        return self._connection

    async def authenticate(self, username: str, password: str) -> None:
        """Authenticate with AUTHINFO USER/PASS.

        Raises:
            UnexpectedStatusError: If the server rejects either step.
        """
        async with self._connection.exchange():
            await self._connection.write_line(f"AUTHINFO USER {username}")
            await self._connection.read_code_line(381)
            await self._connection.write_line(f"AUTHINFO PASS {password}")
            await self._connection.read_code_line(281)
        logger.info("nntp_authenticated", username=username)

    async def quit(self) -> None:
        """Send QUIT and close the connection."""
        exchange = await self._connection.cmd("QUIT")
        async with self._connection.response(exchange):
            await self._connection.read_code_line(205)
        await self._connection.close()

    async def help(self) -> str:
        """Return the server's help text."""
        exchange = await self._connection.cmd("HELP")
        async with self._connection.response(exchange):
            await self._connection.read_code_line(100)
            lines = await self._connection.read_dot_lines()
        return "".join(f"{line}\n" for line in lines)

    async def date(self) -> datetime:
        """Return the server's current UTC time."""
        exchange = await self._connection.cmd("DATE")
        async with self._connection.response(exchange):
            _, text = await self._connection.read_code_line(111)
        try:
            return datetime.strptime(text.strip(), DATE_RESPONSE_FORMAT).replace(tzinfo=timezone.utc)
        except ValueError as exc:
            raise ResponseFormatError(f"failed to parse returned date {text!r}") from exc

    async def newgroups(self, since: datetime) -> list[NewsgroupOverview]:
        """List newsgroups created since the given time."""
        if since.tzinfo is not None:
            since = since.astimezone(timezone.utc)
        exchange = await self._connection.cmd(f"NEWGROUPS {since.strftime(NEWGROUPS_FORMAT)}")
        async with self._connection.response(exchange):
            await self._connection.read_code_line(231)
            lines = await self._connection.read_dot_lines()
        return [parse_newsgroup_overview(line) for line in lines]

    async def group(self, name: str) -> NewsgroupDetail:
        """Select a newsgroup and return its article range."""
        exchange = await self._connection.cmd(f"GROUP {name}")
        async with self._connection.response(exchange):
            _, text = await self._connection.read_code_line(211)
        detail = parse_group_response(text)
        logger.info("nntp_group_selected", group=detail.name, low=detail.low, high=detail.high)
        return detail

    @property
    def overview_format(self) -> FieldSchema | None:
        return self._overview_format

    def set_overview_format(self, schema: FieldSchema) -> None:
        """Use the given schema instead of asking the server.

        A schema without a host zone gets the one from this client's settings.
        """
        if schema.host_zone is None:
            schema = schema.with_host_zone(self._host_zone)
        self._overview_format = schema

    async def list_overview_format(self) -> FieldSchema:
        """Ask the server for its overview format with LIST OVERVIEW.FMT."""
        exchange = await self._connection.cmd("LIST OVERVIEW.FMT")
        async with self._connection.response(exchange):
            await self._connection.read_code_line(215)
            lines = await self._connection.read_dot_lines()
        return build_schema(lines, host_zone=self._host_zone)

    async def initialize_overview_format(self) -> FieldSchema:
        """Fetch the server's overview format and keep it for later XOVERs."""
        self._overview_format = await self.list_overview_format()
        logger.info("overview_format_initialized", labels=list(self._overview_format.labels))
        return self._overview_format

    async def _ensure_overview_format(self) -> FieldSchema:
        if self._overview_format is None:
            return await self.initialize_overview_format()
        return self._overview_format

    async def xover(self, article_range: str) -> list[Header]:
        """Fetch and decode overview lines for an article range.

        Args:
            article_range: Article number or range, e.g. ``"100-200"`` or ``"100-"``.

        Raises:
            DecodeError: On the first line that fails to decode.
        """
        schema = await self._ensure_overview_format()
        exchange = await self._connection.cmd(f"XOVER {article_range}")
        async with self._connection.response(exchange):
            await self._connection.read_code_line(224)
            lines = await self._connection.read_dot_lines()
        headers = decode_block(schema, lines)
        logger.info("xover_completed", range=article_range, headers=len(headers))
        return headers

    async def xover_stream(self, article_range: str) -> OverviewStream:
        """Start streaming overview lines for an article range.

        The returned stream owns the read side of the connection until its
        block ends; later exchanges wait for it. Cancelling the stream before
        the block ends abandons the connection.
        """
        schema = await self._ensure_overview_format()
        exchange = await self._connection.cmd(f"XOVER {article_range}")
        await self._connection.start_response(exchange)
        try:
            await self._connection.read_code_line(224)
        except asyncio.CancelledError:
            self._connection.end_response(exchange, complete=False)
            raise
        except BaseException:
            self._connection.end_response(exchange)
            raise

        logger.info("xover_stream_started", range=article_range)
        stream = OverviewStream(
            schema,
            self._connection.read_line,
            queue_size=self.settings.stream_queue_size,
            error_queue_size=self.settings.stream_error_queue_size,
            on_finish=lambda complete: self._connection.end_response(exchange, complete=complete),
        )
        return stream.start()
