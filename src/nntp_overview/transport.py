"""Line-framed NNTP connection.

Provides status-line and dot-terminated block reads over asyncio streams, and
a request/response pipeline that serves concurrent callers strictly in the
order their exchanges were started.
"""

from __future__ import annotations

import asyncio
import ssl
from collections.abc import AsyncIterator, Collection
from contextlib import asynccontextmanager
from typing import Any, Protocol

import structlog

from nntp_overview.exceptions import ResponseFormatError, TransportError, UnexpectedStatusError

logger = structlog.get_logger()

TERMINATOR = "."
LINE_LIMIT = 1024 * 1024

# Replies followed by a dot-terminated block. 211 carries one only after LISTGROUP.
MULTILINE_CODES = frozenset({100, 101, 215, 220, 221, 222, 224, 225, 230, 231, 282})

ExpectedCodes = int | Collection[int] | None


class LineWriter(Protocol):
    """The part of ``asyncio.StreamWriter`` the connection uses."""

    def write(self, data: bytes) -> Any: ...

    async def drain(self) -> None: ...

    def close(self) -> Any: ...

    async def wait_closed(self) -> None: ...


class Sequencer:
    """Lets numbered operations run one at a time, in id order.

    An id whose holder gives up is passed over once marked with :meth:`skip`.
    """

    def __init__(self) -> None:
        self._current = 0
        self._waiters: dict[int, asyncio.Future[None]] = {}
        self._skipped: set[int] = set()

    async def start(self, exchange: int) -> None:
        if exchange == self._current:
            return
        waiter = asyncio.get_running_loop().create_future()
        self._waiters[exchange] = waiter
        try:
            await waiter
        finally:
            self._waiters.pop(exchange, None)

    def end(self, exchange: int) -> None:
        if exchange != self._current:
            raise RuntimeError(f"sequencer out of sync: ending {exchange}, current {self._current}")
        self._advance()

    def skip(self, exchange: int) -> None:
        """Give up the turn of ``exchange``, now if it is current or when it comes."""
        if exchange == self._current:
            self._advance()
        elif exchange > self._current:
            self._skipped.add(exchange)

    def _advance(self) -> None:
        self._current += 1
        while self._current in self._skipped:
            self._skipped.discard(self._current)
            self._current += 1
        waiter = self._waiters.pop(self._current, None)
        if waiter is not None and not waiter.done():
            waiter.set_result(None)


class Pipeline:
    """Pairs requests with responses across concurrent callers.

    Each exchange takes an id from :meth:`next_id`; requests are written and
    responses read in id order.
    """

    def __init__(self) -> None:
        self._next = 0
        self._request = Sequencer()
        self._response = Sequencer()

    def next_id(self) -> int:
        exchange = self._next
        self._next += 1
        return exchange

    async def start_request(self, exchange: int) -> None:
        await self._request.start(exchange)

    def end_request(self, exchange: int) -> None:
        self._request.end(exchange)

    def skip_request(self, exchange: int) -> None:
        self._request.skip(exchange)

    async def start_response(self, exchange: int) -> None:
        await self._response.start(exchange)

    def end_response(self, exchange: int) -> None:
        self._response.end(exchange)

    def skip_response(self, exchange: int) -> None:
        self._response.skip(exchange)


def _normalize_expected(expected: ExpectedCodes) -> tuple[int, ...]:
    if expected is None or expected == 0:
        return ()
    if isinstance(expected, int):
        return (expected,)
    return tuple(expected)


def _is_multiline(command: str, code: int) -> bool:
    if code == 211:
        return command == "LISTGROUP"
    return code in MULTILINE_CODES


class NNTPConnection:
    """A text connection to a news server.

    A caller cancelled while waiting for its reply leaves the reply to be read
    and dropped in the background. A caller cancelled part way through
    reading a reply leaves the connection out of sync, so it is abandoned:
    the socket is closed and every later read or write raises
    :class:`TransportError`.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: LineWriter,
        *,
        encoding: str = "utf-8",
    ) -> None:
        self._reader = reader
        self._writer = writer
        self._encoding = encoding
        self._commands: dict[int, str] = {}
        self._discards: set[asyncio.Task[None]] = set()
        self._abandoned: str | None = None
        self.pipeline = Pipeline()

    @classmethod
    async def open(
        cls,
        host: str,
        port: int,
        *,
        use_ssl: bool = False,
        timeout: float | None = None,
        encoding: str = "utf-8",
    ) -> NNTPConnection:
        """Open a TCP (optionally TLS) connection.

        Raises:
            TransportError: If the connection cannot be established.
        """
        context = ssl.create_default_context() if use_ssl else None
        logger.info("nntp_connecting", host=host, port=port, use_ssl=use_ssl)
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(host, port, ssl=context, limit=LINE_LIMIT),
                timeout=timeout,
            )
        except (OSError, asyncio.TimeoutError) as exc:
            logger.exception("nntp_connect_failed", host=host, port=port, error=str(exc))
            raise TransportError(f"failed to connect to {host}:{port}: {exc}") from exc
        return cls(reader, writer, encoding=encoding)

    @property
    def abandoned(self) -> bool:
        return self._abandoned is not None

    def abandon(self, reason: str) -> None:
        """Close the socket and fail every later read or write."""
        if self._abandoned is not None:
            return
        self._abandoned = reason
        logger.warning("nntp_connection_abandoned", reason=reason)
        self._writer.close()

    def _check_usable(self) -> None:
        if self._abandoned is not None:
            raise TransportError(f"connection abandoned: {self._abandoned}")

    async def write_line(self, line: str) -> None:
        self._check_usable()
        try:
            self._writer.write(f"{line}\r\n".encode(self._encoding))
            await self._writer.drain()
        except OSError as exc:
            raise TransportError(f"write failed: {exc}") from exc

    async def read_line(self) -> str:
        """Read one line without its CRLF.

        Raises:
            TransportError: On read failure, if the connection closes or if it
                has been abandoned.
        """
        self._check_usable()
        try:
            data = await self._reader.readline()
        except (OSError, ValueError) as exc:
            raise TransportError(f"read failed: {exc}") from exc
        if not data.endswith(b"\n"):
            raise TransportError("connection closed unexpectedly")
        return data.decode(self._encoding, errors="replace").rstrip("\r\n")

    async def read_code_line(self, expected: ExpectedCodes = None) -> tuple[int, str]:
        """Read a status line and check its code.

        Args:
            expected: Acceptable code or codes; None accepts any.

        Returns:
            The code and the text following it.

        Raises:
            ResponseFormatError: If the line is not a status line.
            UnexpectedStatusError: If the code is not acceptable.
        """
        line = await self.read_line()
        code_text, _, text = line.partition(" ")
        if len(code_text) != 3 or not code_text.isdigit():
            raise ResponseFormatError(f"invalid status line: {line!r}")

        code = int(code_text)
        allowed = _normalize_expected(expected)
        if allowed and code not in allowed:
            raise UnexpectedStatusError(code, text, allowed)
        return code, text

    async def read_dot_lines(self) -> list[str]:
        """Read a dot-terminated block, removing dot-stuffing."""
        lines: list[str] = []
        while True:
            line = await self.read_line()
            if line.startswith(TERMINATOR):
                if len(line) == 1:
                    return lines
                line = line[1:]
            lines.append(line)

    async def cmd(self, line: str) -> int:
        """Send a command in its turn and return the exchange id.

        The caller reads the reply inside :meth:`response` with that id.
        """
        exchange = self.pipeline.next_id()
        try:
            await self.pipeline.start_request(exchange)
        except asyncio.CancelledError:
            # Never sent, so no reply will come either.
            self.pipeline.skip_request(exchange)
            self.pipeline.skip_response(exchange)
            raise

        command = line.split(" ", 1)[0].upper()
        try:
            logger.debug("nntp_command_sent", command=command, exchange=exchange)
            await self.write_line(line)
        except TransportError:
            self.pipeline.skip_response(exchange)
            raise
        except asyncio.CancelledError:
            # The line is already buffered; its reply still has to be read.
            self._commands[exchange] = command
            self._discard_reply(exchange)
            raise
        finally:
            self.pipeline.end_request(exchange)

        self._commands[exchange] = command
        return exchange

    async def start_response(self, exchange: int) -> None:
        """Wait for the turn of ``exchange`` on the read side.

        If the wait is cancelled, the reply is dropped when its turn comes.
        """
        try:
            await self.pipeline.start_response(exchange)
        except asyncio.CancelledError:
            self._discard_reply(exchange)
            raise

    def end_response(self, exchange: int, *, complete: bool = True) -> None:
        """Hand the read side to the next exchange.

        Args:
            exchange: The exchange holding the read side.
            complete: False if part of the reply may still be unread; the
                connection is then abandoned.
        """
        self._commands.pop(exchange, None)
        if not complete:
            self.abandon(f"reply to exchange {exchange} left unread")
        self.pipeline.end_response(exchange)

    @asynccontextmanager
    async def response(self, exchange: int) -> AsyncIterator[None]:
        """Hold the read side for the given exchange."""
        await self.start_response(exchange)
        complete = True
        try:
            yield
        except asyncio.CancelledError:
            complete = False
            raise
        finally:
            self.end_response(exchange, complete=complete)

    @asynccontextmanager
    async def exchange(self) -> AsyncIterator[int]:
        """Hold both sides for a multi-step exchange such as AUTHINFO."""
        exchange = self.pipeline.next_id()
        try:
            await self.pipeline.start_request(exchange)
        except asyncio.CancelledError:
            self.pipeline.skip_request(exchange)
            self.pipeline.skip_response(exchange)
            raise

        try:
            try:
                await self.pipeline.start_response(exchange)
            except asyncio.CancelledError:
                # Nothing has been written for this exchange yet.
                self.pipeline.skip_response(exchange)
                raise

            complete = True
            try:
                yield exchange
            except asyncio.CancelledError:
                complete = False
                raise
            finally:
                self.end_response(exchange, complete=complete)
        finally:
            self.pipeline.end_request(exchange)

    def _discard_reply(self, exchange: int) -> None:
        task = asyncio.get_running_loop().create_task(self._discard(exchange))
        self._discards.add(task)
        task.add_done_callback(self._discards.discard)

    async def _discard(self, exchange: int) -> None:
        await self.pipeline.start_response(exchange)
        command = self._commands.get(exchange, "")
        complete = False
        try:
            code, _ = await self.read_code_line()
            if _is_multiline(command, code):
                await self.read_dot_lines()
            complete = True
            logger.debug("nntp_reply_discarded", command=command, exchange=exchange, code=code)
        except (TransportError, ResponseFormatError) as exc:
            logger.warning("nntp_reply_discard_failed", command=command, exchange=exchange, error=str(exc))
        finally:
            self.end_response(exchange, complete=complete)

    async def close(self) -> None:
        for task in list(self._discards):
            task.cancel()
        self._writer.close()
        try:
            await self._writer.wait_closed()
        except OSError as exc:
            raise TransportError(f"close failed: {exc}") from exc
        logger.info("nntp_connection_closed")
