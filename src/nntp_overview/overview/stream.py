"""Streaming consumption of XOVER blocks.

A background task reads raw lines, decodes them and publishes to two queues:
decoded headers on one bounded queue, decode and terminal errors on another.
Both queues are closed when the task ends, whatever the reason, so consumers
can iterate them until exhaustion. The producer waits while either queue is
full, so a block with many bad lines needs its errors read alongside the
headers, as :meth:`OverviewStream.collect` does.
"""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Generic, TypeVar

import structlog

from nntp_overview.exceptions import DecodeError, NNTPError, QueueClosed
from nntp_overview.models import Header
from nntp_overview.overview.decoder import decode_header
from nntp_overview.overview.schema import FieldSchema

logger = structlog.get_logger()

T = TypeVar("T")

TERMINATOR = "."


class ClosableQueue(Generic[T]):
    """FIFO queue for one producer and any number of consumers.

    Closing stops further puts, but items already queued can still be taken.
    Iterating with ``async for`` ends once the queue is closed and empty.
    """

    def __init__(self, maxsize: int = 0) -> None:
        self._maxsize = maxsize
        self._items: deque[T] = deque()
        self._closed = False
        self._cond = asyncio.Condition()

    @property
    def closed(self) -> bool:
        return self._closed

    def qsize(self) -> int:
        return len(self._items)

    def _full(self) -> bool:
        return self._maxsize > 0 and len(self._items) >= self._maxsize

    async def put(self, item: T) -> None:
        """Append an item, waiting while the queue is full.

        Raises:
            QueueClosed: If the queue is or becomes closed.
        """
        async with self._cond:
            await self._cond.wait_for(lambda: self._closed or not self._full())
            if self._closed:
                raise QueueClosed("put on a closed queue")
            self._items.append(item)
            self._cond.notify_all()

    async def get(self) -> T:
        """Take the oldest item, waiting while the queue is empty and open.

        Raises:
            QueueClosed: If the queue is closed and drained.
        """
        async with self._cond:
            await self._cond.wait_for(lambda: self._items or self._closed)
            if not self._items:
                raise QueueClosed("queue closed")
            item = self._items.popleft()
            self._cond.notify_all()
            return item

    async def close(self) -> None:
        async with self._cond:
            self._closed = True
            self._cond.notify_all()

    def __aiter__(self) -> AsyncIterator[T]:
        return self

    async def __anext__(self) -> T:
        try:
            return await self.get()
        except QueueClosed:
            raise StopAsyncIteration from None


ReadLine = Callable[[], Awaitable[str]]


class OverviewStream:
    """Incremental decoder for one dot-terminated overview block.

    Attributes:
        headers: Decoded headers in read order.
        errors: Per-line decode errors and, last, any terminal error such as
            a transport failure.
    """

    def __init__(
        self,
        schema: FieldSchema,
        read_line: ReadLine,
        *,
        queue_size: int = 1024,
        error_queue_size: int = 65536,
        on_finish: Callable[[bool], None] | None = None,
    ) -> None:
        """Create a stream; call :meth:`start` to begin reading.

        Args:
            schema: Layout of the overview lines.
            read_line: Coroutine function returning the next raw line.
            queue_size: Capacity of the header queue.
            error_queue_size: Capacity of the error queue.
            on_finish: Called once the producer stops, with True if the block
                was read up to its terminator.
        """
        self.schema = schema
        self.headers: ClosableQueue[Header] = ClosableQueue(queue_size)
        self.errors: ClosableQueue[NNTPError] = ClosableQueue(error_queue_size)
        self._read_line = read_line
        self._on_finish = on_finish
        self._task: asyncio.Task[None] | None = None
        self._complete = False

    def start(self) -> OverviewStream:
        """Start the producer task on the running loop."""
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._produce())
        return self

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    @property
    def complete(self) -> bool:
        """Whether the block was read up to its terminator."""
        return self._complete

    def cancel(self) -> None:
        """Stop reading. Headers already queued stay available."""
        if self._task is not None:
            self._task.cancel()

    async def wait_closed(self) -> None:
        """Wait for the producer to finish."""
        if self._task is None:
            return
        try:
            await asyncio.shield(self._task)
        except asyncio.CancelledError:
            if not self._task.cancelled():
                raise

    async def collect(self) -> tuple[list[Header], list[NNTPError]]:
        """Drain both queues; convenient when the block fits in memory anyway."""

        async def drain(queue: ClosableQueue[T]) -> list[T]:
            return [item async for item in queue]

        headers, errors = await asyncio.gather(drain(self.headers), drain(self.errors))
        return headers, errors

    async def _produce(self) -> None:
        decoded = failed = 0
        try:
            while True:
                line = await self._read_line()
                if line.startswith(TERMINATOR):
                    if len(line) == 1:
                        self._complete = True
                        break
                    line = line[1:]

                try:
                    header = decode_header(self.schema, line)
                except DecodeError as exc:
                    failed += 1
                    logger.debug("xover_line_decode_failed", error=str(exc))
                    await self.errors.put(exc)
                    continue

                await self.headers.put(header)
                decoded += 1

            logger.info("xover_stream_completed", decoded=decoded, failed=failed)
        except NNTPError as exc:
            # Anything but a per-line decode failure ends the block.
            logger.warning("xover_stream_failed", error=str(exc), decoded=decoded, failed=failed)
            await self.errors.put(exc)
        except asyncio.CancelledError:
            logger.info("xover_stream_cancelled", decoded=decoded, failed=failed)
            raise
        finally:
            await self.headers.close()
            await self.errors.close()
            if self._on_finish is not None:
                self._on_finish(self._complete)
