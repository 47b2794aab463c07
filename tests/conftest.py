"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable

import pytest
import pytest_asyncio

from nntp_overview.client import NNTPClient
from nntp_overview.transport import NNTPConnection

SAMPLE_DATE = "Sun, 10 May 2020 00:32:22 +0000"


class RecordingWriter:
    """Stands in for asyncio.StreamWriter and keeps everything written."""

    def __init__(self) -> None:
        self.data = bytearray()
        self.closed = False

    def write(self, data: bytes) -> None:
        self.data.extend(data)

    async def drain(self) -> None:
        return None

    def close(self) -> None:
        self.closed = True

    async def wait_closed(self) -> None:
        return None

    @property
    def lines(self) -> list[str]:
        return self.data.decode("utf-8").split("\r\n")[:-1]


class ScriptedServer:
    """Feeds canned server output into a StreamReader."""

    def __init__(self) -> None:
        self.reader = asyncio.StreamReader()
        self.writer = RecordingWriter()

    def line(self, text: str) -> None:
        self.reader.feed_data(f"{text}\r\n".encode("utf-8"))

    def block(self, lines: Iterable[str]) -> None:
        """Send a dot-terminated block, dot-stuffing lines as a server would."""
        for text in lines:
            if text.startswith("."):
                text = "." + text
            self.line(text)
        self.line(".")

    def close(self) -> None:
        self.reader.feed_eof()

    def connection(self) -> NNTPConnection:
        return NNTPConnection(self.reader, self.writer)


@pytest.fixture
def mock_settings():
    """Provide mock settings for testing."""
    from nntp_overview.config import Settings

    return Settings(
        host="news.test",
        port=119,
        stream_queue_size=4,
        log_level="DEBUG",
        debug=True,
    )


@pytest.fixture
def default_line() -> str:
    """Provide an overview line matching the default schema."""
    return f"1\tsome subject\tsome author\t{SAMPLE_DATE}\t<some-msg-id>\t\t67755\t519"


@pytest_asyncio.fixture
async def server() -> ScriptedServer:
    """Provide a scripted server bound to the running event loop."""
    return ScriptedServer()


@pytest_asyncio.fixture
async def client(server: ScriptedServer, mock_settings) -> NNTPClient:
    """Provide a client that has read a 200 greeting."""
    server.line("200 some-newsserver")
    return await NNTPClient.from_connection(server.connection(), mock_settings)
