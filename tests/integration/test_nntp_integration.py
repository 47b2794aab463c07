"""Integration tests against a live news server.

Set NNTP_TEST_ADDRESS (host:port) and NNTP_TEST_GROUP to run them; credentials
are taken from the usual NNTP_USERNAME / NNTP_PASSWORD settings.
"""

from __future__ import annotations

import os

import pytest

from nntp_overview.client import NNTPClient
from nntp_overview.config import Settings

ADDRESS = os.environ.get("NNTP_TEST_ADDRESS")
GROUP = os.environ.get("NNTP_TEST_GROUP", "alt.test")

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(not ADDRESS, reason="NNTP_TEST_ADDRESS not set"),
]


async def _connect() -> NNTPClient:
    host, _, port = (ADDRESS or "").partition(":")
    settings = Settings(host=host, port=int(port or 119))
    client = await NNTPClient.connect(settings)
    if settings.username:
        await client.authenticate(settings.username, settings.password or "")
    return client


@pytest.mark.asyncio
async def test_date_and_format() -> None:
    client = await _connect()
    try:
        assert (await client.date()).tzinfo is not None
        schema = await client.initialize_overview_format()
        assert len(schema) > 0
    finally:
        await client.quit()


@pytest.mark.asyncio
async def test_xover_bulk_and_stream_agree() -> None:
    client = await _connect()
    try:
        group = await client.group(GROUP)
        start = max(group.low, group.high - 20)
        article_range = f"{start}-{group.high}"

        bulk = await client.xover(article_range)
        stream = await client.xover_stream(article_range)
        streamed, errors = await stream.collect()

        assert errors == []
        assert [h.message_number for h in streamed] == [h.message_number for h in bulk]
    finally:
        await client.quit()
