"""NNTP overview client - schema-driven decoding of news server overview data.

This package provides an asyncio client for NNTP servers that negotiates the
overview format, decodes XOVER responses into typed headers in bulk or as a
stream, and parses the many Date layouts servers emit.
"""

__version__ = "0.1.0"
__author__ = "Trickl"

from nntp_overview.client import NNTPClient
from nntp_overview.config import Settings, get_settings
from nntp_overview.dates import parse_date
from nntp_overview.models import Header, NewsgroupDetail, NewsgroupOverview, NewsgroupStatus
from nntp_overview.overview import (
    DEFAULT_SCHEMA,
    FieldDescriptor,
    FieldKind,
    FieldSchema,
    OverviewStream,
    build_schema,
    decode_block,
    decode_header,
)

__all__ = [
    "DEFAULT_SCHEMA",
    "FieldDescriptor",
    "FieldKind",
    "FieldSchema",
    "Header",
    "NNTPClient",
    "NewsgroupDetail",
    "NewsgroupOverview",
    "NewsgroupStatus",
    "OverviewStream",
    "Settings",
    "__author__",
    "__version__",
    "build_schema",
    "decode_block",
    "decode_header",
    "get_settings",
    "parse_date",
]
