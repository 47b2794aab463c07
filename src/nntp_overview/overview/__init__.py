"""Overview decoding.

This package contains the field schema, the line decoder and the streaming
block reader used for XOVER responses.
"""

from .decoder import decode_block, decode_header
from .fields import FieldKind
from .schema import DEFAULT_SCHEMA, Column, FieldDescriptor, FieldSchema, build_schema, classify
from .stream import ClosableQueue, OverviewStream

__all__ = [
    "DEFAULT_SCHEMA",
    "ClosableQueue",
    "Column",
    "FieldDescriptor",
    "FieldKind",
    "FieldSchema",
    "OverviewStream",
    "build_schema",
    "classify",
    "decode_block",
    "decode_header",
]
