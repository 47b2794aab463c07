"""Value transforms applied to individual overview columns.

Each transform takes the resolved column and its raw text and
returns the decoded value. ``HEADER_ATTRIBUTES`` names the Header attribute a
kind decodes into; extension kinds have none and land in the extension map.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Any

from nntp_overview.dates import parse_date
from nntp_overview.exceptions import NumericParseError

if TYPE_CHECKING:
    from nntp_overview.overview.schema import Column


class FieldKind(str, Enum):
    """Semantic role of an overview column."""

    SUBJECT = "subject"
    AUTHOR = "author"
    DATE = "date"
    MESSAGE_ID = "message_id"
    REFERENCES = "references"
    BYTE_COUNT = "byte_count"
    LINE_COUNT = "line_count"
    EXTENSION = "extension"


ColumnTransform = Callable[["Column", str], Any]

MAX_UNSIGNED = 2**64 - 1


def parse_unsigned(value: str, field: str) -> int:
    """Parse a base-10 unsigned 64-bit integer without sign, spaces or separators."""
    if not (value.isascii() and value.isdigit()):
        raise NumericParseError(field, value)
    number = int(value)
    if number > MAX_UNSIGNED:
        raise NumericParseError(field, value)
    return number


def decode_text(column: Column, value: str) -> str:
    return value


def decode_date(column: Column, value: str) -> Any:
    return parse_date(value, host_zone=column.host_zone)


def decode_count(column: Column, value: str) -> int:
    # Some servers send the separator but leave the value out.
    if not value.strip():
        return 0
    return parse_unsigned(value, column.descriptor.name)


def decode_extension(column: Column, value: str) -> str:
    if column.descriptor.full:
        value = value.removeprefix(column.prefix)
    return value.strip()


COLUMN_TRANSFORMS: dict[FieldKind, ColumnTransform] = {
    FieldKind.SUBJECT: decode_text,
    FieldKind.AUTHOR: decode_text,
    FieldKind.DATE: decode_date,
    FieldKind.MESSAGE_ID: decode_text,
    FieldKind.REFERENCES: decode_text,
    FieldKind.BYTE_COUNT: decode_count,
    FieldKind.LINE_COUNT: decode_count,
    FieldKind.EXTENSION: decode_extension,
}

HEADER_ATTRIBUTES: dict[FieldKind, str | None] = {
    FieldKind.SUBJECT: "subject",
    FieldKind.AUTHOR: "author",
    FieldKind.DATE: "date",
    FieldKind.MESSAGE_ID: "message_id",
    FieldKind.REFERENCES: "references",
    FieldKind.BYTE_COUNT: "byte_count",
    FieldKind.LINE_COUNT: "line_count",
    FieldKind.EXTENSION: None,
}
