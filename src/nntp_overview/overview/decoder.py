"""Decoding of overview lines into Header records."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from nntp_overview.exceptions import DecodeError, FieldCountError
from nntp_overview.models import Header
from nntp_overview.overview.fields import parse_unsigned
from nntp_overview.overview.schema import FieldSchema


def decode_header(schema: FieldSchema, raw_line: str) -> Header:
    """Decode a single overview line.

    Args:
        schema: Layout of the columns following the message number.
        raw_line: Tab-separated overview line, already unescaped.

    Returns:
        Header: The decoded record.

    Raises:
        DecodeError: If the message number or any column fails to decode, or
            the line has more columns than the schema describes.
    """
    number, *values = raw_line.split("\t")

    # The message number is never part of the reported format.
    try:
        message_number = parse_unsigned(number, "message number")
    except DecodeError as exc:
        exc.bind(raw_line)
        raise

    fields: dict[str, Any] = {}
    extensions: dict[str, str] = {}

    for column, value in enumerate(values):
        if column >= len(schema):
            raise FieldCountError(len(schema), column + 1).bind(raw_line, column)

        entry = schema.column(column)
        try:
            decoded = entry.decode(value)
        except DecodeError as exc:
            exc.bind(raw_line, column)
            raise

        if entry.attribute is None:
            extensions[entry.key] = decoded
        else:
            fields[entry.attribute] = decoded

    return Header(message_number=message_number, extensions=extensions, **fields)


def decode_block(schema: FieldSchema, lines: Iterable[str]) -> list[Header]:
    """Decode every line of a block, failing on the first bad line."""
    return [decode_header(schema, line) for line in lines]
