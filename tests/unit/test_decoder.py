"""Unit tests for overview line decoding."""

from datetime import datetime, timedelta, timezone

import pytest

from nntp_overview.exceptions import DateFormatError, DecodeError, FieldCountError, NumericParseError
from nntp_overview.models import Header
from nntp_overview.overview import DEFAULT_SCHEMA, build_schema, decode_block, decode_header

XREF_SCHEMA = build_schema(
    ["Subject:", "From:", "Date:", "Message-ID:", "References:", ":bytes", ":lines", "Xref:full"]
)

RFC3977_DATE = datetime(1998, 10, 6, 4, 38, 40, tzinfo=timezone(timedelta(hours=-5)))


def test_decode_default_schema(default_line: str) -> None:
    header = decode_header(DEFAULT_SCHEMA, default_line)

    assert header == Header(
        message_number=1,
        subject="some subject",
        author="some author",
        date=datetime(2020, 5, 10, 0, 32, 22, tzinfo=timezone.utc),
        message_id="<some-msg-id>",
        references="",
        byte_count=67755,
        line_count=519,
    )
    assert header.extensions == {}


def test_round_trip_minimal_line() -> None:
    header = decode_header(DEFAULT_SCHEMA, "1\tA\tB\t1 Jan 2020 12:34:56 +0100\t<id>\t\t100\t50")

    assert header.message_number == 1
    assert header.subject == "A"
    assert header.author == "B"
    assert header.message_id == "<id>"
    assert header.references == ""
    assert header.byte_count == 100
    assert header.line_count == 50
    assert header.extensions == {}


@pytest.mark.parametrize("lines", ["", " ", "   "])
def test_empty_line_count_is_zero(lines: str) -> None:
    header = decode_header(DEFAULT_SCHEMA, f"1\tA\tB\t1 Jan 2020 12:34:56 +0100\t<id>\t\t100\t{lines}")

    assert header.line_count == 0


def test_full_extension_prefix_is_stripped() -> None:
    line = "1\tA\tB\t1 Jan 2020 12:34:56 +0100\t<id>\t\t100\t50\tXref: g1:1 g2:2"

    header = decode_header(XREF_SCHEMA, line)

    assert header.extensions == {"Xref": "g1:1 g2:2"}


def test_decode_rfc3977_examples() -> None:
    schema = build_schema(
        [
            "Subject:",
            "From:",
            "Date:",
            "Message-ID:",
            "References:",
            ":bytes",
            ":lines",
            "Xref:full",
            "Distribution:full",
        ]
    )
    first = (
        "3000234\tI am just a test article\t\"Demo User\" <nobody@example.com>\t"
        "6 Oct 1998 04:38:40 -0500\t<45223423@example.com>\t<45454@example.net>\t1234\t17\t"
        "Xref: news.example.com misc.test:3000363"
    )
    second = (
        "3000235\tAnother test article\tnobody@nowhere.to (Demo User)\t"
        "6 Oct 1998 04:38:45 -0500\t<45223425@to.to>\t\t4818\t37\t\tDistribution: fi"
    )

    h1 = decode_header(schema, first)
    h2 = decode_header(schema, second)

    assert h1.message_number == 3000234
    assert h1.author == '"Demo User" <nobody@example.com>'
    assert h1.date == RFC3977_DATE
    assert h1.references == "<45454@example.net>"
    assert h1.extensions == {"Xref": "news.example.com misc.test:3000363"}

    assert h2.line_count == 37
    # Xref sent empty is present; nothing was omitted.
    assert h2.extensions == {"Xref": "", "Distribution": "fi"}


def test_omitted_trailing_extension_is_absent() -> None:
    line = "1\tA\tB\t1 Jan 2020 12:34:56 +0100\t<id>\t\t100\t50"

    header = decode_header(XREF_SCHEMA, line)

    assert "Xref" not in header.extensions


def test_plain_extension_keeps_value_and_trims() -> None:
    schema = build_schema(["Subject:", "X-Newsreader:"])

    header = decode_header(schema, "5\tHello\t  slrn 1.0  ")

    assert header.extensions == {"X-Newsreader": "slrn 1.0"}
    assert header.date is None


def test_message_number_zero() -> None:
    assert decode_header(build_schema([]), "0").message_number == 0


def test_too_many_columns_is_field_count_error(default_line: str) -> None:
    with pytest.raises(FieldCountError) as excinfo:
        decode_header(DEFAULT_SCHEMA, default_line + "\textra")

    error = excinfo.value
    assert error.known == 7
    assert error.given == 8
    assert error.line == default_line + "\textra"


def test_field_count_error_regardless_of_column_content() -> None:
    schema = build_schema(["Subject:"])

    with pytest.raises(FieldCountError):
        decode_header(schema, "1\tA\tB")
    with pytest.raises(FieldCountError):
        decode_header(schema, "1\t\t")


@pytest.mark.parametrize("number", ["abc", "", "-1", "+1", " 1", "1.5"])
def test_invalid_message_number(number: str) -> None:
    with pytest.raises(NumericParseError) as excinfo:
        decode_header(DEFAULT_SCHEMA, f"{number}\tA")

    assert excinfo.value.value == number
    assert excinfo.value.field == "message number"


def test_message_number_limited_to_64_bits() -> None:
    assert decode_header(DEFAULT_SCHEMA, "18446744073709551615\tA").message_number == 2**64 - 1

    with pytest.raises(NumericParseError):
        decode_header(DEFAULT_SCHEMA, "18446744073709551616\tA")


def test_date_uses_schema_host_zone() -> None:
    china = timezone(timedelta(hours=8), "CST")
    schema = DEFAULT_SCHEMA.with_host_zone(china)

    header = decode_header(schema, "1\tA\tB\tWed, 01 Jan 2020 12:00:00 CST\t<id>\t\t1\t1")

    assert header.date is not None
    assert header.date.utcoffset() == timedelta(hours=8)


def test_invalid_byte_count() -> None:
    line = "1\tA\tB\t1 Jan 2020 12:34:56 +0100\t<id>\t\t12a\t5"

    with pytest.raises(NumericParseError) as excinfo:
        decode_header(DEFAULT_SCHEMA, line)

    assert excinfo.value.field == ":bytes"
    assert excinfo.value.column == 5
    assert "12a" in str(excinfo.value)


def test_invalid_date_wraps_offending_text() -> None:
    with pytest.raises(DateFormatError) as excinfo:
        decode_header(DEFAULT_SCHEMA, "1\tA\tB\tyesterday")

    assert excinfo.value.value == "yesterday"
    assert excinfo.value.column == 2
    assert "yesterday" in str(excinfo.value)


def test_schema_decode_delegates(default_line: str) -> None:
    assert DEFAULT_SCHEMA.decode(default_line) == decode_header(DEFAULT_SCHEMA, default_line)


def test_decode_block_fails_fast(default_line: str) -> None:
    with pytest.raises(DecodeError):
        decode_block(DEFAULT_SCHEMA, [default_line, "bad", default_line])


def test_decode_block_keeps_order(default_line: str) -> None:
    second = default_line.replace("1\t", "2\t", 1)

    headers = decode_block(DEFAULT_SCHEMA, [default_line, second])

    assert [h.message_number for h in headers] == [1, 2]


def test_bad_line_does_not_affect_next_decode(default_line: str) -> None:
    with pytest.raises(DecodeError):
        decode_header(DEFAULT_SCHEMA, "x")

    assert decode_header(DEFAULT_SCHEMA, default_line).message_number == 1
