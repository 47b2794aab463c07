"""Custom exceptions for the NNTP overview client."""

from __future__ import annotations

from collections.abc import Collection, Sequence


class NNTPError(Exception):
    """Base exception for all NNTP overview client errors."""


class ConfigurationError(NNTPError):
    """Exception raised for configuration related errors."""


class TransportError(NNTPError):
    """Exception raised when the connection fails or closes unexpectedly."""


class UnexpectedStatusError(NNTPError):
    """Exception raised when a status line carries an unexpected code."""

    def __init__(self, code: int, text: str, expected: Collection[int] = ()) -> None:
        self.code = code
        self.text = text
        self.expected = tuple(expected)
        allowed = ", ".join(str(c) for c in self.expected) or "any"
        super().__init__(f"unexpected status {code} (expected {allowed}): {text}")


class InvalidGreetingError(UnexpectedStatusError):
    """Exception raised when the server greeting is not 200 or 201."""


class ResponseFormatError(NNTPError):
    """Exception raised when a single-line or listing reply has the wrong shape."""


class QueueClosed(NNTPError):
    """Exception raised on put/get against a closed stream queue."""


class DecodeError(NNTPError):
    """Base exception for failures decoding one overview line.

    The decoder attaches the raw line and the zero-based column (counted after
    the message number) through :meth:`bind` before re-raising.
    """

    line: str | None = None
    column: int | None = None

    def bind(self, line: str, column: int | None = None) -> DecodeError:
        self.line = line
        self.column = column
        return self

    def __str__(self) -> str:
        message = super().__str__()
        if self.line is None:
            return message
        if self.column is None:
            return f"failed to parse line {self.line!r}: {message}"
        return f"failed to parse line {self.line!r}, field {self.column}: {message}"


class FieldCountError(DecodeError):
    """Exception raised when a line has more columns than the schema describes."""

    def __init__(self, known: int, given: int) -> None:
        self.known = known
        self.given = given
        super().__init__(
            f"invalid number of headers given: format only knows about {known} field(s), "
            f"field {given} given"
        )


class NumericParseError(DecodeError):
    """Exception raised when a column expected to be an unsigned integer is not."""

    def __init__(self, field: str, value: str) -> None:
        self.field = field
        self.value = value
        super().__init__(f"failed to parse {field} {value!r}: not an unsigned integer")


class DateFormatError(DecodeError):
    """Exception raised when no known date layout matches a value."""

    def __init__(self, value: str, layouts: Sequence[str]) -> None:
        self.value = value
        self.layouts = tuple(layouts)
        super().__init__(
            f"invalid date format {value!r}: does not match known format. "
            f"Known formats: {list(self.layouts)}"
        )
