"""Overview field schema.

A server reports the layout of its overview lines through LIST OVERVIEW.FMT:
one label per column, in column order. The message number column is never
listed; it always comes first.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from datetime import tzinfo
from typing import TYPE_CHECKING, Any, overload

from nntp_overview.overview.fields import (
    COLUMN_TRANSFORMS,
    HEADER_ATTRIBUTES,
    ColumnTransform,
    FieldKind,
)

if TYPE_CHECKING:
    from nntp_overview.models import Header

_FULL_SUFFIX = ":full"

_KNOWN_LABELS: dict[str, FieldKind] = {
    "subject:": FieldKind.SUBJECT,
    "from:": FieldKind.AUTHOR,
    "date:": FieldKind.DATE,
    "message-id:": FieldKind.MESSAGE_ID,
    "references:": FieldKind.REFERENCES,
    "bytes:": FieldKind.BYTE_COUNT,
    ":bytes": FieldKind.BYTE_COUNT,
    "lines:": FieldKind.LINE_COUNT,
    ":lines": FieldKind.LINE_COUNT,
}

DEFAULT_LABELS: tuple[str, ...] = (
    "Subject:",
    "From:",
    "Date:",
    "Message-ID:",
    "References:",
    ":bytes",
    ":lines",
)


def classify(label: str) -> FieldKind:
    """Map a reported label to its field kind. Unknown labels are extensions."""
    return _KNOWN_LABELS.get(label.lower(), FieldKind.EXTENSION)


@dataclass(frozen=True)
class FieldDescriptor:
    """One column of an overview line.

    ``prefix`` is the label without the ``full`` marker, e.g. ``Xref:`` for
    ``Xref:full``; servers repeat it at the start of "full" column values.
    ``key`` is the extension map key, the prefix without its trailing colon.
    """

    name: str
    kind: FieldKind
    full: bool = False
    prefix: str = field(init=False, repr=False, compare=False)
    key: str = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        prefix = self.name
        if prefix.lower().endswith(_FULL_SUFFIX):
            prefix = prefix[: -len("full")]
        object.__setattr__(self, "prefix", prefix)
        object.__setattr__(self, "key", prefix.removesuffix(":"))

    @classmethod
    def from_label(cls, label: str) -> FieldDescriptor:
        kind = classify(label)
        full = kind is FieldKind.EXTENSION and label.lower().endswith(_FULL_SUFFIX)
        return cls(name=label, kind=kind, full=full)


@dataclass(frozen=True)
class Column:
    """A descriptor bound to its Header attribute, transform and host zone."""

    descriptor: FieldDescriptor
    attribute: str | None
    transform: ColumnTransform
    host_zone: tzinfo | None = None

    @property
    def prefix(self) -> str:
        return self.descriptor.prefix

    @property
    def key(self) -> str:
        return self.descriptor.key

    def decode(self, value: str) -> Any:
        return self.transform(self, value)


class FieldSchema:
    """Immutable, ordered list of field descriptors.

    The per-column transform table is resolved once here so decoding a line
    only indexes into it. ``host_zone`` is handed to the Date transform for
    resolving zone abbreviations; None means the configured local zone.
    """

    __slots__ = ("_descriptors", "_columns", "_host_zone")

    def __init__(
        self,
        descriptors: Iterable[FieldDescriptor],
        *,
        host_zone: tzinfo | None = None,
    ) -> None:
        self._descriptors: tuple[FieldDescriptor, ...] = tuple(descriptors)
        self._host_zone = host_zone
        self._columns: tuple[Column, ...] = tuple(
            Column(d, HEADER_ATTRIBUTES[d.kind], COLUMN_TRANSFORMS[d.kind], host_zone)
            for d in self._descriptors
        )

    @classmethod
    def from_labels(cls, labels: Iterable[str], *, host_zone: tzinfo | None = None) -> FieldSchema:
        return cls((FieldDescriptor.from_label(label.strip()) for label in labels), host_zone=host_zone)

    @property
    def descriptors(self) -> tuple[FieldDescriptor, ...]:
        return self._descriptors

    @property
    def labels(self) -> tuple[str, ...]:
        return tuple(d.name for d in self._descriptors)

    @property
    def host_zone(self) -> tzinfo | None:
        return self._host_zone

    def with_host_zone(self, host_zone: tzinfo | None) -> FieldSchema:
        """Same columns, resolving Date zone abbreviations against ``host_zone``."""
        return FieldSchema(self._descriptors, host_zone=host_zone)

    def column(self, index: int) -> Column:
        """Resolved column for a column index."""
        return self._columns[index]

    def decode(self, raw_line: str) -> Header:
        """Decode one overview line with this schema."""
        from nntp_overview.overview.decoder import decode_header

        return decode_header(self, raw_line)

    def __len__(self) -> int:
        return len(self._descriptors)

    def __iter__(self) -> Iterator[FieldDescriptor]:
        return iter(self._descriptors)

    @overload
    def __getitem__(self, index: int) -> FieldDescriptor: ...

    @overload
    def __getitem__(self, index: slice) -> tuple[FieldDescriptor, ...]: ...

    def __getitem__(self, index: int | slice) -> FieldDescriptor | tuple[FieldDescriptor, ...]:
        return self._descriptors[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FieldSchema):
            return NotImplemented
        return self._descriptors == other._descriptors and self._host_zone == other._host_zone

    def __hash__(self) -> int:
        return hash((self._descriptors, self._host_zone))

    def __repr__(self) -> str:
        return f"FieldSchema({list(self.labels)!r})"


def build_schema(labels: Sequence[str], *, host_zone: tzinfo | None = None) -> FieldSchema:
    """Build a schema from the labels a server reported, in column order."""
    return FieldSchema.from_labels(labels, host_zone=host_zone)


DEFAULT_SCHEMA = FieldSchema.from_labels(DEFAULT_LABELS)
