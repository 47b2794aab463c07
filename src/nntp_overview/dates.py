"""Parsing of the free-form Date values news servers put in overview data.

Servers disagree on the exact shape of the Date header, so a fixed list of
layouts is tried in order and the first one that matches wins. Layouts are
written with strptime-like directives but compiled here to regular
expressions, which keeps weekday and month names English regardless of the
process locale.

Directives:
    %a   weekday abbreviation (Mon..Sun, any letter case)
    %d   two-digit day of month
    %-d  one- or two-digit day of month
    %b   month abbreviation (Jan..Dec, any letter case)
    %Y   four-digit year
    %y   two-digit year (69-99 -> 19xx, 00-68 -> 20xx)
    %H   one- or two-digit hour
    %M   two-digit minute
    %S   two-digit second, optionally followed by a fraction (.123 or ,123)
    %z   numeric offset, +hhmm or -hhmm
    %Z   zone abbreviation such as GMT, CEST or MST
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone, tzinfo
from functools import lru_cache

import structlog

from nntp_overview.exceptions import DateFormatError

logger = structlog.get_logger()


DATE_LAYOUTS: tuple[str, ...] = (
    "%a, %d %b %Y %H:%M:%S %z",
    "%a, %d %b %Y %H:%M:%S %Z",
    "%-d %b %Y %H:%M:%S %z",
    "%a, %d %b %Y %H:%M:%S %z (%Z)",
    "%a, %d %b %y %H:%M:%S %Z",
    "%d %b %y %H:%M:%S %Z",
    "%d %b %Y %H:%M:%S %Z",
)

_WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

_DIRECTIVES = {
    "%a": "(?P<weekday>(?i:" + "|".join(_WEEKDAYS) + "))",
    "%d": r"(?P<day>\d{2})",
    "%-d": r"(?P<day>\d{1,2})",
    "%b": "(?P<month>(?i:" + "|".join(_MONTHS) + "))",
    "%Y": r"(?P<year>\d{4})",
    "%y": r"(?P<short_year>\d{2})",
    "%H": r"(?P<hour>\d{1,2})",
    "%M": r"(?P<minute>\d{2})",
    "%S": r"(?P<second>\d{2})(?:[.,](?P<fraction>\d+))?",
    "%z": r"(?P<offset>[+-]\d{4})",
    "%Z": r"(?P<zone>[A-Z]{1,5})",
}

_MONTH_NUMBERS = {name.lower(): number for number, name in enumerate(_MONTHS, start=1)}

_DIRECTIVE_RE = re.compile(r"%-?[a-zA-Z]")

# Offsets in minutes east of UTC. Consulted after the host zone.
ZONE_ABBREVIATIONS: dict[str, int] = {
    "UT": 0,
    "UTC": 0,
    "GMT": 0,
    "Z": 0,
    "EST": -5 * 60,
    "EDT": -4 * 60,
    "CST": -6 * 60,
    "CDT": -5 * 60,
    "MST": -7 * 60,
    "MDT": -6 * 60,
    "PST": -8 * 60,
    "PDT": -7 * 60,
    "AKST": -9 * 60,
    "AKDT": -8 * 60,
    "HST": -10 * 60,
    "AST": -4 * 60,
    "ADT": -3 * 60,
    "NST": -(3 * 60 + 30),
    "NDT": -(2 * 60 + 30),
    "WET": 0,
    "WEST": 60,
    "BST": 60,
    "CET": 60,
    "CEST": 2 * 60,
    "MET": 60,
    "MEST": 2 * 60,
    "EET": 2 * 60,
    "EEST": 3 * 60,
    "MSK": 3 * 60,
    "SAST": 2 * 60,
    "HKT": 8 * 60,
    "SGT": 8 * 60,
    "AWST": 8 * 60,
    "JST": 9 * 60,
    "KST": 9 * 60,
    "ACST": 9 * 60 + 30,
    "AEST": 10 * 60,
    "AEDT": 11 * 60,
    "NZST": 12 * 60,
    "NZDT": 13 * 60,
}


def _compile_layout(layout: str) -> re.Pattern[str]:
    parts: list[str] = []
    pos = 0
    for match in _DIRECTIVE_RE.finditer(layout):
        parts.append(re.escape(layout[pos : match.start()]))
        parts.append(_DIRECTIVES[match.group()])
        pos = match.end()
    parts.append(re.escape(layout[pos:]))
    return re.compile("".join(parts))


_COMPILED_LAYOUTS = tuple((layout, _compile_layout(layout)) for layout in DATE_LAYOUTS)


@lru_cache
def _host_zone() -> tzinfo | None:
    from nntp_overview.config import get_settings

    return get_settings().host_zone


def resolve_zone(abbreviation: str, year: int, host_zone: tzinfo | None = None) -> tzinfo:
    """Resolve a zone abbreviation to a fixed offset.

    The host zone is consulted first (its abbreviation in January and July of
    ``year``), then the table of well-known abbreviations. An abbreviation
    neither knows is taken as a zero offset.
    """
    zone = host_zone if host_zone is not None else _host_zone()
    if zone is not None:
        for month in (1, 7):
            sample = datetime(year, month, 1, tzinfo=zone)
            if sample.tzname() == abbreviation:
                offset = sample.utcoffset()
                if offset is not None:
                    return timezone(offset, abbreviation)

    minutes = ZONE_ABBREVIATIONS.get(abbreviation)
    if minutes is None:
        logger.debug("date_zone_abbreviation_unknown", zone=abbreviation)
        minutes = 0
    return timezone(timedelta(minutes=minutes), abbreviation)


def _parse_offset(value: str) -> timezone:
    sign = -1 if value[0] == "-" else 1
    hours, minutes = int(value[1:3]), int(value[3:5])
    return timezone(sign * timedelta(hours=hours, minutes=minutes))


def _microseconds(fraction: str | None) -> int:
    if not fraction:
        return 0
    return int(fraction[:6].ljust(6, "0"))


def _build(match: re.Match[str], host_zone: tzinfo | None) -> datetime:
    fields = match.groupdict()

    if fields.get("year") is not None:
        year = int(fields["year"])
    else:
        short_year = int(fields["short_year"])
        year = short_year + (1900 if short_year >= 69 else 2000)

    # The numeric offset governs whenever both it and a zone name are present.
    if fields.get("offset") is not None:
        tz: tzinfo = _parse_offset(fields["offset"])
    else:
        tz = resolve_zone(fields["zone"], year, host_zone)

    return datetime(
        year,
        _MONTH_NUMBERS[fields["month"].lower()],
        int(fields["day"]),
        int(fields["hour"]),
        int(fields["minute"]),
        int(fields["second"]),
        _microseconds(fields.get("fraction")),
        tzinfo=tz,
    )


def parse_date(value: str, *, host_zone: tzinfo | None = None) -> datetime:
    """Parse a Date value emitted by a news server.

    Args:
        value: Raw date text.
        host_zone: Zone consulted first for zone abbreviations. Defaults to the
            configured local timezone.

    Returns:
        A timezone-aware datetime.

    Raises:
        DateFormatError: If no known layout matches.
    """
    for _layout, pattern in _COMPILED_LAYOUTS:
        match = pattern.fullmatch(value)
        if match is None:
            continue
        try:
            return _build(match, host_zone)
        except ValueError:
            # Out-of-range components (day 31 in a 30-day month, hour 25)
            continue

    raise DateFormatError(value, DATE_LAYOUTS)
