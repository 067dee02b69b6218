"""Date and time grammars accepted at the HTTP boundary.

All parsers raise :class:`ValueError` on input outside their grammar.
Fractions of a second accept up to nine digits; anything below microsecond
precision is truncated because :mod:`datetime` stores microseconds.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional, Type, TypeVar
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .types import Instant, OffsetDateTime, OffsetTime, ZonedDateTime

MAX_OFFSET = timedelta(hours=18)
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_DATE = r"(?P<year>[0-9]{4})-(?P<month>[0-9]{2})-(?P<day>[0-9]{2})"
_TIME = (
    r"(?P<hour>[0-9]{2}):(?P<minute>[0-9]{2})"
    r"(?::(?P<second>[0-9]{2})(?:\.(?P<fraction>[0-9]{1,9}))?)?"
)
_OFFSET = r"(?P<offset>Z|[+-][0-9]{2}(?::?[0-9]{2}(?::?[0-9]{2})?)?)"
_ZONE = r"\[(?P<zone>[^\[\]]+)\]"

DATE_RE = re.compile(rf"{_DATE}\Z")
LOCAL_TIME_RE = re.compile(rf"{_TIME}\Z")
OFFSET_TIME_RE = re.compile(rf"{_TIME}{_OFFSET}\Z")
LOCAL_DATE_TIME_RE = re.compile(rf"{_DATE}[T ]{_TIME}\Z")
OFFSET_DATE_TIME_RE = re.compile(rf"{_DATE}[T ]{_TIME}{_OFFSET}\Z")
ZONED_DATE_TIME_RE = re.compile(rf"{_DATE}[T ]{_TIME}{_OFFSET}?(?:{_ZONE})?\Z")
EPOCH_MILLIS_RE = re.compile(r"[+-]?[0-9]+\Z")
OFFSET_RE = re.compile(r"[+-][0-9]{2}(?::?[0-9]{2}(?::?[0-9]{2})?)?\Z")

_DT = TypeVar("_DT", bound=datetime)


def _match(pattern: re.Pattern[str], value: str, what: str) -> re.Match[str]:
    match = pattern.match(value)
    if match is None:
        raise ValueError(f"Text '{value}' could not be parsed as {what}")
    return match


def _time_parts(match: re.Match[str]) -> tuple[int, int, int, int]:
    fraction = match.group("fraction") or ""
    micros = int(fraction.ljust(9, "0")[:6]) if fraction else 0
    return (
        int(match.group("hour")),
        int(match.group("minute")),
        int(match.group("second") or 0),
        micros,
    )


def _date_parts(match: re.Match[str]) -> tuple[int, int, int]:
    return int(match.group("year")), int(match.group("month")), int(match.group("day"))


def parse_offset(text: str) -> timezone:
    """Parse ``Z``, ``+HH``, ``+HH:MM`` or ``+HH:MM:SS`` within +/-18:00."""

    if text == "Z":
        return timezone.utc
    if not OFFSET_RE.match(text):
        raise ValueError(f"Invalid offset '{text}'")
    sign = -1 if text[0] == "-" else 1
    digits = text[1:].replace(":", "")
    hours = int(digits[0:2])
    minutes = int(digits[2:4] or 0)
    seconds = int(digits[4:6] or 0)
    if minutes > 59 or seconds > 59:
        raise ValueError(f"Invalid offset '{text}'")
    delta = timedelta(hours=hours, minutes=minutes, seconds=seconds)
    if delta > MAX_OFFSET:
        raise ValueError(f"Offset '{text}' is outside the range -18:00 to +18:00")
    return timezone(sign * delta)


def parse_zone(zone_id: str) -> ZoneInfo:
    try:
        return ZoneInfo(zone_id)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown time-zone ID '{zone_id}'") from exc


def _rebuild(cls: Type[_DT], value: datetime) -> _DT:
    return cls(
        value.year,
        value.month,
        value.day,
        value.hour,
        value.minute,
        value.second,
        value.microsecond,
        value.tzinfo,
        fold=value.fold,
    )


def parse_date(value: str) -> date:
    """ISO-8601 calendar date, ``yyyy-MM-dd``."""

    return date(*_date_parts(_match(DATE_RE, value, "a date")))


def parse_local_time(value: str) -> time:
    """ISO-8601 local time, ``HH:mm[:ss[.fraction]]``."""

    return time(*_time_parts(_match(LOCAL_TIME_RE, value, "a local time")))


def parse_offset_time(value: str) -> OffsetTime:
    """Local time followed by a mandatory numeric offset or ``Z``."""

    match = _match(OFFSET_TIME_RE, value, "an offset time")
    return OffsetTime(*_time_parts(match), tzinfo=parse_offset(match.group("offset")))


def _naive(match: re.Match[str]) -> datetime:
    return datetime(*_date_parts(match), *_time_parts(match))


def parse_local_date_time(value: str) -> datetime:
    """``yyyy-MM-dd['T'| ]HH:mm[:ss[.fraction]]`` without offset."""

    return _naive(_match(LOCAL_DATE_TIME_RE, value, "a local date-time"))


def parse_offset_date_time(value: str) -> OffsetDateTime:
    """Local date-time followed by a mandatory offset (``+HH:MM``, ``+HH`` or ``Z``)."""

    match = _match(OFFSET_DATE_TIME_RE, value, "an offset date-time")
    offset = parse_offset(match.group("offset"))
    return _rebuild(OffsetDateTime, _naive(match).replace(tzinfo=offset))


def parse_zoned_date_time(value: str) -> ZonedDateTime:
    """Offset date-time with an optional bracketed IANA zone id.

    Either the offset or the zone must be present. When both are given the
    zone wins and the offset only picks between ambiguous local times.
    """

    match = _match(ZONED_DATE_TIME_RE, value, "a zoned date-time")
    offset_text: Optional[str] = match.group("offset")
    zone_id: Optional[str] = match.group("zone")
    if offset_text is None and zone_id is None:
        raise ValueError(f"Text '{value}' has neither an offset nor a zone")
    offset = parse_offset(offset_text) if offset_text is not None else None
    naive = _naive(match)
    if zone_id is None:
        return _rebuild(ZonedDateTime, naive.replace(tzinfo=offset))
    zone: tzinfo = parse_zone(zone_id)
    result = naive.replace(tzinfo=zone)
    if offset is not None and result.utcoffset() != offset.utcoffset(None):
        folded = naive.replace(tzinfo=zone, fold=1)
        if folded.utcoffset() == offset.utcoffset(None):
            result = folded
    return _rebuild(ZonedDateTime, result)


def parse_instant(value: str) -> Instant:
    """Epoch milliseconds, or an offset date-time converted to UTC."""

    if EPOCH_MILLIS_RE.match(value):
        try:
            moment = EPOCH + timedelta(milliseconds=int(value))
        except OverflowError as exc:
            raise ValueError(f"Epoch milliseconds {value} out of range") from exc
    else:
        moment = parse_offset_date_time(value).astimezone(timezone.utc)
    return _rebuild(Instant, moment)


__all__ = [
    "EPOCH",
    "MAX_OFFSET",
    "parse_date",
    "parse_instant",
    "parse_local_date_time",
    "parse_local_time",
    "parse_offset",
    "parse_offset_date_time",
    "parse_offset_time",
    "parse_zone",
    "parse_zoned_date_time",
]
