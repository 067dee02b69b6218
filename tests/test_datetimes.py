"""Date and time grammars accepted in query strings, headers and forms."""

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from typewire.datetimes import (
    parse_date,
    parse_instant,
    parse_local_date_time,
    parse_local_time,
    parse_offset,
    parse_offset_date_time,
    parse_offset_time,
    parse_zoned_date_time,
)
from typewire.types import Instant, OffsetDateTime, ZonedDateTime


def test_date() -> None:
    assert parse_date("2021-02-27") == date(2021, 2, 27)
    for bad in ("2021-2-27", "2021-02-30", "20210227", "2021-02-27T10:00"):
        with pytest.raises(ValueError):
            parse_date(bad)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("10:30", time(10, 30)),
        ("10:30:15", time(10, 30, 15)),
        ("10:30:15.123", time(10, 30, 15, 123000)),
        ("10:30:15.123456789", time(10, 30, 15, 123456)),
    ],
)
def test_local_time(raw: str, expected: time) -> None:
    assert parse_local_time(raw) == expected


def test_local_time_rejects_offset() -> None:
    with pytest.raises(ValueError):
        parse_local_time("10:30+01:00")


def test_offset_time_requires_offset() -> None:
    parsed = parse_offset_time("10:30:00+02:00")
    assert parsed.utcoffset() == timedelta(hours=2)
    with pytest.raises(ValueError):
        parse_offset_time("10:30:00")


@pytest.mark.parametrize(
    "raw",
    [
        "2021-02-27T10:30:00",
        "2021-02-27 10:30:00",
        "2021-02-27T10:30",
        "2021-02-27 10:30",
    ],
)
def test_local_date_time_separators(raw: str) -> None:
    assert parse_local_date_time(raw) == datetime(2021, 2, 27, 10, 30)


@pytest.mark.parametrize("raw", ["2021-02-27", "2021-02-27T1030", "2021-02-27T10"])
def test_local_date_time_rejects(raw: str) -> None:
    with pytest.raises(ValueError):
        parse_local_date_time(raw)


@pytest.mark.parametrize(
    "raw, hours",
    [
        ("2021-02-27T10:30:00+01:00", 1),
        ("2021-02-27T10:30:00+01", 1),
        ("2021-02-27 10:30-05:00", -5),
        ("2021-02-27T10:30:00Z", 0),
        ("2021-02-27T10:30:00+18:00", 18),
        ("2021-02-27T10:30:00-18", -18),
    ],
)
def test_offset_date_time(raw: str, hours: int) -> None:
    parsed = parse_offset_date_time(raw)
    assert isinstance(parsed, OffsetDateTime)
    assert parsed.utcoffset() == timedelta(hours=hours)
    assert (parsed.hour, parsed.minute) == (10, 30)


@pytest.mark.parametrize(
    "raw",
    [
        "2021-02-27T10:30:00",
        "2021-02-27T10:30:00+18:01",
        "2021-02-27T10:30:00+19",
        "2021-02-27T10:30:00+01:60",
    ],
)
def test_offset_date_time_rejects(raw: str) -> None:
    with pytest.raises(ValueError):
        parse_offset_date_time(raw)


def test_offset_boundaries() -> None:
    assert parse_offset("+18:00").utcoffset(None) == timedelta(hours=18)
    assert parse_offset("Z") is timezone.utc
    with pytest.raises(ValueError):
        parse_offset("-18:00:01")


def test_zoned_with_zone_only() -> None:
    parsed = parse_zoned_date_time("2021-02-27T10:30:00[Europe/Paris]")
    assert isinstance(parsed, ZonedDateTime)
    assert parsed.tzinfo == ZoneInfo("Europe/Paris")
    assert parsed.utcoffset() == timedelta(hours=1)


def test_zoned_with_offset_and_zone() -> None:
    parsed = parse_zoned_date_time("2021-07-01T10:30:00+02:00[Europe/Paris]")
    assert parsed.tzinfo == ZoneInfo("Europe/Paris")
    assert parsed.utcoffset() == timedelta(hours=2)


def test_zoned_offset_picks_ambiguous_local_time() -> None:
    # 02:30 happens twice when Paris leaves summer time
    early = parse_zoned_date_time("2021-10-31T02:30:00+02:00[Europe/Paris]")
    late = parse_zoned_date_time("2021-10-31T02:30:00+01:00[Europe/Paris]")
    assert early.utcoffset() == timedelta(hours=2)
    assert late.utcoffset() == timedelta(hours=1)


def test_zoned_with_offset_only() -> None:
    parsed = parse_zoned_date_time("2021-02-27T10:30:00+03:00")
    assert parsed.utcoffset() == timedelta(hours=3)


@pytest.mark.parametrize(
    "raw",
    [
        "2021-02-27T10:30:00",
        "2021-02-27T10:30:00+01:00[Not/AZone]",
        "2021-02-27T10:30:00+01:00[]",
    ],
)
def test_zoned_rejects(raw: str) -> None:
    with pytest.raises(ValueError):
        parse_zoned_date_time(raw)


def test_instant_from_epoch_millis() -> None:
    parsed = parse_instant("1614421800000")
    assert isinstance(parsed, Instant)
    assert parsed == datetime(2021, 2, 27, 10, 30, tzinfo=timezone.utc)


def test_instant_from_offset_date_time() -> None:
    parsed = parse_instant("2021-02-27T11:30:00+01:00")
    assert parsed == datetime(2021, 2, 27, 10, 30, tzinfo=timezone.utc)
    assert parsed.utcoffset() == timedelta(0)


def test_instant_rejects_local_date_time() -> None:
    with pytest.raises(ValueError):
        parse_instant("2021-02-27T10:30:00")


@pytest.mark.parametrize(
    "parse, raw",
    [
        (parse_date, "٢٠٢١-٠٢-٢٧"),
        (parse_local_time, "１０:３０"),
        (parse_local_date_time, "2021-02-27T١٠:30:00"),
        (parse_offset_date_time, "2021-02-27T10:30:00+٠١:00"),
        (parse_offset, "+٠١:00"),
        (parse_instant, "١٢٣"),
    ],
)
def test_non_ascii_digits_are_rejected(parse, raw: str) -> None:
    with pytest.raises(ValueError):
        parse(raw)
