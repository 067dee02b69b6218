"""String to value converters keyed by leaf type.

A :class:`Converter` pairs a strict ``parse`` function with an optional
default. :meth:`Converter.convert` never raises for malformed input; it
returns :class:`Ok` or :class:`ParseFailure` and applies the leniency rules:

* nullable targets degrade unparsable input to ``None``;
* required numeric targets fall back to ``0`` when the registry is lenient;
* everything else (and strict enums, always) reports a failure.
"""

from __future__ import annotations

import enum
import logging
import re
import threading
import uuid
from dataclasses import MISSING, dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Callable, Iterator, Tuple, Union

from .datetimes import (
    parse_date,
    parse_instant,
    parse_local_date_time,
    parse_local_time,
    parse_offset_date_time,
    parse_offset_time,
    parse_zoned_date_time,
)
from .descriptor import Kind, TypeDescriptor, describe
from .errors import UnhandledTypeError
from .markers import STRICT_ENUM_ATTR, has_marker
from .schema import STRING, Primitive
from .types import (
    Float32,
    Instant,
    Int8,
    Int16,
    Int32,
    Int64,
    OffsetDateTime,
    OffsetTime,
    ZonedDateTime,
)

_LOGGER = logging.getLogger("typewire.converters")

PARSE_ERRORS = (ValueError, ArithmeticError)

_INT_RE = re.compile(r"[+-]?[0-9]+\Z")
_FLOAT_RE = re.compile(
    r"[+-]?(?:NaN|Infinity|(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?[fFdD]?)\Z"
)
_DECIMAL_RE = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?\Z")
_UUID_RE = re.compile(
    r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}\Z"
)


@dataclass(frozen=True)
class Ok:
    value: Any


@dataclass(frozen=True)
class ParseFailure:
    reason: Exception


Result = Union[Ok, ParseFailure]


@dataclass(frozen=True)
class Converter:
    """Bidirectional leaf converter; ``str(value)`` is the serialiser."""

    target: TypeDescriptor
    parse: Callable[[str], Any]
    default: Any = field(default_factory=lambda: MISSING)
    schema: Primitive = STRING
    lenient: bool = False
    strict: bool = False

    @property
    def has_default(self) -> bool:
        return self.default is not MISSING

    def convert(self, raw: str, *, nullable: bool = False) -> Result:
        try:
            return Ok(self.parse(raw))
        except PARSE_ERRORS as exc:
            if self.strict:
                return ParseFailure(exc)
            if nullable:
                return Ok(None)
            if self.lenient and self.has_default:
                return Ok(self.default)
            return ParseFailure(exc)

    def map(self, construct: Callable[[Any], Any], target: TypeDescriptor) -> "Converter":
        """Compose ``construct`` over the parsed value and the default."""

        parse = self.parse

        def mapped(raw: str) -> Any:
            return construct(parse(raw))

        default = MISSING
        if self.has_default:
            try:
                default = construct(self.default)
            except PARSE_ERRORS:
                _LOGGER.debug("%s rejects the default of %s", target, self.target)
        return Converter(target, mapped, default, self.schema, self.lenient, self.strict)


def _integer(cls: type) -> Callable[[str], Any]:
    def parse(raw: str) -> Any:
        if not _INT_RE.match(raw):
            raise ValueError(f'For input string: "{raw}"')
        return cls(int(raw))

    return parse


def parse_float(raw: str) -> float:
    if not _FLOAT_RE.match(raw):
        raise ValueError(f'For input string: "{raw}"')
    if raw[-1] in "fFdD":
        raw = raw[:-1]
    return float(raw)


def parse_decimal(raw: str) -> Decimal:
    if not _DECIMAL_RE.match(raw):
        raise ValueError(f'For input string: "{raw}"')
    return Decimal(raw)


def parse_bool(raw: str) -> bool:
    return raw.lower() == "true"


def parse_uuid(raw: str) -> uuid.UUID:
    if not _UUID_RE.match(raw):
        raise ValueError(f"Invalid UUID string: {raw}")
    return uuid.UUID(raw)


def _identity(raw: str) -> str:
    return raw


def enum_converter(cls: type[enum.Enum]) -> Converter:
    """Parse enum members by name, then by the string form of their value."""

    strict = has_marker(cls, STRICT_ENUM_ATTR)
    names = tuple(member.name for member in cls)
    by_name = dict(cls.__members__)
    by_value = {str(member.value): member for member in cls}

    def parse(raw: str) -> enum.Enum:
        member = by_name.get(raw)
        if member is None and not strict:
            member = by_value.get(raw)
        if member is None:
            raise ValueError(
                f"Invalid value [{raw}] for enum parameter of type {cls.__name__}. "
                f"Expected: [{','.join(names)}]"
            )
        return member

    return Converter(
        describe(cls), parse, schema=Primitive("string", enum=names), strict=strict
    )


def builtin_converters(lenient: bool = True) -> Iterator[Tuple[Any, Converter]]:
    """Yield ``(type, converter)`` pairs for every built-in leaf type."""

    numeric = [
        (Int8, _integer(Int8), Int8(0), Primitive("integer", "int32")),
        (Int16, _integer(Int16), Int16(0), Primitive("integer", "int32")),
        (Int32, _integer(Int32), Int32(0), Primitive("integer", "int32")),
        (Int64, _integer(Int64), Int64(0), Primitive("integer", "int64")),
        (int, _integer(int), 0, Primitive("integer")),
        (Decimal, parse_decimal, Decimal(0), Primitive("number")),
        (float, parse_float, 0.0, Primitive("number", "double")),
        (Float32, lambda raw: Float32(parse_float(raw)), Float32(0.0), Primitive("number", "float")),
    ]
    for tp, parse, default, schema in numeric:
        yield tp, Converter(describe(tp), parse, default, schema, lenient=lenient)

    others = [
        (bool, parse_bool, False, Primitive("boolean")),
        (str, _identity, MISSING, STRING),
        (uuid.UUID, parse_uuid, MISSING, Primitive("string", "uuid")),
        (date, parse_date, MISSING, Primitive("string", "date")),
        (time, parse_local_time, MISSING, Primitive("string", "time")),
        (OffsetTime, parse_offset_time, MISSING, Primitive("string", "time")),
        (datetime, parse_local_date_time, MISSING, Primitive("string", "date-time")),
        (OffsetDateTime, parse_offset_date_time, MISSING, Primitive("string", "date-time")),
        (ZonedDateTime, parse_zoned_date_time, MISSING, Primitive("string", "date-time")),
        (Instant, parse_instant, MISSING, Primitive("string", "date-time")),
    ]
    for tp, parse, default, schema in others:
        yield tp, Converter(describe(tp), parse, default, schema)


class ConverterRegistry:
    """Map leaf types to converters; later registrations win."""

    def __init__(self, *, lenient: bool = True, builtins: bool = True) -> None:
        self.lenient = lenient
        self._lock = threading.Lock()
        self._converters: dict[TypeDescriptor, Converter] = {}
        if builtins:
            for tp, converter in builtin_converters(lenient):
                self.add(tp, converter)

    def register(
        self,
        tp: Any,
        parse: Callable[[str], Any],
        default: Any = MISSING,
        *,
        schema: Primitive = STRING,
        lenient: bool = False,
        strict: bool = False,
    ) -> Converter:
        """Install a converter for *tp* built from *parse* and *default*."""

        key = describe(tp).non_null()
        return self.add(key, Converter(key, parse, default, schema, lenient, strict))

    def add(self, tp: Any, converter: Converter) -> Converter:
        key = describe(tp).non_null()
        with self._lock:
            self._converters[key] = converter
        return converter

    def handles(self, tp: Any) -> bool:
        key = describe(tp).non_null()
        with self._lock:
            if key in self._converters:
                return True
        return key.kind is Kind.ENUM

    def resolve(self, tp: Any) -> Converter:
        """Return the converter for *tp* or raise :class:`UnhandledTypeError`."""

        key = describe(tp).non_null()
        with self._lock:
            converter = self._converters.get(key)
        if converter is not None:
            return converter
        if key.kind is Kind.ENUM:
            return self.add(key, enum_converter(key.origin))
        raise UnhandledTypeError(key)

    def types(self) -> frozenset[TypeDescriptor]:
        with self._lock:
            return frozenset(self._converters)


__all__ = [
    "Converter",
    "ConverterRegistry",
    "Ok",
    "PARSE_ERRORS",
    "ParseFailure",
    "Result",
    "builtin_converters",
    "enum_converter",
    "parse_bool",
    "parse_decimal",
    "parse_float",
    "parse_uuid",
]
