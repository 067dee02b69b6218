"""Leaf and payload types understood by the converter registry."""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from datetime import datetime, time
from typing import BinaryIO, Optional


class _BoundedInt(int):
    BITS = 64

    def __new__(cls, value: int = 0) -> "_BoundedInt":
        limit = 1 << (cls.BITS - 1)
        if not -limit <= int(value) < limit:
            raise ValueError(f"{value} out of range for {cls.__name__}")
        return super().__new__(cls, value)


class Int8(_BoundedInt):
    """Signed 8-bit integer."""

    BITS = 8


class Int16(_BoundedInt):
    """Signed 16-bit integer."""

    BITS = 16


class Int32(_BoundedInt):
    """Signed 32-bit integer."""

    BITS = 32


class Int64(_BoundedInt):
    """Signed 64-bit integer."""

    BITS = 64


class Float32(float):
    """Single precision float marker; the value itself is a Python float."""


class OffsetTime(time):
    """Time of day carrying a mandatory fixed UTC offset."""


class OffsetDateTime(datetime):
    """Date-time carrying a mandatory fixed UTC offset."""


class ZonedDateTime(datetime):
    """Date-time bound to an IANA zone or a fixed offset."""


class Instant(datetime):
    """Absolute point in time, always normalised to UTC."""


@dataclass
class ContentStream:
    """Binary part or body together with its declared content type."""

    content_type: Optional[str]
    stream: BinaryIO = field(repr=False)

    def read(self, size: int = -1) -> bytes:
        return self.stream.read(size)

    @classmethod
    def from_bytes(
        cls, data: bytes, content_type: Optional[str] = None
    ) -> "ContentStream":
        return cls(content_type, io.BytesIO(data))


@dataclass
class BinaryPayload(ContentStream):
    """Uploaded file part: a stream plus its optional original filename."""

    filename: Optional[str] = None

    @classmethod
    def from_bytes(  # type: ignore[override]
        cls,
        data: bytes,
        content_type: Optional[str] = None,
        filename: Optional[str] = None,
    ) -> "BinaryPayload":
        return cls(content_type, io.BytesIO(data), filename)


__all__ = [
    "BinaryPayload",
    "ContentStream",
    "Float32",
    "Instant",
    "Int16",
    "Int32",
    "Int64",
    "Int8",
    "OffsetDateTime",
    "OffsetTime",
    "ZonedDateTime",
]
