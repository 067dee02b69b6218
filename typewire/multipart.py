"""Incremental ``multipart/form-data`` reader.

The reader is fed the body chunk by chunk and hands back each part as soon
as its closing boundary has been seen, so at most one part is buffered.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterable, Dict, Iterable, Optional, Union

from infrastructure.monitoring import increment_metric

from .errors import MultipartError
from .types import BinaryPayload, ContentStream

_LOGGER = logging.getLogger("typewire.multipart")

PartValue = Union[str, BinaryPayload, ContentStream]


def parse_header(line: str) -> tuple[str, Dict[str, str]]:
    """Split a header value into its main value and ``key=value`` params."""
    parts = [p.strip() for p in line.split(";") if p.strip()]
    value = parts[0].lower() if parts else ""
    params: Dict[str, str] = {}
    for item in parts[1:]:
        if "=" in item:
            k, v = item.split("=", 1)
            params[k.strip().lower()] = v.strip().strip('"')
    return value, params


def boundary_from_content_type(content_type: Optional[str]) -> str:
    """Return the boundary of a ``multipart/form-data`` content type."""

    media, params = parse_header(content_type or "")
    if not media.startswith("multipart/"):
        raise MultipartError(f"Expected a multipart body, got {content_type!r}")
    boundary = params.get("boundary")
    if not boundary:
        raise MultipartError("Multipart content type has no boundary")
    return boundary


@dataclass
class Part:
    """One completed part of a multipart body."""

    name: Optional[str]
    filename: Optional[str] = None
    content_type: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)
    data: bytes = b""

    @property
    def is_file(self) -> bool:
        return bool(self.filename)

    @property
    def is_empty_upload(self) -> bool:
        """A file input submitted with no file chosen (``filename=""``)."""
        return self.filename == ""

    @property
    def is_binary(self) -> bool:
        # parts without a filename carrying a non-text payload
        if self.filename is not None or self.content_type is None:
            return False
        return not self.content_type.startswith("text/")

    def charset(self) -> str:
        _, params = parse_header(self.headers.get("content-type", ""))
        return params.get("charset", "utf-8")

    def value(self) -> PartValue:
        """Form items become ``str``, files and binary parts become streams."""

        if self.is_file:
            return BinaryPayload.from_bytes(self.data, self.content_type, self.filename)
        if self.is_binary:
            return ContentStream.from_bytes(self.data, self.content_type)
        try:
            return self.data.decode(self.charset())
        except (LookupError, UnicodeDecodeError) as exc:
            raise MultipartError(
                f"Form field could not be decoded: {exc}", self.name
            ) from exc


class MultipartReader:
    """State machine turning body chunks into :class:`Part` objects."""

    def __init__(
        self,
        boundary: str,
        *,
        max_part_size: Optional[int] = None,
        allowed_mime_types: Optional[set[str]] = None,
    ) -> None:
        self.delimiter = b"--" + boundary.encode("latin-1")
        self.max_part_size = max_part_size
        self.allowed_mime_types = allowed_mime_types
        self._buffer = bytearray()
        self._state = "preamble"
        self._part: Optional[Part] = None
        self._data = bytearray()

    @property
    def done(self) -> bool:
        return self._state == "done"

    def feed(self, chunk: bytes) -> list[Part]:
        """Consume *chunk* and return the parts it completed."""

        if self._state == "done":
            return []
        self._buffer.extend(chunk)
        completed: list[Part] = []
        while True:
            if self._state == "preamble":
                if not self._skip_preamble():
                    break
            elif self._state == "boundary":
                if not self._after_boundary():
                    break
            elif self._state == "headers":
                if not self._read_headers():
                    break
            elif self._state == "body":
                part = self._read_body()
                if part is None:
                    break
                completed.append(part)
            else:
                self._buffer.clear()
                break
        return completed

    def close(self) -> None:
        """Fail unless the closing boundary has been read."""

        if self._state != "done":
            raise MultipartError("Multipart body ended before the closing boundary")

    def _skip_preamble(self) -> bool:
        index = self._buffer.find(self.delimiter)
        if index < 0:
            keep = len(self.delimiter) - 1
            if len(self._buffer) > keep:
                del self._buffer[: len(self._buffer) - keep]
            return False
        del self._buffer[: index + len(self.delimiter)]
        self._state = "boundary"
        return True

    def _after_boundary(self) -> bool:
        if len(self._buffer) < 2:
            return False
        marker = bytes(self._buffer[:2])
        del self._buffer[:2]
        if marker == b"--":
            self._state = "done"
            self._buffer.clear()
        elif marker == b"\r\n":
            self._state = "headers"
        else:
            raise MultipartError("Malformed multipart boundary")
        return True

    def _read_headers(self) -> bool:
        if self._buffer.startswith(b"\r\n"):
            block = b""
            del self._buffer[:2]
        else:
            end = self._buffer.find(b"\r\n\r\n")
            if end < 0:
                return False
            block = bytes(self._buffer[:end])
            del self._buffer[: end + 4]
        headers: Dict[str, str] = {}
        for line in block.decode("utf-8", "replace").split("\r\n"):
            if ":" not in line:
                continue
            key, value = line.split(":", 1)
            headers[key.strip().lower()] = value.strip()
        _, disposition = parse_header(headers.get("content-disposition", ""))
        mime = headers.get("content-type")
        part = Part(
            name=disposition.get("name") or None,
            filename=disposition.get("filename"),
            content_type=parse_header(mime)[0] if mime else None,
            headers=headers,
        )
        if (
            part.is_file
            and self.allowed_mime_types is not None
            and part.content_type not in self.allowed_mime_types
        ):
            raise MultipartError(
                f"Unsupported media type {part.content_type!r} for file part",
                part.name,
            )
        self._part = part
        self._data = bytearray()
        self._state = "body"
        return True

    def _read_body(self) -> Optional[Part]:
        marker = b"\r\n" + self.delimiter
        index = self._buffer.find(marker)
        if index < 0:
            safe = len(self._buffer) - (len(marker) - 1)
            if safe > 0:
                self._data.extend(self._buffer[:safe])
                del self._buffer[:safe]
                self._check_size()
            return None
        self._data.extend(self._buffer[:index])
        del self._buffer[: index + len(marker)]
        self._check_size()
        part = self._part
        assert part is not None
        part.data = bytes(self._data)
        self._part = None
        self._data = bytearray()
        self._state = "boundary"
        return part

    def _check_size(self) -> None:
        part = self._part
        if part is None or self.max_part_size is None:
            return
        if (part.is_file or part.is_binary) and len(self._data) > self.max_part_size:
            raise MultipartError("file too large", part.name)


def _collect(values: Dict[str, Any], part: Part) -> None:
    increment_metric("multipart_parts_total")
    if part.name is None:
        _LOGGER.debug("ignoring unnamed multipart part")
        return
    if part.is_empty_upload:
        _LOGGER.debug("no file chosen for multipart part %s", part.name)
        return
    value = part.value()
    if part.name in values:
        previous = values[part.name]
        if isinstance(previous, list):
            previous.append(value)
        else:
            values[part.name] = [previous, value]
    else:
        values[part.name] = value


def drain_multipart(
    chunks: Iterable[bytes],
    boundary: str,
    *,
    max_part_size: Optional[int] = None,
    allowed_mime_types: Optional[set[str]] = None,
) -> Dict[str, Any]:
    """Read a whole multipart body into ``name -> value`` (lists if repeated)."""

    reader = MultipartReader(
        boundary, max_part_size=max_part_size, allowed_mime_types=allowed_mime_types
    )
    values: Dict[str, Any] = {}
    for chunk in chunks:
        for part in reader.feed(chunk):
            _collect(values, part)
    reader.close()
    return values


async def adrain_multipart(
    chunks: AsyncIterable[bytes],
    boundary: str,
    *,
    max_part_size: Optional[int] = None,
    allowed_mime_types: Optional[set[str]] = None,
) -> Dict[str, Any]:
    """Async counterpart of :func:`drain_multipart`."""

    reader = MultipartReader(
        boundary, max_part_size=max_part_size, allowed_mime_types=allowed_mime_types
    )
    values: Dict[str, Any] = {}
    async for chunk in chunks:
        for part in reader.feed(chunk):
            _collect(values, part)
    reader.close()
    return values


__all__ = [
    "MultipartReader",
    "Part",
    "PartValue",
    "adrain_multipart",
    "boundary_from_content_type",
    "parse_header",
    "drain_multipart",
]
