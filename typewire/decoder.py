"""Materialise typed objects from raw wire values."""

from __future__ import annotations

import logging
from typing import Any, AsyncIterable, Iterable, Mapping, Optional, Sequence

from infrastructure.monitoring import increment_metric

from .converters import Converter, ParseFailure
from .descriptor import FieldDescriptor, Kind, NoneType, TypeDescriptor, describe
from .errors import (
    ClientError,
    ParseError,
    RequiredFieldError,
    UnhandledTypeError,
    UnsupportedMediaTypeError,
)
from .multipart import (
    adrain_multipart,
    boundary_from_content_type,
    drain_multipart,
    parse_header,
)
from .types import BinaryPayload, ContentStream
from .wrappers import WrapperResolver

_LOGGER = logging.getLogger("typewire.decoder")


def _values(raw: Any) -> list[Any]:
    if raw is None:
        return []
    if isinstance(raw, (list, tuple)):
        return list(raw)
    return [raw]


def _first(raw: Any) -> Any:
    values = _values(raw)
    return values[0] if values else None


def media_type_matches(content_type: Optional[str], accepted: Sequence[str]) -> bool:
    """Match a content type against patterns such as ``image/*``."""

    media, _ = parse_header(content_type or "")
    for pattern in accepted:
        pattern = pattern.lower()
        if pattern in ("*/*", media):
            return True
        if pattern.endswith("/*") and media.startswith(pattern[:-1]):
            return True
    return False


class TypedValueDecoder:
    """Build instances of parameter-set and form types from raw values.

    ``raw`` maps wire names to a string, a list of strings (repeated
    parameters) or, for multipart bodies, a decoded stream object. Decoding
    is all-or-nothing: the first failing field raises and nothing is built.
    """

    def __init__(
        self,
        resolver: WrapperResolver,
        *,
        max_upload_size: Optional[int] = None,
        allowed_mime_types: Optional[set[str]] = None,
    ) -> None:
        self.resolver = resolver
        self.max_upload_size = max_upload_size
        self.allowed_mime_types = allowed_mime_types

    def decode(self, tp: Any, raw: Mapping[str, Any]) -> Any:
        """Decode *raw* into an instance of *tp*; ``None`` decodes to ``None``."""

        if tp is None or tp is NoneType:
            return None
        desc = self._target(tp)
        try:
            values = {
                field.key: self._field(field, raw.get(field.wire_name))
                for field in desc.fields()
            }
        except ClientError as exc:
            self._failed(desc, exc)
            raise
        return desc.construct(values)

    def decode_multipart(
        self, tp: Any, chunks: Iterable[bytes], content_type: Optional[str]
    ) -> Any:
        """Drain a multipart body and decode it into *tp*."""

        if tp is None or tp is NoneType:
            return None
        desc = self._target(tp)
        try:
            values = drain_multipart(
                chunks,
                boundary_from_content_type(content_type),
                max_part_size=self.max_upload_size,
                allowed_mime_types=self.allowed_mime_types,
            )
        except ClientError as exc:
            self._failed(desc, exc)
            raise
        return self.decode(desc, values)

    async def adecode_multipart(
        self, tp: Any, chunks: AsyncIterable[bytes], content_type: Optional[str]
    ) -> Any:
        if tp is None or tp is NoneType:
            return None
        desc = self._target(tp)
        try:
            values = await adrain_multipart(
                chunks,
                boundary_from_content_type(content_type),
                max_part_size=self.max_upload_size,
                allowed_mime_types=self.allowed_mime_types,
            )
        except ClientError as exc:
            self._failed(desc, exc)
            raise
        return self.decode(desc, values)

    def decode_binary(
        self,
        tp: Any,
        stream: Any,
        content_type: Optional[str],
        accepted: Optional[Sequence[str]] = None,
    ) -> Any:
        """Bind a raw body to *tp*.

        *tp* is either a stream type itself or an object type declaring a
        single stream field. A content type outside *accepted* fails with
        :class:`UnsupportedMediaTypeError`.
        """

        if tp is None or tp is NoneType:
            return None
        desc = describe(tp).non_null()
        if accepted and not media_type_matches(content_type, accepted):
            exc = UnsupportedMediaTypeError(content_type, list(accepted))
            self._failed(desc, exc)
            raise exc
        if isinstance(stream, (bytes, bytearray)):
            stream = ContentStream.from_bytes(bytes(stream), content_type)
        elif not isinstance(stream, ContentStream):
            stream = ContentStream(content_type, stream)
        if desc.kind is Kind.STREAM:
            return self._adapt_stream("body", desc, stream)
        fields = desc.fields() if desc.kind is Kind.OBJECT else ()
        if len(fields) != 1 or fields[0].type.kind is not Kind.STREAM:
            raise UnhandledTypeError(desc, "binary bodies need a single stream field")
        (only,) = fields
        return desc.construct({only.key: self._adapt_stream(only.wire_name, only.type, stream)})

    def _target(self, tp: Any) -> TypeDescriptor:
        desc = describe(tp).non_null()
        if desc.kind is not Kind.OBJECT:
            raise UnhandledTypeError(desc, "not a parameter set or form type")
        return desc

    def _failed(self, desc: TypeDescriptor, exc: ClientError) -> None:
        increment_metric("decode_failures_total")
        _LOGGER.info("decoding %s failed: %s", desc, exc.message)

    def _converter(self, tp: TypeDescriptor) -> Converter:
        return self.resolver.converter_for(tp)

    def _field(self, field: FieldDescriptor, raw: Any) -> Any:
        kind = field.type.kind
        if kind is Kind.STREAM:
            return self._stream_field(field, _first(raw))
        if kind is Kind.ARRAY:
            return self._sequence_field(field, _values(raw))
        return self._scalar_field(field, _first(raw))

    def _absent(self, field: FieldDescriptor, converter: Optional[Converter]) -> Any:
        if field.has_default:
            return field.default_value()
        if field.type.nullable:
            return None
        if converter is not None and converter.has_default:
            return converter.default
        raise RequiredFieldError(field.wire_name)

    def _parse(
        self, field: FieldDescriptor, tp: TypeDescriptor, converter: Converter, raw: Any
    ) -> Any:
        if not isinstance(raw, str):
            raise ParseError(field.wire_name, raw, tp, "expected a text value")
        result = converter.convert(raw, nullable=tp.nullable)
        if isinstance(result, ParseFailure):
            raise ParseError(field.wire_name, raw, tp, str(result.reason)) from result.reason
        return result.value

    def _scalar_field(self, field: FieldDescriptor, raw: Any) -> Any:
        converter = self._converter(field.type)
        if raw is None:
            return self._absent(field, converter)
        return self._parse(field, field.type, converter, raw)

    def _sequence_field(self, field: FieldDescriptor, raw: list[Any]) -> Any:
        container = field.type.non_null()
        item = container.item
        if item.kind is Kind.STREAM:
            values = [self._adapt_stream(field.wire_name, item, value) for value in raw]
        else:
            converter = self._converter(item)
            values = [self._parse(field, item, converter, value) for value in raw]
        if not values:
            if field.has_default:
                return field.default_value()
            if field.type.nullable:
                return None
        return container.origin(values)

    def _stream_field(self, field: FieldDescriptor, raw: Any) -> Any:
        if raw is None:
            return self._absent(field, None)
        return self._adapt_stream(field.wire_name, field.type, raw)

    def _adapt_stream(self, name: str, tp: TypeDescriptor, value: Any) -> Any:
        origin = tp.non_null().origin
        if isinstance(value, (bytes, bytearray)):
            value = ContentStream.from_bytes(bytes(value))
        if not isinstance(value, ContentStream):
            if not hasattr(value, "read"):
                raise ParseError(name, value, tp, "expected a binary payload")
            value = ContentStream(None, value)
        if issubclass(origin, BinaryPayload):
            if isinstance(value, BinaryPayload):
                return value
            return BinaryPayload(value.content_type, value.stream)
        if issubclass(origin, ContentStream):
            return value
        if issubclass(origin, (bytes, bytearray)):
            return origin(value.read())
        return value.stream


__all__ = ["TypedValueDecoder", "media_type_matches"]
