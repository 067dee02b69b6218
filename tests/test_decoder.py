"""Decoding raw parameter maps and bodies into typed objects."""

import asyncio
import enum
import io
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import List, NewType, Optional, Set

import pytest
from pydantic import BaseModel, Field

from infrastructure.monitoring import get_metric
from typewire.converters import ConverterRegistry
from typewire.decoder import TypedValueDecoder, media_type_matches
from typewire.errors import (
    MultipartError,
    ParseError,
    RequiredFieldError,
    UnhandledTypeError,
    UnsupportedMediaTypeError,
)
from typewire.markers import strict_enum, wrapper
from typewire.types import BinaryPayload, ContentStream
from typewire.wrappers import WrapperResolver

Quantity = NewType("Quantity", int)


class Sort(enum.Enum):
    ASC = "asc"
    DESC = "desc"


@strict_enum
class Mode(enum.Enum):
    FAST = "fast"


@wrapper
@dataclass(frozen=True)
class ProductId:
    value: uuid.UUID


@dataclass
class ById:
    id: uuid.UUID


@dataclass
class Counted:
    count: Optional[int]


@dataclass
class At:
    when: datetime


@dataclass
class ProductLookup:
    product: ProductId


@dataclass
class UploadForm:
    title: str
    photo: Optional[BinaryPayload]


@dataclass
class Search:
    q: str
    page: int
    size: int = 20
    sort: Optional[Sort] = None
    tags: List[str] = field(default_factory=list)
    ids: Set[int] = field(default_factory=set)
    limit: Optional[Quantity] = None


@dataclass
class Flags:
    enabled: bool


@dataclass
class Strict:
    mode: Optional[Mode]


@dataclass
class Bounded:
    low: int
    high: int

    def __post_init__(self) -> None:
        if self.low > self.high:
            raise ValueError("low must not exceed high")


class Filter(BaseModel):
    since: date = Field(alias="from")
    until: Optional[date] = None
    at: Optional[time] = None


@dataclass
class Avatar:
    image: ContentStream


@dataclass
class Blob:
    data: bytes


@dataclass
class Gallery:
    pictures: List[BinaryPayload]


# end-to-end scenarios


def test_missing_required_uuid(decoder: TypedValueDecoder) -> None:
    with pytest.raises(RequiredFieldError) as info:
        decoder.decode(ById, {})
    assert info.value.field == "id"
    assert info.value.status_code == 400
    assert info.value.errors()[0]["type"] == "missing"
    assert get_metric("decode_failures_total") == 1.0


def test_missing_nullable_int(decoder: TypedValueDecoder) -> None:
    assert decoder.decode(Counted, {}) == Counted(count=None)


def test_local_date_time(decoder: TypedValueDecoder) -> None:
    decoded = decoder.decode(At, {"when": "2021-02-27T10:30:00"})
    assert decoded.when == datetime(2021, 2, 27, 10, 30)


def test_local_date_time_without_time(decoder: TypedValueDecoder) -> None:
    with pytest.raises(ParseError) as info:
        decoder.decode(At, {"when": "2021-02-27"})
    error = info.value
    assert (error.field, error.value) == ("when", "2021-02-27")
    assert isinstance(error.__cause__, ValueError)
    assert error.message.startswith("Could not parse field when with value '2021-02-27'")


def test_wrapper_field(decoder: TypedValueDecoder) -> None:
    raw = "b6c903d1-efdb-47a9-9e17-463b2a7b1011"
    decoded = decoder.decode(ProductLookup, {"product": raw})
    assert decoded.product == ProductId(uuid.UUID(raw))


def _upload_body(with_photo: bool) -> bytes:
    parts = [({"Content-Disposition": 'form-data; name="title"'}, b"Hi")]
    if with_photo:
        parts.append(
            (
                {
                    "Content-Disposition": 'form-data; name="photo"; filename="me.png"',
                    "Content-Type": "image/png",
                },
                b"\x89PNG\r\n",
            )
        )
    return pytest.multipart_body("XyZ", parts)


def test_multipart_with_file(decoder: TypedValueDecoder) -> None:
    form = decoder.decode_multipart(
        UploadForm, [_upload_body(True)], "multipart/form-data; boundary=XyZ"
    )
    assert form.title == "Hi"
    assert form.photo.filename == "me.png"
    assert form.photo.content_type == "image/png"
    assert form.photo.read() == b"\x89PNG\r\n"


def test_multipart_without_file(decoder: TypedValueDecoder) -> None:
    form = decoder.decode_multipart(
        UploadForm, [_upload_body(False)], "multipart/form-data; boundary=XyZ"
    )
    assert form == UploadForm(title="Hi", photo=None)


def test_multipart_with_no_file_chosen(decoder: TypedValueDecoder) -> None:
    body = pytest.multipart_body(
        "XyZ",
        [
            ({"Content-Disposition": 'form-data; name="title"'}, b"Hi"),
            (
                {
                    "Content-Disposition": 'form-data; name="photo"; filename=""',
                    "Content-Type": "application/octet-stream",
                },
                b"",
            ),
        ],
    )
    form = decoder.decode_multipart(UploadForm, [body], "multipart/form-data; boundary=XyZ")
    assert form == UploadForm(title="Hi", photo=None)


# leniency and defaults


def test_unparsable_required_int_is_zero(decoder: TypedValueDecoder) -> None:
    decoded = decoder.decode(Search, {"q": "shoes", "page": "notanumber"})
    assert decoded.page == 0
    assert decoded.size == 20


def test_strict_mode_rejects_unparsable_int() -> None:
    strict = TypedValueDecoder(WrapperResolver(ConverterRegistry(lenient=False)))
    with pytest.raises(ParseError):
        strict.decode(Search, {"q": "shoes", "page": "notanumber"})


def test_missing_string_is_required(decoder: TypedValueDecoder) -> None:
    with pytest.raises(RequiredFieldError) as info:
        decoder.decode(Search, {"page": "1"})
    assert info.value.field == "q"


def test_missing_int_and_bool_use_converter_defaults(decoder: TypedValueDecoder) -> None:
    assert decoder.decode(Search, {"q": "x"}).page == 0
    assert decoder.decode(Flags, {}) == Flags(enabled=False)


def test_declared_default_wins(decoder: TypedValueDecoder) -> None:
    decoded = decoder.decode(Search, {"q": "x", "page": "1"})
    assert decoded.size == 20
    assert decoded.tags == []
    assert decoded.ids == set()


def test_multi_valued_fields(decoder: TypedValueDecoder) -> None:
    decoded = decoder.decode(
        Search,
        {"q": ["first", "second"], "page": "2", "tags": ["a", "b"], "ids": ["3", "3", "4"]},
    )
    assert decoded.q == "first"
    assert decoded.tags == ["a", "b"]
    assert decoded.ids == {3, 4}


def test_list_item_failures_name_the_field() -> None:
    strict = TypedValueDecoder(WrapperResolver(ConverterRegistry(lenient=False)))
    with pytest.raises(ParseError) as info:
        strict.decode(Search, {"q": "x", "page": "1", "ids": ["1", "two"]})
    assert info.value.field == "ids"


def test_enum_and_newtype_fields(decoder: TypedValueDecoder) -> None:
    decoded = decoder.decode(
        Search, {"q": "x", "page": "1", "sort": "desc", "limit": "5"}
    )
    assert decoded.sort is Sort.DESC
    assert decoded.limit == 5
    assert decoder.decode(Search, {"q": "x", "page": "1", "sort": "up"}).sort is None


def test_strict_enum_rejects_unknown_value(decoder: TypedValueDecoder) -> None:
    with pytest.raises(ParseError) as info:
        decoder.decode(Strict, {"mode": "slow"})
    assert "Expected: [FAST]" in info.value.message
    assert decoder.decode(Strict, {}) == Strict(mode=None)


def test_constructor_errors_propagate(decoder: TypedValueDecoder) -> None:
    with pytest.raises(ValueError, match="low must not exceed high"):
        decoder.decode(Bounded, {"low": "5", "high": "1"})


def test_pydantic_target_with_alias(decoder: TypedValueDecoder) -> None:
    decoded = decoder.decode(Filter, {"from": "2021-02-27", "at": "10:30"})
    assert decoded.since == date(2021, 2, 27)
    assert decoded.until is None
    assert decoded.at == time(10, 30)


def test_pydantic_missing_date_is_required(decoder: TypedValueDecoder) -> None:
    with pytest.raises(RequiredFieldError) as info:
        decoder.decode(Filter, {})
    assert info.value.field == "from"


def test_none_target_is_unit(decoder: TypedValueDecoder) -> None:
    assert decoder.decode(None, {"anything": "1"}) is None


def test_non_object_target_is_unhandled(decoder: TypedValueDecoder) -> None:
    with pytest.raises(UnhandledTypeError):
        decoder.decode(int, {})


def test_stream_field_rejects_text(decoder: TypedValueDecoder) -> None:
    with pytest.raises(ParseError):
        decoder.decode(UploadForm, {"title": "x", "photo": "not a file"})


def test_repeated_file_parts(decoder: TypedValueDecoder) -> None:
    part = {
        "Content-Disposition": 'form-data; name="pictures"; filename="a.jpg"',
        "Content-Type": "image/jpeg",
    }
    body = pytest.multipart_body("b", [(part, b"one"), (part, b"two")])
    gallery = decoder.decode_multipart(Gallery, [body], "multipart/form-data; boundary=b")
    assert [p.read() for p in gallery.pictures] == [b"one", b"two"]


def test_multipart_upload_limits(resolver: WrapperResolver) -> None:
    limited = TypedValueDecoder(resolver, max_upload_size=3, allowed_mime_types={"image/png"})
    with pytest.raises(MultipartError, match="file too large"):
        limited.decode_multipart(
            UploadForm, [_upload_body(True)], "multipart/form-data; boundary=XyZ"
        )
    picky = TypedValueDecoder(resolver, allowed_mime_types={"image/gif"})
    with pytest.raises(MultipartError, match="Unsupported media type"):
        picky.decode_multipart(
            UploadForm, [_upload_body(True)], "multipart/form-data; boundary=XyZ"
        )
    assert get_metric("decode_failures_total") == 2.0


def test_multipart_requires_boundary(decoder: TypedValueDecoder) -> None:
    with pytest.raises(MultipartError):
        decoder.decode_multipart(UploadForm, [b""], "application/json")


def test_async_multipart(decoder: TypedValueDecoder) -> None:
    body = _upload_body(True)

    async def chunks():
        for start in range(0, len(body), 7):
            yield body[start : start + 7]

    form = asyncio.run(
        decoder.adecode_multipart(UploadForm, chunks(), "multipart/form-data; boundary=XyZ")
    )
    assert form.title == "Hi"
    assert form.photo.read() == b"\x89PNG\r\n"


def test_binary_body(decoder: TypedValueDecoder) -> None:
    avatar = decoder.decode_binary(
        Avatar, io.BytesIO(b"abc"), "image/png", accepted=["image/png", "image/jpeg"]
    )
    assert avatar.image.content_type == "image/png"
    assert avatar.image.read() == b"abc"
    assert decoder.decode_binary(Blob, b"xyz", "application/octet-stream") == Blob(b"xyz")


def test_binary_body_wildcards() -> None:
    assert media_type_matches("image/png; q=1", ["image/*"])
    assert media_type_matches("text/plain", ["*/*"])
    assert not media_type_matches("text/plain", ["image/*"])


def test_binary_body_rejects_media_type(decoder: TypedValueDecoder) -> None:
    with pytest.raises(UnsupportedMediaTypeError) as info:
        decoder.decode_binary(Avatar, b"abc", "text/plain", accepted=["image/png"])
    assert info.value.status_code == 415


def test_binary_body_needs_single_stream_field(decoder: TypedValueDecoder) -> None:
    with pytest.raises(UnhandledTypeError):
        decoder.decode_binary(UploadForm, b"abc", "image/png")
