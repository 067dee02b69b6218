"""Type-driven OpenAPI schemas and wire-value decoding."""

__version__ = "0.1.0"

from .binding import ParameterBinder
from .builder import SchemaBuilder
from .converters import Converter, ConverterRegistry, Ok, ParseFailure
from .decoder import TypedValueDecoder
from .descriptor import FieldDescriptor, Kind, TypeDescriptor, describe
from .errors import (
    ClientError,
    MultipartError,
    ParseError,
    RequiredFieldError,
    SchemaNamingCollisionError,
    TypewireError,
    UnhandledTypeError,
    UnsupportedMediaTypeError,
)
from .generator import OpenAPIGenerator
from .http import Request
from .markers import Cookie, Header, Path, Query, sealed, strict_enum, wrapper
from .namer import DefaultSchemaNamer, QualifiedSchemaNamer
from .schema import ArraySchema, MapSchema, ObjectSchema, OneOf, Primitive, Ref
from .types import (
    BinaryPayload,
    ContentStream,
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
from .wrappers import WrapperResolver

__all__ = [
    "__version__",
    "ArraySchema",
    "BinaryPayload",
    "ClientError",
    "ContentStream",
    "Converter",
    "ConverterRegistry",
    "Cookie",
    "DefaultSchemaNamer",
    "FieldDescriptor",
    "Float32",
    "Header",
    "Instant",
    "Int8",
    "Int16",
    "Int32",
    "Int64",
    "Kind",
    "MapSchema",
    "MultipartError",
    "ObjectSchema",
    "OffsetDateTime",
    "OffsetTime",
    "Ok",
    "OneOf",
    "OpenAPIGenerator",
    "ParameterBinder",
    "ParseError",
    "ParseFailure",
    "Path",
    "Primitive",
    "QualifiedSchemaNamer",
    "Query",
    "Ref",
    "Request",
    "RequiredFieldError",
    "SchemaBuilder",
    "SchemaNamingCollisionError",
    "TypeDescriptor",
    "TypedValueDecoder",
    "TypewireError",
    "UnhandledTypeError",
    "UnsupportedMediaTypeError",
    "WrapperResolver",
    "ZonedDateTime",
    "describe",
    "sealed",
    "strict_enum",
    "wrapper",
]
