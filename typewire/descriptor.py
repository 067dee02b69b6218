"""Structural type descriptors built from Python annotations.

The schema builder and the decoder never inspect annotations directly; they
operate on :class:`TypeDescriptor` values produced by :func:`describe`.
Descriptors are lightweight handles (origin, generic arguments and
nullability) with structural equality, so the same annotation written twice
maps to the same cache key. Reflective details (fields, variants, wrapped
type) are computed on demand and memoised per descriptor.
"""

from __future__ import annotations

import collections.abc as abc
import dataclasses
import enum
import io
import types
import typing
from dataclasses import MISSING, dataclass, field
from functools import lru_cache
from typing import (
    Annotated,
    Any,
    Callable,
    Optional,
    Tuple,
    TypeVar,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)

from pydantic import BaseModel

from .errors import UnhandledTypeError
from .markers import SEALED_ATTR, WRAPPER_ATTR, ParamInfo, has_marker
from .types import ContentStream

NoneType = type(None)


class Kind(str, enum.Enum):
    """Shape of a described type."""

    LEAF = "leaf"
    ENUM = "enum"
    STREAM = "stream"
    ARRAY = "array"
    MAP = "map"
    OBJECT = "object"
    SUM = "sum"
    WRAPPER = "wrapper"
    UNKNOWN = "unknown"


_ARRAY_ORIGINS: dict[Any, type] = {
    list: list,
    tuple: tuple,
    set: set,
    frozenset: frozenset,
    abc.Sequence: list,
    abc.MutableSequence: list,
    abc.Collection: list,
    abc.Iterable: list,
    abc.Set: frozenset,
    abc.MutableSet: set,
}

_MAP_ORIGINS: dict[Any, type] = {
    dict: dict,
    abc.Mapping: dict,
    abc.MutableMapping: dict,
}

_STREAM_BASES = (ContentStream, bytes, bytearray, io.IOBase)


@dataclass(frozen=True)
class TypeDescriptor:
    """Immutable handle for a type: origin, generic arguments, nullability."""

    origin: Any
    args: Tuple["TypeDescriptor", ...] = ()
    nullable: bool = False

    def __str__(self) -> str:
        if self.origin is Union:
            text = " | ".join(str(arg) for arg in self.args)
        else:
            text = origin_name(self.origin)
            if self.args:
                text += "[" + ", ".join(str(arg) for arg in self.args) + "]"
        return f"{text} | None" if self.nullable else text

    def with_nullable(self, nullable: bool) -> "TypeDescriptor":
        if nullable == self.nullable:
            return self
        return dataclasses.replace(self, nullable=nullable)

    def non_null(self) -> "TypeDescriptor":
        return self.with_nullable(False)

    @property
    def kind(self) -> Kind:
        return _classify(self.origin, len(self.args))

    @property
    def item(self) -> "TypeDescriptor":
        """Element type of an ARRAY or value type of a MAP descriptor."""

        if self.kind is Kind.ARRAY:
            return self.args[0]
        if self.kind is Kind.MAP:
            return self.args[1]
        raise TypeError(f"{self} has no item type")

    def fields(self) -> Tuple["FieldDescriptor", ...]:
        """Constructor fields in declaration order, generics substituted."""

        return _fields_of(self.non_null())

    def variants(self) -> Tuple["TypeDescriptor", ...]:
        """Variants of a SUM descriptor in declaration order."""

        return _variants_of(self.non_null())

    def construct(self, values: dict[str, Any]) -> Any:
        """Instantiate the described class from constructor keyword values."""

        cls = self.origin
        if isinstance(cls, type) and issubclass(cls, BaseModel):
            return cls.model_validate(values)
        return cls(**values)


@dataclass(frozen=True)
class FieldDescriptor:
    """One constructor field of an object type."""

    name: str
    key: str
    wire_name: str
    type: TypeDescriptor
    location: str = "query"
    description: Optional[str] = None
    default: Any = field(default_factory=lambda: MISSING, compare=False)
    default_factory: Any = field(default_factory=lambda: MISSING, compare=False)

    @property
    def has_default(self) -> bool:
        return self.default is not MISSING or self.default_factory is not MISSING

    def default_value(self) -> Any:
        if self.default_factory is not MISSING:
            return self.default_factory()
        return self.default


def origin_name(origin: Any) -> str:
    if origin is Any:
        return "Any"
    if isinstance(origin, TypeVar):
        return origin.__name__
    return getattr(origin, "__name__", None) or repr(origin)


def describe(
    annotation: Any,
    bindings: Optional[dict[Any, TypeDescriptor]] = None,
) -> TypeDescriptor:
    """Return the :class:`TypeDescriptor` for *annotation*.

    *bindings* maps ``TypeVar`` objects to descriptors and is used when the
    fields of a parameterised generic are described.
    """

    if isinstance(annotation, TypeDescriptor):
        return annotation
    if bindings is None:
        bindings = {}
    if isinstance(annotation, (str, typing.ForwardRef)):
        raise UnhandledTypeError(annotation, "unresolved forward reference")
    if isinstance(annotation, TypeVar):
        bound = bindings.get(annotation)
        return bound if bound is not None else TypeDescriptor(Any)
    if annotation is None or annotation is NoneType:
        return TypeDescriptor(NoneType, nullable=True)

    origin = get_origin(annotation)
    if origin is Annotated:
        return describe(get_args(annotation)[0], bindings)
    if origin is Union or origin is types.UnionType:
        members = get_args(annotation)
        nullable = any(m is NoneType for m in members)
        rest = [describe(m, bindings) for m in members if m is not NoneType]
        if len(rest) == 1:
            return rest[0].with_nullable(rest[0].nullable or nullable)
        return TypeDescriptor(Union, tuple(rest), nullable)
    if origin is not None:
        args = get_args(annotation)
        if origin in _ARRAY_ORIGINS:
            container = _ARRAY_ORIGINS[origin]
            if container is tuple:
                if len(args) == 2 and args[1] is Ellipsis:
                    args = args[:1]
                elif args:
                    # fixed-length tuples have no array rendering
                    return TypeDescriptor(
                        tuple, tuple(describe(a, bindings) for a in args)
                    )
            item = describe(args[0], bindings) if args else TypeDescriptor(Any)
            return TypeDescriptor(container, (item,))
        if origin in _MAP_ORIGINS:
            if len(args) == 2:
                key, value = (describe(a, bindings) for a in args)
            else:
                key, value = TypeDescriptor(str), TypeDescriptor(Any)
            return TypeDescriptor(dict, (key, value))
        if origin is typing.Literal:
            return TypeDescriptor(annotation)
        return TypeDescriptor(origin, tuple(describe(a, bindings) for a in args))
    if annotation in _ARRAY_ORIGINS:
        return TypeDescriptor(_ARRAY_ORIGINS[annotation], (TypeDescriptor(Any),))
    if annotation in _MAP_ORIGINS:
        return TypeDescriptor(dict, (TypeDescriptor(str), TypeDescriptor(Any)))
    return TypeDescriptor(annotation)


def is_object_class(cls: Any) -> bool:
    if not isinstance(cls, type):
        return False
    if dataclasses.is_dataclass(cls) or issubclass(cls, BaseModel):
        return True
    return issubclass(cls, tuple) and hasattr(cls, "_fields")


def _classify(origin: Any, arity: int) -> Kind:
    if origin is Any or isinstance(origin, TypeVar):
        return Kind.UNKNOWN
    if origin in (list, tuple, set, frozenset):
        return Kind.ARRAY if arity == 1 else Kind.UNKNOWN
    if origin is dict:
        return Kind.MAP
    if origin is Union:
        return Kind.SUM
    if isinstance(origin, typing.NewType):
        return Kind.WRAPPER
    if not isinstance(origin, type) or origin is NoneType:
        return Kind.UNKNOWN
    if issubclass(origin, enum.Enum):
        return Kind.ENUM
    if issubclass(origin, _STREAM_BASES):
        return Kind.STREAM
    if has_marker(origin, WRAPPER_ATTR):
        return Kind.WRAPPER
    if has_marker(origin, SEALED_ATTR):
        return Kind.SUM
    if is_object_class(origin):
        return Kind.OBJECT
    return Kind.LEAF


def _param_info(metadata: Any) -> Optional[ParamInfo]:
    for item in metadata or ():
        if isinstance(item, ParamInfo):
            return item
    return None


def _annotated_metadata(annotation: Any) -> tuple[Any, ...]:
    if get_origin(annotation) is Annotated:
        return tuple(get_args(annotation)[1:])
    return ()


def _type_hints(cls: type, desc: TypeDescriptor) -> dict[str, Any]:
    try:
        return get_type_hints(cls, include_extras=True)
    except NameError as exc:
        raise UnhandledTypeError(desc, f"unresolved annotation ({exc})") from exc


def _make_field(
    name: str,
    key: str,
    annotation: Any,
    bindings: dict[Any, TypeDescriptor],
    *,
    metadata: Any = (),
    alias: Optional[str] = None,
    description: Optional[str] = None,
    default: Any = MISSING,
    default_factory: Callable[[], Any] | Any = MISSING,
) -> FieldDescriptor:
    info = _param_info(_annotated_metadata(annotation)) or _param_info(metadata)
    location = "query"
    if info is not None:
        location = info.location
        alias = info.alias or alias
        description = info.description or description
    return FieldDescriptor(
        name=name,
        key=key,
        wire_name=alias or name,
        type=describe(annotation, bindings),
        location=location,
        description=description,
        default=default,
        default_factory=default_factory,
    )


@lru_cache(maxsize=None)
def _fields_of(desc: TypeDescriptor) -> Tuple[FieldDescriptor, ...]:
    cls = desc.origin
    if not isinstance(cls, type):
        raise UnhandledTypeError(desc, "not a class")
    params = getattr(cls, "__parameters__", ())
    bindings = dict(zip(params, desc.args))

    if dataclasses.is_dataclass(cls):
        hints = _type_hints(cls, desc)
        result = []
        for f in dataclasses.fields(cls):
            if not f.init:
                continue
            result.append(
                _make_field(
                    f.name,
                    f.name,
                    hints.get(f.name, f.type),
                    bindings,
                    alias=f.metadata.get("alias"),
                    description=f.metadata.get("description"),
                    default=f.default,
                    default_factory=f.default_factory,
                )
            )
        return tuple(result)

    if issubclass(cls, BaseModel):
        result = []
        for name, info in cls.model_fields.items():
            required = info.is_required()
            result.append(
                _make_field(
                    name,
                    info.alias or name,
                    info.annotation,
                    bindings,
                    metadata=info.metadata,
                    alias=info.alias,
                    description=info.description,
                    default_factory=(
                        MISSING
                        if required
                        else (lambda info=info: info.get_default(call_default_factory=True))
                    ),
                )
            )
        return tuple(result)

    named = getattr(cls, "_fields", None)
    if issubclass(cls, tuple) and named is not None:
        hints = _type_hints(cls, desc)
        defaults = getattr(cls, "_field_defaults", {})
        return tuple(
            _make_field(
                name,
                name,
                hints.get(name, Any),
                bindings,
                default=defaults.get(name, MISSING),
            )
            for name in named
        )

    raise UnhandledTypeError(desc, "fields cannot be enumerated")


@lru_cache(maxsize=None)
def _variants_of(desc: TypeDescriptor) -> Tuple[TypeDescriptor, ...]:
    if desc.origin is Union:
        return desc.args
    if has_marker(desc.origin, SEALED_ATTR):
        return tuple(describe(sub) for sub in desc.origin.__subclasses__())
    raise UnhandledTypeError(desc, "not a sum type")


__all__ = [
    "FieldDescriptor",
    "Kind",
    "TypeDescriptor",
    "describe",
    "is_object_class",
    "origin_name",
]
